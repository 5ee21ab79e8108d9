import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from clinic.models import AccessControl, Doctor, Patient, Polyclinic, Role, User
from clinic.services import stock
from clinic.services.access_control import DEFAULT_FEATURES

PASSWORD = 'Sehat#Mediku2024'


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def roles(db):
    """All roles with the default feature matrix installed."""
    result = {}
    for name, features in DEFAULT_FEATURES.items():
        role = Role.objects.create(name=name)
        AccessControl.objects.bulk_create([AccessControl(role=role, feature=f) for f in features])
        result[name] = role
    return result


@pytest.fixture
def make_user(roles):
    def _make(username, role_name, **extra):
        return User.objects.create_user(
            username=username,
            email=f'{username}@mediku.test',
            password=PASSWORD,
            name=extra.pop('name', username.title()),
            role=roles[role_name],
            **extra,
        )
    return _make


@pytest.fixture
def client_for():
    def _client(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def polyclinic(db):
    return Polyclinic.objects.create(name='Poli Umum', code='UMUM')


@pytest.fixture
def admin_user(make_user):
    return make_user('admin1', Role.ADMIN)


@pytest.fixture
def doctor(make_user, polyclinic):
    user = make_user('doctor1', Role.DOCTOR, name='dr. Budi')
    return Doctor.objects.create(user=user, specialization='Umum', polyclinic=polyclinic)


@pytest.fixture
def pharmacist(make_user):
    return make_user('pharmacist1', Role.PHARMACIST)


@pytest.fixture
def patient_user(make_user):
    return make_user('patient1', Role.PATIENT)


@pytest.fixture
def patient(patient_user):
    return Patient.objects.create(user=patient_user, name='Siti Aminah', medical_record_number='RM-001')


@pytest.fixture
def item(db):
    return stock.create_item(code='OBT-001', name='Paracetamol 500mg', category='obat', unit='tablet',
                             min_stock=10, current_stock=0)
