import pytest
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken
from rest_framework_simplejwt.tokens import AccessToken

from clinic.models import Role, User

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db


def login(client, identifier, password=PASSWORD):
    return client.post(reverse('login_view'), {'email': identifier, 'password': password}, format='json')


def test_login_by_email_or_username_returns_jwt_pair(make_user):
    user = make_user('dokter', Role.DOCTOR)
    client = APIClient()

    for identifier in (user.email, user.username):
        r = login(client, identifier)
        assert r.status_code == 200
        data = r.data['data']
        assert data['jwt_access'] and data['jwt_refresh']
        assert data['role'] == Role.DOCTOR
        assert str(AccessToken(data['jwt_access'])['user_id']) == str(user.id)


def test_bad_password_is_rejected(make_user):
    user = make_user('perawat', Role.NURSE)
    r = login(APIClient(), user.email, 'wrong-password')
    assert r.status_code == 400
    assert r.data['ok'] is False


def test_role_in_login_body_is_ignored(make_user):
    user = make_user('u1', Role.PATIENT)
    r = APIClient().post(
        reverse('login_view'), {'username': 'u1', 'password': PASSWORD, 'role': Role.ADMIN}, format='json',
    )
    assert r.status_code == 200
    user.refresh_from_db()
    assert user.role_name == Role.PATIENT


def test_bearer_token_reaches_profile(make_user):
    user = make_user('staf', Role.STAFF)
    client = APIClient()
    token = login(client, user.email).data['data']['jwt_access']
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    r = client.get(reverse('profile_view'))
    assert r.status_code == 200
    assert r.data['data']['email'] == user.email
    assert 'queue:read' in r.data['data']['features']


def test_inactive_user_token_is_refused(make_user):
    user = make_user('keluar', Role.STAFF)
    client = APIClient()
    token = login(client, user.email).data['data']['jwt_access']
    User.objects.filter(id=user.id).update(is_active=False)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    assert client.get(reverse('profile_view')).status_code == 401


def test_public_registration_creates_patient_only(roles):
    client = APIClient()
    r = client.post(reverse('register_view'), {
        'email': 'Baru@Mediku.test', 'password': PASSWORD, 'name': 'Pasien Baru',
    }, format='json')
    assert r.status_code == 201
    user = User.objects.get(email='baru@mediku.test')
    assert user.role_name == Role.PATIENT

    r = client.post(reverse('register_view'), {
        'email': 'dokter@mediku.test', 'password': PASSWORD, 'name': 'Dokter', 'role': Role.DOCTOR,
    }, format='json')
    assert r.status_code == 403
    assert not User.objects.filter(email='dokter@mediku.test').exists()

    r = client.post(reverse('register_view'), {
        'email': 'baru@mediku.test', 'password': PASSWORD, 'name': 'Lagi',
    }, format='json')
    assert r.status_code == 409


def test_admin_registers_doctor_with_schedule_preset(admin_user, client_for, polyclinic):
    r = client_for(admin_user).post(reverse('register_view'), {
        'email': 'dr.anak@mediku.test', 'password': PASSWORD, 'name': 'dr. Anak', 'role': Role.DOCTOR,
        'doctorData': {'specialization': 'Anak', 'polyclinicId': str(polyclinic.id), 'scheduleType': 'weekend'},
    }, format='json')
    assert r.status_code == 201
    doctor = User.objects.get(email='dr.anak@mediku.test').doctor_profile
    assert set(doctor.schedule) == {'saturday', 'sunday'}
    assert doctor.polyclinic_id == polyclinic.id


def test_change_password(make_user, client_for):
    user = make_user('ganti', Role.STAFF)
    client = client_for(user)
    r = client.post(reverse('change_password_view'), {'oldPassword': 'salah', 'newPassword': 'Baru#Sekali99'},
                    format='json')
    assert r.status_code == 400
    r = client.post(reverse('change_password_view'), {'oldPassword': PASSWORD, 'newPassword': 'Baru#Sekali99'},
                    format='json')
    assert r.status_code == 200
    user.refresh_from_db()
    assert user.check_password('Baru#Sekali99')


def test_refresh_and_logout_blacklists(make_user):
    user = make_user('keluar2', Role.STAFF)
    client = APIClient()
    tokens = login(client, user.email).data['data']

    r = client.post(reverse('refresh_view'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['data']['jwt_access']

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['jwt_access']}")
    r = client.post(reverse('logout_view'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['data']['blacklisted'] == 1
    assert BlacklistedToken.objects.filter(token__user=user).exists()

    client.credentials()
    r = client.post(reverse('refresh_view'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert r.status_code == 401


def test_refresh_with_garbage_is_unauthorized(db):
    r = APIClient().post(reverse('refresh_view'), {'refresh': 'not-a-token'}, format='json')
    assert r.status_code == 401
