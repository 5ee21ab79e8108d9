from io import StringIO

import pytest
from django.core.management import call_command

from clinic.models import AccessControl, Doctor, Item, Polyclinic, Role, StockBatch, User
from clinic.services.access_control import has_access

pytestmark = pytest.mark.django_db


def test_seed_data_is_idempotent():
    call_command('seed_data', stdout=StringIO())
    counts = (Role.objects.count(), AccessControl.objects.count(), User.objects.count(), Item.objects.count())
    call_command('seed_data', stdout=StringIO())
    assert (Role.objects.count(), AccessControl.objects.count(), User.objects.count(), Item.objects.count()) == counts

    assert set(Polyclinic.objects.values_list('code', flat=True)) == {'UMUM', 'GIGI', 'ANAK'}
    assert Doctor.objects.get(user__email='dr.andi@mediku.local').schedule.keys() == {'saturday', 'sunday'}
    assert StockBatch.objects.get(item__code='OBT-001').quantity == 500

    pharmacist = User.objects.get(email='apoteker@mediku.local')
    assert pharmacist.check_password('Mediku#2024')
    assert has_access(pharmacist, 'pharmacy:manage')
    assert not has_access(pharmacist, 'user:manage')


def test_seed_data_options():
    call_command('seed_data', '--skip-items', '--password', 'Rahasia#Klinik1', stdout=StringIO())
    assert not Item.objects.exists()
    assert User.objects.get(email='admin@mediku.local').check_password('Rahasia#Klinik1')


def test_ensure_test_users_resets_passwords():
    call_command('ensure_test_users', stdout=StringIO())
    doctor = User.objects.get(username='doctor1')
    doctor.set_password('lain-lagi')
    doctor.is_active = False
    doctor.save()

    out = StringIO()
    call_command('ensure_test_users', stdout=out)

    doctor.refresh_from_db()
    assert doctor.is_active and doctor.check_password('Mediku#2024')
    assert User.objects.get(username='patient1').patient_profile.medical_record_number == 'RM-001'
    assert 'All test users ensured.' in out.getvalue()
