from datetime import date

import pytest

from clinic.exceptions import Conflict
from clinic.models import Doctor, Patient, Role
from clinic.services import doctors as doctor_service
from clinic.services import patients as patient_service

pytestmark = pytest.mark.django_db


def test_medical_record_numbers_are_sequential(db):
    assert patient_service.next_medical_record_number() == 'RM-001'
    patient_service.create_patient(name='Andi')
    Patient.objects.create(name='Lama', medical_record_number='LEGACY-9')
    second = patient_service.create_patient(name='Budi')
    assert second.medical_record_number == 'RM-002'


def test_explicit_duplicate_mrn_conflicts(patient):
    with pytest.raises(Conflict):
        patient_service.create_patient(name='Kembar', medical_record_number=patient.medical_record_number)


def test_soft_delete_frees_the_number_and_hides_patient(patient):
    patient_service.delete_patient(patient)
    patient.refresh_from_db()
    assert not patient.is_active
    assert patient.medical_record_number.startswith('RM-001_DELETED_')
    assert patient not in patient_service.search_patients()
    assert patient in patient_service.search_patients(include_inactive=True)


def test_search_matches_name_mrn_and_phone(db):
    a = patient_service.create_patient(name='Rina Wati', phone='081234')
    patient_service.create_patient(name='Joko')
    assert list(patient_service.search_patients('rina')) == [a]
    assert list(patient_service.search_patients('0812')) == [a]
    assert list(patient_service.search_patients(a.medical_record_number)) == [a]


def test_doctor_schedule_window():
    doctor = Doctor(schedule={'monday': {'start': '08:00', 'end': '12:00'}, 'selasa': {'start': '13:00'}})
    assert doctor_service.todays_window(doctor, date(2024, 1, 1)) == {'start': '08:00', 'end': '12:00'}
    assert doctor_service.todays_window(doctor, date(2024, 1, 2)) == {'start': '13:00'}
    assert doctor_service.todays_window(doctor, date(2024, 1, 3)) is None
    assert doctor_service.todays_window(Doctor(schedule={})) is True


def test_available_today_lists_unscheduled_doctor(doctor, client_for):
    resp = client_for().get('/api/doctors/available-today')
    assert resp.status_code == 200
    row = resp.data['data'][0]
    assert row['id'] == str(doctor.id)
    assert (row['schedule'], row['isServing'], row['completedToday']) == ('Tersedia', False, 0)


def test_patient_api(client_for, make_user):
    registration = make_user('loket1', Role.REGISTRATION_STAFF)
    staff = make_user('staf1', Role.STAFF)

    resp = client_for(registration).post('/api/patients', {
        'name': '<b>Dewi</b> Lestari', 'gender': 'female', 'bpjsNumber': '0001234',
    }, format='json')
    assert resp.status_code == 201
    body = resp.data['data']
    assert body['name'] == 'Dewi Lestari'
    assert body['medicalRecordNumber'] == 'RM-001'

    assert client_for(staff).post('/api/patients', {'name': 'Tanpa Izin'}, format='json').status_code == 403
    assert client_for(staff).get('/api/patients', {'search': 'dewi'}).data['data'][0]['id'] == body['id']
    assert client_for(staff).get('/api/patients/mrn/RM-001').data['data']['id'] == body['id']

    resp = client_for(registration).patch(f"/api/patients/{body['id']}", {'phone': '0899'}, format='json')
    assert resp.data['data']['phone'] == '0899'

    history = client_for(staff).get(f"/api/patients/{body['id']}/history")
    assert history.data['data']['medicalRecords'] == []

    assert client_for(registration).delete(f"/api/patients/{body['id']}?permanent=true").status_code == 200
    assert not Patient.objects.exists()


def test_healthz(client_for):
    resp = client_for().get('/healthz')
    assert resp.status_code == 200
    assert resp.json() == {'ok': True, 'db': True, 'cache': True}
