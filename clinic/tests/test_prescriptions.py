import pytest
from rest_framework.exceptions import ValidationError

from clinic.exceptions import Conflict, InsufficientStock
from clinic.models import MedicalRecord, Prescription, StockBatch, StockMovement
from clinic.services import prescriptions as prescription_service
from clinic.services import queue as queue_service
from clinic.services import stock

pytestmark = pytest.mark.django_db


@pytest.fixture
def stocked_item(item):
    stock.adjust_in(item.id, 6)
    stock.adjust_in(item.id, 10)
    item.refresh_from_db()
    return item


def _write(patient, doctor, item, quantity, **extra):
    return prescription_service.create_prescription(
        patient_id=patient.id,
        doctor_id=doctor.id,
        items=[{'itemId': item.id, 'quantity': quantity, 'dosage': '3x1'}],
        **extra,
    )


def test_writing_creates_medical_record(patient, doctor, stocked_item, polyclinic):
    ticket = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)
    rx = _write(patient, doctor, stocked_item, 2, queue_number_id=ticket.id, diagnosis='ISPA')

    assert rx.status == Prescription.STATUS_PENDING
    record = MedicalRecord.objects.get(id=rx.medical_record_id)
    assert record.diagnosis == 'ISPA'
    assert record.polyclinic_id == polyclinic.id
    assert rx.items.get().dosage == '3x1'


def test_default_diagnosis_and_item_validation(patient, doctor, stocked_item):
    rx = _write(patient, doctor, stocked_item, 1)
    assert rx.medical_record.diagnosis == prescription_service.DEFAULT_DIAGNOSIS
    with pytest.raises(ValidationError):
        prescription_service.create_prescription(patient_id=patient.id, doctor_id=doctor.id, items=[])


def test_dispense_deducts_fifo(patient, doctor, stocked_item, pharmacist):
    rx = _write(patient, doctor, stocked_item, 8)

    done = prescription_service.dispense(rx.id, pharmacist)

    assert done.status == Prescription.STATUS_COMPLETED
    assert done.dispensed_by_id == pharmacist.id and done.dispensed_at
    stocked_item.refresh_from_db()
    assert stocked_item.current_stock == 8
    quantities = list(StockBatch.objects.filter(item=stocked_item).order_by('received_at', 'created_at')
                      .values_list('quantity', flat=True))
    assert quantities == [0, 8]
    movement = StockMovement.objects.get(reference_type='prescription')
    assert movement.reference_id == str(rx.id) and movement.quantity == 8

    with pytest.raises(Conflict):
        prescription_service.dispense(rx.id, pharmacist)


def test_insufficient_stock_rolls_back_every_line(patient, doctor, stocked_item, pharmacist):
    other = stock.create_item(code='OBT-000', name='Amoxicillin', category='obat', unit='kapsul', current_stock=50)
    rx = prescription_service.create_prescription(
        patient_id=patient.id,
        doctor_id=doctor.id,
        items=[
            {'itemId': other.id, 'quantity': 5},
            {'itemId': stocked_item.id, 'quantity': 99},
        ],
    )

    with pytest.raises(InsufficientStock):
        prescription_service.dispense(rx.id, pharmacist)

    other.refresh_from_db()
    stocked_item.refresh_from_db()
    assert other.current_stock == 50
    assert stocked_item.current_stock == 16
    assert Prescription.objects.get(id=rx.id).status == Prescription.STATUS_PENDING
    assert not StockMovement.objects.filter(reference_type='prescription').exists()


def test_cancel_rules(patient, doctor, stocked_item, pharmacist):
    rx = _write(patient, doctor, stocked_item, 1)
    assert prescription_service.cancel(rx.id).status == Prescription.STATUS_CANCELLED
    with pytest.raises(Conflict):
        prescription_service.dispense(rx.id, pharmacist)

    dispensed = _write(patient, doctor, stocked_item, 1)
    prescription_service.dispense(dispensed.id, pharmacist)
    with pytest.raises(Conflict):
        prescription_service.cancel(dispensed.id)


def test_api_write_and_dispense(client_for, patient, doctor, stocked_item, pharmacist, patient_user):
    payload = {
        'patientId': str(patient.id),
        'diagnosis': 'Demam',
        'items': [{'itemId': str(stocked_item.id), 'quantity': 3}],
    }
    resp = client_for(doctor.user).post('/api/prescriptions', payload, format='json')
    assert resp.status_code == 201
    rx_id = resp.data['data']['id']
    assert resp.data['data']['doctor']['id'] == str(doctor.id)

    assert client_for(doctor.user).post(f'/api/prescriptions/{rx_id}/dispense').status_code == 403
    assert client_for(patient_user).post('/api/prescriptions', payload, format='json').status_code == 403

    resp = client_for(pharmacist).get('/api/prescriptions/pending')
    assert [row['id'] for row in resp.data['data']] == [rx_id]

    resp = client_for(pharmacist).post(f'/api/prescriptions/{rx_id}/dispense')
    assert resp.status_code == 200
    assert resp.data['data']['status'] == 'completed'

    mine = client_for(patient_user).get('/api/prescriptions/my')
    assert [row['id'] for row in mine.data['data']] == [rx_id]
    records = client_for(patient_user).get('/api/medical-records/my')
    assert records.data['data'][0]['diagnosis'] == 'Demam'


def test_api_insufficient_stock_is_conflict(client_for, patient, doctor, stocked_item, pharmacist):
    rx = _write(patient, doctor, stocked_item, 500)
    resp = client_for(pharmacist).post(f'/api/prescriptions/{rx.id}/dispense')
    assert resp.status_code == 409
    assert resp.data['error']['code'] == 'insufficient_stock'
