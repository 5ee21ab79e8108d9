"""
Prescriptions and medical records.

Writing a prescription records the visit as a medical record and queues
the prescription for the pharmacy. Dispensing deducts every line from
stock (FIFO over batches) in a single transaction.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import Conflict, InsufficientStock
from clinic.models import (
    Doctor,
    Item,
    MedicalRecord,
    Patient,
    Prescription,
    PrescriptionItem,
    QueueNumber,
    StockMovement,
    User,
)
from clinic.services import broadcast
from clinic.services.stock import record_movement, consume_fifo

logger = logging.getLogger(__name__)

DEFAULT_DIAGNOSIS = 'Pemeriksaan'


def _prescription_qs():
    return Prescription.objects.select_related(
        'patient', 'doctor__user', 'dispensed_by', 'medical_record', 'queue_number__polyclinic',
    ).prefetch_related('items__item')


def create_prescription(
    *,
    patient_id,
    doctor_id,
    items: list[dict],
    queue_number_id=None,
    diagnosis: str = '',
    actions: str = '',
    notes: str = '',
) -> Prescription:
    if not items:
        raise ValidationError({'items': 'at least one item is required'})
    patient = Patient.objects.filter(id=patient_id).first()
    if not patient:
        raise NotFound('patient not found')
    doctor = Doctor.objects.filter(id=doctor_id).first()
    if not doctor:
        raise NotFound('doctor not found')
    ticket = None
    if queue_number_id:
        ticket = QueueNumber.objects.filter(id=queue_number_id).first()
        if not ticket:
            raise NotFound('queue ticket not found')
        if ticket.patient_id != patient.id:
            raise ValidationError({'queueNumberId': 'queue ticket belongs to another patient'})

    item_ids = {line['itemId'] for line in items}
    known = {i.id: i for i in Item.objects.filter(id__in=item_ids, is_active=True)}
    missing = [str(i) for i in item_ids if i not in known]
    if missing:
        raise NotFound(f"item not found: {', '.join(missing)}")

    with transaction.atomic():
        record = MedicalRecord.objects.create(
            patient=patient,
            doctor=doctor,
            polyclinic_id=ticket.polyclinic_id if ticket else doctor.polyclinic_id,
            visit_date=timezone.now(),
            diagnosis=diagnosis or DEFAULT_DIAGNOSIS,
            actions=actions or '',
            notes=notes or '',
        )
        prescription = Prescription.objects.create(
            queue_number=ticket,
            patient=patient,
            doctor=doctor,
            medical_record=record,
            diagnosis=diagnosis or '',
            notes=notes or '',
            status=Prescription.STATUS_PENDING,
        )
        PrescriptionItem.objects.bulk_create([
            PrescriptionItem(
                prescription=prescription,
                item=known[line['itemId']],
                quantity=line['quantity'],
                dosage=line.get('dosage') or '',
                instructions=line.get('instructions') or '',
            )
            for line in items
        ])
        broadcast.send(
            broadcast.patient_group(patient.id),
            'prescription.update',
            {'prescriptionId': str(prescription.id), 'status': prescription.status},
        )
        broadcast.send(
            broadcast.patient_group(patient.id),
            'medical_record.update',
            {'type': 'prescription_created', 'medicalRecordId': str(record.id)},
        )

    logger.info('prescription %s written by doctor %s for patient %s', prescription.id, doctor.id, patient.id)
    return get_prescription(prescription.id)


def get_prescription(prescription_id) -> Prescription:
    prescription = _prescription_qs().filter(id=prescription_id).first()
    if not prescription:
        raise NotFound('prescription not found')
    return prescription


def patient_history(patient_id):
    return _prescription_qs().filter(patient_id=patient_id).order_by('-created_at')


def my_prescriptions(user: User):
    patient = Patient.objects.filter(user=user).first()
    if not patient:
        return Prescription.objects.none()
    return patient_history(patient.id)


def pending_prescriptions():
    return _prescription_qs().filter(status=Prescription.STATUS_PENDING).order_by('created_at')


def all_prescriptions(status: str | None = None):
    qs = _prescription_qs()
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-created_at')


def dispense(prescription_id, pharmacist: User) -> Prescription:
    with transaction.atomic():
        prescription = Prescription.objects.select_for_update().filter(id=prescription_id).first()
        if not prescription:
            raise NotFound('prescription not found')
        if prescription.status != Prescription.STATUS_PENDING:
            raise Conflict(f'prescription is {prescription.status}, only pending prescriptions can be dispensed')

        lines = list(prescription.items.order_by('item__code'))
        for line in lines:
            item = Item.objects.select_for_update().get(id=line.item_id)
            if item.current_stock < line.quantity:
                logger.warning('dispense %s refused: %s has %s, needs %s',
                               prescription.id, item.code, item.current_stock, line.quantity)
                raise InsufficientStock(
                    f'insufficient stock for {item.name}: available {item.current_stock}, needed {line.quantity}'
                )
            item.current_stock -= line.quantity
            item.save(update_fields=['current_stock', 'updated_at'])
            consume_fifo(item, line.quantity)
            record_movement(
                item, StockMovement.TYPE_OUT, line.quantity, 'prescription', prescription.id,
                f'Dispensed for prescription {prescription.id}', pharmacist,
            )

        prescription.status = Prescription.STATUS_COMPLETED
        prescription.dispensed_by = pharmacist
        prescription.dispensed_at = timezone.now()
        prescription.save(update_fields=['status', 'dispensed_by', 'dispensed_at'])
        broadcast.send(
            broadcast.patient_group(prescription.patient_id),
            'prescription.update',
            {'prescriptionId': str(prescription.id), 'status': prescription.status},
        )

    logger.info('prescription %s dispensed by %s (%s line(s))', prescription.id, pharmacist.id, len(lines))
    return get_prescription(prescription.id)


def cancel(prescription_id, user: User | None = None) -> Prescription:
    with transaction.atomic():
        prescription = Prescription.objects.select_for_update().filter(id=prescription_id).first()
        if not prescription:
            raise NotFound('prescription not found')
        if prescription.status == Prescription.STATUS_COMPLETED:
            raise Conflict('a dispensed prescription cannot be cancelled')
        if prescription.status != Prescription.STATUS_CANCELLED:
            prescription.status = Prescription.STATUS_CANCELLED
            prescription.save(update_fields=['status'])
            broadcast.send(
                broadcast.patient_group(prescription.patient_id),
                'prescription.update',
                {'prescriptionId': str(prescription.id), 'status': prescription.status},
            )
    logger.info('prescription %s cancelled by %s', prescription.id, getattr(user, 'id', None))
    return get_prescription(prescription.id)


# ---------------------------------------------------------------------
# Medical records
# ---------------------------------------------------------------------
def _record_qs():
    return MedicalRecord.objects.select_related('patient', 'doctor__user', 'polyclinic').prefetch_related(
        'prescriptions__items__item'
    )


def list_medical_records(patient_id=None):
    qs = _record_qs()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    return qs.order_by('-visit_date')


def get_medical_record(record_id) -> MedicalRecord:
    record = _record_qs().filter(id=record_id).first()
    if not record:
        raise NotFound('medical record not found')
    return record


def my_medical_records(user: User):
    patient = Patient.objects.filter(user=user).first()
    if not patient:
        return MedicalRecord.objects.none()
    return list_medical_records(patient.id)
