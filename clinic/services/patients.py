"""
Patient registry: search, registration with generated medical record
numbers (``RM-001``, ``RM-002``...), updates and deletion.
"""
from __future__ import annotations

import logging
import re

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import NotFound

from clinic.exceptions import Conflict
from clinic.models import MedicalRecord, Patient

logger = logging.getLogger(__name__)

MRN_PREFIX = 'RM-'
_MRN_RE = re.compile(r'^RM-(\d+)$')


def next_medical_record_number() -> str:
    numbers = [
        int(m.group(1))
        for m in (
            _MRN_RE.match(mrn)
            for mrn in Patient.objects.filter(medical_record_number__startswith=MRN_PREFIX)
            .values_list('medical_record_number', flat=True)
        )
        if m
    ]
    return f"{MRN_PREFIX}{(max(numbers) if numbers else 0) + 1:03d}"


def search_patients(search: str | None = None, *, include_inactive: bool = False):
    qs = Patient.objects.all()
    if not include_inactive:
        qs = qs.filter(is_active=True)
    if search:
        qs = qs.filter(
            Q(name__icontains=search)
            | Q(medical_record_number__icontains=search)
            | Q(phone__icontains=search)
        )
    return qs.order_by('name')


def get_patient(patient_id) -> Patient:
    patient = Patient.objects.filter(id=patient_id).first()
    if not patient:
        raise NotFound('patient not found')
    return patient


def get_by_mrn(mrn: str) -> Patient:
    patient = Patient.objects.filter(medical_record_number=mrn).first()
    if not patient:
        raise NotFound('patient not found')
    return patient


def create_patient(**fields) -> Patient:
    """Create a patient, generating the MRN when none is given.

    Two concurrent registrations may compute the same next number; the
    loser retries with a fresh number.
    """
    explicit_mrn = fields.pop('medical_record_number', None)
    if explicit_mrn and Patient.objects.filter(medical_record_number=explicit_mrn).exists():
        raise Conflict('medical record number already exists')
    for _ in range(3):
        mrn = explicit_mrn or next_medical_record_number()
        try:
            with transaction.atomic():
                patient = Patient.objects.create(medical_record_number=mrn, **fields)
        except IntegrityError:
            if explicit_mrn:
                raise Conflict('medical record number already exists')
            continue
        logger.info('patient %s registered as %s', patient.id, mrn)
        return patient
    raise Conflict('could not allocate a medical record number, retry')


def update_patient(patient: Patient, **fields) -> Patient:
    mrn = fields.get('medical_record_number')
    if mrn and Patient.objects.filter(medical_record_number=mrn).exclude(id=patient.id).exists():
        raise Conflict('medical record number already exists')
    for key, value in fields.items():
        setattr(patient, key, value)
    patient.save()
    return patient


def delete_patient(patient: Patient, *, permanent: bool = False) -> None:
    """Soft delete marks the MRN with ``_DELETED_<ms>`` and deactivates the row."""
    if permanent:
        logger.info('patient %s permanently deleted', patient.id)
        patient.delete()
        return
    if '_DELETED' not in patient.medical_record_number:
        stamp = int(timezone.now().timestamp() * 1000)
        patient.medical_record_number = f"{patient.medical_record_number}_DELETED_{stamp}"
    patient.is_active = False
    patient.save(update_fields=['medical_record_number', 'is_active', 'updated_at'])
    logger.info('patient %s soft deleted', patient.id)


def medical_history(patient: Patient):
    return (
        MedicalRecord.objects.filter(patient=patient)
        .select_related('doctor__user', 'polyclinic')
        .prefetch_related('prescriptions__items__item')
        .order_by('-visit_date')
    )
