"""
Prescription and medical record endpoints.

Doctors write prescriptions (which also record the visit), the pharmacy
dispenses them against stock. Patients can read their own history.
"""
from __future__ import annotations

import uuid

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Doctor
from clinic.permissions import HasFeature, HasFeatureByMethod
from clinic.serializers.patient import MedicalRecordSerializer
from clinic.serializers.prescription import (
    PrescriptionCreateSerializer,
    PrescriptionSerializer,
    StatusQuerySerializer,
)
from clinic.services import prescriptions as prescription_service

READ_FEATURES = ('prescription:read', 'pharmacy:manage', 'prescription:write')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasFeatureByMethod(READ_FEATURES, ('prescription:write',))])
def prescriptions(request):
    if request.method == 'GET':
        q = StatusQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        rows = prescription_service.all_prescriptions(q.validated_data.get('status'))
        return Response({'ok': True, 'data': PrescriptionSerializer(rows, many=True).data})

    s = PrescriptionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    doctor_id = vd.get('doctorId')
    if not doctor_id:
        # a doctor writing for themself may omit the id
        doctor = Doctor.objects.filter(user=request.user).first()
        if not doctor:
            raise ValidationError({'doctorId': 'doctorId is required'})
        doctor_id = doctor.id
    prescription = prescription_service.create_prescription(
        patient_id=vd['patientId'],
        doctor_id=doctor_id,
        items=[dict(line) for line in vd['items']],
        queue_number_id=vd.get('queueNumberId'),
        diagnosis=vd.get('diagnosis', ''),
        actions=vd.get('actions', ''),
        notes=vd.get('notes', ''),
    )
    return Response({'ok': True, 'data': PrescriptionSerializer(prescription).data}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature(*READ_FEATURES)])
def pending_prescriptions(request):
    rows = prescription_service.pending_prescriptions()
    return Response({'ok': True, 'data': PrescriptionSerializer(rows, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_prescriptions(request):
    rows = prescription_service.my_prescriptions(request.user)
    return Response({'ok': True, 'data': PrescriptionSerializer(rows, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature(*READ_FEATURES)])
def patient_prescriptions(request, patient_id):
    rows = prescription_service.patient_history(patient_id)
    return Response({'ok': True, 'data': PrescriptionSerializer(rows, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature(*READ_FEATURES)])
def prescription_detail(request, pk):
    return Response({'ok': True, 'data': PrescriptionSerializer(prescription_service.get_prescription(pk)).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('pharmacy:manage')])
def prescription_dispense(request, pk):
    prescription = prescription_service.dispense(pk, request.user)
    return Response({'ok': True, 'data': PrescriptionSerializer(prescription).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('pharmacy:manage', 'prescription:write')])
def prescription_cancel(request, pk):
    prescription = prescription_service.cancel(pk, request.user)
    return Response({'ok': True, 'data': PrescriptionSerializer(prescription).data})


# ---------------------------------------------------------------------
# Medical records
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature('patient:read')])
def medical_records(request):
    patient_id = request.query_params.get('patientId') or None
    if patient_id:
        patient_id = _uuid_param(patient_id, 'patientId')
    rows = prescription_service.list_medical_records(patient_id)
    return Response({'ok': True, 'data': MedicalRecordSerializer(rows, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_medical_records(request):
    rows = prescription_service.my_medical_records(request.user)
    return Response({'ok': True, 'data': MedicalRecordSerializer(rows, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature('patient:read')])
def medical_record_detail(request, pk):
    record = prescription_service.get_medical_record(pk)
    return Response({'ok': True, 'data': MedicalRecordSerializer(record).data})


def _uuid_param(value, name):
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError({name: 'must be a valid UUID'})
