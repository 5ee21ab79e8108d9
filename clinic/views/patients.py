"""
Patient registry endpoints.

Reading needs ``patient:read``; registering, editing and deleting need
``patient:manage``.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import HasFeature, HasFeatureByMethod
from clinic.serializers.patient import (
    MedicalRecordSerializer,
    PatientSearchSerializer,
    PatientSerializer,
    PatientWriteSerializer,
)
from clinic.services import patients as patient_service

PATIENT_ACCESS = HasFeatureByMethod(('patient:read', 'patient:manage'), ('patient:manage',))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, PATIENT_ACCESS])
def patients(request):
    if request.method == 'GET':
        q = PatientSearchSerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = patient_service.search_patients(
            q.validated_data.get('search') or None,
            include_inactive=q.validated_data.get('includeInactive', False),
        )
        return Response({'ok': True, 'data': PatientSerializer(qs, many=True).data})

    s = PatientWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = patient_service.create_patient(**s.to_model_fields())
    return Response({'ok': True, 'data': PatientSerializer(patient).data}, status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, PATIENT_ACCESS])
def patient_detail(request, pk):
    patient = patient_service.get_patient(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': PatientSerializer(patient).data})
    if request.method == 'DELETE':
        permanent = (request.query_params.get('permanent') or '').lower() in ('1', 'true', 'yes')
        patient_service.delete_patient(patient, permanent=permanent)
        return Response({'ok': True, 'data': None})

    s = PatientWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    patient = patient_service.update_patient(patient, **s.to_model_fields())
    return Response({'ok': True, 'data': PatientSerializer(patient).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature('patient:read', 'patient:manage')])
def patient_by_mrn(request, mrn: str):
    return Response({'ok': True, 'data': PatientSerializer(patient_service.get_by_mrn(mrn)).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature('patient:read', 'patient:manage')])
def patient_history(request, pk):
    patient = patient_service.get_patient(pk)
    rows = patient_service.medical_history(patient)
    return Response({
        'ok': True,
        'data': {
            'patient': PatientSerializer(patient).data,
            'medicalRecords': MedicalRecordSerializer(rows, many=True).data,
        },
    })
