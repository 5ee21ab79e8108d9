"""
Outpatient queue endpoints.

The display board, the polyclinic list and take-a-number are public so
that kiosks and TV screens work without an account. Moving tickets
through their lifecycle needs the ``queue:manage`` feature.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import HasFeature
from clinic.serializers.queue import (
    CallSerializer,
    NotesSerializer,
    PolyclinicSerializer,
    QueueNumberSerializer,
    QueueTransitionSerializer,
    TakeNumberSerializer,
)
from clinic.services import queue as queue_service
from clinic.throttling import QueueTakeRateThrottle


@api_view(['GET'])
@permission_classes([AllowAny])
def queue_display(request):
    return Response({'ok': True, 'data': queue_service.get_display_data()})


@api_view(['GET'])
@permission_classes([AllowAny])
def queue_polyclinics(request):
    data = PolyclinicSerializer(queue_service.get_polyclinics(), many=True).data
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([QueueTakeRateThrottle])
def queue_take(request):
    s = TakeNumberSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    ticket = queue_service.take_number(
        polyclinic_id=vd['polyclinicId'],
        patient_id=vd.get('patientId'),
        bpjs_number=vd.get('bpjsNumber', ''),
        patient_name=vd.get('patientName', ''),
        patient_phone=vd.get('patientPhone', ''),
        doctor_id=vd.get('doctorId'),
        queue_date=vd.get('queueDate'),
    )
    return Response({'ok': True, 'data': QueueNumberSerializer(ticket).data}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def polyclinic_queue(request, pk):
    return Response({'ok': True, 'data': queue_service.get_polyclinic_queue(pk)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_queue(request):
    data = QueueNumberSerializer(queue_service.get_my_queue(request.user), many=True).data
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('queue:manage')])
def queue_call(request, pk):
    s = CallSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    ticket = queue_service.call(pk, request.user, doctor_id=s.validated_data.get('doctorId'))
    return Response({'ok': True, 'data': QueueNumberSerializer(ticket).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('queue:manage')])
def queue_serve(request, pk):
    ticket = queue_service.serve(pk, request.user)
    return Response({'ok': True, 'data': QueueNumberSerializer(ticket).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('queue:manage')])
def queue_complete(request, pk):
    s = NotesSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    ticket = queue_service.complete(pk, request.user, notes=s.validated_data.get('notes'))
    return Response({'ok': True, 'data': QueueNumberSerializer(ticket).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('queue:manage')])
def queue_skip(request, pk):
    s = NotesSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    ticket = queue_service.skip(pk, request.user, notes=s.validated_data.get('notes'))
    return Response({'ok': True, 'data': QueueNumberSerializer(ticket).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature('queue:read', 'queue:manage')])
def queue_history(request, pk):
    rows = queue_service.transition_history(pk)
    return Response({'ok': True, 'data': QueueTransitionSerializer(rows, many=True).data})
