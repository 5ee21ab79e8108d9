"""Public doctor directory."""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from clinic.serializers.patient import DoctorSerializer
from clinic.services import doctors as doctor_service


@api_view(['GET'])
@permission_classes([AllowAny])
def doctors(request):
    return Response({'ok': True, 'data': DoctorSerializer(doctor_service.list_doctors(), many=True).data})


@api_view(['GET'])
@permission_classes([AllowAny])
def doctors_available_today(request):
    return Response({'ok': True, 'data': doctor_service.available_today()})


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_detail(request, pk):
    return Response({'ok': True, 'data': DoctorSerializer(doctor_service.get_doctor(pk)).data})
