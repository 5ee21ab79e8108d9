"""Feature access-control matrix (admin only) and the caller's own checks."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsAdminRole
from clinic.serializers.admin import AccessControlSerializer, SetPermissionSerializer
from clinic.services import access_control


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def access_controls(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': AccessControlSerializer(access_control.list_all(), many=True).data})

    s = SetPermissionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    entry = access_control.set_permission(
        feature=vd['feature'],
        allowed=vd['allowed'],
        role_id=vd.get('roleId'),
        user_id=vd.get('userId'),
    )
    return Response({'ok': True, 'data': AccessControlSerializer(entry).data if entry else None})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def access_control_detail(request, pk):
    access_control.remove_permission(pk)
    return Response({'ok': True, 'data': None})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def check_feature(request):
    feature = (request.query_params.get('feature') or '').strip()
    if not feature:
        raise ValidationError({'feature': 'feature is required'})
    return Response({'ok': True, 'data': {'feature': feature, 'allowed': access_control.has_access(request.user, feature)}})
