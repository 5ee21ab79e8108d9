"""
Administrative user and role management.

Users are gated by the ``user:manage`` feature, roles by
``admin:access-control``.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import HasFeature
from clinic.serializers.admin import (
    RoleSerializer,
    RoleWriteSerializer,
    UserCreateSerializer,
    UserListQuerySerializer,
    UserRoleSerializer,
)
from clinic.services import accounts


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasFeature('user:manage')])
def users(request):
    if request.method == 'GET':
        q = UserListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        rows, meta = accounts.list_users(
            page=q.validated_data['page'],
            limit=q.validated_data['limit'],
            role=q.validated_data.get('role') or None,
        )
        return Response({'ok': True, 'data': [accounts.user_payload(u) for u in rows], 'meta': meta})

    s = UserCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = accounts.create_account(
        email=vd['email'],
        password=vd['password'],
        name=vd['name'],
        role_name=vd['role'],
        phone=vd.get('phone', ''),
        doctor_data=vd.get('doctorData'),
        staff_data=vd.get('staffData'),
    )
    return Response({'ok': True, 'data': accounts.user_payload(user)}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature('user:manage')])
def user_detail(request, pk: int):
    return Response({'ok': True, 'data': accounts.user_payload(accounts.get_user(pk))})


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAuthenticated, HasFeature('user:manage')])
def user_role(request, pk: int):
    s = UserRoleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.update_role(accounts.get_user(pk), s.validated_data['role'])
    return Response({'ok': True, 'data': accounts.user_payload(user)})


# ---------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasFeature('admin:access-control')])
def roles(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': RoleSerializer(accounts.list_roles(), many=True).data})

    s = RoleWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    if not s.validated_data.get('name'):
        raise ValidationError({'name': 'name is required'})
    role = accounts.create_role(s.validated_data['name'], s.validated_data.get('description', ''))
    return Response({'ok': True, 'data': RoleSerializer(role).data}, status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasFeature('admin:access-control')])
def role_detail(request, pk):
    role = accounts.get_role(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': RoleSerializer(role).data})
    if request.method == 'DELETE':
        accounts.delete_role(role)
        return Response({'ok': True, 'data': None})

    s = RoleWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    role = accounts.update_role_definition(
        role, name=s.validated_data.get('name'), description=s.validated_data.get('description')
    )
    return Response({'ok': True, 'data': RoleSerializer(role).data})
