"""
Authentication endpoints: login, registration, profile, password change,
token refresh and logout.

Login accepts an e-mail address or a username and returns a simplejwt
access/refresh pair. Logout blacklists either the given refresh token
or every outstanding token of the caller.
"""
from __future__ import annotations

import logging

from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.models import Role
from clinic.serializers.auth import (
    ChangePasswordSerializer,
    LoginSerializer,
    LogoutSerializer,
    RefreshSerializer,
    RegisterSerializer,
)
from clinic.services import accounts
from clinic.services.access_control import features_for, has_access
from clinic.throttling import LoginRateThrottle

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.login(request, s.validated_data['identifier'], s.validated_data['password'])
    tokens = accounts.issue_tokens(user)
    logger.info('user %s logged in', user.id)
    return Response({
        'ok': True,
        'data': {
            **tokens,
            'role': user.role_name,
            'user': accounts.user_payload(user),
        },
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    """Self-service registration creates patients; other roles need ``user:manage``."""
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    if vd['role'] != Role.PATIENT and not has_access(request.user, 'user:manage'):
        raise PermissionDenied('only patients can self-register')
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
@permission_classes([IsAuthenticated])
def profile_view(request):
    data = accounts.user_payload(request.user)
    data['features'] = features_for(request.user)
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password_view(request):
    s = ChangePasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.change_password(request.user, s.validated_data['oldPassword'], s.validated_data['newPassword'])
    return Response({'ok': True, 'data': {'message': 'password updated'}})


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    """Return a new access token from a refresh token."""
    s = RefreshSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    token_serializer = TokenRefreshSerializer(data={'refresh': s.validated_data['refresh']})
    try:
        token_serializer.is_valid(raise_exception=True)
    except TokenError as e:
        raise InvalidToken(e.args[0])
    data = dict(token_serializer.validated_data)
    return Response({'ok': True, 'data': {'jwt_access': data.pop('access'), **data}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the caller's refresh tokens (all, or the one given)."""
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = s.validated_data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError as e:
            raise InvalidToken(e.args[0])
        if token.get('user_id') is not None and str(token['user_id']) != str(request.user.id):
            raise PermissionDenied('token belongs to another user')
        token.blacklist()
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    logger.info('user %s logged out, %s token(s) blacklisted', request.user.id, count)
    return Response({'ok': True, 'data': {'blacklisted': count}})
