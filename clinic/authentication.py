"""
Authentication backend for bearer JWTs.

A thin subclass of simplejwt's ``JWTAuthentication`` that gives the
project a stable import path for its REST framework configuration and
refuses tokens of deactivated accounts.
"""
from __future__ import annotations

from rest_framework_simplejwt import authentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed


class JWTAuthentication(authentication.JWTAuthentication):
    """JWT authentication using the ``Bearer`` keyword."""

    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        if not user.is_active:
            raise AuthenticationFailed('user is inactive', code='user_inactive')
        return user
