"""
API error types and the unified DRF exception handler.

Every error response has the shape
``{'ok': False, 'error': {'code': ..., 'message': ...}}``.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'conflict with the current state of the resource'
    default_code = 'conflict'


class InvalidTransition(Conflict):
    default_detail = 'invalid status transition'
    default_code = 'invalid_transition'


class InsufficientStock(Conflict):
    default_detail = 'insufficient stock'
    default_code = 'insufficient_stock'


def _error_code(exc) -> str:
    if isinstance(exc, Http404):
        return 'not_found'
    if isinstance(exc, DjangoPermissionDenied):
        return 'permission_denied'
    return getattr(exc, 'default_code', None) or 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.error('unhandled error in %s', getattr(view, '__name__', view), exc_info=exc)
        message = str(exc) if settings.DEBUG else 'internal server error'
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': message}}, status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data if isinstance(resp.data, list) else str(resp.data)
    if resp.status_code >= 500:
        logger.error('api error %s: %s', resp.status_code, detail)
    return Response(
        {'ok': False, 'error': {'code': _error_code(exc), 'message': detail}},
        status=resp.status_code,
        headers={h: resp[h] for h in ('WWW-Authenticate', 'Retry-After') if resp.has_header(h)},
    )
