"""
Feature based access control.

A feature is a string key such as ``stock:adjust``. Users with the
``admin`` role pass every check; everyone else needs a row granting the
feature to their role or to them personally.
"""
from __future__ import annotations

import logging

from django.db.models import Q
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import AccessControl, Role, User

logger = logging.getLogger(__name__)

# Default feature matrix installed by ``manage.py seed_data``.
DEFAULT_FEATURES: dict[str, list[str]] = {
    Role.ADMIN: [
        'admin:access-control', 'user:manage',
        'stock:read', 'stock:manage', 'stock:opname', 'stock:adjust', 'stock:correction',
        'stock:adjust_in', 'stock:adjust_out',
        'queue:manage', 'queue:read', 'patient:read', 'patient:manage',
        'pharmacy:manage', 'prescription:read', 'prescription:write',
        'document:verify', 'attendance:manage',
    ],
    Role.DOCTOR: ['patient:read', 'medical_record:write', 'prescription:write', 'queue:read', 'queue:manage'],
    Role.NURSE: ['patient:read', 'patient:check_vitals', 'queue:manage', 'queue:read'],
    Role.PHARMACIST: ['pharmacy:manage', 'stock:read', 'stock:manage', 'stock:adjust', 'prescription:read'],
    Role.REGISTRATION_STAFF: ['queue:manage', 'queue:read', 'patient:manage', 'patient:read', 'document:verify'],
    Role.INVENTORY_STAFF: [
        'stock:read', 'stock:manage', 'stock:opname', 'stock:adjust', 'stock:correction',
        'stock:adjust_in', 'stock:adjust_out',
    ],
    Role.STAFF: ['queue:read', 'patient:read'],
    Role.PATIENT: ['patient:portal_access'],
}


def has_access(user: User, feature: str) -> bool:
    if not (user and user.is_authenticated):
        return False
    if user.is_admin:
        return True
    match = Q(user=user)
    if user.role_id:
        match |= Q(role_id=user.role_id)
    return AccessControl.objects.filter(match, feature=feature).exists()


def list_all():
    return AccessControl.objects.select_related('role', 'user').order_by('role__name', 'feature')


def set_permission(*, feature: str, allowed: bool, role_id=None, user_id=None) -> AccessControl | None:
    """Grant or revoke ``feature`` for a role or a user.

    Revoking a feature that is not granted is a no-op; granting an
    already granted feature returns the existing row.
    """
    if not role_id and not user_id:
        raise ValidationError({'detail': 'roleId or userId is required'})
    if role_id and user_id:
        raise ValidationError({'detail': 'set either roleId or userId, not both'})
    if role_id and not Role.objects.filter(id=role_id).exists():
        raise NotFound('role not found')
    if user_id and not User.objects.filter(id=user_id).exists():
        raise NotFound('user not found')

    lookup = {'feature': feature, 'role_id': role_id, 'user_id': user_id}
    if not allowed:
        deleted, _ = AccessControl.objects.filter(**lookup).delete()
        if deleted:
            logger.info('feature %s revoked from role=%s user=%s', feature, role_id, user_id)
        return None

    entry, created = AccessControl.objects.get_or_create(**lookup)
    if created:
        logger.info('feature %s granted to role=%s user=%s', feature, role_id, user_id)
    return entry


def remove_permission(entry_id) -> None:
    deleted, _ = AccessControl.objects.filter(id=entry_id).delete()
    if not deleted:
        raise NotFound('access control entry not found')


def features_for(user: User) -> list[str]:
    """Effective feature list of ``user`` (admins get the full admin set)."""
    if user.is_admin:
        return sorted(set(DEFAULT_FEATURES[Role.ADMIN]) | set(
            AccessControl.objects.values_list('feature', flat=True)
        ))
    match = Q(user=user)
    if user.role_id:
        match |= Q(role_id=user.role_id)
    return sorted(set(AccessControl.objects.filter(match).values_list('feature', flat=True)))
