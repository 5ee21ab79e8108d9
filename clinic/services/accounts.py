"""
Accounts: login, registration, profile, password changes, and the
administrative user and role management.
"""
from __future__ import annotations

import logging
import math

from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.exceptions import Conflict
from clinic.models import Doctor, Polyclinic, Role, Staff, User

logger = logging.getLogger(__name__)

SCHEDULE_PRESETS: dict[str, dict] = {
    'pagi': {
        'monday': {'start': '08:00', 'end': '14:00'},
        'tuesday': {'start': '08:00', 'end': '14:00'},
        'wednesday': {'start': '08:00', 'end': '14:00'},
        'thursday': {'start': '08:00', 'end': '14:00'},
        'friday': {'start': '08:00', 'end': '12:00'},
    },
    'siang': {
        'monday': {'start': '13:00', 'end': '20:00'},
        'tuesday': {'start': '13:00', 'end': '20:00'},
        'wednesday': {'start': '13:00', 'end': '20:00'},
        'thursday': {'start': '13:00', 'end': '20:00'},
        'friday': {'start': '13:00', 'end': '17:00'},
    },
    'weekend': {
        'saturday': {'start': '09:00', 'end': '15:00'},
        'sunday': {'start': '10:00', 'end': '14:00'},
    },
}


# ---------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------
def user_payload(user: User) -> dict:
    """Public representation of a user with the role specific profile."""
    data: dict[str, object] = {
        'id': user.id,
        'email': user.email,
        'username': user.username,
        'name': user.name or user.get_full_name() or user.username,
        'phone': user.phone,
        'role': user.role_name,
        'isActive': user.is_active,
    }
    doctor = getattr(user, 'doctor_profile', None)
    if doctor is not None:
        data['doctor'] = {
            'id': str(doctor.id),
            'specialization': doctor.specialization,
            'licenseNumber': doctor.license_number,
            'polyclinicId': str(doctor.polyclinic_id) if doctor.polyclinic_id else None,
            'schedule': doctor.schedule,
        }
    staff = getattr(user, 'staff_profile', None)
    if staff is not None:
        data['staff'] = {'id': str(staff.id), 'department': staff.department, 'position': staff.position}
    patient = getattr(user, 'patient_profile', None)
    if patient is not None:
        data['patient'] = {'id': str(patient.id), 'medicalRecordNumber': patient.medical_record_number}
    return data


def issue_tokens(user: User) -> dict:
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role_name
    return {'jwt_access': str(refresh.access_token), 'jwt_refresh': str(refresh)}


def login(request, identifier: str, password: str) -> User:
    """Authenticate by e-mail or username; raises a generic error on failure."""
    username = identifier
    if '@' in identifier:
        match = User.objects.filter(email__iexact=identifier).only('username').first()
        if match:
            username = match.username
    user = authenticate(request, username=username, password=password)
    if not user:
        logger.warning('failed login for %s', identifier)
        raise ValidationError({'detail': 'invalid email or password'})
    return user


def _check_password(password: str, user: User | None = None) -> None:
    try:
        validate_password(password, user=user)
    except DjangoValidationError as e:
        raise ValidationError({'password': e.messages})


def _get_role(name: str) -> Role:
    role = Role.objects.filter(name=name).first()
    if not role:
        raise NotFound(f'role {name} not found')
    return role


@transaction.atomic
def create_account(
    *,
    email: str,
    password: str,
    name: str,
    role_name: str,
    phone: str = '',
    doctor_data: dict | None = None,
    staff_data: dict | None = None,
) -> User:
    """Create a user together with its doctor or staff profile."""
    email = email.strip().lower()
    if User.objects.filter(email__iexact=email).exists():
        raise Conflict('email already registered')
    role = _get_role(role_name)
    _check_password(password)

    user = User(username=email, email=email, name=name, phone=phone or '', role=role)
    user.set_password(password)
    user.save()

    if role.name == Role.DOCTOR and doctor_data:
        polyclinic = None
        if doctor_data.get('polyclinicId'):
            polyclinic = Polyclinic.objects.filter(id=doctor_data['polyclinicId']).first()
            if not polyclinic:
                raise NotFound('polyclinic not found')
        Doctor.objects.create(
            user=user,
            specialization=doctor_data.get('specialization') or 'Umum',
            license_number=doctor_data.get('licenseNumber') or '',
            polyclinic=polyclinic,
            schedule=SCHEDULE_PRESETS.get(doctor_data.get('scheduleType') or '', doctor_data.get('schedule') or {}),
        )
    elif staff_data and role.name not in (Role.DOCTOR, Role.PATIENT):
        Staff.objects.create(
            user=user,
            department=staff_data.get('department') or '',
            position=staff_data.get('position') or '',
        )
    logger.info('account %s created with role %s', user.email, role.name)
    return user


def change_password(user: User, old_password: str, new_password: str) -> None:
    if not user.check_password(old_password):
        raise ValidationError({'oldPassword': 'current password is incorrect'})
    _check_password(new_password, user=user)
    user.set_password(new_password)
    user.save(update_fields=['password'])
    logger.info('password changed for user %s', user.id)


# ---------------------------------------------------------------------
# Users (admin)
# ---------------------------------------------------------------------
def list_users(*, page: int = 1, limit: int = 10, role: str | None = None):
    qs = User.objects.select_related('role', 'doctor_profile', 'staff_profile').order_by('-date_joined')
    if role and role != 'all':
        qs = qs.filter(role__name=role)
    total = qs.count()
    start = (page - 1) * limit
    meta = {'total': total, 'page': page, 'limit': limit, 'totalPages': math.ceil(total / limit) if limit else 1}
    return list(qs[start:start + limit]), meta


def get_user(user_id) -> User:
    user = User.objects.select_related('role').filter(id=user_id).first()
    if not user:
        raise NotFound('user not found')
    return user


def update_role(user: User, role_name: str) -> User:
    user.role = _get_role(role_name)
    user.save(update_fields=['role'])
    logger.info('user %s role changed to %s', user.id, role_name)
    return user


# ---------------------------------------------------------------------
# Roles (admin)
# ---------------------------------------------------------------------
def list_roles():
    return Role.objects.order_by('name')


def get_role(role_id) -> Role:
    role = Role.objects.filter(id=role_id).first()
    if not role:
        raise NotFound('role not found')
    return role


def create_role(name: str, description: str = '') -> Role:
    if Role.objects.filter(name=name).exists():
        raise Conflict('role already exists')
    return Role.objects.create(name=name, description=description)


def update_role_definition(role: Role, *, name: str | None = None, description: str | None = None) -> Role:
    if name and name != role.name:
        if Role.objects.filter(name=name).exclude(id=role.id).exists():
            raise Conflict('role already exists')
        role.name = name
    if description is not None:
        role.description = description
    role.save()
    return role


def delete_role(role: Role) -> None:
    if role.name == Role.ADMIN:
        raise Conflict('the admin role cannot be deleted')
    logger.info('role %s deleted', role.name)
    role.delete()
