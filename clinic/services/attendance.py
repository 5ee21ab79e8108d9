"""
Staff attendance and leave requests.

One attendance row per user and day. Check-in after
``ATTENDANCE_LATE_HOUR`` (local time) is recorded as ``late``. Approving
a leave request back-fills ``leave``/``sick`` rows for every day of the
range that has no attendance yet.
"""
from __future__ import annotations

import base64
import binascii
import calendar
import logging
import math
import re
import uuid
from datetime import date, timedelta

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import Conflict
from clinic.models import Attendance, LeaveRequest, User

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r'^data:image/(\w+);base64,(.+)$', re.DOTALL)
EARTH_RADIUS_M = 6371000.0


def save_photo(data_url: str) -> str:
    """Store a base64 ``data:image/...`` URL and return its media path."""
    match = _DATA_URL_RE.match(data_url or '')
    if not match:
        raise ValidationError({'photo': 'invalid image data'})
    ext, payload = match.groups()
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError({'photo': 'invalid image data'})
    if len(content) > settings.UPLOAD_MAX_MB * 1024 * 1024:
        raise ValidationError({'photo': f'photo exceeds {settings.UPLOAD_MAX_MB} MB'})
    name = default_storage.save(f'attendance/{uuid.uuid4()}.{ext.lower()}', ContentFile(content))
    return name


def distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in metres (haversine)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def check_geofence(location: dict | None) -> None:
    fence = settings.ATTENDANCE_GEOFENCE
    if not fence or not location:
        return
    try:
        lat, lng = float(location['lat']), float(location['lng'])
    except (KeyError, TypeError, ValueError):
        raise ValidationError({'location': 'location needs numeric lat and lng'})
    away = distance_m(lat, lng, fence['lat'], fence['lng'])
    if away > fence['radius_m']:
        logger.warning('check rejected %.0f m outside the geofence', away)
        raise ValidationError({'location': f'outside the attendance area ({away:.0f} m away)'})


def check_in(user: User, *, location: dict | None = None, photo: str | None = None) -> Attendance:
    check_geofence(location)
    now = timezone.localtime()
    today = now.date()
    status = Attendance.STATUS_LATE if now.hour >= settings.ATTENDANCE_LATE_HOUR else Attendance.STATUS_PRESENT
    with transaction.atomic():
        attendance = Attendance.objects.select_for_update().filter(user=user, attendance_date=today).first()
        if attendance and attendance.check_in:
            raise Conflict('already checked in today')
        photo_path = save_photo(photo) if photo else ''
        if attendance is None:
            attendance = Attendance(user=user, attendance_date=today)
        attendance.check_in = now
        attendance.check_in_location = location
        attendance.check_in_photo = photo_path
        attendance.status = status
        attendance.save()
    logger.info('user %s checked in (%s)', user.id, status)
    return attendance


def check_out(user: User, *, location: dict | None = None, photo: str | None = None) -> Attendance:
    check_geofence(location)
    today = timezone.localdate()
    with transaction.atomic():
        attendance = Attendance.objects.select_for_update().filter(user=user, attendance_date=today).first()
        if not attendance or not attendance.check_in:
            raise NotFound('no check-in record found for today')
        if attendance.check_out:
            raise Conflict('already checked out today')
        attendance.check_out = timezone.now()
        attendance.check_out_location = location
        attendance.check_out_photo = save_photo(photo) if photo else ''
        attendance.save()
    logger.info('user %s checked out', user.id)
    return attendance


def today_status(user: User) -> Attendance | None:
    return Attendance.objects.filter(user=user, attendance_date=timezone.localdate()).first()


def history(user: User, *, start: date | None = None, end: date | None = None):
    qs = Attendance.objects.filter(user=user)
    if start:
        qs = qs.filter(attendance_date__gte=start)
    if end:
        qs = qs.filter(attendance_date__lte=end)
    return qs.order_by('-attendance_date')


def _count_statuses(rows) -> dict[str, int]:
    counts = {status: 0 for status, _ in Attendance.STATUS_CHOICES}
    for row in rows:
        counts[row.status] = counts.get(row.status, 0) + 1
    return counts


def daily_report(day: date | None = None) -> dict:
    day = day or timezone.localdate()
    rows = list(
        Attendance.objects.filter(attendance_date=day).select_related('user', 'user__role').order_by('check_in')
    )
    return {'date': day, 'total': len(rows), **_count_statuses(rows), 'attendances': rows}


def monthly_summary(user: User, year: int, month: int) -> dict:
    if not 1 <= month <= 12:
        raise ValidationError({'month': 'month must be between 1 and 12'})
    days = calendar.monthrange(year, month)[1]
    rows = list(
        Attendance.objects.filter(
            user=user,
            attendance_date__gte=date(year, month, 1),
            attendance_date__lte=date(year, month, days),
        ).order_by('attendance_date')
    )
    return {'year': year, 'month': month, 'totalDays': days, **_count_statuses(rows), 'attendances': rows}


# ---------------------------------------------------------------------
# Leave requests
# ---------------------------------------------------------------------
def create_leave_request(user: User, *, leave_type: str, start_date: date, end_date: date,
                         reason: str = '') -> LeaveRequest:
    if end_date < start_date:
        raise ValidationError({'endDate': 'end date must not be before start date'})
    overlapping = LeaveRequest.objects.filter(
        user=user,
        status=LeaveRequest.STATUS_PENDING,
        start_date__lte=end_date,
        end_date__gte=start_date,
    ).exists()
    if overlapping:
        raise Conflict('overlapping leave request already exists')
    request = LeaveRequest.objects.create(
        user=user, leave_type=leave_type, start_date=start_date, end_date=end_date, reason=reason or '',
    )
    logger.info('leave request %s filed by %s', request.id, user.id)
    return request


def list_leave_requests(*, user: User | None = None, status: str | None = None):
    qs = LeaveRequest.objects.select_related('user', 'approved_by')
    if user is not None:
        qs = qs.filter(user=user)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-created_at')


def process_leave_request(request_id, approver: User, *, approved: bool) -> LeaveRequest:
    with transaction.atomic():
        request = LeaveRequest.objects.select_for_update().filter(id=request_id).first()
        if not request:
            raise NotFound('leave request not found')
        if request.status != LeaveRequest.STATUS_PENDING:
            raise Conflict('leave request already processed')
        request.status = LeaveRequest.STATUS_APPROVED if approved else LeaveRequest.STATUS_REJECTED
        request.approved_by = approver
        request.approved_at = timezone.now()
        request.save(update_fields=['status', 'approved_by', 'approved_at'])

        if approved:
            status = Attendance.STATUS_SICK if request.leave_type == LeaveRequest.TYPE_SICK else Attendance.STATUS_LEAVE
            day = request.start_date
            while day <= request.end_date:
                Attendance.objects.get_or_create(
                    user_id=request.user_id,
                    attendance_date=day,
                    defaults={'status': status, 'notes': f'Leave: {request.leave_type} - {request.reason}'},
                )
                day += timedelta(days=1)
    logger.info('leave request %s %s by %s', request.id, request.status, approver.id)
    return request
