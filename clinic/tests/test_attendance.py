import base64
from datetime import date, timedelta

import pytest
from django.test import override_settings
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import Conflict
from clinic.models import Attendance, LeaveRequest, Role
from clinic.services import attendance as attendance_service

pytestmark = pytest.mark.django_db


@pytest.fixture
def nurse(make_user):
    return make_user('nurse1', Role.NURSE)


@override_settings(ATTENDANCE_LATE_HOUR=24)
def test_check_in_on_time_then_duplicate_conflicts(nurse):
    row = attendance_service.check_in(nurse, location={'lat': -6.2, 'lng': 106.8})
    assert row.status == Attendance.STATUS_PRESENT
    assert row.attendance_date == timezone.localdate()
    with pytest.raises(Conflict):
        attendance_service.check_in(nurse)


@override_settings(ATTENDANCE_LATE_HOUR=0)
def test_check_in_after_cutoff_is_late(nurse):
    assert attendance_service.check_in(nurse).status == Attendance.STATUS_LATE


def test_check_out_rules(nurse):
    with pytest.raises(NotFound):
        attendance_service.check_out(nurse)

    attendance_service.check_in(nurse)
    row = attendance_service.check_out(nurse)
    assert row.check_out is not None
    with pytest.raises(Conflict):
        attendance_service.check_out(nurse)


@override_settings(ATTENDANCE_GEOFENCE={'lat': -6.2, 'lng': 106.8, 'radius_m': 200})
def test_geofence(nurse):
    with pytest.raises(ValidationError):
        attendance_service.check_in(nurse, location={'lat': -6.3, 'lng': 106.8})
    assert attendance_service.check_in(nurse, location={'lat': -6.2005, 'lng': 106.8})


def test_distance_is_roughly_right():
    # one degree of latitude is about 111 km
    assert 110_000 < attendance_service.distance_m(0, 0, 1, 0) < 112_000


def test_photo_is_stored(settings, tmp_path, nurse):
    settings.MEDIA_ROOT = tmp_path
    photo = 'data:image/png;base64,' + base64.b64encode(b'\x89PNG fake').decode()
    row = attendance_service.check_in(nurse, photo=photo)
    assert row.check_in_photo.startswith('attendance/') and row.check_in_photo.endswith('.png')
    assert (tmp_path / row.check_in_photo).exists()

    with pytest.raises(ValidationError):
        attendance_service.save_photo('not-a-data-url')


def test_leave_overlap_and_date_order(nurse):
    start = timezone.localdate() + timedelta(days=7)
    attendance_service.create_leave_request(
        nurse, leave_type='annual', start_date=start, end_date=start + timedelta(days=2), reason='mudik',
    )
    with pytest.raises(Conflict):
        attendance_service.create_leave_request(
            nurse, leave_type='sick', start_date=start + timedelta(days=1), end_date=start + timedelta(days=4),
        )
    with pytest.raises(ValidationError):
        attendance_service.create_leave_request(
            nurse, leave_type='annual', start_date=start, end_date=start - timedelta(days=1),
        )


def test_approval_backfills_days_without_overwriting(nurse, admin_user):
    start = timezone.localdate() + timedelta(days=3)
    Attendance.objects.create(user=nurse, attendance_date=start + timedelta(days=1), status=Attendance.STATUS_PRESENT)
    leave = attendance_service.create_leave_request(
        nurse, leave_type='sick', start_date=start, end_date=start + timedelta(days=2), reason='demam',
    )

    processed = attendance_service.process_leave_request(leave.id, admin_user, approved=True)

    assert processed.status == LeaveRequest.STATUS_APPROVED
    assert processed.approved_by_id == admin_user.id
    statuses = dict(Attendance.objects.filter(user=nurse).values_list('attendance_date', 'status'))
    assert statuses == {
        start: 'sick',
        start + timedelta(days=1): 'present',
        start + timedelta(days=2): 'sick',
    }
    assert Attendance.objects.get(user=nurse, attendance_date=start).notes == 'Leave: sick - demam'

    with pytest.raises(Conflict):
        attendance_service.process_leave_request(leave.id, admin_user, approved=False)


def test_rejection_creates_no_rows(nurse, admin_user):
    start = timezone.localdate() + timedelta(days=10)
    leave = attendance_service.create_leave_request(
        nurse, leave_type='annual', start_date=start, end_date=start, reason='acara keluarga',
    )
    attendance_service.process_leave_request(leave.id, admin_user, approved=False)
    assert not Attendance.objects.filter(user=nurse).exists()


def test_monthly_summary_counts(nurse):
    Attendance.objects.create(user=nurse, attendance_date=date(2024, 2, 1), status='present')
    Attendance.objects.create(user=nurse, attendance_date=date(2024, 2, 2), status='late')
    Attendance.objects.create(user=nurse, attendance_date=date(2024, 3, 1), status='present')

    summary = attendance_service.monthly_summary(nurse, 2024, 2)

    assert summary['totalDays'] == 29
    assert (summary['present'], summary['late'], summary['sick']) == (1, 1, 0)
    assert len(summary['attendances']) == 2


def test_api_endpoints(client_for, nurse, admin_user):
    client = client_for(nurse)
    resp = client.post('/api/attendance/check-in', {}, format='json')
    assert resp.status_code == 201
    assert client.post('/api/attendance/check-in', {}, format='json').status_code == 409
    assert client.get('/api/attendance/today').data['data']['id'] == resp.data['data']['id']

    assert client.get('/api/attendance/report').status_code == 403
    report = client_for(admin_user).get('/api/attendance/report')
    assert report.status_code == 200
    assert report.data['data']['total'] == 1

    today = timezone.localdate()
    other = client_for(nurse).get('/api/attendance/summary', {
        'year': today.year, 'month': today.month, 'userId': admin_user.id,
    })
    assert other.status_code == 403


def test_api_leave_flow(client_for, nurse, admin_user):
    start = (timezone.localdate() + timedelta(days=5)).isoformat()
    resp = client_for(nurse).post('/api/attendance/leave', {
        'leaveType': 'annual', 'startDate': start, 'endDate': start, 'reason': 'cuti',
    }, format='json')
    assert resp.status_code == 201
    leave_id = resp.data['data']['id']

    assert client_for(nurse).post(f'/api/attendance/leave/{leave_id}/process', {'approved': True},
                                  format='json').status_code == 403
    resp = client_for(admin_user).post(f'/api/attendance/leave/{leave_id}/process', {'approved': True}, format='json')
    assert resp.status_code == 200
    assert resp.data['data']['status'] == 'approved'

    pending = client_for(admin_user).get('/api/attendance/leave', {'all': 'true', 'status': 'pending'})
    assert pending.data['data'] == []
