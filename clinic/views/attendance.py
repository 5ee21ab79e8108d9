"""
Attendance and leave endpoints.

Every signed-in user checks in and out for themself. Reports, other
users' summaries and leave decisions need ``attendance:manage``.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import HasFeature
from clinic.serializers.attendance import (
    AttendanceSerializer,
    CheckSerializer,
    HistoryQuerySerializer,
    LeaveCreateSerializer,
    LeaveListQuerySerializer,
    LeaveProcessSerializer,
    LeaveRequestSerializer,
    MonthlyQuerySerializer,
    ReportQuerySerializer,
)
from clinic.services import accounts
from clinic.services import attendance as attendance_service
from clinic.services.access_control import has_access


def _with_rows(summary: dict) -> dict:
    rows = summary.pop('attendances')
    return {**summary, 'attendances': AttendanceSerializer(rows, many=True).data}


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def check_in(request):
    s = CheckSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    row = attendance_service.check_in(
        request.user, location=s.validated_data.get('location'), photo=s.validated_data.get('photo'),
    )
    return Response({'ok': True, 'data': AttendanceSerializer(row).data}, status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def check_out(request):
    s = CheckSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    row = attendance_service.check_out(
        request.user, location=s.validated_data.get('location'), photo=s.validated_data.get('photo'),
    )
    return Response({'ok': True, 'data': AttendanceSerializer(row).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def today(request):
    row = attendance_service.today_status(request.user)
    return Response({'ok': True, 'data': AttendanceSerializer(row).data if row else None})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def history(request):
    q = HistoryQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows = attendance_service.history(
        request.user, start=q.validated_data.get('startDate'), end=q.validated_data.get('endDate'),
    )
    return Response({'ok': True, 'data': AttendanceSerializer(rows, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def monthly_summary(request):
    q = MonthlyQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    user = request.user
    user_id = q.validated_data.get('userId')
    if user_id and user_id != request.user.id:
        if not has_access(request.user, 'attendance:manage'):
            raise PermissionDenied('cannot view attendance of other users')
        user = accounts.get_user(user_id)
    summary = attendance_service.monthly_summary(user, q.validated_data['year'], q.validated_data['month'])
    return Response({'ok': True, 'data': _with_rows(summary)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasFeature('attendance:manage')])
def daily_report(request):
    q = ReportQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    report = attendance_service.daily_report(q.validated_data.get('date') or timezone.localdate())
    return Response({'ok': True, 'data': _with_rows(report)})


# ---------------------------------------------------------------------
# Leave
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def leave_requests(request):
    if request.method == 'GET':
        q = LeaveListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        owner = request.user
        if q.validated_data.get('all') and has_access(request.user, 'attendance:manage'):
            owner = None
        rows = attendance_service.list_leave_requests(user=owner, status=q.validated_data.get('status'))
        return Response({'ok': True, 'data': LeaveRequestSerializer(rows, many=True).data})

    s = LeaveCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    leave = attendance_service.create_leave_request(
        request.user,
        leave_type=vd['leaveType'],
        start_date=vd['startDate'],
        end_date=vd['endDate'],
        reason=vd['reason'],
    )
    return Response({'ok': True, 'data': LeaveRequestSerializer(leave).data}, status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasFeature('attendance:manage')])
def process_leave_request(request, pk):
    s = LeaveProcessSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    leave = attendance_service.process_leave_request(pk, request.user, approved=s.validated_data['approved'])
    return Response({'ok': True, 'data': LeaveRequestSerializer(leave).data})
