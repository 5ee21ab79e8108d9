from rest_framework import serializers

from clinic.models import Attendance, LeaveRequest


class AttendanceSerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()
    attendanceDate = serializers.DateField(source='attendance_date', read_only=True)
    checkIn = serializers.DateTimeField(source='check_in', read_only=True)
    checkOut = serializers.DateTimeField(source='check_out', read_only=True)
    checkInLocation = serializers.JSONField(source='check_in_location', read_only=True)
    checkOutLocation = serializers.JSONField(source='check_out_location', read_only=True)
    checkInPhoto = serializers.CharField(source='check_in_photo', read_only=True)
    checkOutPhoto = serializers.CharField(source='check_out_photo', read_only=True)

    class Meta:
        model = Attendance
        fields = [
            'id', 'user', 'attendanceDate', 'checkIn', 'checkOut', 'checkInLocation', 'checkOutLocation',
            'checkInPhoto', 'checkOutPhoto', 'status', 'notes',
        ]

    def get_user(self, obj):
        return {'id': obj.user_id, 'name': obj.user.name or obj.user.username, 'role': obj.user.role_name}


class LocationSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class CheckSerializer(serializers.Serializer):
    location = LocationSerializer(required=False, allow_null=True)
    photo = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class HistoryQuerySerializer(serializers.Serializer):
    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)


class ReportQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


class MonthlyQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=2000, max_value=2100)
    month = serializers.IntegerField(min_value=1, max_value=12)
    userId = serializers.IntegerField(required=False)


class LeaveRequestSerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()
    leaveType = serializers.CharField(source='leave_type', read_only=True)
    startDate = serializers.DateField(source='start_date', read_only=True)
    endDate = serializers.DateField(source='end_date', read_only=True)
    approvedBy = serializers.SerializerMethodField()
    approvedAt = serializers.DateTimeField(source='approved_at', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = LeaveRequest
        fields = [
            'id', 'user', 'leaveType', 'startDate', 'endDate', 'reason', 'status', 'approvedBy',
            'approvedAt', 'createdAt',
        ]

    def get_user(self, obj):
        return {'id': obj.user_id, 'name': obj.user.name or obj.user.username}

    def get_approvedBy(self, obj):
        if not obj.approved_by_id:
            return None
        return {'id': obj.approved_by_id, 'name': obj.approved_by.name or obj.approved_by.username}


class LeaveCreateSerializer(serializers.Serializer):
    leaveType = serializers.ChoiceField(choices=[c for c, _ in LeaveRequest.TYPE_CHOICES])
    startDate = serializers.DateField()
    endDate = serializers.DateField()
    reason = serializers.CharField()


class LeaveListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in LeaveRequest.STATUS_CHOICES], required=False)
    all = serializers.BooleanField(required=False, default=False)


class LeaveProcessSerializer(serializers.Serializer):
    approved = serializers.BooleanField()
