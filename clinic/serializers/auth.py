import bleach
from rest_framework import serializers

from clinic.models import Role


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField(required=False, allow_blank=True)
    username = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField()

    def validate(self, attrs):
        identifier = (attrs.get('email') or attrs.get('username') or '').strip()
        if not identifier:
            raise serializers.ValidationError({'email': 'email is required'})
        attrs['identifier'] = identifier
        return attrs


class DoctorDataSerializer(serializers.Serializer):
    specialization = serializers.CharField(max_length=255, required=False, allow_blank=True)
    licenseNumber = serializers.CharField(max_length=100, required=False, allow_blank=True)
    polyclinicId = serializers.UUIDField(required=False, allow_null=True)
    scheduleType = serializers.ChoiceField(choices=['pagi', 'siang', 'weekend'], required=False)
    schedule = serializers.DictField(required=False)


class StaffDataSerializer(serializers.Serializer):
    department = serializers.CharField(max_length=255, required=False, allow_blank=True)
    position = serializers.CharField(max_length=255, required=False, allow_blank=True)


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    name = serializers.CharField(max_length=255)
    role = serializers.ChoiceField(choices=[Role.DOCTOR, Role.STAFF, Role.PATIENT], default=Role.PATIENT)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    doctorData = DoctorDataSerializer(required=False)
    staffData = StaffDataSerializer(required=False)

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if len(v) < 2:
            raise serializers.ValidationError('name must be at least 2 characters')
        return v


class ChangePasswordSerializer(serializers.Serializer):
    oldPassword = serializers.CharField()
    newPassword = serializers.CharField(min_length=6)


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)
