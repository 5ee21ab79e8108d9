from rest_framework import serializers

from clinic.models import AccessControl, Role

from .auth import DoctorDataSerializer, StaffDataSerializer


class RoleSerializer(serializers.ModelSerializer):
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Role
        fields = ['id', 'name', 'description', 'createdAt']


class RoleWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=50, required=False)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)


class UserListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200, default=10)
    role = serializers.CharField(required=False, allow_blank=True)


class UserCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    name = serializers.CharField(max_length=255)
    role = serializers.CharField(max_length=50)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    doctorData = DoctorDataSerializer(required=False)
    staffData = StaffDataSerializer(required=False)


class UserRoleSerializer(serializers.Serializer):
    role = serializers.CharField(max_length=50)


class AccessControlSerializer(serializers.ModelSerializer):
    roleId = serializers.UUIDField(source='role_id', read_only=True)
    roleName = serializers.SerializerMethodField()
    userId = serializers.IntegerField(source='user_id', read_only=True)
    userEmail = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = AccessControl
        fields = ['id', 'feature', 'roleId', 'roleName', 'userId', 'userEmail', 'createdAt']

    def get_roleName(self, obj):
        return obj.role.name if obj.role_id else None

    def get_userEmail(self, obj):
        return obj.user.email if obj.user_id else None


class SetPermissionSerializer(serializers.Serializer):
    roleId = serializers.UUIDField(required=False, allow_null=True)
    userId = serializers.IntegerField(required=False, allow_null=True)
    feature = serializers.CharField(max_length=100)
    allowed = serializers.BooleanField(default=True)

    def validate_feature(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('feature is required')
        return v
