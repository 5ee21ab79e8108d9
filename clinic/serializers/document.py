import bleach
from rest_framework import serializers

from clinic.models import Document, DocumentAccess, DocumentAccessLog, DocumentFolder


def _user_brief(user):
    if user is None:
        return None
    return {'id': user.id, 'name': user.name or user.username, 'email': user.email}


class DocumentFolderSerializer(serializers.ModelSerializer):
    parentId = serializers.UUIDField(source='parent_id', read_only=True)
    createdBy = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = DocumentFolder
        fields = ['id', 'name', 'description', 'parentId', 'createdBy', 'createdAt']

    def get_createdBy(self, obj):
        return _user_brief(obj.created_by)


class DocumentFolderDetailSerializer(DocumentFolderSerializer):
    children = DocumentFolderSerializer(many=True, read_only=True)
    documents = serializers.SerializerMethodField()

    class Meta(DocumentFolderSerializer.Meta):
        fields = DocumentFolderSerializer.Meta.fields + ['children', 'documents']

    def get_documents(self, obj):
        return [{'id': str(d.id), 'title': d.title, 'fileType': d.file_type} for d in obj.documents.all()]


class FolderWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    parentId = serializers.UUIDField(required=False, allow_null=True)

    def validate_name(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class DocumentSerializer(serializers.ModelSerializer):
    fileUrl = serializers.SerializerMethodField()
    fileType = serializers.CharField(source='file_type', read_only=True)
    fileSize = serializers.IntegerField(source='file_size', read_only=True)
    patient = serializers.SerializerMethodField()
    folderId = serializers.UUIDField(source='folder_id', read_only=True)
    uploadedBy = serializers.SerializerMethodField()
    isConfidential = serializers.BooleanField(source='is_confidential', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Document
        fields = [
            'id', 'title', 'description', 'fileUrl', 'fileType', 'fileSize', 'category', 'patient',
            'folderId', 'uploadedBy', 'isConfidential', 'createdAt', 'updatedAt',
        ]

    def get_fileUrl(self, obj):
        return obj.file.url if obj.file else None

    def get_patient(self, obj):
        if not obj.patient_id:
            return None
        return {'id': str(obj.patient_id), 'name': obj.patient.name}

    def get_uploadedBy(self, obj):
        return _user_brief(obj.uploaded_by)


class DocumentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    title = serializers.CharField(max_length=255, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    patientId = serializers.UUIDField(required=False, allow_null=True)
    folderId = serializers.UUIDField(required=False, allow_null=True)
    isConfidential = serializers.BooleanField(required=False, default=False)

    def validate_title(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class DocumentUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    patientId = serializers.UUIDField(required=False, allow_null=True)
    folderId = serializers.UUIDField(required=False, allow_null=True)
    isConfidential = serializers.BooleanField(required=False)

    FIELD_MAP = {
        'title': 'title',
        'description': 'description',
        'category': 'category',
        'patientId': 'patient_id',
        'folderId': 'folder_id',
        'isConfidential': 'is_confidential',
    }

    def to_model_fields(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class FolderQuerySerializer(serializers.Serializer):
    parentId = serializers.UUIDField(required=False)


class DocumentListQuerySerializer(serializers.Serializer):
    category = serializers.CharField(required=False, allow_blank=True)
    patientId = serializers.UUIDField(required=False)
    folderId = serializers.UUIDField(required=False)


class DocumentAccessSerializer(serializers.ModelSerializer):
    documentId = serializers.UUIDField(source='document_id', read_only=True)
    folderId = serializers.UUIDField(source='folder_id', read_only=True)
    accessType = serializers.CharField(source='access_type', read_only=True)
    target = serializers.SerializerMethodField()
    grantedBy = serializers.SerializerMethodField()
    expiresAt = serializers.DateTimeField(source='expires_at', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = DocumentAccess
        fields = [
            'id', 'documentId', 'folderId', 'criteria', 'target', 'accessType', 'grantedBy',
            'expiresAt', 'createdAt',
        ]

    def get_target(self, obj):
        if obj.criteria == DocumentAccess.CRITERIA_USER and obj.user_id:
            return _user_brief(obj.user)
        if obj.criteria == DocumentAccess.CRITERIA_ROLE and obj.role_id:
            return {'id': str(obj.role_id), 'name': obj.role.name}
        if obj.criteria == DocumentAccess.CRITERIA_POLYCLINIC and obj.polyclinic_id:
            return {'id': str(obj.polyclinic_id), 'name': obj.polyclinic.name}
        if obj.criteria == DocumentAccess.CRITERIA_DOCTOR and obj.doctor_id:
            return {'id': str(obj.doctor_id), 'name': obj.doctor.user.name or obj.doctor.user.username}
        return None

    def get_grantedBy(self, obj):
        return _user_brief(obj.granted_by)


class GrantAccessSerializer(serializers.Serializer):
    documentId = serializers.UUIDField(required=False, allow_null=True)
    folderId = serializers.UUIDField(required=False, allow_null=True)
    criteria = serializers.ChoiceField(choices=[c for c, _ in DocumentAccess.CRITERIA_CHOICES])
    userId = serializers.IntegerField(required=False, allow_null=True)
    roleId = serializers.UUIDField(required=False, allow_null=True)
    polyclinicId = serializers.UUIDField(required=False, allow_null=True)
    doctorId = serializers.UUIDField(required=False, allow_null=True)
    accessType = serializers.ChoiceField(
        choices=[c for c, _ in DocumentAccess.ACCESS_CHOICES], default=DocumentAccess.ACCESS_VIEW
    )
    expiresAt = serializers.DateTimeField(required=False, allow_null=True)

    TARGET_FIELD = {
        DocumentAccess.CRITERIA_USER: 'userId',
        DocumentAccess.CRITERIA_ROLE: 'roleId',
        DocumentAccess.CRITERIA_POLYCLINIC: 'polyclinicId',
        DocumentAccess.CRITERIA_DOCTOR: 'doctorId',
    }

    def target_id(self):
        return self.validated_data.get(self.TARGET_FIELD[self.validated_data['criteria']])


class AccessListQuerySerializer(serializers.Serializer):
    documentId = serializers.UUIDField(required=False)
    folderId = serializers.UUIDField(required=False)

    def validate(self, attrs):
        if not attrs.get('documentId') and not attrs.get('folderId'):
            raise serializers.ValidationError({'detail': 'documentId or folderId is required'})
        return attrs


class DocumentAccessLogSerializer(serializers.ModelSerializer):
    documentId = serializers.UUIDField(source='document_id', read_only=True)
    user = serializers.SerializerMethodField()
    ipAddress = serializers.CharField(source='ip_address', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = DocumentAccessLog
        fields = ['id', 'documentId', 'user', 'action', 'ipAddress', 'createdAt']

    def get_user(self, obj):
        return _user_brief(obj.user)
