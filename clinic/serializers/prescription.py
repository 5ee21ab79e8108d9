from rest_framework import serializers

from clinic.models import Prescription, PrescriptionItem


class PrescriptionItemSerializer(serializers.ModelSerializer):
    item = serializers.SerializerMethodField()

    class Meta:
        model = PrescriptionItem
        fields = ['id', 'item', 'quantity', 'dosage', 'instructions']

    def get_item(self, obj):
        return {
            'id': str(obj.item_id),
            'code': obj.item.code,
            'name': obj.item.name,
            'unit': obj.item.unit,
            'currentStock': obj.item.current_stock,
        }


class PrescriptionSerializer(serializers.ModelSerializer):
    queueNumberId = serializers.UUIDField(source='queue_number_id', read_only=True)
    medicalRecordId = serializers.UUIDField(source='medical_record_id', read_only=True)
    patient = serializers.SerializerMethodField()
    doctor = serializers.SerializerMethodField()
    dispensedBy = serializers.SerializerMethodField()
    dispensedAt = serializers.DateTimeField(source='dispensed_at', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    items = PrescriptionItemSerializer(many=True, read_only=True)

    class Meta:
        model = Prescription
        fields = [
            'id', 'queueNumberId', 'medicalRecordId', 'patient', 'doctor', 'diagnosis', 'notes',
            'status', 'items', 'dispensedBy', 'dispensedAt', 'createdAt',
        ]

    def get_patient(self, obj):
        return {
            'id': str(obj.patient_id),
            'name': obj.patient.name,
            'medicalRecordNumber': obj.patient.medical_record_number,
        }

    def get_doctor(self, obj):
        return {'id': str(obj.doctor_id), 'name': obj.doctor.user.name or obj.doctor.user.username}

    def get_dispensedBy(self, obj):
        if not obj.dispensed_by_id:
            return None
        return {'id': obj.dispensed_by_id, 'name': obj.dispensed_by.name or obj.dispensed_by.username}


class PrescriptionLineSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    dosage = serializers.CharField(max_length=255, required=False, allow_blank=True)
    instructions = serializers.CharField(required=False, allow_blank=True)


class PrescriptionCreateSerializer(serializers.Serializer):
    queueNumberId = serializers.UUIDField(required=False, allow_null=True)
    patientId = serializers.UUIDField()
    doctorId = serializers.UUIDField(required=False, allow_null=True)
    diagnosis = serializers.CharField(required=False, allow_blank=True)
    actions = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = PrescriptionLineSerializer(many=True)

    def validate_items(self, v):
        if not v:
            raise serializers.ValidationError('at least one item is required')
        return v


class StatusQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Prescription.STATUS_CHOICES], required=False)
