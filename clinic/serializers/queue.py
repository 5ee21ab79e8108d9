import bleach
from rest_framework import serializers

from clinic.models import Polyclinic, QueueNumber, QueueTransition


class PolyclinicSerializer(serializers.ModelSerializer):
    isActive = serializers.BooleanField(source='is_active', read_only=True)

    class Meta:
        model = Polyclinic
        fields = ['id', 'name', 'code', 'description', 'isActive']


class QueueNumberSerializer(serializers.ModelSerializer):
    queueNumber = serializers.IntegerField(source='queue_number', read_only=True)
    displayNumber = serializers.SerializerMethodField()
    queueDate = serializers.DateField(source='queue_date', read_only=True)
    checkInTime = serializers.DateTimeField(source='check_in_time', read_only=True)
    calledTime = serializers.DateTimeField(source='called_time', read_only=True)
    servedTime = serializers.DateTimeField(source='served_time', read_only=True)
    completedTime = serializers.DateTimeField(source='completed_time', read_only=True)
    polyclinic = serializers.SerializerMethodField()
    patient = serializers.SerializerMethodField()
    doctor = serializers.SerializerMethodField()

    class Meta:
        model = QueueNumber
        fields = [
            'id', 'queueNumber', 'displayNumber', 'queueDate', 'status',
            'checkInTime', 'calledTime', 'servedTime', 'completedTime', 'notes',
            'polyclinic', 'patient', 'doctor',
        ]

    def get_displayNumber(self, obj) -> str:
        return f"{obj.polyclinic.code}-{obj.queue_number:03d}"

    def get_polyclinic(self, obj) -> dict:
        return {'id': str(obj.polyclinic_id), 'name': obj.polyclinic.name, 'code': obj.polyclinic.code}

    def get_patient(self, obj) -> dict:
        return {
            'id': str(obj.patient_id),
            'name': obj.patient.name,
            'medicalRecordNumber': obj.patient.medical_record_number,
        }

    def get_doctor(self, obj) -> dict | None:
        if not obj.doctor_id:
            return None
        return {'id': str(obj.doctor_id), 'name': obj.doctor.user.name or obj.doctor.user.username}


class QueueTransitionSerializer(serializers.ModelSerializer):
    fromStatus = serializers.CharField(source='from_status')
    toStatus = serializers.CharField(source='to_status')
    operator = serializers.SerializerMethodField()

    class Meta:
        model = QueueTransition
        fields = ['id', 'fromStatus', 'toStatus', 'operator', 'timestamp', 'reason']

    def get_operator(self, obj) -> str:
        return obj.operator.email if obj.operator else ''


class TakeNumberSerializer(serializers.Serializer):
    polyclinicId = serializers.UUIDField()
    patientId = serializers.UUIDField(required=False, allow_null=True)
    patientName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    patientPhone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    bpjsNumber = serializers.CharField(max_length=32, required=False, allow_blank=True)
    doctorId = serializers.UUIDField(required=False, allow_null=True)
    queueDate = serializers.DateField(required=False, allow_null=True, input_formats=['%Y-%m-%d'])

    def validate_patientName(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate_patientPhone(self, v):
        return (v or '').strip()


class CallSerializer(serializers.Serializer):
    doctorId = serializers.UUIDField(required=False, allow_null=True)


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True)
