import bleach
from rest_framework import serializers

from clinic.models import Doctor, MedicalRecord, Patient


class PatientSerializer(serializers.ModelSerializer):
    medicalRecordNumber = serializers.CharField(source='medical_record_number', read_only=True)
    dateOfBirth = serializers.DateField(source='date_of_birth', read_only=True)
    emergencyContact = serializers.CharField(source='emergency_contact', read_only=True)
    bloodType = serializers.CharField(source='blood_type', read_only=True)
    bpjsNumber = serializers.CharField(source='bpjs_number', read_only=True)
    userId = serializers.IntegerField(source='user_id', read_only=True)
    isActive = serializers.BooleanField(source='is_active', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Patient
        fields = [
            'id', 'medicalRecordNumber', 'name', 'dateOfBirth', 'gender', 'address', 'phone',
            'emergencyContact', 'bloodType', 'allergies', 'bpjsNumber', 'userId', 'isActive',
            'createdAt', 'updatedAt',
        ]


class PatientWriteSerializer(serializers.Serializer):
    """camelCase input mapped onto model field names by ``to_model_fields``."""
    FIELD_MAP = {
        'medicalRecordNumber': 'medical_record_number',
        'name': 'name',
        'dateOfBirth': 'date_of_birth',
        'gender': 'gender',
        'address': 'address',
        'phone': 'phone',
        'emergencyContact': 'emergency_contact',
        'bloodType': 'blood_type',
        'allergies': 'allergies',
        'bpjsNumber': 'bpjs_number',
    }

    medicalRecordNumber = serializers.CharField(max_length=64, required=False, allow_blank=True)
    name = serializers.CharField(max_length=255)
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=['male', 'female'], required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    emergencyContact = serializers.CharField(max_length=255, required=False, allow_blank=True)
    bloodType = serializers.CharField(max_length=5, required=False, allow_blank=True)
    allergies = serializers.CharField(required=False, allow_blank=True)
    bpjsNumber = serializers.CharField(max_length=32, required=False, allow_blank=True)

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if len(v) < 2:
            raise serializers.ValidationError('name must be at least 2 characters')
        return v

    def validate_address(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def to_model_fields(self) -> dict:
        data = {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}
        if not data.get('medical_record_number'):
            data.pop('medical_record_number', None)
        return data


class PatientSearchSerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True)
    includeInactive = serializers.BooleanField(required=False, default=False)


class DoctorSerializer(serializers.ModelSerializer):
    name = serializers.SerializerMethodField()
    email = serializers.EmailField(source='user.email', read_only=True)
    phone = serializers.CharField(source='user.phone', read_only=True)
    licenseNumber = serializers.CharField(source='license_number', read_only=True)
    polyclinic = serializers.SerializerMethodField()

    class Meta:
        model = Doctor
        fields = ['id', 'name', 'email', 'phone', 'specialization', 'licenseNumber', 'polyclinic', 'schedule']

    def get_name(self, obj) -> str:
        return obj.user.name or obj.user.username

    def get_polyclinic(self, obj):
        if not obj.polyclinic_id:
            return None
        return {'id': str(obj.polyclinic_id), 'name': obj.polyclinic.name, 'code': obj.polyclinic.code}


class MedicalRecordSerializer(serializers.ModelSerializer):
    patient = serializers.SerializerMethodField()
    doctor = serializers.SerializerMethodField()
    polyclinic = serializers.SerializerMethodField()
    visitDate = serializers.DateTimeField(source='visit_date', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    prescriptions = serializers.SerializerMethodField()

    class Meta:
        model = MedicalRecord
        fields = [
            'id', 'patient', 'doctor', 'polyclinic', 'visitDate', 'diagnosis', 'actions', 'notes',
            'prescriptions', 'createdAt',
        ]

    def get_patient(self, obj):
        return {
            'id': str(obj.patient_id),
            'name': obj.patient.name,
            'medicalRecordNumber': obj.patient.medical_record_number,
        }

    def get_doctor(self, obj):
        return {
            'id': str(obj.doctor_id),
            'name': obj.doctor.user.name or obj.doctor.user.username,
            'specialization': obj.doctor.specialization,
        }

    def get_polyclinic(self, obj):
        if not obj.polyclinic_id:
            return None
        return {'id': str(obj.polyclinic_id), 'name': obj.polyclinic.name}

    def get_prescriptions(self, obj):
        return [
            {
                'id': str(p.id),
                'status': p.status,
                'items': [
                    {'itemId': str(line.item_id), 'name': line.item.name, 'quantity': line.quantity,
                     'dosage': line.dosage, 'instructions': line.instructions}
                    for line in p.items.all()
                ],
            }
            for p in obj.prescriptions.all()
        ]
