"""
Database models for the Mediku hospital backend.

The models cover accounts and roles, the feature based access-control
matrix, patients and doctors, the outpatient queue (per polyclinic and
per day counters), prescriptions and medical records, the pharmacy
stock ledger (FIFO batches, movements, corrections and stock opname),
document storage with access grants, and staff attendance.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q


class Role(models.Model):
    """Named role such as ``admin``, ``doctor`` or ``pharmacist``."""
    ADMIN = 'admin'
    DOCTOR = 'doctor'
    NURSE = 'nurse'
    PHARMACIST = 'pharmacist'
    REGISTRATION_STAFF = 'registration_staff'
    INVENTORY_STAFF = 'inventory_staff'
    STAFF = 'staff'
    PATIENT = 'patient'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=50, unique=True)
    description = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class User(AbstractUser):
    """Account used by staff, doctors and patients.

    The login identifier is the e-mail address; ``username`` is kept in
    sync with it for accounts created through the API so that Django's
    ``authenticate`` works unchanged.
    """
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    role = models.ForeignKey(
        Role, null=True, blank=True, on_delete=models.SET_NULL, related_name='users'
    )

    @property
    def role_name(self) -> str:
        return self.role.name if self.role_id else ''

    @property
    def is_admin(self) -> bool:
        return self.is_superuser or self.role_name == Role.ADMIN

    def __str__(self) -> str:
        return f"{self.email or self.username} ({self.role_name or '-'})"


class AccessControl(models.Model):
    """Grants a feature key (e.g. ``stock:adjust``) to a role or a user."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    role = models.ForeignKey(
        Role, null=True, blank=True, on_delete=models.CASCADE, related_name='access_controls'
    )
    user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.CASCADE, related_name='access_controls'
    )
    feature = models.CharField(max_length=100, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['role', 'feature'], condition=Q(role__isnull=False), name='uniq_role_feature'
            ),
            models.UniqueConstraint(
                fields=['user', 'feature'], condition=Q(user__isnull=False), name='uniq_user_feature'
            ),
        ]

    def __str__(self) -> str:
        target = self.role.name if self.role_id else str(self.user)
        return f"{target}: {self.feature}"


class Polyclinic(models.Model):
    """Outpatient unit owning its own daily queue counter."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=20, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class Doctor(models.Model):
    """Doctor profile attached to a user.

    ``schedule`` maps lower-case day names to a working window, e.g.
    ``{"monday": {"start": "08:00", "end": "14:00"}}``. An empty schedule
    means the doctor is available every day.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    specialization = models.CharField(max_length=255)
    license_number = models.CharField(max_length=100, blank=True)
    polyclinic = models.ForeignKey(
        Polyclinic, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctors'
    )
    schedule = models.JSONField(default=dict, blank=True)

    def __str__(self) -> str:
        return f"dr. {self.user.name or self.user.username} ({self.specialization})"


class Staff(models.Model):
    """Non-doctor employee profile."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='staff_profile')
    department = models.CharField(max_length=255, blank=True)
    position = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name_plural = 'staff'

    def __str__(self) -> str:
        return f"{self.user.name or self.user.username} ({self.position or self.department})"


class Patient(models.Model):
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patient_profile'
    )
    medical_record_number = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255, db_index=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=32, blank=True, db_index=True)
    emergency_contact = models.CharField(max_length=255, blank=True)
    blood_type = models.CharField(max_length=5, blank=True)
    allergies = models.TextField(blank=True)
    bpjs_number = models.CharField(max_length=32, blank=True, db_index=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.medical_record_number})"


# ---------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------
class QueueCounter(models.Model):
    """Last issued ticket number for a polyclinic on a given day."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    polyclinic = models.ForeignKey(Polyclinic, on_delete=models.CASCADE, related_name='counters')
    counter_date = models.DateField()
    last_number = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = [('polyclinic', 'counter_date')]

    def __str__(self) -> str:
        return f"{self.polyclinic.code} {self.counter_date}: {self.last_number}"


class QueueNumber(models.Model):
    """One patient's ticket in a polyclinic's daily line."""
    STATUS_WAITING = 'waiting'
    STATUS_CALLED = 'called'
    STATUS_SERVING = 'serving'
    STATUS_COMPLETED = 'completed'
    STATUS_SKIPPED = 'skipped'
    STATUS_CHOICES = [
        (STATUS_WAITING, 'Waiting'),
        (STATUS_CALLED, 'Called'),
        (STATUS_SERVING, 'Serving'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_SKIPPED, 'Skipped'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    polyclinic = models.ForeignKey(Polyclinic, on_delete=models.CASCADE, related_name='queue_numbers')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='queue_numbers')
    doctor = models.ForeignKey(
        Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='queue_numbers'
    )
    queue_number = models.PositiveIntegerField()
    queue_date = models.DateField(db_index=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_WAITING, db_index=True)
    check_in_time = models.DateTimeField(auto_now_add=True)
    called_time = models.DateTimeField(null=True, blank=True)
    served_time = models.DateTimeField(null=True, blank=True)
    completed_time = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        unique_together = [('polyclinic', 'queue_date', 'queue_number')]
        ordering = ['queue_date', 'queue_number']

    def __str__(self) -> str:
        return f"{self.polyclinic.code}-{self.queue_number:03d} ({self.status})"


class QueueTransition(models.Model):
    """Records a status change of a queue ticket."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ticket = models.ForeignKey(QueueNumber, on_delete=models.CASCADE, related_name='transitions')
    from_status = models.CharField(max_length=10)
    to_status = models.CharField(max_length=10)
    operator = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    timestamp = models.DateTimeField(auto_now_add=True)
    reason = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ['timestamp']

    def __str__(self) -> str:
        return f"{self.ticket_id}: {self.from_status} -> {self.to_status}"


# ---------------------------------------------------------------------
# Medical records & prescriptions
# ---------------------------------------------------------------------
class MedicalRecord(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='medical_records')
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='medical_records')
    polyclinic = models.ForeignKey(
        Polyclinic, null=True, blank=True, on_delete=models.SET_NULL, related_name='medical_records'
    )
    visit_date = models.DateTimeField()
    diagnosis = models.TextField()
    actions = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-visit_date']

    def __str__(self) -> str:
        return f"{self.patient.name} @ {self.visit_date:%Y-%m-%d}"


class Prescription(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_DISPENSING = 'dispensing'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_DISPENSING, 'Dispensing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    queue_number = models.ForeignKey(
        QueueNumber, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='prescriptions')
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='prescriptions')
    medical_record = models.ForeignKey(
        MedicalRecord, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    diagnosis = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    dispensed_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='dispensed_prescriptions'
    )
    dispensed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Rx {self.id} ({self.status})"


class PrescriptionItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    prescription = models.ForeignKey(Prescription, on_delete=models.CASCADE, related_name='items')
    item = models.ForeignKey('Item', on_delete=models.PROTECT, related_name='prescription_items')
    quantity = models.PositiveIntegerField()
    dosage = models.CharField(max_length=255, blank=True)
    instructions = models.TextField(blank=True)

    def __str__(self) -> str:
        return f"{self.item.code} x{self.quantity}"


# ---------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------
class Item(models.Model):
    """Stock keeping unit (medicine, consumable, equipment)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255, db_index=True)
    category = models.CharField(max_length=100, db_index=True)
    unit = models.CharField(max_length=50)
    min_stock = models.PositiveIntegerField(default=0)
    current_stock = models.IntegerField(default=0)
    price = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return f"{self.code} {self.name}"


class StockBatch(models.Model):
    """A received lot; deductions consume the oldest lots first."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name='batches')
    quantity = models.PositiveIntegerField()
    received_at = models.DateTimeField()
    expiry_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['received_at', 'created_at']
        indexes = [models.Index(fields=['item', 'received_at'], name='stockbatch_item_received_idx')]

    def __str__(self) -> str:
        return f"{self.item.code} {self.quantity} @ {self.received_at:%Y-%m-%d}"


class StockMovement(models.Model):
    TYPE_IN = 'in'
    TYPE_OUT = 'out'
    TYPE_ADJUSTMENT = 'adjustment'
    TYPE_CHOICES = [
        (TYPE_IN, 'In'),
        (TYPE_OUT, 'Out'),
        (TYPE_ADJUSTMENT, 'Adjustment'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name='movements')
    movement_type = models.CharField(max_length=12, choices=TYPE_CHOICES)
    quantity = models.PositiveIntegerField()
    reference_type = models.CharField(max_length=50, blank=True)
    reference_id = models.CharField(max_length=64, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.item.code} {self.movement_type} {self.quantity}"


class StockCorrection(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name='corrections')
    adjusted_qty = models.IntegerField()
    reason = models.CharField(max_length=255)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.item.code} {self.adjusted_qty:+d}"


class StockOpname(models.Model):
    """Physical stock count reconciled against recorded stock."""
    STATUS_DRAFT = 'draft'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    opname_date = models.DateField()
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Opname {self.opname_date} ({self.status})"


class StockOpnameItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    opname = models.ForeignKey(StockOpname, on_delete=models.CASCADE, related_name='items')
    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name='opname_items')
    system_qty = models.IntegerField()
    actual_qty = models.IntegerField(null=True, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        unique_together = [('opname', 'item')]

    @property
    def difference(self) -> int | None:
        if self.actual_qty is None:
            return None
        return self.actual_qty - self.system_qty

    def __str__(self) -> str:
        return f"{self.item.code}: {self.system_qty} -> {self.actual_qty}"


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------
class DocumentFolder(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    parent = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.CASCADE, related_name='children'
    )
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class Document(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    file = models.FileField(upload_to='documents/%Y/%m/')
    file_type = models.CharField(max_length=100, blank=True)
    file_size = models.PositiveIntegerField(default=0)
    category = models.CharField(max_length=100, blank=True, db_index=True)
    patient = models.ForeignKey(
        Patient, null=True, blank=True, on_delete=models.SET_NULL, related_name='documents'
    )
    folder = models.ForeignKey(
        DocumentFolder, null=True, blank=True, on_delete=models.SET_NULL, related_name='documents'
    )
    uploaded_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='uploaded_documents'
    )
    is_confidential = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return self.title


class DocumentAccess(models.Model):
    """Grant on a document or a folder for a user, role, polyclinic or doctor."""
    CRITERIA_USER = 'user'
    CRITERIA_ROLE = 'role'
    CRITERIA_POLYCLINIC = 'polyclinic'
    CRITERIA_DOCTOR = 'doctor'
    CRITERIA_CHOICES = [
        (CRITERIA_USER, 'User'),
        (CRITERIA_ROLE, 'Role'),
        (CRITERIA_POLYCLINIC, 'Polyclinic'),
        (CRITERIA_DOCTOR, 'Doctor'),
    ]
    ACCESS_VIEW = 'view'
    ACCESS_EDIT = 'edit'
    ACCESS_DELETE = 'delete'
    ACCESS_FULL = 'full'
    ACCESS_CHOICES = [
        (ACCESS_VIEW, 'View'),
        (ACCESS_EDIT, 'Edit'),
        (ACCESS_DELETE, 'Delete'),
        (ACCESS_FULL, 'Full'),
    ]
    LEVELS = {ACCESS_VIEW: 1, ACCESS_EDIT: 2, ACCESS_DELETE: 3, ACCESS_FULL: 4}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(
        Document, null=True, blank=True, on_delete=models.CASCADE, related_name='access_grants'
    )
    folder = models.ForeignKey(
        DocumentFolder, null=True, blank=True, on_delete=models.CASCADE, related_name='access_grants'
    )
    criteria = models.CharField(max_length=12, choices=CRITERIA_CHOICES)
    user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.CASCADE, related_name='document_grants'
    )
    role = models.ForeignKey(
        Role, null=True, blank=True, on_delete=models.CASCADE, related_name='document_grants'
    )
    polyclinic = models.ForeignKey(
        Polyclinic, null=True, blank=True, on_delete=models.CASCADE, related_name='document_grants'
    )
    doctor = models.ForeignKey(
        Doctor, null=True, blank=True, on_delete=models.CASCADE, related_name='document_grants'
    )
    access_type = models.CharField(max_length=10, choices=ACCESS_CHOICES, default=ACCESS_VIEW)
    granted_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='granted_document_access'
    )
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.criteria}:{self.access_type}"


class DocumentAccessLog(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='access_logs')
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    action = models.CharField(max_length=20)
    ip_address = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.action} {self.document_id}"


# ---------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------
class Attendance(models.Model):
    STATUS_PRESENT = 'present'
    STATUS_LATE = 'late'
    STATUS_ABSENT = 'absent'
    STATUS_LEAVE = 'leave'
    STATUS_SICK = 'sick'
    STATUS_CHOICES = [
        (STATUS_PRESENT, 'Present'),
        (STATUS_LATE, 'Late'),
        (STATUS_ABSENT, 'Absent'),
        (STATUS_LEAVE, 'Leave'),
        (STATUS_SICK, 'Sick'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='attendances')
    attendance_date = models.DateField()
    check_in = models.DateTimeField(null=True, blank=True)
    check_out = models.DateTimeField(null=True, blank=True)
    check_in_location = models.JSONField(null=True, blank=True)
    check_out_location = models.JSONField(null=True, blank=True)
    check_in_photo = models.CharField(max_length=255, blank=True)
    check_out_photo = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PRESENT)
    notes = models.TextField(blank=True)

    class Meta:
        unique_together = [('user', 'attendance_date')]
        ordering = ['-attendance_date']

    def __str__(self) -> str:
        return f"{self.user} {self.attendance_date} ({self.status})"


class LeaveRequest(models.Model):
    TYPE_ANNUAL = 'annual'
    TYPE_SICK = 'sick'
    TYPE_EMERGENCY = 'emergency'
    TYPE_CHOICES = [
        (TYPE_ANNUAL, 'Annual'),
        (TYPE_SICK, 'Sick'),
        (TYPE_EMERGENCY, 'Emergency'),
    ]
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='leave_requests')
    leave_type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    start_date = models.DateField()
    end_date = models.DateField()
    reason = models.TextField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    approved_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='processed_leave_requests'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.user} {self.leave_type} {self.start_date}..{self.end_date}"
