"""
Django admin registrations for the clinic models.

Lets superusers inspect and correct data through ``/admin/``. Stock
quantities shown here are read-only; they change through the stock
services so that batches and movements stay consistent.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    AccessControl,
    Attendance,
    Doctor,
    Document,
    DocumentAccess,
    DocumentAccessLog,
    DocumentFolder,
    Item,
    LeaveRequest,
    MedicalRecord,
    Patient,
    Polyclinic,
    Prescription,
    PrescriptionItem,
    QueueCounter,
    QueueNumber,
    QueueTransition,
    Role,
    Staff,
    StockBatch,
    StockCorrection,
    StockMovement,
    StockOpname,
    StockOpnameItem,
    User,
)


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ('name', 'description', 'created_at')
    search_fields = ('name',)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'name', 'role', 'is_active', 'is_superuser')
    list_filter = ('role', 'is_active', 'is_superuser')
    search_fields = ('username', 'email', 'name', 'phone')
    fieldsets = BaseUserAdmin.fieldsets + (('Mediku', {'fields': ('name', 'phone', 'role')}),)


@admin.register(AccessControl)
class AccessControlAdmin(admin.ModelAdmin):
    list_display = ('feature', 'role', 'user', 'created_at')
    list_filter = ('role', 'feature')
    search_fields = ('feature', 'user__email')


@admin.register(Polyclinic)
class PolyclinicAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('code', 'name')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialization', 'polyclinic', 'license_number')
    list_filter = ('polyclinic',)
    search_fields = ('user__name', 'user__email', 'license_number')


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ('user', 'department', 'position')
    search_fields = ('user__name', 'department')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('medical_record_number', 'name', 'gender', 'phone', 'bpjs_number', 'is_active')
    list_filter = ('is_active', 'gender')
    search_fields = ('medical_record_number', 'name', 'phone', 'bpjs_number')


@admin.register(QueueCounter)
class QueueCounterAdmin(admin.ModelAdmin):
    list_display = ('polyclinic', 'counter_date', 'last_number')
    list_filter = ('polyclinic',)


class QueueTransitionInline(admin.TabularInline):
    model = QueueTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'operator', 'timestamp', 'reason')


@admin.register(QueueNumber)
class QueueNumberAdmin(admin.ModelAdmin):
    list_display = ('polyclinic', 'queue_date', 'queue_number', 'patient', 'status')
    list_filter = ('status', 'polyclinic', 'queue_date')
    search_fields = ('patient__name', 'patient__medical_record_number')
    inlines = [QueueTransitionInline]


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('patient', 'doctor', 'polyclinic', 'visit_date')
    search_fields = ('patient__name', 'diagnosis')


class PrescriptionItemInline(admin.TabularInline):
    model = PrescriptionItem
    extra = 0


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'status', 'created_at', 'dispensed_at')
    list_filter = ('status',)
    search_fields = ('patient__name',)
    inlines = [PrescriptionItemInline]


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'category', 'current_stock', 'min_stock', 'is_active')
    list_filter = ('category', 'is_active')
    search_fields = ('code', 'name')
    readonly_fields = ('current_stock',)


@admin.register(StockBatch)
class StockBatchAdmin(admin.ModelAdmin):
    list_display = ('item', 'quantity', 'received_at', 'expiry_at')
    list_filter = ('item',)
    readonly_fields = ('quantity',)


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ('item', 'movement_type', 'quantity', 'reference_type', 'created_at')
    list_filter = ('movement_type', 'reference_type')
    search_fields = ('item__code', 'reference_id')


@admin.register(StockCorrection)
class StockCorrectionAdmin(admin.ModelAdmin):
    list_display = ('item', 'adjusted_qty', 'reason', 'created_by', 'created_at')


class StockOpnameItemInline(admin.TabularInline):
    model = StockOpnameItem
    extra = 0


@admin.register(StockOpname)
class StockOpnameAdmin(admin.ModelAdmin):
    list_display = ('opname_date', 'status', 'created_by', 'completed_at')
    list_filter = ('status',)
    inlines = [StockOpnameItemInline]


@admin.register(DocumentFolder)
class DocumentFolderAdmin(admin.ModelAdmin):
    list_display = ('name', 'parent', 'created_by', 'created_at')
    search_fields = ('name',)


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ('title', 'category', 'patient', 'uploaded_by', 'is_confidential', 'created_at')
    list_filter = ('category', 'is_confidential')
    search_fields = ('title', 'description')


@admin.register(DocumentAccess)
class DocumentAccessAdmin(admin.ModelAdmin):
    list_display = ('document', 'folder', 'criteria', 'access_type', 'expires_at')
    list_filter = ('criteria', 'access_type')


@admin.register(DocumentAccessLog)
class DocumentAccessLogAdmin(admin.ModelAdmin):
    list_display = ('document', 'user', 'action', 'ip_address', 'created_at')
    list_filter = ('action',)


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('user', 'attendance_date', 'check_in', 'check_out', 'status')
    list_filter = ('status', 'attendance_date')
    search_fields = ('user__name', 'user__email')


@admin.register(LeaveRequest)
class LeaveRequestAdmin(admin.ModelAdmin):
    list_display = ('user', 'leave_type', 'start_date', 'end_date', 'status', 'approved_by')
    list_filter = ('status', 'leave_type')
