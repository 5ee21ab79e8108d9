"""
URL mappings for the Mediku API.

Trailing slashes are omitted (``APPEND_SLASH`` is off). Object ids are
UUIDs except for users, which keep Django's integer key.
"""
from django.urls import include, path

from .views import access_controls, attendance, auth, doctors, documents, health, patients
from .views import prescriptions, queues, stock, users

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),

    # Authentication
    path('api/auth/login', auth.login_view, name='login_view'),
    path('api/auth/register', auth.register_view, name='register_view'),
    path('api/auth/profile', auth.profile_view, name='profile_view'),
    path('api/auth/change-password', auth.change_password_view, name='change_password_view'),
    path('api/auth/refresh', auth.refresh_view, name='refresh_view'),
    path('api/auth/logout', auth.logout_view, name='logout_view'),

    # Users, roles and access control
    path('api/users', users.users),
    path('api/users/<int:pk>', users.user_detail),
    path('api/users/<int:pk>/role', users.user_role),
    path('api/roles', users.roles),
    path('api/roles/<uuid:pk>', users.role_detail),
    path('api/admin/access-controls', access_controls.access_controls),
    path('api/admin/access-controls/<uuid:pk>', access_controls.access_control_detail),
    path('api/access-controls/check', access_controls.check_feature),

    # Queue
    path('api/queue/display', queues.queue_display),
    path('api/queue/polyclinics', queues.queue_polyclinics),
    path('api/queue/take', queues.queue_take, name='queue_take'),
    path('api/queue/my', queues.my_queue),
    path('api/queue/polyclinic/<uuid:pk>', queues.polyclinic_queue),
    path('api/queue/call/<uuid:pk>', queues.queue_call),
    path('api/queue/serve/<uuid:pk>', queues.queue_serve),
    path('api/queue/complete/<uuid:pk>', queues.queue_complete),
    path('api/queue/skip/<uuid:pk>', queues.queue_skip),
    path('api/queue/history/<uuid:pk>', queues.queue_history),

    # Stock
    path('api/stock/items', stock.items),
    path('api/stock/items/<uuid:pk>', stock.item_detail),
    path('api/stock/items/<uuid:pk>/batches', stock.item_batches),
    path('api/stock/low-stock', stock.low_stock),
    path('api/stock/movements', stock.movements),
    path('api/stock/corrections', stock.corrections),
    path('api/stock/adjust', stock.adjust),
    path('api/stock/adjust-in', stock.adjust_in),
    path('api/stock/adjust-out', stock.adjust_out),
    path('api/stock/correction', stock.correction),
    path('api/stock/opname', stock.opnames),
    path('api/stock/opname/<uuid:pk>', stock.opname_detail),
    path('api/stock/opname/<uuid:pk>/items', stock.opname_add_item),
    path('api/stock/opname/<uuid:pk>/complete', stock.opname_complete),

    # Prescriptions and medical records
    path('api/prescriptions', prescriptions.prescriptions),
    path('api/prescriptions/pending', prescriptions.pending_prescriptions),
    path('api/prescriptions/my', prescriptions.my_prescriptions),
    path('api/prescriptions/patient/<uuid:patient_id>', prescriptions.patient_prescriptions),
    path('api/prescriptions/<uuid:pk>', prescriptions.prescription_detail),
    path('api/prescriptions/<uuid:pk>/dispense', prescriptions.prescription_dispense),
    path('api/prescriptions/<uuid:pk>/cancel', prescriptions.prescription_cancel),
    path('api/medical-records', prescriptions.medical_records),
    path('api/medical-records/my', prescriptions.my_medical_records),
    path('api/medical-records/<uuid:pk>', prescriptions.medical_record_detail),

    # Patients and doctors
    path('api/patients', patients.patients),
    path('api/patients/mrn/<str:mrn>', patients.patient_by_mrn),
    path('api/patients/<uuid:pk>', patients.patient_detail),
    path('api/patients/<uuid:pk>/history', patients.patient_history),
    path('api/doctors', doctors.doctors),
    path('api/doctors/available-today', doctors.doctors_available_today),
    path('api/doctors/<uuid:pk>', doctors.doctor_detail),

    # Documents
    path('api/documents', documents.documents),
    path('api/documents/categories', documents.document_categories),
    path('api/documents/folders', documents.folders),
    path('api/documents/folders/<uuid:pk>', documents.folder_detail),
    path('api/documents/access', documents.document_access),
    path('api/documents/access/<uuid:pk>', documents.document_access_detail),
    path('api/documents/<uuid:pk>', documents.document_detail),
    path('api/documents/<uuid:pk>/download', documents.document_download),
    path('api/documents/<uuid:pk>/logs', documents.document_logs),

    # Attendance
    path('api/attendance/check-in', attendance.check_in),
    path('api/attendance/check-out', attendance.check_out),
    path('api/attendance/today', attendance.today),
    path('api/attendance/history', attendance.history),
    path('api/attendance/summary', attendance.monthly_summary),
    path('api/attendance/report', attendance.daily_report),
    path('api/attendance/leave', attendance.leave_requests),
    path('api/attendance/leave/<uuid:pk>/process', attendance.process_leave_request),
]
