"""Doctor directory and today's availability."""
from __future__ import annotations

from django.utils import timezone
from rest_framework.exceptions import NotFound

from clinic.models import Doctor, QueueNumber

DAY_NAMES = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')
# schedules entered through the Indonesian UI use local day names
LOCAL_DAY_NAMES = ('senin', 'selasa', 'rabu', 'kamis', 'jumat', 'sabtu', 'minggu')


def list_doctors():
    return Doctor.objects.select_related('user', 'polyclinic').order_by('user__name')


def get_doctor(doctor_id) -> Doctor:
    doctor = Doctor.objects.select_related('user', 'polyclinic').filter(id=doctor_id).first()
    if not doctor:
        raise NotFound('doctor not found')
    return doctor


def todays_window(doctor: Doctor, today=None):
    """Return today's schedule entry, ``True`` when unscheduled, or None."""
    if not doctor.schedule:
        return True
    weekday = (today or timezone.localdate()).weekday()
    return doctor.schedule.get(DAY_NAMES[weekday]) or doctor.schedule.get(LOCAL_DAY_NAMES[weekday])


def available_today() -> list[dict]:
    today = timezone.localdate()
    result: list[dict] = []
    for doctor in list_doctors():
        window = todays_window(doctor, today)
        if not window:
            continue
        tickets = QueueNumber.objects.filter(doctor=doctor, queue_date=today)
        serving = tickets.filter(status=QueueNumber.STATUS_SERVING).select_related('patient').first()
        if isinstance(window, dict):
            schedule = f"{window.get('start', '')} - {window.get('end', '')}"
        else:
            schedule = 'Tersedia'
        result.append({
            'id': str(doctor.id),
            'name': doctor.user.name or doctor.user.username,
            'specialization': doctor.specialization,
            'polyclinic': (
                {'id': str(doctor.polyclinic_id), 'name': doctor.polyclinic.name}
                if doctor.polyclinic_id else None
            ),
            'schedule': schedule,
            'isServing': serving is not None,
            'currentPatient': serving.patient.name if serving else None,
            'completedToday': tickets.filter(status=QueueNumber.STATUS_COMPLETED).count(),
        })
    return result
