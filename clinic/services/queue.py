"""
Outpatient queue: ticket allocation and the ticket lifecycle.

Ticket numbers come from a per (polyclinic, date) counter row that is
locked with ``SELECT ... FOR UPDATE`` while it is incremented, so two
concurrent requests never receive the same number. Tickets move
forward only::

    waiting -> called -> serving -> completed
    waiting -> skipped,  called -> skipped

Every transition is stamped, recorded as a ``QueueTransition`` and
re-broadcast to the polyclinic and display groups.
"""
from __future__ import annotations

import logging
import secrets
from datetime import date

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import InvalidTransition
from clinic.models import Doctor, Patient, Polyclinic, QueueCounter, QueueNumber, QueueTransition, Role, User
from clinic.serializers.queue import PolyclinicSerializer, QueueNumberSerializer
from clinic.services import broadcast

logger = logging.getLogger(__name__)

TRANSITIONS: dict[str, tuple[str, ...]] = {
    QueueNumber.STATUS_WAITING: (QueueNumber.STATUS_CALLED, QueueNumber.STATUS_SKIPPED),
    QueueNumber.STATUS_CALLED: (QueueNumber.STATUS_SERVING, QueueNumber.STATUS_SKIPPED),
    QueueNumber.STATUS_SERVING: (QueueNumber.STATUS_COMPLETED,),
    QueueNumber.STATUS_COMPLETED: (),
    QueueNumber.STATUS_SKIPPED: (),
}


def can_transition(current: str, new: str) -> bool:
    """Return True if a ticket may move from ``current`` to ``new``."""
    return new in TRANSITIONS.get(current, ())


# ---------------------------------------------------------------------
# Patient resolution for take-a-number
# ---------------------------------------------------------------------
def _registration_stamp() -> str:
    return f"{int(timezone.now().timestamp() * 1000)}-{secrets.token_hex(3).upper()}"


def _patient_from_phone(name: str, phone: str, bpjs_number: str) -> Patient:
    """Find or register a patient account keyed on the phone number.

    The generated login is ``<phone>@mediku.com`` with the phone number
    as initial password.
    """
    email = f"{phone}@mediku.com"
    user = User.objects.filter(email=email).first()
    if user is None:
        role = Role.objects.filter(name=Role.PATIENT).first()
        if role is None:
            raise NotFound('role patient not found')
        user = User(username=email, email=email, name=name, phone=phone, role=role)
        user.set_password(phone)
        user.save()
        logger.info('patient account %s created at the kiosk', email)

    patient = Patient.objects.filter(user=user).first()
    if patient is None:
        patient = Patient.objects.create(
            user=user,
            name=name,
            medical_record_number=f"REG-{_registration_stamp()}",
            phone=phone,
            bpjs_number=bpjs_number or '',
        )
    return patient


def resolve_patient(
    *,
    patient_id=None,
    bpjs_number: str = '',
    patient_name: str = '',
    patient_phone: str = '',
) -> Patient:
    if patient_id:
        patient = Patient.objects.filter(id=patient_id, is_active=True).first()
        if not patient:
            raise NotFound('patient not found')
        return patient
    if bpjs_number and not patient_name:
        patient = Patient.objects.filter(bpjs_number=bpjs_number, is_active=True).first()
        if not patient:
            raise ValidationError({'detail': 'patient not found, register as new patient'})
        return patient
    if patient_name and patient_phone:
        return _patient_from_phone(patient_name, patient_phone, bpjs_number)
    if patient_name:
        return Patient.objects.create(
            name=patient_name,
            medical_record_number=f"WI-{_registration_stamp()}",
            bpjs_number=bpjs_number or '',
        )
    raise ValidationError({'detail': 'incomplete patient information'})


# ---------------------------------------------------------------------
# Taking a number
# ---------------------------------------------------------------------
def _next_number(polyclinic: Polyclinic, queue_date: date) -> int:
    QueueCounter.objects.get_or_create(polyclinic=polyclinic, counter_date=queue_date)
    counter = QueueCounter.objects.select_for_update().get(polyclinic=polyclinic, counter_date=queue_date)
    counter.last_number += 1
    counter.save(update_fields=['last_number'])
    return counter.last_number


def take_number(
    *,
    polyclinic_id,
    patient_id=None,
    bpjs_number: str = '',
    patient_name: str = '',
    patient_phone: str = '',
    doctor_id=None,
    queue_date: date | None = None,
) -> QueueNumber:
    today = timezone.localdate()
    target_date = queue_date or today
    if target_date < today:
        raise ValidationError({'queueDate': 'queue date cannot be in the past'})

    polyclinic = Polyclinic.objects.filter(id=polyclinic_id, is_active=True).first()
    if not polyclinic:
        raise NotFound('polyclinic not found')
    doctor = None
    if doctor_id:
        doctor = Doctor.objects.filter(id=doctor_id).first()
        if not doctor:
            raise NotFound('doctor not found')

    with transaction.atomic():
        patient = resolve_patient(
            patient_id=patient_id,
            bpjs_number=bpjs_number,
            patient_name=patient_name,
            patient_phone=patient_phone,
        )
        number = _next_number(polyclinic, target_date)
        ticket = QueueNumber.objects.create(
            polyclinic=polyclinic,
            patient=patient,
            doctor=doctor,
            queue_number=number,
            queue_date=target_date,
            status=QueueNumber.STATUS_WAITING,
        )
        if target_date == today:
            broadcast_queue_state(polyclinic.id)

    logger.info('ticket %s-%03d issued for %s on %s', polyclinic.code, number, patient.id, target_date)
    return ticket


# ---------------------------------------------------------------------
# Reading the queue
# ---------------------------------------------------------------------
def _tickets_for(polyclinic_id, queue_date: date):
    return list(
        QueueNumber.objects.filter(polyclinic_id=polyclinic_id, queue_date=queue_date)
        .select_related('polyclinic', 'patient', 'doctor__user')
        .order_by('queue_number')
    )


def _serialize(ticket: QueueNumber | None):
    return QueueNumberSerializer(ticket).data if ticket else None


def get_polyclinic_queue(polyclinic_id, queue_date: date | None = None) -> dict:
    polyclinic = Polyclinic.objects.filter(id=polyclinic_id).first()
    if not polyclinic:
        raise NotFound('polyclinic not found')
    tickets = _tickets_for(polyclinic_id, queue_date or timezone.localdate())

    def having(status: str) -> list[QueueNumber]:
        return [t for t in tickets if t.status == status]

    serving = having(QueueNumber.STATUS_SERVING)
    called = having(QueueNumber.STATUS_CALLED)
    return {
        'polyclinic': PolyclinicSerializer(polyclinic).data,
        'currentlyServing': _serialize(serving[0] if serving else None),
        'lastCalled': _serialize(called[-1] if called else None),
        'waiting': QueueNumberSerializer(having(QueueNumber.STATUS_WAITING), many=True).data,
        'completed': QueueNumberSerializer(having(QueueNumber.STATUS_COMPLETED), many=True).data,
        'skipped': QueueNumberSerializer(having(QueueNumber.STATUS_SKIPPED), many=True).data,
        'total': len(tickets),
    }


def get_display_data() -> list[dict]:
    today = timezone.localdate()
    data: list[dict] = []
    for polyclinic in Polyclinic.objects.filter(is_active=True).order_by('name'):
        tickets = _tickets_for(polyclinic.id, today)
        serving = next((t for t in tickets if t.status == QueueNumber.STATUS_SERVING), None)
        called = [t for t in tickets if t.status == QueueNumber.STATUS_CALLED]
        last_called = called[-1] if called else None
        if serving:
            current, status = serving.queue_number, QueueNumber.STATUS_SERVING
        elif last_called:
            current, status = last_called.queue_number, QueueNumber.STATUS_CALLED
        else:
            current, status = 0, QueueNumber.STATUS_WAITING
        data.append({
            'polyclinic': PolyclinicSerializer(polyclinic).data,
            'currentNumber': current,
            'waitingCount': sum(1 for t in tickets if t.status == QueueNumber.STATUS_WAITING),
            'status': status,
        })
    return data


def get_polyclinics():
    return Polyclinic.objects.filter(is_active=True).order_by('name')


def get_my_queue(user: User):
    """Upcoming tickets (today or later) of the patient linked to ``user``."""
    patient = Patient.objects.filter(user=user).first()
    if not patient:
        return QueueNumber.objects.none()
    return (
        QueueNumber.objects.filter(patient=patient, queue_date__gte=timezone.localdate())
        .exclude(status=QueueNumber.STATUS_COMPLETED)
        .select_related('polyclinic', 'patient', 'doctor__user')
        .order_by('queue_date', 'queue_number')
    )


def broadcast_queue_state(polyclinic_id) -> None:
    state = get_polyclinic_queue(polyclinic_id)
    broadcast.send(
        [broadcast.polyclinic_group(polyclinic_id), broadcast.DISPLAY_GROUP],
        'queue.update',
        {'polyclinicId': str(polyclinic_id), **state},
    )


# ---------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------
def _transition(ticket_id, new_status: str, operator: User | None, *, reason: str = '', notes: str | None = None,
                doctor: Doctor | None = None) -> QueueNumber:
    with transaction.atomic():
        ticket = (
            QueueNumber.objects.select_for_update()
            .filter(id=ticket_id)
            .first()
        )
        if not ticket:
            raise NotFound('queue ticket not found')
        old_status = ticket.status
        if not can_transition(old_status, new_status):
            logger.warning('refused ticket %s transition %s -> %s', ticket.id, old_status, new_status)
            raise InvalidTransition(f'cannot move a ticket from {old_status} to {new_status}')

        now = timezone.now()
        ticket.status = new_status
        if new_status == QueueNumber.STATUS_CALLED:
            ticket.called_time = now
        elif new_status == QueueNumber.STATUS_SERVING:
            ticket.served_time = now
        elif new_status == QueueNumber.STATUS_COMPLETED:
            ticket.completed_time = now
        if doctor is not None:
            ticket.doctor = doctor
        if notes:
            ticket.notes = notes
        ticket.save()
        QueueTransition.objects.create(
            ticket=ticket,
            from_status=old_status,
            to_status=new_status,
            operator=operator if operator and operator.is_authenticated else None,
            reason=reason or notes or '',
        )
        ticket = QueueNumber.objects.select_related('polyclinic', 'patient', 'doctor__user').get(id=ticket.id)

        if new_status == QueueNumber.STATUS_CALLED:
            broadcast.send(
                [broadcast.polyclinic_group(ticket.polyclinic_id), broadcast.DISPLAY_GROUP],
                'queue.called',
                {
                    'queueId': str(ticket.id),
                    'queueNumber': ticket.queue_number,
                    'polyclinic': PolyclinicSerializer(ticket.polyclinic).data,
                    'patient': {'id': str(ticket.patient_id), 'name': ticket.patient.name},
                },
            )
        if new_status == QueueNumber.STATUS_COMPLETED:
            broadcast.send(
                broadcast.patient_group(ticket.patient_id),
                'medical_record.update',
                {'type': 'queue_completed', 'queueId': str(ticket.id)},
            )
        broadcast_queue_state(ticket.polyclinic_id)

    logger.info('ticket %s moved %s -> %s', ticket.id, old_status, new_status)
    return ticket


def call(ticket_id, operator: User | None = None, *, doctor_id=None) -> QueueNumber:
    doctor = None
    if doctor_id:
        doctor = Doctor.objects.filter(id=doctor_id).first()
        if not doctor:
            raise NotFound('doctor not found')
    return _transition(ticket_id, QueueNumber.STATUS_CALLED, operator, reason='called', doctor=doctor)


def serve(ticket_id, operator: User | None = None) -> QueueNumber:
    return _transition(ticket_id, QueueNumber.STATUS_SERVING, operator, reason='serving')


def complete(ticket_id, operator: User | None = None, *, notes: str | None = None) -> QueueNumber:
    return _transition(ticket_id, QueueNumber.STATUS_COMPLETED, operator, reason='completed', notes=notes)


def skip(ticket_id, operator: User | None = None, *, notes: str | None = None) -> QueueNumber:
    return _transition(ticket_id, QueueNumber.STATUS_SKIPPED, operator, reason='skipped', notes=notes)


def transition_history(ticket_id):
    return QueueTransition.objects.filter(ticket_id=ticket_id).select_related('operator').order_by('timestamp')
