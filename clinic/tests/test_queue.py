"""
Queue tests: per-day numbering, the forward-only ticket lifecycle and
the public take-a-number endpoint.
"""
from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.exceptions import InvalidTransition
from clinic.models import (
    AccessControl,
    Patient,
    Polyclinic,
    QueueCounter,
    QueueNumber,
    QueueTransition,
    Role,
    User,
)
from clinic.services import queue as queue_service

pytestmark = pytest.mark.django_db


def test_numbers_increase_per_polyclinic_and_day(polyclinic, patient):
    other = Polyclinic.objects.create(name='Poli Gigi', code='GIGI')
    tomorrow = timezone.localdate() + timedelta(days=1)

    first = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)
    second = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)
    elsewhere = queue_service.take_number(polyclinic_id=other.id, patient_id=patient.id)
    next_day = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id, queue_date=tomorrow)

    assert (first.queue_number, second.queue_number) == (1, 2)
    assert elsewhere.queue_number == 1
    assert next_day.queue_number == 1
    counter = QueueCounter.objects.get(polyclinic=polyclinic, counter_date=timezone.localdate())
    assert counter.last_number == 2


def test_past_date_is_rejected(polyclinic, patient):
    from rest_framework.exceptions import ValidationError

    with pytest.raises(ValidationError):
        queue_service.take_number(
            polyclinic_id=polyclinic.id,
            patient_id=patient.id,
            queue_date=timezone.localdate() - timedelta(days=1),
        )
    assert not QueueNumber.objects.exists()


def test_full_lifecycle_records_transitions(polyclinic, patient, admin_user):
    ticket = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)

    queue_service.call(ticket.id, admin_user)
    queue_service.serve(ticket.id, admin_user)
    done = queue_service.complete(ticket.id, admin_user, notes='selesai')

    assert done.status == QueueNumber.STATUS_COMPLETED
    assert done.called_time and done.served_time and done.completed_time
    assert done.notes == 'selesai'
    steps = list(QueueTransition.objects.filter(ticket=ticket).values_list('from_status', 'to_status'))
    assert steps == [('waiting', 'called'), ('called', 'serving'), ('serving', 'completed')]


@pytest.mark.parametrize('current,new', [
    ('waiting', 'serving'),
    ('waiting', 'completed'),
    ('serving', 'skipped'),
    ('completed', 'called'),
    ('skipped', 'waiting'),
    ('serving', 'called'),
])
def test_invalid_transitions_are_refused(current, new):
    assert not queue_service.can_transition(current, new)


def test_skip_after_call_then_no_way_back(polyclinic, patient):
    ticket = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)
    queue_service.call(ticket.id)
    queue_service.skip(ticket.id, notes='tidak hadir')

    with pytest.raises(InvalidTransition):
        queue_service.call(ticket.id)
    assert QueueNumber.objects.get(id=ticket.id).status == QueueNumber.STATUS_SKIPPED


def test_kiosk_registration_by_phone_reuses_account(roles, polyclinic):
    first = queue_service.take_number(polyclinic_id=polyclinic.id, patient_name='Andi', patient_phone='0812000111')
    second = queue_service.take_number(polyclinic_id=polyclinic.id, patient_name='Andi', patient_phone='0812000111')

    assert first.patient_id == second.patient_id
    user = User.objects.get(email='0812000111@mediku.com')
    assert user.check_password('0812000111')
    assert user.role_name == Role.PATIENT


def test_bpjs_lookup_requires_known_patient(polyclinic, patient):
    from rest_framework.exceptions import ValidationError

    patient.bpjs_number = '0001234567890'
    patient.save()
    ticket = queue_service.take_number(polyclinic_id=polyclinic.id, bpjs_number='0001234567890')
    assert ticket.patient_id == patient.id

    with pytest.raises(ValidationError):
        queue_service.take_number(polyclinic_id=polyclinic.id, bpjs_number='9999')


def test_polyclinic_queue_and_display(polyclinic, patient):
    a = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)
    queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)
    queue_service.call(a.id)

    state = queue_service.get_polyclinic_queue(polyclinic.id)
    assert state['lastCalled']['queueNumber'] == 1
    assert state['currentlyServing'] is None
    assert len(state['waiting']) == 1
    assert state['total'] == 2

    display = queue_service.get_display_data()
    assert display[0]['currentNumber'] == 1
    assert display[0]['status'] == 'called'
    assert display[0]['waitingCount'] == 1


def test_my_queue_hides_completed_tickets(polyclinic, patient, patient_user):
    done = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)
    for step in (queue_service.call, queue_service.serve, queue_service.complete):
        step(done.id)
    open_ticket = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)

    mine = list(queue_service.get_my_queue(patient_user))
    assert [t.id for t in mine] == [open_ticket.id]


def test_my_queue_lists_today_before_later_days(polyclinic, patient, patient_user):
    later = queue_service.take_number(
        polyclinic_id=polyclinic.id, patient_id=patient.id, queue_date=timezone.localdate() + timedelta(days=3),
    )
    tomorrow = queue_service.take_number(
        polyclinic_id=polyclinic.id, patient_id=patient.id, queue_date=timezone.localdate() + timedelta(days=1),
    )
    today = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)

    mine = list(queue_service.get_my_queue(patient_user))
    assert [t.id for t in mine] == [today.id, tomorrow.id, later.id]


def test_walk_ins_in_the_same_millisecond_get_distinct_numbers(monkeypatch, polyclinic):
    frozen = timezone.now()
    monkeypatch.setattr(timezone, 'now', lambda: frozen)

    first = queue_service.take_number(polyclinic_id=polyclinic.id, patient_name='Tono')
    second = queue_service.take_number(polyclinic_id=polyclinic.id, patient_name='Tini')

    mrns = {first.patient.medical_record_number, second.patient.medical_record_number}
    assert len(mrns) == 2
    assert all(mrn.startswith('WI-') for mrn in mrns)


class QueueAPITests(APITestCase):
    def setUp(self) -> None:
        self.patient_role = Role.objects.create(name=Role.PATIENT)
        self.nurse_role = Role.objects.create(name=Role.NURSE)
        AccessControl.objects.create(role=self.nurse_role, feature='queue:manage')
        self.polyclinic = Polyclinic.objects.create(name='Poli Anak', code='ANAK')
        self.patient_user = User.objects.create_user(
            username='p1', email='p1@mediku.test', password='Sehat#Mediku2024', role=self.patient_role,
        )
        self.patient = Patient.objects.create(user=self.patient_user, name='Rudi', medical_record_number='RM-010')
        self.nurse = User.objects.create_user(
            username='n1', email='n1@mediku.test', password='Sehat#Mediku2024', role=self.nurse_role,
        )

    def authenticate(self, user: User) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def take(self, **extra):
        payload = {'polyclinicId': str(self.polyclinic.id), 'patientId': str(self.patient.id), **extra}
        return APIClient().post('/api/queue/take', payload, format='json')

    def test_take_number_is_public(self):
        resp = self.take()
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(resp.data['ok'])
        self.assertEqual(resp.data['data']['queueNumber'], 1)
        self.assertEqual(resp.data['data']['displayNumber'], 'ANAK-001')
        self.assertEqual(resp.data['data']['status'], 'waiting')

    def test_take_number_for_past_date_is_bad_request(self):
        yesterday = (timezone.localdate() - timedelta(days=1)).isoformat()
        resp = self.take(queueDate=yesterday)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(resp.data['ok'])

    def test_unknown_polyclinic_is_not_found(self):
        resp = APIClient().post(
            '/api/queue/take',
            {'polyclinicId': '00000000-0000-0000-0000-000000000000', 'patientId': str(self.patient.id)},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_nurse_moves_ticket_forward(self):
        ticket_id = self.take().data['data']['id']
        client = self.authenticate(self.nurse)
        for action, expected in (('call', 'called'), ('serve', 'serving'), ('complete', 'completed')):
            resp = client.post(f'/api/queue/{action}/{ticket_id}', {}, format='json')
            self.assertEqual(resp.status_code, status.HTTP_200_OK)
            self.assertEqual(resp.data['data']['status'], expected)

        history = client.get(f'/api/queue/history/{ticket_id}')
        self.assertEqual(history.status_code, status.HTTP_200_OK)
        self.assertEqual([row['toStatus'] for row in history.data['data']], ['called', 'serving', 'completed'])

    def test_invalid_transition_is_conflict(self):
        ticket_id = self.take().data['data']['id']
        resp = self.authenticate(self.nurse).post(f'/api/queue/serve/{ticket_id}', {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data['error']['code'], 'invalid_transition')

    def test_patient_cannot_call(self):
        ticket_id = self.take().data['data']['id']
        resp = self.authenticate(self.patient_user).post(f'/api/queue/call/{ticket_id}', {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_display_is_public(self):
        self.take()
        resp = APIClient().get('/api/queue/display')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data'][0]['waitingCount'], 1)
