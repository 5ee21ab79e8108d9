import uuid

import pytest

from clinic.models import Role
from clinic.realtime.consumers import _patient_room_allowed
from clinic.services import broadcast
from clinic.services import queue as queue_service

pytestmark = pytest.mark.django_db


@pytest.fixture
def sent(monkeypatch):
    calls = []
    monkeypatch.setattr(broadcast, '_send', lambda group, event_type, payload: calls.append((group, event_type, payload)))
    return calls


def test_events_wait_for_commit(sent, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        broadcast.send(['a', 'b'], 'queue.update', {'id': uuid.UUID(int=1)})
        assert sent == []
    assert len(callbacks) == 1
    assert sent == [
        ('a', 'queue.update', {'id': '00000000-0000-0000-0000-000000000001'}),
        ('b', 'queue.update', {'id': '00000000-0000-0000-0000-000000000001'}),
    ]


def test_calling_a_ticket_notifies_polyclinic_and_display(sent, django_capture_on_commit_callbacks,
                                                          polyclinic, patient, admin_user):
    ticket = queue_service.take_number(polyclinic_id=polyclinic.id, patient_id=patient.id)
    with django_capture_on_commit_callbacks(execute=True):
        queue_service.call(ticket.id, admin_user)
    groups = {group for group, _, _ in sent}
    assert broadcast.polyclinic_group(polyclinic.id) in groups
    assert broadcast.DISPLAY_GROUP in groups


def test_patient_room_rules(patient, patient_user, make_user):
    stranger = make_user('pasien2', Role.PATIENT)
    nurse = make_user('nurse1', Role.NURSE)
    assert _patient_room_allowed(patient_user, patient.id) is None
    assert _patient_room_allowed(nurse, patient.id) is None
    assert _patient_room_allowed(stranger, patient.id) == 4003
    assert _patient_room_allowed(stranger, uuid.uuid4()) == 4004
