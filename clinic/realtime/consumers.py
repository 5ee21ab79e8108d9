"""
WebSocket consumers for queue displays, polyclinic counters and
patient portals.

Every consumer relays channel-layer events as
``{"type": <event>, "payload": {...}}``. Close codes: 4001 not signed
in, 4003 forbidden, 4004 unknown object.
"""
import json

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser
from django.core.serializers.json import DjangoJSONEncoder

from clinic.models import Patient, Polyclinic, Role
from clinic.services import broadcast
from clinic.services import queue as queue_service


class _RelayConsumer(AsyncWebsocketConsumer):
    group_name = None

    async def disconnect(self, close_code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def _join(self, group: str):
        self.group_name = group
        await self.channel_layer.group_add(group, self.channel_name)
        await self.accept()

    async def _emit(self, event_type: str, payload):
        await self.send(json.dumps({'type': event_type, 'payload': payload}, cls=DjangoJSONEncoder))

    async def queue_update(self, event):
        await self._emit('queue.update', event['payload'])

    async def queue_called(self, event):
        await self._emit('queue.called', event['payload'])

    async def medical_record_update(self, event):
        await self._emit('medical_record.update', event['payload'])

    async def prescription_update(self, event):
        await self._emit('prescription.update', event['payload'])


class QueueDisplayConsumer(_RelayConsumer):
    """Public TV board: every polyclinic's current number."""

    async def connect(self):
        await self._join(broadcast.DISPLAY_GROUP)
        data = await sync_to_async(queue_service.get_display_data)()
        await self._emit('queue.display', data)


class PolyclinicQueueConsumer(_RelayConsumer):
    async def connect(self):
        polyclinic_id = self.scope['url_route']['kwargs']['polyclinic_id']
        exists = await sync_to_async(Polyclinic.objects.filter(id=polyclinic_id).exists)()
        if not exists:
            await self.close(code=4004)
            return
        await self._join(broadcast.polyclinic_group(polyclinic_id))
        state = await sync_to_async(queue_service.get_polyclinic_queue)(polyclinic_id)
        await self._emit('queue.update', {'polyclinicId': str(polyclinic_id), **state})


def _patient_room_allowed(user, patient_id):
    """Return None when allowed, else the close code."""
    patient = Patient.objects.filter(id=patient_id).first()
    if patient is None:
        return 4004
    if user.is_admin or (user.role_name and user.role_name != Role.PATIENT):
        return None
    if patient.user_id == user.id:
        return None
    return 4003


class PatientConsumer(_RelayConsumer):
    """A patient's own feed of prescriptions and medical-record changes."""

    async def connect(self):
        user = self.scope.get('user') or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4001)
            return
        patient_id = self.scope['url_route']['kwargs']['patient_id']
        refused = await sync_to_async(_patient_room_allowed)(user, patient_id)
        if refused:
            await self.close(code=refused)
            return
        await self._join(broadcast.patient_group(patient_id))
