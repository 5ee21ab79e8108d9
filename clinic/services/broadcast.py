"""
Channel-layer fan-out for queue, prescription and medical-record events.

Events are sent after the surrounding transaction commits so that
subscribers never observe state that is later rolled back. Sending is
a no-op when no channel layer is configured.
"""
from __future__ import annotations

import json
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

logger = logging.getLogger(__name__)

DISPLAY_GROUP = 'queue.display'


def polyclinic_group(polyclinic_id) -> str:
    return f'polyclinic.{polyclinic_id}'


def patient_group(patient_id) -> str:
    return f'patient.{patient_id}'


def _jsonable(payload: dict) -> dict:
    # channel layers msgpack their messages; UUIDs and datetimes must be plain
    return json.loads(json.dumps(payload, cls=DjangoJSONEncoder))


def _send(group: str, event_type: str, payload: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(group, {'type': event_type, 'payload': payload})
    except Exception:
        logger.warning('broadcast to %s failed', group, exc_info=True)


def send(groups, event_type: str, payload: dict) -> None:
    """Send ``payload`` as ``event_type`` to every group once the transaction commits."""
    data = _jsonable(payload)
    group_list = [groups] if isinstance(groups, str) else list(groups)

    def _fire():
        for group in group_list:
            _send(group, event_type, data)

    transaction.on_commit(_fire)
