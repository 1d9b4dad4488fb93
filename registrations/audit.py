"""Fire-and-forget audit trail and live broadcast of registration activity."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict

from asgiref.sync import async_to_sync
from channels.exceptions import ChannelFull
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, transaction

from .actors import Actor
from .models import AuditLog

logger = logging.getLogger(__name__)

# Errors from encoding a payload or reaching the channel layer backend.
BROADCAST_ERRORS = (ChannelFull, OSError, TypeError, ValueError)


def broadcast_group() -> str:
    return getattr(settings, "FESTIVAL_BROADCAST_GROUP", "festival_registrations")


def _jsonable(payload: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(json.dumps(payload, cls=DjangoJSONEncoder))


def broadcast(event_type: str, payload: Dict[str, Any]) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(
            broadcast_group(),
            {"type": "broadcast", "event": {"type": event_type, **_jsonable(payload)}},
        )
    except BROADCAST_ERRORS as exc:
        logger.warning("broadcast of %s failed: %s", event_type, exc)


def record(actor: Actor | None, action: str, payload: Dict[str, Any]) -> AuditLog | None:
    """Store an audit row for ``action``; failures are logged and swallowed."""

    try:
        data = _jsonable(payload)
    except (TypeError, ValueError) as exc:
        logger.warning("audit payload for %s is not serialisable: %s", action, exc)
        data = {"unserialisable": repr(payload)}
    if actor is not None:
        data.setdefault("actor", actor.as_payload())
    try:
        with transaction.atomic():
            return AuditLog.objects.create(
                actor_id=actor.user_id if actor is not None else None,
                action=action,
                payload=data,
            )
    except DatabaseError as exc:
        logger.warning("audit record %s failed: %s", action, exc)
        return None
