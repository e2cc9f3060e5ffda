"""
Location Update Handler
=========================

Socket.IO handler for live worker positions.

Payload (event ``updateLocation``, or event ``message`` with
``type: "updateLocation"``)::

    {
        "workerId": "<uuid>",
        "location": "<free text>" | {"latitude": <float>, "longitude": <float>, "address": "<optional>"}
    }

On success the position is buffered in the relay and the flush for that
worker is rescheduled.  The ack is ``{"ok": true, "flushInSeconds": ...}``;
on bad input ``{"ok": false, "error": "..."}``.  Nothing is broadcast.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from ..locationRelay import parse_position
from ..socketServer import NAMESPACES, get_relay, sio

logger = logging.getLogger(__name__)

UPDATE_LOCATION = "updateLocation"


async def handle_update_location(sid: str, data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        return {"ok": False, "error": "Payload must be an object"}

    raw_id = data.get("workerId")
    if not raw_id:
        return {"ok": False, "error": "workerId is required"}
    try:
        worker_id = uuid.UUID(str(raw_id))
    except ValueError:
        return {"ok": False, "error": "workerId must be a valid id"}

    try:
        position = parse_position(data.get("location"))
    except ValueError as exc:
        return {"ok": False, "error": str(exc)}

    relay = get_relay()
    await relay.push(worker_id, position)
    logger.debug("sid=%s buffered location for worker %s", sid, worker_id)
    return {"ok": True, "flushInSeconds": relay.delay_seconds}


async def handle_message(sid: str, data: Any) -> dict[str, Any]:
    """Dispatch a typed message.  ``updateLocation`` is the only type."""
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError:
            return {"ok": False, "error": "Message must be JSON"}
    if not isinstance(data, dict):
        return {"ok": False, "error": "Payload must be an object"}

    if data.get("type") != UPDATE_LOCATION:
        logger.info("sid=%s sent unsupported message type %r", sid, data.get("type"))
        return {"ok": False, "error": "Unsupported message type"}
    return await handle_update_location(sid, data)


for _namespace in NAMESPACES:
    sio.on(UPDATE_LOCATION, handle_update_location, namespace=_namespace)
    sio.on("message", handle_message, namespace=_namespace)
