"""
Unit tests for the Socket.IO location handlers.

Handlers are called directly with a sid and payload; the relay is a real
``LocationRelay`` with a long delay and a mock flush callback.
"""

import json
import uuid
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from workwave.realtime.handlers.locationHandler import handle_message, handle_update_location
from workwave.realtime.locationRelay import LocationRelay, Position
from workwave.realtime.socketServer import get_relay, set_relay


@pytest_asyncio.fixture
async def relay():
    relay = LocationRelay(AsyncMock(), delay_seconds=3600)
    set_relay(relay)
    yield relay
    await relay.flush_all()
    set_relay(None)


class TestUpdateLocation:
    @pytest.mark.asyncio
    async def test_buffers_position_and_acks(self, relay):
        worker_id = uuid.uuid4()

        ack = await handle_update_location("sid-1", {"workerId": str(worker_id), "location": "MG Road"})

        assert ack == {"ok": True, "flushInSeconds": 3600}
        assert relay.buffered(worker_id) == Position(location="MG Road")
        relay._flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_coordinates_payload(self, relay):
        worker_id = uuid.uuid4()

        ack = await handle_update_location(
            "sid-1",
            {"workerId": str(worker_id), "location": {"latitude": 28.61, "longitude": 77.21}},
        )

        assert ack["ok"] is True
        assert relay.buffered(worker_id) == Position(latitude=28.61, longitude=77.21)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload, error",
        [
            ("not-an-object", "Payload must be an object"),
            ({"location": "MG Road"}, "workerId is required"),
            ({"workerId": "42", "location": "MG Road"}, "workerId must be a valid id"),
            ({"workerId": str(uuid.uuid4()), "location": {"latitude": 100, "longitude": 0}}, "Invalid coordinates"),
        ],
    )
    async def test_rejects_bad_payloads(self, relay, payload, error):
        ack = await handle_update_location("sid-1", payload)
        assert ack == {"ok": False, "error": error}
        assert relay.pending_count == 0


class TestMessage:
    @pytest.mark.asyncio
    async def test_typed_json_string_message(self, relay):
        worker_id = uuid.uuid4()
        raw = json.dumps({"type": "updateLocation", "workerId": str(worker_id), "location": "Andheri"})

        ack = await handle_message("sid-2", raw)

        assert ack["ok"] is True
        assert relay.buffered(worker_id) == Position(location="Andheri")

    @pytest.mark.asyncio
    async def test_unsupported_type_is_ignored(self, relay):
        ack = await handle_message("sid-2", {"type": "chat", "workerId": str(uuid.uuid4())})
        assert ack == {"ok": False, "error": "Unsupported message type"}
        assert relay.pending_count == 0

    @pytest.mark.asyncio
    async def test_malformed_json(self, relay):
        ack = await handle_message("sid-2", "{not json")
        assert ack == {"ok": False, "error": "Message must be JSON"}


def test_relay_required():
    set_relay(None)
    with pytest.raises(RuntimeError):
        get_relay()
