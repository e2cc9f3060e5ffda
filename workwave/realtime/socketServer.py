"""
WebSocket Server
==================

Socket.IO server for the live location channel.  Workers' devices keep a
connection open and push ``updateLocation`` messages; the server buffers
them in the ``LocationRelay`` which writes them to the worker store later.

Architecture:
  - python-socketio AsyncServer wrapped around the FastAPI app as ASGI
    middleware (path ``/ws/socket.io``)
  - Redis client manager when REDIS_URL is configured, so several server
    processes share rooms; in-process manager otherwise
  - Namespaces: ``/`` and ``/location`` accept the same events

Connection lifecycle:
  1. Client connects (no authentication on this channel)
  2. Client emits ``updateLocation`` or a ``message`` with
     ``type: "updateLocation"``
  3. Disconnect drops the socket only; buffered positions are kept
"""

from __future__ import annotations

import logging
from typing import Any

import socketio

from workwave.core.config import settings
from workwave.realtime.locationRelay import LocationRelay

logger = logging.getLogger(__name__)

LOCATION_NAMESPACE = "/location"
NAMESPACES = ("/", LOCATION_NAMESPACE)
SOCKETIO_PATH = "ws/socket.io"


# ---------------------------------------------------------------------------
# Socket.IO server instance
# ---------------------------------------------------------------------------

def _client_manager() -> socketio.AsyncManager:
    if settings.redis_url:
        return socketio.AsyncRedisManager(settings.redis_url, write_only=False)
    return socketio.AsyncManager()


def _cors_allowed_origins() -> str | list[str]:
    origins = settings.cors_origins
    if not origins or "*" in origins:
        return "*"
    return origins


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=_cors_allowed_origins(),
    client_manager=_client_manager(),
    logger=False,
    engineio_logger=False,
    ping_timeout=settings.ws_ping_timeout,
    ping_interval=settings.ws_ping_interval,
    max_http_buffer_size=100_000,
    namespaces=list(NAMESPACES),
)


# ---------------------------------------------------------------------------
# Relay wiring (set by the application lifespan)
# ---------------------------------------------------------------------------

_relay: LocationRelay | None = None


def set_relay(relay: LocationRelay | None) -> None:
    global _relay
    _relay = relay


def get_relay() -> LocationRelay:
    if _relay is None:
        raise RuntimeError("Location relay is not running")
    return _relay


# ---------------------------------------------------------------------------
# Connect / disconnect
# ---------------------------------------------------------------------------

async def on_connect(sid: str, environ: dict[str, Any], auth: dict[str, Any] | None = None) -> bool:
    logger.info("Connected: sid=%s", sid)
    return True


async def on_disconnect(sid: str, *args: Any) -> None:
    logger.info("Disconnected: sid=%s", sid)


for _namespace in NAMESPACES:
    sio.on("connect", on_connect, namespace=_namespace)
    sio.on("disconnect", on_disconnect, namespace=_namespace)


def create_asgi_app(api: Any) -> socketio.ASGIApp:
    """Wrap the HTTP app so Socket.IO traffic is served alongside it."""
    return socketio.ASGIApp(
        socketio_server=sio,
        other_asgi_app=api,
        socketio_path=SOCKETIO_PATH,
    )
