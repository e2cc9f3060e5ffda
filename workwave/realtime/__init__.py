"""
WorkWave Real-time Module
===========================

Socket.IO server, location relay and event handlers for live worker
positions.

The ``handlers`` sub-package registers all Socket.IO event handlers
as a side-effect of import.
"""

from __future__ import annotations

from .locationRelay import LocationRelay, Position, parse_position, store_writer
from .socketServer import create_asgi_app, get_relay, set_relay, sio

from . import handlers  # noqa: F401

__all__ = [
    "LocationRelay",
    "Position",
    "parse_position",
    "store_writer",
    "create_asgi_app",
    "get_relay",
    "set_relay",
    "sio",
    "handlers",
]
