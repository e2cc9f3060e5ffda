"""
Realtime handlers
===================

Importing this module registers all event handlers with the shared
Socket.IO server instance.
"""

from __future__ import annotations

from . import locationHandler

__all__ = ["locationHandler"]
