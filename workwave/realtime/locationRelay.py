"""
Live location relay
=====================

Buffers the latest position pushed by each worker over the realtime
channel and writes it to the worker store after a fixed delay.

Architecture:
  - **Buffer** (``worker_id -> Position``): overwritten on every push.
  - **Timers** (``worker_id -> asyncio.Task``): one pending flush per
    worker.  A new push cancels the pending flush and schedules a fresh
    one, so a stale position can never land after a newer one.
  - **Flush callback**: an async function that persists a position.
    ``store_writer`` builds the production one on top of
    ``workerService.update_location`` with its own DB session.

Once a timer fires it detaches itself from the timer map before writing,
so a push that arrives mid-write schedules a new flush instead of
cancelling the write in progress.  Disconnecting clients do not touch the
buffer.  ``flush_all`` writes everything still pending and is called on
application shutdown.

Concurrency model: single asyncio event loop; buffer and timer map are
guarded by one ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Position:
    """A worker position as reported by a client."""

    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


FlushCallback = Callable[[uuid.UUID, Position], Awaitable[None]]


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def parse_position(raw: Any) -> Position:
    """Build a ``Position`` from the ``location`` field of a push.

    Accepts free text, or an object with ``latitude``/``longitude``
    (``lat``, ``lng``/``lon`` also accepted) and an optional ``address``.

    Raises:
        ValueError: The payload is empty or the coordinates are invalid.
    """
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise ValueError("location is required")
        return Position(location=text)

    if not isinstance(raw, dict):
        raise ValueError("location must be a string or an object")

    lat = _first(raw, "latitude", "lat")
    lng = _first(raw, "longitude", "lng", "lon")
    address = _first(raw, "address", "location")
    if address is not None and not isinstance(address, str):
        raise ValueError("address must be a string")
    address = address.strip() if address else None

    if lat is None and lng is None:
        if not address:
            raise ValueError("location requires latitude and longitude or an address")
        return Position(location=address)
    if lat is None or lng is None:
        raise ValueError("latitude and longitude must be provided together")

    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        raise ValueError("latitude and longitude must be valid numbers")
    if not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
        raise ValueError("Invalid coordinates")

    return Position(location=address, latitude=lat, longitude=lng)


# ---------------------------------------------------------------------------
# Relay
# ---------------------------------------------------------------------------


class LocationRelay:
    def __init__(self, flush: FlushCallback, delay_seconds: float) -> None:
        self._flush = flush
        self.delay_seconds = delay_seconds
        self._buffer: dict[uuid.UUID, Position] = {}
        self._timers: dict[uuid.UUID, asyncio.Task[None]] = {}
        self._lock = asyncio.Lock()

    async def push(self, worker_id: uuid.UUID, position: Position) -> None:
        """Buffer ``position`` and (re)schedule the worker's flush."""
        async with self._lock:
            self._buffer[worker_id] = position
            pending = self._timers.pop(worker_id, None)
            if pending is not None and not pending.done():
                pending.cancel()
            self._timers[worker_id] = asyncio.create_task(
                self._flush_later(worker_id),
                name=f"location-flush-{worker_id}",
            )
        logger.debug(
            "Buffered position for worker %s; flush in %.0fs",
            worker_id,
            self.delay_seconds,
        )

    async def _flush_later(self, worker_id: uuid.UUID) -> None:
        await asyncio.sleep(self.delay_seconds)
        async with self._lock:
            if self._timers.get(worker_id) is asyncio.current_task():
                del self._timers[worker_id]
            position = self._buffer.pop(worker_id, None)
        if position is not None:
            await self._write(worker_id, position)

    async def _write(self, worker_id: uuid.UUID, position: Position) -> None:
        try:
            await self._flush(worker_id, position)
        except Exception as exc:
            logger.error(
                "Failed to flush position for worker %s: %s",
                worker_id,
                exc,
                exc_info=True,
            )
        else:
            logger.info("Flushed buffered position for worker %s", worker_id)

    async def flush_all(self) -> int:
        """Cancel every timer and write all buffered positions now.

        Returns the number of positions written (attempted).
        """
        async with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
            pending = dict(self._buffer)
            self._buffer.clear()

        for task in timers:
            task.cancel()
        await asyncio.gather(*timers, return_exceptions=True)

        for worker_id, position in pending.items():
            await self._write(worker_id, position)
        logger.info("Flushed %d pending worker positions", len(pending))
        return len(pending)

    def buffered(self, worker_id: uuid.UUID) -> Optional[Position]:
        return self._buffer.get(worker_id)

    @property
    def pending_count(self) -> int:
        return len(self._timers)


# ---------------------------------------------------------------------------
# Production flush callback
# ---------------------------------------------------------------------------


def store_writer(session_factory: async_sessionmaker[AsyncSession]) -> FlushCallback:
    """Flush callback that writes positions through the worker store."""
    from workwave.services import workerService

    async def _write_position(worker_id: uuid.UUID, position: Position) -> None:
        async with session_factory() as db:
            try:
                await workerService.update_location(
                    db,
                    worker_id,
                    position.location,
                    position.latitude,
                    position.longitude,
                )
                await db.commit()
            except workerService.WorkerNotFoundError:
                await db.rollback()
                logger.warning("Dropping buffered position for unknown worker %s", worker_id)
            except SQLAlchemyError:
                await db.rollback()
                raise

    return _write_position
