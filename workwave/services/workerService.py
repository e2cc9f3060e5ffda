"""
Worker Store Service
======================

Persistence operations over the ``workers`` table:

- Registration with photo upload and duplicate-email protection
- Lookups by id, email, phone and profession
- Distinct profession listing
- Status and location updates
- Atomic click-counter increments
- Proximity search over the latitude/longitude index

Business rules enforced:
- Email is globally unique.  The pre-insert lookup only avoids a
  pointless upload; the table's unique constraint decides.
- A photo uploaded for a registration that fails to insert or commit
  is deleted.
- Counter increments and location writes are single UPDATE statements.

All methods are async and accept an ``AsyncSession`` for transactional safety.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workwave.core.phone import is_valid_phone, normalize_phone
from workwave.integrations.firebase import PhotoSink, PhotoUploadError
from workwave.models import (
    DEFAULT_LOCATION,
    EMAIL_MAX_LENGTH,
    NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    PROFESSION_MAX_LENGTH,
    Worker,
    WorkerStatus,
)
from workwave.services.geoService import bounding_box, haversine_distance

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class WorkerError(Exception):
    """Base exception for worker store errors."""
    pass


class WorkerValidationError(WorkerError):
    """Raised when registration or update input is missing or malformed."""
    pass


class DuplicateEmailError(WorkerError):
    """Raised when the email is already registered."""

    def __init__(self, email: str) -> None:
        super().__init__("Email is already registered.")
        self.email = email


class WorkerNotFoundError(WorkerError):
    """Raised when no worker matches the given identifier."""

    def __init__(self, worker_id: uuid.UUID | str) -> None:
        super().__init__("Worker not found.")
        self.worker_id = worker_id


# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------

@dataclass
class WorkerRegistration:
    """Validated registration fields, before the photo is uploaded."""

    name: str
    phone: str
    email: str
    profession: str
    experience: float
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class PhotoUpload:
    """Binary photo content received with a registration."""

    content: bytes
    filename: str
    content_type: str


@dataclass
class WorkerDistance:
    """A worker paired with its distance from a reference point."""

    worker: Worker
    distance_km: float


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    if (latitude is None) != (longitude is None):
        raise WorkerValidationError("Latitude and longitude must be provided together.")
    if latitude is not None and not -90 <= latitude <= 90:
        raise WorkerValidationError("Latitude must be between -90 and 90.")
    if longitude is not None and not -180 <= longitude <= 180:
        raise WorkerValidationError("Longitude must be between -180 and 180.")


def validate_registration(fields: WorkerRegistration) -> None:
    """Reject registrations missing a required field or too long to store.

    Either free-text location or a latitude/longitude pair is required.
    """
    required = (fields.name, fields.phone, fields.email, fields.profession)
    if any(not (value and value.strip()) for value in required) or fields.experience is None:
        raise WorkerValidationError("All fields are required.")
    if fields.experience < 0:
        raise WorkerValidationError("Experience must not be negative.")

    phone = normalize_phone(fields.phone)
    if len(phone) > PHONE_MAX_LENGTH or not is_valid_phone(phone):
        raise WorkerValidationError("Phone number is invalid.")
    limits = (
        ("Name", fields.name, NAME_MAX_LENGTH),
        ("Email", fields.email, EMAIL_MAX_LENGTH),
        ("Profession", fields.profession, PROFESSION_MAX_LENGTH),
    )
    for label, value, limit in limits:
        if len(value.strip()) > limit:
            raise WorkerValidationError(f"{label} must be at most {limit} characters.")

    _validate_coordinates(fields.latitude, fields.longitude)
    has_location = bool(fields.location and fields.location.strip())
    if not has_location and fields.latitude is None:
        raise WorkerValidationError("All fields are required.")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def _reload(db: AsyncSession, worker_id: uuid.UUID) -> Worker:
    stmt = (
        select(Worker)
        .where(Worker.id == worker_id)
        .execution_options(populate_existing=True)
    )
    worker = (await db.execute(stmt)).scalar_one_or_none()
    if worker is None:
        raise WorkerNotFoundError(worker_id)
    return worker


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

async def register(
    db: AsyncSession,
    fields: WorkerRegistration,
    photo: Optional[PhotoUpload],
    photo_sink: PhotoSink,
) -> Worker:
    """Register a new worker, upload their photo and commit the row.

    The photo is deleted again when the insert or its commit fails.

    Raises:
        WorkerValidationError: Missing field or photo.
        DuplicateEmailError: The email is already registered.
        PhotoUploadError: The upload sink failed.
        SQLAlchemyError: The insert failed for another reason.
    """
    validate_registration(fields)
    if photo is None or not photo.content:
        raise WorkerValidationError("Worker photo is required.")

    email = fields.email.strip().lower()
    if await find_by_email(db, email) is not None:
        raise DuplicateEmailError(email)

    uploaded = await photo_sink.upload(photo.content, photo.content_type, photo.filename)

    worker = Worker(
        name=fields.name.strip(),
        phone=normalize_phone(fields.phone),
        email=email,
        photo_url=uploaded.public_url,
        profession=fields.profession.strip(),
        experience=fields.experience,
        location=(fields.location or "").strip() or DEFAULT_LOCATION,
        latitude=fields.latitude,
        longitude=fields.longitude,
        status=WorkerStatus.ACTIVE,
        click_count=0,
    )
    db.add(worker)
    try:
        await db.flush()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Duplicate email rejected by constraint: %s", email)
        await _discard_photo(photo_sink, uploaded.object_name)
        raise DuplicateEmailError(email)
    except DataError:
        await db.rollback()
        logger.info("Worker insert rejected by column constraints: %s", email, exc_info=True)
        await _discard_photo(photo_sink, uploaded.object_name)
        raise WorkerValidationError("One or more fields are invalid.")
    except SQLAlchemyError:
        await db.rollback()
        logger.error("Worker insert failed for %s", email, exc_info=True)
        await _discard_photo(photo_sink, uploaded.object_name)
        raise

    await db.refresh(worker)
    logger.info("Registered worker %s (%s)", worker.id, worker.email)
    return worker


async def _discard_photo(photo_sink: PhotoSink, object_name: str) -> None:
    """Remove an orphaned upload.  Failures are logged only."""
    try:
        await photo_sink.delete(object_name)
    except PhotoUploadError:
        logger.warning("Could not delete orphaned photo %s", object_name, exc_info=True)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_worker(db: AsyncSession, worker_id: uuid.UUID) -> Worker:
    worker = await db.get(Worker, worker_id)
    if worker is None:
        raise WorkerNotFoundError(worker_id)
    return worker


async def find_by_email(db: AsyncSession, email: str) -> Optional[Worker]:
    stmt = select(Worker).where(Worker.email == email.strip().lower())
    return (await db.execute(stmt)).scalar_one_or_none()


async def find_by_phone(db: AsyncSession, phone: str) -> Optional[Worker]:
    stmt = select(Worker).where(Worker.phone == normalize_phone(phone)).limit(1)
    return (await db.execute(stmt)).scalars().first()


async def find_by_profession(db: AsyncSession, term: str) -> Sequence[Worker]:
    """Case-insensitive substring match on profession."""
    pattern = f"%{_escape_like(term.strip())}%"
    stmt = (
        select(Worker)
        .where(Worker.profession.ilike(pattern, escape="\\"))
        .order_by(Worker.name)
    )
    return (await db.execute(stmt)).scalars().all()


async def list_professions(db: AsyncSession) -> list[str]:
    """Distinct exact profession strings, sorted."""
    stmt = select(Worker.profession).distinct().order_by(Worker.profession)
    return list((await db.execute(stmt)).scalars().all())


async def find_nearby(
    db: AsyncSession,
    latitude: float,
    longitude: float,
    radius_km: float,
) -> list[WorkerDistance]:
    """Workers within ``radius_km`` of a point, closest first.

    A bounding box on the latitude/longitude index narrows the candidates,
    then the haversine distance filters and ranks them.
    """
    _validate_coordinates(latitude, longitude)
    if radius_km <= 0:
        raise WorkerValidationError("Radius must be positive.")

    box = bounding_box(latitude, longitude, radius_km)
    stmt = select(Worker).where(
        Worker.latitude.is_not(None),
        Worker.longitude.is_not(None),
        Worker.latitude.between(box.min_lat, box.max_lat),
    )
    if not box.wraps_longitude:
        stmt = stmt.where(
            or_(*(Worker.longitude.between(lo, hi) for lo, hi in box.longitude_ranges()))
        )

    results: list[WorkerDistance] = []
    for worker in (await db.execute(stmt)).scalars().all():
        distance = haversine_distance(latitude, longitude, worker.latitude, worker.longitude)
        if distance <= radius_km:
            results.append(WorkerDistance(worker=worker, distance_km=round(distance, 3)))

    results.sort(key=lambda item: item.distance_km)
    return results


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def update_status(
    db: AsyncSession,
    worker_id: uuid.UUID,
    status: WorkerStatus,
) -> Worker:
    stmt = (
        update(Worker)
        .where(Worker.id == worker_id)
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        raise WorkerNotFoundError(worker_id)
    logger.info("Worker %s status -> %s", worker_id, status.value)
    return await _reload(db, worker_id)


async def update_location(
    db: AsyncSession,
    worker_id: uuid.UUID,
    location: Optional[str],
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> Worker:
    """Overwrite the worker's location fields in a single statement.

    Only the fields that are provided are written; at least one of
    ``location`` or a latitude/longitude pair is required.
    """
    _validate_coordinates(latitude, longitude)
    values: dict[str, object] = {}
    if location is not None and location.strip():
        values["location"] = location.strip()
    if latitude is not None:
        values["latitude"] = latitude
        values["longitude"] = longitude
    if not values:
        raise WorkerValidationError("Location or latitude and longitude are required.")

    stmt = (
        update(Worker)
        .where(Worker.id == worker_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        raise WorkerNotFoundError(worker_id)
    logger.debug("Worker %s location updated: %s", worker_id, values)
    return await _reload(db, worker_id)


async def increment_click_count(db: AsyncSession, worker_id: uuid.UUID) -> None:
    """Add one to the worker's click counter without reading it first."""
    stmt = (
        update(Worker)
        .where(Worker.id == worker_id)
        .values(click_count=Worker.click_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        raise WorkerNotFoundError(worker_id)
