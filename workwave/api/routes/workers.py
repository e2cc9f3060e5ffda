"""
Worker API Routes
===================

REST endpoints for the worker registry: registration with photo upload,
sign-in lookup, status and location updates, phone OTP verification,
profession search, proximity search and click counting.

Routes:
  POST   /api/workers                                   -- Register (multipart)
  POST   /api/workers/signin                            -- Look up by email or phone
  PUT    /api/workers/update-status/{worker_id}         -- Set status
  PUT    /api/workers/update-location/{worker_id}       -- Set location / coordinates
  POST   /api/workers/generate-otp                      -- Send OTP to phone
  POST   /api/workers/verify-otp                        -- Verify phone + OTP
  GET    /api/workers/professions                       -- Distinct professions
  GET    /api/workers/profession/{profession}           -- Substring search
  GET    /api/workers/nearby                            -- Proximity search
  POST   /api/workers/{worker_id}/incrementCallCounter  -- Increment counter
  GET    /api/workers/{worker_id}                       -- Fetch one worker

Fixed paths are declared before ``/{worker_id}`` so they are matched first.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import PurePosixPath
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status

from workwave.api.deps import DBSession, OtpVerifierDep, PhotoSinkDep
from workwave.api.schemas.worker import (
    DataResponse,
    GenerateOtpRequest,
    LocationUpdateRequest,
    NearbyWorkerOut,
    SignInRequest,
    StatusUpdateRequest,
    VerifyOtpRequest,
    WorkerOut,
)
from workwave.core.config import settings
from workwave.integrations.firebase import PhotoUploadError
from workwave.integrations.sms import SmsDispatchError
from workwave.models import Worker
from workwave.services import otpService, workerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workers", tags=["Workers"])

_ALLOWED_PHOTO_TYPES: frozenset = frozenset({"image/jpeg", "image/jpg", "image/png"})
_ALLOWED_PHOTO_EXTENSIONS: frozenset = frozenset({".jpeg", ".jpg", ".png"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _worker_out(worker: Worker) -> dict:
    return WorkerOut.model_validate(worker).model_dump(by_alias=True, mode="json")


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _not_found(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _parse_float(value: Optional[str], field: str) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        raise _bad_request(f"{field} must be a number.")


async def _read_photo(photo: Optional[UploadFile]) -> Optional[workerService.PhotoUpload]:
    """Read and check the uploaded photo.  Only JPEG and PNG up to the
    configured size are accepted."""
    if photo is None or not photo.filename:
        return None

    content_type = (photo.content_type or "").lower()
    extension = PurePosixPath(photo.filename).suffix.lower()
    if content_type not in _ALLOWED_PHOTO_TYPES or extension not in _ALLOWED_PHOTO_EXTENSIONS:
        raise _bad_request("Only JPEG, JPG, and PNG images are allowed!")

    content = await photo.read(settings.max_photo_bytes + 1)
    if len(content) > settings.max_photo_bytes:
        raise _bad_request("Photo exceeds the maximum allowed size.")

    return workerService.PhotoUpload(
        content=content,
        filename=photo.filename,
        content_type=content_type,
    )


# ---------------------------------------------------------------------------
# POST /api/workers -- Register
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=DataResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new worker",
)
async def register_worker(
    db: DBSession,
    photo_sink: PhotoSinkDep,
    name: Optional[str] = Form(default=None),
    phone: Optional[str] = Form(default=None),
    email: Optional[str] = Form(default=None),
    profession: Optional[str] = Form(default=None),
    experience: Optional[str] = Form(default=None),
    location: Optional[str] = Form(default=None),
    latitude: Optional[str] = Form(default=None),
    longitude: Optional[str] = Form(default=None),
    photo: Optional[UploadFile] = File(default=None),
) -> DataResponse:
    fields = workerService.WorkerRegistration(
        name=name or "",
        phone=phone or "",
        email=email or "",
        profession=profession or "",
        experience=_parse_float(experience, "Experience"),
        location=location,
        latitude=_parse_float(latitude, "Latitude"),
        longitude=_parse_float(longitude, "Longitude"),
    )

    try:
        workerService.validate_registration(fields)
        upload = await _read_photo(photo)
        worker = await workerService.register(db, fields, upload, photo_sink)
    except (workerService.WorkerValidationError, workerService.DuplicateEmailError) as exc:
        raise _bad_request(str(exc))
    except PhotoUploadError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        )

    return DataResponse(message="Worker registered successfully.", data=_worker_out(worker))


# ---------------------------------------------------------------------------
# POST /api/workers/signin
# ---------------------------------------------------------------------------

@router.post("/signin", response_model=DataResponse, summary="Look up a worker by email or phone")
async def sign_in(body: SignInRequest, db: DBSession) -> DataResponse:
    worker = None
    if body.email and body.email.strip():
        worker = await workerService.find_by_email(db, body.email)
    if worker is None and body.phone and body.phone.strip():
        worker = await workerService.find_by_phone(db, body.phone)
    if worker is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Worker not found.")

    return DataResponse(message="Worker found.", data={"workerId": str(worker.id)})


# ---------------------------------------------------------------------------
# PUT /api/workers/update-status/{worker_id}
# ---------------------------------------------------------------------------

@router.put("/update-status/{worker_id}", response_model=DataResponse, summary="Set worker status")
async def update_status(
    worker_id: uuid.UUID,
    body: StatusUpdateRequest,
    db: DBSession,
) -> DataResponse:
    try:
        worker = await workerService.update_status(db, worker_id, body.status)
    except workerService.WorkerNotFoundError as exc:
        raise _not_found(exc)

    return DataResponse(message="Status updated successfully.", data=_worker_out(worker))


# ---------------------------------------------------------------------------
# PUT /api/workers/update-location/{worker_id}
# ---------------------------------------------------------------------------

@router.put("/update-location/{worker_id}", response_model=DataResponse, summary="Set worker location")
async def update_location(
    worker_id: uuid.UUID,
    body: LocationUpdateRequest,
    db: DBSession,
) -> DataResponse:
    try:
        worker = await workerService.update_location(
            db,
            worker_id,
            body.location,
            body.latitude,
            body.longitude,
        )
    except workerService.WorkerValidationError as exc:
        raise _bad_request(str(exc))
    except workerService.WorkerNotFoundError as exc:
        raise _not_found(exc)

    return DataResponse(message="Location updated successfully.", data=_worker_out(worker))


# ---------------------------------------------------------------------------
# POST /api/workers/generate-otp
# ---------------------------------------------------------------------------

@router.post("/generate-otp", response_model=DataResponse, summary="Send an OTP to a phone")
async def generate_otp(body: GenerateOtpRequest, verifier: OtpVerifierDep) -> DataResponse:
    try:
        await verifier.generate(body.phone)
    except SmsDispatchError as exc:
        logger.error("OTP dispatch failed for %s: %s", body.phone, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send OTP.",
        )

    return DataResponse(message="OTP sent successfully.", data={"phone": verifier.normalize(body.phone)})


# ---------------------------------------------------------------------------
# POST /api/workers/verify-otp
# ---------------------------------------------------------------------------

@router.post("/verify-otp", response_model=DataResponse, summary="Verify a phone OTP")
async def verify_otp(body: VerifyOtpRequest, verifier: OtpVerifierDep, db: DBSession) -> DataResponse:
    try:
        await verifier.verify(body.phone, body.otp)
    except otpService.OtpInvalidError as exc:
        raise _bad_request(str(exc))

    worker = await workerService.find_by_phone(db, verifier.normalize(body.phone))
    return DataResponse(
        message="OTP verified successfully.",
        data={
            "phone": verifier.normalize(body.phone),
            "workerId": str(worker.id) if worker else None,
        },
    )


# ---------------------------------------------------------------------------
# GET /api/workers/professions
# ---------------------------------------------------------------------------

@router.get("/professions", response_model=DataResponse, summary="Distinct profession list")
async def list_professions(db: DBSession) -> DataResponse:
    professions = await workerService.list_professions(db)
    return DataResponse(message="Professions retrieved.", data=professions)


# ---------------------------------------------------------------------------
# GET /api/workers/profession/{profession}
# ---------------------------------------------------------------------------

@router.get("/profession/{profession}", response_model=DataResponse, summary="Search by profession")
async def search_by_profession(profession: str, db: DBSession) -> DataResponse:
    if not profession.strip():
        raise _bad_request("Profession is required.")
    workers = await workerService.find_by_profession(db, profession)
    return DataResponse(
        message=f"Found {len(workers)} workers.",
        data=[_worker_out(w) for w in workers],
    )


# ---------------------------------------------------------------------------
# GET /api/workers/nearby
# ---------------------------------------------------------------------------

@router.get("/nearby", response_model=DataResponse, summary="Workers near a point")
async def nearby_workers(
    db: DBSession,
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    radius_km: float = Query(default=10.0, gt=0, le=500, alias="radiusKm"),
) -> DataResponse:
    try:
        matches = await workerService.find_nearby(db, latitude, longitude, radius_km)
    except workerService.WorkerValidationError as exc:
        raise _bad_request(str(exc))

    data = [
        NearbyWorkerOut(
            **WorkerOut.model_validate(match.worker).model_dump(),
            distance_km=match.distance_km,
        ).model_dump(by_alias=True, mode="json")
        for match in matches
    ]
    return DataResponse(message=f"Found {len(data)} workers.", data=data)


# ---------------------------------------------------------------------------
# POST /api/workers/{worker_id}/incrementCallCounter
# ---------------------------------------------------------------------------

@router.post(
    "/{worker_id}/incrementCallCounter",
    response_model=DataResponse,
    summary="Increment the worker's click counter",
)
async def increment_call_counter(worker_id: uuid.UUID, db: DBSession) -> DataResponse:
    try:
        await workerService.increment_click_count(db, worker_id)
    except workerService.WorkerNotFoundError as exc:
        raise _not_found(exc)

    return DataResponse(message="Click counter incremented.")


# ---------------------------------------------------------------------------
# GET /api/workers/{worker_id}
# ---------------------------------------------------------------------------

@router.get("/{worker_id}", response_model=DataResponse, summary="Fetch a worker")
async def get_worker(worker_id: uuid.UUID, db: DBSession) -> DataResponse:
    try:
        worker = await workerService.get_worker(db, worker_id)
    except workerService.WorkerNotFoundError as exc:
        raise _not_found(exc)

    return DataResponse(message="Worker retrieved.", data=_worker_out(worker))
