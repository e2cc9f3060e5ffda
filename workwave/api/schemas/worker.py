"""
Pydantic v2 schemas for the Worker API
========================================

These schemas define the public API contract for worker registration,
lookups, status and location updates, and OTP verification.  Output
schemas use camelCase aliases to match the mobile and web clients.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from workwave.core.phone import is_valid_phone
from workwave.models import EMAIL_MAX_LENGTH, PHONE_MAX_LENGTH, WorkerStatus


# ---------------------------------------------------------------------------
# Shared camelCase config
# ---------------------------------------------------------------------------

def _to_camel(snake: str) -> str:
    parts = snake.split("_")
    return parts[0] + "".join(w.capitalize() for w in parts[1:])


class CamelModel(BaseModel):
    """Base model that serialises field names to camelCase."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=_to_camel,
    )


# ---------------------------------------------------------------------------
# Wrapper responses ({ message, data })
# ---------------------------------------------------------------------------

class DataResponse(BaseModel):
    """Generic envelope for responses."""
    message: str
    data: Any = None


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------

class WorkerOut(CamelModel):
    id: uuid.UUID
    name: str
    phone: str
    email: str
    photo_url: str = Field(alias="photoURL")
    profession: str
    experience: float
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: WorkerStatus
    click_count: int
    plan_type: Optional[str] = None
    plan_limit: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NearbyWorkerOut(WorkerOut):
    distance_km: float


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class SignInRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=EMAIL_MAX_LENGTH)
    phone: Optional[str] = Field(default=None, max_length=PHONE_MAX_LENGTH)

    @model_validator(mode="after")
    def _require_identifier(self) -> "SignInRequest":
        if not (self.email and self.email.strip()) and not (self.phone and self.phone.strip()):
            raise ValueError("Email or phone is required.")
        return self


class StatusUpdateRequest(BaseModel):
    status: WorkerStatus


class LocationUpdateRequest(BaseModel):
    location: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def _require_location(self) -> "LocationUpdateRequest":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Latitude and longitude must be provided together.")
        if not (self.location and self.location.strip()) and self.latitude is None:
            raise ValueError("Location or latitude and longitude are required.")
        return self


class GenerateOtpRequest(BaseModel):
    phone: str = Field(min_length=1, max_length=PHONE_MAX_LENGTH)

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Phone is required.")
        if not is_valid_phone("".join(value.split())):
            raise ValueError("Phone number is invalid.")
        return value


class VerifyOtpRequest(BaseModel):
    phone: str = Field(min_length=1, max_length=PHONE_MAX_LENGTH)
    otp: str = Field(min_length=1)
