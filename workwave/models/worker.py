"""
SQLAlchemy model for the workers table.
Corresponds to alembic revision 0001_create_workers.
"""

import enum
from typing import Optional

from sqlalchemy import Enum, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

DEFAULT_LOCATION = "Location not set"

# Column widths; request validation checks against these
NAME_MAX_LENGTH = 200
PHONE_MAX_LENGTH = 20
EMAIL_MAX_LENGTH = 320
PROFESSION_MAX_LENGTH = 200


class WorkerStatus(str, enum.Enum):
    ACTIVE = "Active"
    BUSY = "Busy"


class Worker(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "workers"
    __table_args__ = (
        Index("ix_workers_profession", "profession"),
        Index("ix_workers_lat_lon", "latitude", "longitude"),
    )

    # Contact
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    phone: Mapped[str] = mapped_column(String(PHONE_MAX_LENGTH), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH), unique=True, nullable=False)
    photo_url: Mapped[str] = mapped_column(Text, nullable=False)

    # Work
    profession: Mapped[str] = mapped_column(String(PROFESSION_MAX_LENGTH), nullable=False)
    experience: Mapped[float] = mapped_column(Float, nullable=False)

    # Location
    location: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, default=DEFAULT_LOCATION
    )
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Status
    status: Mapped[WorkerStatus] = mapped_column(
        Enum(WorkerStatus, name="worker_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=WorkerStatus.ACTIVE,
    )
    click_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Plan (stored, not enforced)
    plan_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    plan_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Worker(id={self.id}, email={self.email}, status={self.status})>"
