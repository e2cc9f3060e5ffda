"""
WorkWave SQLAlchemy Models
=============================

Central import point for all ORM models. Import ``Base`` from here for
Alembic auto-generation and for the ``create_all`` convenience in tests.

Usage::

    from workwave.models import Base, Worker
"""

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from .worker import (
    DEFAULT_LOCATION,
    EMAIL_MAX_LENGTH,
    NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    PROFESSION_MAX_LENGTH,
    Worker,
    WorkerStatus,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "DEFAULT_LOCATION",
    "EMAIL_MAX_LENGTH",
    "NAME_MAX_LENGTH",
    "PHONE_MAX_LENGTH",
    "PROFESSION_MAX_LENGTH",
    "Worker",
    "WorkerStatus",
]
