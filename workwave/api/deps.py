"""
Shared FastAPI dependencies for the WorkWave backend.

Provides the async database session dependency used by all route handlers
and the external collaborators (photo sink, OTP verifier) as overridable
dependencies.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from workwave.core.config import settings
from workwave.core.kvstore import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from workwave.integrations.firebase import FirebasePhotoSink, PhotoSink
from workwave.integrations.sms import TwilioSmsSender
from workwave.services.otpService import OtpVerifier

# ---------------------------------------------------------------------------
# Async engine & session factory
# ---------------------------------------------------------------------------
# The engine is created once at module import time.  The session factory
# produces lightweight ``AsyncSession`` instances that are scoped to a single
# request via the ``get_db`` dependency below.
# ---------------------------------------------------------------------------


def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.sql_echo, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session that is committed when the request
    succeeds and rolled back when it raises."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DBSession = Annotated[AsyncSession, Depends(get_db)]


# ---------------------------------------------------------------------------
# External collaborators
# ---------------------------------------------------------------------------
# Created lazily and shared for the process lifetime.  Tests replace them
# through ``app.dependency_overrides``.
# ---------------------------------------------------------------------------

_photo_sink: PhotoSink | None = None
_otp_store: KeyValueStore | None = None
_otp_verifier: OtpVerifier | None = None


def get_photo_sink() -> PhotoSink:
    global _photo_sink
    if _photo_sink is None:
        _photo_sink = FirebasePhotoSink()
    return _photo_sink


def get_otp_store() -> KeyValueStore:
    global _otp_store
    if _otp_store is None:
        if settings.redis_url:
            _otp_store = RedisKeyValueStore.from_url(settings.redis_url)
        else:
            _otp_store = InMemoryKeyValueStore()
    return _otp_store


def get_otp_verifier() -> OtpVerifier:
    global _otp_verifier
    if _otp_verifier is None:
        _otp_verifier = OtpVerifier(
            store=get_otp_store(),
            sms_sender=TwilioSmsSender(),
            default_country_code=settings.default_country_code,
            ttl_seconds=settings.otp_ttl_seconds,
        )
    return _otp_verifier


async def close_collaborators() -> None:
    """Release connections held by shared collaborators.  Call on shutdown."""
    global _otp_store, _otp_verifier
    if isinstance(_otp_store, RedisKeyValueStore):
        await _otp_store.close()
    _otp_store = None
    _otp_verifier = None


PhotoSinkDep = Annotated[PhotoSink, Depends(get_photo_sink)]
OtpVerifierDep = Annotated[OtpVerifier, Depends(get_otp_verifier)]
