"""
E2E test fixtures for the WorkWave backend.

Provides:
- An in-process FastAPI test app with the worker routes and error
  handlers registered
- httpx AsyncClient wired via ASGI transport (no network needed)
- One database session per request from the per-test SQLite database,
  mirroring the production ``get_db`` dependency

Firebase Storage and Twilio are replaced by the recording fakes from the
top-level conftest so the full route -> service -> DB flow is exercised.
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from workwave.core.kvstore import InMemoryKeyValueStore
from workwave.services.otpService import OtpVerifier

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

# ---------------------------------------------------------------------------
# FastAPI test application
# ---------------------------------------------------------------------------


def _create_test_app(
    session_factory: async_sessionmaker[AsyncSession],
    photo_sink,
    otp_verifier: OtpVerifier,
):
    """Build a FastAPI app with the worker routes registered and the
    collaborators overridden."""
    from fastapi import FastAPI

    from workwave.api.deps import get_db, get_otp_verifier, get_photo_sink
    from workwave.api.errors import register_exception_handlers
    from workwave.api.routes.workers import router as workers_router

    app = FastAPI(title="WorkWave Test")
    register_exception_handlers(app)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_photo_sink] = lambda: photo_sink
    app.dependency_overrides[get_otp_verifier] = lambda: otp_verifier

    app.include_router(workers_router, prefix="/api")
    return app


@pytest.fixture
def otp_verifier(sms_sender) -> OtpVerifier:
    return OtpVerifier(
        store=InMemoryKeyValueStore(),
        sms_sender=sms_sender,
        default_country_code="+91",
    )


@pytest_asyncio.fixture
async def client(
    session_factory, photo_sink, otp_verifier
) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient connected to the test app via ASGI transport."""
    app = _create_test_app(session_factory, photo_sink, otp_verifier)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def registration_form(**overrides) -> dict[str, str]:
    form = {
        "name": "Meera Nair",
        "phone": "9999999999",
        "email": "a@x.com",
        "profession": "Electrician",
        "experience": "4",
        "location": "Kochi",
    }
    form.update(overrides)
    return {key: value for key, value in form.items() if value is not None}


async def register_via_api(
    client: AsyncClient,
    photo: tuple[str, bytes, str] | None = ("meera.png", PNG_BYTES, "image/png"),
    **overrides,
):
    files = {"photo": photo} if photo is not None else None
    return await client.post("/api/workers", data=registration_form(**overrides), files=files)
