"""
Shared pytest fixtures for WorkWave backend tests.

Provides:
- A file-backed async SQLite database per test (so concurrent sessions
  see one another's commits)
- Fake photo sink and SMS sender that record calls instead of talking to
  Firebase Storage or Twilio
- Sample registration fields and photo bytes
"""

from __future__ import annotations

import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from workwave.integrations.firebase import PhotoUploadError, UploadedPhoto
from workwave.integrations.sms import SmsDispatchError
from workwave.models import Base
from workwave.services.workerService import PhotoUpload, WorkerRegistration

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'workwave.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# External collaborators
# ---------------------------------------------------------------------------


class FakePhotoSink:
    """Records uploads and deletes.  Set ``fail_upload`` to simulate an outage."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, str, int]] = []
        self.deleted: list[str] = []
        self.fail_upload = False

    async def upload(self, content: bytes, content_type: str, filename: str) -> UploadedPhoto:
        if self.fail_upload:
            raise PhotoUploadError("Failed to upload image.")
        object_name = f"worker_photos/{uuid.uuid4()}_{filename}"
        self.uploads.append((object_name, content_type, len(content)))
        return UploadedPhoto(
            object_name=object_name,
            public_url=f"https://storage.googleapis.com/test-bucket/{object_name}",
        )

    async def delete(self, object_name: str) -> None:
        self.deleted.append(object_name)


class FakeSmsSender:
    """Captures outgoing messages.  Set ``fail`` to simulate a provider error."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send(self, to: str, body: str) -> str:
        if self.fail:
            raise SmsDispatchError("SMS provider rejected message: HTTP 400", status="400")
        self.sent.append((to, body))
        return f"SM{len(self.sent):032d}"


@pytest.fixture
def photo_sink() -> FakePhotoSink:
    return FakePhotoSink()


@pytest.fixture
def sms_sender() -> FakeSmsSender:
    return FakeSmsSender()


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def registration() -> WorkerRegistration:
    return WorkerRegistration(
        name="Ravi Kumar",
        phone="9876543210",
        email="Ravi@Example.com",
        profession="Plumber",
        experience=5,
        location="Chennai",
    )


@pytest.fixture
def photo() -> PhotoUpload:
    return PhotoUpload(content=PNG_BYTES, filename="ravi.png", content_type="image/png")
