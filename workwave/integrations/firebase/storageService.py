"""
Firebase Storage Photo Sink
=============================

Uploads worker photos to a Firebase Storage bucket and returns their
public URL.  Also deletes objects so a registration that fails after the
upload does not leave an orphaned photo behind.

Initialization:
  The Firebase Admin SDK is initialised lazily on first use. Credentials
  are loaded from one of two settings:
    - FIREBASE_SERVICE_ACCOUNT_PATH  -- path to a JSON service account file
    - FIREBASE_CREDENTIALS_JSON      -- raw JSON string of the service account
  The bucket comes from FIREBASE_STORAGE_BUCKET.

The Admin SDK is blocking, so every call runs in a worker thread via
``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Protocol

import firebase_admin
from firebase_admin import credentials, storage
from firebase_admin.exceptions import FirebaseError
from google.cloud.exceptions import GoogleCloudError, NotFound

from workwave.core.config import settings

logger = logging.getLogger(__name__)

_PUBLIC_URL_BASE = "https://storage.googleapis.com"


# ---------------------------------------------------------------------------
# Result types / errors
# ---------------------------------------------------------------------------

class PhotoUploadError(Exception):
    """Raised when an upload, finalization or delete fails."""
    pass


@dataclass(frozen=True)
class UploadedPhoto:
    """Where an uploaded photo landed."""

    object_name: str
    public_url: str


class PhotoSink(Protocol):
    async def upload(self, content: bytes, content_type: str, filename: str) -> UploadedPhoto: ...

    async def delete(self, object_name: str) -> None: ...


def build_object_name(filename: str, prefix: str | None = None) -> str:
    """``<prefix>/<uuid4>_<original filename>``; path parts are dropped."""
    base = PurePosixPath((filename or "photo").replace("\\", "/")).name or "photo"
    folder = (prefix if prefix is not None else settings.photo_prefix).strip("/")
    name = f"{uuid.uuid4()}_{base}"
    return f"{folder}/{name}" if folder else name


# ---------------------------------------------------------------------------
# Firebase Admin SDK initialisation (lazy singleton)
# ---------------------------------------------------------------------------

_firebase_app: firebase_admin.App | None = None


def _ensure_firebase_initialised() -> firebase_admin.App:
    """Initialise the Firebase Admin SDK if it has not been already.

    Raises:
        PhotoUploadError: If no credentials or bucket are configured.
    """
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    try:
        _firebase_app = firebase_admin.get_app()
        logger.info("Using existing Firebase Admin app")
        return _firebase_app
    except ValueError:
        pass

    if not settings.firebase_storage_bucket:
        raise PhotoUploadError("FIREBASE_STORAGE_BUCKET is not configured")

    if settings.firebase_service_account_path:
        logger.info(
            "Initialising Firebase Admin SDK from service account file: %s",
            settings.firebase_service_account_path,
        )
        cred = credentials.Certificate(settings.firebase_service_account_path)
    elif settings.firebase_credentials_json:
        logger.info("Initialising Firebase Admin SDK from JSON setting")
        cred = credentials.Certificate(json.loads(settings.firebase_credentials_json))
    else:
        raise PhotoUploadError(
            "Firebase credentials not configured. Set either "
            "FIREBASE_SERVICE_ACCOUNT_PATH or FIREBASE_CREDENTIALS_JSON."
        )

    _firebase_app = firebase_admin.initialize_app(
        cred, {"storageBucket": settings.firebase_storage_bucket}
    )
    logger.info("Firebase Admin SDK initialised for bucket %s", settings.firebase_storage_bucket)
    return _firebase_app


# ---------------------------------------------------------------------------
# Sink implementation
# ---------------------------------------------------------------------------

class FirebasePhotoSink:
    """Photo sink backed by a Firebase Storage bucket."""

    def __init__(self, bucket_name: str | None = None, prefix: str | None = None) -> None:
        self._bucket_name = bucket_name or settings.firebase_storage_bucket
        self._prefix = prefix

    def _bucket(self):
        app = _ensure_firebase_initialised()
        return storage.bucket(self._bucket_name or None, app=app)

    def _upload_sync(self, content: bytes, content_type: str, object_name: str) -> UploadedPhoto:
        bucket = self._bucket()
        blob = bucket.blob(object_name)
        blob.upload_from_string(content, content_type=content_type)
        blob.make_public()
        return UploadedPhoto(
            object_name=blob.name,
            public_url=f"{_PUBLIC_URL_BASE}/{bucket.name}/{blob.name}",
        )

    async def upload(self, content: bytes, content_type: str, filename: str) -> UploadedPhoto:
        object_name = build_object_name(filename, self._prefix)
        try:
            uploaded = await asyncio.to_thread(self._upload_sync, content, content_type, object_name)
        except (FirebaseError, GoogleCloudError, ValueError) as exc:
            logger.error("Firebase upload failed for %s: %s", object_name, exc, exc_info=True)
            raise PhotoUploadError("Failed to upload image.") from exc
        logger.info("Uploaded photo %s (%d bytes)", uploaded.object_name, len(content))
        return uploaded

    def _delete_sync(self, object_name: str) -> None:
        self._bucket().blob(object_name).delete()

    async def delete(self, object_name: str) -> None:
        try:
            await asyncio.to_thread(self._delete_sync, object_name)
        except NotFound:
            logger.info("Photo %s already absent", object_name)
        except (FirebaseError, GoogleCloudError, ValueError) as exc:
            raise PhotoUploadError(f"Failed to delete {object_name}") from exc
        else:
            logger.info("Deleted photo %s", object_name)
