"""
Firebase Storage integration
==============================

Public re-exports for the worker photo upload sink.
"""

from .storageService import (
    FirebasePhotoSink,
    PhotoSink,
    PhotoUploadError,
    UploadedPhoto,
    build_object_name,
)

__all__ = [
    "FirebasePhotoSink",
    "PhotoSink",
    "PhotoUploadError",
    "UploadedPhoto",
    "build_object_name",
]
