"""MinIO-backed media storage."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Protocol, runtime_checkable
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from core import settings

MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class UploadFailedError(Exception):
    """Raised when a local media file could not be stored."""


@dataclass(frozen=True, slots=True)
class UploadedMedia:
    url: str
    object_key: str


@runtime_checkable
class MediaUploader(Protocol):
    def upload(self, file_path: str | Path, *, prefix: str) -> UploadedMedia: ...

    def delete(self, object_key: str) -> None: ...


@lru_cache
def get_minio_client() -> Minio:
    """Return a cached MinIO client configured from settings."""
    endpoint = settings.minio_endpoint
    access_key = settings.minio_access_key
    secret_key = settings.minio_secret_key
    secure = settings.minio_secure

    return Minio(
        endpoint,
        access_key=access_key,
        secret_key=secret_key,
        secure=secure,
    )


def ensure_bucket(client: Minio | None = None) -> None:
    """Ensure the configured bucket exists."""
    client = client or get_minio_client()
    bucket_name = settings.minio_bucket

    if client.bucket_exists(bucket_name):  # pragma: no cover - network call
        return

    try:
        client.make_bucket(bucket_name)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - handle race conditions
        allowed_codes = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
        if exc.code not in allowed_codes:
            raise


def delete_object(object_key: str, client: Minio | None = None) -> None:
    """Delete an object from the configured bucket when it exists."""
    client = client or get_minio_client()
    try:
        client.remove_object(settings.minio_bucket, object_key)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - network call
        if exc.code not in MISSING_OBJECT_CODES:
            raise


def build_media_url(object_key: str) -> str:
    base_url = settings.media_base_url.rstrip("/")
    return f"{base_url}/{settings.minio_bucket}/{object_key}"


def object_key_from_url(url: str | None) -> str | None:
    """Return the bucket object key behind a URL produced by ``build_media_url``."""
    if not url:
        return None
    prefix = build_media_url("")
    if not url.startswith(prefix):
        return None
    object_key = url[len(prefix):]
    return object_key or None


class MinioMediaUploader:
    """Stores local files in the media bucket under a random object key."""

    def __init__(self, client: Minio | None = None, *, max_bytes: int | None = None) -> None:
        self._client = client
        self.max_bytes = settings.upload_max_bytes if max_bytes is None else max_bytes

    @property
    def client(self) -> Minio:
        if self._client is None:
            self._client = get_minio_client()
        return self._client

    def upload(self, file_path: str | Path, *, prefix: str) -> UploadedMedia:
        path = Path(file_path)
        if not path.is_file():
            raise UploadFailedError(f"Media file not found: {path.name or path}")

        size = path.stat().st_size
        if size == 0:
            raise UploadFailedError("Media file is empty")
        if size > self.max_bytes:
            raise UploadFailedError(
                f"Media file exceeds the {self.max_bytes} byte upload limit"
            )

        content_type = mimetypes.guess_type(path.name)[0] or DEFAULT_CONTENT_TYPE
        object_key = f"{prefix.strip('/')}/{uuid4().hex}{path.suffix.lower()}"
        try:
            ensure_bucket(self.client)
            self.client.fput_object(
                settings.minio_bucket,
                object_key,
                str(path),
                content_type=content_type,
            )
        except S3Error as exc:
            raise UploadFailedError(f"Media upload rejected: {exc.code}") from exc
        except OSError as exc:
            raise UploadFailedError("Media storage unavailable") from exc
        return UploadedMedia(url=build_media_url(object_key), object_key=object_key)

    def delete(self, object_key: str) -> None:
        delete_object(object_key, client=self.client)


@lru_cache
def get_media_uploader() -> MinioMediaUploader:
    return MinioMediaUploader()
