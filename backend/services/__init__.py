"""Business logic services."""

from .storage import (
    MediaUploader,
    MinioMediaUploader,
    UploadFailedError,
    UploadedMedia,
    build_media_url,
    delete_object,
    ensure_bucket,
    get_media_uploader,
    get_minio_client,
    object_key_from_url,
)

__all__ = [
    "get_minio_client",
    "ensure_bucket",
    "delete_object",
    "build_media_url",
    "object_key_from_url",
    "MediaUploader",
    "MinioMediaUploader",
    "UploadFailedError",
    "UploadedMedia",
    "get_media_uploader",
]
