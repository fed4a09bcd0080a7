"""Account registration, profile reads and profile/media updates."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Literal

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core import (
    ConflictError,
    InternalFailureError,
    NotFoundError,
    ServiceError,
    ValidationError,
    hash_password,
)
from db.errors import is_unique_violation, store_failures
from models import User

from .auth.credentials import DUPLICATE_ACCOUNT_DETAIL, create_user, get_user_by_id
from .auth.identity_resolution import (
    normalize_email,
    normalize_username,
    registration_conflict_exists,
)
from .auth.schemas import PublicUser
from .auth.sessions import AuthContext
from .storage import (
    MediaUploader,
    UploadFailedError,
    UploadedMedia,
    get_media_uploader,
    object_key_from_url,
)

MAX_USERNAME_LENGTH = 30
MAX_FULL_NAME_LENGTH = 80
AVATAR_PREFIX = "avatars"
COVER_IMAGE_PREFIX = "covers"
REGISTRATION_FAILED_DETAIL = "Something went wrong while registering the user"
MediaField = Literal["avatar_url", "cover_image_url"]
logger = logging.getLogger(__name__)

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)


def _validate_full_name(value: str | None) -> str:
    normalized = (value or "").strip()
    if not normalized:
        raise ValidationError("Full name is required")
    if len(normalized) > MAX_FULL_NAME_LENGTH:
        raise ValidationError(
            f"Full name must be at most {MAX_FULL_NAME_LENGTH} characters"
        )
    return normalized


def _validate_username(value: str | None) -> str:
    normalized = normalize_username(value or "")
    if not normalized:
        raise ValidationError("Username is required")
    if "@" in normalized:
        raise ValidationError("Username cannot contain '@'")
    if len(normalized) > MAX_USERNAME_LENGTH:
        raise ValidationError(
            f"Username must be at most {MAX_USERNAME_LENGTH} characters"
        )
    return normalized


def _validate_email(value: str | None) -> str:
    normalized = normalize_email(value or "")
    if not normalized:
        raise ValidationError("Email is required")
    try:
        _email_adapter.validate_python(normalized)
    except PydanticValidationError as exc:
        raise ValidationError("Email address is invalid") from exc
    return normalized


def _require_file_path(value: str | Path | None, *, label: str) -> str | Path:
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} file is required")
    return value


async def _upload_media(
    uploader: MediaUploader,
    file_path: str | Path,
    *,
    prefix: str,
    label: str,
) -> UploadedMedia:
    try:
        return await asyncio.to_thread(uploader.upload, file_path, prefix=prefix)
    except UploadFailedError as exc:
        logger.warning(
            "Media upload failed",
            extra={"prefix": prefix, "error": str(exc)},
        )
        raise ValidationError(f"{label} upload failed") from exc


async def _discard_media(uploader: MediaUploader, object_keys: Iterable[str]) -> None:
    for object_key in object_keys:
        try:
            await asyncio.to_thread(uploader.delete, object_key)
        except Exception as cleanup_error:
            logger.warning(
                "Failed to cleanup media object",
                extra={"object_key": object_key},
                exc_info=cleanup_error,
            )


async def _load_user(session: AsyncSession, context: AuthContext) -> User:
    async with store_failures(session, detail="Failed to load account"):
        user = await get_user_by_id(session, context.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def register_user(
    session: AsyncSession,
    *,
    full_name: str,
    email: str,
    username: str,
    password: str,
    avatar_path: str | Path | None,
    cover_image_path: str | Path | None = None,
    uploader: MediaUploader | None = None,
) -> PublicUser:
    """Create an account after validation, uniqueness check and media upload."""
    normalized_full_name = _validate_full_name(full_name)
    normalized_username = _validate_username(username)
    normalized_email = _validate_email(email)
    if not password or not password.strip():
        raise ValidationError("Password is required")
    avatar_file = _require_file_path(avatar_path, label="Avatar")

    async with store_failures(session, detail=REGISTRATION_FAILED_DETAIL):
        conflict = await registration_conflict_exists(
            session,
            username=normalized_username,
            normalized_email=normalized_email,
        )
    if conflict:
        raise ConflictError(DUPLICATE_ACCOUNT_DETAIL)

    password_hash = hash_password(password)
    media_uploader = uploader or get_media_uploader()

    avatar = await _upload_media(
        media_uploader,
        avatar_file,
        prefix=AVATAR_PREFIX,
        label="Avatar",
    )
    uploaded_keys = [avatar.object_key]
    try:
        cover_image_url: str | None = None
        if cover_image_path is not None and str(cover_image_path).strip():
            cover_image = await _upload_media(
                media_uploader,
                cover_image_path,
                prefix=COVER_IMAGE_PREFIX,
                label="Cover image",
            )
            uploaded_keys.append(cover_image.object_key)
            cover_image_url = cover_image.url

        user = await create_user(
            session,
            username=normalized_username,
            email=normalized_email,
            full_name=normalized_full_name,
            password_hash=password_hash,
            avatar_url=avatar.url,
            cover_image_url=cover_image_url,
        )
    except ServiceError:
        await _discard_media(media_uploader, uploaded_keys)
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        await _discard_media(media_uploader, uploaded_keys)
        raise InternalFailureError(REGISTRATION_FAILED_DETAIL) from exc

    logger.info("User registered", extra={"user_id": user.id})
    return PublicUser.model_validate(user)


async def get_current_user(session: AsyncSession, context: AuthContext) -> PublicUser:
    return PublicUser.model_validate(await _load_user(session, context))


async def update_account_details(
    session: AsyncSession,
    context: AuthContext,
    *,
    username: str | None = None,
    full_name: str | None = None,
) -> PublicUser:
    if username is None and full_name is None:
        raise ValidationError("Username or full name is required")

    normalized_username = _validate_username(username) if username is not None else None
    normalized_full_name = _validate_full_name(full_name) if full_name is not None else None

    user = await _load_user(session, context)
    if normalized_username is not None:
        user.username = normalized_username
    if normalized_full_name is not None:
        user.full_name = normalized_full_name

    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise ConflictError(DUPLICATE_ACCOUNT_DETAIL) from exc
        raise InternalFailureError("Failed to update account details") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise InternalFailureError("Failed to update account details") from exc
    async with store_failures(session, detail="Failed to update account details"):
        await session.refresh(user)
    return PublicUser.model_validate(user)


async def _replace_media(
    session: AsyncSession,
    context: AuthContext,
    file_path: str | Path | None,
    *,
    field: MediaField,
    prefix: str,
    label: str,
    uploader: MediaUploader | None,
) -> PublicUser:
    media_file = _require_file_path(file_path, label=label)
    user = await _load_user(session, context)
    previous_url: str | None = getattr(user, field)

    media_uploader = uploader or get_media_uploader()
    uploaded = await _upload_media(media_uploader, media_file, prefix=prefix, label=label)

    setattr(user, field, uploaded.url)
    session.add(user)
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        await _discard_media(media_uploader, [uploaded.object_key])
        raise InternalFailureError(f"Failed to update {label.lower()}") from exc
    async with store_failures(session, detail=f"Failed to update {label.lower()}"):
        await session.refresh(user)

    previous_key = object_key_from_url(previous_url)
    if previous_key is not None and previous_key != uploaded.object_key:
        await _discard_media(media_uploader, [previous_key])
    return PublicUser.model_validate(user)


async def update_avatar(
    session: AsyncSession,
    context: AuthContext,
    avatar_path: str | Path | None,
    *,
    uploader: MediaUploader | None = None,
) -> PublicUser:
    return await _replace_media(
        session,
        context,
        avatar_path,
        field="avatar_url",
        prefix=AVATAR_PREFIX,
        label="Avatar",
        uploader=uploader,
    )


async def update_cover_image(
    session: AsyncSession,
    context: AuthContext,
    cover_image_path: str | Path | None,
    *,
    uploader: MediaUploader | None = None,
) -> PublicUser:
    return await _replace_media(
        session,
        context,
        cover_image_path,
        field="cover_image_url",
        prefix=COVER_IMAGE_PREFIX,
        label="Cover image",
        uploader=uploader,
    )
