"""Core configuration, errors and security primitives."""

from .config import Settings, settings
from .errors import (
    ConflictError,
    InternalFailureError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
    error_response,
)
from .security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    InvalidTokenError,
    decode_token,
    encode_token,
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    "Settings",
    "settings",
    "ServiceError",
    "ValidationError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "InternalFailureError",
    "error_response",
    "ACCESS_TOKEN_TYPE",
    "REFRESH_TOKEN_TYPE",
    "InvalidTokenError",
    "hash_password",
    "verify_password",
    "needs_rehash",
    "encode_token",
    "decode_token",
]
