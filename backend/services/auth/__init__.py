"""Authentication domain services."""

from .cookies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    clear_token_cookies,
    cookies_require_https,
    extract_access_token,
    extract_refresh_token,
    set_token_cookies,
)
from .credentials import (
    DUPLICATE_ACCOUNT_DETAIL,
    create_user,
    get_user_by_id,
    update_password_hash,
)
from .identity_resolution import (
    find_user_by_identifier,
    normalize_email,
    normalize_username,
    registration_conflict_exists,
)
from .schemas import LoginResult, PublicUser, TokenResponse
from .sessions import (
    AuthContext,
    authenticate_access_token,
    change_password,
    login,
    logout,
    refresh,
)
from .token_store import (
    clear_refresh_token,
    hash_refresh_token,
    refresh_token_matches,
    rotate_refresh_token,
    store_refresh_token,
)
from .tokens import TokenClaims, TokenIssuer, TokenPair, get_token_issuer

__all__ = [
    "ACCESS_COOKIE",
    "REFRESH_COOKIE",
    "clear_token_cookies",
    "cookies_require_https",
    "set_token_cookies",
    "extract_access_token",
    "extract_refresh_token",
    "DUPLICATE_ACCOUNT_DETAIL",
    "create_user",
    "get_user_by_id",
    "update_password_hash",
    "normalize_email",
    "normalize_username",
    "find_user_by_identifier",
    "registration_conflict_exists",
    "PublicUser",
    "LoginResult",
    "TokenResponse",
    "AuthContext",
    "authenticate_access_token",
    "login",
    "logout",
    "refresh",
    "change_password",
    "hash_refresh_token",
    "refresh_token_matches",
    "store_refresh_token",
    "rotate_refresh_token",
    "clear_refresh_token",
    "TokenClaims",
    "TokenIssuer",
    "TokenPair",
    "get_token_issuer",
]
