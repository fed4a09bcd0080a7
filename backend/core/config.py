"""Application settings."""

from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PLACEHOLDER_SECRET_PREFIX = "change-me"
DEVELOPMENT_ENVIRONMENTS = frozenset({"local", "test"})


class Settings(BaseSettings):
    """Runtime configuration loaded from the environment or a local ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: str = "local"
    database_url: str = "sqlite+aiosqlite:///./clipshare.db"

    access_token_secret: str = "change-me-access-secret"
    refresh_token_secret: str = "change-me-refresh-secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_minutes: int = 60 * 24 * 10
    allow_insecure_http_cookies: bool = False
    revoke_sessions_on_password_change: bool = True

    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "clipshare-media"
    minio_secure: bool = False
    media_base_url: str = "http://localhost:9000"
    upload_max_bytes: int = 10 * 1024 * 1024

    @model_validator(mode="after")
    def _validate_token_secrets(self) -> "Settings":
        if not self.access_token_secret or not self.refresh_token_secret:
            raise ValueError("Token signing secrets must not be empty")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError(
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different"
            )
        if self.app_env.strip().lower() not in DEVELOPMENT_ENVIRONMENTS and any(
            secret.startswith(PLACEHOLDER_SECRET_PREFIX)
            for secret in (self.access_token_secret, self.refresh_token_secret)
        ):
            raise ValueError(
                "Placeholder token secrets are only allowed when APP_ENV is local or test"
            )
        return self


settings = Settings()
