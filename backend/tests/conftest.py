"""Pytest fixtures for the clipshare backend."""

from collections.abc import AsyncIterator
from pathlib import Path
from uuid import uuid4

from alembic import command
from alembic.config import Config
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from core.config import settings
from services import UploadFailedError, UploadedMedia, build_media_url
from services.accounts import register_user
from services.auth import PublicUser


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))

    original_database_url = settings.database_url
    try:
        settings.database_url = database_url
        command.upgrade(alembic_cfg, "head")
    finally:
        settings.database_url = original_database_url


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "backend-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture()
async def test_engine(test_database_url: str) -> AsyncIterator:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = create_async_engine(
        test_database_url,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture()
async def unavailable_store_session() -> AsyncIterator[AsyncSession]:
    """Session bound to an empty in-memory database, so every query fails."""
    engine = create_async_engine("sqlite+aiosqlite://")
    async with async_sessionmaker(engine, expire_on_commit=False)() as session:
        yield session
    await engine.dispose()


class InMemoryUploader:
    """Media uploader double that records objects instead of calling MinIO."""

    def __init__(self) -> None:
        self.objects: dict[str, str] = {}
        self.deleted: list[str] = []
        self.fail_prefixes: set[str] = set()

    def upload(self, file_path, *, prefix: str) -> UploadedMedia:
        if prefix in self.fail_prefixes:
            raise UploadFailedError(f"Upload to {prefix} refused")
        object_key = f"{prefix}/{uuid4().hex}{Path(file_path).suffix}"
        self.objects[object_key] = str(file_path)
        return UploadedMedia(url=build_media_url(object_key), object_key=object_key)

    def delete(self, object_key: str) -> None:
        self.deleted.append(object_key)
        self.objects.pop(object_key, None)


@pytest.fixture()
def uploader() -> InMemoryUploader:
    return InMemoryUploader()


@pytest.fixture()
def avatar_file(tmp_path) -> Path:
    path = tmp_path / "avatar.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nfake-avatar")
    return path


def build_registration(**overrides) -> dict:
    suffix = uuid4().hex[:8]
    payload = {
        "full_name": "Alice Example",
        "email": f"alice_{suffix}@example.com",
        "username": f"alice_{suffix}",
        "password": "correct-pw",
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def register(db_session: AsyncSession, uploader: InMemoryUploader, avatar_file: Path):
    """Register an account through the real registration flow."""

    async def _register(**overrides) -> PublicUser:
        payload = {"avatar_path": avatar_file, **build_registration(**overrides)}
        return await register_user(db_session, uploader=uploader, **payload)

    return _register
