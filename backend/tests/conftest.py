from __future__ import annotations

import os

# Settings are read at import time by app.core.database; set them before any app import.
os.environ.setdefault("PORTFOLIO_CMS_JWT_SECRET", "test-only-secret-for-portfolio-cms-tokens-0123")
os.environ.setdefault("PORTFOLIO_CMS_POSTGRES_PASSWORD", "test-password")
os.environ.setdefault("PORTFOLIO_CMS_APP_ENV", "test")
os.environ.setdefault("PORTFOLIO_CMS_APP_DEBUG", "false")

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.config import Settings, get_settings  # noqa: E402
from app.core.database import Base  # noqa: E402
from app.core.security import ROLE_ADMIN, ROLE_USER, Actor  # noqa: E402
from app.services.case_study_service import CaseStudyService  # noqa: E402


def build_sqlite_engine(path: str | None = None) -> AsyncEngine:
    """In-memory engine on one shared connection, or a WAL file engine with a connection per session."""
    if path is None:
        engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(f"sqlite+aiosqlite:///{path}", connect_args={"timeout": 5})

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:
        # Let SQLAlchemy own BEGIN so SAVEPOINTs behave.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if path is not None:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def make_engine():
    return build_sqlite_engine


@pytest.fixture
def settings() -> Settings:
    return get_settings().model_copy(
        update={
            "storage_retry_attempts": 3,
            "storage_retry_min_wait_seconds": 0.0,
            "storage_retry_max_wait_seconds": 0.0,
            "confirm_attempts": 3,
            "confirm_wait_seconds": 0.0,
            "confirm_timeout_seconds": 2.0,
        }
    )


@pytest_asyncio.fixture
async def session_factory():
    engine = build_sqlite_engine()
    await create_schema(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def service(session_factory, settings) -> CaseStudyService:
    return CaseStudyService(session_factory, settings)


@pytest.fixture
def owner() -> Actor:
    return Actor(user_id=uuid.uuid4(), role=ROLE_USER)


@pytest.fixture
def stranger() -> Actor:
    return Actor(user_id=uuid.uuid4(), role=ROLE_USER)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id=uuid.uuid4(), role=ROLE_ADMIN)
