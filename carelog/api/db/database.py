from pathlib import Path
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from carelog.api.core.config import settings

SQLITE_DIR = Path(__file__).resolve().parent


def get_db_url(test_mode: bool = False) -> str:
    """
    Async database URL for the configured backend.

    ``DB_TYPE=sqlite`` (or ``test_mode``) keeps a file next to this module;
    anything else is treated as PostgreSQL through asyncpg.
    """
    if settings.DB_TYPE == "sqlite" or test_mode:
        db_file = "test.db" if test_mode else "carelog.sqlite3"
        return f"sqlite+aiosqlite:///{SQLITE_DIR / db_file}"

    return (
        f"postgresql+asyncpg://{settings.DB_USER}:{settings.DB_PASS}"
        f"@{settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}"
    )


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        return create_async_engine(
            url, echo=settings.DB_ECHO, connect_args={"check_same_thread": False}
        )
    return create_async_engine(url, echo=settings.DB_ECHO, pool_pre_ping=True)


DATABASE_URL = get_db_url()
engine = build_engine(DATABASE_URL)

# Conditional status updates re-read tickets explicitly, so nothing relies on
# expiry after commit.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = SQLModel


async def create_tables(bind: AsyncEngine = engine) -> None:
    # Register every table on the metadata before creating them.
    import carelog.api.modules.v1.hardware.models  # noqa: F401
    import carelog.api.modules.v1.notifications.models  # noqa: F401
    import carelog.api.modules.v1.organization.models  # noqa: F401
    import carelog.api.modules.v1.tickets.models  # noqa: F401
    import carelog.api.modules.v1.users.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session; anything left pending is committed at the end."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
