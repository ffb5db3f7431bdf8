"""
Database Session Management

Async engine and session factory for the profile store, built through
the database adapter so the backend can be swapped without code changes.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from linkbio.core.setting import settings
from linkbio.db.sqlite_adapter import get_database_adapter

db_adapter = get_database_adapter()

engine = db_adapter.create_engine(settings.DATABASE_URL)

async_session_maker = async_sessionmaker(
    engine,
    class_=SQLModelAsyncSession,
    expire_on_commit=False,  # Prevents SQLAlchemy from expiring objects after commit
    autocommit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Create tables on startup."""
    await db_adapter.create_schema(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.

    Commits when the endpoint returns normally, rolls back on any
    exception, and always closes the session.

    Usage in FastAPI:
        @router.get("/endpoint")
        async def endpoint(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
