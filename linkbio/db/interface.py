"""
Database Abstraction Interface

The profile store sits behind an adapter so the service can run on
SQLite locally and on a managed PostgreSQL in production without
touching services or endpoints.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import Pool
from sqlmodel import SQLModel


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    To add a new database backend:
    1. Create a new class inheriting from DatabaseAdapter
    2. Implement all abstract methods
    3. Update the factory function to return the new adapter
    """

    @abstractmethod
    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create and configure the async database engine.

        Args:
            database_url: Connection string for the database
            **kwargs: Additional engine configuration options

        Returns:
            Configured AsyncEngine instance
        """
        pass

    @abstractmethod
    def get_pool_class(self) -> Optional[type[Pool]]:
        """Connection pool class for this database type, or None for the default."""
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        pass

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        pass

    @abstractmethod
    def configure_connection(self, dbapi_connection: Any) -> None:
        """
        Apply per-connection settings right after a connection is opened.

        Args:
            dbapi_connection: Raw DBAPI connection
        """
        pass

    async def create_schema(self, engine: AsyncEngine) -> None:
        """Create all tables known to SQLModel metadata (idempotent)."""
        from linkbio.db import models  # noqa: F401  registers tables

        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
