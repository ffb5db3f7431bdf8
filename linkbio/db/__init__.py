"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter: SQLite-specific implementation (default)
- Session management: engine, session factory and the get_session dependency
"""

from linkbio.db.interface import DatabaseAdapter
from linkbio.db.session import get_session, async_session_maker, engine, init_db

__all__ = [
    "DatabaseAdapter",
    "get_session",
    "async_session_maker",
    "engine",
    "init_db",
]
