"""Database package: shared engine and session factory."""

from arqflow.db.base import Base, build_engine, close_db, get_session_factory, init_db

__all__ = [
    "Base",
    "build_engine",
    "close_db",
    "get_session_factory",
    "init_db",
]
