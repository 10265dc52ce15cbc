"""Mercato Infra Persistence: async SQLAlchemy engine and sessions."""

from mercato.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    dispose_engine,
    get_database_manager,
)

__all__ = [
    "DatabaseManager",
    "DatabaseSettings",
    "dispose_engine",
    "get_database_manager",
]
