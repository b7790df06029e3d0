"""
Storage module for PulseCheck Brain.

Provides persistent storage for:
- Escalation conditions (read-only, admin-authored)
- Escalation records (append-only incident audit trail)
- Conversation safety projection
"""

from .config import DatabaseConfig, db_settings
from .database import DatabasePool, get_db_pool
from .exceptions import (
    StorageError,
    DatabaseUnavailableError,
    RepositoryError,
    PersistenceError,
    ProjectionUpdateError,
)

__all__ = [
    "DatabaseConfig",
    "db_settings",
    "DatabasePool",
    "get_db_pool",
    "StorageError",
    "DatabaseUnavailableError",
    "RepositoryError",
    "PersistenceError",
    "ProjectionUpdateError",
]
