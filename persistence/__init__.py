# persistence/__init__.py
"""
Persistence layer.

Provides SQLite-backed storage for:
- User accounts
- Server-side sessions
"""

from persistence.db import Database, DEFAULT_DB_PATH

__all__ = [
    "Database",
    "DEFAULT_DB_PATH",
]
