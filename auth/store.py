# auth/store.py
"""
Credential store: persistence of user records.

The workflow only depends on the narrow CredentialStore protocol;
SqliteCredentialStore is the concrete implementation.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional, Protocol

from auth.errors import ConflictError, InternalError
from auth.models import User, normalize_email, utcnow
from persistence.db import Database

_logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """User record persistence, looked up by id or unique email."""

    def get_by_id(self, user_id: str) -> Optional[User]: ...

    def get_by_email(self, email: str) -> Optional[User]: ...

    def add(self, user: User) -> None: ...

    def update(self, user: User) -> None: ...

    def delete(self, user_id: str) -> bool: ...


def _row_to_user(row) -> User:
    """Convert a database row to a User object."""
    return User(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        profile_picture=row["profile_picture"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class SqliteCredentialStore:
    """CredentialStore backed by the users table."""

    def __init__(self, db: Database):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[User]:
        """
        Get user by ID.

        Returns:
            User if found, None otherwise
        """
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()

        return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email address (case-insensitive).

        Returns:
            User if found, None otherwise
        """
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?",
                (normalize_email(email),),
            ).fetchone()

        return _row_to_user(row) if row else None

    def add(self, user: User) -> None:
        """
        Insert a new user.

        Raises:
            ConflictError: If the email is already registered
        """
        try:
            with self.db.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO users (
                        id, email, password_hash, first_name, last_name,
                        profile_picture, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user.id,
                        user.email,
                        user.password_hash,
                        user.first_name,
                        user.last_name,
                        user.profile_picture,
                        user.created_at.isoformat(),
                        user.updated_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ConflictError("Email is already in use") from e

    def update(self, user: User) -> None:
        """
        Persist the mutable fields of an existing user.

        Raises:
            ConflictError: If the new email belongs to another user
            InternalError: If the row no longer exists
        """
        user.updated_at = utcnow()
        try:
            with self.db.connect() as conn:
                cursor = conn.execute(
                    """
                    UPDATE users
                    SET email = ?, first_name = ?, last_name = ?,
                        profile_picture = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        user.email,
                        user.first_name,
                        user.last_name,
                        user.profile_picture,
                        user.updated_at.isoformat(),
                        user.id,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ConflictError("Email is already in use") from e

        if cursor.rowcount == 0:
            _logger.error(f"Update for missing user: {user.id}")
            raise InternalError()

    def delete(self, user_id: str) -> bool:
        """Delete a user. Returns True if a row was removed."""
        with self.db.connect() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            return cursor.rowcount > 0
