# auth/sessions.py
"""
Server-side session management.

Tokens are random (secrets.token_urlsafe) and only their SHA-256
digest is stored, so a leaked database does not yield usable cookies.
Expired and unknown tokens are indistinguishable to callers.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from auth.models import DEFAULT_SESSION_IDLE, Session, hash_token, utcnow
from persistence.db import Database

_logger = logging.getLogger(__name__)


class SessionManager:
    """Issue, resolve, renew and revoke sessions."""

    def __init__(self, db: Database, idle_timeout: timedelta = DEFAULT_SESSION_IDLE):
        self.db = db
        self.idle_timeout = idle_timeout

    def issue(
        self,
        user_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Session:
        """
        Create a new session for a user.

        Returns:
            Created Session object (carries the raw token for the cookie)
        """
        session = Session.new(
            user_id=user_id,
            idle_timeout=self.idle_timeout,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO sessions (token_hash, user_id, issued_at, expires_at, ip_address, user_agent)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    session.token_hash,
                    session.user_id,
                    session.issued_at.isoformat(),
                    session.expires_at.isoformat(),
                    session.ip_address,
                    session.user_agent,
                ),
            )

        _logger.debug(f"Created session for user: {user_id}")
        return session

    def resolve(self, token: Optional[str]) -> Optional[str]:
        """
        Resolve a token to its user ID.

        Returns:
            User ID if the session exists and has not expired, None otherwise
        """
        if not token:
            return None

        token_hash = hash_token(token)
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT user_id, expires_at FROM sessions WHERE token_hash = ?",
                (token_hash,),
            ).fetchone()

        if not row:
            return None

        session = Session(
            token=token,
            user_id=row["user_id"],
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )
        if not session.is_valid:
            # Clean up expired session
            self._delete(token_hash)
            return None

        return session.user_id

    def touch(self, token: str) -> bool:
        """
        Slide the expiry of a live session forward by the idle timeout.

        Concurrent touches are last-writer-wins.

        Returns:
            True if a live session was renewed
        """
        now = utcnow()
        with self.db.connect() as conn:
            cursor = conn.execute(
                "UPDATE sessions SET expires_at = ? WHERE token_hash = ? AND expires_at > ?",
                (
                    (now + self.idle_timeout).isoformat(),
                    hash_token(token),
                    now.isoformat(),
                ),
            )
            return cursor.rowcount > 0

    def revoke(self, token: str) -> bool:
        """
        Revoke (delete) a session.

        Returns:
            True if deleted, False if not found
        """
        return self._delete(hash_token(token))

    def revoke_user(self, user_id: str) -> int:
        """
        Revoke all sessions for a user.

        Returns:
            Number of sessions revoked
        """
        with self.db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM sessions WHERE user_id = ?",
                (user_id,),
            )
            return cursor.rowcount

    def cleanup_expired(self) -> int:
        """
        Remove expired sessions from the database.

        Returns:
            Number of sessions cleaned up
        """
        with self.db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM sessions WHERE expires_at <= ?",
                (utcnow().isoformat(),),
            )
            count = cursor.rowcount

        if count > 0:
            _logger.info(f"Cleaned up {count} expired sessions")

        return count

    def _delete(self, token_hash: str) -> bool:
        with self.db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM sessions WHERE token_hash = ?",
                (token_hash,),
            )
            return cursor.rowcount > 0
