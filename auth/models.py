# auth/models.py
"""
User and Session models for authentication.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional
import hashlib
import secrets
import uuid

# Session tokens carry 256 bits of randomness
SESSION_TOKEN_BYTES = 32
DEFAULT_SESSION_IDLE = timedelta(hours=24)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """Lowercase and strip an email so lookups and uniqueness agree."""
    return email.strip().lower()


@dataclass
class User:
    """
    User account model.

    Attributes:
        id: Unique user ID (UUID)
        email: User's email (unique, used for login)
        password_hash: Bcrypt-hashed password
        first_name: Optional display name
        last_name: Optional display name
        profile_picture: Public reference to the stored picture, or None
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """
    id: str
    email: str
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        email: str,
        password_hash: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """Create a new user with generated ID."""
        now = utcnow()
        return cls(
            id=str(uuid.uuid4()),
            email=normalize_email(email),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            profile_picture=None,
            created_at=now,
            updated_at=now,
        )

    def profile(self) -> dict:
        """Public profile projection returned by login, /me and profile updates."""
        return {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "profile_picture": self.profile_picture,
        }


def hash_token(token: str) -> str:
    """Digest stored in place of the raw session token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_token() -> str:
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


@dataclass
class Session:
    """
    User session model.

    Attributes:
        token: Opaque session token (cookie value, never persisted raw)
        user_id: Associated user ID
        issued_at: Session creation timestamp
        expires_at: Session expiration timestamp (slides on use)
        ip_address: Client IP (optional, for audit)
        user_agent: Client user agent (optional, for audit)
    """
    token: str
    user_id: str
    issued_at: datetime = field(default_factory=utcnow)
    expires_at: datetime = field(default_factory=lambda: utcnow() + DEFAULT_SESSION_IDLE)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def new(
        cls,
        user_id: str,
        idle_timeout: timedelta = DEFAULT_SESSION_IDLE,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Session:
        """Create a new session with a fresh random token."""
        now = utcnow()
        return cls(
            token=generate_token(),
            user_id=user_id,
            issued_at=now,
            expires_at=now + idle_timeout,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    @property
    def token_hash(self) -> str:
        return hash_token(self.token)

    @property
    def is_valid(self) -> bool:
        """Check if session is still valid (not expired)."""
        return utcnow() < self.expires_at
