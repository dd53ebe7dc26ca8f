# auth/__init__.py
"""
Authentication module.

Provides:
- User model with email/password auth
- Session management with HTTP-only cookies
- Password hashing with bcrypt and a configurable strength policy
- The register/login/profile workflow (auth.service)
"""

from auth.errors import (
    AuthError,
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from auth.models import User, Session
from auth.password import CredentialValidator, PasswordPolicy
from auth.sessions import SessionManager
from auth.store import CredentialStore, SqliteCredentialStore

__all__ = [
    "AuthError",
    "AuthenticationError",
    "ConflictError",
    "InternalError",
    "NotFoundError",
    "ValidationError",
    "User",
    "Session",
    "CredentialValidator",
    "PasswordPolicy",
    "SessionManager",
    "CredentialStore",
    "SqliteCredentialStore",
]
