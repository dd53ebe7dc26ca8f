# auth/errors.py
"""
Error taxonomy for the authentication workflow.

Every error carries the HTTP status it maps to and a list of
user-facing messages. Internal details never go into messages.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union


class AuthError(Exception):
    """Base authentication/profile error."""

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, messages: Optional[Union[str, Iterable[str]]] = None):
        if messages is None:
            messages = [self.default_message]
        elif isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages) or [self.default_message]
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return self.messages[0]


class ValidationError(AuthError):
    """Malformed or policy-violating input."""

    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(AuthError):
    """Bad credentials, or a missing/expired/invalid session."""

    status_code = 401
    default_message = "Authentication required"


class NotFoundError(AuthError):
    """Referenced entity no longer exists."""

    status_code = 404
    default_message = "User not found"


class ConflictError(AuthError):
    """Uniqueness violation (e.g. email already in use)."""

    status_code = 409
    default_message = "Email is already in use"


class InternalError(AuthError):
    """Unexpected I/O or storage failure."""

    status_code = 500
