# auth/middleware.py
"""
FastAPI session-cookie plumbing.

Provides:
- Session cookie settings, set/clear helpers
- Helper dependencies for route handlers
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from fastapi import Depends, Request, Response

from auth.errors import AuthenticationError
from auth.service import AuthService

DEFAULT_SESSION_COOKIE_NAME = "auth_session"
DEFAULT_SESSION_COOKIE_MAX_AGE = 24 * 60 * 60  # 24 hours in seconds


@dataclass(frozen=True)
class CookieSettings:
    """Attributes of the session cookie."""
    name: str = DEFAULT_SESSION_COOKIE_NAME
    max_age: int = DEFAULT_SESSION_COOKIE_MAX_AGE
    secure: bool = True
    samesite: Literal["lax", "strict", "none"] = "strict"


def get_auth_service(request: Request) -> AuthService:
    """FastAPI dependency: the app's AuthService."""
    return request.app.state.auth_service


def get_cookie_settings(request: Request) -> CookieSettings:
    """FastAPI dependency: the app's cookie settings."""
    return request.app.state.cookie_settings


def get_session_token(
    request: Request,
    settings: CookieSettings = Depends(get_cookie_settings),
) -> Optional[str]:
    """Extract the session token from request cookies."""
    return request.cookies.get(settings.name) or None


def require_session_token(token: Optional[str] = Depends(get_session_token)) -> str:
    """
    FastAPI dependency: session token (required).

    Raises 401 if no cookie is present. Whether the token is still
    valid is decided by the AuthService.
    """
    if not token:
        raise AuthenticationError()
    return token


def set_session_cookie(response: Response, token: str, settings: CookieSettings) -> None:
    """
    Set (or refresh) the session cookie on a response.

    Re-issuing it on each authenticated request keeps the browser's
    expiry in step with the server's sliding window.
    """
    response.set_cookie(
        key=settings.name,
        value=token,
        max_age=settings.max_age,
        httponly=True,
        samesite=settings.samesite,
        secure=settings.secure,
    )


def clear_session_cookie(response: Response, settings: CookieSettings) -> None:
    """Clear session cookie from response."""
    response.delete_cookie(
        key=settings.name,
        httponly=True,
        samesite=settings.samesite,
        secure=settings.secure,
    )
