# auth/service.py
"""
Authentication workflow.

Handles:
- User registration and login
- Session-based identity resolution
- Profile updates (with re-login on email change)
- Profile picture replacement
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from assets.store import ProfileAssetStore, UploadPolicy
from auth.errors import (
    AuthError,
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from auth.models import Session, User, normalize_email
from auth.password import CredentialValidator
from auth.sessions import SessionManager
from auth.store import CredentialStore

_logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class LoginResult:
    session: Session
    user: User


@dataclass
class ProfileUpdateResult:
    user: User
    require_relogin: bool = False


class AuthService:
    """Orchestrates credentials, sessions and profile assets."""

    def __init__(
        self,
        store: CredentialStore,
        validator: CredentialValidator,
        sessions: SessionManager,
        assets: ProfileAssetStore,
        upload_policy: Optional[UploadPolicy] = None,
    ):
        self.store = store
        self.validator = validator
        self.sessions = sessions
        self.assets = assets
        self.upload_policy = upload_policy or UploadPolicy()

    # -------------------------------------------------------------------------
    # Registration and login
    # -------------------------------------------------------------------------

    def register(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """
        Create a new user account. Does not log the user in.

        Raises:
            ValidationError: One message per violated rule (taken email,
                each failed password requirement)
            ConflictError: If a concurrent registration won the email
        """
        email = normalize_email(email)

        errors = []
        if self.store.get_by_email(email):
            errors.append("Email is already taken")
        errors.extend(self.validator.check_strength(password))
        if errors:
            _logger.info(f"Registration rejected for {email}: {len(errors)} violation(s)")
            raise ValidationError(errors)

        user = User.new(
            email=email,
            password_hash=self.validator.hash(password),
            first_name=first_name,
            last_name=last_name,
        )
        self.store.add(user)

        _logger.info(f"Created user: {email}")
        return user

    def login(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> LoginResult:
        """
        Verify credentials and open a new session.

        Raises:
            AuthenticationError: Same message for unknown email and wrong password
        """
        user = self.store.get_by_email(email)

        if not user:
            _logger.warning(f"Login attempt for non-existent user: {normalize_email(email)}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not self.validator.verify(password, user.password_hash):
            _logger.warning(f"Invalid password for user: {user.email}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        session = self.sessions.issue(user.id, ip_address=ip_address, user_agent=user_agent)
        _logger.info(f"User logged in: {user.email}")
        return LoginResult(session=session, user=user)

    # -------------------------------------------------------------------------
    # Session-scoped operations
    # -------------------------------------------------------------------------

    def authenticate(self, token: Optional[str]) -> str:
        """
        Resolve a session token to a user ID and slide its expiry.

        Raises:
            AuthenticationError: Missing, unknown or expired token
        """
        user_id = self.sessions.resolve(token)
        if user_id is None:
            raise AuthenticationError()
        self.sessions.touch(token)
        return user_id

    def logout(self, token: Optional[str]) -> None:
        """Revoke the session. Requires a live session."""
        user_id = self.sessions.resolve(token)
        if user_id is None:
            raise AuthenticationError()
        self.sessions.revoke(token)
        _logger.info(f"User logged out: {user_id}")

    def get_current_user(self, token: Optional[str]) -> User:
        """
        Resolve the session to its user.

        Raises:
            AuthenticationError: No valid session
            NotFoundError: Session is valid but the user record is gone
        """
        user_id = self.authenticate(token)
        return self._load_user(user_id)

    def update_profile(
        self,
        token: Optional[str],
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> ProfileUpdateResult:
        """
        Replace the caller's email and names.

        The actor comes from the session, never from the body. Changing
        the email revokes every session of the user.

        Raises:
            ConflictError: New email belongs to another user
        """
        user = self.get_current_user(token)
        new_email = normalize_email(email)
        email_changed = new_email != user.email

        if email_changed:
            existing = self.store.get_by_email(new_email)
            if existing is not None and existing.id != user.id:
                _logger.info(f"Email change rejected for user {user.id}: address in use")
                raise ConflictError("Email is already in use")

        user.email = new_email
        user.first_name = first_name
        user.last_name = last_name
        self.store.update(user)

        if email_changed:
            revoked = self.sessions.revoke_user(user.id)
            _logger.info(f"Email changed for user {user.id}; revoked {revoked} session(s)")
            return ProfileUpdateResult(user=user, require_relogin=True)

        return ProfileUpdateResult(user=user)

    def upload_profile_picture(
        self,
        token: Optional[str],
        data: bytes,
        filename: Optional[str],
        declared_size: Optional[int] = None,
    ) -> str:
        """
        Replace the caller's profile picture.

        The new file is fully written before the reference is swapped;
        the old file is deleted afterwards on a best-effort basis.

        Returns:
            Public reference of the new picture

        Raises:
            ValidationError: Empty payload, disallowed extension, too large,
                or content that is not the declared image type
            InternalError: Write or reference update failed
        """
        user = self.get_current_user(token)
        asset = self.upload_policy.validate(user.id, data, filename, declared_size)

        new_ref = self.assets.store(user.id, data, asset.extension)
        old_ref = user.profile_picture

        user.profile_picture = new_ref
        try:
            self.store.update(user)
        except AuthError:
            self.assets.delete(new_ref)
            raise
        except Exception as e:
            self.assets.delete(new_ref)
            _logger.exception(f"Failed to record profile picture for user {user.id}")
            raise InternalError("An error occurred while uploading the file") from e

        if old_ref and old_ref != new_ref:
            if not self.assets.delete(old_ref):
                _logger.warning(f"Previous profile picture not removed for user {user.id}: {old_ref}")

        _logger.info(f"Profile picture updated for user {user.id}")
        return self.assets.resolve_public_ref(new_ref)

    def _load_user(self, user_id: str) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            # A session never outlives its user
            revoked = self.sessions.revoke_user(user_id)
            _logger.warning(f"Session for deleted user {user_id}; revoked {revoked} session(s)")
            raise NotFoundError("User not found")
        return user
