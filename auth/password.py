# auth/password.py
"""
Secure password hashing using bcrypt, plus the creation-time
password strength policy.

Bcrypt is designed for password hashing with:
- Automatic salt generation
- Configurable work factor (cost)
- Resistance to rainbow tables
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import bcrypt
import logging

_logger = logging.getLogger(__name__)

# Work factor (cost) - higher = slower but more secure
BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor

    Returns:
        Bcrypt hash string (includes salt)
    """
    if not password:
        raise ValueError("Password cannot be empty")

    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password_bytes, salt)

    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        password: Plain text password to verify
        password_hash: Stored bcrypt hash

    Returns:
        True if password matches, False otherwise
    """
    if not password or not password_hash:
        return False

    try:
        password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(password_bytes, hash_bytes)
    except ValueError as e:
        _logger.warning(f"Password verification error: {e}")
        return False


@dataclass(frozen=True)
class PasswordPolicy:
    """
    Creation-time password strength requirements.

    The defaults require at least 8 characters with an uppercase
    letter, a lowercase letter and a digit.
    """
    min_length: int = 8
    require_upper: bool = True
    require_lower: bool = True
    require_digit: bool = True
    require_symbol: bool = False

    def violations(self, password: str) -> list[str]:
        """Return one message per violated rule (empty list if strong)."""
        if not password:
            return ["Password cannot be empty"]

        errors = []
        if len(password) < self.min_length:
            errors.append(f"Password must be at least {self.min_length} characters")
        if self.require_upper and not any(c.isupper() for c in password):
            errors.append("Password must contain at least one uppercase letter")
        if self.require_lower and not any(c.islower() for c in password):
            errors.append("Password must contain at least one lowercase letter")
        if self.require_digit and not any(c.isdigit() for c in password):
            errors.append("Password must contain at least one digit")
        if self.require_symbol and all(c.isalnum() for c in password):
            errors.append("Password must contain at least one non-alphanumeric character")
        return errors


class CredentialValidator:
    """Verifies passwords against stored hashes and enforces the strength policy."""

    def __init__(self, policy: Optional[PasswordPolicy] = None, rounds: int = BCRYPT_ROUNDS):
        self.policy = policy or PasswordPolicy()
        self.rounds = rounds

    def check_strength(self, password: str) -> list[str]:
        return self.policy.violations(password)

    def hash(self, password: str) -> str:
        return hash_password(password, rounds=self.rounds)

    def verify(self, password: str, password_hash: str) -> bool:
        return verify_password(password, password_hash)
