# app/config.py
"""
Centralized configuration management with startup validation.

Every setting comes from an environment variable with a safe default.
Invalid values fall back to the default and are reported as warnings.
"""
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from assets.store import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_PUBLIC_PREFIX,
)
from auth.middleware import CookieSettings, DEFAULT_SESSION_COOKIE_NAME
from auth.password import PasswordPolicy

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

SERVICE_NAME = "profile-auth"
SERVICE_VERSION = "0.1.0"

ENVIRONMENTS = ("development", "test", "production")

DEFAULT_DB_PATH = "data/auth.db"
DEFAULT_UPLOAD_ROOT = "data/uploads/profile-pictures"
DEFAULT_SESSION_IDLE_HOURS = 24
DEFAULT_CORS_ORIGINS = ("https://angulartemplate-five.vercel.app",)

# Request bodies above this are rejected with 413 before reaching a route.
# Kept above the upload ceiling so oversized pictures get a 400 from the
# upload validation instead.
DEFAULT_MAX_REQUEST_SIZE_BYTES = 10 * 1024 * 1024
MIN_REQUEST_SIZE_BYTES = 1024

# Sensitive substrings that should never appear in logs
SENSITIVE_SUBSTRINGS = ("key", "token", "secret", "password", "credential")


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class AppConfig:
    """Application configuration loaded from environment."""

    # Service info
    service_name: str = SERVICE_NAME
    service_version: str = SERVICE_VERSION
    environment: str = "development"

    # Storage
    db_path: str = DEFAULT_DB_PATH
    upload_root: str = DEFAULT_UPLOAD_ROOT
    upload_public_prefix: str = DEFAULT_PUBLIC_PREFIX

    # Uploads
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    allowed_extensions: tuple = DEFAULT_ALLOWED_EXTENSIONS
    verify_upload_content: bool = True
    max_request_size_bytes: int = DEFAULT_MAX_REQUEST_SIZE_BYTES

    # Sessions
    session_cookie_name: str = DEFAULT_SESSION_COOKIE_NAME
    session_idle_hours: int = DEFAULT_SESSION_IDLE_HOURS
    session_cookie_secure: bool = True

    # Password policy
    password_policy: PasswordPolicy = field(default_factory=PasswordPolicy)
    bcrypt_rounds: int = 12

    # CORS
    cors_allowed_origins: tuple = DEFAULT_CORS_ORIGINS

    # Warnings collected during config load
    warnings: list = field(default_factory=list)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cookie_settings(self) -> CookieSettings:
        """Strict SameSite in production, Lax elsewhere."""
        return CookieSettings(
            name=self.session_cookie_name,
            max_age=self.session_idle_hours * 60 * 60,
            secure=self.session_cookie_secure,
            samesite="strict" if self.is_production else "lax",
        )


# =============================================================================
# Configuration Loading
# =============================================================================


def _parse_int_env(
    name: str, default: int, min_value: Optional[int] = None
) -> tuple[int, Optional[str]]:
    """
    Parse an integer environment variable with validation.

    Returns (value, warning_message).
    On invalid input, returns default with a warning.
    """
    raw = os.environ.get(name)
    if raw is None:
        return default, None

    try:
        value = int(raw)
    except ValueError:
        warning = f"{name}='{raw}' is not a valid integer; using default {default}"
        return default, warning

    if min_value is not None and value < min_value:
        warning = f"{name}={value} is below minimum {min_value}; using default {default}"
        return default, warning

    return value, None


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    raw = os.environ.get(name, "").lower()
    if raw in ("true", "1", "yes", "on"):
        return True
    if raw in ("false", "0", "no", "off"):
        return False
    return default


def _parse_list_env(name: str, default: tuple) -> tuple:
    """Parse a comma-separated environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_extensions_env(name: str, default: tuple) -> tuple:
    extensions = _parse_list_env(name, default)
    return tuple(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions)


def load_config(fail_fast: bool = True) -> AppConfig:
    """
    Load and validate application configuration from environment.

    Args:
        fail_fast: If True, raise ConfigurationError on critical issues.
                   If False, collect warnings and continue.

    Returns:
        AppConfig instance with validated configuration.

    Raises:
        ConfigurationError: If required configuration is missing/invalid
                           and fail_fast is True.
    """
    warnings = []
    errors = []

    environment = os.environ.get("APP_ENV", "development").lower()
    if environment not in ENVIRONMENTS:
        warnings.append(f"APP_ENV='{environment}' is not one of {ENVIRONMENTS}; using development")
        environment = "development"

    int_settings = {}
    for name, default, min_value in (
        ("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES, 1),
        ("MAX_REQUEST_SIZE_BYTES", DEFAULT_MAX_REQUEST_SIZE_BYTES, MIN_REQUEST_SIZE_BYTES),
        ("SESSION_IDLE_HOURS", DEFAULT_SESSION_IDLE_HOURS, 1),
        ("PASSWORD_MIN_LENGTH", PasswordPolicy.min_length, 1),
        ("BCRYPT_ROUNDS", 12, 4),
    ):
        value, warning = _parse_int_env(name, default, min_value=min_value)
        if warning:
            warnings.append(warning)
        int_settings[name] = value

    if int_settings["MAX_REQUEST_SIZE_BYTES"] <= int_settings["MAX_UPLOAD_BYTES"]:
        warnings.append(
            "MAX_REQUEST_SIZE_BYTES does not exceed MAX_UPLOAD_BYTES; "
            "oversized uploads will be rejected with 413 instead of 400"
        )

    password_policy = PasswordPolicy(
        min_length=int_settings["PASSWORD_MIN_LENGTH"],
        require_upper=_parse_bool_env("PASSWORD_REQUIRE_UPPER", True),
        require_lower=_parse_bool_env("PASSWORD_REQUIRE_LOWER", True),
        require_digit=_parse_bool_env("PASSWORD_REQUIRE_DIGIT", True),
        require_symbol=_parse_bool_env("PASSWORD_REQUIRE_SYMBOL", False),
    )

    # Secure cookies everywhere except plain-HTTP development
    cookie_secure = _parse_bool_env("SESSION_COOKIE_SECURE", environment == "production")
    if environment == "production" and not cookie_secure:
        errors.append("SESSION_COOKIE_SECURE must be enabled in production")

    cookie_name = os.environ.get("SESSION_COOKIE_NAME", DEFAULT_SESSION_COOKIE_NAME)
    if not re.fullmatch(r"[A-Za-z0-9_.\-]+", cookie_name):
        warnings.append(f"SESSION_COOKIE_NAME='{cookie_name}' is not a valid cookie name; using default")
        cookie_name = DEFAULT_SESSION_COOKIE_NAME

    allowed_extensions = _parse_extensions_env("UPLOAD_ALLOWED_EXTENSIONS", DEFAULT_ALLOWED_EXTENSIONS)
    if not allowed_extensions:
        warnings.append("UPLOAD_ALLOWED_EXTENSIONS is empty; using defaults")
        allowed_extensions = DEFAULT_ALLOWED_EXTENSIONS

    if errors:
        for error in errors:
            logger.error(f"[CONFIG] {error}")
        if fail_fast:
            raise ConfigurationError("; ".join(errors))
        warnings.extend(errors)

    # Log warnings
    for warning in warnings:
        logger.warning(f"[CONFIG] {warning}")

    return AppConfig(
        environment=environment,
        db_path=os.environ.get("AUTH_DB_PATH", DEFAULT_DB_PATH),
        upload_root=os.environ.get("UPLOAD_ROOT", DEFAULT_UPLOAD_ROOT),
        upload_public_prefix=os.environ.get("UPLOAD_PUBLIC_PREFIX", DEFAULT_PUBLIC_PREFIX),
        max_upload_bytes=int_settings["MAX_UPLOAD_BYTES"],
        allowed_extensions=allowed_extensions,
        verify_upload_content=_parse_bool_env("UPLOAD_VERIFY_CONTENT", True),
        max_request_size_bytes=int_settings["MAX_REQUEST_SIZE_BYTES"],
        session_cookie_name=cookie_name,
        session_idle_hours=int_settings["SESSION_IDLE_HOURS"],
        session_cookie_secure=cookie_secure,
        password_policy=password_policy,
        bcrypt_rounds=int_settings["BCRYPT_ROUNDS"],
        cors_allowed_origins=_parse_list_env("CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS),
        warnings=warnings,
    )


def log_config_snapshot(config: AppConfig) -> str:
    """
    Generate and log a safe configuration snapshot.

    Returns the snapshot string for testing purposes.
    Never logs secret values.
    """
    snapshot = (
        f"[STARTUP] service={config.service_name} "
        f"version={config.service_version} "
        f"environment={config.environment} "
        f"db_path={config.db_path} "
        f"upload_root={config.upload_root} "
        f"max_upload_bytes={config.max_upload_bytes} "
        f"allowed_extensions={','.join(config.allowed_extensions)} "
        f"max_request_size_bytes={config.max_request_size_bytes} "
        f"session_idle_hours={config.session_idle_hours} "
        f"cookie_secure={config.session_cookie_secure} "
        f"min_password_length={config.password_policy.min_length}"
    )
    logger.info(snapshot)
    return snapshot


def validate_config_snapshot_safety(snapshot: str) -> bool:
    """
    Validate that a config snapshot doesn't contain sensitive values.

    Returns True if safe, False if potentially unsafe.
    """
    snapshot_lower = snapshot.lower()

    # Pattern: sensitive word followed by = and a value that's not a
    # boolean or number
    for sensitive in SENSITIVE_SUBSTRINGS:
        pattern = rf"{sensitive}[a-z_]*=(?!true\b|false\b|\d+\b)"
        if re.search(pattern, snapshot_lower):
            return False

    return True


def ensure_storage_dirs(config: AppConfig) -> None:
    """Create the database and upload directories if missing."""
    if config.db_path != ":memory:":
        Path(config.db_path).parent.mkdir(parents=True, exist_ok=True)
    Path(config.upload_root).mkdir(parents=True, exist_ok=True)
