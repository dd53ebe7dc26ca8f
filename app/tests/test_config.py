# app/tests/test_config.py
"""Tests for configuration management and startup validation."""
import os
from unittest.mock import patch

import pytest

from app.config import (
    DEFAULT_MAX_REQUEST_SIZE_BYTES,
    AppConfig,
    ConfigurationError,
    ensure_storage_dirs,
    load_config,
    log_config_snapshot,
    validate_config_snapshot_safety,
)
from assets.store import DEFAULT_ALLOWED_EXTENSIONS, DEFAULT_MAX_UPLOAD_BYTES


class TestLoadConfig:
    """Tests for load_config function."""

    def test_default_values(self):
        """Config loads with sensible defaults when no env vars set."""
        with patch.dict(os.environ, {}, clear=True):
            config = load_config()

        assert config.service_name == "profile-auth"
        assert config.service_version == "0.1.0"
        assert config.environment == "development"
        assert config.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES == 5 * 1024 * 1024
        assert config.allowed_extensions == DEFAULT_ALLOWED_EXTENSIONS
        assert config.max_request_size_bytes == DEFAULT_MAX_REQUEST_SIZE_BYTES
        assert config.session_cookie_name == "auth_session"
        assert config.session_idle_hours == 24
        assert config.session_cookie_secure is False
        assert config.verify_upload_content is True
        assert config.warnings == []

    def test_unknown_environment_falls_back(self):
        with patch.dict(os.environ, {"APP_ENV": "staging"}, clear=True):
            config = load_config()

        assert config.environment == "development"
        assert any("APP_ENV" in w for w in config.warnings)

    def test_storage_paths_from_env(self):
        with patch.dict(
            os.environ,
            {"AUTH_DB_PATH": "/tmp/x/auth.db", "UPLOAD_ROOT": "/tmp/x/pics"},
            clear=True,
        ):
            config = load_config()

        assert config.db_path == "/tmp/x/auth.db"
        assert config.upload_root == "/tmp/x/pics"

    def test_allowed_extensions_normalized(self):
        with patch.dict(os.environ, {"UPLOAD_ALLOWED_EXTENSIONS": "PNG, .Jpg ,webp"}, clear=True):
            config = load_config()

        assert config.allowed_extensions == (".png", ".jpg", ".webp")

    def test_empty_allowed_extensions_uses_default(self):
        with patch.dict(os.environ, {"UPLOAD_ALLOWED_EXTENSIONS": " , "}, clear=True):
            config = load_config()

        assert config.allowed_extensions == DEFAULT_ALLOWED_EXTENSIONS
        assert any("UPLOAD_ALLOWED_EXTENSIONS" in w for w in config.warnings)

    def test_content_verification_can_be_disabled(self):
        with patch.dict(os.environ, {"UPLOAD_VERIFY_CONTENT": "false"}, clear=True):
            config = load_config()

        assert config.verify_upload_content is False

    def test_password_policy_from_env(self):
        with patch.dict(
            os.environ,
            {"PASSWORD_MIN_LENGTH": "12", "PASSWORD_REQUIRE_SYMBOL": "true", "PASSWORD_REQUIRE_UPPER": "0"},
            clear=True,
        ):
            config = load_config()

        assert config.password_policy.min_length == 12
        assert config.password_policy.require_symbol is True
        assert config.password_policy.require_upper is False

    def test_cors_origins_from_env(self):
        with patch.dict(
            os.environ,
            {"CORS_ALLOWED_ORIGINS": "http://localhost:4200, https://example.com"},
            clear=True,
        ):
            config = load_config()

        assert config.cors_allowed_origins == ("http://localhost:4200", "https://example.com")


class TestIntegerSettings:
    """Tests for integer env validation."""

    def test_valid_size_accepted(self):
        with patch.dict(os.environ, {"MAX_REQUEST_SIZE_BYTES": "20971520"}, clear=True):
            config = load_config()

        assert config.max_request_size_bytes == 20971520

    def test_invalid_string_uses_default_with_warning(self):
        """Non-integer string falls back to default with warning."""
        with patch.dict(os.environ, {"MAX_UPLOAD_BYTES": "five-megs"}, clear=True):
            config = load_config()

        assert config.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES
        assert any("not a valid integer" in w for w in config.warnings)

    @pytest.mark.parametrize("value", ["0", "-1000"])
    def test_below_minimum_uses_default_with_warning(self, value):
        with patch.dict(os.environ, {"SESSION_IDLE_HOURS": value}, clear=True):
            config = load_config()

        assert config.session_idle_hours == 24
        assert any("below minimum" in w for w in config.warnings)

    def test_request_ceiling_below_upload_ceiling_warns(self):
        """A request limit at or under the upload limit turns upload 400s into 413s."""
        with patch.dict(
            os.environ,
            {"MAX_REQUEST_SIZE_BYTES": "4096", "MAX_UPLOAD_BYTES": "4096"},
            clear=True,
        ):
            config = load_config()

        assert any("413" in w for w in config.warnings)


class TestCookieSettings:
    """Tests for session cookie configuration."""

    def test_production_defaults_to_secure_strict(self):
        with patch.dict(os.environ, {"APP_ENV": "production"}, clear=True):
            config = load_config()

        cookie = config.cookie_settings
        assert cookie.secure is True
        assert cookie.samesite == "strict"
        assert cookie.max_age == 24 * 60 * 60

    def test_development_is_lax(self):
        config = AppConfig(environment="development", session_cookie_secure=False)
        assert config.cookie_settings.samesite == "lax"
        assert config.cookie_settings.secure is False

    def test_insecure_cookie_in_production_fails_fast(self):
        with patch.dict(
            os.environ, {"APP_ENV": "production", "SESSION_COOKIE_SECURE": "false"}, clear=True
        ):
            with pytest.raises(ConfigurationError, match="SESSION_COOKIE_SECURE"):
                load_config()

    def test_insecure_cookie_in_production_warns_without_fail_fast(self):
        with patch.dict(
            os.environ, {"APP_ENV": "production", "SESSION_COOKIE_SECURE": "false"}, clear=True
        ):
            config = load_config(fail_fast=False)

        assert any("SESSION_COOKIE_SECURE" in w for w in config.warnings)

    def test_invalid_cookie_name_uses_default(self):
        with patch.dict(os.environ, {"SESSION_COOKIE_NAME": "bad name;"}, clear=True):
            config = load_config()

        assert config.session_cookie_name == "auth_session"
        assert any("SESSION_COOKIE_NAME" in w for w in config.warnings)

    def test_idle_hours_drive_max_age(self):
        config = AppConfig(session_idle_hours=2)
        assert config.cookie_settings.max_age == 7200


class TestConfigSnapshotSafety:
    """Tests for config snapshot security."""

    def test_snapshot_contains_expected_fields(self):
        """Config snapshot contains required observability fields."""
        snapshot = log_config_snapshot(AppConfig())

        assert "service=" in snapshot
        assert "version=" in snapshot
        assert "environment=" in snapshot
        assert "max_upload_bytes=" in snapshot
        assert "allowed_extensions=.jpg,.jpeg,.png" in snapshot
        assert "cookie_secure=" in snapshot

    def test_validate_config_snapshot_safety_passes_clean_snapshot(self):
        snapshot = log_config_snapshot(AppConfig())

        assert validate_config_snapshot_safety(snapshot) is True

    def test_validate_config_snapshot_safety_catches_leaked_secret(self):
        """Safety validator catches accidentally logged secrets."""
        bad_snapshot = "service=test session_token=abc123xyz version=1.0"

        assert validate_config_snapshot_safety(bad_snapshot) is False

    def test_validate_config_snapshot_safety_allows_flags_and_numbers(self):
        good_snapshot = "cookie_secure=True min_password_length=8"

        assert validate_config_snapshot_safety(good_snapshot) is True


class TestEnsureStorageDirs:
    def test_creates_directories(self, tmp_path):
        config = AppConfig(
            db_path=str(tmp_path / "db" / "auth.db"),
            upload_root=str(tmp_path / "uploads" / "pics"),
        )
        ensure_storage_dirs(config)

        assert (tmp_path / "db").is_dir()
        assert (tmp_path / "uploads" / "pics").is_dir()

    def test_memory_database_needs_no_directory(self, tmp_path):
        ensure_storage_dirs(AppConfig(db_path=":memory:", upload_root=str(tmp_path / "u")))
        assert (tmp_path / "u").is_dir()
