"""Configure pytest for the profile auth service."""
import os
import tempfile
from pathlib import Path

# =============================================================================
# Test Environment Configuration
# =============================================================================
# Set environment for tests BEFORE any imports so the module-level
# app in app.main never touches the working directory.
_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="profile-auth-tests-"))

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUTH_DB_PATH", str(_TEST_DATA_DIR / "auth.db"))
os.environ.setdefault("UPLOAD_ROOT", str(_TEST_DATA_DIR / "uploads"))
# Cheap hashing keeps the suite fast
os.environ.setdefault("BCRYPT_ROUNDS", "4")

