# assets/store.py
"""
Profile picture storage.

Handles:
- Upload validation (extension allow-list, size ceiling, image signature)
- Durable writes under a single asset root
- Best-effort deletion of superseded pictures
- Mapping stored names to public URL paths (and back, without traversal)
"""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional, Protocol

from auth.errors import InternalError, ValidationError

_logger = logging.getLogger(__name__)

# Maximum file size for profile pictures (5MB)
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024

DEFAULT_ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png")

DEFAULT_PUBLIC_PREFIX = "/uploads/profile-pictures"

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

# Leading bytes of each supported image format
_SIGNATURES = {
    "image/jpeg": (b"\xff\xd8\xff",),
    "image/png": (b"\x89PNG\r\n\x1a\n",),
    "image/gif": (b"GIF87a", b"GIF89a"),
}


@dataclass(frozen=True)
class ProfileAsset:
    """A validated upload, ready to be written."""
    owner_id: str
    extension: str
    content_type: str
    size_bytes: int


def normalize_extension(filename: Optional[str]) -> str:
    """Lowercased extension of a client filename, including the dot ('' if none)."""
    if not filename:
        return ""
    return PurePosixPath(filename.replace("\\", "/")).suffix.lower()


def matches_signature(data: bytes, content_type: str) -> bool:
    """Check the payload starts with the magic bytes of its declared type."""
    if content_type == "image/webp":
        return data[:4] == b"RIFF" and data[8:12] == b"WEBP"
    signatures = _SIGNATURES.get(content_type)
    if signatures is None:
        return False
    return any(data.startswith(sig) for sig in signatures)


class UploadPolicy:
    """Validation rules for profile picture uploads."""

    def __init__(
        self,
        allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS,
        max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        verify_content: bool = True,
    ):
        self.allowed_extensions = tuple(ext.lower() for ext in allowed_extensions)
        self.max_bytes = max_bytes
        self.verify_content = verify_content

    @property
    def allowed_label(self) -> str:
        names = sorted({CONTENT_TYPES.get(ext, ext).split("/")[-1].upper() for ext in self.allowed_extensions})
        names = ["JPG" if name == "JPEG" else name for name in names]
        return " and ".join([", ".join(names[:-1]), names[-1]]) if len(names) > 1 else names[0]

    def validate(
        self,
        owner_id: str,
        data: bytes,
        filename: Optional[str],
        declared_size: Optional[int] = None,
    ) -> ProfileAsset:
        """
        Validate an upload in order: non-empty, extension, size, content.

        Raises:
            ValidationError: On the first failing check
        """
        if not data:
            raise ValidationError("No file uploaded")

        extension = normalize_extension(filename)
        if extension not in self.allowed_extensions:
            raise ValidationError(f"Only {self.allowed_label} files are allowed")

        size = max(len(data), declared_size or 0)
        if size > self.max_bytes:
            raise ValidationError(
                f"File size cannot exceed {self.max_bytes // (1024 * 1024)}MB"
            )

        content_type = CONTENT_TYPES.get(extension, "application/octet-stream")
        if self.verify_content and not matches_signature(data, content_type):
            raise ValidationError("File content does not match its extension")

        return ProfileAsset(
            owner_id=owner_id,
            extension=extension,
            content_type=content_type,
            size_bytes=len(data),
        )


class ProfileAssetStore(Protocol):
    """Storage backend for profile pictures."""

    def store(self, owner_id: str, data: bytes, extension: str) -> str: ...

    def delete(self, asset_ref: str) -> bool: ...

    def resolve_public_ref(self, asset_ref: str) -> str: ...


class LocalProfileAssetStore:
    """
    Profile pictures on local disk.

    Files live directly under `root` and are served from `public_prefix`.
    Asset references are the public URL paths
    (e.g. /uploads/profile-pictures/<user-id>_<hex>.png).
    """

    def __init__(self, root, public_prefix: str = DEFAULT_PUBLIC_PREFIX):
        self.root = Path(root).resolve()
        self.public_prefix = "/" + public_prefix.strip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_name(owner_id: str, extension: str) -> str:
        """Collision-resistant stored name; never derived from the client filename."""
        safe_owner = "".join(c for c in owner_id if c.isalnum() or c == "-")
        return f"{safe_owner}_{uuid.uuid4().hex}{extension}"

    def resolve_public_ref(self, asset_ref: str) -> str:
        """Externally servable path for a stored name or reference."""
        return f"{self.public_prefix}/{self.resolve_path(asset_ref).name}"

    def resolve_path(self, asset_ref: str) -> Path:
        """
        Map a reference to a file directly under the asset root.

        Raises:
            ValidationError: If the reference escapes the asset root
        """
        ref = asset_ref or ""
        if ref.startswith(self.public_prefix + "/"):
            ref = ref[len(self.public_prefix) + 1:]

        name = PurePosixPath(ref)
        if len(name.parts) != 1 or name.name in ("", ".", "..") or "\\" in ref:
            raise ValidationError("Invalid asset reference")

        path = (self.root / name.name).resolve()
        if path.parent != self.root:
            raise ValidationError("Invalid asset reference")
        return path

    def store(self, owner_id: str, data: bytes, extension: str) -> str:
        """
        Durably write a new asset and return its public reference.

        The bytes go to a temp file in the asset root, are fsynced and
        then renamed into place, so the returned reference never points
        at a partial file.

        Raises:
            InternalError: On any I/O failure
        """
        name = self.generate_name(owner_id, extension)
        target = self.root / name
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=".upload-", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
            tmp_path = None
        except OSError as e:
            _logger.exception(f"Failed to write profile picture for user {owner_id}")
            raise InternalError("An error occurred while uploading the file") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    _logger.warning(f"Could not remove temp upload {tmp_path}")

        _logger.info(f"Stored profile picture {name} ({len(data)} bytes)")
        return f"{self.public_prefix}/{name}"

    def delete(self, asset_ref: str) -> bool:
        """
        Best-effort delete. Never raises.

        Returns:
            True if a file was removed
        """
        try:
            path = self.resolve_path(asset_ref)
            path.unlink()
        except FileNotFoundError:
            return False
        except (OSError, ValidationError) as e:
            _logger.warning(f"Could not delete profile picture {asset_ref!r}: {e}")
            return False

        _logger.info(f"Deleted profile picture {path.name}")
        return True
