# assets/tests/test_asset_store.py
"""Tests for upload validation and the local profile asset store."""

from __future__ import annotations

import pytest

from assets.store import (
    LocalProfileAssetStore,
    UploadPolicy,
    matches_signature,
    normalize_extension,
)
from auth.errors import InternalError, ValidationError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


@pytest.fixture
def store(tmp_path):
    return LocalProfileAssetStore(tmp_path / "pictures")


class TestNormalizeExtension:
    def test_lowercases(self):
        assert normalize_extension("Photo.JPG") == ".jpg"

    def test_uses_last_suffix(self):
        assert normalize_extension("archive.png.exe") == ".exe"

    def test_handles_paths(self):
        assert normalize_extension("..\\..\\evil.png") == ".png"
        assert normalize_extension("/tmp/x/evil.jpeg") == ".jpeg"

    def test_missing(self):
        assert normalize_extension("noext") == ""
        assert normalize_extension(None) == ""
        assert normalize_extension("") == ""


class TestSignatures:
    def test_png(self):
        assert matches_signature(PNG_BYTES, "image/png") is True
        assert matches_signature(JPEG_BYTES, "image/png") is False

    def test_jpeg(self):
        assert matches_signature(JPEG_BYTES, "image/jpeg") is True
        assert matches_signature(b"plain text", "image/jpeg") is False

    def test_webp(self):
        assert matches_signature(b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp") is True

    def test_unknown_type(self):
        assert matches_signature(PNG_BYTES, "application/octet-stream") is False


class TestUploadPolicy:
    """Validation runs in order: empty, extension, size, content."""

    def test_valid_upload(self):
        asset = UploadPolicy().validate("user-1", PNG_BYTES, "me.PNG")
        assert asset.extension == ".png"
        assert asset.content_type == "image/png"
        assert asset.size_bytes == len(PNG_BYTES)
        assert asset.owner_id == "user-1"

    def test_empty_checked_first(self):
        with pytest.raises(ValidationError, match="No file uploaded"):
            UploadPolicy().validate("user-1", b"", "me.gif")

    def test_extension_checked_before_size(self):
        policy = UploadPolicy(max_bytes=10)
        with pytest.raises(ValidationError, match="Only JPG and PNG files are allowed"):
            policy.validate("user-1", b"GIF89a" + b"\x00" * 100, "anim.gif")

    def test_no_extension_rejected(self):
        with pytest.raises(ValidationError):
            UploadPolicy().validate("user-1", PNG_BYTES, "picture")

    def test_size_ceiling(self):
        policy = UploadPolicy(max_bytes=5 * 1024 * 1024)
        too_big = PNG_BYTES + b"\x00" * (5 * 1024 * 1024)
        with pytest.raises(ValidationError, match="File size cannot exceed 5MB"):
            policy.validate("user-1", too_big, "big.png")

    def test_exactly_at_ceiling_is_allowed(self):
        policy = UploadPolicy(max_bytes=len(PNG_BYTES))
        assert policy.validate("user-1", PNG_BYTES, "me.png").size_bytes == len(PNG_BYTES)

    def test_content_sniffing_can_be_disabled(self):
        policy = UploadPolicy(verify_content=False)
        assert policy.validate("user-1", b"not really a png", "me.png").extension == ".png"

    def test_custom_allow_list_label(self):
        policy = UploadPolicy(allowed_extensions=(".png",))
        with pytest.raises(ValidationError, match="Only PNG files are allowed"):
            policy.validate("user-1", JPEG_BYTES, "me.jpg")


class TestLocalProfileAssetStore:
    def test_store_writes_file_and_returns_public_ref(self, store):
        ref = store.store("user-1", PNG_BYTES, ".png")

        assert ref.startswith("/uploads/profile-pictures/user-1_")
        assert ref.endswith(".png")
        assert store.resolve_path(ref).read_bytes() == PNG_BYTES

    def test_names_are_unique(self, store):
        refs = {store.store("user-1", PNG_BYTES, ".png") for _ in range(20)}
        assert len(refs) == 20

    def test_no_temp_files_left_behind(self, store):
        store.store("user-1", PNG_BYTES, ".png")
        assert [p.name for p in store.root.iterdir() if p.name.startswith(".upload-")] == []

    def test_owner_id_is_sanitized(self, store):
        ref = store.store("../../escape", PNG_BYTES, ".png")
        assert store.resolve_path(ref).parent == store.root

    def test_resolve_public_ref_accepts_name_or_ref(self, store):
        ref = store.store("user-1", PNG_BYTES, ".png")
        name = ref.rsplit("/", 1)[-1]
        assert store.resolve_public_ref(name) == ref
        assert store.resolve_public_ref(ref) == ref

    def test_custom_public_prefix(self, tmp_path):
        store = LocalProfileAssetStore(tmp_path, public_prefix="static/avatars/")
        ref = store.store("user-1", PNG_BYTES, ".png")
        assert ref.startswith("/static/avatars/user-1_")

    @pytest.mark.parametrize(
        "ref",
        [
            "../secret.png",
            "/uploads/profile-pictures/../../secret.png",
            "/etc/passwd",
            "sub/dir.png",
            "..",
            "",
            "..\\secret.png",
        ],
    )
    def test_traversal_is_refused(self, store, ref):
        with pytest.raises(ValidationError):
            store.resolve_path(ref)

    def test_delete(self, store):
        ref = store.store("user-1", PNG_BYTES, ".png")
        assert store.delete(ref) is True
        assert store.resolve_path(ref).is_file() is False
        assert store.delete(ref) is False

    def test_delete_never_raises(self, store, tmp_path):
        outside = tmp_path / "outside.png"
        outside.write_bytes(PNG_BYTES)

        assert store.delete("../outside.png") is False
        assert outside.exists()

    def test_write_failure_raises_internal_error(self, store, monkeypatch):
        def broken_fsync(fd):
            raise OSError("I/O error")

        monkeypatch.setattr("assets.store.os.fsync", broken_fsync)
        with pytest.raises(InternalError):
            store.store("user-1", PNG_BYTES, ".png")

        assert list(store.root.iterdir()) == []
