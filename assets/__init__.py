# assets/__init__.py
"""
Profile asset module.

Provides:
- Upload validation for profile pictures
- Local-disk asset store with durable writes and best-effort cleanup
"""

from assets.store import (
    LocalProfileAssetStore,
    ProfileAsset,
    ProfileAssetStore,
    UploadPolicy,
)

__all__ = [
    "LocalProfileAssetStore",
    "ProfileAsset",
    "ProfileAssetStore",
    "UploadPolicy",
]
