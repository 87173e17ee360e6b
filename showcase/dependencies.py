"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException

from showcase.config import Settings, get_settings
from showcase.references import ReferenceTracker
from showcase.storage import (
    BlobStorageClient,
    InMemoryBlobStorageClient,
    S3BlobStorageClient,
)
from showcase.store import SafeStore

_storage_client: BlobStorageClient | None = None
_safe_store: SafeStore | None = None
_reference_tracker: ReferenceTracker | None = None


def get_storage_client() -> BlobStorageClient:
    """
    Return a singleton blob client so in-memory data persists across requests.
    """
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.blob_bucket:
        _storage_client = InMemoryBlobStorageClient()
    else:
        _storage_client = S3BlobStorageClient(
            bucket=settings.blob_bucket,
            region=settings.blob_region or "",
            endpoint=settings.blob_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.blob_public_base_url or "",
        )
    return _storage_client


def get_safe_store() -> SafeStore:
    global _safe_store
    if _safe_store:
        return _safe_store
    settings = get_settings()
    _safe_store = SafeStore(get_storage_client(), blob_name=settings.data_blob_name)
    return _safe_store


def get_reference_tracker() -> ReferenceTracker:
    global _reference_tracker
    if _reference_tracker:
        return _reference_tracker
    settings = get_settings()
    _reference_tracker = ReferenceTracker(
        get_storage_client(), get_safe_store(), image_prefix=settings.image_prefix
    )
    return _reference_tracker


def require_admin(
    x_admin_password: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject the request unless the admin header matches the configured secret."""
    expected = settings.admin_password
    if not expected or not x_admin_password or not secrets.compare_digest(
        x_admin_password.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")
