"""
Blob storage abstraction for S3-compatible buckets and in-memory testing.

The data layer treats the backend as a flat key-value blob store: objects are
written whole under a name, enumerated with ``list`` and read back through
the URL the backend issued for them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Protocol
from urllib.parse import quote, unquote, urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from showcase.errors import StorageError


@dataclass
class BlobInfo:
    pathname: str
    url: str
    size: int
    uploaded_at: str

    def as_dict(self) -> dict:
        return {
            "pathname": self.pathname,
            "url": self.url,
            "size": self.size,
            "uploadedAt": self.uploaded_at,
        }


class BlobStorageClient(Protocol):
    """Defines the operations the data layer needs from object storage."""

    def put(
        self, name: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> BlobInfo:
        ...

    def list(self, prefix: str = "") -> list[BlobInfo]:
        ...

    def fetch(self, url: str) -> bytes:
        ...

    def copy(self, source: str, dest: str) -> BlobInfo:
        ...

    def delete(self, names: Iterable[str]) -> None:
        ...


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _name_from_url(base_url: str, url: str) -> str | None:
    prefix = base_url.rstrip("/") + "/"
    path = url.split("?", 1)[0].split("#", 1)[0]
    if not path.startswith(prefix):
        return None
    return unquote(path[len(prefix):])


@dataclass
class InMemoryBlobStorageClient:
    """Test double for blob storage interactions."""

    base_url: str = "https://example.test/blob"
    objects: dict = field(default_factory=dict)
    content_types: dict = field(default_factory=dict)
    uploaded_at: dict = field(default_factory=dict)

    def _info(self, name: str) -> BlobInfo:
        return BlobInfo(
            pathname=name,
            url=f"{self.base_url}/{quote(name)}",
            size=len(self.objects[name]),
            uploaded_at=self.uploaded_at[name],
        )

    def put(
        self, name: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> BlobInfo:
        self.objects[name] = bytes(content)
        self.content_types[name] = content_type
        self.uploaded_at[name] = _utc_now()
        return self._info(name)

    def list(self, prefix: str = "") -> list[BlobInfo]:
        return [self._info(name) for name in sorted(self.objects) if name.startswith(prefix)]

    def fetch(self, url: str) -> bytes:
        name = _name_from_url(self.base_url, url)
        if name is None or name not in self.objects:
            raise StorageError(f"Blob not found: {url}")
        return self.objects[name]

    def copy(self, source: str, dest: str) -> BlobInfo:
        if source not in self.objects:
            raise StorageError(f"Blob not found: {source}")
        return self.put(dest, self.objects[source], self.content_types.get(source, ""))

    def delete(self, names: Iterable[str]) -> None:
        for name in names:
            self.objects.pop(name, None)
            self.content_types.pop(name, None)
            self.uploaded_at.pop(name, None)

    def reset(self) -> None:
        """Clear all stored objects (useful in tests)."""
        self.objects.clear()
        self.content_types.clear()
        self.uploaded_at.clear()


@dataclass
class S3BlobStorageClient:
    """
    Blob storage client for S3-compatible providers.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""

    def __post_init__(self):
        # Virtual-hosted style addressing works for AWS and most S3 clones.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )
        if not self.public_base_url:
            self.public_base_url = f"{self.endpoint.rstrip('/')}/{self.bucket}"

    def _url(self, key: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/{quote(key)}"

    def put(
        self, name: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> BlobInfo:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=name,
                Body=content,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to write {name}: {exc}") from exc
        return BlobInfo(
            pathname=name, url=self._url(name), size=len(content), uploaded_at=_utc_now()
        )

    def list(self, prefix: str = "") -> list[BlobInfo]:
        blobs: list[BlobInfo] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    modified = item.get("LastModified")
                    blobs.append(
                        BlobInfo(
                            pathname=item["Key"],
                            url=self._url(item["Key"]),
                            size=item.get("Size", 0),
                            uploaded_at=modified.isoformat() if modified else "",
                        )
                    )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to list blobs: {exc}") from exc
        return blobs

    def fetch(self, url: str) -> bytes:
        key = _name_from_url(self.public_base_url, url)
        if key is None:
            # Foreign URLs carry the key as their path.
            key = unquote(urlsplit(url).path.lstrip("/"))
            if key.startswith(f"{self.bucket}/"):
                key = key[len(self.bucket) + 1:]
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to fetch {url}: {exc}") from exc

    def copy(self, source: str, dest: str) -> BlobInfo:
        try:
            self._client.copy_object(
                Bucket=self.bucket,
                Key=dest,
                CopySource={"Bucket": self.bucket, "Key": source},
            )
            head = self._client.head_object(Bucket=self.bucket, Key=dest)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to copy {source} to {dest}: {exc}") from exc
        modified = head.get("LastModified")
        return BlobInfo(
            pathname=dest,
            url=self._url(dest),
            size=head.get("ContentLength", 0),
            uploaded_at=modified.isoformat() if modified else _utc_now(),
        )

    def delete(self, names: Iterable[str]) -> None:
        objects = [{"Key": name} for name in names]
        if not objects:
            return
        try:
            response = self._client.delete_objects(
                Bucket=self.bucket, Delete={"Objects": objects, "Quiet": True}
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete blobs: {exc}") from exc
        errors = response.get("Errors") or []
        if errors:
            failed = ", ".join(error.get("Key", "?") for error in errors)
            raise StorageError(f"Failed to delete blobs: {failed}")
