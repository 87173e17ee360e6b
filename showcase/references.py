"""
Image asset bookkeeping against the project records that display them.

Assets live under ``image_prefix`` in blob storage and are identified by their
stored filename. Records may point at an asset with the bare filename, a
relative path or a full URL; ``asset_id_from_src`` reduces all of these to the
filename so references are matched by equality.
"""

from __future__ import annotations

import hashlib
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from showcase.errors import (
    AssetExistsError,
    AssetNotFoundError,
    ReferenceConflictError,
    StorageError,
    ValidationError,
)
from showcase.records import ProjectCollection, ProjectRecord
from showcase.storage import BlobInfo, BlobStorageClient
from showcase.store import SafeStore

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_PREFIX = "project-images/"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._()-]")
_DASH_RUNS = re.compile(r"-{2,}")


@dataclass
class Reference:
    record_id: str
    record_name: str

    def as_dict(self) -> dict:
        return {"recordId": self.record_id, "recordName": self.record_name}


@dataclass
class RenameResult:
    old_id: str
    new_id: str
    url: str
    references: list[Reference] = field(default_factory=list)
    updated_count: int = 0
    stale_copy_left: bool = False

    def as_dict(self) -> dict:
        return {
            "oldId": self.old_id,
            "newId": self.new_id,
            "url": self.url,
            "references": [ref.as_dict() for ref in self.references],
            "updatedCount": self.updated_count,
            "staleCopyLeft": self.stale_copy_left,
        }


@dataclass
class DeleteResult:
    asset_id: str
    references: list[Reference] = field(default_factory=list)
    forced: bool = False

    def as_dict(self) -> dict:
        return {
            "assetId": self.asset_id,
            "references": [ref.as_dict() for ref in self.references],
            "forced": self.forced,
        }


@dataclass
class BatchDeleteResult:
    deleted: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    conflicts: dict[str, list[Reference]] = field(default_factory=dict)
    forced: bool = False

    def as_dict(self) -> dict:
        return {
            "deleted": list(self.deleted),
            "missing": list(self.missing),
            "conflicts": {
                asset_id: [ref.as_dict() for ref in refs]
                for asset_id, refs in self.conflicts.items()
            },
            "forced": self.forced,
        }


@dataclass
class AssetInfo:
    asset_id: str
    blob: BlobInfo
    reference_count: int = 0

    def as_dict(self) -> dict:
        data = self.blob.as_dict()
        data.update({"id": self.asset_id, "referenceCount": self.reference_count})
        return data


@dataclass
class UploadResult:
    asset_id: str
    original_filename: str
    url: str
    size: int

    def as_dict(self) -> dict:
        return {
            "id": self.asset_id,
            "originalFilename": self.original_filename,
            "url": self.url,
            "size": self.size,
        }


def asset_id_from_src(src: Optional[str]) -> str:
    """Reduce a bare filename, path or URL to the stored filename."""
    if not src:
        return ""
    path = urlsplit(src.strip()).path
    return unquote(path.rstrip("/").rsplit("/", 1)[-1])


def _replace_asset(src: Optional[str], old_id: str, new_id: str) -> Optional[str]:
    """Return ``src`` pointing at ``new_id`` with its prefix kept, or None if unrelated."""
    if not src or asset_id_from_src(src) != old_id:
        return None
    parts = urlsplit(src.strip())
    head, sep, last = parts.path.rstrip("/").rpartition("/")
    segment = quote(new_id) if unquote(last) != last else new_id
    return urlunsplit(parts._replace(path=f"{head}{sep}{segment}"))


def references_asset(record: ProjectRecord, asset_id: str) -> bool:
    for preview in record.image_previews:
        if asset_id_from_src(preview.src) == asset_id:
            return True
        if preview.thumbnail and asset_id_from_src(preview.thumbnail) == asset_id:
            return True
    return False


def _content_hash(filename: str) -> str:
    return hashlib.md5(filename.encode("utf-8")).hexdigest()[:6]


def safe_filename(filename: str) -> str:
    """ASCII-only version of an uploaded filename."""
    ascii_name = filename.encode("ascii", "ignore").decode("ascii")
    cleaned = _UNSAFE_CHARS.sub("-", ascii_name).strip("-")
    cleaned = _DASH_RUNS.sub("-", cleaned)
    if not cleaned or cleaned.startswith("."):
        ext = filename.rsplit(".", 1)[-1] if "." in filename else "jpg"
        ext = _UNSAFE_CHARS.sub("", ext.encode("ascii", "ignore").decode("ascii")) or "jpg"
        cleaned = f"image-{int(time.time() * 1000)}.{ext}"
    return cleaned


class ReferenceTracker:
    def __init__(
        self,
        storage: BlobStorageClient,
        store: SafeStore,
        image_prefix: str = DEFAULT_IMAGE_PREFIX,
    ):
        self.storage = storage
        self.store = store
        self.image_prefix = image_prefix

    def _path(self, asset_id: str) -> str:
        return f"{self.image_prefix}{asset_id}"

    def _stored_ids(self) -> dict[str, BlobInfo]:
        assets = {}
        for blob in self.storage.list(prefix=self.image_prefix):
            asset_id = blob.pathname[len(self.image_prefix):]
            # Nested keys are not assets addressed by filename.
            if asset_id and "/" not in asset_id:
                assets[asset_id] = blob
        return assets

    def find_references(
        self, asset_id: str, collection: Optional[ProjectCollection] = None
    ) -> list[Reference]:
        asset_id = asset_id_from_src(asset_id)
        if not asset_id:
            return []
        if collection is None:
            collection = self.store.load()
        return [
            Reference(record_id=record.id, record_name=record.name)
            for record in collection.projects
            if references_asset(record, asset_id)
        ]

    def list_assets(self) -> list[AssetInfo]:
        collection = self.store.load()
        return [
            AssetInfo(
                asset_id=asset_id,
                blob=blob,
                reference_count=len(self.find_references(asset_id, collection)),
            )
            for asset_id, blob in sorted(self._stored_ids().items())
        ]

    def upload_asset(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> UploadResult:
        """
        Store an uploaded image under its canonical ASCII name.

        The name is ``{base}-{hash}.{ext}`` where the hash is taken from the
        original filename, so uploading the same original name twice is
        refused. A residual collision gets a numeric suffix.
        """
        if not filename:
            raise ValidationError(["filename is required"])
        filename_hash = _content_hash(filename)
        existing = self._stored_ids()
        for asset_id in existing:
            if f"-{filename_hash}." in asset_id:
                raise AssetExistsError(
                    f"Image {filename!r} already exists (stored as {asset_id})"
                )

        base, dot, ext = safe_filename(filename).rpartition(".")
        if not dot:
            base, ext = ext, "png"
        base = base.strip("-") or "image"
        candidate = f"{base}-{filename_hash}.{ext}"
        counter = 1
        while candidate in existing:
            candidate = f"{base}-{filename_hash}-{counter}.{ext}"
            counter += 1

        blob = self.storage.put(self._path(candidate), content, content_type=content_type)
        logger.info("Uploaded image %s as %s", filename, candidate)
        return UploadResult(
            asset_id=candidate,
            original_filename=filename,
            url=blob.url,
            size=blob.size,
        )

    def rename(self, old_id: str, new_id: str, cascade: bool = True) -> RenameResult:
        """
        Rename an asset by copying it and deleting the old object.

        With ``cascade`` every record pointing at the old name is rewritten in
        one guarded save before the old object is removed; if the records
        cannot be read or saved the new copy is dropped again and the error
        propagates. A failed delete of the old object leaves a stale duplicate
        and is only logged.
        """
        old_id = asset_id_from_src(old_id)
        new_id = asset_id_from_src(new_id)
        if not old_id or not new_id:
            raise ValidationError(["Both the old and the new asset name are required"])
        if old_id == new_id:
            raise ValidationError(["The new asset name must differ from the old one"])

        existing = self._stored_ids()
        if old_id not in existing:
            raise AssetNotFoundError(f"Image not found: {old_id}")
        if new_id in existing:
            raise AssetExistsError(f"Image already exists: {new_id}")

        blob = self.storage.copy(self._path(old_id), self._path(new_id))
        result = RenameResult(old_id=old_id, new_id=new_id, url=blob.url)
        if cascade:
            try:
                self._cascade_rename(result)
            except Exception:
                self._discard_copy(new_id)
                raise

        try:
            self.storage.delete([self._path(old_id)])
        except StorageError as exc:
            result.stale_copy_left = True
            logger.warning(
                "Renamed %s to %s but could not delete the old copy: %s",
                old_id,
                new_id,
                exc,
            )
        return result

    def _load_strict(self) -> ProjectCollection:
        """Load the records, raising instead of falling back when data is stored but unusable."""
        collection = self.store.load()
        if collection.source != "blob" and self.store.read_stored() is not None:
            raise StorageError(
                "Stored project data failed validation; image references cannot be checked"
            )
        return collection

    def _cascade_rename(self, result: RenameResult) -> None:
        collection = self._load_strict()
        result.references = self.find_references(result.old_id, collection)
        for record in collection.projects:
            changed = False
            for preview in record.image_previews:
                src = _replace_asset(preview.src, result.old_id, result.new_id)
                if src is not None:
                    preview.src = src
                    changed = True
                thumbnail = _replace_asset(preview.thumbnail, result.old_id, result.new_id)
                if thumbnail is not None:
                    preview.thumbnail = thumbnail
                    changed = True
            if changed:
                record.updated_at = int(time.time() * 1000)
                result.updated_count += 1

        if result.updated_count:
            self.store.save(collection)
            logger.info(
                "Updated %d project(s) referencing %s", result.updated_count, result.old_id
            )

    def _discard_copy(self, asset_id: str) -> None:
        try:
            self.storage.delete([self._path(asset_id)])
        except StorageError as exc:
            logger.warning("Could not remove the new copy %s: %s", asset_id, exc)

    def delete_asset(self, asset_id: str, force: bool = False) -> DeleteResult:
        asset_id = asset_id_from_src(asset_id)
        if asset_id not in self._stored_ids():
            raise AssetNotFoundError(f"Image not found: {asset_id}")

        collection = None if force else self._load_strict()
        references = self.find_references(asset_id, collection)
        if references and not force:
            raise ReferenceConflictError(
                f"Image {asset_id} is used by {len(references)} project(s)",
                references=references,
            )
        if references:
            logger.warning(
                "Force deleting %s still used by %d project(s)", asset_id, len(references)
            )
        self.storage.delete([self._path(asset_id)])
        return DeleteResult(asset_id=asset_id, references=references, forced=force)

    def delete_assets(self, asset_ids: Iterable[str], force: bool = False) -> BatchDeleteResult:
        """
        Delete several assets, checking every one of them before deleting any.

        Conflicts are gathered against a single loaded collection; unless
        forced, any conflict blocks the whole batch.
        """
        ids: list[str] = []
        for asset_id in asset_ids:
            canonical = asset_id_from_src(asset_id)
            if canonical and canonical not in ids:
                ids.append(canonical)

        existing = self._stored_ids()
        collection = self.store.load() if force else self._load_strict()
        result = BatchDeleteResult(forced=force)
        for asset_id in ids:
            if asset_id not in existing:
                result.missing.append(asset_id)
                continue
            references = self.find_references(asset_id, collection)
            if references:
                result.conflicts[asset_id] = references
            result.deleted.append(asset_id)

        if result.conflicts and not force:
            raise ReferenceConflictError(
                f"{len(result.conflicts)} image(s) are still used by projects",
                conflicts=result.conflicts,
            )
        if result.deleted:
            self.storage.delete([self._path(asset_id) for asset_id in result.deleted])
            logger.info("Deleted %d image(s)", len(result.deleted))
        return result
