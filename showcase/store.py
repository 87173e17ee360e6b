"""
Guarded whole-document persistence for the project collection.

The collection lives in a single JSON blob that is read and rewritten whole on
every mutation. ``SafeStore`` is the only component allowed to touch that
blob. Reads never fail: an absent, unreachable, corrupt or structurally
invalid document is replaced by the compiled-in defaults. Writes always
surface their failures, and refuse to replace stored records with an empty
document unless the caller forces it.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from showcase.defaults import default_project_data, sample_project_data
from showcase.errors import (
    RevisionConflictError,
    SafetyLockError,
    StorageError,
    ValidationError,
)
from showcase.normalizer import (
    SCHEMA_VERSION,
    migrate_document,
    normalize,
    normalize_password,
    normalize_settings,
)
from showcase.records import (
    CollectionMetadata,
    ProjectCollection,
    ProjectRecord,
    ProjectStatus,
    SafetyCheck,
)
from showcase.storage import BlobInfo, BlobStorageClient
from showcase.validator import validate

logger = logging.getLogger(__name__)

DEFAULT_BLOB_NAME = "project-data.json"

_NO_CHECK = object()


@dataclass
class WriteResult:
    url: str
    pathname: str
    revision: str
    safety_check: SafetyCheck
    metadata: dict

    def as_dict(self) -> dict:
        return {
            "url": self.url,
            "pathname": self.pathname,
            "revision": self.revision,
            "safetyCheck": self.safety_check.value,
            "metadata": dict(self.metadata),
        }


def compute_revision(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def is_empty_data(doc: Mapping) -> bool:
    """True only when both record lists exist and hold nothing."""
    projects = doc.get("projects")
    passwords = doc.get("passwords")
    return (
        isinstance(projects, list)
        and isinstance(passwords, list)
        and not projects
        and not passwords
    )


def is_publicly_visible(record: ProjectRecord) -> bool:
    return bool(record.visibility.get("description")) and (
        record.status != ProjectStatus.DISCARDED
    )


def count_public(records: Iterable[ProjectRecord]) -> int:
    return sum(1 for record in records if is_publicly_visible(record))


def _normalized_document(doc: dict) -> dict:
    data = dict(doc)
    projects = data.get("projects")
    if isinstance(projects, list):
        # Entries that are not objects are left for the validator to report.
        data["projects"] = [
            normalize(entry).as_dict()
            if isinstance(entry, (Mapping, ProjectRecord))
            else entry
            for entry in projects
        ]
    passwords = data.get("passwords")
    if isinstance(passwords, list):
        data["passwords"] = [
            normalize_password(entry).as_dict() if isinstance(entry, Mapping) else entry
            for entry in passwords
        ]
    settings = data.get("settings")
    if isinstance(settings, Mapping):
        data["settings"] = normalize_settings(settings).as_dict()
    return data


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def prepare_stored(raw: Mapping) -> dict:
    """Migrate and normalize a stored document so it can be validated."""
    return _normalized_document(migrate_document(raw))


def collection_from_document(
    doc: dict, revision: Optional[str], source: str
) -> ProjectCollection:
    return ProjectCollection(
        projects=[normalize(entry) for entry in _as_list(doc.get("projects"))],
        passwords=[normalize_password(entry) for entry in _as_list(doc.get("passwords"))],
        settings=normalize_settings(doc.get("settings")),
        metadata=CollectionMetadata.from_dict(doc.get("metadata")),
        revision=revision,
        source=source,
    )


class SafeStore:
    """Sole reader and writer of the project document blob."""

    def __init__(self, storage: BlobStorageClient, blob_name: str = DEFAULT_BLOB_NAME):
        self.storage = storage
        self.blob_name = blob_name

    def _locate(self) -> Optional[BlobInfo]:
        for blob in self.storage.list(prefix=self.blob_name):
            if blob.pathname == self.blob_name:
                return blob
        return None

    def read_stored(self) -> Optional[tuple[dict, str]]:
        """
        Strict read of the stored document and its revision.

        Returns None when no document is stored. Raises StorageError when the
        blob exists but cannot be fetched or parsed.
        """
        blob = self._locate()
        if blob is None:
            return None
        content = self.storage.fetch(blob.url)
        try:
            data = json.loads(content)
        except ValueError as exc:
            raise StorageError(f"Stored project data is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError("Stored project data is not a JSON object")
        return data, compute_revision(content)

    def load(self) -> ProjectCollection:
        try:
            stored = self.read_stored()
        except StorageError as exc:
            logger.warning("Failed to read project data, using defaults: %s", exc)
            return self.defaults()
        if stored is None:
            logger.info("No project data blob found, using defaults")
            return self.defaults()

        raw, revision = stored
        try:
            doc = prepare_stored(raw)
            result = validate(doc)
            if result.valid:
                return collection_from_document(doc, revision, source="blob")
        except Exception:
            logger.exception("Stored project data could not be normalized, using defaults")
            return self.defaults()
        logger.warning(
            "Stored project data failed validation, using defaults: %s",
            "; ".join(result.errors),
        )
        return self.defaults()

    def defaults(self) -> ProjectCollection:
        return collection_from_document(default_project_data(), None, source="default")

    def _expected_revision(self, doc: Any, expected_revision: Optional[str]) -> Any:
        if expected_revision is not None:
            return expected_revision
        if isinstance(doc, ProjectCollection):
            # A collection built from defaults expects that nothing is stored.
            return doc.revision if doc.source == "blob" else None
        return _NO_CHECK

    def save(
        self,
        doc: ProjectCollection | Mapping,
        force_write: bool = False,
        expected_revision: Optional[str] = None,
    ) -> WriteResult:
        """
        Validate, guard and durably write the whole document.

        A ``ProjectCollection`` is checked against the revision it was loaded
        at; plain mappings are only checked when ``expected_revision`` is
        given. ``force_write`` skips validation, the empty-overwrite guard and
        the revision check, and marks the write as FORCED. On success a
        collection argument is updated in place with the new revision.
        """
        expected = (
            _NO_CHECK if force_write else self._expected_revision(doc, expected_revision)
        )
        if isinstance(doc, ProjectCollection):
            data = doc.as_dict()
        elif isinstance(doc, Mapping):
            data = copy.deepcopy(dict(doc))
        else:
            raise ValidationError(["Document is missing"])

        data = _normalized_document(data)
        stored: Any = _NO_CHECK
        if not force_write and is_empty_data(data):
            stored = self._read_for_write()
            self._guard_empty_overwrite(stored)

        result = validate(data)
        if not result.valid:
            if not force_write:
                logger.warning("Rejected invalid project data: %s", "; ".join(result.errors))
                raise ValidationError(result.errors)
            logger.warning(
                "Forcing write of invalid project data: %s", "; ".join(result.errors)
            )

        if expected is not _NO_CHECK:
            if stored is _NO_CHECK:
                stored = self._read_for_write()
            actual = stored[1] if stored is not None else None
            if actual != expected:
                logger.warning(
                    "Revision conflict on project data: expected %s, found %s",
                    expected,
                    actual,
                )
                raise RevisionConflictError(expected, actual)

        safety = SafetyCheck.FORCED if force_write else SafetyCheck.VERIFIED
        metadata = self._stamp(data, safety)
        content = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
        blob = self.storage.put(self.blob_name, content, content_type="application/json")
        revision = compute_revision(content)

        logger.info(
            "Project data saved (%s): %d projects, %d passwords, %s",
            safety.value,
            metadata["totalProjects"],
            len(data.get("passwords") or []),
            blob.url,
        )
        if isinstance(doc, ProjectCollection):
            doc.revision = revision
            doc.source = "blob"
            doc.metadata = CollectionMetadata.from_dict(metadata)
        return WriteResult(
            url=blob.url,
            pathname=blob.pathname,
            revision=revision,
            safety_check=safety,
            metadata=metadata,
        )

    def _read_for_write(self) -> Optional[tuple[dict, str]]:
        # An unreadable document may hold data, so writes fail closed.
        try:
            return self.read_stored()
        except StorageError as exc:
            logger.error("Cannot verify stored project data before write: %s", exc)
            raise SafetyLockError(
                "Stored project data could not be read; refusing to overwrite it"
            ) from exc

    def _guard_empty_overwrite(self, stored: Optional[tuple[dict, str]]) -> None:
        if stored is None or is_empty_data(stored[0]):
            return
        stored_projects = stored[0].get("projects")
        logger.error(
            "Refusing to overwrite stored project data (%s projects) with an empty document",
            len(stored_projects) if isinstance(stored_projects, list) else "unknown",
        )
        raise SafetyLockError("Refusing to replace stored project data with an empty document")

    def _stamp(self, data: dict, safety: SafetyCheck) -> dict:
        now = int(time.time() * 1000)
        metadata = data.get("metadata")
        metadata = dict(metadata) if isinstance(metadata, Mapping) else {}
        projects = data.get("projects")
        projects = projects if isinstance(projects, list) else []
        records = [normalize(entry) for entry in projects if isinstance(entry, Mapping)]
        metadata.update(
            {
                "lastUpdated": now,
                "writeTimestamp": now,
                "safetyCheck": safety.value,
                "version": SCHEMA_VERSION,
                "totalProjects": len(projects),
                "publicProjects": count_public(records),
            }
        )
        data["metadata"] = metadata
        return metadata


def seed_sample_data(store: SafeStore, force: bool = False) -> Optional[WriteResult]:
    """
    Write the first-deploy sample document.

    Does nothing when a document is already stored, unless ``force`` is set.
    An unreadable stored document counts as present.
    """
    try:
        stored = store.read_stored()
    except StorageError as exc:
        if not force:
            logger.warning("Stored project data is unreadable, not seeding: %s", exc)
            return None
        stored = None
    if stored is not None and not force:
        logger.info("Project data already exists, skipping sample seed")
        return None
    result = store.save(sample_project_data(), force_write=force)
    logger.info("Seeded sample project data (%s)", result.safety_check.value)
    return result
