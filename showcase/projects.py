"""
Record-level operations on top of the whole-document store.

Each mutation is one read-modify-write cycle: load the collection, change it
in memory and save it back. The save is checked against the revision the
collection was loaded at, so a concurrent write is rejected instead of lost.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from showcase.app_settings import UIDisplaySettings, default_ui_display
from showcase.errors import ProjectNotFoundError, ValidationError
from showcase.normalizer import normalize
from showcase.records import ProjectCollection, ProjectRecord
from showcase.store import SafeStore, is_publicly_visible

logger = logging.getLogger(__name__)

# Fields a client may not overwrite through an update.
_READ_ONLY_FIELDS = ("id", "createdAt")


@dataclass
class ImportResult:
    imported: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "imported": list(self.imported),
            "skipped": list(self.skipped),
            "importedCount": len(self.imported),
        }


def generate_id() -> str:
    return uuid4().hex


def _now() -> int:
    return int(time.time() * 1000)


def _index_of(collection: ProjectCollection, project_id: str) -> int:
    for index, project in enumerate(collection.projects):
        if project.id == project_id:
            return index
    raise ProjectNotFoundError(f"Project not found: {project_id}")


def sorted_projects(collection: ProjectCollection) -> list[ProjectRecord]:
    return sorted(collection.projects, key=lambda project: project.sort_order)


def get_project(store: SafeStore, project_id: str) -> ProjectRecord:
    collection = store.load()
    return collection.projects[_index_of(collection, project_id)]


def public_view(record: ProjectRecord) -> dict:
    data = record.as_dict()
    data["developerNote"] = ""
    if not record.visibility.get("path"):
        data["path"] = ""
    return data


def public_projects(collection: ProjectCollection) -> list[dict]:
    """Records safe to show anonymous visitors, in display order."""
    return [
        public_view(record)
        for record in sorted_projects(collection)
        if not record.hidden and is_publicly_visible(record)
    ]


def create_project(store: SafeStore, data: Mapping[str, Any]) -> ProjectRecord:
    """Add a record, filling unset fields from the stored settings."""
    collection = store.load()
    settings = collection.settings
    raw = dict(data)

    if not raw.get("id"):
        raw["id"] = generate_id()
    if collection.find(raw["id"]) is not None:
        raise ValidationError([f"Project id already exists: {raw['id']}"])
    if not isinstance(raw.get("visibility"), Mapping):
        raw["visibility"] = dict(settings.default_project_visibility)
    if not raw.get("status") and not raw.get("category"):
        raw["status"] = settings.default_status.value
    raw.setdefault("imagePreviewMode", settings.default_image_preview_mode.value)
    if "sortOrder" not in raw:
        raw["sortOrder"] = (
            max((project.sort_order for project in collection.projects), default=-1) + 1
        )
    now = _now()
    raw["createdAt"] = now
    raw["updatedAt"] = now

    record = normalize(raw)
    collection.projects.append(record)
    store.save(collection)
    logger.info("Created project %s", record.id)
    return record


def update_project(
    store: SafeStore, project_id: str, changes: Mapping[str, Any]
) -> ProjectRecord:
    collection = store.load()
    index = _index_of(collection, project_id)
    current = collection.projects[index]

    raw = current.as_dict()
    raw.update({key: value for key, value in changes.items() if key not in _READ_ONLY_FIELDS})
    visibility = changes.get("visibility")
    if isinstance(visibility, Mapping):
        raw["visibility"] = {**current.visibility, **visibility}
    else:
        raw["visibility"] = dict(current.visibility)
    raw["updatedAt"] = _now()

    record = normalize(raw)
    collection.projects[index] = record
    store.save(collection)
    logger.info("Updated project %s", project_id)
    return record


def delete_project(store: SafeStore, project_id: str, force: bool = False) -> ProjectRecord:
    """
    Remove a record.

    Removing the last record of a document without passwords empties it, which
    the store refuses unless ``force`` is set.
    """
    collection = store.load()
    record = collection.projects.pop(_index_of(collection, project_id))
    store.save(collection, force_write=force)
    logger.info("Deleted project %s", project_id)
    return record


def reorder_projects(
    store: SafeStore, order: Iterable[Mapping[str, Any]]
) -> list[ProjectRecord]:
    """Apply ``[{id, sortOrder}]`` pairs and return the records in their new order."""
    collection = store.load()
    updates: dict[str, int] = {}
    for item in order:
        project_id = item.get("id")
        sort_order = item.get("sortOrder")
        if not isinstance(project_id, str) or isinstance(sort_order, bool) or not isinstance(
            sort_order, int
        ):
            raise ValidationError(["Each reorder entry needs an id and an integer sortOrder"])
        updates[project_id] = sort_order

    for project_id in updates:
        _index_of(collection, project_id)

    now = _now()
    for project in collection.projects:
        if project.id in updates and project.sort_order != updates[project.id]:
            project.sort_order = updates[project.id]
            project.updated_at = now
    collection.projects = sorted_projects(collection)
    store.save(collection)
    logger.info("Reordered %d project(s)", len(updates))
    return collection.projects


def import_projects(store: SafeStore, records: Iterable[Any]) -> ImportResult:
    """
    Merge records into the stored collection.

    Stored records win on id collisions; new ids are appended after the
    current last position.
    """
    collection = store.load()
    result = ImportResult()
    known = {project.id for project in collection.projects}
    next_order = max((project.sort_order for project in collection.projects), default=-1) + 1

    for entry in records:
        record = normalize(entry)
        if not record.id:
            record.id = generate_id()
        if record.id in known:
            result.skipped.append(record.id)
            continue
        if not (isinstance(entry, Mapping) and "sortOrder" in entry):
            record.sort_order = next_order
        next_order = max(next_order, record.sort_order + 1)
        collection.projects.append(record)
        known.add(record.id)
        result.imported.append(record.id)

    if result.imported:
        store.save(collection)
    logger.info(
        "Imported %d project(s), skipped %d existing",
        len(result.imported),
        len(result.skipped),
    )
    return result


def update_ui_display(store: SafeStore, value: Mapping[str, Any]) -> UIDisplaySettings:
    try:
        ui_display = UIDisplaySettings.model_validate(dict(value))
    except PydanticValidationError as exc:
        raise ValidationError(
            [f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()]
        ) from exc
    collection = store.load()
    collection.settings.ui_display = ui_display.with_defaults()
    store.save(collection)
    return collection.settings.ui_display


def reset_ui_display(store: SafeStore) -> UIDisplaySettings:
    collection = store.load()
    collection.settings.ui_display = default_ui_display()
    store.save(collection)
    logger.info("UI display settings reset to defaults")
    return collection.settings.ui_display
