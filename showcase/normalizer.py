"""
Schema normalization for stored project documents.

Documents are upgraded in two layers:

* ``migrate_document`` walks an explicit migration table keyed by the
  ``metadata.version`` the document was written under, applying each
  structural step once.
* ``normalize`` (and its siblings for passwords and settings) fill every
  missing field with its default and translate legacy enum values. These run
  on every read and before every validation, so a record that skipped the
  document path (for example one posted by a client) is upgraded the same way.

All functions here are total: malformed input yields defaults, never an
exception, and normalizing an already normalized value returns it unchanged.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Mapping, Optional, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError

from showcase.app_settings import AppSettings
from showcase.records import (
    VISIBILITY_DEFAULTS,
    CustomInfoSection,
    ImagePreview,
    ImagePreviewMode,
    PasswordEntry,
    ProjectCategory,
    ProjectRecord,
    ProjectStatus,
    SectionType,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "2.0.0"
LEGACY_VERSION = "1.0.0"

DEFAULT_STATUS = ProjectStatus.IN_PROGRESS
DEFAULT_IMAGE_PREVIEW_MODE = ImagePreviewMode.GRID

CATEGORY_STATUS: dict[ProjectCategory, ProjectStatus] = {
    ProjectCategory.IMPORTANT: ProjectStatus.IN_PROGRESS,
    ProjectCategory.SECONDARY: ProjectStatus.IN_PROGRESS,
    ProjectCategory.PRACTICE: ProjectStatus.IN_PROGRESS,
    ProjectCategory.SINGLE_DOC: ProjectStatus.COMPLETED,
    ProjectCategory.COMPLETED: ProjectStatus.COMPLETED,
    ProjectCategory.ABANDONED: ProjectStatus.DISCARDED,
}

LEGACY_NAME_KEY = "dateAndFileName"

_RECORD_KEYS = frozenset(
    {
        "id",
        "name",
        LEGACY_NAME_KEY,
        "description",
        "category",
        "status",
        "github",
        "vercel",
        "deployment",
        "path",
        "statusNote",
        "publicNote",
        "developerNote",
        "visibility",
        "imagePreviews",
        "imagePreviewMode",
        "customInfoSections",
        "documentMeta",
        "featured",
        "hidden",
        "sortOrder",
        "createdAt",
        "updatedAt",
    }
)

E = TypeVar("E")


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (bool, dict, list)):
        return ""
    return str(value)


def _first_text(data: Mapping, *keys: str) -> str:
    for key in keys:
        text = _as_text(data.get(key))
        if text:
            return text
    return ""


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return bool(value)


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _as_enum(enum_cls: Type[E], value: Any) -> Optional[E]:
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return None


def migrate_status(category: Any) -> ProjectStatus:
    """Map a legacy category to the current status vocabulary."""
    resolved = _as_enum(ProjectCategory, category)
    if resolved is None:
        return DEFAULT_STATUS
    return CATEGORY_STATUS[resolved]


def normalize_visibility(raw: Any) -> dict[str, bool]:
    """
    Overlay stored flags onto the canonical defaults.

    The result always carries exactly the canonical key set: absent keys take
    their defaults and keys no longer in the schema are dropped.
    """
    visibility = dict(VISIBILITY_DEFAULTS)
    if not isinstance(raw, Mapping):
        return visibility
    if "name" not in raw and LEGACY_NAME_KEY in raw:
        visibility["name"] = _as_bool(raw[LEGACY_NAME_KEY], VISIBILITY_DEFAULTS["name"])
    for key, default in VISIBILITY_DEFAULTS.items():
        if key in raw:
            visibility[key] = _as_bool(raw[key], default)
    return visibility


def _normalize_preview(entry: Any) -> Optional[ImagePreview]:
    # Early records stored bare asset paths instead of objects.
    if isinstance(entry, str):
        return ImagePreview(id=entry, src=entry) if entry else None
    if not isinstance(entry, Mapping):
        return None
    src = _as_text(entry.get("src"))
    thumbnail = entry.get("thumbnail")
    description = entry.get("description")
    return ImagePreview(
        id=_as_text(entry.get("id")) or src,
        src=src,
        title=_as_text(entry.get("title")),
        thumbnail=thumbnail if isinstance(thumbnail, str) else None,
        description=description if isinstance(description, str) else None,
    )


def _normalize_section(entry: Any, index: int) -> Optional[CustomInfoSection]:
    if not isinstance(entry, Mapping):
        return None
    return CustomInfoSection(
        id=_as_text(entry.get("id")) or f"section-{index + 1}",
        title=_as_text(entry.get("title")),
        type=_as_enum(SectionType, entry.get("type")) or SectionType.TEXT,
        content=_as_text(entry.get("content")),
        visible=_as_bool(entry.get("visible"), True),
    )


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def normalize(raw: Any) -> ProjectRecord:
    """Upgrade a stored project record of any schema version to the current shape."""
    if isinstance(raw, ProjectRecord):
        raw = raw.as_dict()
    if not isinstance(raw, Mapping):
        raw = {}

    category = _as_enum(ProjectCategory, raw.get("category"))
    status = _as_enum(ProjectStatus, raw.get("status")) or migrate_status(category)

    previews = [_normalize_preview(entry) for entry in _as_list(raw.get("imagePreviews"))]
    sections = [
        _normalize_section(entry, index)
        for index, entry in enumerate(_as_list(raw.get("customInfoSections")))
    ]
    document_meta = raw.get("documentMeta")

    created_at = _as_int(raw.get("createdAt"), _as_int(raw.get("updatedAt")))
    updated_at = _as_int(raw.get("updatedAt"), created_at)

    return ProjectRecord(
        id=_as_text(raw.get("id")),
        name=_first_text(raw, "name", LEGACY_NAME_KEY),
        description=_as_text(raw.get("description")),
        category=category,
        status=status,
        visibility=normalize_visibility(raw.get("visibility")),
        github=_as_text(raw.get("github")),
        vercel=_as_text(raw.get("vercel")),
        deployment=_as_text(raw.get("deployment")),
        path=_as_text(raw.get("path")),
        status_note=_as_text(raw.get("statusNote")),
        public_note=_as_text(raw.get("publicNote")),
        developer_note=_as_text(raw.get("developerNote")),
        image_previews=[preview for preview in previews if preview is not None],
        image_preview_mode=_as_enum(ImagePreviewMode, raw.get("imagePreviewMode"))
        or DEFAULT_IMAGE_PREVIEW_MODE,
        custom_info_sections=[section for section in sections if section is not None],
        document_meta=dict(document_meta) if isinstance(document_meta, Mapping) else None,
        featured=_as_bool(raw.get("featured"), False),
        hidden=_as_bool(raw.get("hidden"), False),
        sort_order=_as_int(raw.get("sortOrder")),
        created_at=created_at,
        updated_at=updated_at,
        extra={key: value for key, value in raw.items() if key not in _RECORD_KEYS},
    )


def normalize_password(raw: Any) -> PasswordEntry:
    if isinstance(raw, PasswordEntry):
        raw = raw.as_dict()
    if not isinstance(raw, Mapping):
        raw = {}
    created_at = _as_int(raw.get("createdAt"), _as_int(raw.get("updatedAt")))
    return PasswordEntry(
        id=_as_text(raw.get("id")),
        platform=_as_text(raw.get("platform")),
        account=_as_text(raw.get("account")),
        password=_as_text(raw.get("password")),
        created_at=created_at,
        updated_at=_as_int(raw.get("updatedAt"), created_at),
    )


def normalize_settings(raw: Any) -> AppSettings:
    """
    Validate stored settings once, falling back to defaults per field.

    Known filters and statistics introduced after the document was written are
    backfilled into ``uiDisplay``.
    """
    data = dict(raw) if isinstance(raw, Mapping) else {}
    try:
        settings = AppSettings.model_validate(data)
    except PydanticValidationError as exc:
        invalid = {error["loc"][0] for error in exc.errors() if error.get("loc")}
        logger.warning(
            "Resetting invalid settings fields to defaults: %s",
            ", ".join(sorted(str(key) for key in invalid)),
        )
        try:
            settings = AppSettings.model_validate(
                {key: value for key, value in data.items() if key not in invalid}
            )
        except PydanticValidationError:
            logger.warning("Settings unusable after cleanup; using defaults")
            settings = AppSettings()
    settings.default_project_visibility = normalize_visibility(
        settings.default_project_visibility
    )
    settings.ui_display = settings.ui_display.with_defaults()
    return settings


def _project_dicts(doc: dict) -> list[dict]:
    projects = doc.get("projects")
    if not isinstance(projects, list):
        return []
    return [project for project in projects if isinstance(project, dict)]


def _derive_statuses(doc: dict) -> None:
    for project in _project_dicts(doc):
        if _as_enum(ProjectStatus, project.get("status")) is None:
            project["status"] = migrate_status(project.get("category")).value


def _rename_legacy_name(doc: dict) -> None:
    for project in _project_dicts(doc):
        if LEGACY_NAME_KEY in project:
            legacy = project.pop(LEGACY_NAME_KEY)
            if not project.get("name"):
                project["name"] = legacy
        visibility = project.get("visibility")
        if isinstance(visibility, dict) and LEGACY_NAME_KEY in visibility:
            legacy = visibility.pop(LEGACY_NAME_KEY)
            visibility.setdefault("name", legacy)


# stored version -> (next version, step)
MIGRATIONS: dict[str, tuple[str, Callable[[dict], None]]] = {
    "1.0.0": ("1.1.0", _derive_statuses),
    "1.1.0": ("2.0.0", _rename_legacy_name),
}


def migrate_document(doc: Mapping) -> dict:
    """Apply the migration steps between the stored version and the current one."""
    data = copy.deepcopy(dict(doc))
    metadata = data.get("metadata")
    stored = metadata.get("version") if isinstance(metadata, dict) else None
    version = str(stored or LEGACY_VERSION)

    if version != SCHEMA_VERSION and version not in MIGRATIONS:
        logger.warning(
            "Unknown project document version %s; relying on record normalization",
            version,
        )
        return data

    while version in MIGRATIONS:
        target, step = MIGRATIONS[version]
        logger.info("Migrating project document %s -> %s", version, target)
        step(data)
        version = target

    if isinstance(metadata, dict):
        metadata["version"] = version
    return data
