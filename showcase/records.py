"""
Record types for the persisted project document.

Records are kept as dataclasses in memory and serialized to the camelCase
JSON shape stored in the blob through ``as_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from showcase.app_settings import AppSettings


class ProjectCategory(StrEnum):
    """Legacy project grouping, kept alongside the current status."""

    IMPORTANT = "important"
    SECONDARY = "secondary"
    PRACTICE = "practice"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    SINGLE_DOC = "single-doc"


class ProjectStatus(StrEnum):
    IN_PROGRESS = "in-progress"
    ON_HOLD = "on-hold"
    LONG_TERM = "long-term"
    COMPLETED = "completed"
    DISCARDED = "discarded"


class ImagePreviewMode(StrEnum):
    SINGLE = "single"
    GRID = "grid"


class SectionType(StrEnum):
    TEXT = "text"
    URL = "url"


class SafetyCheck(StrEnum):
    VERIFIED = "VERIFIED"
    FORCED = "FORCED"


# One flag per displayable field. Sensitive fields start hidden.
VISIBILITY_DEFAULTS: dict[str, bool] = {
    "name": True,
    "description": True,
    "category": True,
    "status": True,
    "github": True,
    "vercel": True,
    "deployment": True,
    "path": False,
    "statusNote": True,
    "publicNote": True,
    "developerNote": False,
    "imagePreviews": True,
}


@dataclass
class ImagePreview:
    id: str
    src: str
    title: str = ""
    thumbnail: Optional[str] = None
    description: Optional[str] = None

    def as_dict(self) -> dict:
        data = {"id": self.id, "src": self.src, "title": self.title}
        if self.thumbnail is not None:
            data["thumbnail"] = self.thumbnail
        if self.description is not None:
            data["description"] = self.description
        return data


@dataclass
class CustomInfoSection:
    id: str
    title: str
    type: SectionType
    content: str
    visible: bool = True

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "content": self.content,
            "visible": self.visible,
        }


@dataclass
class ProjectRecord:
    id: str
    name: str
    description: str
    status: ProjectStatus
    visibility: dict[str, bool]
    category: Optional[ProjectCategory] = None
    github: str = ""
    vercel: str = ""
    deployment: str = ""
    path: str = ""
    status_note: str = ""
    public_note: str = ""
    developer_note: str = ""
    image_previews: list[ImagePreview] = field(default_factory=list)
    image_preview_mode: ImagePreviewMode = ImagePreviewMode.GRID
    custom_info_sections: list[CustomInfoSection] = field(default_factory=list)
    document_meta: Optional[dict] = None
    featured: bool = False
    hidden: bool = False
    sort_order: int = 0
    created_at: int = 0
    updated_at: int = 0
    # Keys written by other schema versions, carried through untouched.
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "name": self.name,
                "description": self.description,
                "category": self.category.value if self.category else None,
                "status": self.status.value,
                "github": self.github,
                "vercel": self.vercel,
                "deployment": self.deployment,
                "path": self.path,
                "statusNote": self.status_note,
                "publicNote": self.public_note,
                "developerNote": self.developer_note,
                "visibility": dict(self.visibility),
                "imagePreviews": [preview.as_dict() for preview in self.image_previews],
                "imagePreviewMode": self.image_preview_mode.value,
                "customInfoSections": [
                    section.as_dict() for section in self.custom_info_sections
                ],
                "documentMeta": dict(self.document_meta)
                if self.document_meta is not None
                else None,
                "featured": self.featured,
                "hidden": self.hidden,
                "sortOrder": self.sort_order,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )
        return data


@dataclass
class PasswordEntry:
    id: str
    platform: str
    account: str
    password: str
    created_at: int = 0
    updated_at: int = 0

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "platform": self.platform,
            "account": self.account,
            "password": self.password,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class CollectionMetadata:
    last_updated: int = 0
    version: str = ""
    total_projects: int = 0
    public_projects: int = 0
    safety_check: Optional[SafetyCheck] = None
    write_timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "CollectionMetadata":
        if not isinstance(data, dict):
            data = {}
        safety = data.get("safetyCheck")
        return cls(
            last_updated=_as_int(data.get("lastUpdated")),
            version=str(data.get("version") or ""),
            total_projects=_as_int(data.get("totalProjects")),
            public_projects=_as_int(data.get("publicProjects")),
            safety_check=SafetyCheck(safety)
            if safety in SafetyCheck._value2member_map_
            else None,
            write_timestamp=_as_int(data["writeTimestamp"])
            if data.get("writeTimestamp") is not None
            else None,
        )

    def as_dict(self) -> dict:
        data = {
            "lastUpdated": self.last_updated,
            "version": self.version,
            "totalProjects": self.total_projects,
            "publicProjects": self.public_projects,
        }
        if self.safety_check is not None:
            data["safetyCheck"] = self.safety_check.value
        if self.write_timestamp is not None:
            data["writeTimestamp"] = self.write_timestamp
        return data


@dataclass
class ProjectCollection:
    """The whole persisted document plus the revision it was read at."""

    projects: list[ProjectRecord]
    passwords: list[PasswordEntry]
    settings: AppSettings
    metadata: CollectionMetadata
    revision: Optional[str] = None
    source: str = "default"

    def find(self, project_id: str) -> Optional[ProjectRecord]:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    def as_dict(self) -> dict:
        return {
            "projects": [project.as_dict() for project in self.projects],
            "passwords": [entry.as_dict() for entry in self.passwords],
            "settings": self.settings.as_dict(),
            "metadata": self.metadata.as_dict(),
        }


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default
