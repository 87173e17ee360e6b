"""
Structured display settings stored inside the project document.

Every field has a documented default so older documents that predate a field
still validate; ``normalizer.normalize_settings`` is the single entry point
that turns stored JSON into these models.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from showcase.records import (
    VISIBILITY_DEFAULTS,
    ImagePreviewMode,
    ProjectCategory,
    ProjectStatus,
)

DEFAULT_FILTER_IDS: tuple[str, ...] = (
    "all",
    *(category.value for category in ProjectCategory),
    *(f"status-{status.value}" for status in ProjectStatus),
)

DEFAULT_STATISTIC_TYPES: tuple[str, ...] = (
    "totalProjects",
    "publicProjects",
    "displayedCount",
    "importantCount",
    "completedCount",
    "inProgressCount",
    "readyStatus",
    "abandonedCount",
    "singleDocCount",
)

# Statistics shown on a fresh install; the UI allows between 2 and 8.
INITIAL_STATISTICS = ("totalProjects", "publicProjects", "displayedCount", "readyStatus")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FilterConfig(_CamelModel):
    id: str
    enabled: bool = True
    order: int = 0
    label: Optional[str] = None


class StatisticConfig(_CamelModel):
    id: str
    type: str
    enabled: bool = True
    order: int = 0
    label: Optional[str] = None


class UIDisplaySettings(_CamelModel):
    filters: list[FilterConfig] = Field(default_factory=list)
    statistics: list[StatisticConfig] = Field(default_factory=list)

    def with_defaults(self) -> "UIDisplaySettings":
        """Return a copy with every known filter and statistic present."""
        filters = [item.model_copy() for item in self.filters]
        known = {item.id for item in filters}
        next_order = max((item.order for item in filters), default=-1) + 1
        for filter_id in DEFAULT_FILTER_IDS:
            if filter_id not in known:
                filters.append(FilterConfig(id=filter_id, enabled=True, order=next_order))
                next_order += 1

        statistics = [item.model_copy() for item in self.statistics]
        known = {item.id for item in statistics}
        fresh = not statistics
        next_order = max((item.order for item in statistics), default=-1) + 1
        for stat_type in DEFAULT_STATISTIC_TYPES:
            if stat_type not in known:
                statistics.append(
                    StatisticConfig(
                        id=stat_type,
                        type=stat_type,
                        enabled=fresh and stat_type in INITIAL_STATISTICS,
                        order=next_order,
                    )
                )
                next_order += 1
        return UIDisplaySettings(filters=filters, statistics=statistics)


class AppSettings(_CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    show_toggle_controls: bool = True
    default_project_visibility: dict[str, bool] = Field(
        default_factory=lambda: dict(VISIBILITY_DEFAULTS)
    )
    remember_password: bool = True
    theme: Literal["light", "dark", "auto"] = "light"
    default_status: ProjectStatus = ProjectStatus.IN_PROGRESS
    default_image_preview_mode: ImagePreviewMode = ImagePreviewMode.GRID
    ui_display: UIDisplaySettings = Field(default_factory=UIDisplaySettings)

    def as_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def default_ui_display() -> UIDisplaySettings:
    return UIDisplaySettings().with_defaults()
