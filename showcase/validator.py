"""
Structural integrity checks over a full project document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

_REQUIRED_TEXT = (
    ("id", ("id",)),
    ("name", ("name", "dateAndFileName")),
    ("description", ("description",)),
)


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"valid": self.valid, "errors": list(self.errors)}


def _has_text(record: Mapping, keys: tuple[str, ...]) -> bool:
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return True
    return False


def validate(doc: Any) -> ValidationResult:
    """
    Run every check and collect all violations.

    Projects are reported by their 1-based position. The document is only
    read, never modified.
    """
    if not isinstance(doc, Mapping):
        return ValidationResult(valid=False, errors=["Document is missing"])

    errors: list[str] = []
    projects = doc.get("projects")
    if not isinstance(projects, list):
        errors.append("projects must be a list")
    if not isinstance(doc.get("passwords"), list):
        errors.append("passwords must be a list")
    if doc.get("settings") is None:
        errors.append("settings are missing")
    if doc.get("metadata") is None:
        errors.append("metadata is missing")

    for position, record in enumerate(projects if isinstance(projects, list) else [], 1):
        if not isinstance(record, Mapping):
            errors.append(f"Project {position} is not an object")
            continue
        missing = [label for label, keys in _REQUIRED_TEXT if not _has_text(record, keys)]
        if missing:
            errors.append(
                f"Project {position} is missing required fields: {', '.join(missing)}"
            )
        if not isinstance(record.get("visibility"), Mapping):
            errors.append(f"Project {position} has no visibility settings")

    return ValidationResult(valid=not errors, errors=errors)
