"""
Error kinds raised by the data layer.

Read paths downgrade storage failures to default data; write paths raise
one of these so the caller decides what to do next.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence


class ShowcaseError(Exception):
    """Base class for all data layer errors."""


class ValidationError(ShowcaseError):
    """The document shape is invalid; the caller must fix the payload."""

    def __init__(self, errors: Iterable[str], message: str | None = None):
        self.errors = list(errors)
        super().__init__(message or "; ".join(self.errors) or "Invalid document")


class SafetyLockError(ShowcaseError):
    """A write would replace stored non-empty data with empty data."""


class RevisionConflictError(ShowcaseError):
    """The stored document changed since the caller loaded it."""

    def __init__(self, expected: str | None, actual: str | None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Stored document changed (expected revision {expected}, found {actual})"
        )


class StorageError(ShowcaseError, OSError):
    """The blob backend was unreachable or returned a failure."""


class ReferenceConflictError(ShowcaseError):
    """An asset operation is blocked by project records that still use it."""

    def __init__(
        self,
        message: str,
        *,
        references: Optional[Sequence] = None,
        conflicts: Optional[Mapping[str, Sequence]] = None,
    ):
        self.references = list(references or [])
        self.conflicts = {key: list(value) for key, value in (conflicts or {}).items()}
        super().__init__(message)


class AssetNotFoundError(ShowcaseError, LookupError):
    pass


class AssetExistsError(ShowcaseError):
    pass


class ProjectNotFoundError(ShowcaseError, LookupError):
    pass
