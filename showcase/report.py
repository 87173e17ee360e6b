"""
Operator-facing summaries of the stored project document.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone

from showcase.config import Settings
from showcase.errors import StorageError
from showcase.records import ProjectCollection, ProjectStatus
from showcase.store import (
    SafeStore,
    collection_from_document,
    count_public,
    prepare_stored,
)
from showcase.validator import validate

logger = logging.getLogger(__name__)


def _format_ms(value: int) -> str:
    if not value:
        return "unknown"
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S UTC"
    )


def generate_system_report(collection: ProjectCollection) -> str:
    result = validate(collection.as_dict())
    statuses = Counter(project.status for project in collection.projects)
    lines = [
        "Project showcase system report",
        "==============================",
        f"Generated: {_format_ms(int(datetime.now(timezone.utc).timestamp() * 1000))}",
        f"Schema version: {collection.metadata.version or 'unknown'}",
        f"Source: {collection.source}",
        "",
        "Data:",
        f"- Projects: {len(collection.projects)}",
        f"- Public projects: {count_public(collection.projects)}",
        f"- Passwords: {len(collection.passwords)}",
        f"- Last updated: {_format_ms(collection.metadata.last_updated)}",
        "",
        f"Integrity: {'ok' if result.valid else 'problems found'}",
    ]
    lines.extend(f"- {error}" for error in result.errors)
    lines.append("")
    lines.append("Projects by status:")
    lines.extend(f"- {status.value}: {statuses.get(status, 0)}" for status in ProjectStatus)
    return "\n".join(lines)


def diagnose(store: SafeStore, settings: Settings) -> dict:
    """Probe storage and the stored document without raising."""
    diagnostics = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "document": {"status": "unknown", "name": store.blob_name},
        "storage": {"status": "unknown"},
        "environment": {
            "hasBucket": bool(settings.blob_bucket),
            "hasEndpoint": bool(settings.blob_endpoint),
            "hasCredentials": bool(
                settings.aws_access_key_id and settings.aws_secret_access_key
            ),
            "hasAdminPassword": bool(settings.admin_password),
            "inMemoryBackends": settings.use_in_memory_backends,
        },
    }

    try:
        images = store.storage.list(prefix=settings.image_prefix)
        diagnostics["storage"] = {"status": "connected", "images": len(images)}
    except StorageError as exc:
        logger.warning("Storage diagnostics failed: %s", exc)
        diagnostics["storage"] = {"status": "error", "error": str(exc)}

    try:
        stored = store.read_stored()
    except StorageError as exc:
        diagnostics["document"].update({"status": "unreadable", "error": str(exc)})
        return diagnostics
    if stored is None:
        diagnostics["document"]["status"] = "missing"
        return diagnostics

    raw, revision = stored
    try:
        doc = prepare_stored(raw)
        result = validate(doc)
        collection = collection_from_document(doc, revision, source="blob")
    except Exception as exc:
        logger.exception("Stored project data could not be normalized")
        diagnostics["document"].update({"status": "unreadable", "error": str(exc)})
        return diagnostics
    diagnostics["document"].update(
        {
            "status": "ok" if result.valid else "invalid",
            "revision": revision,
            "storedVersion": raw["metadata"].get("version")
            if isinstance(raw.get("metadata"), dict)
            else None,
            "projects": len(collection.projects),
            "publicProjects": count_public(collection.projects),
            "passwords": len(collection.passwords),
            "validation": result.as_dict(),
        }
    )
    return diagnostics
