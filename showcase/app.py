"""
FastAPI application entry point for the showcase data service.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from showcase.config import get_settings
from showcase.errors import (
    AssetExistsError,
    AssetNotFoundError,
    ProjectNotFoundError,
    ReferenceConflictError,
    RevisionConflictError,
    SafetyLockError,
    StorageError,
    ValidationError,
)
from showcase.routes import router

logger = logging.getLogger(__name__)


def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc), "errors": exc.errors})


def _not_found(request: Request, exc: LookupError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def _conflict(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def _revision_conflict(request: Request, exc: RevisionConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "expected": exc.expected, "actual": exc.actual},
    )


def _reference_conflict(request: Request, exc: ReferenceConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "references": [ref.as_dict() for ref in exc.references],
            "conflicts": {
                asset_id: [ref.as_dict() for ref in refs]
                for asset_id, refs in exc.conflicts.items()
            },
        },
    )


def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Project Showcase API", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ProjectNotFoundError, _not_found)
    app.add_exception_handler(AssetNotFoundError, _not_found)
    app.add_exception_handler(SafetyLockError, _conflict)
    app.add_exception_handler(AssetExistsError, _conflict)
    app.add_exception_handler(RevisionConflictError, _revision_conflict)
    app.add_exception_handler(ReferenceConflictError, _reference_conflict)
    app.add_exception_handler(StorageError, _storage_error)
    return app


app = create_app()
