"""
HTTP routes for the showcase API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile

from showcase import projects as project_ops
from showcase.config import Settings, get_settings
from showcase.dependencies import (
    get_reference_tracker,
    get_safe_store,
    require_admin,
)
from showcase.normalizer import normalize
from showcase.references import ReferenceTracker
from showcase.report import diagnose, generate_system_report
from showcase.schemas import (
    DeleteImagesRequest,
    DiagnoseResponse,
    DocumentPutRequest,
    DocumentResponse,
    ImportRequest,
    ProjectListResponse,
    ReferencesResponse,
    RenameRequest,
    ReorderRequest,
    ValidationResponse,
)
from showcase.store import SafeStore, is_publicly_visible, seed_sample_data
from showcase.validator import validate

logger = logging.getLogger(__name__)

router = APIRouter()

admin = [Depends(require_admin)]


@router.get("/projects", response_model=ProjectListResponse)
def list_public_projects(store: SafeStore = Depends(get_safe_store)):
    collection = store.load()
    return ProjectListResponse(
        projects=project_ops.public_projects(collection),
        settings={
            "showToggleControls": collection.settings.show_toggle_controls,
            "uiDisplay": collection.settings.ui_display.model_dump(by_alias=True),
        },
    )


@router.get("/projects/{project_id}")
def get_public_project(project_id: str, store: SafeStore = Depends(get_safe_store)):
    record = project_ops.get_project(store, project_id)
    if record.hidden or not is_publicly_visible(record):
        raise HTTPException(status_code=404, detail="Project not found")
    return project_ops.public_view(record)


@router.post("/projects", status_code=201, dependencies=admin)
def create_project(
    payload: dict = Body(...), store: SafeStore = Depends(get_safe_store)
):
    return project_ops.create_project(store, payload).as_dict()


@router.put("/projects/{project_id}", dependencies=admin)
def update_project(
    project_id: str,
    payload: dict = Body(...),
    store: SafeStore = Depends(get_safe_store),
):
    return project_ops.update_project(store, project_id, payload).as_dict()


@router.delete("/projects/{project_id}", dependencies=admin)
def delete_project(
    project_id: str,
    force: bool = Query(False),
    store: SafeStore = Depends(get_safe_store),
):
    return project_ops.delete_project(store, project_id, force=force).as_dict()


@router.post("/projects/reorder", dependencies=admin)
def reorder_projects(payload: ReorderRequest, store: SafeStore = Depends(get_safe_store)):
    records = project_ops.reorder_projects(
        store, [{"id": item.id, "sortOrder": item.sort_order} for item in payload.items]
    )
    return {
        "updatedCount": len(payload.items),
        "order": [record.id for record in records],
    }


@router.get("/admin/data", response_model=DocumentResponse, dependencies=admin)
def get_document(store: SafeStore = Depends(get_safe_store)):
    collection = store.load()
    return DocumentResponse(
        data=collection.as_dict(),
        revision=collection.revision,
        source=collection.source,
    )


@router.put("/admin/data", dependencies=admin)
def put_document(payload: DocumentPutRequest, store: SafeStore = Depends(get_safe_store)):
    result = store.save(
        payload.data,
        force_write=payload.force_write,
        expected_revision=payload.expected_revision,
    )
    return result.as_dict()


@router.post("/admin/data/validate", response_model=ValidationResponse, dependencies=admin)
def validate_document(payload: dict = Body(...)):
    doc = dict(payload)
    if isinstance(doc.get("projects"), list):
        doc["projects"] = [
            normalize(entry).as_dict() if isinstance(entry, dict) else entry
            for entry in doc["projects"]
        ]
    result = validate(doc)
    return ValidationResponse(valid=result.valid, errors=result.errors)


@router.post("/admin/import", dependencies=admin)
def import_projects(payload: ImportRequest, store: SafeStore = Depends(get_safe_store)):
    return project_ops.import_projects(store, payload.projects).as_dict()


@router.post("/admin/seed", dependencies=admin)
def seed_document(
    force: bool = Query(False), store: SafeStore = Depends(get_safe_store)
):
    result = seed_sample_data(store, force=force)
    if result is None:
        return {"seeded": False}
    return {"seeded": True, "result": result.as_dict()}


@router.get("/admin/diagnose", response_model=DiagnoseResponse, dependencies=admin)
def diagnose_document(
    store: SafeStore = Depends(get_safe_store),
    settings: Settings = Depends(get_settings),
):
    return DiagnoseResponse(
        diagnostics=diagnose(store, settings),
        report=generate_system_report(store.load()),
    )


@router.get("/settings/ui-display")
def get_ui_display(store: SafeStore = Depends(get_safe_store)):
    return store.load().settings.ui_display.model_dump(by_alias=True)


@router.put("/settings/ui-display", dependencies=admin)
def put_ui_display(payload: dict = Body(...), store: SafeStore = Depends(get_safe_store)):
    return project_ops.update_ui_display(store, payload).model_dump(by_alias=True)


@router.post("/settings/reset-ui", dependencies=admin)
def reset_ui_display(store: SafeStore = Depends(get_safe_store)):
    return project_ops.reset_ui_display(store).model_dump(by_alias=True)


@router.get("/images", dependencies=admin)
def list_images(tracker: ReferenceTracker = Depends(get_reference_tracker)):
    return {"images": [asset.as_dict() for asset in tracker.list_assets()]}


@router.post("/images", status_code=201, dependencies=admin)
async def upload_image(
    file: UploadFile = File(...),
    tracker: ReferenceTracker = Depends(get_reference_tracker),
):
    if not file.filename:
        raise HTTPException(status_code=400, detail="filename is required")
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image uploads are accepted")
    content = await file.read()
    result = tracker.upload_asset(
        file.filename, content, content_type=file.content_type or "application/octet-stream"
    )
    return result.as_dict()


@router.get(
    "/images/{asset_id}/references",
    response_model=ReferencesResponse,
    dependencies=admin,
)
def check_references(
    asset_id: str, tracker: ReferenceTracker = Depends(get_reference_tracker)
):
    references = tracker.find_references(asset_id)
    return ReferencesResponse(
        asset_id=asset_id,
        references=[ref.as_dict() for ref in references],
        can_delete=not references,
    )


@router.post("/images/rename", dependencies=admin)
def rename_image(
    payload: RenameRequest, tracker: ReferenceTracker = Depends(get_reference_tracker)
):
    return tracker.rename(payload.old_id, payload.new_id, cascade=payload.cascade).as_dict()


@router.delete("/images/{asset_id}", dependencies=admin)
def delete_image(
    asset_id: str,
    force: bool = Query(False),
    tracker: ReferenceTracker = Depends(get_reference_tracker),
):
    return tracker.delete_asset(asset_id, force=force).as_dict()


@router.post("/images/delete", dependencies=admin)
def delete_images(
    payload: DeleteImagesRequest,
    tracker: ReferenceTracker = Depends(get_reference_tracker),
):
    return tracker.delete_assets(payload.ids, force=payload.force).as_dict()
