"""
Pydantic schemas for the showcase HTTP API.

Project records and the whole document travel as plain camelCase JSON
objects; they are normalized and validated by the data layer, not here.
Request and response bodies use the same camelCase keys and also accept
their snake_case field names.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectListResponse(BaseModel):
    projects: list[dict]
    settings: dict


class DocumentResponse(BaseModel):
    data: dict
    revision: Optional[str] = None
    source: str


class DocumentPutRequest(CamelModel):
    data: dict
    force_write: bool = False
    expected_revision: Optional[str] = None


class ValidationResponse(BaseModel):
    valid: bool
    errors: list[str]


class ReorderItem(CamelModel):
    id: str = Field(..., min_length=1)
    sort_order: int


class ReorderRequest(BaseModel):
    items: list[ReorderItem]


class ImportRequest(BaseModel):
    projects: list[dict]


class RenameRequest(CamelModel):
    old_id: str = Field(..., min_length=1)
    new_id: str = Field(..., min_length=1)
    cascade: bool = True


class DeleteImagesRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1)
    force: bool = False


class ReferencesResponse(CamelModel):
    asset_id: str
    references: list[dict]
    can_delete: bool


class DiagnoseResponse(BaseModel):
    diagnostics: dict
    report: str
