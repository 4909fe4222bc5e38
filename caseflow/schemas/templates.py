"""Pydantic schemas for templates and case template snapshots."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from ..models import DEFAULT_TEMPLATE_TYPE
from .base import CaseflowBaseModel


class TemplateCreate(CaseflowBaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    type: str = Field(default=DEFAULT_TEMPLATE_TYPE, max_length=100)


class TemplateUpdate(CaseflowBaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    type: str | None = Field(default=None, max_length=100)


class TemplateResponse(CaseflowBaseModel):
    id: UUID
    organization_id: UUID
    name: str
    type: str
    content: str
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None


class SnapshotCreate(CaseflowBaseModel):
    template_id: UUID


class SnapshotResponse(CaseflowBaseModel):
    """Frozen copy of a template; ``template_id`` is None once the source is deleted."""

    id: UUID
    case_id: UUID
    template_id: UUID | None = None
    name: str
    type: str
    content: str
    added_by: UUID | None = None
    added_at: datetime
