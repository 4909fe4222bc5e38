"""Pydantic schemas for draft versions."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from ..models import DraftStatus
from .base import CaseflowBaseModel


class ExportFormat(str, Enum):
    DOCX = "docx"
    PDF = "pdf"


class DraftGenerate(CaseflowBaseModel):
    """Store already-rendered content as the next version."""

    content: str = Field(..., min_length=1)
    snapshot_id: UUID | None = None


class DraftCompose(CaseflowBaseModel):
    """Generate content with the text-generation provider, then store it."""

    snapshot_id: UUID | None = None
    regenerate: bool = False


class DraftContentUpdate(CaseflowBaseModel):
    content: str = Field(..., min_length=1)


class DraftResponse(CaseflowBaseModel):
    id: UUID
    case_id: UUID
    version_number: int
    status: DraftStatus
    rendered_content: str
    content_hash: str | None = None
    snapshot_id: UUID | None = None
    created_by: UUID
    created_at: datetime
    saved_by: UUID | None = None
    saved_at: datetime | None = None
    updated_at: datetime | None = None


class NextVersionResponse(CaseflowBaseModel):
    case_id: UUID
    next_version: int
