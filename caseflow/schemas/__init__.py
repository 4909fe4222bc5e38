"""Caseflow API Schemas.

Schemas are organized by domain:
- base: common configuration, errors, references
- cases: cases, members, messages
- templates: templates and snapshots
- drafts: draft versions and export
"""

from .base import (
    CaseflowBaseModel,
    ErrorDetail,
    ErrorResponse,
    OrganizationRef,
    UserRef,
)
from .cases import (
    CaseCreate,
    CaseMetadataUpdate,
    CaseResponse,
    CaseUpdate,
    ContactInfo,
    MemberCreate,
    MemberResponse,
    MessageCreate,
    MessageResponse,
    MessageUpdate,
)
from .drafts import (
    DraftCompose,
    DraftContentUpdate,
    DraftGenerate,
    DraftResponse,
    ExportFormat,
    NextVersionResponse,
)
from .templates import (
    SnapshotCreate,
    SnapshotResponse,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
)

__all__ = [
    # Base
    "CaseflowBaseModel",
    "ErrorDetail",
    "ErrorResponse",
    "OrganizationRef",
    "UserRef",
    # Cases
    "ContactInfo",
    "CaseCreate",
    "CaseUpdate",
    "CaseMetadataUpdate",
    "CaseResponse",
    "MemberCreate",
    "MemberResponse",
    "MessageCreate",
    "MessageUpdate",
    "MessageResponse",
    # Templates
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateResponse",
    "SnapshotCreate",
    "SnapshotResponse",
    # Drafts
    "DraftGenerate",
    "DraftCompose",
    "DraftContentUpdate",
    "DraftResponse",
    "NextVersionResponse",
    "ExportFormat",
]
