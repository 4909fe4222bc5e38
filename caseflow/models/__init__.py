"""SQLAlchemy ORM Models for Caseflow."""

from .base import Base, JSONDocument, TimestampMixin, UUIDMixin, utcnow
from .models import (
    # Enums
    DEFAULT_TEMPLATE_TYPE,
    DRAFT_VERSION_CONSTRAINT,
    DraftStatus,
    MessageSender,
    # Tenant directory
    Organization,
    UserProfile,
    # Cases
    Case,
    CaseMember,
    CaseMessage,
    # Templates
    CaseTemplateSnapshot,
    Template,
    # Drafts
    Draft,
)

__all__ = [
    # Base
    "Base",
    "JSONDocument",
    "UUIDMixin",
    "TimestampMixin",
    "utcnow",
    # Enums
    "DEFAULT_TEMPLATE_TYPE",
    "DRAFT_VERSION_CONSTRAINT",
    "DraftStatus",
    "MessageSender",
    # Tenant directory
    "Organization",
    "UserProfile",
    # Cases
    "Case",
    "CaseMember",
    "CaseMessage",
    # Templates
    "Template",
    "CaseTemplateSnapshot",
    # Drafts
    "Draft",
]
