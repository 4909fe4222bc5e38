"""Pydantic schemas for cases, case members and messages."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, Field

from ..models import MessageSender
from .base import CaseflowBaseModel, UserRef


# =============================================================================
# CASE SCHEMAS
# =============================================================================


class ContactInfo(CaseflowBaseModel):
    """Sender and recipient details used when drafting letters."""

    yourName: str | None = None
    yourAddress: str | None = None
    yourPhone: str | None = None
    yourEmail: str | None = None
    recipientName: str | None = None
    recipientTitle: str | None = None
    recipientCompany: str | None = None
    recipientAddress: str | None = None


class CaseCreate(CaseflowBaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    metadata: dict[str, Any] = Field(default_factory=dict)
    organization_id: UUID | None = Field(
        default=None,
        description="Defaults to the caller's organization; any other value is rejected",
    )


class CaseUpdate(CaseflowBaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    contact_info: ContactInfo | None = None
    metadata: dict[str, Any] | None = None


class CaseMetadataUpdate(CaseflowBaseModel):
    metadata: dict[str, Any]


class CaseResponse(CaseflowBaseModel):
    id: UUID
    organization_id: UUID
    creator_id: UUID
    title: str
    contact_info: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("case_metadata", "metadata"),
    )
    created_at: datetime
    updated_at: datetime | None = None


# =============================================================================
# MEMBERSHIP SCHEMAS
# =============================================================================


class MemberCreate(CaseflowBaseModel):
    user_id: UUID


class MemberResponse(CaseflowBaseModel):
    case_id: UUID
    user_id: UUID
    added_by: UUID | None = None
    added_at: datetime
    user: UserRef | None = Field(
        default=None,
        validation_alias=AliasChoices("profile", "user"),
    )


# =============================================================================
# MESSAGE SCHEMAS
# =============================================================================


class MessageCreate(CaseflowBaseModel):
    text: str = Field(..., min_length=1)
    sender: MessageSender = MessageSender.USER
    metadata: dict[str, Any] = Field(default_factory=dict)


class MessageUpdate(CaseflowBaseModel):
    text: str | None = Field(default=None, min_length=1)
    metadata: dict[str, Any] | None = None


class MessageResponse(CaseflowBaseModel):
    id: UUID
    case_id: UUID
    user_id: UUID
    text: str
    sender: MessageSender
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("message_metadata", "metadata"),
    )
    created_at: datetime
