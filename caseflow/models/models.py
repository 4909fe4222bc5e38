"""SQLAlchemy ORM Models for Caseflow.

Tenant isolation hangs off two columns: ``user_profiles.organization_id``
and ``cases.organization_id``. Every other case-scoped table reaches its
tenant through ``case_id``.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONDocument, TimestampMixin, UUIDMixin, utcnow


# =============================================================================
# ENUMS
# =============================================================================


class DraftStatus(str, PyEnum):
    DRAFT = "draft"
    SAVED = "saved"


class MessageSender(str, PyEnum):
    USER = "user"
    BOT = "bot"


DEFAULT_TEMPLATE_TYPE = "demand-letter"
DRAFT_VERSION_CONSTRAINT = "uq_drafts_case_version"


# =============================================================================
# TENANT DIRECTORY
# =============================================================================


class Organization(Base, UUIDMixin, TimestampMixin):
    """Multi-tenant organization (a law firm)."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    profiles: Mapped[list["UserProfile"]] = relationship(back_populates="organization")


class UserProfile(Base, TimestampMixin):
    """Links an identity-store user to exactly one organization."""

    __tablename__ = "user_profiles"

    # Same value as the identity store's user id, not generated here
    id: Mapped[UUID] = mapped_column(primary_key=True)
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False
    )
    display_name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255))

    organization: Mapped["Organization"] = relationship(back_populates="profiles")

    __table_args__ = (
        Index("idx_user_profiles_org", "organization_id"),
    )


# =============================================================================
# CASES
# =============================================================================


class Case(Base, UUIDMixin, TimestampMixin):
    """A legal matter shared by the members of one organization."""

    __tablename__ = "cases"

    creator_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_profiles.id"), nullable=False
    )
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    contact_info: Mapped[dict] = mapped_column(default=dict)
    # "metadata" is reserved on declarative classes
    case_metadata: Mapped[dict] = mapped_column("metadata", JSONDocument, default=dict)

    __table_args__ = (
        Index("idx_cases_org", "organization_id"),
        Index("idx_cases_creator", "creator_id"),
    )


class CaseMember(Base):
    """Explicit grant of case access to a user."""

    __tablename__ = "case_members"

    case_id: Mapped[UUID] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"), primary_key=True
    )
    added_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="SET NULL")
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    profile: Mapped["UserProfile"] = relationship(foreign_keys=[user_id])

    __table_args__ = (
        Index("idx_case_members_case", "case_id"),
        Index("idx_case_members_user", "user_id"),
    )


class CaseMessage(Base, UUIDMixin):
    """A chat message. Private to its author even on a shared case."""

    __tablename__ = "case_messages"

    case_id: Mapped[UUID] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    sender: Mapped[MessageSender] = mapped_column(
        Enum(MessageSender, name="message_sender", values_callable=lambda x: [e.value for e in x]),
        default=MessageSender.USER,
        nullable=False,
    )
    message_metadata: Mapped[dict] = mapped_column("metadata", JSONDocument, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_case_messages_case_user", "case_id", "user_id"),
    )


# =============================================================================
# TEMPLATES
# =============================================================================


class Template(Base, UUIDMixin, TimestampMixin):
    """Organization-wide reusable template. Edited in place."""

    __tablename__ = "templates"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(
        String(100), default=DEFAULT_TEMPLATE_TYPE, nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="SET NULL")
    )

    __table_args__ = (
        Index("idx_templates_org", "organization_id"),
    )


class CaseTemplateSnapshot(Base, UUIDMixin):
    """Immutable copy of a template taken when it was attached to a case."""

    __tablename__ = "case_template_snapshots"

    case_id: Mapped[UUID] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    template_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("templates.id", ondelete="SET NULL")
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    added_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="SET NULL")
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        # At most one snapshot per (case, template)
        UniqueConstraint("case_id", "template_id"),
        Index("idx_snapshots_case", "case_id"),
        Index("idx_snapshots_template", "template_id"),
    )


# =============================================================================
# DRAFTS
# =============================================================================


class Draft(Base, UUIDMixin):
    """One numbered rendering of a case's document.

    Version identity (case_id, version_number) never changes after insert.
    """

    __tablename__ = "drafts"

    case_id: Mapped[UUID] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[DraftStatus] = mapped_column(
        Enum(DraftStatus, name="draft_status", values_callable=lambda x: [e.value for e in x]),
        default=DraftStatus.DRAFT,
        nullable=False,
    )
    rendered_content: Mapped[str] = mapped_column(Text, nullable=False)
    content_hash: Mapped[str | None] = mapped_column(String(64))
    snapshot_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("case_template_snapshots.id", ondelete="SET NULL")
    )
    created_by: Mapped[UUID] = mapped_column(
        ForeignKey("user_profiles.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    saved_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="SET NULL")
    )
    saved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("case_id", "version_number", name=DRAFT_VERSION_CONSTRAINT),
        Index("idx_drafts_case_version", "case_id", "version_number"),
        Index("idx_drafts_created_by", "created_by"),
    )
