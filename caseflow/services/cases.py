"""Case service: cases, case membership and per-user chat messages."""

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import (
    Case,
    CaseMember,
    CaseMessage,
    CaseTemplateSnapshot,
    Draft,
    MessageSender,
)
from .access import AccessPolicy
from .errors import ValidationError
from .tenant_directory import TenantDirectory

logger = logging.getLogger(__name__)


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class CreateCaseInput:
    """Input for creating a case."""
    title: str
    contact_info: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    # Optional; must equal the caller's organization when given
    organization_id: UUID | None = None


@dataclass
class UpdateCaseInput:
    """Partial update of a case. Organization and creator are fixed."""
    title: str | None = None
    contact_info: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None


class CaseService:
    """CRUD over cases, their members and their messages.

    Every method takes the caller's user id explicitly and checks it
    against AccessPolicy before touching any row.
    """

    def __init__(self, session: AsyncSession, access: AccessPolicy | None = None):
        self._session = session
        self._access = access or AccessPolicy(session, TenantDirectory(session))

    @property
    def directory(self) -> TenantDirectory:
        return self._access.directory

    # =========================================================================
    # CASES
    # =========================================================================

    async def create_case(self, caller_id: UUID, input: CreateCaseInput) -> Case:
        """
        Create a case and its creator's membership row.

        Both rows are written inside one savepoint, so there is no moment
        where the case exists without its creator as a member.
        """
        organization_id = await self.directory.organization_of(caller_id)

        if input.organization_id is not None and input.organization_id != organization_id:
            raise ValidationError("Cases can only be created in your own organization")

        title = (input.title or "").strip()
        if not title:
            raise ValidationError("Case title is required")

        case = Case(
            id=uuid4(),
            creator_id=caller_id,
            organization_id=organization_id,
            title=title,
            contact_info=dict(input.contact_info or {}),
            case_metadata=dict(input.metadata or {}),
        )
        async with self._session.begin_nested():
            self._session.add(case)
            await self._session.flush()
            self._session.add(
                CaseMember(case_id=case.id, user_id=caller_id, added_by=caller_id)
            )
            await self._session.flush()

        logger.info(f"Case {case.id} created by {caller_id} in organization {organization_id}")
        return case

    async def get_case(self, caller_id: UUID, case_id: UUID) -> Case:
        return await self._access.require_case(caller_id, case_id)

    async def list_cases(self, caller_id: UUID) -> Sequence[Case]:
        """Cases the caller created or is a member of, newest first."""
        result = await self._session.execute(
            select(Case)
            .where(self._access.visible_cases_clause(caller_id))
            .order_by(Case.created_at.desc())
        )
        return result.scalars().all()

    async def update_case(
        self,
        caller_id: UUID,
        case_id: UUID,
        input: UpdateCaseInput,
    ) -> Case:
        case = await self._access.require_case(caller_id, case_id)

        if input.title is not None:
            title = input.title.strip()
            if not title:
                raise ValidationError("Case title cannot be empty")
            case.title = title
        if input.contact_info is not None:
            case.contact_info = dict(input.contact_info)
        if input.metadata is not None:
            case.case_metadata = dict(input.metadata)

        await self._session.flush()
        return case

    async def update_case_metadata(
        self,
        caller_id: UUID,
        case_id: UUID,
        metadata: dict[str, Any],
    ) -> Case:
        """Replace the case's metadata document (e.g. the selected chat type)."""
        return await self.update_case(caller_id, case_id, UpdateCaseInput(metadata=metadata))

    async def delete_case(self, caller_id: UUID, case_id: UUID) -> None:
        """Delete a case together with everything scoped to it."""
        case = await self._access.require_case(caller_id, case_id)

        await self._session.execute(delete(Draft).where(Draft.case_id == case_id))
        await self._session.execute(
            delete(CaseTemplateSnapshot).where(CaseTemplateSnapshot.case_id == case_id)
        )
        await self._session.execute(delete(CaseMessage).where(CaseMessage.case_id == case_id))
        await self._session.execute(delete(CaseMember).where(CaseMember.case_id == case_id))
        await self._session.delete(case)
        await self._session.flush()

        logger.info(f"Case {case_id} deleted by {caller_id}")

    # =========================================================================
    # MEMBERSHIP
    # =========================================================================

    async def list_members(self, caller_id: UUID, case_id: UUID) -> Sequence[CaseMember]:
        await self._access.require_membership_read(caller_id, case_id)
        result = await self._session.execute(
            select(CaseMember)
            .where(CaseMember.case_id == case_id)
            .options(selectinload(CaseMember.profile))
            .order_by(CaseMember.added_at)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def add_member(self, caller_id: UUID, case_id: UUID, user_id: UUID) -> CaseMember:
        """Add a same-organization user to a case. Re-adding is a no-op."""
        await self._access.require_membership_write(caller_id, case_id, user_id)

        existing = await self._get_member(case_id, user_id)
        if existing is not None:
            return existing

        member = CaseMember(case_id=case_id, user_id=user_id, added_by=caller_id)
        try:
            async with self._session.begin_nested():
                self._session.add(member)
                await self._session.flush()
        except IntegrityError:
            # Another request added the same pair first
            logger.info(f"Membership ({case_id}, {user_id}) already present")
            existing = await self._get_member(case_id, user_id)
            if existing is None:
                raise
            return existing

        await self._session.refresh(member, attribute_names=["profile"])
        logger.info(f"User {user_id} added to case {case_id} by {caller_id}")
        return member

    async def remove_member(self, caller_id: UUID, case_id: UUID, user_id: UUID) -> bool:
        """Remove a member. Returns False if the user was not a member."""
        case = await self._access.require_membership_delete(caller_id, case_id)

        if user_id == case.creator_id:
            raise ValidationError("The case creator cannot be removed from the case")

        member = await self._get_member(case_id, user_id)
        if member is None:
            return False

        await self._session.delete(member)
        await self._session.flush()
        logger.info(f"User {user_id} removed from case {case_id} by {caller_id}")
        return True

    async def _get_member(self, case_id: UUID, user_id: UUID) -> CaseMember | None:
        result = await self._session.execute(
            select(CaseMember)
            .where(CaseMember.case_id == case_id, CaseMember.user_id == user_id)
            .options(selectinload(CaseMember.profile))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # =========================================================================
    # MESSAGES
    # =========================================================================

    async def list_messages(self, caller_id: UUID, case_id: UUID) -> Sequence[CaseMessage]:
        """The caller's own messages on a case, oldest first."""
        await self._access.require_case(caller_id, case_id)
        result = await self._session.execute(
            select(CaseMessage)
            .where(CaseMessage.case_id == case_id, CaseMessage.user_id == caller_id)
            .order_by(CaseMessage.created_at, CaseMessage.id)
        )
        return result.scalars().all()

    async def add_message(
        self,
        caller_id: UUID,
        case_id: UUID,
        text: str,
        sender: MessageSender = MessageSender.USER,
        metadata: dict[str, Any] | None = None,
    ) -> CaseMessage:
        await self._access.require_case(caller_id, case_id)

        if not text or not text.strip():
            raise ValidationError("Message text is required")

        message = CaseMessage(
            case_id=case_id,
            user_id=caller_id,
            text=text,
            sender=sender,
            message_metadata=dict(metadata or {}),
        )
        self._session.add(message)
        await self._session.flush()
        return message

    async def update_message(
        self,
        caller_id: UUID,
        message_id: UUID,
        text: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> CaseMessage:
        message = await self._access.require_message(caller_id, message_id)

        if text is not None:
            if not text.strip():
                raise ValidationError("Message text cannot be empty")
            message.text = text
        if metadata is not None:
            message.message_metadata = dict(metadata)

        await self._session.flush()
        return message

    async def delete_message(self, caller_id: UUID, message_id: UUID) -> None:
        message = await self._access.require_message(caller_id, message_id)
        await self._session.delete(message)
        await self._session.flush()
