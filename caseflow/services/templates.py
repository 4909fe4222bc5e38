"""
Template Store: organization-wide templates and per-case snapshots.

Templates are shared by every user of an organization and edited in place.
A snapshot is a copy of a template's name/type/content taken when the
template is first used on a case. Snapshots are never updated, so later
template edits do not reach drafts that were built from them.
"""

import logging
from dataclasses import dataclass
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import DEFAULT_TEMPLATE_TYPE, CaseTemplateSnapshot, Draft, Template
from .access import AccessPolicy
from .errors import ValidationError
from .tenant_directory import TenantDirectory

logger = logging.getLogger(__name__)


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class CreateTemplateInput:
    name: str
    content: str
    type: str = DEFAULT_TEMPLATE_TYPE


@dataclass
class UpdateTemplateInput:
    name: str | None = None
    content: str | None = None
    type: str | None = None


# =============================================================================
# TEMPLATE SERVICE
# =============================================================================


class TemplateService:
    """Template CRUD plus lookup-or-create of case snapshots."""

    def __init__(self, session: AsyncSession, access: AccessPolicy | None = None):
        self._session = session
        self._access = access or AccessPolicy(session, TenantDirectory(session))

    # =========================================================================
    # TEMPLATES
    # =========================================================================

    async def create_template(self, caller_id: UUID, input: CreateTemplateInput) -> Template:
        organization_id = await self._access.directory.organization_of(caller_id)

        name = (input.name or "").strip()
        if not name:
            raise ValidationError("Template name is required")
        if not input.content or not input.content.strip():
            raise ValidationError("Template content is required")

        template = Template(
            organization_id=organization_id,
            name=name,
            type=(input.type or DEFAULT_TEMPLATE_TYPE).strip(),
            content=input.content,
            created_by=caller_id,
        )
        self._session.add(template)
        await self._session.flush()

        logger.info(f"Template {template.id} created in organization {organization_id}")
        return template

    async def list_templates(self, caller_id: UUID) -> Sequence[Template]:
        """Templates of the caller's organization, newest first."""
        organization_id = await self._access.directory.organization_of(caller_id)
        result = await self._session.execute(
            select(Template)
            .where(Template.organization_id == organization_id)
            .order_by(Template.created_at.desc())
        )
        return result.scalars().all()

    async def get_template(self, caller_id: UUID, template_id: UUID) -> Template:
        return await self._access.require_template(caller_id, template_id)

    async def update_template(
        self,
        caller_id: UUID,
        template_id: UUID,
        input: UpdateTemplateInput,
    ) -> Template:
        """Edit a template in place. Existing snapshots are unaffected."""
        template = await self._access.require_template(caller_id, template_id)

        if input.name is not None:
            if not input.name.strip():
                raise ValidationError("Template name cannot be empty")
            template.name = input.name.strip()
        if input.content is not None:
            if not input.content.strip():
                raise ValidationError("Template content cannot be empty")
            template.content = input.content
        if input.type is not None:
            template.type = input.type.strip() or DEFAULT_TEMPLATE_TYPE

        await self._session.flush()
        return template

    async def delete_template(self, caller_id: UUID, template_id: UUID) -> None:
        """Delete a template. Snapshots keep their copy and lose the back-reference."""
        template = await self._access.require_template(caller_id, template_id)

        await self._session.execute(
            update(CaseTemplateSnapshot)
            .where(CaseTemplateSnapshot.template_id == template_id)
            .values(template_id=None)
        )
        await self._session.delete(template)
        await self._session.flush()

        logger.info(f"Template {template_id} deleted by {caller_id}")

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    async def get_or_create_snapshot(
        self,
        caller_id: UUID,
        case_id: UUID,
        template_id: UUID,
    ) -> CaseTemplateSnapshot:
        """
        Return the snapshot of ``template_id`` on ``case_id``, creating it once.

        Flow:
        1. Check snapshot access on the case and read access on the template
        2. Return the existing (case, template) snapshot if there is one
        3. Otherwise copy name/type/content into a new row inside a savepoint
        4. If a concurrent call inserted first, the unique constraint fires
           and the winner's row is returned instead
        """
        await self._access.require_case_snapshots(caller_id, case_id)
        template = await self._access.require_template(caller_id, template_id)

        existing = await self._find_snapshot(case_id, template_id)
        if existing is not None:
            return existing

        snapshot = CaseTemplateSnapshot(
            case_id=case_id,
            template_id=template_id,
            name=template.name,
            type=template.type,
            content=template.content,
            added_by=caller_id,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(snapshot)
                await self._session.flush()
        except IntegrityError:
            logger.info(f"Snapshot race on case {case_id} template {template_id}; reusing winner")
            existing = await self._find_snapshot(case_id, template_id)
            if existing is None:
                raise
            return existing

        logger.info(f"Snapshot {snapshot.id} of template {template_id} added to case {case_id}")
        return snapshot

    async def list_snapshots(self, caller_id: UUID, case_id: UUID) -> Sequence[CaseTemplateSnapshot]:
        await self._access.require_case_snapshots(caller_id, case_id)
        result = await self._session.execute(
            select(CaseTemplateSnapshot)
            .where(CaseTemplateSnapshot.case_id == case_id)
            .order_by(CaseTemplateSnapshot.added_at.desc())
        )
        return result.scalars().all()

    async def get_snapshot(self, caller_id: UUID, snapshot_id: UUID) -> CaseTemplateSnapshot:
        return await self._access.require_snapshot(caller_id, snapshot_id)

    async def delete_snapshot(self, caller_id: UUID, snapshot_id: UUID) -> None:
        """Delete a snapshot. Drafts built from it keep their rendered content."""
        snapshot = await self._access.require_snapshot(caller_id, snapshot_id)

        await self._session.execute(
            update(Draft).where(Draft.snapshot_id == snapshot_id).values(snapshot_id=None)
        )
        await self._session.delete(snapshot)
        await self._session.flush()

    async def _find_snapshot(self, case_id: UUID, template_id: UUID) -> CaseTemplateSnapshot | None:
        result = await self._session.execute(
            select(CaseTemplateSnapshot).where(
                CaseTemplateSnapshot.case_id == case_id,
                CaseTemplateSnapshot.template_id == template_id,
            )
        )
        return result.scalar_one_or_none()
