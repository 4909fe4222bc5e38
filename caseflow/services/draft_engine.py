"""
Draft Engine: version allocation and lifecycle for case drafts.

This module implements the "new generation, new version" principle:
- generate and regenerate always INSERT a new numbered version
- Version numbers are unique per case and strictly increasing from 1
- Deleting a version never renumbers the others (gaps are legal)
- save is a one-way draft -> saved transition and is idempotent
- update_content is the only in-place content edit

Version allocation is the one place that must serialize concurrent
callers. It locks the case row where the database supports it, and the
UNIQUE (case_id, version_number) constraint catches anything the lock
does not. A collision is retried a bounded number of times.
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..core.security import hash_content, verify_content_hash
from ..models import (
    DRAFT_VERSION_CONSTRAINT,
    Case,
    CaseTemplateSnapshot,
    Draft,
    DraftStatus,
    utcnow,
)
from .access import AccessPolicy
from .errors import ConflictError, ValidationError
from .tenant_directory import TenantDirectory

logger = logging.getLogger(__name__)

# PostgreSQL reports the constraint name; SQLite only lists the columns
_VERSION_COLLISION_MARKERS = (
    DRAFT_VERSION_CONSTRAINT,
    "drafts.case_id, drafts.version_number",
)


def _is_version_collision(error: IntegrityError) -> bool:
    message = str(error.orig)
    return any(marker in message for marker in _VERSION_COLLISION_MARKERS)


# =============================================================================
# DRAFT ENGINE
# =============================================================================


class DraftEngine:
    """
    Core engine for versioned drafts.

    Guarantees:
    1. (case_id, version_number) is assigned exactly once
    2. Regeneration never overwrites an earlier version
    3. A saved draft stays saved with its original saved_by/saved_at
    """

    def __init__(
        self,
        session: AsyncSession,
        access: AccessPolicy | None = None,
        settings: Settings | None = None,
    ):
        self._session = session
        self._access = access or AccessPolicy(session, TenantDirectory(session))
        self._max_retries = (settings or get_settings()).draft_version_max_retries

    # =========================================================================
    # VERSION ALLOCATION
    # =========================================================================

    async def next_version(self, caller_id: UUID, case_id: UUID) -> int:
        """The number the next generated draft would get: max + 1, or 1."""
        await self._access.require_case(caller_id, case_id)
        return await self._max_version_number(case_id) + 1

    async def generate(
        self,
        caller_id: UUID,
        case_id: UUID,
        content: str,
        snapshot_id: UUID | None = None,
    ) -> Draft:
        """
        Insert a new draft version for a case.

        Flow:
        1. Check draft access on the case
        2. Validate content and the optional snapshot reference
        3. Lock the case row (SELECT ... FOR UPDATE)
        4. Read max(version_number) and INSERT max + 1 inside a savepoint
        5. On a unique-constraint collision roll back the savepoint and retry
        6. Give up with ConflictError once the retry budget is spent
        """
        # Step 1: Access
        await self._access.require_case(caller_id, case_id)

        # Step 2: Validation
        if not content or not content.strip():
            raise ValidationError("Draft content is required")

        if snapshot_id is not None:
            snapshot = await self._session.get(CaseTemplateSnapshot, snapshot_id)
            if snapshot is None or snapshot.case_id != case_id:
                raise ValidationError("Snapshot does not belong to this case")

        # Step 3: Serialize allocators on this case
        await self._lock_case(case_id)

        content_hash = hash_content(content)
        attempts = self._max_retries + 1

        for attempt in range(1, attempts + 1):
            # Step 4: Claim max + 1
            version_number = await self._max_version_number(case_id) + 1
            draft = Draft(
                case_id=case_id,
                version_number=version_number,
                status=DraftStatus.DRAFT,
                rendered_content=content,
                content_hash=content_hash,
                snapshot_id=snapshot_id,
                created_by=caller_id,
            )
            try:
                async with self._session.begin_nested():
                    self._session.add(draft)
                    await self._session.flush()
            except IntegrityError as e:
                if not _is_version_collision(e):
                    raise
                # Step 5: Someone else took this number
                logger.warning(
                    f"Version {version_number} of case {case_id} already taken "
                    f"(attempt {attempt}/{attempts})"
                )
                continue

            logger.info(f"Allocated version {version_number} for case {case_id}")
            return draft

        # Step 6
        raise ConflictError(
            f"Could not allocate a draft version for case {case_id} after "
            f"{attempts} attempts. Please try again."
        )

    async def regenerate(
        self,
        caller_id: UUID,
        case_id: UUID,
        content: str,
        snapshot_id: UUID | None = None,
    ) -> Draft:
        """Same as generate: a regeneration is always a new version."""
        return await self.generate(caller_id, case_id, content, snapshot_id)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def save(self, caller_id: UUID, draft_id: UUID) -> Draft:
        """
        Mark a draft as saved.

        The UPDATE only matches rows still in ``draft`` status, so a second
        call changes nothing and returns the first call's saved_by/saved_at.
        """
        draft = await self._access.require_draft(caller_id, draft_id)

        now = utcnow()
        result = await self._session.execute(
            update(Draft)
            .where(Draft.id == draft_id, Draft.status == DraftStatus.DRAFT)
            .values(
                status=DraftStatus.SAVED,
                saved_by=caller_id,
                saved_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.refresh(draft)

        if result.rowcount:
            logger.info(f"Draft {draft_id} (v{draft.version_number}) saved by {caller_id}")
        return draft

    async def update_content(self, caller_id: UUID, draft_id: UUID, content: str) -> Draft:
        """Edit rendered content in place. Version number and status are kept."""
        draft = await self._access.require_draft(caller_id, draft_id)

        if not content or not content.strip():
            raise ValidationError("Draft content is required")

        if draft.content_hash and verify_content_hash(content, draft.content_hash):
            return draft

        draft.rendered_content = content
        draft.content_hash = hash_content(content)
        await self._session.flush()
        return draft

    async def delete_version(self, caller_id: UUID, draft_id: UUID) -> None:
        """Remove one version. Remaining versions keep their numbers."""
        draft = await self._access.require_draft(caller_id, draft_id)
        version_number = draft.version_number
        case_id = draft.case_id

        await self._session.delete(draft)
        await self._session.flush()

        logger.info(f"Deleted version {version_number} of case {case_id}")

    # =========================================================================
    # READS
    # =========================================================================

    async def get_draft(self, caller_id: UUID, draft_id: UUID) -> Draft:
        return await self._access.require_draft(caller_id, draft_id)

    async def get_current_draft(self, caller_id: UUID, case_id: UUID) -> Draft | None:
        """Highest-numbered draft of the case, or None."""
        await self._access.require_case(caller_id, case_id)
        result = await self._session.execute(
            select(Draft)
            .where(Draft.case_id == case_id)
            .order_by(Draft.version_number.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_versions(self, caller_id: UUID, case_id: UUID) -> Sequence[Draft]:
        """All drafts of the case, highest version first."""
        await self._access.require_case(caller_id, case_id)
        result = await self._session.execute(
            select(Draft)
            .where(Draft.case_id == case_id)
            .order_by(Draft.version_number.desc())
        )
        return result.scalars().all()

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _max_version_number(self, case_id: UUID) -> int:
        result = await self._session.execute(
            select(func.coalesce(func.max(Draft.version_number), 0))
            .where(Draft.case_id == case_id)
        )
        return result.scalar_one()

    async def _lock_case(self, case_id: UUID) -> None:
        # FOR UPDATE is dropped by dialects without row locks (SQLite)
        await self._session.execute(
            select(Case.id).where(Case.id == case_id).with_for_update()
        )
