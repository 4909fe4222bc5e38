"""
Access Policy: the authorization rules behind every case-scoped read and write.

The rule graph has exactly two levels:

1. Trusted predicates (leaves)
   - same_organization(case_id, user_id)
   - is_case_member(case_id, user_id)
   They read ``cases`` and ``case_members`` directly and never consult
   another rule. They answer yes/no only; rows they touch are never
   handed back to the caller.

2. Rules (one level up)
   Case, membership, template, snapshot, draft and message rules are
   built only from the leaves plus identity comparisons such as
   ``creator_id == caller_id``. No rule re-queries a guarded table
   through another rule.

Entering a rule while a trusted predicate is evaluating raises
AccessRuleCycleError, so a dependency cycle fails on the first call
instead of recursing.

Every denial raises AuthorizationDenied, which is indistinguishable from
"does not exist".
"""

import functools
import logging
from contextvars import ContextVar
from typing import Any, Awaitable, Callable, NoReturn, TypeVar
from uuid import UUID

from sqlalchemy import ColumnElement, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    Case,
    CaseMember,
    CaseMessage,
    CaseTemplateSnapshot,
    Draft,
    Template,
)
from .errors import AccessRuleCycleError, AuthorizationDenied, ValidationError
from .tenant_directory import TenantDirectory

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Depth of trusted-predicate evaluation in the current task
_trusted_depth: ContextVar[int] = ContextVar("caseflow_trusted_depth", default=0)


def trusted_predicate(func: Callable[..., Awaitable[bool]]) -> Callable[..., Awaitable[bool]]:
    """Mark a leaf predicate that reads guarded tables without a rule of its own."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> bool:
        token = _trusted_depth.set(_trusted_depth.get() + 1)
        try:
            return bool(await func(*args, **kwargs))
        finally:
            _trusted_depth.reset(token)

    wrapper.is_trusted_predicate = True  # type: ignore[attr-defined]
    return wrapper


def access_rule(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Mark a rule. Rules may call trusted predicates, never the reverse."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        if _trusted_depth.get() > 0:
            raise AccessRuleCycleError(
                f"Access rule {func.__name__} entered from inside a trusted predicate"
            )
        return await func(*args, **kwargs)

    return wrapper


def in_trusted_context() -> bool:
    return _trusted_depth.get() > 0


class AccessPolicy:
    """Authorization engine for case-scoped resources."""

    def __init__(self, session: AsyncSession, directory: TenantDirectory | None = None):
        self._session = session
        self._directory = directory or TenantDirectory(session)

    @property
    def directory(self) -> TenantDirectory:
        return self._directory

    # =========================================================================
    # TRUSTED PREDICATES (LEAVES)
    # =========================================================================

    @staticmethod
    def membership_row_clause(case_id: Any, user_id: UUID) -> ColumnElement[bool]:
        """EXISTS over case_members; ``case_id`` may be a correlated column."""
        return exists(
            select(CaseMember.case_id).where(
                CaseMember.case_id == case_id,
                CaseMember.user_id == user_id,
            )
        )

    @classmethod
    def is_case_member_clause(cls, case_id: UUID, user_id: UUID) -> ColumnElement[bool]:
        """SQL form of is_case_member for a concrete case id."""
        return or_(
            exists(
                select(Case.id).where(Case.id == case_id, Case.creator_id == user_id)
            ),
            cls.membership_row_clause(case_id, user_id),
        )

    @staticmethod
    def same_organization_clause(case_id: Any, organization_id: UUID) -> ColumnElement[bool]:
        """SQL form of same_organization for an already-resolved organization."""
        return exists(
            select(Case.id).where(
                Case.id == case_id,
                Case.organization_id == organization_id,
            )
        )

    @trusted_predicate
    async def same_organization(self, case_id: UUID, user_id: UUID) -> bool:
        """True iff the case's organization equals the user's organization."""
        organization_id = await self._directory.find_organization_of(user_id)
        if organization_id is None:
            return False
        result = await self._session.execute(
            select(self.same_organization_clause(case_id, organization_id))
        )
        return bool(result.scalar())

    @trusted_predicate
    async def is_case_member(self, case_id: UUID, user_id: UUID) -> bool:
        """True iff the user created the case or holds a membership row."""
        result = await self._session.execute(
            select(self.is_case_member_clause(case_id, user_id))
        )
        return bool(result.scalar())

    # =========================================================================
    # RULES
    # =========================================================================

    @access_rule
    async def require_case(self, caller_id: UUID, case_id: UUID) -> Case:
        """Case: read/write iff creator OR member."""
        case = await self._session.get(Case, case_id)
        if case is None:
            self._deny("case", caller_id, case_id)
        if case.creator_id == caller_id or await self.is_case_member(case_id, caller_id):
            return case
        self._deny("case", caller_id, case_id)

    @access_rule
    async def require_membership_read(self, caller_id: UUID, case_id: UUID) -> Case:
        """Membership rows: readable iff same organization."""
        case = await self._session.get(Case, case_id)
        if case is None or not await self.same_organization(case_id, caller_id):
            self._deny("membership.read", caller_id, case_id)
        return case

    @access_rule
    async def require_membership_write(
        self,
        caller_id: UUID,
        case_id: UUID,
        target_user_id: UUID,
    ) -> Case:
        """Membership insert/delete: caller is creator or member, target is same-org.

        A caller without access is denied uniformly. A legitimate caller
        naming a user from another organization gets a ValidationError.
        """
        case = await self._session.get(Case, case_id)
        if case is None:
            self._deny("membership.write", caller_id, case_id)
        if not (case.creator_id == caller_id or await self.is_case_member(case_id, caller_id)):
            self._deny("membership.write", caller_id, case_id)

        if not await self.same_organization(case_id, target_user_id):
            raise ValidationError("User must belong to the same organization as the case")
        return case

    @access_rule
    async def require_membership_delete(self, caller_id: UUID, case_id: UUID) -> Case:
        """Membership delete: same caller condition as insert."""
        case = await self._session.get(Case, case_id)
        if case is None:
            self._deny("membership.delete", caller_id, case_id)
        if not (case.creator_id == caller_id or await self.is_case_member(case_id, caller_id)):
            self._deny("membership.delete", caller_id, case_id)
        return case

    @access_rule
    async def require_template(self, caller_id: UUID, template_id: UUID) -> Template:
        """Template: read/write iff it belongs to the caller's organization."""
        template = await self._session.get(Template, template_id)
        organization_id = await self._directory.find_organization_of(caller_id)
        if template is None or organization_id is None or template.organization_id != organization_id:
            self._deny("template", caller_id, template_id)
        return template

    @access_rule
    async def require_case_snapshots(self, caller_id: UUID, case_id: UUID) -> Case:
        """Snapshots of a case: same organization AND (creator OR member)."""
        case = await self._session.get(Case, case_id)
        if case is None:
            self._deny("snapshot", caller_id, case_id)
        if not await self.same_organization(case_id, caller_id):
            self._deny("snapshot", caller_id, case_id)
        if not (case.creator_id == caller_id or await self.is_case_member(case_id, caller_id)):
            self._deny("snapshot", caller_id, case_id)
        return case

    @access_rule
    async def require_snapshot(self, caller_id: UUID, snapshot_id: UUID) -> CaseTemplateSnapshot:
        snapshot = await self._session.get(CaseTemplateSnapshot, snapshot_id)
        if snapshot is None:
            self._deny("snapshot", caller_id, snapshot_id)
        await self.require_case_snapshots(caller_id, snapshot.case_id)
        return snapshot

    @access_rule
    async def require_draft(self, caller_id: UUID, draft_id: UUID) -> Draft:
        """Draft: read/write iff creator OR member of its case (shared by all members)."""
        draft = await self._session.get(Draft, draft_id)
        if draft is None:
            self._deny("draft", caller_id, draft_id)
        await self.require_case(caller_id, draft.case_id)
        return draft

    @access_rule
    async def require_message(self, caller_id: UUID, message_id: UUID) -> CaseMessage:
        """Message: read/write iff caller owns it AND is creator or member of the case."""
        message = await self._session.get(CaseMessage, message_id)
        if message is None or message.user_id != caller_id:
            self._deny("message", caller_id, message_id)
        await self.require_case(caller_id, message.case_id)
        return message

    @access_rule
    async def authorize(self, caller_id: UUID, resource: str, resource_id: UUID) -> Any:
        """General rule path: dispatch to the rule for ``resource`` and return the row."""
        rules: dict[str, Callable[[UUID, UUID], Awaitable[Any]]] = {
            "case": self.require_case,
            "membership": self.require_membership_read,
            "template": self.require_template,
            "snapshot": self.require_snapshot,
            "draft": self.require_draft,
            "message": self.require_message,
        }
        rule = rules.get(resource)
        if rule is None:
            raise ValueError(f"Unknown resource type: {resource}")
        return await rule(caller_id, resource_id)

    # =========================================================================
    # SET FILTERS
    # =========================================================================

    def visible_cases_clause(self, caller_id: UUID) -> ColumnElement[bool]:
        """Row filter for listing cases: creator OR member."""
        return or_(
            Case.creator_id == caller_id,
            self.membership_row_clause(Case.id, caller_id),
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _deny(rule: str, caller_id: UUID, resource_id: UUID) -> NoReturn:
        logger.warning(f"Access denied: rule={rule} caller={caller_id} resource={resource_id}")
        raise AuthorizationDenied()
