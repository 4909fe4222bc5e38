"""Tenant Directory: organizations and the user -> organization mapping.

``organization_of`` is the root of tenant isolation. It reads
``user_profiles`` directly and never goes through the access rules, so
the trusted predicates in ``access.py`` can call it freely.
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import Organization, UserProfile
from .errors import ProfileNotFoundError, ValidationError

logger = logging.getLogger(__name__)


class TenantDirectory:
    """Read access to organizations and profiles, plus seeding writes.

    One instance per unit of work; organization lookups are memoized for
    the lifetime of the instance.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._org_cache: dict[UUID, UUID] = {}

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def organization_of(self, user_id: UUID) -> UUID:
        """Return the user's organization id or raise ProfileNotFoundError."""
        if user_id in self._org_cache:
            return self._org_cache[user_id]

        result = await self._session.execute(
            select(UserProfile.organization_id).where(UserProfile.id == user_id)
        )
        organization_id = result.scalar_one_or_none()
        if organization_id is None:
            raise ProfileNotFoundError()

        self._org_cache[user_id] = organization_id
        return organization_id

    async def find_organization_of(self, user_id: UUID) -> UUID | None:
        """Like organization_of, but returns None for unknown users."""
        try:
            return await self.organization_of(user_id)
        except ProfileNotFoundError:
            return None

    async def get_profile(self, user_id: UUID) -> UserProfile:
        result = await self._session.execute(
            select(UserProfile)
            .where(UserProfile.id == user_id)
            .options(selectinload(UserProfile.organization))
            .execution_options(populate_existing=True)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise ProfileNotFoundError()
        return profile

    async def get_organization(self, organization_id: UUID) -> Organization | None:
        return await self._session.get(Organization, organization_id)

    async def list_organization_users(self, caller_id: UUID) -> Sequence[UserProfile]:
        """All profiles in the caller's organization, for picking case members."""
        organization_id = await self.organization_of(caller_id)
        result = await self._session.execute(
            select(UserProfile)
            .where(UserProfile.organization_id == organization_id)
            .order_by(UserProfile.display_name, UserProfile.id)
        )
        return result.scalars().all()

    # =========================================================================
    # SEEDING
    # =========================================================================

    async def create_organization(self, name: str) -> Organization:
        if not name or not name.strip():
            raise ValidationError("Organization name is required")

        organization = Organization(name=name.strip())
        self._session.add(organization)
        await self._session.flush()
        logger.info(f"Created organization {organization.id}")
        return organization

    async def register_user(
        self,
        user_id: UUID,
        organization_id: UUID,
        display_name: str | None = None,
        email: str | None = None,
    ) -> UserProfile:
        """Attach an identity-store user to an organization.

        Profiles are immutable in normal flow, so registering the same user
        twice is rejected rather than moving them between organizations.
        """
        existing = await self._session.get(UserProfile, user_id)
        if existing is not None:
            raise ValidationError(f"User {user_id} already belongs to an organization")

        if await self.get_organization(organization_id) is None:
            raise ValidationError(f"Organization {organization_id} does not exist")

        profile = UserProfile(
            id=user_id,
            organization_id=organization_id,
            display_name=display_name,
            email=email,
        )
        self._session.add(profile)
        await self._session.flush()

        self._org_cache[user_id] = organization_id
        logger.info(f"Registered user {user_id} in organization {organization_id}")
        return profile
