"""User API routes: the caller's profile and organization directory."""

from uuid import UUID

from fastapi import APIRouter

from ..core.dependencies import CurrentUserDep, TenantDirectoryDep
from ..schemas import CaseflowBaseModel, OrganizationRef, UserRef

router = APIRouter(prefix="/me", tags=["user"])


# =============================================================================
# SCHEMAS
# =============================================================================


class MeResponse(CaseflowBaseModel):
    """The authenticated caller and their organization."""
    id: UUID
    display_name: str | None = None
    email: str | None = None
    organization: OrganizationRef


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.get("", response_model=MeResponse)
async def get_me(current_user: CurrentUserDep, directory: TenantDirectoryDep):
    """Get the caller's profile. 403 if the caller has no organization profile."""
    profile = await directory.get_profile(current_user.id)
    return MeResponse(
        id=profile.id,
        display_name=profile.display_name,
        email=profile.email,
        organization=OrganizationRef.model_validate(profile.organization),
    )


@router.get("/organization/users", response_model=list[UserRef])
async def list_organization_users(current_user: CurrentUserDep, directory: TenantDirectoryDep):
    """Everyone in the caller's organization, for adding case members."""
    return await directory.list_organization_users(current_user.id)
