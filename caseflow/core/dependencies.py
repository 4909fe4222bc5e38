"""FastAPI dependencies for authentication, sessions, and services."""

import logging
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.access import AccessPolicy
from ..services.cases import CaseService
from ..services.draft_engine import DraftEngine
from ..services.drafting import DraftComposer
from ..services.errors import AuthenticationError
from ..services.llm_provider import LLMProvider
from ..services.templates import TemplateService
from ..services.tenant_directory import TenantDirectory
from .config import get_settings
from .database import get_session
from .security import decode_token

logger = logging.getLogger(__name__)

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)

SessionDep = Annotated[AsyncSession, Depends(get_session)]


@dataclass
class CurrentUser:
    """The authenticated caller. ``organization_id`` is None without a profile."""

    id: UUID
    organization_id: UUID | None = None


def get_tenant_directory(session: SessionDep) -> TenantDirectory:
    return TenantDirectory(session)


TenantDirectoryDep = Annotated[TenantDirectory, Depends(get_tenant_directory)]


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    directory: TenantDirectoryDep,
) -> CurrentUser:
    """Dependency to get the current authenticated user from the bearer token."""
    if not credentials:
        raise AuthenticationError()

    payload = decode_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    if payload.type != "access":
        raise AuthenticationError("Invalid token type")

    try:
        user_id = UUID(payload.sub)
    except ValueError:
        logger.warning(f"Token subject is not a user id: {payload.sub!r}")
        raise AuthenticationError("Invalid token subject")

    organization_id = await directory.find_organization_of(user_id)
    return CurrentUser(id=user_id, organization_id=organization_id)


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


# =============================================================================
# SERVICES
# =============================================================================

# One AccessPolicy per request, shared by every service the request touches


def get_access_policy(session: SessionDep, directory: TenantDirectoryDep) -> AccessPolicy:
    return AccessPolicy(session, directory)


AccessPolicyDep = Annotated[AccessPolicy, Depends(get_access_policy)]


def get_case_service(session: SessionDep, access: AccessPolicyDep) -> CaseService:
    return CaseService(session, access)


def get_template_service(session: SessionDep, access: AccessPolicyDep) -> TemplateService:
    return TemplateService(session, access)


def get_draft_engine(session: SessionDep, access: AccessPolicyDep) -> DraftEngine:
    return DraftEngine(session, access, get_settings())


def get_llm_provider() -> LLMProvider:
    return LLMProvider(get_settings())


def get_draft_composer(
    session: SessionDep,
    access: AccessPolicyDep,
    provider: Annotated[LLMProvider, Depends(get_llm_provider)],
) -> DraftComposer:
    return DraftComposer(session, provider, access, get_settings())


CaseServiceDep = Annotated[CaseService, Depends(get_case_service)]
TemplateServiceDep = Annotated[TemplateService, Depends(get_template_service)]
DraftEngineDep = Annotated[DraftEngine, Depends(get_draft_engine)]
DraftComposerDep = Annotated[DraftComposer, Depends(get_draft_composer)]
