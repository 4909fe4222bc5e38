"""
Case API Routes: cases, their members and the caller's chat messages.

Every handler passes the caller's id to CaseService, which applies the
access rules. Denials and missing rows both come back as 404.
"""

from uuid import UUID

from fastapi import APIRouter, status

from ..core.dependencies import CaseServiceDep, CurrentUserDep
from ..models import MessageSender
from ..schemas import (
    CaseCreate,
    CaseMetadataUpdate,
    CaseResponse,
    CaseUpdate,
    MemberCreate,
    MemberResponse,
    MessageCreate,
    MessageResponse,
    MessageUpdate,
)
from ..services.cases import CreateCaseInput, UpdateCaseInput

router = APIRouter(tags=["cases"])


# =============================================================================
# CASES
# =============================================================================


@router.post(
    "/cases",
    response_model=CaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a case",
    description="""
    Create a case in the caller's organization.

    The caller becomes the case creator and its first member in the
    same transaction.
    """,
)
async def create_case(request: CaseCreate, current_user: CurrentUserDep, cases: CaseServiceDep):
    return await cases.create_case(
        current_user.id,
        CreateCaseInput(
            title=request.title,
            contact_info=request.contact_info.model_dump(exclude_none=True),
            metadata=request.metadata,
            organization_id=request.organization_id,
        ),
    )


@router.get("/cases", response_model=list[CaseResponse])
async def list_cases(current_user: CurrentUserDep, cases: CaseServiceDep):
    """Cases the caller created or is a member of, newest first."""
    return await cases.list_cases(current_user.id)


@router.get("/cases/{case_id}", response_model=CaseResponse)
async def get_case(case_id: UUID, current_user: CurrentUserDep, cases: CaseServiceDep):
    return await cases.get_case(current_user.id, case_id)


@router.patch("/cases/{case_id}", response_model=CaseResponse)
async def update_case(
    case_id: UUID,
    request: CaseUpdate,
    current_user: CurrentUserDep,
    cases: CaseServiceDep,
):
    return await cases.update_case(
        current_user.id,
        case_id,
        UpdateCaseInput(
            title=request.title,
            contact_info=(
                request.contact_info.model_dump(exclude_none=True)
                if request.contact_info is not None
                else None
            ),
            metadata=request.metadata,
        ),
    )


@router.put("/cases/{case_id}/metadata", response_model=CaseResponse)
async def update_case_metadata(
    case_id: UUID,
    request: CaseMetadataUpdate,
    current_user: CurrentUserDep,
    cases: CaseServiceDep,
):
    """Replace the case's metadata document."""
    return await cases.update_case_metadata(current_user.id, case_id, request.metadata)


@router.delete("/cases/{case_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_case(case_id: UUID, current_user: CurrentUserDep, cases: CaseServiceDep):
    """Delete a case with its drafts, snapshots, messages and members."""
    await cases.delete_case(current_user.id, case_id)


# =============================================================================
# MEMBERS
# =============================================================================


@router.get("/cases/{case_id}/members", response_model=list[MemberResponse])
async def list_members(case_id: UUID, current_user: CurrentUserDep, cases: CaseServiceDep):
    return await cases.list_members(current_user.id, case_id)


@router.post(
    "/cases/{case_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a case member",
    description="""
    Add a user from the case's organization. Only the creator or an
    existing member may add members. Adding an existing member returns
    the existing membership.
    """,
)
async def add_member(
    case_id: UUID,
    request: MemberCreate,
    current_user: CurrentUserDep,
    cases: CaseServiceDep,
):
    return await cases.add_member(current_user.id, case_id, request.user_id)


@router.delete("/cases/{case_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    case_id: UUID,
    user_id: UUID,
    current_user: CurrentUserDep,
    cases: CaseServiceDep,
):
    await cases.remove_member(current_user.id, case_id, user_id)


# =============================================================================
# MESSAGES
# =============================================================================


@router.get("/cases/{case_id}/messages", response_model=list[MessageResponse])
async def list_messages(case_id: UUID, current_user: CurrentUserDep, cases: CaseServiceDep):
    """The caller's own messages on the case. Other members' messages are never returned."""
    return await cases.list_messages(current_user.id, case_id)


@router.post(
    "/cases/{case_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_message(
    case_id: UUID,
    request: MessageCreate,
    current_user: CurrentUserDep,
    cases: CaseServiceDep,
):
    return await cases.add_message(
        current_user.id,
        case_id,
        request.text,
        sender=MessageSender(request.sender),
        metadata=request.metadata,
    )


@router.patch("/messages/{message_id}", response_model=MessageResponse)
async def update_message(
    message_id: UUID,
    request: MessageUpdate,
    current_user: CurrentUserDep,
    cases: CaseServiceDep,
):
    return await cases.update_message(
        current_user.id,
        message_id,
        text=request.text,
        metadata=request.metadata,
    )


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(message_id: UUID, current_user: CurrentUserDep, cases: CaseServiceDep):
    await cases.delete_message(current_user.id, message_id)
