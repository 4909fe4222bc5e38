"""Template API Routes: organization templates and per-case snapshots."""

from uuid import UUID

from fastapi import APIRouter, status

from ..core.dependencies import CurrentUserDep, TemplateServiceDep
from ..schemas import (
    SnapshotCreate,
    SnapshotResponse,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
)
from ..services.templates import CreateTemplateInput, UpdateTemplateInput

router = APIRouter(tags=["templates"])


# =============================================================================
# TEMPLATES
# =============================================================================


@router.post("/templates", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    request: TemplateCreate,
    current_user: CurrentUserDep,
    templates: TemplateServiceDep,
):
    """Create a template shared with the caller's whole organization."""
    return await templates.create_template(
        current_user.id,
        CreateTemplateInput(name=request.name, content=request.content, type=request.type),
    )


@router.get("/templates", response_model=list[TemplateResponse])
async def list_templates(current_user: CurrentUserDep, templates: TemplateServiceDep):
    return await templates.list_templates(current_user.id)


@router.get("/templates/{template_id}", response_model=TemplateResponse)
async def get_template(template_id: UUID, current_user: CurrentUserDep, templates: TemplateServiceDep):
    return await templates.get_template(current_user.id, template_id)


@router.patch("/templates/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: UUID,
    request: TemplateUpdate,
    current_user: CurrentUserDep,
    templates: TemplateServiceDep,
):
    """Edit in place. Snapshots already taken keep their copy."""
    return await templates.update_template(
        current_user.id,
        template_id,
        UpdateTemplateInput(name=request.name, content=request.content, type=request.type),
    )


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(template_id: UUID, current_user: CurrentUserDep, templates: TemplateServiceDep):
    await templates.delete_template(current_user.id, template_id)


# =============================================================================
# SNAPSHOTS
# =============================================================================


@router.get("/cases/{case_id}/snapshots", response_model=list[SnapshotResponse])
async def list_snapshots(case_id: UUID, current_user: CurrentUserDep, templates: TemplateServiceDep):
    return await templates.list_snapshots(current_user.id, case_id)


@router.post(
    "/cases/{case_id}/snapshots",
    response_model=SnapshotResponse,
    summary="Attach a template to a case",
    description="""
    Return the case's snapshot of the template, copying the template's
    current name, type and content the first time. Calling this again
    with the same template returns the same snapshot.
    """,
)
async def get_or_create_snapshot(
    case_id: UUID,
    request: SnapshotCreate,
    current_user: CurrentUserDep,
    templates: TemplateServiceDep,
):
    return await templates.get_or_create_snapshot(current_user.id, case_id, request.template_id)


@router.get("/snapshots/{snapshot_id}", response_model=SnapshotResponse)
async def get_snapshot(snapshot_id: UUID, current_user: CurrentUserDep, templates: TemplateServiceDep):
    return await templates.get_snapshot(current_user.id, snapshot_id)


@router.delete("/snapshots/{snapshot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_snapshot(snapshot_id: UUID, current_user: CurrentUserDep, templates: TemplateServiceDep):
    await templates.delete_snapshot(current_user.id, snapshot_id)
