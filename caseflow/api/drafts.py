"""
Draft API Routes: versioned drafts of a case's letter.

These endpoints implement the draft lifecycle:
1. POST /cases/{id}/drafts - store content as the next version
2. POST /cases/{id}/drafts/regenerate - same, always a new version
3. POST /cases/{id}/drafts/compose - generate content with the LLM first
4. POST /drafts/{id}/save - one-way draft -> saved
5. PATCH /drafts/{id} - edit content in place on the same version
6. DELETE /drafts/{id} - remove a version without renumbering
"""

from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import StreamingResponse

from ..core.dependencies import CurrentUserDep, DraftComposerDep, DraftEngineDep
from ..schemas import (
    DraftCompose,
    DraftContentUpdate,
    DraftGenerate,
    DraftResponse,
    ExportFormat,
    NextVersionResponse,
)
from ..services.export import DOCX_MEDIA_TYPE, PDF_MEDIA_TYPE, to_docx, to_pdf

router = APIRouter(tags=["drafts"])


# =============================================================================
# CASE-SCOPED ENDPOINTS
# =============================================================================


@router.get("/cases/{case_id}/drafts", response_model=list[DraftResponse])
async def list_versions(case_id: UUID, current_user: CurrentUserDep, engine: DraftEngineDep):
    """All versions of the case's draft, highest version first."""
    return await engine.list_versions(current_user.id, case_id)


@router.get("/cases/{case_id}/drafts/current", response_model=DraftResponse | None)
async def get_current_draft(case_id: UUID, current_user: CurrentUserDep, engine: DraftEngineDep):
    """The highest-numbered version, or null when the case has no drafts."""
    return await engine.get_current_draft(current_user.id, case_id)


@router.get("/cases/{case_id}/drafts/next-version", response_model=NextVersionResponse)
async def get_next_version(case_id: UUID, current_user: CurrentUserDep, engine: DraftEngineDep):
    next_version = await engine.next_version(current_user.id, case_id)
    return NextVersionResponse(case_id=case_id, next_version=next_version)


@router.post(
    "/cases/{case_id}/drafts",
    response_model=DraftResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a draft version",
    description="""
    Store already-rendered content as the case's next version.

    Concurrent calls on the same case never share a version number. If
    the number cannot be claimed after a few retries the call fails with
    409 and can be repeated.
    """,
)
async def generate_draft(
    case_id: UUID,
    request: DraftGenerate,
    current_user: CurrentUserDep,
    engine: DraftEngineDep,
):
    return await engine.generate(current_user.id, case_id, request.content, request.snapshot_id)


@router.post(
    "/cases/{case_id}/drafts/regenerate",
    response_model=DraftResponse,
    status_code=status.HTTP_201_CREATED,
)
async def regenerate_draft(
    case_id: UUID,
    request: DraftGenerate,
    current_user: CurrentUserDep,
    engine: DraftEngineDep,
):
    """Store new content as a new version. Earlier versions are untouched."""
    return await engine.regenerate(current_user.id, case_id, request.content, request.snapshot_id)


@router.post(
    "/cases/{case_id}/drafts/compose",
    response_model=DraftResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Compose a draft with the text-generation provider",
    description="""
    Build a prompt from the case contact information, the caller's own
    messages and an optional template snapshot, generate the letter and
    store it as the next version. Provider failures return 502 and store
    nothing.
    """,
)
async def compose_draft(
    case_id: UUID,
    request: DraftCompose,
    current_user: CurrentUserDep,
    composer: DraftComposerDep,
):
    return await composer.compose(
        current_user.id,
        case_id,
        snapshot_id=request.snapshot_id,
        regenerate=request.regenerate,
    )


# =============================================================================
# DRAFT ENDPOINTS
# =============================================================================


@router.get("/drafts/{draft_id}", response_model=DraftResponse)
async def get_draft(draft_id: UUID, current_user: CurrentUserDep, engine: DraftEngineDep):
    return await engine.get_draft(current_user.id, draft_id)


@router.patch("/drafts/{draft_id}", response_model=DraftResponse)
async def update_draft_content(
    draft_id: UUID,
    request: DraftContentUpdate,
    current_user: CurrentUserDep,
    engine: DraftEngineDep,
):
    """Edit content in place. The version number does not change."""
    return await engine.update_content(current_user.id, draft_id, request.content)


@router.post("/drafts/{draft_id}/save", response_model=DraftResponse)
async def save_draft(draft_id: UUID, current_user: CurrentUserDep, engine: DraftEngineDep):
    """Mark as saved. Saving an already-saved draft returns it unchanged."""
    return await engine.save(current_user.id, draft_id)


@router.delete("/drafts/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_draft(draft_id: UUID, current_user: CurrentUserDep, engine: DraftEngineDep):
    await engine.delete_version(current_user.id, draft_id)


@router.get("/drafts/{draft_id}/export")
async def export_draft(
    draft_id: UUID,
    current_user: CurrentUserDep,
    engine: DraftEngineDep,
    format: ExportFormat = Query(default=ExportFormat.DOCX),
) -> StreamingResponse:
    """Download a draft as a Word document or PDF."""
    draft = await engine.get_draft(current_user.id, draft_id)

    if format == ExportFormat.PDF:
        content, media_type = to_pdf(draft.rendered_content), PDF_MEDIA_TYPE
    else:
        content, media_type = to_docx(draft.rendered_content), DOCX_MEDIA_TYPE

    filename = f"draft_v{draft.version_number}.{format.value}"
    return StreamingResponse(
        iter([content]),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
