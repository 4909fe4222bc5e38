"""API routes for Caseflow."""

from fastapi import APIRouter

from .cases import router as cases_router
from .drafts import router as drafts_router
from .me import router as me_router
from .templates import router as templates_router

# Main API router
api_router = APIRouter()

# User routes (/me/*)
api_router.include_router(me_router)

# Case-scoped resources
api_router.include_router(cases_router)
api_router.include_router(templates_router)
api_router.include_router(drafts_router)

__all__ = ["api_router"]
