"""Caseflow: Main FastAPI Application.

A case-management backend where the users of one organization share
legal cases, attach templates, and keep numbered drafts of generated
letters.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import api_router
from .core import close_db, get_settings, init_db
from .schemas import ErrorResponse
from .services.errors import (
    AccessRuleCycleError,
    AuthenticationError,
    AuthorizationDenied,
    CaseflowError,
    ConflictError,
    ProfileNotFoundError,
    ProviderError,
    ValidationError,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# Status code and error code per domain error
ERROR_STATUS: dict[type[CaseflowError], tuple[int, str]] = {
    AuthenticationError: (status.HTTP_401_UNAUTHORIZED, "not_authenticated"),
    AuthorizationDenied: (status.HTTP_404_NOT_FOUND, "not_found"),
    ProfileNotFoundError: (status.HTTP_403_FORBIDDEN, "profile_not_found"),
    ConflictError: (status.HTTP_409_CONFLICT, "conflict"),
    ValidationError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error"),
    ProviderError: (status.HTTP_502_BAD_GATEWAY, "provider_error"),
    AccessRuleCycleError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info(f"Starting {settings.app_name} {settings.app_version} ({settings.environment})")

    # Startup - skip init_db in production (tables are managed by migrations)
    if settings.environment != "production":
        await init_db()
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## Caseflow API

    Shared legal cases with versioned letter drafts.

    ### Key Features

    - **Tenant Isolation**: Users only ever see cases, templates and drafts of their own organization.
    - **Case Membership**: Cases are visible to their creator and explicitly added members.
    - **Versioned Drafts**: Every generation creates a new numbered version; earlier versions are kept.
    - **Template Snapshots**: Templates are copied onto a case when first used, so later edits never change existing drafts.

    ### Authentication

    All endpoints require a valid JWT token in the `Authorization: Bearer <token>` header.
    """,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    lifespan=lifespan,
)

# CORS middleware with explicit origins (credentials require explicit origins, not "*")
cors_origins = ["http://localhost:3000", "http://localhost:5173"]
for origin in settings.allowed_origins:
    if origin and origin not in cors_origins:
        cors_origins.append(origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
    max_age=86400,
)


@app.exception_handler(CaseflowError)
async def caseflow_exception_handler(request: Request, exc: CaseflowError):
    """Map domain errors to their HTTP status."""
    status_code, error = status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            status_code, error = ERROR_STATUS[cls]
            break

    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=str(exc), details=[]).model_dump(),
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")

    message = "An unexpected error occurred"
    if settings.debug:
        message = f"{message}: {str(exc)[:200]}"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="internal_error", message=message, details=[]).model_dump(),
    )


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "caseflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
