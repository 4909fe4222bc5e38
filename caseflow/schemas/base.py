"""Base schemas and common types for the Caseflow API."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict


# =============================================================================
# BASE SCHEMAS
# =============================================================================


class CaseflowBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
    )


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorDetail(CaseflowBaseModel):
    """Detailed error information."""

    field: str | None = None
    message: str
    code: str


class ErrorResponse(CaseflowBaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: list[ErrorDetail] = []


# =============================================================================
# COMMON REFERENCE SCHEMAS
# =============================================================================


class UserRef(CaseflowBaseModel):
    """Minimal user reference for embedding in responses."""

    id: UUID
    organization_id: UUID
    display_name: str | None = None
    email: str | None = None


class OrganizationRef(CaseflowBaseModel):
    id: UUID
    name: str
