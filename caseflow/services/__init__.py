"""Business logic services for Caseflow."""

from .access import AccessPolicy, access_rule, trusted_predicate
from .cases import CaseService, CreateCaseInput, UpdateCaseInput
from .draft_engine import DraftEngine
from .drafting import DraftComposer
from .errors import (
    AccessRuleCycleError,
    AuthenticationError,
    AuthorizationDenied,
    CaseflowError,
    ConflictError,
    ProfileNotFoundError,
    ProviderError,
    ValidationError,
)
from .llm_provider import LLMProvider, TextGenerationOptions
from .templates import CreateTemplateInput, TemplateService, UpdateTemplateInput
from .tenant_directory import TenantDirectory

__all__ = [
    # Tenant directory and authorization
    "TenantDirectory",
    "AccessPolicy",
    "access_rule",
    "trusted_predicate",
    # Stores
    "CaseService",
    "CreateCaseInput",
    "UpdateCaseInput",
    "TemplateService",
    "CreateTemplateInput",
    "UpdateTemplateInput",
    # Drafts
    "DraftEngine",
    "DraftComposer",
    "LLMProvider",
    "TextGenerationOptions",
    # Errors
    "CaseflowError",
    "AuthenticationError",
    "AuthorizationDenied",
    "ProfileNotFoundError",
    "ValidationError",
    "ConflictError",
    "ProviderError",
    "AccessRuleCycleError",
]
