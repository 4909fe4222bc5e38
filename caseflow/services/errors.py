"""Error taxonomy shared by all Caseflow services.

The HTTP layer maps each class to one status code (see ``caseflow.main``).
"""


class CaseflowError(Exception):
    """Base exception for Caseflow operations."""
    pass


class AuthenticationError(CaseflowError):
    """No caller identity could be resolved."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AuthorizationDenied(CaseflowError):
    """An access rule evaluated to false, or the resource does not exist.

    The message is identical in both cases so callers cannot probe for
    the existence of resources in other tenants.
    """

    MESSAGE = "Resource not found or access denied"

    def __init__(self):
        super().__init__(self.MESSAGE)


class ProfileNotFoundError(CaseflowError):
    """The caller has no organization profile."""

    def __init__(self, message: str = "User profile not found. Please contact support."):
        super().__init__(message)


class ValidationError(CaseflowError):
    """Request is well-formed but violates a business rule."""
    pass


class ConflictError(CaseflowError):
    """Concurrent modification could not be resolved within the retry budget."""
    pass


class ProviderError(CaseflowError):
    """The external text-generation provider failed."""
    pass


class AccessRuleCycleError(CaseflowError):
    """An access rule was entered from inside a trusted predicate."""
    pass
