"""Base exceptions for PromptCollab."""


class PromptCollabException(Exception):
    """Base exception for all PromptCollab errors."""
    pass


class ValidationError(PromptCollabException):
    """Raised when request data is missing or malformed."""
    pass


class AuthenticationError(PromptCollabException):
    """Raised when no verified actor accompanies a request."""
    pass


class PermissionDeniedError(PromptCollabException):
    """Raised when the actor may not perform the operation."""
    pass


class NotFoundError(PromptCollabException):
    """Raised when a resource is not found."""
    pass


class ConflictError(PromptCollabException):
    """Raised when there's a conflict."""
    pass


class InfrastructureError(PromptCollabException):
    """Raised when the backing store fails.

    The message is meant for logs; callers surface a generic error.
    """
    pass
