"""Domain-specific exceptions.

Every error raised by the services inherits from MemberHubError. The HTTP
layer maps each class to its status code and renders the message as
``{"error": {"message": ...}}``.
"""
from fastapi import status


class MemberHubError(Exception):
    """Base exception for all MemberHub errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MemberHubError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(MemberHubError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(MemberHubError):
    """The caller's role or ownership does not permit the action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(MemberHubError):
    """The id does not resolve within the caller's organization."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(MemberHubError):
    """Business-rule conflict.

    Raised for state-machine violations (approving a membership that is not
    pending) and for destructive operations blocked by existing references
    (deleting a membership type that is in use). Reported as 400.
    """

    status_code = status.HTTP_400_BAD_REQUEST
