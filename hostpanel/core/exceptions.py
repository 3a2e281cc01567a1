"""Custom exception classes for the host panel."""

from typing import Any, Optional

from fastapi import status


class HostPanelError(Exception):
    """Base exception for the host panel.

    Subclasses carry the HTTP status the API answers with; ``detail`` holds
    structured data (field errors, blocking counts) returned next to the
    message.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred", detail: Optional[Any] = None):
        self.message = message
        self.detail = detail
        super().__init__(self.message)


class AuthenticationError(HostPanelError):
    """Raised when no valid caller identity is available."""
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(HostPanelError):
    """Raised when the caller lacks a permission or super-admin status."""
    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(HostPanelError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(HostPanelError):
    """Raised when a resource already exists or is still in use."""
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(HostPanelError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST


class StoreUnavailableError(HostPanelError):
    """Raised when the database cannot serve a request."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
