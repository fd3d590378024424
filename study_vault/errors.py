"""
Service-level exceptions.

Services raise these instead of HTTPException so they stay usable outside a
request. The app factory in main.py installs one handler that turns every
AppError into the {"success": false, "message": ...} envelope.
"""

from fastapi import status


class AppError(Exception):
    """Base class; subclasses pick the HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    # Duplicate email. The mobile client expects 400 here, not 409.
    status_code = status.HTTP_400_BAD_REQUEST


class PayloadTooLargeError(AppError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
