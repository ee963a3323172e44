"""Error taxonomy shared by services, stores and adapters."""

from fastapi import status


class TripboardError(Exception):
    """Base class for all application errors.

    Every subclass carries the HTTP status the API layer renders it with.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(TripboardError):
    """Logical Day/Activity/item lookup failed."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailedError(TripboardError):
    """Required field empty or argument out of range."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class RemoteOperationError(TripboardError):
    """Store or file-storage call was rejected."""

    status_code = status.HTTP_502_BAD_GATEWAY


class StorageObjectNotFoundError(RemoteOperationError):
    """File storage has no object at the requested path."""

    status_code = status.HTTP_404_NOT_FOUND


class ExternalProviderError(TripboardError):
    """Geocoding, weather or places provider failed or returned a non-OK status."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class AuthenticationError(TripboardError):
    """Bad credentials or invalid token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class TooManyAttemptsError(AuthenticationError):
    """Too many failed sign-in attempts inside the lockout window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
