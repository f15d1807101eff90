from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class NotConnectedError(AppError):
    """Raised by bridge endpoints that need a joined connection."""


class TransportError(AppError):
    """The realtime transport could not be established or used."""


class UploadError(AppError):
    pass


class ConnectivityError(AppError):
    """A REST call failed without any HTTP response."""


class ApiError(AppError):
    """The backend answered with an HTTP error status."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        super().__init__(detail)


class StorageError(AppError):
    """The client-local key-value store is unavailable."""
