"""
Exception hierarchy shared by the registry, the SFTPGo client and the HTTP layer.

Every error carries the HTTP status it maps to; the app-level exception handler
renders any ManagerError as ``{"error": str(exc)}`` with that status.
"""

from typing import Optional


class ManagerError(Exception):
    """Base error with an HTTP status and optional chained cause."""

    status_code = 500

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message


class RequestError(ManagerError):
    """Malformed client request (bad JSON, missing field, bad id)."""

    status_code = 400


class Unauthorized(ManagerError):
    status_code = 401


class RegistryError(ManagerError):
    """Any failure reported by the tenant registry."""

    status_code = 500


class StorageError(RegistryError):
    """The storage engine failed or is unavailable."""


class DuplicateTenant(RegistryError):
    """Username or tenant token already exists."""


class NotFoundError(RegistryError):
    status_code = 404


class TenantNotFound(NotFoundError):
    pass


class ApiKeyNotFound(NotFoundError):
    pass


class UpstreamError(ManagerError):
    """SFTPGo returned an unexpected status or could not be reached."""

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None, cause: Optional[Exception] = None):
        super().__init__(message, cause=cause)
        self.status = status


class UpstreamNotFound(UpstreamError):
    pass


class ObjectStoreError(ManagerError):
    """The S3-compatible object store failed to serve an object."""

    status_code = 502
