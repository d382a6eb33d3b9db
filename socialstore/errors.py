"""Typed failures raised by the store, services and sync engine."""
from __future__ import annotations

from fastapi import status


class StoreError(RuntimeError):
    """Base class for every failure returned to a caller of the social store."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Store operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(StoreError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(StoreError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflicting state"


class HandleTaken(Conflict):
    default_message = "Handle already taken"


class AlreadyFriends(Conflict):
    default_message = "Already friends"


class AlreadyRequested(Conflict):
    default_message = "Request already sent"


class SelfReference(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Cannot add yourself"


class CapacityExceeded(StoreError):
    status_code = status.HTTP_507_INSUFFICIENT_STORAGE
    default_message = "Storage full! Please delete some posts or clear data."


class BackendUnavailable(StoreError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage backend unavailable"


class InvalidCredential(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class SessionExpired(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Session is no longer active"


class PermissionDenied(StoreError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class ValidationFailed(StoreError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input"


__all__ = [
    "StoreError",
    "NotFound",
    "Conflict",
    "HandleTaken",
    "AlreadyFriends",
    "AlreadyRequested",
    "SelfReference",
    "CapacityExceeded",
    "BackendUnavailable",
    "InvalidCredential",
    "SessionExpired",
    "PermissionDenied",
    "ValidationFailed",
]
