"""
Failure taxonomy for the data-access layer.

Every failure that crosses a component boundary is one of these, carried inside
a Result rather than raised.
"""
from typing import Optional


class BookclubError(Exception):
    """Base class for all data-access failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(BookclubError):
    """Acting role is not in the operation's required role set."""


class InvalidOperation(BookclubError):
    """Business-rule violation detected before any I/O."""


class RemoteFailure(BookclubError):
    """Any failure surfaced by the backend: network, validation, not-found."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class CacheWriteFailure(BookclubError):
    """Local store write failed after a successful remote call. Logged, never returned."""

    def __init__(self, entity: str, entity_id: str, cause: Exception):
        super().__init__(f"Failed to cache {entity} {entity_id}: {cause}")
        self.entity = entity
        self.entity_id = entity_id
        self.cause = cause
