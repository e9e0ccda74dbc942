"""Custom exception hierarchy for the cookshare content layer."""

from __future__ import annotations


class CookshareError(Exception):
    """Base exception for all cookshare errors."""


class ConstraintViolationError(CookshareError):
    """Raised when a write breaks a database constraint.

    ``original`` keeps the driver-level error for logging.
    """

    def __init__(self, message: str, original: BaseException | None = None) -> None:
        super().__init__(message)
        self.original = original


class ForeignKeyViolationError(ConstraintViolationError):
    """Raised when a referenced row (usually a user) does not exist."""


class UniqueViolationError(ConstraintViolationError):
    """Raised when an insert duplicates a primary or unique key."""


class NotFoundError(CookshareError):
    """Raised when an entity does not exist or the user may not see it."""

    def __init__(self, entity: str, entity_id: str | None = None) -> None:
        message = f"{entity} not found" if entity_id is None else f"{entity} not found: {entity_id}"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class InvalidOperationError(CookshareError):
    """Raised when a request is well-formed but not allowed in the current state."""

    def __init__(self, entity: str, reason: str) -> None:
        super().__init__(f"Invalid {entity} operation: {reason}")
        self.entity = entity
        self.reason = reason
