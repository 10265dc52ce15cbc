"""Domain exception hierarchy for type-safe error handling.

Business-rule outcomes of the marketplace workflows are returned as
structured result values. The exceptions in this module are reserved for
conditions the workflow cannot express as an outcome: optimistic
concurrency conflicts detected by a repository, and persistence failures
raised while committing a unit of work.

Example:
    >>> from mercato.foundation.domain.exceptions import ConcurrencyConflictError
    >>> raise ConcurrencyConflictError("AccountDeletionRequest", "42", expected_version=3)
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConcurrencyConflictError",
    "ConflictError",
    "DomainError",
    "PersistenceError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Provides error code and structured context for debugging.

    Attributes:
        error_code: Machine-readable error code for client handling.
        message: Human-readable error description.
        context: Structured debugging information (aggregate IDs, versions).

    Example:
        >>> raise DomainError("Operation failed", context={"request_id": "123"})
        DomainError: Operation failed (request_id=123)
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConflictError(DomainError):
    """Raised when an operation conflicts with current system state.

    Attributes:
        error_code: "CONFLICT" (class constant).
        reason: Description of the conflict.
    """

    error_code: str = "CONFLICT"

    def __init__(
        self,
        reason: str,
        **context: Any,
    ) -> None:
        """Initialize conflict error.

        Args:
            reason: Description of conflict (e.g., "Optimistic lock failure").
            **context: Additional debugging context.
        """
        self.reason = reason
        message = f"Conflict: {reason}"
        super().__init__(message, context)


class ConcurrencyConflictError(ConflictError):
    """Raised when a row changed underneath an optimistic-concurrency update.

    A second writer already mutated the row this unit of work read. The
    whole unit of work must be rolled back; retrying the use case re-reads
    fresh state.

    Attributes:
        error_code: "CONCURRENCY_CONFLICT" (class constant).
        resource_type: Type of the contended row.
        resource_id: Identifier of the contended row.
        expected_version: Version the writer read before updating.
    """

    error_code: str = "CONCURRENCY_CONFLICT"

    def __init__(
        self,
        resource_type: str,
        resource_id: object,
        expected_version: int,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = str(resource_id)
        self.expected_version = expected_version
        super().__init__(
            f"{resource_type} {resource_id} was modified concurrently",
            resource_type=resource_type,
            resource_id=str(resource_id),
            expected_version=expected_version,
        )


class PersistenceError(DomainError):
    """Raised when the backing store rejects or fails a commit.

    The unit of work has been rolled back by the time this propagates, so no
    partial state is durable.

    Attributes:
        error_code: "PERSISTENCE_ERROR" (class constant).
    """

    error_code: str = "PERSISTENCE_ERROR"
