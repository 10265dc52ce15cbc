"""Mercato Foundation Domain -- pure Python domain primitives."""

from mercato.foundation.domain.exceptions import (
    ConcurrencyConflictError,
    ConflictError,
    DomainError,
    PersistenceError,
)

__all__ = [
    "ConcurrencyConflictError",
    "ConflictError",
    "DomainError",
    "PersistenceError",
]
