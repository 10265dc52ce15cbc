"""Structured outcomes of the account deletion use cases.

Business-rule violations are returned, never raised. Each failed result
carries a :class:`FailureKind` so callers can branch without parsing
messages; messages are user-facing and never reveal another user's data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from mercato.domain.erasure.audit import AccountDeletionAuditLog, AuditAction
    from mercato.domain.erasure.impact import ImpactSummary
    from mercato.domain.erasure.request import AccountDeletionRequest, DeletionRequestStatus
    from mercato.domain.marketplace.accounts import UserRole

REQUEST_CREATED = (
    "Account deletion request created. Please confirm to proceed with permanent deletion."
)
REQUEST_BLOCKED = "Account deletion is blocked due to unresolved conditions."
DELETION_COMPLETED = (
    "Your account has been permanently deleted. All personal data has been anonymized."
)
REQUEST_CANCELLED = "Account deletion request has been cancelled."
CONCURRENT_UPDATE = (
    "The deletion request was modified by another operation. Please try again."
)
PERSISTENCE_FAILURE = "The operation could not be completed. Please try again later."


class FailureKind(StrEnum):
    """Why a use case did not succeed."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INELIGIBLE = "ineligible"
    ALREADY_PENDING = "already_pending"
    INVALID_STATE = "invalid_state"
    BLOCKED = "blocked"
    CONFLICT = "conflict"
    PERSISTENCE = "persistence"


@dataclass(frozen=True, slots=True)
class DeletionRequestView:
    """Read model of a deletion request."""

    id: UUID
    user_id: UUID
    status: DeletionRequestStatus
    requested_at: datetime
    confirmed_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    blocking_reason: str | None

    @classmethod
    def from_request(cls, request: AccountDeletionRequest) -> DeletionRequestView:
        return cls(
            id=request.id,
            user_id=request.user_id,
            status=request.status,
            requested_at=request.requested_at,
            confirmed_at=request.confirmed_at,
            completed_at=request.completed_at,
            cancelled_at=request.cancelled_at,
            blocking_reason=request.blocking_reason,
        )


@dataclass(frozen=True, slots=True)
class AuditLogView:
    """Read model of a deletion audit row. IP and user agent are not exposed."""

    id: UUID
    deletion_request_id: UUID
    affected_user_id: UUID
    triggered_by_user_id: UUID
    triggered_by_role: UserRole
    action: AuditAction
    notes: str | None
    occurred_at: datetime

    @classmethod
    def from_entry(cls, entry: AccountDeletionAuditLog) -> AuditLogView:
        return cls(
            id=entry.id,
            deletion_request_id=entry.deletion_request_id,
            affected_user_id=entry.affected_user_id,
            triggered_by_user_id=entry.triggered_by_user_id,
            triggered_by_role=entry.triggered_by_role,
            action=entry.action,
            notes=entry.notes,
            occurred_at=entry.occurred_at,
        )


@dataclass(frozen=True)
class RequestDeletionResult:
    """Outcome of opening a deletion request.

    A blocked outcome carries the impact summary and lists the blocking
    reasons in ``errors``.
    """

    success: bool
    request: DeletionRequestView | None = None
    impact: ImpactSummary | None = None
    message: str | None = None
    errors: list[str] = field(default_factory=list)
    failure: FailureKind | None = None

    @classmethod
    def succeeded(
        cls, request: DeletionRequestView, impact: ImpactSummary
    ) -> RequestDeletionResult:
        return cls(success=True, request=request, impact=impact, message=REQUEST_CREATED)

    @classmethod
    def failed(cls, failure: FailureKind, error: str) -> RequestDeletionResult:
        return cls(success=False, errors=[error], failure=failure)

    @classmethod
    def blocked(cls, impact: ImpactSummary) -> RequestDeletionResult:
        return cls(
            success=False,
            impact=impact,
            message=REQUEST_BLOCKED,
            errors=list(impact.blocking_conditions),
            failure=FailureKind.BLOCKED,
        )


@dataclass(frozen=True)
class ConfirmDeletionResult:
    """Outcome of confirming a deletion request.

    Attributes:
        retryable: True when the failure came from a concurrent update or a
            transient persistence failure and the call may be repeated.
        compliance_recorded: Whether the post-commit compliance record was
            handed to the compliance logger.
    """

    success: bool
    message: str | None = None
    errors: list[str] = field(default_factory=list)
    failure: FailureKind | None = None
    retryable: bool = False
    compliance_recorded: bool = False

    @classmethod
    def succeeded(cls, *, compliance_recorded: bool) -> ConfirmDeletionResult:
        return cls(
            success=True,
            message=DELETION_COMPLETED,
            compliance_recorded=compliance_recorded,
        )

    @classmethod
    def failed(
        cls,
        failure: FailureKind,
        error: str,
        *,
        retryable: bool = False,
    ) -> ConfirmDeletionResult:
        return cls(success=False, errors=[error], failure=failure, retryable=retryable)

    @classmethod
    def blocked(cls, conditions: list[str]) -> ConfirmDeletionResult:
        return cls(
            success=False,
            message=f"Account deletion blocked: {'; '.join(conditions)}",
            errors=list(conditions),
            failure=FailureKind.BLOCKED,
        )


@dataclass(frozen=True)
class CancelDeletionResult:
    """Outcome of cancelling a deletion request."""

    success: bool
    message: str | None = None
    failure: FailureKind | None = None
    retryable: bool = False

    @classmethod
    def succeeded(cls) -> CancelDeletionResult:
        return cls(success=True, message=REQUEST_CANCELLED)

    @classmethod
    def failed(
        cls,
        failure: FailureKind,
        message: str,
        *,
        retryable: bool = False,
    ) -> CancelDeletionResult:
        return cls(success=False, message=message, failure=failure, retryable=retryable)
