"""Account deletion request and its lifecycle state machine.

The request is an immutable value. Transitions are pure functions that
return either a :class:`Transition` (the new request value plus the audit
action recording it) or a :class:`TransitionRejected` value naming the
current status. An invalid source state is an expected business outcome,
so it is never raised.

State machine::

                 confirm()              complete()
        PENDING -----------> CONFIRMED -----------> COMPLETED (terminal)
           |  |
  cancel() |  | block(reason)
           v  v
    CANCELLED  BLOCKED (terminal; a new request is needed once resolved)
    (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4

from mercato.domain.erasure.audit import AuditAction


class DeletionRequestStatus(StrEnum):
    """Deletion request lifecycle states."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    BLOCKED = "Blocked"


TERMINAL_STATUSES: frozenset[DeletionRequestStatus] = frozenset(
    {
        DeletionRequestStatus.COMPLETED,
        DeletionRequestStatus.CANCELLED,
        DeletionRequestStatus.BLOCKED,
    }
)

# Statuses that prevent a user from opening another request.
ACTIVE_STATUSES: frozenset[DeletionRequestStatus] = frozenset(
    {
        DeletionRequestStatus.PENDING,
        DeletionRequestStatus.CONFIRMED,
    }
)


@dataclass(frozen=True, slots=True)
class AccountDeletionRequest:
    """A user's recorded intent to erase their account.

    Attributes:
        id: Request identifier.
        user_id: Owning user.
        status: Current lifecycle state.
        requested_at: Creation time.
        confirmed_at: Set once on PENDING -> CONFIRMED.
        completed_at: Set once on CONFIRMED -> COMPLETED.
        cancelled_at: Set once on cancellation or blocking.
        blocking_reason: Reasons recorded when blocked at confirmation.
        ip_address: Client IP at request time.
        user_agent: Client user agent at request time.
        version: Optimistic concurrency token, bumped by every persisted update.
    """

    id: UUID
    user_id: UUID
    status: DeletionRequestStatus
    requested_at: datetime
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    blocking_reason: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    version: int = 1

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id


@dataclass(frozen=True, slots=True)
class Transition:
    """Accepted transition: the new request value and its audit action."""

    request: AccountDeletionRequest
    action: AuditAction


@dataclass(frozen=True, slots=True)
class TransitionRejected:
    """Rejected transition. The request is left unchanged."""

    current_status: DeletionRequestStatus
    message: str


TransitionOutcome = Transition | TransitionRejected


def _now(at: datetime | None) -> datetime:
    return at or datetime.now(UTC)


def _trim(value: str | None) -> str | None:
    return value.strip() if value is not None else None


def _reject(request: AccountDeletionRequest, verb: str) -> TransitionRejected:
    return TransitionRejected(
        current_status=request.status,
        message=f"Cannot {verb} deletion request in status {request.status}.",
    )


def open_request(
    user_id: UUID,
    ip_address: str | None = None,
    user_agent: str | None = None,
    *,
    at: datetime | None = None,
) -> Transition:
    """Create a new PENDING request.

    Guards that need repository state (eligibility, single pending request,
    blocking conditions) are checked by the caller before this is invoked.

    Raises:
        ValueError: If user_id is the nil UUID.
    """
    if user_id.int == 0:
        msg = "User ID is required"
        raise ValueError(msg)
    request = AccountDeletionRequest(
        id=uuid4(),
        user_id=user_id,
        status=DeletionRequestStatus.PENDING,
        requested_at=_now(at),
        ip_address=_trim(ip_address),
        user_agent=_trim(user_agent),
    )
    return Transition(request=request, action=AuditAction.REQUESTED)


def confirm(request: AccountDeletionRequest, *, at: datetime | None = None) -> TransitionOutcome:
    """PENDING -> CONFIRMED."""
    if request.status != DeletionRequestStatus.PENDING:
        return _reject(request, "confirm")
    return Transition(
        request=replace(request, status=DeletionRequestStatus.CONFIRMED, confirmed_at=_now(at)),
        action=AuditAction.CONFIRMED,
    )


def complete(request: AccountDeletionRequest, *, at: datetime | None = None) -> TransitionOutcome:
    """CONFIRMED -> COMPLETED. Recorded by the Anonymized audit action."""
    if request.status != DeletionRequestStatus.CONFIRMED:
        return _reject(request, "complete")
    return Transition(
        request=replace(request, status=DeletionRequestStatus.COMPLETED, completed_at=_now(at)),
        action=AuditAction.ANONYMIZED,
    )


def cancel(request: AccountDeletionRequest, *, at: datetime | None = None) -> TransitionOutcome:
    """PENDING -> CANCELLED."""
    if request.status != DeletionRequestStatus.PENDING:
        return _reject(request, "cancel")
    return Transition(
        request=replace(request, status=DeletionRequestStatus.CANCELLED, cancelled_at=_now(at)),
        action=AuditAction.CANCELLED,
    )


def block(
    request: AccountDeletionRequest,
    reason: str,
    *,
    at: datetime | None = None,
) -> TransitionOutcome:
    """PENDING -> BLOCKED, closing the request with the blocking reason.

    Raises:
        ValueError: If reason is blank.
    """
    if not reason or not reason.strip():
        msg = "Blocking reason is required"
        raise ValueError(msg)
    if request.status != DeletionRequestStatus.PENDING:
        return _reject(request, "block")
    return Transition(
        request=replace(
            request,
            status=DeletionRequestStatus.BLOCKED,
            blocking_reason=reason.strip(),
            cancelled_at=_now(at),
        ),
        action=AuditAction.BLOCKED,
    )
