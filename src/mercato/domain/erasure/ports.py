"""Ports consumed by the account erasure workflow.

The unit of work is the single transactional boundary of every use case:
the request mutation, the anonymization of dependent aggregates and the
audit rows are written through repositories bound to it and become durable
together on :meth:`UnitOfWork.commit`, or not at all.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType
    from typing import Self
    from uuid import UUID

    from mercato.domain.erasure.audit import AccountDeletionAuditLog, SensitiveAccessRecord
    from mercato.domain.erasure.request import AccountDeletionRequest
    from mercato.domain.marketplace.ports import (
        DeliveryAddressRepository,
        OrderRepository,
        ReturnRequestRepository,
        ReviewRepository,
        StoreRepository,
        UserRepository,
        UserSessionRepository,
    )


@runtime_checkable
class DeletionRequestRepository(Protocol):
    """Port for deletion requests and their append-only audit trail."""

    async def add(self, request: AccountDeletionRequest) -> None: ...

    async def update(self, request: AccountDeletionRequest) -> AccountDeletionRequest:
        """Persist a transitioned request and return it with its bumped version.

        Raises:
            ConcurrencyConflictError: If the stored version no longer matches
                ``request.version``.
        """
        ...

    async def get_by_id(self, request_id: UUID) -> AccountDeletionRequest | None: ...

    async def get_pending_by_user_id(self, user_id: UUID) -> AccountDeletionRequest | None: ...

    async def get_by_user_id(self, user_id: UUID) -> Sequence[AccountDeletionRequest]:
        """All requests of a user, newest first."""
        ...

    async def has_active_request(self, user_id: UUID) -> bool: ...

    async def add_audit_log(self, entry: AccountDeletionAuditLog) -> None: ...

    async def get_audit_logs_for_request(
        self, request_id: UUID
    ) -> Sequence[AccountDeletionAuditLog]:
        """Audit rows of one request, newest first."""
        ...

    async def get_audit_logs_by_user_id(self, user_id: UUID) -> Sequence[AccountDeletionAuditLog]:
        """Audit rows where the user is affected or triggered the action, newest first."""
        ...


@runtime_checkable
class UnitOfWork(Protocol):
    """One transaction spanning every repository a use case touches.

    Used as an async context manager. Leaving the block without a
    successful :meth:`commit` (including through task cancellation) rolls
    back everything written through the bound repositories.
    """

    users: UserRepository
    sessions: UserSessionRepository
    addresses: DeliveryAddressRepository
    reviews: ReviewRepository
    stores: StoreRepository
    orders: OrderRepository
    returns: ReturnRequestRepository
    deletion_requests: DeletionRequestRepository

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


@runtime_checkable
class SensitiveAccessAuditLogger(Protocol):
    """Port for the external compliance audit channel.

    Distinct from the deletion audit trail. Implementations own their own
    durability and retry policy.
    """

    async def log_sensitive_access(self, record: SensitiveAccessRecord) -> None: ...
