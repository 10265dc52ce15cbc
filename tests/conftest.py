"""Shared fixtures: in-memory fakes of every repository port and the unit of work.

``FakeDatabase`` holds the committed state. Each ``FakeUnitOfWork`` works on
a private copy of it; ``commit()`` publishes the copy and leaving the block
without committing discards it, which mirrors a database transaction.
Reads return copies so that mutating an entity without writing it back has
no effect on stored state.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from mercato.domain.erasure.anonymization import AnonymizationExecutor
from mercato.domain.erasure.audit import AuditTrailWriter
from mercato.domain.erasure.blocking import BlockingConditionEvaluator
from mercato.domain.erasure.impact import ImpactAssessor
from mercato.domain.erasure.request import ACTIVE_STATUSES, DeletionRequestStatus
from mercato.domain.erasure.service import AccountDeletionService
from mercato.domain.marketplace.accounts import User, UserRole, UserSession, UserStatus
from mercato.domain.marketplace.commerce import (
    DeliveryAddress,
    Order,
    ReturnRequest,
    ReturnRequestStatus,
    Review,
    Store,
    StoreStatus,
)
from mercato.foundation.domain.exceptions import ConcurrencyConflictError

if TYPE_CHECKING:
    from collections.abc import Callable

    from mercato.domain.erasure.audit import AccountDeletionAuditLog
    from mercato.domain.erasure.request import AccountDeletionRequest


def _newest_first(items: list[Any], key: Callable[[Any], datetime]) -> list[Any]:
    # Later inserts win ties on identical timestamps.
    return sorted(reversed(items), key=key, reverse=True)


@dataclass
class MarketplaceState:
    """Everything a fake transaction can read or write."""

    users: dict[UUID, User] = field(default_factory=dict)
    sessions: dict[UUID, UserSession] = field(default_factory=dict)
    addresses: dict[UUID, DeliveryAddress] = field(default_factory=dict)
    reviews: dict[UUID, Review] = field(default_factory=dict)
    stores: dict[UUID, Store] = field(default_factory=dict)
    orders: dict[UUID, Order] = field(default_factory=dict)
    returns: dict[UUID, ReturnRequest] = field(default_factory=dict)
    requests: dict[UUID, AccountDeletionRequest] = field(default_factory=dict)
    audit_logs: list[AccountDeletionAuditLog] = field(default_factory=list)


class FakeDatabase:
    """Committed state plus fault-injection hooks.

    Attributes:
        committed: State visible to new units of work.
        failures: Maps an operation name (``"reviews.update"``, ``"commit"``)
            to the exception it should raise.
        before_request_update: Called with the committed state right before
            a deletion request update checks its version, to simulate a
            concurrent writer.
    """

    def __init__(self) -> None:
        self.committed = MarketplaceState()
        self.failures: dict[str, BaseException] = {}
        self.before_request_update: Callable[[MarketplaceState], None] | None = None
        self.commit_count = 0
        self.rollback_count = 0

    def maybe_fail(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    # -- seeding helpers --

    def add_user(self, **overrides: Any) -> User:
        values: dict[str, Any] = {
            "id": uuid4(),
            "email": "ada@example.com",
            "first_name": "Ada",
            "last_name": "Lovelace",
            "role": UserRole.BUYER,
            "status": UserStatus.VERIFIED,
            "password_hash": "$2b$12$hash",
        }
        values.update(overrides)
        user = User(**values)
        self.committed.users[user.id] = copy.deepcopy(user)
        return user

    def add_session(self, user_id: UUID, **overrides: Any) -> UserSession:
        values: dict[str, Any] = {
            "id": uuid4(),
            "user_id": user_id,
            "expires_at": datetime.now(UTC) + timedelta(days=7),
            "ip_address": "203.0.113.7",
            "user_agent": "Mozilla/5.0",
        }
        values.update(overrides)
        session = UserSession(**values)
        self.committed.sessions[session.id] = copy.deepcopy(session)
        return session

    def add_address(self, buyer_id: UUID) -> DeliveryAddress:
        address = DeliveryAddress(
            id=uuid4(),
            buyer_id=buyer_id,
            recipient_name="Ada Lovelace",
            line1="12 St James's Square",
            city="London",
            postal_code="SW1Y 4JH",
            country_code="GB",
        )
        self.committed.addresses[address.id] = copy.deepcopy(address)
        return address

    def add_review(self, buyer_id: UUID, **overrides: Any) -> Review:
        values: dict[str, Any] = {
            "id": uuid4(),
            "buyer_id": buyer_id,
            "product_id": uuid4(),
            "rating": 5,
            "comment": "Arrived quickly, exactly as described.",
            "author_name": "Ada L.",
        }
        values.update(overrides)
        review = Review(**values)
        self.committed.reviews[review.id] = copy.deepcopy(review)
        return review

    def add_store(self, seller_id: UUID, **overrides: Any) -> Store:
        values: dict[str, Any] = {
            "id": uuid4(),
            "seller_id": seller_id,
            "name": "Analytical Engines Ltd",
            "status": StoreStatus.ACTIVE,
        }
        values.update(overrides)
        store = Store(**values)
        self.committed.stores[store.id] = copy.deepcopy(store)
        return store

    def add_order(self, buyer_id: UUID, store_id: UUID | None = None) -> Order:
        order = Order(
            id=uuid4(),
            buyer_id=buyer_id,
            store_id=store_id or uuid4(),
            total_amount=Decimal("149.90"),
            currency="EUR",
            placed_at=datetime(2025, 3, 14, 9, 26, tzinfo=UTC),
            recipient_name="Ada Lovelace",
            delivery_line1="12 St James's Square",
            delivery_city="London",
            delivery_postal_code="SW1Y 4JH",
            delivery_country_code="GB",
        )
        self.committed.orders[order.id] = copy.deepcopy(order)
        return order

    def add_return(
        self,
        buyer_id: UUID,
        store_id: UUID | None = None,
        status: ReturnRequestStatus = ReturnRequestStatus.REQUESTED,
    ) -> ReturnRequest:
        return_request = ReturnRequest(
            id=uuid4(),
            order_id=uuid4(),
            buyer_id=buyer_id,
            store_id=store_id or uuid4(),
            status=status,
        )
        self.committed.returns[return_request.id] = copy.deepcopy(return_request)
        return return_request

    def add_request(self, request: AccountDeletionRequest) -> AccountDeletionRequest:
        self.committed.requests[request.id] = request
        return request

    # -- inspection helpers --

    def user(self, user_id: UUID) -> User:
        return self.committed.users[user_id]

    def request(self, request_id: UUID) -> AccountDeletionRequest:
        return self.committed.requests[request_id]

    def requests_of(self, user_id: UUID) -> list[AccountDeletionRequest]:
        return [r for r in self.committed.requests.values() if r.user_id == user_id]

    def audit_actions(self, request_id: UUID) -> list[str]:
        """Audit actions of one request, in insertion order."""
        return [
            e.action.value
            for e in self.committed.audit_logs
            if e.deletion_request_id == request_id
        ]


class _Repository:
    def __init__(self, db: FakeDatabase, state: MarketplaceState, name: str) -> None:
        self._db = db
        self._state = state
        self._name = name

    def _fail(self, operation: str) -> None:
        self._db.maybe_fail(f"{self._name}.{operation}")


class FakeUserRepository(_Repository):
    async def get_by_id(self, user_id: UUID) -> User | None:
        user = self._state.users.get(user_id)
        return copy.deepcopy(user) if user is not None else None

    async def get_by_email(self, email: str) -> User | None:
        for user in self._state.users.values():
            if user.email.lower() == email.lower():
                return copy.deepcopy(user)
        return None

    async def exists_by_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def update(self, user: User) -> None:
        self._fail("update")
        self._state.users[user.id] = copy.deepcopy(user)


class FakeUserSessionRepository(_Repository):
    async def get_active_by_user_id(self, user_id: UUID) -> list[UserSession]:
        return [
            copy.deepcopy(s)
            for s in self._state.sessions.values()
            if s.user_id == user_id and s.is_valid
        ]

    async def update(self, session: UserSession) -> None:
        self._fail("update")
        self._state.sessions[session.id] = copy.deepcopy(session)


class FakeDeliveryAddressRepository(_Repository):
    async def get_by_buyer_id(self, buyer_id: UUID) -> list[DeliveryAddress]:
        return [copy.deepcopy(a) for a in self._state.addresses.values() if a.buyer_id == buyer_id]

    async def remove(self, address: DeliveryAddress) -> None:
        self._fail("remove")
        self._state.addresses.pop(address.id, None)


class FakeReviewRepository(_Repository):
    async def get_by_buyer_id(self, buyer_id: UUID) -> list[Review]:
        return [copy.deepcopy(r) for r in self._state.reviews.values() if r.buyer_id == buyer_id]

    async def update(self, review: Review) -> None:
        self._fail("update")
        self._state.reviews[review.id] = copy.deepcopy(review)


class FakeStoreRepository(_Repository):
    async def get_by_seller_id(self, seller_id: UUID) -> Store | None:
        for store in self._state.stores.values():
            if store.seller_id == seller_id:
                return copy.deepcopy(store)
        return None

    async def update(self, store: Store) -> None:
        self._fail("update")
        self._state.stores[store.id] = copy.deepcopy(store)


class FakeOrderRepository(_Repository):
    async def get_by_buyer_id(self, buyer_id: UUID) -> list[Order]:
        return [copy.deepcopy(o) for o in self._state.orders.values() if o.buyer_id == buyer_id]


class FakeReturnRequestRepository(_Repository):
    async def get_by_buyer_id(self, buyer_id: UUID) -> list[ReturnRequest]:
        return [copy.deepcopy(r) for r in self._state.returns.values() if r.buyer_id == buyer_id]

    async def get_by_store_id(self, store_id: UUID) -> list[ReturnRequest]:
        return [copy.deepcopy(r) for r in self._state.returns.values() if r.store_id == store_id]


class FakeDeletionRequestRepository(_Repository):
    async def add(self, request: AccountDeletionRequest) -> None:
        self._fail("add")
        self._state.requests[request.id] = request

    async def update(self, request: AccountDeletionRequest) -> AccountDeletionRequest:
        self._fail("update")
        if self._db.before_request_update is not None:
            self._db.before_request_update(self._db.committed)
        stored = self._state.requests.get(request.id)
        committed = self._db.committed.requests.get(request.id)
        # A concurrent commit shows up as a newer committed version.
        for current in (stored, committed):
            if current is not None and current.version > request.version:
                raise ConcurrencyConflictError(
                    "AccountDeletionRequest", request.id, expected_version=request.version
                )
        if stored is None or stored.version != request.version:
            raise ConcurrencyConflictError(
                "AccountDeletionRequest", request.id, expected_version=request.version
            )
        updated = replace(request, version=request.version + 1)
        self._state.requests[request.id] = updated
        return updated

    async def get_by_id(self, request_id: UUID) -> AccountDeletionRequest | None:
        return self._state.requests.get(request_id)

    async def get_pending_by_user_id(self, user_id: UUID) -> AccountDeletionRequest | None:
        pending = [
            r
            for r in self._state.requests.values()
            if r.user_id == user_id and r.status == DeletionRequestStatus.PENDING
        ]
        ordered = _newest_first(pending, key=lambda r: r.requested_at)
        return ordered[0] if ordered else None

    async def get_by_user_id(self, user_id: UUID) -> list[AccountDeletionRequest]:
        owned = [r for r in self._state.requests.values() if r.user_id == user_id]
        return _newest_first(owned, key=lambda r: r.requested_at)

    async def has_active_request(self, user_id: UUID) -> bool:
        return any(
            r.user_id == user_id and r.status in ACTIVE_STATUSES
            for r in self._state.requests.values()
        )

    async def add_audit_log(self, entry: AccountDeletionAuditLog) -> None:
        self._fail("add_audit_log")
        self._state.audit_logs.append(entry)

    async def get_audit_logs_for_request(
        self, request_id: UUID
    ) -> list[AccountDeletionAuditLog]:
        entries = [e for e in self._state.audit_logs if e.deletion_request_id == request_id]
        return _newest_first(entries, key=lambda e: e.occurred_at)

    async def get_audit_logs_by_user_id(self, user_id: UUID) -> list[AccountDeletionAuditLog]:
        entries = [
            e
            for e in self._state.audit_logs
            if user_id in (e.affected_user_id, e.triggered_by_user_id)
        ]
        return _newest_first(entries, key=lambda e: e.occurred_at)


class FakeUnitOfWork:
    """Transaction over a private copy of the committed state."""

    def __init__(self, db: FakeDatabase) -> None:
        self._db = db
        self._committed = False
        self.entered = False
        self.exited = False

    async def __aenter__(self) -> FakeUnitOfWork:
        self._work = copy.deepcopy(self._db.committed)
        self.users = FakeUserRepository(self._db, self._work, "users")
        self.sessions = FakeUserSessionRepository(self._db, self._work, "sessions")
        self.addresses = FakeDeliveryAddressRepository(self._db, self._work, "addresses")
        self.reviews = FakeReviewRepository(self._db, self._work, "reviews")
        self.stores = FakeStoreRepository(self._db, self._work, "stores")
        self.orders = FakeOrderRepository(self._db, self._work, "orders")
        self.returns = FakeReturnRequestRepository(self._db, self._work, "returns")
        self.deletion_requests = FakeDeletionRequestRepository(
            self._db, self._work, "deletion_requests"
        )
        self.entered = True
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.exited = True
        if not self._committed:
            await self.rollback()

    async def commit(self) -> None:
        self._db.maybe_fail("commit")
        self._db.committed = self._work
        self._db.commit_count += 1
        self._committed = True

    async def rollback(self) -> None:
        self._db.rollback_count += 1


@pytest.fixture()
def db() -> FakeDatabase:
    """Empty in-memory marketplace."""
    return FakeDatabase()


@pytest.fixture()
def make_uow(db: FakeDatabase) -> Callable[[], FakeUnitOfWork]:
    """Factory of fresh units of work over ``db``."""
    return lambda: FakeUnitOfWork(db)


@pytest.fixture()
def compliance_logger() -> AsyncMock:
    """Stand-in for the external sensitive-access audit logger."""
    logger = AsyncMock()
    logger.log_sensitive_access = AsyncMock(return_value=None)
    return logger


@pytest.fixture()
def evaluator() -> BlockingConditionEvaluator:
    return BlockingConditionEvaluator()


@pytest.fixture()
def service(
    make_uow: Callable[[], FakeUnitOfWork],
    compliance_logger: AsyncMock,
    evaluator: BlockingConditionEvaluator,
) -> AccountDeletionService:
    """AccountDeletionService wired to the in-memory fakes."""
    return AccountDeletionService(
        uow_factory=make_uow,
        evaluator=evaluator,
        assessor=ImpactAssessor(evaluator),
        executor=AnonymizationExecutor(email_domain="deleted.invalid"),
        audit_writer=AuditTrailWriter(compliance_logger),
    )


@pytest.fixture()
def buyer(db: FakeDatabase) -> User:
    """Verified buyer with no open disputes."""
    return db.add_user()


@pytest.fixture()
def seller(db: FakeDatabase) -> User:
    """Verified seller."""
    return db.add_user(
        email="grace@example.com",
        first_name="Grace",
        last_name="Hopper",
        role=UserRole.SELLER,
    )
