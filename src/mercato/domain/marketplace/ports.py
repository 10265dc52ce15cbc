"""Repository ports for marketplace aggregates owned by other subsystems.

The erasure workflow consumes these contracts; the owning subsystems
provide the adapters. Every adapter used inside one unit of work must
share that unit of work's transaction and must not commit on its own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from mercato.domain.marketplace.accounts import User, UserSession
    from mercato.domain.marketplace.commerce import (
        DeliveryAddress,
        Order,
        ReturnRequest,
        Review,
        Store,
    )


@runtime_checkable
class UserRepository(Protocol):
    """Port for user account reads and writes."""

    async def get_by_id(self, user_id: UUID) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def exists_by_email(self, email: str) -> bool: ...

    async def update(self, user: User) -> None: ...


@runtime_checkable
class UserSessionRepository(Protocol):
    """Port for authenticated sessions."""

    async def get_active_by_user_id(self, user_id: UUID) -> Sequence[UserSession]: ...

    async def update(self, session: UserSession) -> None: ...


@runtime_checkable
class DeliveryAddressRepository(Protocol):
    """Port for buyer delivery addresses."""

    async def get_by_buyer_id(self, buyer_id: UUID) -> Sequence[DeliveryAddress]: ...

    async def remove(self, address: DeliveryAddress) -> None: ...


@runtime_checkable
class ReviewRepository(Protocol):
    """Port for product reviews."""

    async def get_by_buyer_id(self, buyer_id: UUID) -> Sequence[Review]: ...

    async def update(self, review: Review) -> None: ...


@runtime_checkable
class StoreRepository(Protocol):
    """Port for seller stores. A seller owns at most one store."""

    async def get_by_seller_id(self, seller_id: UUID) -> Store | None: ...

    async def update(self, store: Store) -> None: ...


@runtime_checkable
class OrderRepository(Protocol):
    """Read-only port for orders. Erasure never writes orders."""

    async def get_by_buyer_id(self, buyer_id: UUID) -> Sequence[Order]: ...


@runtime_checkable
class ReturnRequestRepository(Protocol):
    """Port for return requests and disputes."""

    async def get_by_buyer_id(self, buyer_id: UUID) -> Sequence[ReturnRequest]: ...

    async def get_by_store_id(self, store_id: UUID) -> Sequence[ReturnRequest]: ...
