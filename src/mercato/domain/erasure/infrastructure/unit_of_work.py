"""SQLAlchemy unit of work spanning every repository an erasure use case touches.

One :class:`AsyncSession` per unit of work. The deletion-request store is
bound to it here; the marketplace repositories are supplied by their
owning subsystems through a :data:`MarketplaceRepositoryFactory` that
receives the same session, so every write joins one transaction.

Usage:
    uow_factory = partial(SqlUnitOfWork, manager.get_session_factory(), marketplace_factory)
    async with uow_factory() as uow:
        ...
        await uow.commit()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mercato.domain.erasure.infrastructure.deletion_request_repository import (
    SqlDeletionRequestRepository,
)
from mercato.foundation.domain.exceptions import PersistenceError

if TYPE_CHECKING:
    from types import TracebackType
    from typing import Self

    from sqlalchemy.ext.asyncio import async_sessionmaker

    from mercato.domain.marketplace.ports import (
        DeliveryAddressRepository,
        OrderRepository,
        ReturnRequestRepository,
        ReviewRepository,
        StoreRepository,
        UserRepository,
        UserSessionRepository,
    )

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MarketplaceRepositories:
    """Marketplace repositories bound to one session."""

    users: UserRepository
    sessions: UserSessionRepository
    addresses: DeliveryAddressRepository
    reviews: ReviewRepository
    stores: StoreRepository
    orders: OrderRepository
    returns: ReturnRequestRepository


MarketplaceRepositoryFactory = Callable[[AsyncSession], MarketplaceRepositories]


class SqlUnitOfWork:
    """Transactional boundary over one :class:`AsyncSession`.

    Leaving the ``async with`` block without a successful :meth:`commit`
    rolls back, whether the block returned early, raised, or its task was
    cancelled. A :class:`~sqlalchemy.exc.SQLAlchemyError` escaping the
    block or raised by :meth:`commit` surfaces as :class:`PersistenceError`
    once the transaction is rolled back.

    Attributes:
        _session_factory: Creates the session backing this unit of work.
        _marketplace_factory: Binds the marketplace repositories to it.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        marketplace_factory: MarketplaceRepositoryFactory,
    ) -> None:
        self._session_factory = session_factory
        self._marketplace_factory = marketplace_factory
        self._session: AsyncSession | None = None
        self._committed = False

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            msg = "Unit of work is not active; use it as an async context manager"
            raise RuntimeError(msg)
        return self._session

    async def __aenter__(self) -> Self:
        session = self._session_factory()
        repositories = self._marketplace_factory(session)
        self.users = repositories.users
        self.sessions = repositories.sessions
        self.addresses = repositories.addresses
        self.reviews = repositories.reviews
        self.stores = repositories.stores
        self.orders = repositories.orders
        self.returns = repositories.returns
        self.deletion_requests = SqlDeletionRequestRepository(session)
        self._session = session
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        session = self.session
        try:
            if not self._committed:
                await session.rollback()
                if exc_type is not None:
                    logger.info(
                        "unit_of_work_rolled_back",
                        extra={"error_type": exc_type.__name__},
                    )
        finally:
            await session.close()
            self._session = None

        if isinstance(exc, SQLAlchemyError):
            raise PersistenceError(
                "Database operation failed",
                context={"error_type": type(exc).__name__},
            ) from exc

    async def commit(self) -> None:
        """Make every write of this unit of work durable.

        Raises:
            PersistenceError: If the database rejects the commit. The
                transaction is rolled back before this propagates.
        """
        session = self.session
        try:
            await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("unit_of_work_commit_failed")
            await session.rollback()
            raise PersistenceError(
                "Commit failed",
                context={"error_type": type(exc).__name__},
            ) from exc
        self._committed = True

    async def rollback(self) -> None:
        await self.session.rollback()
