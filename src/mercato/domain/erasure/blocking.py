"""Blocking conditions that currently forbid erasing an account.

The evaluator is the only authority on whether deletion is permitted.
It is consulted twice per erasure (when the request is opened and again
when it is confirmed) and is never cached, so it must stay stateless and
free of side effects.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from mercato.domain.marketplace.accounts import UserRole, UserStatus

if TYPE_CHECKING:
    from mercato.domain.erasure.ports import UnitOfWork
    from mercato.domain.marketplace.accounts import User

ALREADY_DELETED = "Account has already been deleted."
SUSPENDED = "Account is suspended. Please contact support."


class BlockingConditionEvaluator:
    """Computes the reasons an account cannot be erased right now.

    Rules, in order:
    1. DELETED account -> single reason, stop.
    2. SUSPENDED account -> single reason, stop.
    3. Open buyer-side returns/disputes -> reason naming the count.
    4. Seller with a store that has open disputes -> second, independent
       reason naming that count.

    An empty list means deletion is currently permitted.
    """

    async def evaluate(self, user: User, uow: UnitOfWork) -> list[str]:
        """Return the blocking reasons for ``user``. Reads only."""
        if user.status == UserStatus.DELETED:
            return [ALREADY_DELETED]
        if user.status == UserStatus.SUSPENDED:
            return [SUSPENDED]

        conditions: list[str] = []

        buyer_returns = await uow.returns.get_by_buyer_id(user.id)
        open_disputes = sum(1 for r in buyer_returns if r.is_open)
        if open_disputes > 0:
            conditions.append(
                f"You have {open_disputes} open dispute(s) or return request(s) "
                "that must be resolved first."
            )

        if user.role == UserRole.SELLER:
            store = await uow.stores.get_by_seller_id(user.id)
            if store is not None:
                store_returns = await uow.returns.get_by_store_id(store.id)
                open_store_disputes = sum(1 for r in store_returns if r.is_open)
                if open_store_disputes > 0:
                    conditions.append(
                        f"Your store has {open_store_disputes} open dispute(s) "
                        "that must be resolved first."
                    )

        return conditions
