"""Disclosure of what erasing an account will do.

The impact summary is shown to the user before they commit. It reports
the blocking reasons computed by the evaluator but never decides anything
itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mercato.domain.marketplace.accounts import UserRole

if TYPE_CHECKING:
    from mercato.domain.erasure.blocking import BlockingConditionEvaluator
    from mercato.domain.erasure.ports import UnitOfWork
    from mercato.domain.marketplace.accounts import User

USER_NOT_FOUND = "User not found."
LOSE_ACCESS = "You will permanently lose access to your account."
CREDENTIALS_REMOVED = "Your email and login credentials will be removed."
CANNOT_BE_UNDONE = "This action cannot be undone."


@dataclass(frozen=True)
class ImpactSummary:
    """Preview of an erasure.

    Attributes:
        can_delete: True when there are no blocking conditions.
        blocking_conditions: Reasons deletion is refused right now.
        order_count: Orders whose buyer will resolve to an anonymized user.
        review_count: Reviews that will be attributed to "Deleted User".
        address_count: Delivery addresses that will be deleted.
        has_active_store: Whether a publicly visible store will be deactivated.
        store_name: Name of that store, if any.
        statements: Ordered human-readable impact statements.
    """

    can_delete: bool
    blocking_conditions: list[str] = field(default_factory=list)
    order_count: int = 0
    review_count: int = 0
    address_count: int = 0
    has_active_store: bool = False
    store_name: str | None = None
    statements: list[str] = field(default_factory=list)

    @classmethod
    def user_not_found(cls) -> ImpactSummary:
        return cls(can_delete=False, blocking_conditions=[USER_NOT_FOUND])


class ImpactAssessor:
    """Builds the impact summary for a user without mutating anything.

    Attributes:
        _evaluator: Source of the blocking conditions.
        _deleted_user_label: Attribution shown for anonymized reviews.
    """

    def __init__(
        self,
        evaluator: BlockingConditionEvaluator,
        deleted_user_label: str = "Deleted User",
    ) -> None:
        self._evaluator = evaluator
        self._deleted_user_label = deleted_user_label

    async def assess(self, user: User, uow: UnitOfWork) -> ImpactSummary:
        blocking_conditions = await self._evaluator.evaluate(user, uow)

        order_count = len(await uow.orders.get_by_buyer_id(user.id))
        review_count = len(await uow.reviews.get_by_buyer_id(user.id))
        address_count = len(await uow.addresses.get_by_buyer_id(user.id))

        has_active_store = False
        store_name: str | None = None
        if user.role == UserRole.SELLER:
            store = await uow.stores.get_by_seller_id(user.id)
            if store is not None:
                has_active_store = store.is_publicly_visible()
                store_name = store.name

        statements = [LOSE_ACCESS, CREDENTIALS_REMOVED]
        if order_count > 0:
            statements.append(
                f"Personal data in {order_count} order(s) will be anonymized. "
                "Order amounts and dates are retained for legal records."
            )
        if review_count > 0:
            statements.append(
                f"{review_count} review(s) will be anonymized and attributed to "
                f"'{self._deleted_user_label}'."
            )
        if address_count > 0:
            statements.append(f"{address_count} delivery address(es) will be deleted.")
        if has_active_store:
            statements.append(
                f"Your store '{store_name}' will be deactivated and all listings hidden."
            )
        statements.append(CANNOT_BE_UNDONE)

        return ImpactSummary(
            can_delete=not blocking_conditions,
            blocking_conditions=blocking_conditions,
            order_count=order_count,
            review_count=review_count,
            address_count=address_count,
            has_active_store=has_active_store,
            store_name=store_name,
            statements=statements,
        )
