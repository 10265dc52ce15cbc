"""Irreversible anonymization of a user's personal data.

Scrubs the user account and the aggregates that identify them while
preserving transactional records. Executes within the confirming use
case's unit of work; nothing here commits.

Targets, in order:
1. User: email, name and credentials replaced with values derived from the
   user id; status set to DELETED.
2. Sessions: every active session revoked (records kept).
3. Delivery addresses: deleted (no retention requirement).
4. Reviews: author attribution replaced, rating and comment kept.
5. Store (sellers only): deactivated, not deleted.

Orders are never touched. Amounts, dates and the denormalized delivery
fields stay for legal and tax retention; the buyer reference now resolves
to the anonymized user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from mercato.domain.marketplace.accounts import UserRole
from mercato.domain.marketplace.commerce import DELETED_USER_LABEL, StoreStatus

if TYPE_CHECKING:
    from uuid import UUID

    from mercato.domain.erasure.ports import UnitOfWork
    from mercato.domain.erasure.request import AccountDeletionRequest
    from mercato.domain.marketplace.accounts import User

logger = logging.getLogger(__name__)

ANONYMIZED_SUFFIX_LENGTH = 8


def anonymized_suffix(user_id: UUID) -> str:
    """Deterministic short identifier for display fields of an erased user."""
    return user_id.hex[:ANONYMIZED_SUFFIX_LENGTH].upper()


@dataclass
class AnonymizationReport:
    """Result of one anonymization run.

    Attributes:
        user_id: The anonymized user.
        sessions_revoked: Count of sessions revoked by this run.
        addresses_removed: Count of delivery addresses deleted.
        reviews_anonymized: Count of reviews whose author was replaced.
        store_deactivated: Whether a store was deactivated by this run.
        categories_processed: Data categories processed, in order.
    """

    user_id: UUID
    sessions_revoked: int = 0
    addresses_removed: int = 0
    reviews_anonymized: int = 0
    store_deactivated: bool = False
    categories_processed: list[str] = field(default_factory=list)

    def as_notes(self) -> str:
        """Audit-safe summary; contains counts only."""
        return (
            f"Account data anonymized successfully. Sessions revoked: {self.sessions_revoked}; "
            f"addresses deleted: {self.addresses_removed}; "
            f"reviews anonymized: {self.reviews_anonymized}; "
            f"store deactivated: {'yes' if self.store_deactivated else 'no'}."
        )


class AnonymizationExecutor:
    """Scrubs a user's personal data across user, session, address, review and store stores.

    Attributes:
        _email_domain: Non-routable domain used for scrubbed emails.
        _deleted_user_label: Attribution for anonymized reviews.
    """

    def __init__(
        self,
        email_domain: str = "deleted.invalid",
        deleted_user_label: str = DELETED_USER_LABEL,
    ) -> None:
        self._email_domain = email_domain
        self._deleted_user_label = deleted_user_label

    async def anonymize(
        self,
        user: User,
        request: AccountDeletionRequest,
        uow: UnitOfWork,
    ) -> AnonymizationReport:
        """Anonymize ``user`` inside ``uow``.

        Re-running on an already anonymized user leaves the anonymized
        fields unchanged. Any repository failure propagates so the caller
        can roll the whole unit of work back.

        Args:
            user: The account being erased.
            request: The confirmed deletion request driving this run.
            uow: The confirming use case's unit of work.

        Returns:
            AnonymizationReport with per-category counts.
        """
        now = datetime.now(UTC)
        report = AnonymizationReport(user_id=user.id)

        logger.info(
            "anonymization_started",
            extra={"user_id": str(user.id), "deletion_request_id": str(request.id)},
        )

        # Phase 1: user account
        user.anonymize(anonymized_suffix(user.id), self._email_domain, at=now)
        await uow.users.update(user)
        report.categories_processed.append("user")

        # Phase 2: sessions
        for session in await uow.sessions.get_active_by_user_id(user.id):
            if session.is_revoked:
                continue
            session.revoke(at=now)
            await uow.sessions.update(session)
            report.sessions_revoked += 1
        report.categories_processed.append("sessions")

        # Phase 3: delivery addresses
        for address in await uow.addresses.get_by_buyer_id(user.id):
            await uow.addresses.remove(address)
            report.addresses_removed += 1
        report.categories_processed.append("addresses")

        # Phase 4: reviews
        for review in await uow.reviews.get_by_buyer_id(user.id):
            if review.is_author_anonymized:
                continue
            review.anonymize_author(self._deleted_user_label)
            await uow.reviews.update(review)
            report.reviews_anonymized += 1
        report.categories_processed.append("reviews")

        # Phase 5: seller store
        if user.role == UserRole.SELLER:
            store = await uow.stores.get_by_seller_id(user.id)
            if store is not None and store.status != StoreStatus.DEACTIVATED:
                store.deactivate(at=now)
                await uow.stores.update(store)
                report.store_deactivated = True
            report.categories_processed.append("store")

        logger.info(
            "anonymization_completed",
            extra={
                "user_id": str(user.id),
                "deletion_request_id": str(request.id),
                "sessions_revoked": report.sessions_revoked,
                "addresses_removed": report.addresses_removed,
                "reviews_anonymized": report.reviews_anonymized,
                "store_deactivated": report.store_deactivated,
            },
        )
        return report
