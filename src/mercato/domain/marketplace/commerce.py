"""Commerce entities touched or inspected by account erasure.

Orders, return requests, reviews, delivery addresses and stores each have
their own lifecycle outside the erasure workflow. Only the slices the
workflow reads or mutates are modelled.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

DELETED_USER_LABEL = "Deleted User"


class StoreStatus(StrEnum):
    """Seller store lifecycle states."""

    PENDING_VERIFICATION = "PendingVerification"
    ACTIVE = "Active"
    LIMITED_ACTIVE = "LimitedActive"
    SUSPENDED = "Suspended"
    DEACTIVATED = "Deactivated"


class ReturnRequestStatus(StrEnum):
    """Return/dispute lifecycle states."""

    REQUESTED = "Requested"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    COMPLETED = "Completed"
    UNDER_ADMIN_REVIEW = "UnderAdminReview"


OPEN_RETURN_STATUSES: frozenset[ReturnRequestStatus] = frozenset(
    {
        ReturnRequestStatus.REQUESTED,
        ReturnRequestStatus.APPROVED,
        ReturnRequestStatus.UNDER_ADMIN_REVIEW,
    }
)


@dataclass
class Store:
    """Seller storefront."""

    id: UUID
    seller_id: UUID
    name: str
    status: StoreStatus = StoreStatus.ACTIVE
    updated_at: datetime | None = None

    def is_publicly_visible(self) -> bool:
        """Active and LimitedActive stores are publicly visible."""
        return self.status in (StoreStatus.ACTIVE, StoreStatus.LIMITED_ACTIVE)

    def deactivate(self, at: datetime | None = None) -> None:
        """Hide the store and its listings. The store record is retained."""
        if self.status == StoreStatus.DEACTIVATED:
            return
        self.status = StoreStatus.DEACTIVATED
        self.updated_at = at or datetime.now(UTC)


@dataclass
class DeliveryAddress:
    """Buyer delivery address. No retention requirement applies."""

    id: UUID
    buyer_id: UUID
    recipient_name: str
    line1: str
    city: str
    postal_code: str
    country_code: str


@dataclass
class Review:
    """Product review. Content survives author anonymization."""

    id: UUID
    buyer_id: UUID
    product_id: UUID
    rating: int
    comment: str | None
    author_name: str
    is_author_anonymized: bool = False

    def anonymize_author(self, label: str = DELETED_USER_LABEL) -> None:
        """Replace author-identifying fields, keeping rating and comment."""
        self.author_name = label
        self.is_author_anonymized = True


@dataclass
class Order:
    """Placed order. Retained unchanged for legal and tax records.

    The delivery fields are a denormalized copy taken at checkout.
    """

    id: UUID
    buyer_id: UUID
    store_id: UUID
    total_amount: Decimal
    currency: str
    placed_at: datetime
    recipient_name: str
    delivery_line1: str
    delivery_city: str
    delivery_postal_code: str
    delivery_country_code: str


@dataclass
class ReturnRequest:
    """Return or dispute raised by a buyer against a store's sub-order."""

    id: UUID
    order_id: UUID
    buyer_id: UUID
    store_id: UUID
    status: ReturnRequestStatus = ReturnRequestStatus.REQUESTED

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_RETURN_STATUSES
