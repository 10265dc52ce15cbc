"""Mercato Domain Marketplace: aggregates and ports consumed by erasure."""

from mercato.domain.marketplace.accounts import User, UserRole, UserSession, UserStatus
from mercato.domain.marketplace.commerce import (
    DELETED_USER_LABEL,
    OPEN_RETURN_STATUSES,
    DeliveryAddress,
    Order,
    ReturnRequest,
    ReturnRequestStatus,
    Review,
    Store,
    StoreStatus,
)
from mercato.domain.marketplace.ports import (
    DeliveryAddressRepository,
    OrderRepository,
    ReturnRequestRepository,
    ReviewRepository,
    StoreRepository,
    UserRepository,
    UserSessionRepository,
)

__all__ = [
    "DELETED_USER_LABEL",
    "OPEN_RETURN_STATUSES",
    "DeliveryAddress",
    "DeliveryAddressRepository",
    "Order",
    "OrderRepository",
    "ReturnRequest",
    "ReturnRequestRepository",
    "ReturnRequestStatus",
    "Review",
    "ReviewRepository",
    "Store",
    "StoreRepository",
    "StoreStatus",
    "User",
    "UserRepository",
    "UserRole",
    "UserSession",
    "UserSessionRepository",
    "UserStatus",
]
