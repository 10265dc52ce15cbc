"""Audit trail for the account deletion workflow.

Two independent channels:

1. The deletion audit trail: one append-only row per workflow transition,
   written inside the use case's unit of work so it commits atomically
   with the transition it records.
2. The external compliance channel: one sensitive-access record per
   completed erasure, emitted after commit. It is best-effort relative to
   the deletion; its owning subsystem is responsible for retrying.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from mercato.domain.erasure.ports import SensitiveAccessAuditLogger, UnitOfWork
    from mercato.domain.marketplace.accounts import UserRole

logger = logging.getLogger(__name__)

ANONYMIZATION_ACCESS_REASON = "Account deletion - data anonymization"


class AuditAction(StrEnum):
    """Deletion audit trail actions, one per workflow transition."""

    REQUESTED = "Requested"
    IMPACT_DISPLAYED = "ImpactDisplayed"
    CONFIRMED = "Confirmed"
    ANONYMIZED = "Anonymized"
    BLOCKED = "Blocked"
    CANCELLED = "Cancelled"


class SensitiveResourceType(StrEnum):
    """Resource categories tracked by the compliance audit channel."""

    CUSTOMER_PROFILE = "CustomerProfile"


class SensitiveAccessAction(StrEnum):
    """Access kinds tracked by the compliance audit channel."""

    VIEW = "View"
    MODIFY = "Modify"


def _require_id(value: UUID, name: str) -> None:
    if value.int == 0:
        msg = f"{name} is required"
        raise ValueError(msg)


def _trim(value: str | None) -> str | None:
    return value.strip() if value is not None else None


@dataclass(frozen=True, slots=True)
class AccountDeletionAuditLog:
    """Immutable audit row describing one deletion workflow transition.

    Notes must never carry the personal data being erased. The affected
    user id is retained after anonymization for audit purposes.

    Raises:
        ValueError: If any of the three identifiers is the nil UUID.
    """

    deletion_request_id: UUID
    affected_user_id: UUID
    triggered_by_user_id: UUID
    triggered_by_role: UserRole
    action: AuditAction
    notes: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        _require_id(self.deletion_request_id, "Deletion request ID")
        _require_id(self.affected_user_id, "Affected user ID")
        _require_id(self.triggered_by_user_id, "Triggered by user ID")
        object.__setattr__(self, "notes", _trim(self.notes))
        object.__setattr__(self, "ip_address", _trim(self.ip_address))
        object.__setattr__(self, "user_agent", _trim(self.user_agent))


@dataclass(frozen=True, slots=True)
class SensitiveAccessRecord:
    """Compliance record of an access to a sensitive resource."""

    accessed_by_user_id: UUID
    accessed_by_role: UserRole
    resource_type: SensitiveResourceType
    resource_id: UUID
    action: SensitiveAccessAction
    resource_owner_id: UUID
    reason: str
    ip_address: str | None = None
    user_agent: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class AuditTrailWriter:
    """Appends deletion audit rows and forwards compliance records.

    Attributes:
        _compliance_logger: External sensitive-access audit logger, or
            ``None`` when the compliance channel is disabled.
    """

    def __init__(self, compliance_logger: SensitiveAccessAuditLogger | None = None) -> None:
        self._compliance_logger = compliance_logger

    async def append(
        self,
        uow: UnitOfWork,
        *,
        request_id: UUID,
        affected_user_id: UUID,
        triggered_by_user_id: UUID,
        role: UserRole,
        action: AuditAction,
        notes: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AccountDeletionAuditLog:
        """Append one audit row inside the caller's unit of work.

        Never touches existing rows. The row becomes durable only when the
        unit of work commits.

        Returns:
            The appended audit row.
        """
        entry = AccountDeletionAuditLog(
            deletion_request_id=request_id,
            affected_user_id=affected_user_id,
            triggered_by_user_id=triggered_by_user_id,
            triggered_by_role=role,
            action=action,
            notes=notes,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        await uow.deletion_requests.add_audit_log(entry)
        logger.debug(
            "deletion_audit_appended",
            extra={
                "deletion_request_id": str(request_id),
                "action": action.value,
            },
        )
        return entry

    async def record_sensitive_access(
        self,
        *,
        user_id: UUID,
        role: UserRole,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> bool:
        """Emit the post-commit compliance record for a completed erasure.

        Called exactly once per successful confirmation, after commit. A
        failure is logged and reported through the return value; it never
        propagates, because the deletion it describes is already durable.

        Returns:
            True if the record was handed to the compliance logger.
        """
        if self._compliance_logger is None:
            logger.info(
                "compliance_audit_disabled",
                extra={"user_id": str(user_id)},
            )
            return False

        record = SensitiveAccessRecord(
            accessed_by_user_id=user_id,
            accessed_by_role=role,
            resource_type=SensitiveResourceType.CUSTOMER_PROFILE,
            resource_id=user_id,
            action=SensitiveAccessAction.MODIFY,
            resource_owner_id=user_id,
            reason=ANONYMIZATION_ACCESS_REASON,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        try:
            await self._compliance_logger.log_sensitive_access(record)
        except Exception:
            logger.exception(
                "compliance_audit_emit_failed",
                extra={"user_id": str(user_id), "resource_type": record.resource_type.value},
            )
            return False
        return True
