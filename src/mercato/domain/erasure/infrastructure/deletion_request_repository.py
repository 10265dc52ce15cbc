"""SQL store for deletion requests and their audit trail.

Bound to the unit of work's :class:`AsyncSession`; never commits on its
own. Requests carry a ``version`` column; every update is conditional on
the version the caller read, so a second concurrent writer to the same
row is rejected instead of silently overwriting the first.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any
from uuid import UUID

from psycopg.errors import UniqueViolation
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from mercato.domain.erasure.audit import AccountDeletionAuditLog, AuditAction
from mercato.domain.erasure.request import (
    ACTIVE_STATUSES,
    AccountDeletionRequest,
    DeletionRequestStatus,
)
from mercato.domain.marketplace.accounts import UserRole
from mercato.foundation.domain.exceptions import ConcurrencyConflictError, ConflictError

if TYPE_CHECKING:
    from sqlalchemy.engine import RowMapping
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = (
    """
    CREATE TABLE IF NOT EXISTS account_deletion_requests (
        id UUID PRIMARY KEY,
        user_id UUID NOT NULL,
        status VARCHAR(32) NOT NULL,
        requested_at TIMESTAMP WITH TIME ZONE NOT NULL,
        confirmed_at TIMESTAMP WITH TIME ZONE,
        completed_at TIMESTAMP WITH TIME ZONE,
        cancelled_at TIMESTAMP WITH TIME ZONE,
        blocking_reason TEXT,
        ip_address VARCHAR(64),
        user_agent VARCHAR(512),
        version INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_account_deletion_requests_user
        ON account_deletion_requests (user_id, requested_at DESC)
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_account_deletion_requests_one_pending
        ON account_deletion_requests (user_id)
        WHERE status = 'Pending'
    """,
    """
    CREATE TABLE IF NOT EXISTS account_deletion_audit_logs (
        id UUID PRIMARY KEY,
        deletion_request_id UUID NOT NULL,
        affected_user_id UUID NOT NULL,
        triggered_by_user_id UUID NOT NULL,
        triggered_by_role VARCHAR(32) NOT NULL,
        action VARCHAR(32) NOT NULL,
        notes TEXT,
        ip_address VARCHAR(64),
        user_agent VARCHAR(512),
        occurred_at TIMESTAMP WITH TIME ZONE NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_account_deletion_audit_logs_request
        ON account_deletion_audit_logs (deletion_request_id, occurred_at DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_account_deletion_audit_logs_affected_user
        ON account_deletion_audit_logs (affected_user_id, occurred_at DESC)
    """,
)

_REQUEST_COLUMNS = """
    id, user_id, status, requested_at, confirmed_at, completed_at,
    cancelled_at, blocking_reason, ip_address, user_agent, version
"""

_AUDIT_COLUMNS = """
    id, deletion_request_id, affected_user_id, triggered_by_user_id,
    triggered_by_role, action, notes, ip_address, user_agent, occurred_at
"""

_INSERT_REQUEST_SQL = """
    INSERT INTO account_deletion_requests
        (id, user_id, status, requested_at, confirmed_at, completed_at,
         cancelled_at, blocking_reason, ip_address, user_agent, version)
    VALUES
        (:id, :user_id, :status, :requested_at, :confirmed_at, :completed_at,
         :cancelled_at, :blocking_reason, :ip_address, :user_agent, :version)
"""

_UPDATE_REQUEST_SQL = """
    UPDATE account_deletion_requests
    SET status = :status,
        confirmed_at = :confirmed_at,
        completed_at = :completed_at,
        cancelled_at = :cancelled_at,
        blocking_reason = :blocking_reason,
        version = version + 1
    WHERE id = :id AND version = :version
"""

_SELECT_REQUEST_BY_ID_SQL = f"""
    SELECT {_REQUEST_COLUMNS}
    FROM account_deletion_requests
    WHERE id = :id
"""  # noqa: S608

_SELECT_PENDING_BY_USER_SQL = f"""
    SELECT {_REQUEST_COLUMNS}
    FROM account_deletion_requests
    WHERE user_id = :user_id AND status = :status
    ORDER BY requested_at DESC
    LIMIT 1
"""  # noqa: S608

_SELECT_REQUESTS_BY_USER_SQL = f"""
    SELECT {_REQUEST_COLUMNS}
    FROM account_deletion_requests
    WHERE user_id = :user_id
    ORDER BY requested_at DESC
"""  # noqa: S608

_HAS_ACTIVE_REQUEST_SQL = """
    SELECT EXISTS (
        SELECT 1 FROM account_deletion_requests
        WHERE user_id = :user_id AND status IN (:first_status, :second_status)
    )
"""

_INSERT_AUDIT_SQL = """
    INSERT INTO account_deletion_audit_logs
        (id, deletion_request_id, affected_user_id, triggered_by_user_id,
         triggered_by_role, action, notes, ip_address, user_agent, occurred_at)
    VALUES
        (:id, :deletion_request_id, :affected_user_id, :triggered_by_user_id,
         :triggered_by_role, :action, :notes, :ip_address, :user_agent, :occurred_at)
"""

_SELECT_AUDIT_BY_REQUEST_SQL = f"""
    SELECT {_AUDIT_COLUMNS}
    FROM account_deletion_audit_logs
    WHERE deletion_request_id = :request_id
    ORDER BY occurred_at DESC
"""  # noqa: S608

_SELECT_AUDIT_BY_USER_SQL = f"""
    SELECT {_AUDIT_COLUMNS}
    FROM account_deletion_audit_logs
    WHERE affected_user_id = :user_id OR triggered_by_user_id = :user_id
    ORDER BY occurred_at DESC
"""  # noqa: S608


def _uuid(value: Any) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def _request_from_row(row: RowMapping) -> AccountDeletionRequest:
    return AccountDeletionRequest(
        id=_uuid(row["id"]),
        user_id=_uuid(row["user_id"]),
        status=DeletionRequestStatus(row["status"]),
        requested_at=row["requested_at"],
        confirmed_at=row["confirmed_at"],
        completed_at=row["completed_at"],
        cancelled_at=row["cancelled_at"],
        blocking_reason=row["blocking_reason"],
        ip_address=row["ip_address"],
        user_agent=row["user_agent"],
        version=int(row["version"]),
    )


def _audit_from_row(row: RowMapping) -> AccountDeletionAuditLog:
    return AccountDeletionAuditLog(
        id=_uuid(row["id"]),
        deletion_request_id=_uuid(row["deletion_request_id"]),
        affected_user_id=_uuid(row["affected_user_id"]),
        triggered_by_user_id=_uuid(row["triggered_by_user_id"]),
        triggered_by_role=UserRole(row["triggered_by_role"]),
        action=AuditAction(row["action"]),
        notes=row["notes"],
        ip_address=row["ip_address"],
        user_agent=row["user_agent"],
        occurred_at=row["occurred_at"],
    )


class SqlDeletionRequestRepository:
    """PostgreSQL implementation of the deletion-request port.

    Attributes:
        _session: The unit of work's session. All statements join its
            transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @classmethod
    async def ensure_tables_exist(cls, session: AsyncSession) -> None:
        """Create the request and audit tables if they do not exist.

        Called once during startup. Idempotent. Commits its own session.
        """
        for statement in _CREATE_TABLES_SQL:
            await session.execute(text(statement))
        await session.commit()
        logger.info("account_deletion_tables_ensured")

    async def add(self, request: AccountDeletionRequest) -> None:
        """Insert a new request.

        The partial unique index on Pending rows rejects a second Pending
        request for the same user. psycopg raises UniqueViolation, which
        is translated.

        Raises:
            ConflictError: If the user already has a Pending request.
        """
        try:
            await self._session.execute(
                text(_INSERT_REQUEST_SQL),
                {
                    "id": request.id,
                    "user_id": request.user_id,
                    "status": request.status.value,
                    "requested_at": request.requested_at,
                    "confirmed_at": request.confirmed_at,
                    "completed_at": request.completed_at,
                    "cancelled_at": request.cancelled_at,
                    "blocking_reason": request.blocking_reason,
                    "ip_address": request.ip_address,
                    "user_agent": request.user_agent,
                    "version": request.version,
                },
            )
        except IntegrityError as err:
            if not isinstance(err.orig, UniqueViolation):
                raise
            logger.warning(
                "account_deletion_request_pending_exists",
                extra={"user_id": str(request.user_id)},
            )
            raise ConflictError(
                "User already has a pending deletion request",
                user_id=str(request.user_id),
            ) from err

    async def update(self, request: AccountDeletionRequest) -> AccountDeletionRequest:
        """Write the transitioned request if nobody else changed it first.

        Raises:
            ConcurrencyConflictError: If no row matched ``id`` and ``version``.
        """
        result = await self._session.execute(
            text(_UPDATE_REQUEST_SQL),
            {
                "id": request.id,
                "version": request.version,
                "status": request.status.value,
                "confirmed_at": request.confirmed_at,
                "completed_at": request.completed_at,
                "cancelled_at": request.cancelled_at,
                "blocking_reason": request.blocking_reason,
            },
        )
        if result.rowcount == 0:
            logger.warning(
                "account_deletion_request_version_conflict",
                extra={"deletion_request_id": str(request.id), "version": request.version},
            )
            raise ConcurrencyConflictError(
                "AccountDeletionRequest", request.id, expected_version=request.version
            )
        return replace(request, version=request.version + 1)

    async def get_by_id(self, request_id: UUID) -> AccountDeletionRequest | None:
        result = await self._session.execute(text(_SELECT_REQUEST_BY_ID_SQL), {"id": request_id})
        row = result.mappings().first()
        return _request_from_row(row) if row is not None else None

    async def get_pending_by_user_id(self, user_id: UUID) -> AccountDeletionRequest | None:
        result = await self._session.execute(
            text(_SELECT_PENDING_BY_USER_SQL),
            {"user_id": user_id, "status": DeletionRequestStatus.PENDING.value},
        )
        row = result.mappings().first()
        return _request_from_row(row) if row is not None else None

    async def get_by_user_id(self, user_id: UUID) -> list[AccountDeletionRequest]:
        result = await self._session.execute(
            text(_SELECT_REQUESTS_BY_USER_SQL), {"user_id": user_id}
        )
        return [_request_from_row(row) for row in result.mappings().all()]

    async def has_active_request(self, user_id: UUID) -> bool:
        first, second = sorted(s.value for s in ACTIVE_STATUSES)
        result = await self._session.execute(
            text(_HAS_ACTIVE_REQUEST_SQL),
            {"user_id": user_id, "first_status": first, "second_status": second},
        )
        return bool(result.scalar())

    async def add_audit_log(self, entry: AccountDeletionAuditLog) -> None:
        await self._session.execute(
            text(_INSERT_AUDIT_SQL),
            {
                "id": entry.id,
                "deletion_request_id": entry.deletion_request_id,
                "affected_user_id": entry.affected_user_id,
                "triggered_by_user_id": entry.triggered_by_user_id,
                "triggered_by_role": entry.triggered_by_role.value,
                "action": entry.action.value,
                "notes": entry.notes,
                "ip_address": entry.ip_address,
                "user_agent": entry.user_agent,
                "occurred_at": entry.occurred_at,
            },
        )

    async def get_audit_logs_for_request(self, request_id: UUID) -> list[AccountDeletionAuditLog]:
        result = await self._session.execute(
            text(_SELECT_AUDIT_BY_REQUEST_SQL), {"request_id": request_id}
        )
        return [_audit_from_row(row) for row in result.mappings().all()]

    async def get_audit_logs_by_user_id(self, user_id: UUID) -> list[AccountDeletionAuditLog]:
        result = await self._session.execute(
            text(_SELECT_AUDIT_BY_USER_SQL), {"user_id": user_id}
        )
        return [_audit_from_row(row) for row in result.mappings().all()]
