"""Direct-write compliance channel for sensitive data access.

The compliance log is independent of the deletion audit trail: records
are written in their own session and transaction, after the erasure has
already committed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from mercato.domain.erasure.audit import SensitiveAccessRecord
    from mercato.infra.persistence.database import DatabaseManager

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = (
    """
    CREATE TABLE IF NOT EXISTS sensitive_access_audit_logs (
        id BIGSERIAL PRIMARY KEY,
        accessed_by_user_id UUID NOT NULL,
        accessed_by_role VARCHAR(32) NOT NULL,
        resource_type VARCHAR(64) NOT NULL,
        resource_id UUID NOT NULL,
        action VARCHAR(32) NOT NULL,
        resource_owner_id UUID NOT NULL,
        reason TEXT NOT NULL,
        ip_address VARCHAR(64),
        user_agent VARCHAR(512),
        occurred_at TIMESTAMP WITH TIME ZONE NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_sensitive_access_audit_logs_owner
        ON sensitive_access_audit_logs (resource_owner_id, occurred_at DESC)
    """,
)

_INSERT_SQL = """
    INSERT INTO sensitive_access_audit_logs
        (accessed_by_user_id, accessed_by_role, resource_type, resource_id,
         action, resource_owner_id, reason, ip_address, user_agent, occurred_at)
    VALUES
        (:accessed_by_user_id, :accessed_by_role, :resource_type, :resource_id,
         :action, :resource_owner_id, :reason, :ip_address, :user_agent, :occurred_at)
"""


class SensitiveAccessLogRepository:
    """Append-only writer for ``sensitive_access_audit_logs``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @classmethod
    async def ensure_table_exists(cls, session: AsyncSession) -> None:
        """Create the compliance table if it does not exist. Commits its own session."""
        for statement in _CREATE_TABLE_SQL:
            await session.execute(text(statement))
        await session.commit()
        logger.info("sensitive_access_table_ensured")

    async def add(self, record: SensitiveAccessRecord) -> None:
        await self._session.execute(
            text(_INSERT_SQL),
            {
                "accessed_by_user_id": record.accessed_by_user_id,
                "accessed_by_role": record.accessed_by_role.value,
                "resource_type": record.resource_type.value,
                "resource_id": record.resource_id,
                "action": record.action.value,
                "resource_owner_id": record.resource_owner_id,
                "reason": record.reason,
                "ip_address": record.ip_address,
                "user_agent": record.user_agent,
                "occurred_at": record.occurred_at,
            },
        )


class DirectSensitiveAccessAuditLogger:
    """Writes each compliance record synchronously in its own transaction.

    Failures propagate to the caller, which reports them without undoing
    the erasure.
    """

    def __init__(self, database_manager: DatabaseManager) -> None:
        self._database_manager = database_manager

    async def log_sensitive_access(self, record: SensitiveAccessRecord) -> None:
        async with self._database_manager.session() as session:
            await SensitiveAccessLogRepository(session).add(record)
            await session.commit()
        logger.info(
            "sensitive_access_recorded",
            extra={
                "resource_type": record.resource_type.value,
                "resource_id": str(record.resource_id),
                "access_action": record.action.value,
            },
        )
