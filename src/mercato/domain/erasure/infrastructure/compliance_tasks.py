"""Queued compliance channel backed by TaskIQ.

:class:`QueuedSensitiveAccessAuditLogger` hands the record to the broker and
returns; the worker task writes it with the direct logger. The task is
labelled ``retry_on_error`` so the retry middleware re-delivers it when
the write fails, giving the compliance subsystem its own retries.

Start a worker with:
    taskiq worker mercato.infra.taskiq.broker:broker \
        mercato.domain.erasure.infrastructure.compliance_tasks
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from mercato.domain.erasure.audit import (
    SensitiveAccessAction,
    SensitiveAccessRecord,
    SensitiveResourceType,
)
from mercato.domain.erasure.infrastructure.sensitive_access_log import (
    DirectSensitiveAccessAuditLogger,
)
from mercato.domain.marketplace.accounts import UserRole
from mercato.infra.persistence.database import get_database_manager
from mercato.infra.taskiq import broker

logger = logging.getLogger(__name__)

RECORD_SENSITIVE_ACCESS_TASK = "mercato.erasure.record_sensitive_access"


class SensitiveAccessPayload(BaseModel):
    """Wire form of a :class:`SensitiveAccessRecord` on the task queue."""

    model_config = ConfigDict(frozen=True)

    accessed_by_user_id: UUID
    accessed_by_role: UserRole
    resource_type: SensitiveResourceType
    resource_id: UUID
    action: SensitiveAccessAction
    resource_owner_id: UUID
    reason: str
    ip_address: str | None = None
    user_agent: str | None = None
    occurred_at: datetime

    @classmethod
    def from_record(cls, record: SensitiveAccessRecord) -> SensitiveAccessPayload:
        return cls(
            accessed_by_user_id=record.accessed_by_user_id,
            accessed_by_role=record.accessed_by_role,
            resource_type=record.resource_type,
            resource_id=record.resource_id,
            action=record.action,
            resource_owner_id=record.resource_owner_id,
            reason=record.reason,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
            occurred_at=record.occurred_at,
        )

    def to_record(self) -> SensitiveAccessRecord:
        return SensitiveAccessRecord(
            accessed_by_user_id=self.accessed_by_user_id,
            accessed_by_role=self.accessed_by_role,
            resource_type=self.resource_type,
            resource_id=self.resource_id,
            action=self.action,
            resource_owner_id=self.resource_owner_id,
            reason=self.reason,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            occurred_at=self.occurred_at,
        )


@broker.task(task_name=RECORD_SENSITIVE_ACCESS_TASK, retry_on_error=True)
async def record_sensitive_access(payload: dict[str, Any]) -> None:
    """Worker side: persist one queued compliance record."""
    record = SensitiveAccessPayload.model_validate(payload).to_record()
    await DirectSensitiveAccessAuditLogger(get_database_manager()).log_sensitive_access(record)


class QueuedSensitiveAccessAuditLogger:
    """Enqueues compliance records instead of writing them inline.

    A broker failure propagates to the caller, which reports it without
    undoing the erasure.
    """

    async def log_sensitive_access(self, record: SensitiveAccessRecord) -> None:
        payload = SensitiveAccessPayload.from_record(record).model_dump(mode="json")
        task = await record_sensitive_access.kiq(payload)
        logger.info(
            "sensitive_access_enqueued",
            extra={"task_id": task.task_id, "resource_id": str(record.resource_id)},
        )
