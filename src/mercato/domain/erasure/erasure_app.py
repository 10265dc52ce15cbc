"""Composition root for the account erasure workflow.

Wires settings, the database manager, the unit of work and the compliance
channel into an :class:`AccountDeletionService`. Created once at startup
and shared; the service itself holds no per-request state.

Usage:
    await initialize_erasure()
    service = create_account_deletion_service(marketplace_factory)
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

from sqlalchemy import text

from mercato.domain.erasure.anonymization import AnonymizationExecutor
from mercato.domain.erasure.audit import AuditTrailWriter
from mercato.domain.erasure.blocking import BlockingConditionEvaluator
from mercato.domain.erasure.impact import ImpactAssessor
from mercato.domain.erasure.infrastructure.deletion_request_repository import (
    SqlDeletionRequestRepository,
)
from mercato.domain.erasure.infrastructure.sensitive_access_log import (
    DirectSensitiveAccessAuditLogger,
    SensitiveAccessLogRepository,
)
from mercato.domain.erasure.infrastructure.unit_of_work import SqlUnitOfWork
from mercato.domain.erasure.service import AccountDeletionService
from mercato.domain.erasure.settings import get_erasure_settings
from mercato.infra.observability import configure_logging
from mercato.infra.persistence.database import get_database_manager

if TYPE_CHECKING:
    from mercato.domain.erasure.infrastructure.unit_of_work import MarketplaceRepositoryFactory
    from mercato.domain.erasure.ports import SensitiveAccessAuditLogger
    from mercato.domain.erasure.settings import ErasureSettings
    from mercato.infra.observability import LoggingSettings
    from mercato.infra.persistence.database import DatabaseManager

logger = logging.getLogger(__name__)


def build_compliance_logger(
    settings: ErasureSettings,
    database_manager: DatabaseManager,
) -> SensitiveAccessAuditLogger | None:
    """Select the compliance channel configured by ``settings``.

    Returns:
        ``None`` when the channel is disabled, otherwise the direct or
        queued logger.
    """
    if not settings.compliance_audit_enabled:
        return None
    if settings.compliance_audit_mode == "queued":
        # Importing registers the worker task on the broker.
        from mercato.domain.erasure.infrastructure.compliance_tasks import (
            QueuedSensitiveAccessAuditLogger,
        )

        return QueuedSensitiveAccessAuditLogger()
    return DirectSensitiveAccessAuditLogger(database_manager)


def create_account_deletion_service(
    marketplace_factory: MarketplaceRepositoryFactory,
    *,
    settings: ErasureSettings | None = None,
    database_manager: DatabaseManager | None = None,
    compliance_logger: SensitiveAccessAuditLogger | None = None,
) -> AccountDeletionService:
    """Build the deletion service backed by SQLAlchemy.

    Args:
        marketplace_factory: Binds the marketplace repositories to the unit
            of work's session.
        settings: Erasure settings. Loaded from the environment if omitted.
        database_manager: Engine owner. The default singleton if omitted.
        compliance_logger: Overrides the channel selected from settings.

    Returns:
        A ready-to-use AccountDeletionService.
    """
    settings = settings or get_erasure_settings()
    database_manager = database_manager or get_database_manager()
    if compliance_logger is None:
        compliance_logger = build_compliance_logger(settings, database_manager)

    evaluator = BlockingConditionEvaluator()
    service = AccountDeletionService(
        uow_factory=partial(
            SqlUnitOfWork, database_manager.get_session_factory(), marketplace_factory
        ),
        evaluator=evaluator,
        assessor=ImpactAssessor(evaluator, deleted_user_label=settings.deleted_user_label),
        executor=AnonymizationExecutor(
            email_domain=settings.anonymized_email_domain,
            deleted_user_label=settings.deleted_user_label,
        ),
        audit_writer=AuditTrailWriter(compliance_logger),
    )
    logger.info(
        "account_deletion_service_created",
        extra={
            "compliance_audit_enabled": compliance_logger is not None,
            "compliance_audit_mode": settings.compliance_audit_mode,
        },
    )
    return service


async def initialize_erasure(
    database_manager: DatabaseManager | None = None,
    logging_settings: LoggingSettings | None = None,
) -> None:
    """Startup hook: configure logging, check the database, ensure tables.

    Idempotent; safe to run on every process start.
    """
    configure_logging(logging_settings)
    database_manager = database_manager or get_database_manager()

    async with database_manager.get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("erasure_startup: database health check passed")

    async with database_manager.session() as session:
        await SqlDeletionRequestRepository.ensure_tables_exist(session)
    async with database_manager.session() as session:
        await SensitiveAccessLogRepository.ensure_table_exists(session)
