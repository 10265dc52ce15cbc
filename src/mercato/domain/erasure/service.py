"""Account deletion use cases.

:class:`AccountDeletionService` is the public entry point of the erasure
workflow. Each use case opens exactly one unit of work, reads all state
fresh, applies pure transitions, writes the audit trail through the same
unit of work and commits once. Business-rule violations come back as
result values; only unexpected faults propagate, after the unit of work
has rolled back.

Example:
    >>> service = create_account_deletion_service(marketplace_factory)
    >>> result = await service.request_deletion(user_id, ip_address="203.0.113.7")
    >>> if result.success:
    ...     await service.confirm_deletion(result.request.id, user_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from mercato.domain.erasure import request as transitions
from mercato.domain.erasure.audit import AuditAction
from mercato.domain.erasure.impact import USER_NOT_FOUND, ImpactSummary
from mercato.domain.erasure.request import TransitionRejected
from mercato.domain.erasure.results import (
    CONCURRENT_UPDATE,
    PERSISTENCE_FAILURE,
    AuditLogView,
    CancelDeletionResult,
    ConfirmDeletionResult,
    DeletionRequestView,
    FailureKind,
    RequestDeletionResult,
)
from mercato.domain.marketplace.accounts import UserRole
from mercato.foundation.domain.exceptions import ConflictError, PersistenceError
from mercato.infra.observability import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from mercato.domain.erasure.anonymization import AnonymizationExecutor
    from mercato.domain.erasure.audit import AuditTrailWriter
    from mercato.domain.erasure.blocking import BlockingConditionEvaluator
    from mercato.domain.erasure.impact import ImpactAssessor
    from mercato.domain.erasure.ports import UnitOfWork

logger = get_logger(__name__)

REQUEST_NOT_FOUND = "Deletion request not found."
INELIGIBLE_STATUS = "Account deletion is not available for this account status."
ALREADY_PENDING = "You already have a pending account deletion request."
NOT_OWNER_CONFIRM = "You can only confirm your own deletion request."
NOT_OWNER_CANCEL = "You can only cancel your own deletion request."

REQUESTED_NOTES = "User initiated account deletion request."
CONFIRMED_NOTES = "User confirmed account deletion."
CANCELLED_NOTES = "User cancelled account deletion request."


class AccountDeletionService:
    """Orchestrates impact, request, confirm and cancel for account erasure.

    Stateless between calls; safe to share across concurrent tasks.

    Attributes:
        _uow_factory: Creates a fresh unit of work per use case.
        _evaluator: Sole authority on blocking conditions.
        _assessor: Builds the impact disclosure.
        _executor: Performs the anonymization.
        _audit: Writes the deletion audit trail and the compliance record.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        evaluator: BlockingConditionEvaluator,
        assessor: ImpactAssessor,
        executor: AnonymizationExecutor,
        audit_writer: AuditTrailWriter,
    ) -> None:
        self._uow_factory = uow_factory
        self._evaluator = evaluator
        self._assessor = assessor
        self._executor = executor
        self._audit = audit_writer

    async def get_impact(self, user_id: UUID) -> ImpactSummary:
        """Preview what erasing ``user_id`` would do. Reads only.

        Returns:
            The impact summary, or a blocked "user not found" summary with
            zero counts when the user does not exist.
        """
        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
            if user is None:
                return ImpactSummary.user_not_found()
            return await self._assessor.assess(user, uow)

    async def request_deletion(
        self,
        user_id: UUID,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> RequestDeletionResult:
        """Open a PENDING deletion request for ``user_id``.

        Fails without any state change when the user is missing, not
        eligible, already has an active request, or has blocking
        conditions. A blocked outcome carries the impact summary and the
        reasons; no request row is created for it.

        Returns:
            RequestDeletionResult describing the outcome.
        """
        logger.info("account_deletion_requested", user_id=str(user_id))

        try:
            async with self._uow_factory() as uow:
                user = await uow.users.get_by_id(user_id)
                if user is None:
                    logger.warning("account_deletion_user_not_found", user_id=str(user_id))
                    return RequestDeletionResult.failed(FailureKind.NOT_FOUND, USER_NOT_FOUND)

                if not user.can_request_deletion():
                    logger.warning(
                        "account_deletion_ineligible",
                        user_id=str(user_id),
                        status=user.status.value,
                    )
                    return RequestDeletionResult.failed(FailureKind.INELIGIBLE, INELIGIBLE_STATUS)

                if await uow.deletion_requests.has_active_request(user_id):
                    return RequestDeletionResult.failed(
                        FailureKind.ALREADY_PENDING, ALREADY_PENDING
                    )

                impact = await self._assessor.assess(user, uow)
                if not impact.can_delete:
                    logger.warning(
                        "account_deletion_blocked",
                        user_id=str(user_id),
                        conditions=impact.blocking_conditions,
                    )
                    return RequestDeletionResult.blocked(impact)

                opened = transitions.open_request(user_id, ip_address, user_agent)
                request = opened.request
                await uow.deletion_requests.add(request)

                await self._audit.append(
                    uow,
                    request_id=request.id,
                    affected_user_id=user_id,
                    triggered_by_user_id=user_id,
                    role=user.role,
                    action=opened.action,
                    notes=REQUESTED_NOTES,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
                await self._audit.append(
                    uow,
                    request_id=request.id,
                    affected_user_id=user_id,
                    triggered_by_user_id=user_id,
                    role=user.role,
                    action=AuditAction.IMPACT_DISPLAYED,
                    notes=(
                        f"Impact: {impact.order_count} orders, {impact.review_count} reviews, "
                        f"{impact.address_count} addresses will be anonymized."
                    ),
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
                await uow.commit()
        except ConflictError as exc:
            # Lost the race on the one-Pending-per-user index.
            logger.warning(
                "account_deletion_request_conflict", user_id=str(user_id), error=str(exc)
            )
            return RequestDeletionResult.failed(FailureKind.ALREADY_PENDING, ALREADY_PENDING)
        except PersistenceError:
            logger.exception("account_deletion_request_persistence_failed", user_id=str(user_id))
            return RequestDeletionResult.failed(FailureKind.PERSISTENCE, PERSISTENCE_FAILURE)

        logger.info(
            "account_deletion_request_created",
            deletion_request_id=str(request.id),
            user_id=str(user_id),
        )
        return RequestDeletionResult.succeeded(DeletionRequestView.from_request(request), impact)

    async def confirm_deletion(
        self,
        request_id: UUID,
        user_id: UUID,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> ConfirmDeletionResult:
        """Confirm a PENDING request and irreversibly anonymize the account.

        Blocking conditions are evaluated again. If any exist the request
        moves to BLOCKED, the reasons are audited and committed, and no
        anonymization happens. Otherwise the request is claimed as
        CONFIRMED, the account is anonymized and the request is COMPLETED,
        all in one commit. The compliance record is emitted once, after
        that commit.

        Returns:
            ConfirmDeletionResult describing the outcome.
        """
        logger.info(
            "account_deletion_confirmation",
            deletion_request_id=str(request_id),
            user_id=str(user_id),
        )

        try:
            async with self._uow_factory() as uow:
                request = await uow.deletion_requests.get_by_id(request_id)
                if request is None:
                    logger.warning(
                        "account_deletion_request_not_found", deletion_request_id=str(request_id)
                    )
                    return ConfirmDeletionResult.failed(FailureKind.NOT_FOUND, REQUEST_NOT_FOUND)

                if not request.is_owned_by(user_id):
                    logger.warning(
                        "account_deletion_owner_mismatch",
                        deletion_request_id=str(request_id),
                        user_id=str(user_id),
                    )
                    return ConfirmDeletionResult.failed(FailureKind.FORBIDDEN, NOT_OWNER_CONFIRM)

                confirmed = transitions.confirm(request)
                if isinstance(confirmed, TransitionRejected):
                    return ConfirmDeletionResult.failed(
                        FailureKind.INVALID_STATE, confirmed.message
                    )

                user = await uow.users.get_by_id(user_id)
                if user is None:
                    return ConfirmDeletionResult.failed(FailureKind.NOT_FOUND, USER_NOT_FOUND)

                conditions = await self._evaluator.evaluate(user, uow)
                if conditions:
                    reason = "; ".join(conditions)
                    blocked = transitions.block(request, reason)
                    assert not isinstance(blocked, TransitionRejected), (
                        "Pending request is blockable"
                    )
                    await uow.deletion_requests.update(blocked.request)
                    await self._audit.append(
                        uow,
                        request_id=request.id,
                        affected_user_id=user_id,
                        triggered_by_user_id=user_id,
                        role=user.role,
                        action=blocked.action,
                        notes=f"Blocking conditions: {reason}",
                        ip_address=ip_address,
                        user_agent=user_agent,
                    )
                    await uow.commit()
                    logger.warning(
                        "account_deletion_blocked_at_confirmation",
                        deletion_request_id=str(request.id),
                        conditions=conditions,
                    )
                    return ConfirmDeletionResult.blocked(conditions)

                # Claim the row first so a concurrent cancel loses the version race.
                claimed = await uow.deletion_requests.update(confirmed.request)
                await self._audit.append(
                    uow,
                    request_id=request.id,
                    affected_user_id=user_id,
                    triggered_by_user_id=user_id,
                    role=user.role,
                    action=confirmed.action,
                    notes=CONFIRMED_NOTES,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )

                report = await self._executor.anonymize(user, claimed, uow)

                completed = transitions.complete(claimed)
                assert not isinstance(completed, TransitionRejected), (
                    "Claimed request is completable"
                )
                await uow.deletion_requests.update(completed.request)
                await self._audit.append(
                    uow,
                    request_id=request.id,
                    affected_user_id=user_id,
                    triggered_by_user_id=user_id,
                    role=user.role,
                    action=completed.action,
                    notes=report.as_notes(),
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
                await uow.commit()
                role = user.role
        except ConflictError as exc:
            logger.warning(
                "account_deletion_confirm_conflict",
                deletion_request_id=str(request_id),
                error=str(exc),
            )
            return ConfirmDeletionResult.failed(
                FailureKind.CONFLICT, CONCURRENT_UPDATE, retryable=True
            )
        except PersistenceError:
            logger.exception(
                "account_deletion_confirm_persistence_failed",
                deletion_request_id=str(request_id),
            )
            return ConfirmDeletionResult.failed(
                FailureKind.PERSISTENCE, PERSISTENCE_FAILURE, retryable=True
            )

        logger.info(
            "account_deletion_completed",
            deletion_request_id=str(request_id),
            user_id=str(user_id),
        )

        compliance_recorded = await self._audit.record_sensitive_access(
            user_id=user_id,
            role=role,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return ConfirmDeletionResult.succeeded(compliance_recorded=compliance_recorded)

    async def cancel_deletion(self, request_id: UUID, user_id: UUID) -> CancelDeletionResult:
        """Cancel a PENDING request owned by ``user_id``. No user data is touched.

        Returns:
            CancelDeletionResult describing the outcome.
        """
        logger.info(
            "account_deletion_cancellation",
            deletion_request_id=str(request_id),
            user_id=str(user_id),
        )

        try:
            async with self._uow_factory() as uow:
                request = await uow.deletion_requests.get_by_id(request_id)
                if request is None:
                    return CancelDeletionResult.failed(FailureKind.NOT_FOUND, REQUEST_NOT_FOUND)

                if not request.is_owned_by(user_id):
                    logger.warning(
                        "account_deletion_owner_mismatch",
                        deletion_request_id=str(request_id),
                        user_id=str(user_id),
                    )
                    return CancelDeletionResult.failed(FailureKind.FORBIDDEN, NOT_OWNER_CANCEL)

                cancelled = transitions.cancel(request)
                if isinstance(cancelled, TransitionRejected):
                    return CancelDeletionResult.failed(FailureKind.INVALID_STATE, cancelled.message)

                await uow.deletion_requests.update(cancelled.request)

                user = await uow.users.get_by_id(user_id)
                await self._audit.append(
                    uow,
                    request_id=request.id,
                    affected_user_id=user_id,
                    triggered_by_user_id=user_id,
                    role=user.role if user is not None else UserRole.BUYER,
                    action=cancelled.action,
                    notes=CANCELLED_NOTES,
                )
                await uow.commit()
        except ConflictError as exc:
            logger.warning(
                "account_deletion_cancel_conflict",
                deletion_request_id=str(request_id),
                error=str(exc),
            )
            return CancelDeletionResult.failed(
                FailureKind.CONFLICT, CONCURRENT_UPDATE, retryable=True
            )
        except PersistenceError:
            logger.exception(
                "account_deletion_cancel_persistence_failed",
                deletion_request_id=str(request_id),
            )
            return CancelDeletionResult.failed(
                FailureKind.PERSISTENCE, PERSISTENCE_FAILURE, retryable=True
            )

        logger.info("account_deletion_cancelled", deletion_request_id=str(request_id))
        return CancelDeletionResult.succeeded()

    async def get_pending_request(self, user_id: UUID) -> DeletionRequestView | None:
        """The PENDING request of ``user_id``, if any."""
        async with self._uow_factory() as uow:
            request = await uow.deletion_requests.get_pending_by_user_id(user_id)
        return DeletionRequestView.from_request(request) if request is not None else None

    async def get_requests(self, user_id: UUID) -> list[DeletionRequestView]:
        """All requests of ``user_id``, newest first."""
        async with self._uow_factory() as uow:
            requests = await uow.deletion_requests.get_by_user_id(user_id)
        return [DeletionRequestView.from_request(r) for r in requests]

    async def get_audit_logs(
        self,
        *,
        request_id: UUID | None = None,
        user_id: UUID | None = None,
    ) -> list[AuditLogView]:
        """Audit rows by request, or by user when no request id is given.

        ``request_id`` takes precedence. With neither argument the result
        is empty.
        """
        if request_id is None and user_id is None:
            return []
        async with self._uow_factory() as uow:
            if request_id is not None:
                entries = await uow.deletion_requests.get_audit_logs_for_request(request_id)
            else:
                entries = await uow.deletion_requests.get_audit_logs_by_user_id(user_id)
        return [AuditLogView.from_entry(e) for e in entries]
