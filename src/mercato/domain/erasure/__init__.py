"""Mercato Domain Erasure: account deletion and anonymization workflow."""

from mercato.domain.erasure.anonymization import (
    AnonymizationExecutor,
    AnonymizationReport,
    anonymized_suffix,
)
from mercato.domain.erasure.audit import (
    AccountDeletionAuditLog,
    AuditAction,
    AuditTrailWriter,
    SensitiveAccessAction,
    SensitiveAccessRecord,
    SensitiveResourceType,
)
from mercato.domain.erasure.blocking import BlockingConditionEvaluator
from mercato.domain.erasure.impact import ImpactAssessor, ImpactSummary
from mercato.domain.erasure.ports import (
    DeletionRequestRepository,
    SensitiveAccessAuditLogger,
    UnitOfWork,
)
from mercato.domain.erasure.request import (
    AccountDeletionRequest,
    DeletionRequestStatus,
    Transition,
    TransitionRejected,
)
from mercato.domain.erasure.results import (
    AuditLogView,
    CancelDeletionResult,
    ConfirmDeletionResult,
    DeletionRequestView,
    FailureKind,
    RequestDeletionResult,
)
from mercato.domain.erasure.service import AccountDeletionService
from mercato.domain.erasure.settings import ErasureSettings, get_erasure_settings

__all__ = [
    "AccountDeletionAuditLog",
    "AccountDeletionRequest",
    "AccountDeletionService",
    "AnonymizationExecutor",
    "AnonymizationReport",
    "AuditAction",
    "AuditLogView",
    "AuditTrailWriter",
    "BlockingConditionEvaluator",
    "CancelDeletionResult",
    "ConfirmDeletionResult",
    "DeletionRequestRepository",
    "DeletionRequestStatus",
    "DeletionRequestView",
    "ErasureSettings",
    "FailureKind",
    "ImpactAssessor",
    "ImpactSummary",
    "RequestDeletionResult",
    "SensitiveAccessAction",
    "SensitiveAccessAuditLogger",
    "SensitiveAccessRecord",
    "SensitiveResourceType",
    "Transition",
    "TransitionRejected",
    "UnitOfWork",
    "anonymized_suffix",
    "get_erasure_settings",
]
