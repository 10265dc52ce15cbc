"""SQL adapters for the account erasure workflow.

The queued compliance channel lives in
:mod:`mercato.domain.erasure.infrastructure.compliance_tasks` and is not
imported here, because importing it registers a task on the broker.
"""

from mercato.domain.erasure.infrastructure.deletion_request_repository import (
    SqlDeletionRequestRepository,
)
from mercato.domain.erasure.infrastructure.sensitive_access_log import (
    DirectSensitiveAccessAuditLogger,
    SensitiveAccessLogRepository,
)
from mercato.domain.erasure.infrastructure.unit_of_work import (
    MarketplaceRepositories,
    MarketplaceRepositoryFactory,
    SqlUnitOfWork,
)

__all__ = [
    "DirectSensitiveAccessAuditLogger",
    "MarketplaceRepositories",
    "MarketplaceRepositoryFactory",
    "SensitiveAccessLogRepository",
    "SqlDeletionRequestRepository",
    "SqlUnitOfWork",
]
