"""User account entities owned by the identity subsystem.

Only the attributes and mutators the erasure workflow relies on are
modelled here. Persistence lives with the owning subsystem behind the
repository ports in :mod:`mercato.domain.marketplace.ports`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID


class UserRole(StrEnum):
    """Marketplace roles. Uses StrEnum for native JSON serialization."""

    BUYER = "Buyer"
    SELLER = "Seller"
    ADMIN = "Admin"
    SUPPORT = "Support"
    COMPLIANCE = "Compliance"


class UserStatus(StrEnum):
    """Account lifecycle states.

        UNVERIFIED -> VERIFIED -> SUSPENDED
                          |
                          v
                       DELETED (terminal, reached through anonymization)
    """

    UNVERIFIED = "Unverified"
    VERIFIED = "Verified"
    SUSPENDED = "Suspended"
    DELETED = "Deleted"


@dataclass
class User:
    """Marketplace user account.

    Attributes:
        id: User identifier.
        email: Login email (scrubbed on anonymization).
        first_name: Given name (scrubbed on anonymization).
        last_name: Family name (scrubbed on anonymization).
        role: Marketplace role.
        status: Account lifecycle state.
        password_hash: Local credential hash, ``None`` for social logins.
        anonymized_at: When personal data was scrubbed, set at most once.
    """

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole = UserRole.BUYER
    status: UserStatus = UserStatus.VERIFIED
    password_hash: str | None = None
    anonymized_at: datetime | None = None

    @property
    def is_anonymized(self) -> bool:
        return self.anonymized_at is not None

    def can_request_deletion(self) -> bool:
        """Suspended and already-deleted accounts cannot open an erasure request."""
        return self.status not in (UserStatus.SUSPENDED, UserStatus.DELETED)

    def anonymize(
        self,
        suffix: str,
        email_domain: str,
        at: datetime | None = None,
    ) -> None:
        """Irreversibly scrub personally identifying fields.

        The replacement values are derived only from the user id, so running
        this twice leaves the account unchanged the second time.

        Args:
            suffix: Deterministic short identifier derived from the user id.
            email_domain: Non-routable domain for the scrubbed email.
            at: Timestamp to record; defaults to now (UTC).

        Raises:
            ValueError: If suffix or email_domain is blank.
        """
        if not suffix.strip():
            msg = "Anonymized suffix cannot be empty"
            raise ValueError(msg)
        if not email_domain.strip():
            msg = "Anonymized email domain cannot be empty"
            raise ValueError(msg)

        self.email = f"deleted-{self.id.hex}@{email_domain}"
        self.first_name = "Deleted"
        self.last_name = f"User {suffix}"
        self.password_hash = None
        self.status = UserStatus.DELETED
        if self.anonymized_at is None:
            self.anonymized_at = at or datetime.now(UTC)


@dataclass
class UserSession:
    """Authenticated session. Revoked sessions are kept for security auditing."""

    id: UUID
    user_id: UUID
    expires_at: datetime
    revoked_at: datetime | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    @property
    def is_valid(self) -> bool:
        return not self.is_revoked and datetime.now(UTC) < self.expires_at

    def revoke(self, at: datetime | None = None) -> None:
        """Revoke the session. Idempotent: a revoked session keeps its timestamp."""
        if self.is_revoked:
            return
        self.revoked_at = at or datetime.now(UTC)
