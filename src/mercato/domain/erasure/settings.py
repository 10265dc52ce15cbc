"""Account erasure configuration using Pydantic settings.

Settings are loaded from environment variables with ``ERASURE_`` prefix.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ErasureSettings(BaseSettings):
    """Configuration for the account deletion workflow.

    Environment Variables:
        ERASURE_ANONYMIZED_EMAIL_DOMAIN: Domain for scrubbed emails
            (default: deleted.invalid, a reserved non-routable TLD)
        ERASURE_DELETED_USER_LABEL: Attribution for anonymized reviews
            (default: Deleted User)
        ERASURE_COMPLIANCE_AUDIT_ENABLED: Emit sensitive-access records
            (default: true)
        ERASURE_COMPLIANCE_AUDIT_MODE: ``direct`` writes the record after
            commit; ``queued`` hands it to the TaskIQ worker (default: direct)

    Example:
        >>> settings = ErasureSettings()
        >>> settings.anonymized_email_domain
        'deleted.invalid'
    """

    model_config = SettingsConfigDict(
        env_prefix="ERASURE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    anonymized_email_domain: str = Field(
        default="deleted.invalid",
        description="Domain used for scrubbed email addresses",
    )
    deleted_user_label: str = Field(
        default="Deleted User",
        min_length=1,
        max_length=64,
        description="Attribution shown on anonymized reviews",
    )
    compliance_audit_enabled: bool = Field(
        default=True,
        description="Emit a sensitive-access record for every completed erasure",
    )
    compliance_audit_mode: Literal["direct", "queued"] = Field(
        default="direct",
        description="How the compliance record is delivered",
    )

    @field_validator("anonymized_email_domain", mode="before")
    @classmethod
    def normalize_domain(cls, v: object) -> str:
        """Strip whitespace, a leading '@' and lowercase the domain."""
        return str(v).strip().lstrip("@").lower()

    @field_validator("anonymized_email_domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        if not v or "." not in v:
            msg = f"anonymized_email_domain must be a dotted domain name, got '{v}'"
            raise ValueError(msg)
        return v


@lru_cache(maxsize=1)
def get_erasure_settings() -> ErasureSettings:
    """Get cached erasure settings singleton.

    Clear cache with ``get_erasure_settings.cache_clear()`` for testing.
    """
    return ErasureSettings()
