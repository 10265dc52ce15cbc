"""Unit tests for ErasureSettings and TaskIQSettings."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from mercato.domain.erasure.settings import ErasureSettings, get_erasure_settings
from mercato.infra.taskiq.settings import TaskIQSettings, get_taskiq_settings


class TestErasureSettings:
    @pytest.mark.unit
    def test_default_values(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            settings = ErasureSettings()
            assert settings.anonymized_email_domain == "deleted.invalid"
            assert settings.deleted_user_label == "Deleted User"
            assert settings.compliance_audit_enabled is True
            assert settings.compliance_audit_mode == "direct"

    @pytest.mark.unit
    def test_custom_values_from_env(self) -> None:
        env = {
            "ERASURE_ANONYMIZED_EMAIL_DOMAIN": "  @Erased.Example.ORG ",
            "ERASURE_DELETED_USER_LABEL": "Former customer",
            "ERASURE_COMPLIANCE_AUDIT_ENABLED": "false",
            "ERASURE_COMPLIANCE_AUDIT_MODE": "queued",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = ErasureSettings()
            assert settings.anonymized_email_domain == "erased.example.org"
            assert settings.deleted_user_label == "Former customer"
            assert settings.compliance_audit_enabled is False
            assert settings.compliance_audit_mode == "queued"

    @pytest.mark.unit
    @pytest.mark.parametrize("domain", ["", "localhost", "@"])
    def test_rejects_undotted_domain(self, domain: str) -> None:
        with (
            patch.dict("os.environ", {"ERASURE_ANONYMIZED_EMAIL_DOMAIN": domain}, clear=True),
            pytest.raises(ValidationError, match="dotted domain name"),
        ):
            ErasureSettings()

    @pytest.mark.unit
    def test_rejects_unknown_mode(self) -> None:
        with (
            patch.dict("os.environ", {"ERASURE_COMPLIANCE_AUDIT_MODE": "carrier-pigeon"}, clear=True),
            pytest.raises(ValidationError),
        ):
            ErasureSettings()

    @pytest.mark.unit
    def test_rejects_empty_label(self) -> None:
        with (
            patch.dict("os.environ", {"ERASURE_DELETED_USER_LABEL": ""}, clear=True),
            pytest.raises(ValidationError),
        ):
            ErasureSettings()

    @pytest.mark.unit
    def test_cached_singleton(self) -> None:
        get_erasure_settings.cache_clear()
        try:
            with patch.dict("os.environ", {}, clear=True):
                assert get_erasure_settings() is get_erasure_settings()
        finally:
            get_erasure_settings.cache_clear()


class TestTaskIQSettings:
    @pytest.mark.unit
    def test_default_values(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            settings = TaskIQSettings()
            assert settings.redis_url == "redis://localhost:6379/1"
            assert settings.result_ttl == 3600
            assert settings.queue_name == "mercato"
            assert settings.max_retries == 5

    @pytest.mark.unit
    def test_custom_values_from_env(self) -> None:
        env = {
            "TASKIQ_REDIS_URL": "redis://queue:6379/3",
            "TASKIQ_RESULT_TTL": "120",
            "TASKIQ_QUEUE_NAME": "compliance",
            "TASKIQ_MAX_RETRIES": "0",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = TaskIQSettings()
            assert settings.redis_url == "redis://queue:6379/3"
            assert settings.result_ttl == 120
            assert settings.queue_name == "compliance"
            assert settings.max_retries == 0

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("key", "value"),
        [("TASKIQ_RESULT_TTL", "30"), ("TASKIQ_MAX_RETRIES", "51"), ("TASKIQ_QUEUE_NAME", "")],
    )
    def test_out_of_range_rejected(self, key: str, value: str) -> None:
        with patch.dict("os.environ", {key: value}, clear=True), pytest.raises(ValidationError):
            TaskIQSettings()

    @pytest.mark.unit
    def test_cached_singleton(self) -> None:
        get_taskiq_settings.cache_clear()
        try:
            with patch.dict("os.environ", {}, clear=True):
                assert get_taskiq_settings() is get_taskiq_settings()
        finally:
            get_taskiq_settings.cache_clear()
