"""Configuration tests"""
import logging

import pytest
from pydantic import ValidationError

from payment_webhooks.core.config import Settings


@pytest.mark.medium
class TestSettings:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_SECRET", "from-env")
        monkeypatch.setenv("WEBHOOK_TIMESTAMP_TOLERANCE", "120")
        monkeypatch.setenv("REQUIRE_WEBHOOK_TIMESTAMP", "true")

        settings = Settings()
        assert settings.WEBHOOK_SECRET == "from-env"
        assert settings.WEBHOOK_TIMESTAMP_TOLERANCE == 120
        assert settings.REQUIRE_WEBHOOK_TIMESTAMP is True

    def test_defaults(self, monkeypatch):
        for name in ("WEBHOOK_TIMESTAMP_TOLERANCE", "REQUIRE_WEBHOOK_TIMESTAMP", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()
        assert settings.WEBHOOK_TIMESTAMP_TOLERANCE == 300
        assert settings.REQUIRE_WEBHOOK_TIMESTAMP is False
        assert settings.LOG_LEVEL == "INFO"

    @pytest.mark.parametrize("tolerance", ["0", "-5"])
    def test_tolerance_must_be_positive(self, monkeypatch, tolerance):
        monkeypatch.setenv("WEBHOOK_TIMESTAMP_TOLERANCE", tolerance)
        with pytest.raises(ValidationError):
            Settings()

    def test_empty_secret_is_logged(self, monkeypatch, caplog):
        monkeypatch.setenv("WEBHOOK_SECRET", "")
        with caplog.at_level(logging.ERROR, logger="config"):
            settings = Settings()

        assert settings.WEBHOOK_SECRET == ""
        assert any("WEBHOOK_SECRET" in record.getMessage() for record in caplog.records)
