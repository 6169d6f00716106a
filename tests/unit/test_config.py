"""
Unit Tests - Configuration
"""
import logging

import pytest
import structlog
from pydantic import ValidationError

from src.config import Settings
from src.config.logging import configure_logging, round_amounts
from src.config.settings import BusinessSettings, DatabaseSettings, ProfitSharingSettings


class TestSettings:
    """Tests for settings defaults and validation"""

    def test_profit_sharing_defaults(self, test_settings):
        assert test_settings.app_env == "testing"
        assert test_settings.profit_sharing.default_partner == "basim"
        assert test_settings.profit_sharing.partners == ["yassir", "basim"]
        assert test_settings.profit_sharing.percentage_tolerance == 0.01

    def test_business_defaults(self):
        business = BusinessSettings()

        assert business.free_shipping_threshold == 200.0
        assert business.vat_rate == 15.0

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(app_env="moon")

    def test_non_positive_cache_ttl(self):
        with pytest.raises(ValidationError):
            ProfitSharingSettings(cache_ttl_seconds=0)

    def test_database_url_override(self):
        settings = DatabaseSettings(url="sqlite+aiosqlite:///:memory:")

        assert settings.get_url() == "sqlite+aiosqlite:///:memory:"

    def test_database_url_from_parts(self):
        settings = DatabaseSettings(host="db", port=5433, user="ledger", password="pw", db="books", url=None)

        assert settings.get_url() == "postgresql+asyncpg://ledger:pw@db:5433/books"


class TestLogging:
    """Tests for the log processors"""

    def test_round_amounts(self):
        event = {"event": "Order created", "total": 165.004999, "net_profit": 84.9999, "quantity": 3}

        result = round_amounts(None, "info", event)

        assert result["total"] == 165.0
        assert result["net_profit"] == 85.0
        assert result["quantity"] == 3

    def test_configure_logging_json(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        try:
            configure_logging(log_level="warning", log_format="json")

            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
        finally:
            structlog.reset_defaults()
            root.handlers = handlers
            root.setLevel(level)
