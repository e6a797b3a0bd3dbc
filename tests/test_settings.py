"""
Tests for settings and logging setup
"""
import logging

import pytest
from pydantic import ValidationError

from config import logging_config
from config.logging_config import audit, audit_logger
from config.settings import Settings
from core.money import format_gnf


class TestSettings:
    """Test environment-driven configuration"""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.DEFAULT_FREE_DAYS == 7
        assert settings.DEFAULT_DESTINATION == "Conakry, GN"
        assert settings.CURRENCY == "GNF"
        assert settings.STRICT_PROVISION_BALANCE is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_FREE_DAYS", "10")
        monkeypatch.setenv("STRICT_PROVISION_BALANCE", "true")

        settings = Settings(_env_file=None)
        assert settings.DEFAULT_FREE_DAYS == 10
        assert settings.STRICT_PROVISION_BALANCE is True

    def test_negative_free_days_rejected(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_FREE_DAYS", "-1")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


class TestAuditTrail:
    """Test the audit logger"""

    def test_audit_entry(self, caplog):
        with caplog.at_level(logging.INFO, logger=audit_logger.name):
            audit("Paiement Liquidation", "u-compta (Comptable)", shipment_id="abc", amount=5000000)

        record = caplog.records[-1]
        assert record.name == "audit"
        assert record.getMessage().startswith("AUDIT_TRAIL: Paiement Liquidation")
        assert "'user': 'u-compta (Comptable)'" in record.getMessage()
        assert "'shipment_id': 'abc'" in record.getMessage()

    def test_system_user(self, caplog):
        with caplog.at_level(logging.INFO, logger=audit_logger.name):
            audit("Création Dossier")
        assert "'user': 'SYSTEM'" in caplog.records[-1].getMessage()


class TestMoneyFormat:
    def test_groups_thousands(self):
        assert format_gnf(6_000_000) == "6\u202f000\u202f000"
        assert format_gnf(950) == "950"


class TestSetupLogging:
    def test_audit_file_handler(self, monkeypatch, tmp_path):
        path = tmp_path / "logs" / "audit.log"
        monkeypatch.setattr(logging_config.settings, "AUDIT_LOG_FILE", str(path))
        monkeypatch.setattr(logging_config.settings, "LOG_FILE", None)
        monkeypatch.setattr(audit_logger, "handlers", [])

        logging_config.setup_logging("debug")
        audit("Dossier Créé", "u-dg (DG / Admin)", id="abc")
        for handler in audit_logger.handlers:
            handler.flush()
            handler.close()

        content = path.read_text(encoding="utf-8")
        assert "| AUDIT | AUDIT_TRAIL: Dossier Créé" in content
