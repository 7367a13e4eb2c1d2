"""Tests for environment-driven settings."""

from decimal import Decimal
from pathlib import Path

from booking_engine.infrastructure import bootstrap
from booking_engine.infrastructure.config import EngineSettings


class TestEngineSettings:

    def test_defaults(self, monkeypatch):
        for name in ("BOOKING_DATA_DIR", "BOOKING_ADMIN_IDS", "BOOKING_DEFAULT_VAT_RATE"):
            monkeypatch.delenv(name, raising=False)
        cfg = EngineSettings(_env_file=None)
        assert cfg.reference_prefix == "BK"
        assert cfg.default_currency == "NPR"
        assert cfg.default_vat_rate == Decimal("13")
        assert cfg.overpayment_tolerance == Decimal("0.01")
        assert cfg.max_conflict_retries == 3
        assert cfg.admins == frozenset()

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BOOKING_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("BOOKING_DEFAULT_VAT_RATE", "0")
        monkeypatch.setenv("BOOKING_ADMIN_IDS", " admin ,ops,, ")
        cfg = EngineSettings(_env_file=None)
        assert cfg.data_dir == Path(tmp_path)
        assert cfg.default_vat_rate == Decimal("0")
        assert cfg.admins == frozenset({"admin", "ops"})

    def test_bootstrap_resolves_admins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BOOKING_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("BOOKING_ADMIN_IDS", "admin")
        bootstrap.settings.cache_clear()
        try:
            assert bootstrap.actor("admin").is_admin
            assert not bootstrap.actor("u1").is_admin
            bootstrap.booking_repository()
            assert (tmp_path / "bookings.json").exists()
        finally:
            bootstrap.settings.cache_clear()
