"""Runtime settings, read from ``BOOKING_*`` environment variables or ``.env``."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the default data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


class EngineSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BOOKING_",
        env_file=".env",
        extra="ignore",
    )

    data_dir: Path = _DEFAULT_DATA_DIR
    reference_prefix: str = "BK"
    default_currency: str = "NPR"
    default_vat_rate: Decimal = Decimal("13")
    overpayment_tolerance: Decimal = Decimal("0.01")
    max_conflict_retries: int = 3
    admin_ids: str = ""
    log_level: str = "WARNING"

    @property
    def admins(self) -> frozenset[str]:
        return frozenset(a.strip() for a in self.admin_ids.split(",") if a.strip())


def load_settings() -> EngineSettings:
    return EngineSettings()
