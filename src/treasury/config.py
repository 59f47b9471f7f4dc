"""Configuration for the treasury engine.

Settings are read from environment variables prefixed with ``TREASURY_`` and
from an optional ``.env`` file.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TreasurySettings(BaseSettings):
    """Tunable thresholds and paths for the engine."""

    model_config = SettingsConfigDict(
        env_prefix="TREASURY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_path: Optional[str] = Field(
        default=None,
        description="Path to the SQLite ledger (defaults to ~/.treasury/treasury.db)",
    )

    # Matching
    review_threshold: Decimal = Field(
        default=Decimal("0.6"),
        ge=0,
        le=Decimal("1.3"),
        description="Minimum score for a pair to be shown as a candidate",
    )
    auto_accept_threshold: Decimal = Field(
        default=Decimal("0.8"),
        ge=0,
        le=Decimal("1.3"),
        description="Minimum score for a pair to be reconciled without review",
    )
    amount_tolerance: Decimal = Field(
        default=Decimal("0.50"),
        ge=0,
        description="Maximum absolute amount difference between event and movement",
    )
    date_window_days: int = Field(
        default=3,
        ge=0,
        description="Maximum distance in days between predicted and booked date",
    )

    # Projections and recommendations
    projection_horizon_days: int = Field(default=30, ge=1)
    default_minimum_balance: Decimal = Field(
        default=Decimal("200"),
        description="Minimum balance used for accounts without their own threshold",
    )
    transfer_rounding: Decimal = Field(
        default=Decimal("100"),
        gt=0,
        description="Suggested transfers are rounded up to a multiple of this",
    )
    transfer_lead_days: int = Field(default=25, ge=0)
    emit_liquidity_alerts: bool = Field(
        default=True,
        description="Emit an alert when no account can cover a projected deficit",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    @model_validator(mode="after")
    def check_thresholds(self) -> "TreasurySettings":
        if self.auto_accept_threshold < self.review_threshold:
            raise ValueError("auto_accept_threshold must not be lower than review_threshold")
        return self


@lru_cache()
def get_settings() -> TreasurySettings:
    """Get settings (cached).

    Call get_settings.cache_clear() to reload after changing the environment.
    """
    return TreasurySettings()
