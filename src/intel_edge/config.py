"""Application configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from intel_edge.sizing.kelly import KellyConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="INTEL_EDGE_",
    )

    # SQLite database path for entries and trades
    db_path: Path = Path.home() / ".intel-edge" / "intel.db"

    # Detection window (hours back from now)
    window_hours: int = 48

    # Max recent entries loaded per scan
    entry_limit: int = 500

    # Max open trades loaded per scan
    open_trade_limit: int = 100

    # Seconds a single strategy may run before it is counted as failed
    strategy_timeout: float = 10.0

    # Kelly criterion fraction (0.5 = half-Kelly)
    kelly_fraction: float = 0.5

    # Hard cap per position, in cents
    max_position_cents: int = 2500

    # Minimum edge (probability points) before any sizing
    min_edge: float = 0.05

    # Max share of bankroll in a single position
    max_bankroll_fraction: float = 0.25

    # Execution filters
    min_confidence: float = 0.5
    min_score: float = 0.0
    max_daily_cents: int = 10_000

    # Price resolution fan-out
    resolver_timeout: float = 5.0
    resolver_concurrency: int = 8

    # Feed prices older than this are not used for sizing
    price_staleness_hours: float = 24.0

    # Kalshi public trade API
    kalshi_api_url: str = "https://api.elections.kalshi.com/trade-api/v2"

    # HTTP request timeout seconds
    http_timeout: float = 30.0

    @field_validator("kelly_fraction", "max_bankroll_fraction")
    @classmethod
    def _fraction_in_range(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"fraction must be in (0, 1], got {v}")
        return v

    @field_validator("min_edge", "min_score")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"value must be >= 0, got {v}")
        return v

    @field_validator("min_confidence")
    @classmethod
    def _min_confidence_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"min_confidence must be in [0, 1], got {v}")
        return v

    @field_validator("window_hours", "entry_limit", "open_trade_limit", "resolver_concurrency")
    @classmethod
    def _positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"value must be > 0, got {v}")
        return v

    def kelly_config(self) -> KellyConfig:
        """Kelly sizing configuration derived from these settings."""
        return KellyConfig(
            fraction=self.kelly_fraction,
            max_position_cents=self.max_position_cents,
            min_edge=self.min_edge,
            max_bankroll_fraction=self.max_bankroll_fraction,
        )


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
