"""Tests for environment-driven settings."""

from __future__ import annotations

import pydantic
import pytest

from intel_edge.config import Settings, get_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("INTEL_EDGE_KELLY_FRACTION", raising=False)
    settings = Settings()
    assert settings.window_hours == 48
    assert settings.max_daily_cents == 10_000
    assert settings.resolver_concurrency == 8


def test_env_override(monkeypatch, tmp_db):
    monkeypatch.setenv("INTEL_EDGE_DB_PATH", str(tmp_db))
    monkeypatch.setenv("INTEL_EDGE_MAX_POSITION_CENTS", "1000")
    settings = get_settings()
    assert settings.db_path == tmp_db
    assert settings.kelly_config().max_position_cents == 1000


@pytest.mark.parametrize("var,value", [
    ("INTEL_EDGE_KELLY_FRACTION", "0"),
    ("INTEL_EDGE_KELLY_FRACTION", "1.5"),
    ("INTEL_EDGE_MIN_CONFIDENCE", "2"),
    ("INTEL_EDGE_MIN_EDGE", "-0.1"),
    ("INTEL_EDGE_WINDOW_HOURS", "0"),
])
def test_invalid_values_rejected(monkeypatch, var, value):
    monkeypatch.setenv(var, value)
    with pytest.raises(pydantic.ValidationError):
        Settings()


def test_kelly_config_mirrors_settings():
    config = Settings(kelly_fraction=0.25, min_edge=0.1).kelly_config()
    assert config.fraction == 0.25
    assert config.min_edge == 0.1
    assert config.max_bankroll_fraction == 0.25
