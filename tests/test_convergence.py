"""Tests for sentiment-weighted convergence."""

from __future__ import annotations

import math
from datetime import timedelta

import pytest

from intel_edge.intel.models import SourceType, Trade, TradeDirection
from intel_edge.strategies.base import Direction
from intel_edge.strategies.convergence import ConvergenceStrategy, is_ticker_tag, time_weight


def _bullish_cluster(make_entry, n=4, tag="NVDA"):
    return [
        make_entry(
            title=f"{tag} beat",
            body="strong rally",
            tags=(tag,),
            source_type=SourceType.INTERNAL if i % 2 else SourceType.EXTERNAL,
        )
        for i in range(n)
    ]


class TestHelpers:
    def test_time_weight_whole_hours(self, now):
        assert time_weight(now, now) == 1.0
        assert time_weight(now - timedelta(minutes=90), now) == pytest.approx(math.exp(-0.02))
        assert time_weight(now - timedelta(hours=10), now) == pytest.approx(math.exp(-0.2))

    def test_time_weight_future_entry(self, now):
        assert time_weight(now + timedelta(hours=5), now) == 1.0

    def test_is_ticker_tag(self):
        assert is_ticker_tag("NVDA")
        assert is_ticker_tag("SPY")
        assert not is_ticker_tag("nvda")
        assert not is_ticker_tag("GOOGLE")
        assert not is_ticker_tag("S&P")


def test_bullish_cluster(make_entry, make_ctx):
    opps = ConvergenceStrategy().detect(make_ctx(_bullish_cluster(make_entry)))

    assert len(opps) == 1
    opp = opps[0]
    assert opp.signal_type == "cross_intel_convergence"
    assert opp.title == "Convergence: 'nvda' — 4 entries, 2 sources, bullish alignment"
    assert opp.confidence == pytest.approx(0.4 * 1.15)
    assert opp.suggested_direction is Direction.BULLISH
    assert opp.market_ticker == "NVDA"
    assert not opp.suggested_action.startswith("⚠️")


def test_three_entries_fall_below_floor(make_entry, make_ctx):
    opps = ConvergenceStrategy().detect(make_ctx(_bullish_cluster(make_entry, n=3)))
    assert opps == []


def test_open_position_warning(make_entry, make_ctx):
    trade = Trade(ticker="nvda", direction=TradeDirection.LONG, contracts=10, entry_price=120.0)
    opps = ConvergenceStrategy().detect(make_ctx(_bullish_cluster(make_entry), [trade]))
    assert opps[0].suggested_action.startswith("⚠️ Already have position in NVDA")


def test_no_keywords_gives_mixed(make_entry, make_ctx):
    entries = [
        make_entry(
            title="chip news",
            body="",
            tags=("semis",),
            source_type=SourceType.INTERNAL if i % 2 else SourceType.EXTERNAL,
        )
        for i in range(6)
    ]
    opps = ConvergenceStrategy().detect(make_ctx(entries))

    assert len(opps) == 1
    assert opps[0].suggested_direction is None
    assert "mixed alignment" in opps[0].title
    assert opps[0].confidence == pytest.approx(0.6 * 1.15 * 0.75)
    assert opps[0].market_ticker is None


def test_extended_denylist(make_entry, make_ctx):
    entries = _bullish_cluster(make_entry, n=6, tag="stocks")
    assert ConvergenceStrategy().detect(make_ctx(entries)) == []


def test_injected_lexicon(make_entry, make_ctx):
    strategy = ConvergenceStrategy(bullish_words=("moon",), bearish_words=("beat",))
    opps = strategy.detect(make_ctx(_bullish_cluster(make_entry)))
    assert opps[0].suggested_direction is Direction.BEARISH
