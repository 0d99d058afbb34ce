"""Tests for journal performance metrics."""

from __future__ import annotations

import pandas as pd
import pytest


def _trades(pnls, **columns):
    data = {
        "trade_date": pd.date_range("2024-01-02", periods=len(pnls), freq="D"),
        "symbol": ["AAPL"] * len(pnls),
        "pnl": pnls,
    }
    data.update(columns)
    return pd.DataFrame(data)


# ---------------------------------------------------------------------------
# summary_stats
# ---------------------------------------------------------------------------

class TestSummaryStats:
    def test_empty(self):
        from analytics.performance import summary_stats

        stats = summary_stats(pd.DataFrame())
        assert stats["total_trades"] == 0
        assert stats["total_pnl"] == 0.0
        assert stats["sharpe_ratio"] == 0.0

    def test_basic_stats(self):
        from analytics.performance import summary_stats

        stats = summary_stats(_trades([100.0, -50.0, 200.0, -25.0]))
        assert stats["total_pnl"] == 225.0
        assert stats["total_trades"] == 4
        assert stats["win_rate"] == 50.0
        assert stats["profit_factor"] == 4.0
        assert stats["avg_win"] == 150.0
        assert stats["avg_loss"] == -37.5
        assert stats["expectancy"] == 56.25

    def test_profit_factor_capped_without_losers(self):
        from analytics.performance import PROFIT_FACTOR_CAP, summary_stats

        assert summary_stats(_trades([10.0, 20.0]))["profit_factor"] == PROFIT_FACTOR_CAP

    def test_profit_factor_zero_without_winners(self):
        from analytics.performance import summary_stats

        assert summary_stats(_trades([-10.0, -20.0]))["profit_factor"] == 0.0

    def test_open_trades_count_as_flat(self):
        from analytics.performance import summary_stats

        stats = summary_stats(_trades([100.0, None]))
        assert stats["total_trades"] == 2
        assert stats["total_pnl"] == 100.0
        assert stats["win_rate"] == 50.0

    def test_sharpe_uses_population_std(self):
        from analytics.performance import summary_stats

        # mean 50, population std 50
        assert summary_stats(_trades([100.0, 0.0]))["sharpe_ratio"] == 1.0

    def test_sharpe_zero_when_no_variance(self):
        from analytics.performance import summary_stats

        assert summary_stats(_trades([10.0, 10.0]))["sharpe_ratio"] == 0.0

    def test_avg_time_held_wraps_midnight(self):
        from analytics.performance import summary_stats

        df = _trades([10.0, 20.0, 5.0],
                     entry_time=["09:30", "23:50", None],
                     exit_time=["10:00", "00:20", "11:00"])
        # 30 min and 30 min across midnight; the third is skipped
        assert summary_stats(df)["avg_time_held_minutes"] == 30.0


class TestMinutesHeld:
    @pytest.mark.parametrize("entry,exit_,expected", [
        ("09:30", "09:45", 15.0),
        ("09:30:15", "10:30:59", 60.0),
        ("22:00", "01:00", 180.0),
        ("", "10:00", None),
        ("bad", "10:00", None),
    ])
    def test_minutes_held(self, entry, exit_, expected):
        from analytics.performance import minutes_held

        assert minutes_held(entry, exit_) == expected


# ---------------------------------------------------------------------------
# cumulative_pnl
# ---------------------------------------------------------------------------

class TestCumulativePnl:
    def test_curve_and_drawdown(self):
        from analytics.performance import cumulative_pnl

        curve = cumulative_pnl(_trades([100.0, -150.0, 75.0]))
        assert curve["trade_num"].tolist() == [1, 2, 3]
        assert curve["cumulative"].tolist() == [100.0, -50.0, 25.0]
        assert curve["drawdown"].tolist() == [0.0, -150.0, -75.0]

    def test_sorted_by_date(self):
        from analytics.performance import cumulative_pnl

        df = _trades([1.0, 2.0, 3.0])
        curve = cumulative_pnl(df.iloc[::-1])
        assert curve["pnl"].tolist() == [1.0, 2.0, 3.0]

    def test_empty(self):
        from analytics.performance import cumulative_pnl

        curve = cumulative_pnl(pd.DataFrame())
        assert curve.empty
        assert "cumulative" in curve.columns


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

class TestStreaks:
    def test_run_length(self):
        from analytics.performance import win_loss_streaks

        assert win_loss_streaks([10, 20, -5, 0, -3, 7]) == [("W", 2), ("L", 2), ("W", 1)]

    def test_nan_skipped(self):
        from analytics.performance import win_loss_streaks

        assert win_loss_streaks([10, float("nan"), None, 5]) == [("W", 2)]

    def test_summary(self):
        from analytics.performance import streak_summary

        summary = streak_summary([10, 20, 30, -5, 7, -1, -2])
        assert summary["max_win_streak"] == 3
        assert summary["max_loss_streak"] == 2
        assert summary["avg_win_streak"] == 2.0
        assert summary["avg_loss_streak"] == 1.5
        assert summary["current_type"] == "L"
        assert summary["current_streak"] == 2

    def test_summary_empty(self):
        from analytics.performance import streak_summary

        summary = streak_summary([])
        assert summary["max_win_streak"] == 0
        assert summary["current_type"] is None


# ---------------------------------------------------------------------------
# strategy_performance
# ---------------------------------------------------------------------------

class TestStrategyPerformance:
    def test_groups_and_unassigned(self):
        from analytics.performance import strategy_performance

        df = _trades([100.0, -40.0, 30.0],
                     strategy_name=["ORB", "ORB", None])
        out = strategy_performance(df).set_index("strategy")
        assert out.loc["ORB", "trades"] == 2
        assert out.loc["ORB", "total_pnl"] == 60.0
        assert out.loc["ORB", "win_rate"] == 50.0
        assert out.loc["Unassigned", "total_pnl"] == 30.0

    def test_sorted_by_total(self):
        from analytics.performance import strategy_performance

        df = _trades([-10.0, 50.0], strategy_name=["A", "B"])
        assert strategy_performance(df)["strategy"].tolist() == ["B", "A"]
