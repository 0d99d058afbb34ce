"""Journal performance metrics — summary stats, equity curve, streaks."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Profit factor reported when there are winners but no losers
PROFIT_FACTOR_CAP = 999.0


def minutes_held(entry_time: Optional[str], exit_time: Optional[str]) -> Optional[float]:
    """Minutes between two HH:MM[:SS] times; exit before entry wraps past midnight."""
    if not entry_time or not exit_time:
        return None
    try:
        entry_h, entry_m = (int(p) for p in str(entry_time).split(":")[:2])
        exit_h, exit_m = (int(p) for p in str(exit_time).split(":")[:2])
    except ValueError:
        logger.debug("Unparsable trade times %r -> %r", entry_time, exit_time)
        return None
    minutes = (exit_h * 60 + exit_m) - (entry_h * 60 + entry_m)
    if minutes < 0:
        minutes += 24 * 60
    return float(minutes)


def summary_stats(df: pd.DataFrame) -> dict:
    """Headline journal stats for the dashboard."""
    if df.empty:
        return {
            "total_pnl": 0.0,
            "win_rate": 0.0,
            "profit_factor": 0.0,
            "total_trades": 0,
            "avg_win": 0.0,
            "avg_loss": 0.0,
            "expectancy": 0.0,
            "avg_time_held_minutes": 0.0,
            "sharpe_ratio": 0.0,
        }

    pnls = pd.to_numeric(df["pnl"], errors="coerce").fillna(0.0)
    winners = pnls[pnls > 0]
    losers = pnls[pnls < 0]
    total = len(pnls)

    gross_profit = winners.sum()
    gross_loss = abs(losers.sum())
    if gross_loss == 0:
        profit_factor = PROFIT_FACTOR_CAP if gross_profit > 0 else 0.0
    else:
        profit_factor = gross_profit / gross_loss

    held = []
    if "entry_time" in df.columns and "exit_time" in df.columns:
        for entry, exit_ in zip(df["entry_time"], df["exit_time"]):
            minutes = minutes_held(entry, exit_)
            if minutes is not None:
                held.append(minutes)

    std = float(np.std(pnls.values))  # population std
    sharpe = float(pnls.mean() / std) if std != 0 else 0.0

    return {
        "total_pnl": round(float(pnls.sum()), 2),
        "win_rate": round(len(winners) / total * 100, 1),
        "profit_factor": round(float(profit_factor), 2),
        "total_trades": total,
        "avg_win": round(float(winners.mean()), 2) if len(winners) else 0.0,
        "avg_loss": round(float(losers.mean()), 2) if len(losers) else 0.0,
        "expectancy": round(float(pnls.mean()), 2),
        "avg_time_held_minutes": round(float(np.mean(held)), 1) if held else 0.0,
        "sharpe_ratio": round(sharpe, 3),
    }


def cumulative_pnl(df: pd.DataFrame) -> pd.DataFrame:
    """Chronological equity curve with drawdown from running peak."""
    columns = ["trade_num", "trade_date", "symbol", "pnl", "cumulative", "drawdown"]
    if df.empty:
        return pd.DataFrame(columns=columns)

    curve = df.sort_values("trade_date", kind="stable").copy()
    curve["pnl"] = pd.to_numeric(curve["pnl"], errors="coerce").fillna(0.0)
    curve["cumulative"] = curve["pnl"].cumsum()
    curve["drawdown"] = curve["cumulative"] - curve["cumulative"].cummax()
    curve["trade_num"] = range(1, len(curve) + 1)
    return curve[columns].reset_index(drop=True)


def win_loss_streaks(pnls: Iterable[float]) -> list[tuple[str, int]]:
    """Run-length encode results into ("W", n) / ("L", n). Flat trades are skipped."""
    streaks: list[tuple[str, int]] = []
    current_type = None
    current_streak = 0

    for pnl in pnls:
        if pnl is None or pd.isna(pnl) or pnl == 0:
            continue
        kind = "W" if pnl > 0 else "L"
        if kind == current_type:
            current_streak += 1
        else:
            if current_streak:
                streaks.append((current_type, current_streak))
            current_type = kind
            current_streak = 1
    if current_streak:
        streaks.append((current_type, current_streak))
    return streaks


def streak_summary(pnls: Iterable[float]) -> dict:
    streaks = win_loss_streaks(pnls)
    wins = [n for kind, n in streaks if kind == "W"]
    losses = [n for kind, n in streaks if kind == "L"]
    current = streaks[-1] if streaks else (None, 0)
    return {
        "max_win_streak": max(wins, default=0),
        "max_loss_streak": max(losses, default=0),
        "avg_win_streak": round(float(np.mean(wins)), 1) if wins else 0.0,
        "avg_loss_streak": round(float(np.mean(losses)), 1) if losses else 0.0,
        "current_type": current[0],
        "current_streak": current[1],
    }


def strategy_performance(df: pd.DataFrame) -> pd.DataFrame:
    """Per-strategy trade count, P&L and win rate (unassigned trades grouped)."""
    columns = ["strategy", "trades", "total_pnl", "avg_pnl", "win_rate"]
    if df.empty:
        return pd.DataFrame(columns=columns)

    frame = df.copy()
    frame["strategy"] = frame.get("strategy_name", pd.Series(index=frame.index, dtype=object))
    frame["strategy"] = frame["strategy"].fillna("Unassigned")
    frame["pnl"] = pd.to_numeric(frame["pnl"], errors="coerce").fillna(0.0)

    out = frame.groupby("strategy").agg(
        trades=("pnl", "count"),
        total_pnl=("pnl", "sum"),
        avg_pnl=("pnl", "mean"),
        win_rate=("pnl", lambda x: (x > 0).mean() * 100),
    ).reset_index()
    return out.sort_values("total_pnl", ascending=False).reset_index(drop=True)[columns]
