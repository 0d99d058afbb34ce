"""VRating: a 0-10 trader rating built from five weighted category scores.

Categories and weights:
    profitability 30%, risk management 25%, consistency 20%,
    emotional discipline 15%, journaling adherence 10%.

Each category turns a handful of metrics into a score through fixed bands;
within a band the score is interpolated by how far the metrics sit inside it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional

import numpy as np
import pandas as pd

from analytics.emotions import normalize_emotions
from analytics.performance import minutes_held

logger = logging.getLogger(__name__)

POSITIVE_EMOTIONS = {"PATIENCE", "DISCIPLINE", "CONFIDENT"}
NEGATIVE_EMOTIONS = {"FOMO", "REVENGE", "TILT"}
NEUTRAL_EMOTIONS = {"NEUTRAL"}
# Ordinary trading nerves, only lightly counted against the trader
ROUTINE_EMOTIONS = {"OVERRISK", "ANXIOUS"}

CATEGORY_WEIGHTS = {
    "profitability": 0.30,
    "risk_management": 0.25,
    "consistency": 0.20,
    "emotional_discipline": 0.15,
    "journaling_adherence": 0.10,
}

CATEGORY_LABELS = {
    "profitability": "Profitability",
    "risk_management": "Risk Management",
    "consistency": "Consistency",
    "emotional_discipline": "Emotional Discipline",
    "journaling_adherence": "Journaling",
}

# A single trade losing more than this counts as a large loss
LARGE_LOSS_PNL = -50.0


@dataclass
class VRating:
    overall: float
    scores: dict[str, float]
    metrics: dict[str, dict] = field(default_factory=dict)
    trade_count: int = 0
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def description(self) -> str:
        return vrating_description(self.overall)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _lerp(low: float, high: float, fraction: float) -> float:
    fraction = max(0.0, min(1.0, fraction))
    return low + (high - low) * fraction


def _pct(value: float, total: float) -> float:
    if total == 0:
        return 0.0
    return round(value / total * 100, 2)


def _clamp_score(score: float) -> float:
    return max(0.0, min(10.0, score))


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    frame = df.copy()
    frame["trade_date"] = pd.to_datetime(frame["trade_date"])
    frame = frame.sort_values("trade_date", kind="stable").reset_index(drop=True)
    frame["pnl"] = pd.to_numeric(frame["pnl"], errors="coerce").fillna(0.0)
    if "emotional_state" in frame.columns:
        frame["tags"] = frame["emotional_state"].apply(normalize_emotions)
    else:
        frame["tags"] = [[] for _ in range(len(frame))]
    return frame


def _monthly_pnl(frame: pd.DataFrame) -> pd.Series:
    return frame.groupby(frame["trade_date"].dt.to_period("M"))["pnl"].sum()


# ---------------------------------------------------------------------------
# Profitability
# ---------------------------------------------------------------------------

def profitability_metrics(frame: pd.DataFrame) -> dict:
    pnls = frame["pnl"]
    winners = pnls[pnls > 0]
    losers = pnls[pnls < 0]
    monthly = _monthly_pnl(frame)
    return {
        # average P&L per trade, scaled by 100
        "net_pl_pct": float(pnls.sum()) / len(frame) * 100 if len(frame) else 0.0,
        "win_rate": _pct(len(winners), len(frame)),
        "total_profit": float(winners.sum()),
        "total_loss": float(abs(losers.sum())),
        "winning_trades": len(winners),
        "losing_trades": len(losers),
        "positive_months_pct": _pct(int((monthly > 0).sum()), len(monthly)),
    }


def profitability_score(m: dict) -> float:
    net, win_rate = m["net_pl_pct"], m["win_rate"]

    if net > 50 and win_rate > 70:
        score = 10.0
    elif net >= 30 and win_rate >= 60:
        score = _lerp(8.0, 9.9, min((net - 30) / 20, (win_rate - 60) / 10))
    elif net >= 10 and win_rate >= 50:
        score = min(6.0 + (net - 10) * 0.1, 7.9)
    elif 0 <= net <= 10 or 40 <= win_rate < 50:
        score = _lerp(4.0, 5.9, min(net / 10, (win_rate - 40) / 10))
    elif -10 <= net < 0 or 30 <= win_rate < 40:
        score = _lerp(2.0, 3.9, min((net + 10) / 10, (win_rate - 30) / 10))
    else:
        score = _lerp(1.0, 1.9, net / -10)

    if m["positive_months_pct"] > 80:
        score += 0.5
    return _clamp_score(score)


# ---------------------------------------------------------------------------
# Risk management
# ---------------------------------------------------------------------------

def risk_metrics(frame: pd.DataFrame) -> dict:
    if frame.empty:
        return {"max_drawdown_pct": 0.0, "large_loss_pct": 0.0, "quantity_variability": 0.0,
                "avg_duration_hours": 0.0, "oversized_trades_pct": 0.0}

    equity = frame["pnl"].cumsum()
    peak = equity.cummax()
    max_drawdown = float((peak - equity).max())
    final_peak = float(peak.iloc[-1])

    if "quantity" in frame.columns:
        quantities = pd.to_numeric(frame["quantity"], errors="coerce")
        quantities = quantities[quantities > 0]
    else:
        quantities = pd.Series(dtype=float)
    avg_qty = float(quantities.mean()) if len(quantities) else 0.0
    qty_std = float(np.std(quantities.values)) if len(quantities) else 0.0

    durations = []
    if "entry_time" in frame.columns and "exit_time" in frame.columns:
        for entry, exit_ in zip(frame["entry_time"], frame["exit_time"]):
            minutes = minutes_held(entry, exit_)
            if minutes:
                durations.append(minutes / 60)

    return {
        "max_drawdown_pct": max_drawdown / final_peak * 100 if final_peak > 0 else 0.0,
        "large_loss_pct": _pct(int((frame["pnl"] < LARGE_LOSS_PNL).sum()), len(frame)),
        "quantity_variability": qty_std / avg_qty * 100 if avg_qty > 0 else 0.0,
        "avg_duration_hours": float(np.mean(durations)) if durations else 0.0,
        "oversized_trades_pct": _pct(int((quantities > avg_qty * 2).sum()), len(quantities))
        if avg_qty > 0 else 0.0,
    }


def risk_score(m: dict) -> float:
    dd = m["max_drawdown_pct"]
    large = m["large_loss_pct"]
    var = m["quantity_variability"]
    hours = m["avg_duration_hours"]

    if dd < 10 and large < 10 and var < 30 and hours > 12:
        score = _lerp(9.0, 10.0, min((10 - dd) / 10, (10 - large) / 10,
                                     (30 - var) / 30, (hours - 12) / 48))
    elif 10 <= dd <= 20 and 10 <= large <= 20 and 30 <= var <= 50 and 6 <= hours <= 12:
        score = _lerp(7.0, 8.9, min((20 - dd) / 10, (20 - large) / 10,
                                    (50 - var) / 20, (hours - 6) / 6))
    elif 20 <= dd <= 30 and 20 <= large <= 30 and 50 <= var <= 70 and 1 <= hours <= 6:
        score = _lerp(5.0, 6.9, min((30 - dd) / 10, (30 - large) / 10,
                                    (70 - var) / 20, hours / 6))
    elif 30 <= dd <= 40 and 30 <= large <= 40 and 70 <= var <= 80 and hours < 1:
        score = _lerp(3.0, 4.9, min((40 - dd) / 10, (40 - large) / 10,
                                    (80 - var) / 10, hours))
    else:
        score = _lerp(1.0, 2.9, min(max(0.0, (50 - dd) / 50), max(0.0, (60 - large) / 60)))

    if m["oversized_trades_pct"] > 10:
        score -= 1.0
    return _clamp_score(score)


# ---------------------------------------------------------------------------
# Consistency
# ---------------------------------------------------------------------------

def consistency_metrics(frame: pd.DataFrame) -> dict:
    if frame.empty:
        return {"pl_std_pct": 0.0, "longest_loss_streak": 0, "monthly_consistency_ratio": 0.0}

    pnls = frame["pnl"]
    mean = float(pnls.mean())
    std = float(np.std(pnls.values))

    longest = current = 0
    for pnl in pnls:
        current = current + 1 if pnl < 0 else 0
        longest = max(longest, current)

    monthly = _monthly_pnl(frame)
    positive = int((monthly > 0).sum())
    negative = int((monthly < 0).sum())
    return {
        "pl_std_pct": std / abs(mean) * 100 if mean != 0 else 0.0,
        "longest_loss_streak": longest,
        # positive months per losing month; all-green history counts every month
        "monthly_consistency_ratio": positive / negative if negative else float(positive),
    }


def consistency_score(m: dict) -> float:
    std_pct = m["pl_std_pct"]
    streak = m["longest_loss_streak"]
    ratio = m["monthly_consistency_ratio"]

    if std_pct < 5 and streak <= 3 and ratio > 5:
        score = 10.0
    elif 5 <= std_pct <= 10 and 4 <= streak <= 5 and 3 <= ratio <= 5:
        score = _lerp(8.0, 9.9, min((10 - std_pct) / 5, 5 - streak, (ratio - 3) / 2))
    elif 10 <= std_pct <= 15 and 6 <= streak <= 7 and 2 <= ratio <= 3:
        score = _lerp(6.0, 7.9, min((15 - std_pct) / 5, 7 - streak, ratio - 2))
    elif 15 <= std_pct <= 20 and 8 <= streak <= 10 and 1 <= ratio <= 2:
        score = _lerp(4.0, 5.9, min((20 - std_pct) / 5, (10 - streak) / 2, ratio - 1))
    else:
        score = _lerp(2.0, 3.9, min(max(0.0, (25 - std_pct) / 25),
                                    max(0.0, (10 - streak) / 10),
                                    max(0.0, ratio)))
    return _clamp_score(score)


# ---------------------------------------------------------------------------
# Emotional discipline
# ---------------------------------------------------------------------------

def emotional_metrics(frame: pd.DataFrame) -> dict:
    tagged = positive = negative = 0.0
    negative_losses = positive_wins = positive_trades = 0.0

    for tags, pnl in zip(frame["tags"], frame["pnl"]):
        if not tags:
            continue
        tagged += 1
        tagset = set(tags)

        # credit per trade: positive 1, neutral 0.5, routine 0.25
        weight = 0.0
        if tagset & POSITIVE_EMOTIONS:
            weight += 1.0
        if tagset & NEUTRAL_EMOTIONS:
            weight += 0.5
        if tagset & ROUTINE_EMOTIONS:
            weight += 0.25
        positive += weight
        positive_trades += weight
        if pnl > 0:
            positive_wins += weight

        if tagset & NEGATIVE_EMOTIONS:
            negative += 1
            if pnl < 0:
                negative_losses += 1

    return {
        "positive_emotion_pct": _pct(positive, tagged),
        "negative_impact_pct": _pct(negative_losses, negative),
        "positive_win_correlation": _pct(positive_wins, positive_trades),
        "logging_completeness": _pct(tagged, len(frame)),
    }


def emotional_score(m: dict, total_pnl: float = 0.0) -> float:
    pos = m["positive_emotion_pct"]
    neg = m["negative_impact_pct"]

    if pos > 80 and neg < 15:
        score = 10.0
    elif 65 <= pos <= 80 and 15 <= neg <= 25:
        score = _lerp(8.5, 9.9, min((pos - 65) / 15, (25 - neg) / 10))
    elif 50 <= pos <= 65 and 25 <= neg <= 40:
        score = _lerp(7.0, 8.4, min((pos - 50) / 15, (40 - neg) / 15))
    elif 35 <= pos <= 50 and 40 <= neg <= 55:
        score = _lerp(5.5, 6.9, min((pos - 35) / 15, (55 - neg) / 15))
    else:
        score = _lerp(4.0, 5.4, min(pos / 8, max(0.0, (60 - neg) / 60)))

    if m["positive_win_correlation"] > 70:
        score += 1.0
    elif m["positive_win_correlation"] > 60:
        score += 0.5
    if m["logging_completeness"] > 95:
        score += 1.0
    if total_pnl > 0 and score < 8.0:
        score += 0.5
    return _clamp_score(score)


# ---------------------------------------------------------------------------
# Journaling adherence
# ---------------------------------------------------------------------------

def _has_notes(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def journaling_metrics(frame: pd.DataFrame) -> dict:
    if frame.empty:
        return {"completeness_pct": 0.0, "strategy_usage": 0.0,
                "notes_usage": 0.0, "emotion_usage": 0.0}

    total = len(frame)
    with_strategy = int(frame["strategy_id"].notna().sum()) if "strategy_id" in frame.columns else 0
    with_notes = int(frame["notes"].apply(_has_notes).sum()) if "notes" in frame.columns else 0
    with_emotions = int(frame["tags"].apply(bool).sum())

    strategy_usage = _pct(with_strategy, total)
    notes_usage = _pct(with_notes, total)
    emotion_usage = _pct(with_emotions, total)
    return {
        "completeness_pct": (strategy_usage + notes_usage + emotion_usage) / 3,
        "strategy_usage": strategy_usage,
        "notes_usage": notes_usage,
        "emotion_usage": emotion_usage,
    }


def journaling_score(m: dict) -> float:
    completeness = m["completeness_pct"]
    if completeness > 95:
        score = 10.0
    elif completeness >= 80:
        score = _lerp(8.0, 9.9, (completeness - 80) / 15)
    elif completeness >= 60:
        score = _lerp(6.0, 7.9, (completeness - 60) / 20)
    elif completeness >= 40:
        score = _lerp(4.0, 5.9, (completeness - 40) / 20)
    else:
        score = _lerp(2.0, 3.9, completeness / 20)

    if m["emotion_usage"] >= 100:
        score += 0.5
    return _clamp_score(score)


# ---------------------------------------------------------------------------
# Overall rating
# ---------------------------------------------------------------------------

def calculate_vrating(df: pd.DataFrame) -> VRating:
    """Rate a set of trades (the frame returned by db.get_user_trades)."""
    if df is None or df.empty:
        return VRating(overall=0.0, scores={k: 0.0 for k in CATEGORY_WEIGHTS})

    frame = _prepare(df)
    metrics = {
        "profitability": profitability_metrics(frame),
        "risk_management": risk_metrics(frame),
        "consistency": consistency_metrics(frame),
        "emotional_discipline": emotional_metrics(frame),
        "journaling_adherence": journaling_metrics(frame),
    }
    total_pnl = float(frame["pnl"].sum())
    scores = {
        "profitability": profitability_score(metrics["profitability"]),
        "risk_management": risk_score(metrics["risk_management"]),
        "consistency": consistency_score(metrics["consistency"]),
        "emotional_discipline": emotional_score(metrics["emotional_discipline"], total_pnl),
        "journaling_adherence": journaling_score(metrics["journaling_adherence"]),
    }
    overall = sum(scores[k] * w for k, w in CATEGORY_WEIGHTS.items())
    logger.debug("VRating %.2f from %d trades: %s", overall, len(frame), scores)

    return VRating(
        overall=round(overall, 2),
        scores={k: round(v, 2) for k, v in scores.items()},
        metrics=metrics,
        trade_count=len(frame),
        start_date=frame["trade_date"].iloc[0].date(),
        end_date=frame["trade_date"].iloc[-1].date(),
    )


def single_trade_vrating(trade: Mapping[str, Any]) -> float:
    """Quick 0-10 score for one trade: P&L, first emotion tag, journaling fields."""
    pnl = trade.get("pnl")
    pnl = 0.0 if pnl is None or pd.isna(pnl) else float(pnl)
    tags = normalize_emotions(trade.get("emotional_state"))

    score = 5.0
    if pnl > 0:
        score += min(2.0, pnl / 10)
    elif pnl < 0:
        score -= min(3.0, abs(pnl) / 5)

    if tags:
        if tags[0] in POSITIVE_EMOTIONS:
            score += 0.5
        elif tags[0] in NEGATIVE_EMOTIONS:
            score -= 0.5

    strategy_id = trade.get("strategy_id")
    if strategy_id is not None and not pd.isna(strategy_id):
        score += 0.3
    if _has_notes(trade.get("notes")):
        score += 0.3
    if tags:
        score += 0.4
    return round(_clamp_score(score), 2)


_DESCRIPTIONS = [
    (9.0, "Exceptional - Elite trading performance"),
    (8.0, "Excellent - Superior trading skills"),
    (7.0, "Very Good - Above average performance"),
    (6.0, "Good - Competent trading"),
    (5.0, "Average - Room for improvement"),
    (4.0, "Below Average - Needs significant work"),
    (3.0, "Poor - Major improvements needed"),
    (2.0, "Very Poor - Fundamental issues"),
]


def vrating_description(rating: float) -> str:
    for floor, text in _DESCRIPTIONS:
        if rating >= floor:
            return text
    return "Critical - Complete review required"


_IMPROVEMENTS = {
    "profitability": [
        "Focus on improving win rate through better entry/exit strategies",
        "Consider reducing position size to minimize losses",
        "Review losing trades to identify common patterns",
        "Implement stricter risk-reward ratios",
    ],
    "risk_management": [
        "Implement stop-loss orders consistently",
        "Reduce position size variability",
        "Avoid oversized trades (>2x average)",
        "Consider longer holding periods for better risk management",
    ],
    "consistency": [
        "Focus on reducing P&L volatility",
        "Work on shorter loss streaks",
        "Improve monthly consistency with more positive months",
    ],
    "emotional_discipline": [
        "Focus on reducing negative emotional impact on trades",
        "Take breaks after emotional trades",
        "Develop pre-trade emotional checklist",
        "Work on improving emotional correlation with winning trades",
    ],
    "journaling_adherence": [
        "Use journaling templates for consistency",
        "Focus on complete emotional logging",
        "Review journal entries weekly for insights",
        "Improve strategy usage documentation",
    ],
}


def category_improvements(scores: Mapping[str, float], below: float = 6.0) -> dict[str, list[str]]:
    """Suggestions for every category scoring under ``below``."""
    return {k: list(tips) for k, tips in _IMPROVEMENTS.items() if scores.get(k, 0.0) < below}
