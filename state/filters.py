"""Trades page filters that survive a reload.

Filters are stored as one JSON object under ``TRADE_FILTERS_KEY``. Anything
unreadable or out of range falls back to the default for that field, so a
stale or hand-edited value never breaks the page.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from datetime import date
from typing import Any, Mapping, Optional

import pandas as pd

from analytics.emotions import filter_trades_by_emotions
from config import EMOTION_TAGS, TRADE_FILTERS_KEY, TRADE_SIDES

logger = logging.getLogger(__name__)

PNL_FILTERS = ("all", "profitable", "lossable")
EMOTION_MATCHES = ("any", "all")
SORT_FIELDS = ("trade_date", "symbol", "pnl", "quantity")
SORT_ORDERS = ("asc", "desc")


@dataclass
class TradeFilters:
    symbols: list[str] = field(default_factory=list)  # empty = every symbol
    side: str = ""
    strategy: str = ""
    date_from: Optional[str] = None  # ISO date
    date_to: Optional[str] = None
    emotions: list[str] = field(default_factory=list)
    emotion_match: str = "any"
    pnl_filter: str = "all"
    sort_by: str = "trade_date"
    sort_order: str = "desc"


def _iso_date(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        return None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v]


def validate_trade_filters(data: Mapping[str, Any]) -> TradeFilters:
    """Build filters from stored data, resetting invalid fields to defaults."""
    defaults = TradeFilters()

    def choice(name, allowed):
        value = data.get(name)
        return value if value in allowed else getattr(defaults, name)

    strategy = data.get("strategy")
    return TradeFilters(
        symbols=_str_list(data.get("symbols")),
        side=choice("side", ("", *TRADE_SIDES)),
        strategy=strategy if isinstance(strategy, str) else "",
        date_from=_iso_date(data.get("date_from")),
        date_to=_iso_date(data.get("date_to")),
        emotions=[e for e in _str_list(data.get("emotions")) if e in EMOTION_TAGS],
        emotion_match=choice("emotion_match", EMOTION_MATCHES),
        pnl_filter=choice("pnl_filter", PNL_FILTERS),
        sort_by=choice("sort_by", SORT_FIELDS),
        sort_order=choice("sort_order", SORT_ORDERS),
    )


def load_trade_filters(storage, key: str = TRADE_FILTERS_KEY) -> TradeFilters:
    try:
        raw = storage.get(key)
    except Exception as e:
        logger.warning("Trade filters not loaded: %s", e)
        return TradeFilters()
    if not raw:
        return TradeFilters()
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring unreadable trade filters %r", raw)
        return TradeFilters()
    if not isinstance(data, dict):
        logger.warning("Ignoring non-object trade filters %r", raw)
        return TradeFilters()
    return validate_trade_filters(data)


def save_trade_filters(storage, filters: TradeFilters, key: str = TRADE_FILTERS_KEY) -> bool:
    try:
        storage.set(key, json.dumps(asdict(filters)))
    except Exception as e:
        logger.warning("Trade filters not saved: %s", e)
        return False
    return True


def clear_trade_filters(storage, key: str = TRADE_FILTERS_KEY) -> TradeFilters:
    filters = TradeFilters()
    save_trade_filters(storage, filters, key)
    return filters


def active_filter_count(filters: TradeFilters) -> int:
    """Filters that narrow the trade list; sorting does not count."""
    defaults = TradeFilters()
    narrowing = [f.name for f in fields(TradeFilters)
                 if f.name not in ("sort_by", "sort_order", "emotion_match")]
    return sum(1 for name in narrowing if getattr(filters, name) != getattr(defaults, name))


def apply_trade_filters(df: pd.DataFrame, filters: TradeFilters) -> pd.DataFrame:
    """Filter and sort a get_user_trades frame."""
    if df.empty:
        return df

    mask = pd.Series(True, index=df.index)
    if filters.symbols:
        mask &= df["symbol"].isin(filters.symbols)
    if filters.side:
        mask &= df["side"] == filters.side
    if filters.strategy:
        mask &= df["strategy_name"] == filters.strategy
    if filters.date_from:
        mask &= df["trade_date"] >= pd.Timestamp(filters.date_from)
    if filters.date_to:
        mask &= df["trade_date"] <= pd.Timestamp(filters.date_to)
    if filters.pnl_filter == "profitable":
        mask &= df["pnl"] > 0
    elif filters.pnl_filter == "lossable":
        mask &= df["pnl"] < 0

    out = filter_trades_by_emotions(df[mask], filters.emotions, match=filters.emotion_match)
    return out.sort_values(filters.sort_by, ascending=filters.sort_order == "asc",
                           kind="stable", na_position="last")
