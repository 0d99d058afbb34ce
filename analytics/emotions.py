"""Emotional-state parsing and radar aggregation.

Trades store ``emotional_state`` in whatever shape the writer used: a list of
tags, a JSON-encoded array, a comma-separated string, a bare tag or nothing.
``parse_emotional_state`` classifies the raw value once, at the data-access
boundary, so everything downstream (``aggregate_emotions``, filters, the P&L
breakdown) only ever sees a clean list of canonical tags.
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Any, Iterable, Mapping, NamedTuple

import numpy as np
import pandas as pd

from config import EMOTION_TAGS, LEANING_THRESHOLD_PCT
from models import EmotionFrequency, Leaning, Side

logger = logging.getLogger(__name__)

_VOCABULARY = frozenset(EMOTION_TAGS)
_DELIMITERS = re.compile(r"[,;|]")
_STRIP_CHARS = " \t\r\n{}[]\"'"


class EmotionShape(str, Enum):
    EMPTY = "empty"
    LIST = "list"
    JSON_LIST = "json_list"
    JSON_STRING = "json_string"
    DELIMITED = "delimited"
    INVALID = "invalid"


class ParsedEmotions(NamedTuple):
    shape: EmotionShape
    tags: tuple[str, ...]


def _string_items(values: Iterable[Any]) -> tuple[str, ...]:
    return tuple(v.strip() for v in values if isinstance(v, str) and v.strip())


def _split_delimited(text: str) -> tuple[str, ...]:
    # Also unwraps Postgres array literals like {FOMO,TILT}
    pieces = (p.strip(_STRIP_CHARS) for p in _DELIMITERS.split(text))
    return tuple(p for p in pieces if p)


def _is_missing(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, float) and np.isnan(raw):
        return True
    return False


def parse_emotional_state(raw: Any) -> ParsedEmotions:
    """Classify a stored emotional_state value and extract its raw tags."""
    if _is_missing(raw):
        return ParsedEmotions(EmotionShape.EMPTY, ())

    if isinstance(raw, np.ndarray):
        raw = raw.tolist()

    if isinstance(raw, (list, tuple, set, frozenset)):
        tags = _string_items(raw)
        return ParsedEmotions(EmotionShape.LIST if tags else EmotionShape.EMPTY, tags)

    if not isinstance(raw, str):
        return ParsedEmotions(EmotionShape.INVALID, ())

    text = raw.strip()
    if not text:
        return ParsedEmotions(EmotionShape.EMPTY, ())

    try:
        decoded = json.loads(text)
    except ValueError:
        return ParsedEmotions(EmotionShape.DELIMITED, _split_delimited(text))

    if decoded is None:
        return ParsedEmotions(EmotionShape.EMPTY, ())
    if isinstance(decoded, list):
        tags = _string_items(decoded)
        return ParsedEmotions(EmotionShape.JSON_LIST if tags else EmotionShape.EMPTY, tags)
    if isinstance(decoded, str):
        tags = _split_delimited(decoded)
        return ParsedEmotions(EmotionShape.JSON_STRING if tags else EmotionShape.EMPTY, tags)
    return ParsedEmotions(EmotionShape.INVALID, ())


def normalize_emotions(raw: Any) -> list[str]:
    """Upper-cased canonical tags from any stored shape, de-duplicated in order."""
    parsed = parse_emotional_state(raw)
    if parsed.shape == EmotionShape.INVALID:
        logger.debug("Ignoring malformed emotional_state: %r", raw)

    tags: list[str] = []
    for tag in parsed.tags:
        upper = tag.upper()
        if upper in _VOCABULARY and upper not in tags:
            tags.append(upper)
    return tags


def _field(trade: Any, name: str) -> Any:
    if isinstance(trade, Mapping):
        return trade.get(name)
    return getattr(trade, name, None)


def _iter_trades(trades: Any) -> Iterable[Any]:
    if trades is None:
        return ()
    if isinstance(trades, pd.DataFrame):
        return trades.to_dict("records")
    return trades


def _classify_leaning(leaning_value: float, threshold: float) -> tuple[Leaning, str]:
    if leaning_value > threshold:
        return Leaning.BUY, Side.BUY.value
    if leaning_value < -threshold:
        return Leaning.SELL, Side.SELL.value
    return Leaning.BALANCED, "NULL"


def aggregate_emotions(
    trades: Any,
    leaning_threshold: float = LEANING_THRESHOLD_PCT,
) -> list[EmotionFrequency]:
    """Turn trades into radar points: each tag's share of all tag occurrences.

    Output order is the order in which tags were first seen. Trades without a
    resolvable tag are skipped; the function never raises on bad emotion data.
    """
    buckets: dict[str, dict[str, int]] = {}

    for trade in _iter_trades(trades):
        tags = normalize_emotions(_field(trade, "emotional_state"))
        if not tags:
            continue
        side = Side.parse(_field(trade, "side"))
        for tag in tags:
            counts = buckets.setdefault(tag, {"buy": 0, "sell": 0, "neutral": 0})
            if side == Side.BUY:
                counts["buy"] += 1
            elif side == Side.SELL:
                counts["sell"] += 1
            else:
                counts["neutral"] += 1

    total_occurrences = sum(sum(c.values()) for c in buckets.values())

    entries = []
    for tag, counts in buckets.items():
        total = counts["buy"] + counts["sell"] + counts["neutral"]
        value = (total / total_occurrences * 100) if total_occurrences else 0.0
        if total:
            leaning_value = (counts["buy"] - counts["sell"]) / total * 100
            leaning_value = max(-100.0, min(100.0, leaning_value))
        else:
            leaning_value = 0.0
        leaning, side = _classify_leaning(leaning_value, leaning_threshold)
        entries.append(EmotionFrequency(
            subject=tag,
            value=value,
            leaning=leaning,
            side=side,
            leaning_value=leaning_value,
            total_trades=total,
            buy_count=counts["buy"],
            sell_count=counts["sell"],
            neutral_count=counts["neutral"],
        ))
    return entries


def emotions_frame(entries: list[EmotionFrequency]) -> pd.DataFrame:
    """Tabular view of aggregate_emotions() output."""
    columns = ["subject", "value", "leaning", "side", "leaning_value",
               "total_trades", "buy_count", "sell_count", "neutral_count"]
    if not entries:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([e.as_record() for e in entries])[columns]


def filter_trades_by_emotions(df: pd.DataFrame, tags: Iterable[str],
                              match: str = "any") -> pd.DataFrame:
    """Keep trades carrying any (or all) of the given tags."""
    wanted = {t.upper() for t in tags if t}
    if not wanted or df.empty:
        return df
    if match not in ("any", "all"):
        raise ValueError(f"match must be 'any' or 'all', got {match!r}")

    normalized = df["emotional_state"].apply(normalize_emotions).apply(set)
    if match == "all":
        mask = normalized.apply(lambda s: wanted <= s)
    else:
        mask = normalized.apply(lambda s: bool(wanted & s))
    return df[mask]


def emotion_pnl_breakdown(df: pd.DataFrame) -> pd.DataFrame:
    """Per-tag trade count, total/avg P&L and win rate."""
    columns = ["emotion", "trades", "total_pnl", "avg_pnl", "win_rate"]
    if df.empty:
        return pd.DataFrame(columns=columns)

    exploded = df.assign(emotion=df["emotional_state"].apply(normalize_emotions))
    exploded = exploded.explode("emotion").dropna(subset=["emotion"])
    if exploded.empty:
        return pd.DataFrame(columns=columns)

    exploded["pnl"] = pd.to_numeric(exploded["pnl"], errors="coerce").fillna(0.0)
    out = exploded.groupby("emotion", sort=False).agg(
        trades=("pnl", "count"),
        total_pnl=("pnl", "sum"),
        avg_pnl=("pnl", "mean"),
        win_rate=("pnl", lambda x: (x > 0).mean() * 100),
    ).reset_index()
    return out.sort_values("total_pnl", ascending=False).reset_index(drop=True)[columns]
