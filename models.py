"""Data models for the trading journal."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional

from config import EMOTION_TAGS


class Side(str, Enum):
    BUY = "Buy"
    SELL = "Sell"
    NONE = "None"

    @classmethod
    def parse(cls, value: Any) -> "Side":
        """Map 'buy', ' SELL ', None, etc. onto a Side. Unknown values are NONE."""
        if isinstance(value, Side):
            return value
        if not isinstance(value, str):
            return cls.NONE
        text = value.strip().lower()
        if text == "buy":
            return cls.BUY
        if text == "sell":
            return cls.SELL
        return cls.NONE


class Leaning(str, Enum):
    BUY = "Buy Leaning"
    SELL = "Sell Leaning"
    BALANCED = "Balanced"


EmotionTag = Enum("EmotionTag", {tag: tag for tag in EMOTION_TAGS}, type=str)


def compute_pnl(side: Any, entry_price: Optional[float], exit_price: Optional[float],
                quantity: Optional[float]) -> Optional[float]:
    """Buy -> (exit - entry) * qty, Sell -> (entry - exit) * qty."""
    if entry_price is None or exit_price is None or quantity is None:
        return None
    if Side.parse(side) == Side.SELL:
        return round((entry_price - exit_price) * quantity, 2)
    return round((exit_price - entry_price) * quantity, 2)


@dataclass
class Trade:
    """A single logged trade."""
    symbol: str
    side: Side
    trade_date: date
    quantity: Optional[float] = None
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    pnl: Optional[float] = None
    market: str = "Stock"
    strategy_id: Optional[int] = None
    entry_time: Optional[str] = None  # "HH:MM"
    exit_time: Optional[str] = None
    emotional_state: list[str] = field(default_factory=list)
    notes: str = ""
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Trade":
        """Build a Trade from a DB row, normalizing emotional_state to a list."""
        from analytics.emotions import normalize_emotions

        raw_date = row["trade_date"]
        trade_date = raw_date if isinstance(raw_date, date) else date.fromisoformat(str(raw_date)[:10])
        return cls(
            id=row["id"],
            symbol=row["symbol"],
            side=Side.parse(row["side"]),
            trade_date=trade_date,
            quantity=row["quantity"],
            entry_price=row["entry_price"],
            exit_price=row["exit_price"],
            pnl=row["pnl"],
            market=row["market"] or "Stock",
            strategy_id=row["strategy_id"],
            entry_time=row["entry_time"],
            exit_time=row["exit_time"],
            emotional_state=normalize_emotions(row["emotional_state"]),
            notes=row["notes"] or "",
        )


@dataclass
class Strategy:
    """A named trading strategy with its checklist rules."""
    name: str
    description: str = ""
    rules: list[str] = field(default_factory=list)
    is_active: bool = True
    id: Optional[int] = None


@dataclass(frozen=True)
class EmotionFrequency:
    """One radar-chart point: a tag's share of all tagged occurrences."""
    subject: str
    value: float
    leaning: Leaning
    side: str  # "Buy", "Sell" or "NULL"
    leaning_value: float  # -100 .. 100
    total_trades: int
    buy_count: int = 0
    sell_count: int = 0
    neutral_count: int = 0
    full_mark: int = 100

    def to_dict(self) -> dict:
        """Radar-ready mapping with the chart's key names."""
        return {
            "subject": self.subject,
            "value": self.value,
            "fullMark": self.full_mark,
            "leaning": self.leaning.value,
            "side": self.side,
            "leaningValue": self.leaning_value,
            "totalTrades": self.total_trades,
        }

    def as_record(self) -> dict:
        record = asdict(self)
        record["leaning"] = self.leaning.value
        return record
