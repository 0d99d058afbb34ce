"""SQLite database schema and CRUD operations."""

from __future__ import annotations

import json
import os
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from typing import Optional

import pandas as pd

from analytics.emotions import normalize_emotions
from config import DB_PATH
from models import Side, Strategy, Trade, compute_pnl


def get_connection() -> sqlite3.Connection:
    db_dir = os.path.dirname(DB_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_db():
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db():
    """Create all tables if they don't exist."""
    with get_db() as conn:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS strategies (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                is_active INTEGER DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(user_id, name)
            );

            CREATE TABLE IF NOT EXISTS strategy_rules (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                strategy_id INTEGER NOT NULL REFERENCES strategies(id) ON DELETE CASCADE,
                rule_text TEXT NOT NULL,
                rule_order INTEGER DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS trades (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                market TEXT NOT NULL DEFAULT 'Stock',
                symbol TEXT NOT NULL,
                strategy_id INTEGER REFERENCES strategies(id) ON DELETE SET NULL,
                trade_date TEXT NOT NULL,
                side TEXT NOT NULL CHECK (side IN ('Buy', 'Sell', 'None')),
                quantity REAL,
                entry_price REAL,
                exit_price REAL,
                pnl REAL,
                entry_time TEXT,
                exit_time TEXT,
                emotional_state TEXT,
                notes TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS app_settings (
                key TEXT PRIMARY KEY,
                value TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_trades_user_date ON trades(user_id, trade_date);
            CREATE INDEX IF NOT EXISTS idx_trades_symbol ON trades(symbol);
            CREATE INDEX IF NOT EXISTS idx_trades_strategy ON trades(strategy_id);
            CREATE INDEX IF NOT EXISTS idx_strategies_user ON strategies(user_id);
            CREATE INDEX IF NOT EXISTS idx_strategy_rules_strategy ON strategy_rules(strategy_id);
        """)


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

def _validate_trade(trade: Trade) -> tuple:
    """Check a trade and return its column values. Raises ValueError."""
    symbol = (trade.symbol or "").strip().upper()
    if not symbol:
        raise ValueError("Symbol is required.")
    for label, value in (("Quantity", trade.quantity),
                         ("Entry price", trade.entry_price),
                         ("Exit price", trade.exit_price)):
        if value is not None and value < 0:
            raise ValueError(f"{label} cannot be negative.")

    side = Side.parse(trade.side)
    pnl = trade.pnl
    if pnl is None:
        pnl = compute_pnl(side, trade.entry_price, trade.exit_price, trade.quantity)

    trade_date = trade.trade_date
    if isinstance(trade_date, datetime):
        trade_date = trade_date.date()
    if not isinstance(trade_date, date):
        raise ValueError("Trade date is required.")

    emotions = normalize_emotions(trade.emotional_state)
    return (
        trade.market or "Stock", symbol, trade.strategy_id, trade_date.isoformat(),
        side.value, trade.quantity, trade.entry_price, trade.exit_price, pnl,
        trade.entry_time or None, trade.exit_time or None,
        json.dumps(emotions), trade.notes or "",
    )


def insert_trade(trade: Trade, user_id: int) -> int:
    """Insert a trade. Returns the new id. Raises ValueError on bad input."""
    values = _validate_trade(trade)
    with get_db() as conn:
        cur = conn.execute(
            """INSERT INTO trades
               (market, symbol, strategy_id, trade_date, side, quantity,
                entry_price, exit_price, pnl, entry_time, exit_time,
                emotional_state, notes, user_id)
               VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?)""",
            values + (user_id,),
        )
        return cur.lastrowid


def insert_trades(trades: list[Trade], user_id: int) -> int:
    """Bulk insert. Returns the number of rows written."""
    rows = [_validate_trade(t) + (user_id,) for t in trades]
    with get_db() as conn:
        conn.executemany(
            """INSERT INTO trades
               (market, symbol, strategy_id, trade_date, side, quantity,
                entry_price, exit_price, pnl, entry_time, exit_time,
                emotional_state, notes, user_id)
               VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?)""",
            rows,
        )
    return len(rows)


def update_trade(trade_id: int, trade: Trade, user_id: int) -> bool:
    """Overwrite a trade's fields. Returns False if no such trade for this user."""
    values = _validate_trade(trade)
    with get_db() as conn:
        cur = conn.execute(
            """UPDATE trades
               SET market=?, symbol=?, strategy_id=?, trade_date=?, side=?, quantity=?,
                   entry_price=?, exit_price=?, pnl=?, entry_time=?, exit_time=?,
                   emotional_state=?, notes=?, updated_at=CURRENT_TIMESTAMP
               WHERE id=? AND user_id=?""",
            values + (trade_id, user_id),
        )
        return cur.rowcount > 0


def delete_trade(trade_id: int, user_id: int) -> bool:
    with get_db() as conn:
        cur = conn.execute("DELETE FROM trades WHERE id=? AND user_id=?", (trade_id, user_id))
        return cur.rowcount > 0


def get_trade(trade_id: int, user_id: int) -> Optional[Trade]:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM trades WHERE id=? AND user_id=?",
            (trade_id, user_id),
        ).fetchone()
    return Trade.from_row(row) if row else None


def get_user_trades(
    user_id: int,
    symbol: Optional[str] = None,
    side: Optional[str] = None,
    strategy_id: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> pd.DataFrame:
    """Get a user's trades, oldest first, with emotional_state as a list column."""
    query = """
        SELECT t.*, s.name AS strategy_name
        FROM trades t LEFT JOIN strategies s ON t.strategy_id = s.id
        WHERE t.user_id = ?
    """
    params: list = [user_id]
    if symbol:
        query += " AND t.symbol = ?"
        params.append(symbol.strip().upper())
    if side:
        query += " AND t.side = ?"
        params.append(Side.parse(side).value)
    if strategy_id is not None:
        query += " AND t.strategy_id = ?"
        params.append(strategy_id)
    if start:
        query += " AND t.trade_date >= ?"
        params.append(start.isoformat())
    if end:
        query += " AND t.trade_date <= ?"
        params.append(end.isoformat())
    query += " ORDER BY t.trade_date, t.id"

    with get_db() as conn:
        df = pd.read_sql_query(query, conn, params=params)
    if not df.empty:
        df["trade_date"] = pd.to_datetime(df["trade_date"])
        df["emotional_state"] = df["emotional_state"].apply(normalize_emotions)
    return df


def get_symbols(user_id: int) -> list[str]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT DISTINCT symbol FROM trades WHERE user_id=? ORDER BY symbol",
            (user_id,),
        ).fetchall()
    return [r["symbol"] for r in rows]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def create_strategy(strategy: Strategy, user_id: int) -> int:
    """Create a strategy with its rules. Raises ValueError if the name exists."""
    name = (strategy.name or "").strip()
    if not name:
        raise ValueError("Strategy name is required.")
    rules = [r.strip() for r in strategy.rules if r and r.strip()]
    try:
        with get_db() as conn:
            cur = conn.execute(
                "INSERT INTO strategies (user_id, name, description, is_active) VALUES (?, ?, ?, ?)",
                (user_id, name, strategy.description or "", int(strategy.is_active)),
            )
            strategy_id = cur.lastrowid
            conn.executemany(
                "INSERT INTO strategy_rules (strategy_id, rule_text, rule_order) VALUES (?, ?, ?)",
                [(strategy_id, rule, i) for i, rule in enumerate(rules)],
            )
            return strategy_id
    except sqlite3.IntegrityError:
        raise ValueError(f"A strategy named '{name}' already exists.")


def get_strategies(user_id: int, active_only: bool = False) -> pd.DataFrame:
    query = """
        SELECT s.id, s.name, s.description, s.is_active, s.created_at,
               COUNT(r.id) AS rule_count
        FROM strategies s LEFT JOIN strategy_rules r ON r.strategy_id = s.id
        WHERE s.user_id = ?
    """
    if active_only:
        query += " AND s.is_active = 1"
    query += " GROUP BY s.id ORDER BY s.name"
    with get_db() as conn:
        df = pd.read_sql_query(query, conn, params=[user_id])
    if not df.empty:
        df["is_active"] = df["is_active"].astype(bool)
    return df


def get_strategy_rules(strategy_id: int) -> list[str]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT rule_text FROM strategy_rules WHERE strategy_id=? ORDER BY rule_order, id",
            (strategy_id,),
        ).fetchall()
    return [r["rule_text"] for r in rows]


def set_strategy_active(strategy_id: int, user_id: int, active: bool):
    with get_db() as conn:
        conn.execute(
            """UPDATE strategies SET is_active=?, updated_at=CURRENT_TIMESTAMP
               WHERE id=? AND user_id=?""",
            (int(active), strategy_id, user_id),
        )


def delete_strategy(strategy_id: int, user_id: int) -> bool:
    """Delete a strategy and its rules. Its trades keep living, unassigned."""
    with get_db() as conn:
        cur = conn.execute(
            "DELETE FROM strategies WHERE id=? AND user_id=?",
            (strategy_id, user_id),
        )
        return cur.rowcount > 0


# ---------------------------------------------------------------------------
# App settings (key/value)
# ---------------------------------------------------------------------------

def get_setting(key: str) -> Optional[str]:
    with get_db() as conn:
        row = conn.execute("SELECT value FROM app_settings WHERE key=?", (key,)).fetchone()
    return row["value"] if row else None


def set_setting(key: str, value: str):
    with get_db() as conn:
        conn.execute("""
            INSERT INTO app_settings (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=CURRENT_TIMESTAMP
        """, (key, value))
