"""Constants, emotion vocabulary and environment-driven settings."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _get_secret(key: str, default: str = "") -> str:
    """Read from env vars first (.env / local), then Streamlit secrets (Cloud)."""
    val = os.environ.get(key, "")
    if val:
        return val
    try:
        import streamlit as st
        return str(st.secrets.get(key, default))
    except Exception:
        return default


def _get_int(key: str, default: int) -> int:
    raw = _get_secret(key, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _get_float(key: str, default: float) -> float:
    raw = _get_secret(key, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


DB_PATH = _get_secret(
    "VEROTRADE_DB_PATH",
    os.path.join(os.path.dirname(__file__), "data", "journal.db"),
)

# Auth is out of scope; every row belongs to the local journal owner
JOURNAL_USER_ID = _get_int("VEROTRADE_USER_ID", 1)

LOG_LEVEL = _get_secret("VEROTRADE_LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# Emotion vocabulary (shared by the log form, filters, radar and aggregator)
# ---------------------------------------------------------------------------

EMOTION_TAGS = [
    "FOMO",
    "REVENGE",
    "TILT",
    "OVERRISK",
    "PATIENCE",
    "REGRET",
    "DISCIPLINE",
    "CONFIDENT",
    "ANXIOUS",
    "NEUTRAL",
]

# Leaning skew (percentage points) beyond which a tag is Buy/Sell leaning
LEANING_THRESHOLD_PCT = _get_float("VEROTRADE_LEANING_THRESHOLD_PCT", 15.0)

# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

MARKETS = ["Stock", "Futures", "Forex", "Crypto", "Options"]

TRADE_SIDES = ["Buy", "Sell"]

# ---------------------------------------------------------------------------
# Sidebar sync
# ---------------------------------------------------------------------------

# Matches the CSS transition on the sidebar; charts key their animation to it
SIDEBAR_TRANSITION_MS = _get_int("VEROTRADE_SIDEBAR_TRANSITION_MS", 300)

SIDEBAR_PERSIST_DEBOUNCE_MS = _get_int("VEROTRADE_SIDEBAR_PERSIST_DEBOUNCE_MS", 100)

SIDEBAR_STORAGE_KEY = "sidebar-collapsed"

SIDEBAR_DEFAULT_COLLAPSED = False

# ---------------------------------------------------------------------------
# Trade filters
# ---------------------------------------------------------------------------

TRADE_FILTERS_KEY = "trade-filters"
