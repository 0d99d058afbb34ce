"""Centralized UI theme for VeroTrade — styling, chart layout and sidebar sync."""

from __future__ import annotations

import logging

import streamlit as st

from config import (
    SIDEBAR_DEFAULT_COLLAPSED,
    SIDEBAR_PERSIST_DEBOUNCE_MS,
    SIDEBAR_STORAGE_KEY,
    SIDEBAR_TRANSITION_MS,
)
from state.sidebar_sync import SidebarState, SidebarSyncStore
from state.storage import SqliteSettingsStorage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

COLORS = {
    "buy": "#B89B5E",       # dusty gold
    "sell": "#A7352D",      # rust red
    "neutral": "#4F5B4A",   # muted olive
    "accent": "#D6C7B2",    # warm sand
    "green": "#2ecc71",
    "red": "#e74c3c",
    "blue": "#3498db",
    "bg_primary": "#121212",
    "bg_card": "#1a1a1a",
    "border": "#2a2722",
    "text_muted": "#888",
}

CHART_HEIGHTS = {
    "hero": 450,
    "standard": 380,
    "compact": 300,
    "mini": 200,
}

# Sidebar widths (rem) for the expanded/collapsed states
SIDEBAR_WIDTH_EXPANDED = 21
SIDEBAR_WIDTH_COLLAPSED = 4.5

_STORE_KEY = "_sidebar_store"


# ---------------------------------------------------------------------------
# Sidebar sync (one store per browser session)
# ---------------------------------------------------------------------------

def _log_sidebar_change(state: SidebarState):
    logger.debug("sidebar state: collapsed=%s transitioning=%s",
                 state.is_collapsed, state.is_transitioning)


def get_sidebar_store() -> SidebarSyncStore:
    """Return this session's SidebarSyncStore, creating it on first use."""
    store = st.session_state.get(_STORE_KEY)
    if store is None:
        store = SidebarSyncStore(
            SqliteSettingsStorage(),
            transition_ms=SIDEBAR_TRANSITION_MS,
            persist_debounce_ms=SIDEBAR_PERSIST_DEBOUNCE_MS,
            storage_key=SIDEBAR_STORAGE_KEY,
            default_collapsed=SIDEBAR_DEFAULT_COLLAPSED,
        )
        store.subscribe(_log_sidebar_change)
        st.session_state[_STORE_KEY] = store
    return store


def chart_animation() -> dict:
    """Animation kwargs for chart builders, keyed to the sidebar transition.

    Charts skip their own animation while the sidebar is mid-transition.
    """
    store = get_sidebar_store()
    return {"transition_ms": store.transition_ms, "animate": not store.is_transitioning}


def sidebar_toggle():
    """Collapse/expand control at the top of the sidebar."""
    store = get_sidebar_store()
    label = "»" if store.is_collapsed else "«"
    help_text = "Expand sidebar" if store.is_collapsed else "Collapse sidebar"
    with st.sidebar:
        if st.button(label, key="sidebar_toggle", help=help_text):
            store.toggle()
            st.rerun()


# ---------------------------------------------------------------------------
# CSS injection
# ---------------------------------------------------------------------------

def inject_custom_css(collapsed: bool | None = None, transition_ms: int | None = None):
    """Inject global CSS; sidebar width animates over the shared transition window."""
    if collapsed is None or transition_ms is None:
        store = get_sidebar_store()
        collapsed = store.is_collapsed if collapsed is None else collapsed
        transition_ms = store.transition_ms if transition_ms is None else transition_ms

    width = SIDEBAR_WIDTH_COLLAPSED if collapsed else SIDEBAR_WIDTH_EXPANDED
    content_opacity = 0 if collapsed else 1
    st.markdown(f"""
    <style>
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700&display=swap');

    html, body, [class*="css"] {{
        font-family: 'Inter', sans-serif;
    }}

    #MainMenu {{visibility: hidden;}}
    footer {{visibility: hidden;}}

    .block-container {{
        padding-top: 1.5rem !important;
    }}

    /* ── Sidebar: width follows the sync store ────────────────────── */
    [data-testid="stSidebar"] {{
        background: {COLORS["bg_primary"]};
        border-right: 1px solid {COLORS["border"]};
        min-width: {width}rem !important;
        max-width: {width}rem !important;
        transition: min-width {transition_ms}ms ease-in-out, max-width {transition_ms}ms ease-in-out;
    }}
    [data-testid="stSidebarUserContent"] .element-container:not(:has(.st-key-sidebar_toggle)) {{
        opacity: {content_opacity};
        transition: opacity {transition_ms}ms ease-in-out;
    }}

    /* ── Metric cards ─────────────────────────────────────────────── */
    [data-testid="stMetric"] {{
        background: {COLORS["bg_card"]};
        border: 1px solid {COLORS["border"]};
        border-radius: 8px;
        padding: 12px 16px;
    }}
    [data-testid="stMetric"] label {{
        text-transform: uppercase;
        font-size: 0.7rem !important;
        letter-spacing: 0.05em;
        color: {COLORS["text_muted"]} !important;
    }}

    [data-testid="stDataFrame"] {{
        border: 1px solid {COLORS["border"]};
        border-radius: 8px;
    }}

    /* ── Charts resize with the sidebar ───────────────────────────── */
    .stPlotlyChart {{
        transition: width {transition_ms}ms ease-in-out;
    }}
    </style>
    """, unsafe_allow_html=True)


# ---------------------------------------------------------------------------
# Helper components
# ---------------------------------------------------------------------------

def page_header(title: str, subtitle: str = ""):
    """Render a branded header with optional subtitle."""
    subtitle_html = f"<p style='color:#888;font-size:0.95rem;margin:0'>{subtitle}</p>" if subtitle else ""
    st.markdown(f"""
    <div style='margin-bottom:1rem'>
        <h1 style='color:{COLORS["buy"]};font-size:2rem;font-weight:700;margin:0;line-height:1.2'>
            {title}
        </h1>
        {subtitle_html}
    </div>
    """, unsafe_allow_html=True)


def section_header(title: str, description: str = ""):
    """Render a section divider with bottom border accent."""
    desc_html = f"<span style='color:#888;font-size:0.85rem;margin-left:12px'>{description}</span>" if description else ""
    st.markdown(f"""
    <div style='border-bottom:2px solid {COLORS["border"]};padding-bottom:6px;margin:1.2rem 0 0.8rem 0'>
        <h3 style='margin:0;font-size:1.15rem;font-weight:600;color:{COLORS["accent"]}'>
            {title}{desc_html}
        </h3>
    </div>
    """, unsafe_allow_html=True)


def empty_state(message: str):
    """Render a centered empty-state card."""
    st.markdown(f"""
    <div style='text-align:center;padding:2rem 1.5rem;background:{COLORS["bg_card"]};
        border:1px solid {COLORS["border"]};border-radius:10px;margin:1rem 0;color:#888'>
        <div style='font-size:0.95rem'>{message}</div>
    </div>
    """, unsafe_allow_html=True)


def sidebar_branding():
    """Render the VeroTrade logo block in the sidebar."""
    st.markdown(f"""
    <div style='text-align:center;padding:12px 0 16px 0;margin-bottom:8px;
        border-bottom:1px solid {COLORS["border"]}'>
        <div style='font-size:1.4rem;font-weight:700;color:{COLORS["buy"]}'>VeroTrade</div>
        <div style='color:#888;font-size:0.75rem;letter-spacing:0.08em;text-transform:uppercase'>
            Trading Journal
        </div>
    </div>
    """, unsafe_allow_html=True)


def page_chrome(page_title: str):
    """Standard page setup: config, CSS, sidebar toggle and branding."""
    st.set_page_config(page_title=f"{page_title} | VeroTrade", layout="wide",
                       initial_sidebar_state="expanded")
    sidebar_toggle()
    inject_custom_css()
    with st.sidebar:
        sidebar_branding()


def plotly_layout(height_key: str = "standard", transition_ms: int = SIDEBAR_TRANSITION_MS,
                  animate: bool = True, **overrides) -> dict:
    """Return a consistent Plotly layout dict for dark-themed charts.

    ``transition`` duration is the sidebar's transition window, or 0 when the
    chart should not animate.
    """
    layout = {
        "height": CHART_HEIGHTS.get(height_key, CHART_HEIGHTS["standard"]),
        "paper_bgcolor": "rgba(0,0,0,0)",
        "plot_bgcolor": "rgba(0,0,0,0)",
        "font": {"family": "Inter, sans-serif", "color": "#fafafa"},
        "xaxis": {"gridcolor": COLORS["border"], "zerolinecolor": COLORS["border"]},
        "yaxis": {"gridcolor": COLORS["border"], "zerolinecolor": COLORS["border"]},
        "legend": {"orientation": "h", "y": 1.08},
        "margin": {"l": 40, "r": 20, "t": 40, "b": 30},
        "transition": {"duration": transition_ms if animate else 0, "easing": "cubic-in-out"},
    }
    layout.update(overrides)
    return layout
