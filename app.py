"""VeroTrade — trading journal dashboard."""

from __future__ import annotations

import logging

import streamlit as st

from analytics.emotions import aggregate_emotions
from analytics.performance import cumulative_pnl, streak_summary, summary_stats
from analytics.vrating import (
    CATEGORY_LABELS, calculate_vrating, category_improvements, single_trade_vrating,
)
from charts import cumulative_pnl_figure, emotion_radar_figure
from config import JOURNAL_USER_ID, LOG_LEVEL
from db import get_user_trades, init_db
import ui_theme

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

init_db()
ui_theme.page_chrome("Dashboard")
ui_theme.page_header("Dashboard", "Performance and psychology at a glance")

df = get_user_trades(JOURNAL_USER_ID)
if df.empty:
    ui_theme.empty_state("No trades yet. Use the Log Trade page to record your first trade.")
    st.stop()

logger.info("Dashboard loaded %d trades", len(df))

# ── KPIs ──────────────────────────────────────────────────────────────────
stats = summary_stats(df)
col1, col2, col3, col4 = st.columns(4)
pnl_color = "normal" if stats["total_pnl"] >= 0 else "inverse"
col1.metric("Total P&L", f"${stats['total_pnl']:,.2f}",
            delta=f"${stats['total_pnl']:+,.2f}", delta_color=pnl_color)
col2.metric("Win Rate", f"{stats['win_rate']:.1f}%")
col3.metric("Profit Factor", f"{stats['profit_factor']:.2f}")
col4.metric("Total Trades", f"{stats['total_trades']}")

col5, col6, col7, col8 = st.columns(4)
col5.metric("Expectancy/Trade", f"${stats['expectancy']:,.2f}")
col6.metric("Avg Winner", f"${stats['avg_win']:,.2f}")
col7.metric("Avg Loser", f"${stats['avg_loss']:,.2f}")
col8.metric("Sharpe (per trade)", f"{stats['sharpe_ratio']:.2f}")

streaks = streak_summary(df["pnl"].tolist())
held = stats["avg_time_held_minutes"]
st.caption(
    f"Max win streak {streaks['max_win_streak']} · max loss streak {streaks['max_loss_streak']}"
    + (f" · avg time held {held:.0f} min" if held else "")
)

st.divider()

# ── VRating ───────────────────────────────────────────────────────────────
rating = calculate_vrating(df)
ui_theme.section_header("VRating", rating.description)
score_cols = st.columns(len(rating.scores) + 1)
score_cols[0].metric("Overall", f"{rating.overall:.2f} / 10")
for col, (category, score) in zip(score_cols[1:], rating.scores.items()):
    col.metric(CATEGORY_LABELS[category], f"{score:.1f}")

improvements = category_improvements(rating.scores)
if improvements:
    with st.expander("How to improve"):
        for category, tips in improvements.items():
            st.markdown(f"**{CATEGORY_LABELS[category]}**")
            for tip in tips:
                st.markdown(f"- {tip}")

st.divider()

# ── Charts (animation keyed to the sidebar transition) ────────────────────
animation = ui_theme.chart_animation()
left, right = st.columns([3, 2])
with left:
    ui_theme.section_header("Cumulative P&L")
    st.plotly_chart(cumulative_pnl_figure(cumulative_pnl(df), **animation),
                    use_container_width=True)
with right:
    ui_theme.section_header("Emotional State", "share of tagged trades")
    st.plotly_chart(emotion_radar_figure(aggregate_emotions(df), **animation),
                    use_container_width=True)

st.divider()

# ── Recent trades ─────────────────────────────────────────────────────────
ui_theme.section_header("Recent Trades")
recent = df.sort_values("trade_date", ascending=False).head(10).copy()
recent["trade_date"] = recent["trade_date"].dt.strftime("%Y-%m-%d")
recent["vrating"] = recent.apply(single_trade_vrating, axis=1)
recent["emotional_state"] = recent["emotional_state"].apply(", ".join)
st.dataframe(
    recent[["trade_date", "symbol", "side", "quantity", "entry_price", "exit_price",
            "pnl", "vrating", "emotional_state"]].rename(columns={
        "trade_date": "Date", "symbol": "Symbol", "side": "Side", "quantity": "Qty",
        "entry_price": "Entry $", "exit_price": "Exit $", "pnl": "P&L $", "vrating": "VRating",
        "emotional_state": "Emotions",
    }).style.format({
        "Qty": "{:,.0f}", "Entry $": "${:,.2f}", "Exit $": "${:,.2f}", "P&L $": "${:,.2f}",
        "VRating": "{:.1f}",
    }, na_rep="—"),
    use_container_width=True,
    hide_index=True,
)
