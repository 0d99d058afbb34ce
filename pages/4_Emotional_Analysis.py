"""Emotional Analysis — which emotions show up, which way they lean, what they cost."""

import streamlit as st

from analytics.emotions import aggregate_emotions, emotion_pnl_breakdown, emotions_frame
from charts import emotion_leaning_bar, emotion_radar_figure
from config import JOURNAL_USER_ID, LEANING_THRESHOLD_PCT
from db import get_user_trades, init_db
import ui_theme

init_db()
ui_theme.page_chrome("Emotional Analysis")
ui_theme.page_header("Emotional Analysis", "How your state of mind shows up in your trades")

df = get_user_trades(JOURNAL_USER_ID)
if df.empty:
    ui_theme.empty_state("No trades yet. Tag trades with emotions on the Log Trade page.")
    st.stop()

with st.sidebar:
    st.subheader("Filters")
    markets = sorted(df["market"].dropna().unique().tolist())
    selected_markets = st.multiselect("Markets", markets, default=markets)
    threshold = st.slider("Leaning threshold (%)", 0.0, 50.0, float(LEANING_THRESHOLD_PCT), 1.0,
                          help="Buy/sell skew needed before an emotion counts as leaning")

scoped = df[df["market"].isin(selected_markets)]
entries = aggregate_emotions(scoped, leaning_threshold=threshold)
tagged = int(scoped["emotional_state"].apply(bool).sum())

col1, col2, col3 = st.columns(3)
col1.metric("Trades", len(scoped))
col2.metric("Tagged Trades", tagged)
col3.metric("Distinct Emotions", len(entries))

if not entries:
    ui_theme.empty_state("None of these trades carry an emotional tag yet.")
    st.stop()

st.divider()

animation = ui_theme.chart_animation()
left, right = st.columns(2)
with left:
    ui_theme.section_header("Emotion Frequency", "share of all tags")
    st.plotly_chart(emotion_radar_figure(entries, height_key="hero", **animation),
                    use_container_width=True)
with right:
    ui_theme.section_header("Buy / Sell Leaning", f"±{threshold:.0f}% = balanced")
    st.plotly_chart(emotion_leaning_bar(entries, **animation), use_container_width=True)

ui_theme.section_header("Breakdown")
frame = emotions_frame(entries)
st.dataframe(
    frame.rename(columns={
        "subject": "Emotion", "value": "Frequency", "leaning": "Leaning", "side": "Side",
        "leaning_value": "Skew", "total_trades": "Trades", "buy_count": "Buys",
        "sell_count": "Sells", "neutral_count": "Other",
    }).style.format({"Frequency": "{:.1f}%", "Skew": "{:+.0f}"}),
    use_container_width=True,
    hide_index=True,
)

st.divider()

ui_theme.section_header("P&L by Emotion")
breakdown = emotion_pnl_breakdown(scoped)
if breakdown.empty:
    st.info("No P&L recorded on tagged trades.")
else:
    worst = breakdown.iloc[-1]
    if worst["total_pnl"] < 0:
        st.warning(f"**{worst['emotion']}** trades have cost you "
                   f"${abs(worst['total_pnl']):,.2f} across {int(worst['trades'])} trades.")
    st.dataframe(
        breakdown.rename(columns={
            "emotion": "Emotion", "trades": "Trades", "total_pnl": "Total P&L",
            "avg_pnl": "Avg P&L", "win_rate": "Win Rate",
        }).style.format({
            "Total P&L": "${:,.2f}", "Avg P&L": "${:,.2f}", "Win Rate": "{:.1f}%",
        }),
        use_container_width=True,
        hide_index=True,
    )
