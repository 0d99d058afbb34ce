"""Log Trade — record a trade with its strategy and emotional state."""

import logging
from datetime import date

import streamlit as st

from config import EMOTION_TAGS, JOURNAL_USER_ID, MARKETS, TRADE_SIDES
from db import get_strategies, init_db, insert_trade
from models import Side, Trade, compute_pnl
import ui_theme

logger = logging.getLogger(__name__)

init_db()
ui_theme.page_chrome("Log Trade")
ui_theme.page_header("Log Trade", "Record the trade while the emotions are still fresh")

strategies = get_strategies(JOURNAL_USER_ID, active_only=True)
strategy_options = {"(none)": None}
strategy_options.update({row["name"]: int(row["id"]) for _, row in strategies.iterrows()})

with st.form("log_trade_form", clear_on_submit=True):
    col1, col2, col3 = st.columns(3)
    with col1:
        market = st.selectbox("Market", MARKETS)
        symbol = st.text_input("Symbol", placeholder="AAPL")
        side = st.radio("Side", TRADE_SIDES, horizontal=True)
    with col2:
        trade_date = st.date_input("Trade Date", value=date.today())
        quantity = st.number_input("Quantity", min_value=0.0, value=0.0, step=1.0)
        strategy_name = st.selectbox("Strategy", list(strategy_options))
    with col3:
        entry_price = st.number_input("Entry Price", min_value=0.0, value=0.0, step=0.01, format="%.2f")
        exit_price = st.number_input("Exit Price", min_value=0.0, value=0.0, step=0.01, format="%.2f")
        manual_pnl = st.text_input("P&L (optional)", help="Leave blank to compute from prices")

    col4, col5 = st.columns(2)
    with col4:
        entry_time = st.time_input("Entry Time", value=None)
    with col5:
        exit_time = st.time_input("Exit Time", value=None)

    emotions = st.multiselect("Emotional State", EMOTION_TAGS,
                              help="How did you feel when you took the trade?")
    notes = st.text_area("Notes")
    submitted = st.form_submit_button("Save Trade", use_container_width=True)

if submitted:
    pnl = None
    if manual_pnl.strip():
        try:
            pnl = float(manual_pnl.replace("$", "").replace(",", ""))
        except ValueError:
            st.error("P&L must be a number.")
            st.stop()

    trade = Trade(
        symbol=symbol,
        side=Side.parse(side),
        trade_date=trade_date,
        quantity=quantity or None,
        entry_price=entry_price or None,
        exit_price=exit_price or None,
        pnl=pnl,
        market=market,
        strategy_id=strategy_options[strategy_name],
        entry_time=entry_time.strftime("%H:%M") if entry_time else None,
        exit_time=exit_time.strftime("%H:%M") if exit_time else None,
        emotional_state=emotions,
        notes=notes,
    )
    try:
        trade_id = insert_trade(trade, JOURNAL_USER_ID)
    except ValueError as e:
        st.error(str(e))
    else:
        logger.info("Logged trade %s %s %s", trade_id, trade.symbol, trade.side.value)
        shown_pnl = pnl if pnl is not None else compute_pnl(side, trade.entry_price,
                                                             trade.exit_price, trade.quantity)
        pnl_text = f" — P&L ${shown_pnl:,.2f}" if shown_pnl is not None else ""
        st.success(f"Saved {symbol.upper()} {side}{pnl_text}")
