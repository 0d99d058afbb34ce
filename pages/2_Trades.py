"""Trades — filter, review, edit and delete logged trades."""

import logging
from datetime import date, datetime

import pandas as pd
import streamlit as st

from analytics.performance import streak_summary, summary_stats
from analytics.vrating import single_trade_vrating
from config import EMOTION_TAGS, JOURNAL_USER_ID, MARKETS, TRADE_SIDES
from db import delete_trade, get_strategies, get_symbols, get_trade, get_user_trades, init_db, update_trade
from models import Side, Trade, compute_pnl
from state.filters import (
    EMOTION_MATCHES, PNL_FILTERS, SORT_FIELDS, SORT_ORDERS, TradeFilters,
    active_filter_count, apply_trade_filters, clear_trade_filters,
    load_trade_filters, save_trade_filters,
)
from state.storage import SqliteSettingsStorage
import ui_theme

logger = logging.getLogger(__name__)

init_db()
ui_theme.page_chrome("Trades")
ui_theme.page_header("Trades", "Every trade you've logged")

df = get_user_trades(JOURNAL_USER_ID)
if df.empty:
    ui_theme.empty_state("No trades yet. Use the Log Trade page to record your first trade.")
    st.stop()

# --- Filters (saved between visits) ---
FILTER_KEYS = ["f_symbols", "f_side", "f_strategy", "f_dates", "f_emotions",
               "f_match", "f_pnl", "f_sort_by", "f_sort_order"]
PNL_LABELS = {"all": "All", "profitable": "Winners", "lossable": "Losers"}

filter_storage = SqliteSettingsStorage()
saved = load_trade_filters(filter_storage)
strategies = get_strategies(JOURNAL_USER_ID)
symbols = get_symbols(JOURNAL_USER_ID)
first_day = df["trade_date"].min().date()
last_day = df["trade_date"].max().date()


def _index(options, value, default=0):
    return options.index(value) if value in options else default


with st.sidebar:
    st.subheader("Filters")
    selected_symbols = st.multiselect(
        "Symbols", symbols, default=[s for s in saved.symbols if s in symbols],
        placeholder="All symbols", key="f_symbols",
    )
    side_options = ["All"] + TRADE_SIDES
    selected_side = st.selectbox("Side", side_options,
                                 index=_index(side_options, saved.side), key="f_side")
    strategy_names = ["All Strategies"] + strategies["name"].tolist()
    selected_strategy = st.selectbox("Strategy", strategy_names,
                                     index=_index(strategy_names, saved.strategy), key="f_strategy")
    date_range = st.date_input(
        "Date Range",
        value=(date.fromisoformat(saved.date_from) if saved.date_from else first_day,
               date.fromisoformat(saved.date_to) if saved.date_to else last_day),
        key="f_dates",
    )
    selected_emotions = st.multiselect("Emotions", EMOTION_TAGS, default=saved.emotions,
                                       key="f_emotions")
    emotion_match = st.radio("Match", EMOTION_MATCHES, horizontal=True,
                             index=_index(list(EMOTION_MATCHES), saved.emotion_match),
                             help="Trades with any / all of the selected emotions", key="f_match")
    pnl_filter = st.radio("Outcome", PNL_FILTERS, horizontal=True,
                          index=_index(list(PNL_FILTERS), saved.pnl_filter),
                          format_func=PNL_LABELS.get, key="f_pnl")
    sort_by = st.selectbox("Sort by", SORT_FIELDS, index=_index(list(SORT_FIELDS), saved.sort_by),
                           format_func=lambda f: f.replace("_", " ").title(), key="f_sort_by")
    sort_order = st.radio("Order", SORT_ORDERS, horizontal=True,
                          index=_index(list(SORT_ORDERS), saved.sort_order, default=1),
                          format_func={"asc": "Oldest / lowest", "desc": "Newest / highest"}.get,
                          key="f_sort_order")

    date_from = date_to = None
    if isinstance(date_range, (list, tuple)) and len(date_range) == 2:
        start, end = date_range
        # Only a narrowed range is saved so new trades stay visible
        date_from = start.isoformat() if start != first_day else None
        date_to = end.isoformat() if end != last_day else None

    filters = TradeFilters(
        symbols=list(selected_symbols),
        side="" if selected_side == "All" else selected_side,
        strategy="" if selected_strategy == "All Strategies" else selected_strategy,
        date_from=date_from,
        date_to=date_to,
        emotions=list(selected_emotions),
        emotion_match=emotion_match,
        pnl_filter=pnl_filter,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    if filters != saved:
        save_trade_filters(filter_storage, filters)

    active = active_filter_count(filters)
    st.caption(f"{active} active filter{'s' if active != 1 else ''}")
    if st.button("Clear filters", disabled=filters == TradeFilters()):
        clear_trade_filters(filter_storage)
        for key in FILTER_KEYS:
            st.session_state.pop(key, None)
        logger.info("Cleared saved trade filters")
        st.rerun()

filtered = apply_trade_filters(df, filters)

if filtered.empty:
    st.warning("No trades match the current filters.")
    st.stop()

# --- Quick Stats ---
stats = summary_stats(filtered)
streaks = streak_summary(filtered.sort_values("trade_date")["pnl"].tolist())
col1, col2, col3, col4, col5 = st.columns(5)
col1.metric("Trades", stats["total_trades"])
col2.metric("P&L", f"${stats['total_pnl']:,.2f}")
col3.metric("Win Rate", f"{stats['win_rate']:.1f}%")
col4.metric("Max Win Streak", streaks["max_win_streak"])
col5.metric("Max Loss Streak", streaks["max_loss_streak"])

st.divider()

# --- Trade Log ---
ui_theme.section_header("Trade Log")
log = filtered.copy()
log["vrating"] = log.apply(single_trade_vrating, axis=1)
log["trade_date"] = log["trade_date"].dt.strftime("%Y-%m-%d")
log["emotional_state"] = log["emotional_state"].apply(", ".join)

display_names = {
    "id": "ID", "trade_date": "Date", "market": "Market", "symbol": "Symbol",
    "side": "Side", "quantity": "Qty", "entry_price": "Entry $", "exit_price": "Exit $",
    "pnl": "P&L $", "vrating": "VRating", "strategy_name": "Strategy",
    "emotional_state": "Emotions", "notes": "Notes",
}


def color_pnl(val):
    try:
        if float(val) > 0:
            return f"color: {ui_theme.COLORS['green']}; font-weight: bold"
        if float(val) < 0:
            return f"color: {ui_theme.COLORS['red']}; font-weight: bold"
    except (TypeError, ValueError):
        pass
    return ""


st.dataframe(
    log[list(display_names)].rename(columns=display_names).style.format({
        "Qty": "{:,.0f}", "Entry $": "${:,.2f}", "Exit $": "${:,.2f}", "P&L $": "${:,.2f}",
        "VRating": "{:.1f}",
    }, na_rep="—").map(color_pnl, subset=["P&L $"]),
    use_container_width=True,
    hide_index=True,
    height=500,
)

st.divider()

labels = {}
for _, row in log.iterrows():
    pnl_text = f"${row['pnl']:,.2f}" if pd.notna(row["pnl"]) else "open"
    labels[f"#{row['id']} | {row['trade_date']} | {row['symbol']} {row['side']} | {pnl_text}"] = int(row["id"])

# --- Edit a trade ---
ui_theme.section_header("Edit a Trade")
edit_label = st.selectbox("Select trade", list(labels), key="edit_select")
edit_id = labels[edit_label]
current = get_trade(edit_id, JOURNAL_USER_ID)


def _parse_time(value):
    if not value:
        return None
    try:
        return datetime.strptime(value[:5], "%H:%M").time()
    except ValueError:
        return None


if current is None:
    st.error("Trade not found.")
else:
    strategy_options = {"(none)": None}
    strategy_options.update({row["name"]: int(row["id"]) for _, row in strategies.iterrows()})
    strategy_ids = list(strategy_options.values())
    computed = compute_pnl(current.side, current.entry_price, current.exit_price, current.quantity)
    # Blank means "compute from prices"; only a manual override is shown
    pnl_default = "" if current.pnl is None or current.pnl == computed else f"{current.pnl:.2f}"

    with st.form(f"edit_trade_{edit_id}"):
        col1, col2, col3 = st.columns(3)
        with col1:
            market = st.selectbox("Market", MARKETS, index=_index(MARKETS, current.market))
            symbol = st.text_input("Symbol", value=current.symbol)
            side = st.radio("Side", TRADE_SIDES, horizontal=True,
                            index=_index(TRADE_SIDES, current.side.value))
        with col2:
            trade_date = st.date_input("Trade Date", value=current.trade_date)
            quantity = st.number_input("Quantity", min_value=0.0, value=float(current.quantity or 0.0),
                                       step=1.0)
            strategy_name = st.selectbox("Strategy", list(strategy_options),
                                         index=_index(strategy_ids, current.strategy_id))
        with col3:
            entry_price = st.number_input("Entry Price", min_value=0.0,
                                          value=float(current.entry_price or 0.0),
                                          step=0.01, format="%.2f")
            exit_price = st.number_input("Exit Price", min_value=0.0,
                                         value=float(current.exit_price or 0.0),
                                         step=0.01, format="%.2f")
            manual_pnl = st.text_input("P&L (optional)", value=pnl_default,
                                       help="Leave blank to compute from prices")

        col4, col5 = st.columns(2)
        with col4:
            entry_time = st.time_input("Entry Time", value=_parse_time(current.entry_time))
        with col5:
            exit_time = st.time_input("Exit Time", value=_parse_time(current.exit_time))

        emotions = st.multiselect("Emotional State", EMOTION_TAGS, default=current.emotional_state)
        notes = st.text_area("Notes", value=current.notes)
        save_edit = st.form_submit_button("Update Trade", use_container_width=True)

    if save_edit:
        pnl = None
        if manual_pnl.strip():
            try:
                pnl = float(manual_pnl.replace("$", "").replace(",", ""))
            except ValueError:
                st.error("P&L must be a number.")
                st.stop()

        updated = Trade(
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
            found = update_trade(edit_id, updated, JOURNAL_USER_ID)
        except ValueError as e:
            st.error(str(e))
        else:
            if found:
                logger.info("Updated trade %s", edit_id)
                st.success(f"Updated trade #{edit_id}")
                st.rerun()
            else:
                st.error("Trade not found.")

st.divider()

# --- Delete a trade ---
ui_theme.section_header("Delete a Trade")
selected_label = st.selectbox("Select trade", list(labels), key="delete_select")
confirm = st.checkbox("I understand this cannot be undone")
if st.button("Delete Trade", disabled=not confirm):
    trade_id = labels[selected_label]
    if delete_trade(trade_id, JOURNAL_USER_ID):
        logger.info("Deleted trade %s", trade_id)
        st.success(f"Deleted trade #{trade_id}")
        st.rerun()
    else:
        st.error("Trade not found.")
