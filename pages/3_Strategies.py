"""Strategies — define playbooks and see how each one performs."""

import logging

import streamlit as st

from analytics.performance import strategy_performance
from config import JOURNAL_USER_ID
from db import (
    create_strategy,
    delete_strategy,
    get_strategies,
    get_strategy_rules,
    get_user_trades,
    init_db,
    set_strategy_active,
)
from models import Strategy
import ui_theme

logger = logging.getLogger(__name__)

init_db()
ui_theme.page_chrome("Strategies")
ui_theme.page_header("Strategies", "Your playbook and how it's paying")

# --- New strategy ---
with st.expander("New Strategy", expanded=False):
    with st.form("new_strategy_form", clear_on_submit=True):
        name = st.text_input("Name", placeholder="Opening range breakout")
        description = st.text_area("Description")
        rules_text = st.text_area("Rules (one per line)",
                                  placeholder="Wait for the 5-min range\nStop below the range low")
        is_active = st.checkbox("Active", value=True)
        submitted = st.form_submit_button("Create Strategy")

    if submitted:
        strategy = Strategy(
            name=name,
            description=description,
            rules=rules_text.splitlines(),
            is_active=is_active,
        )
        try:
            strategy_id = create_strategy(strategy, JOURNAL_USER_ID)
        except ValueError as e:
            st.error(str(e))
        else:
            logger.info("Created strategy %s (%s)", strategy_id, strategy.name)
            st.success(f"Created strategy '{name.strip()}'")
            st.rerun()

strategies = get_strategies(JOURNAL_USER_ID)
if strategies.empty:
    ui_theme.empty_state("No strategies yet. Create one above to start tagging trades.")
    st.stop()

# --- Performance by strategy ---
trades = get_user_trades(JOURNAL_USER_ID)
ui_theme.section_header("Performance by Strategy")
if trades.empty:
    st.info("Log some trades to see per-strategy results.")
else:
    perf = strategy_performance(trades)
    st.dataframe(
        perf.rename(columns={
            "strategy": "Strategy", "trades": "Trades", "total_pnl": "Total P&L",
            "avg_pnl": "Avg P&L", "win_rate": "Win Rate",
        }).style.format({
            "Total P&L": "${:,.2f}", "Avg P&L": "${:,.2f}", "Win Rate": "{:.1f}%",
        }),
        use_container_width=True,
        hide_index=True,
    )

st.divider()

# --- Strategy list ---
ui_theme.section_header("Playbook")
for _, row in strategies.iterrows():
    strategy_id = int(row["id"])
    status = "Active" if row["is_active"] else "Inactive"
    with st.expander(f"{row['name']} · {status} · {row['rule_count']} rules"):
        if row["description"]:
            st.write(row["description"])
        rules = get_strategy_rules(strategy_id)
        if rules:
            st.markdown("\n".join(f"{i}. {rule}" for i, rule in enumerate(rules, 1)))
        else:
            st.caption("No rules defined.")

        col1, col2 = st.columns(2)
        with col1:
            toggle_label = "Deactivate" if row["is_active"] else "Activate"
            if st.button(toggle_label, key=f"toggle_{strategy_id}"):
                set_strategy_active(strategy_id, JOURNAL_USER_ID, not row["is_active"])
                logger.info("Strategy %s set active=%s", strategy_id, not row["is_active"])
                st.rerun()
        with col2:
            if st.button("Delete", key=f"delete_{strategy_id}",
                         help="Trades using this strategy become unassigned"):
                if delete_strategy(strategy_id, JOURNAL_USER_ID):
                    logger.info("Deleted strategy %s", strategy_id)
                st.rerun()
