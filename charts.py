"""Plotly figure builders shared by the dashboard and analysis pages."""

from __future__ import annotations

import pandas as pd
import plotly.graph_objects as go

from config import SIDEBAR_TRANSITION_MS
from models import EmotionFrequency
from ui_theme import COLORS, plotly_layout

SIDE_COLORS = {
    "Buy": COLORS["buy"],
    "Sell": COLORS["sell"],
    "NULL": COLORS["neutral"],
}


def emotion_radar_figure(
    entries: list[EmotionFrequency],
    transition_ms: int = SIDEBAR_TRANSITION_MS,
    animate: bool = True,
    height_key: str = "standard",
) -> go.Figure:
    """Radar of each emotion's share of tagged occurrences on a fixed 0-100 axis."""
    fig = go.Figure()
    layout = plotly_layout(height_key, transition_ms=transition_ms, animate=animate)

    if not entries:
        fig.add_annotation(text="No emotional data", showarrow=False,
                           font=dict(size=14, color=COLORS["text_muted"]))
        layout.update(xaxis={"visible": False}, yaxis={"visible": False})
        fig.update_layout(**layout)
        return fig

    subjects = [e.subject for e in entries]
    values = [e.value for e in entries]
    # Close the polygon
    theta = subjects + subjects[:1]
    r = values + values[:1]

    fig.add_trace(go.Scatterpolar(
        r=r, theta=theta,
        fill="toself",
        fillcolor="rgba(184, 155, 94, 0.25)",
        line=dict(color=COLORS["buy"], width=2),
        hoverinfo="skip",
        showlegend=False,
    ))
    fig.add_trace(go.Scatterpolar(
        r=values, theta=subjects,
        mode="markers",
        marker=dict(size=10, color=[SIDE_COLORS.get(e.side, COLORS["neutral"]) for e in entries],
                    line=dict(color="#ffffff", width=1.5)),
        customdata=[[e.leaning.value, e.total_trades, e.leaning_value] for e in entries],
        hovertemplate=(
            "<b>%{theta}</b><br>Frequency: %{r:.1f}%<br>%{customdata[0]}"
            " (%{customdata[2]:+.0f})<br>Total Trades: %{customdata[1]}<extra></extra>"
        ),
        showlegend=False,
    ))
    layout["polar"] = {
        "bgcolor": "rgba(0,0,0,0)",
        "radialaxis": {"range": [0, entries[0].full_mark], "ticksuffix": "%",
                       "gridcolor": COLORS["border"], "showline": False},
        "angularaxis": {"gridcolor": COLORS["border"]},
    }
    fig.update_layout(**layout)
    return fig


def emotion_leaning_bar(entries: list[EmotionFrequency],
                        transition_ms: int = SIDEBAR_TRANSITION_MS,
                        animate: bool = True) -> go.Figure:
    """Diverging bar of buy/sell skew per emotion (-100 sell .. +100 buy)."""
    fig = go.Figure(go.Bar(
        x=[e.leaning_value for e in entries],
        y=[e.subject for e in entries],
        orientation="h",
        marker_color=[SIDE_COLORS.get(e.side, COLORS["neutral"]) for e in entries],
        text=[e.leaning.value for e in entries],
        textposition="auto",
        hovertemplate="%{y}: %{x:+.0f}<extra></extra>",
    ))
    fig.add_vline(x=0, line_dash="dash", line_color="gray")
    layout = plotly_layout("compact", transition_ms=transition_ms, animate=animate,
                           showlegend=False)
    layout["xaxis"] = {"range": [-100, 100], "title": "Sell  ←  skew  →  Buy",
                       "gridcolor": COLORS["border"]}
    fig.update_layout(**layout)
    return fig


def cumulative_pnl_figure(curve: pd.DataFrame,
                          transition_ms: int = SIDEBAR_TRANSITION_MS,
                          animate: bool = True) -> go.Figure:
    """Equity line with a drawdown area underneath."""
    fig = go.Figure()
    if curve.empty:
        fig.add_annotation(text="No trades yet", showarrow=False,
                           font=dict(size=14, color=COLORS["text_muted"]))
        fig.update_layout(**plotly_layout(transition_ms=transition_ms, animate=animate))
        return fig

    fig.add_trace(go.Scatter(
        x=curve["trade_num"], y=curve["cumulative"],
        mode="lines", name="Equity",
        line=dict(color=COLORS["blue"], width=2),
        customdata=list(zip(curve["trade_date"].astype(str).str[:10], curve["symbol"], curve["pnl"])),
        hovertemplate="%{customdata[0]} %{customdata[1]}<br>P&L: $%{customdata[2]:,.2f}"
                      "<br>Equity: $%{y:,.2f}<extra></extra>",
    ))
    fig.add_trace(go.Scatter(
        x=curve["trade_num"], y=curve["drawdown"],
        mode="lines", name="Drawdown",
        fill="tozeroy", line=dict(color=COLORS["red"], width=1),
        hovertemplate="Drawdown: $%{y:,.2f}<extra></extra>",
    ))
    fig.add_hline(y=0, line_dash="dash", line_color="gray")
    fig.update_layout(**plotly_layout(transition_ms=transition_ms, animate=animate,
                                      xaxis_title="Trade #", yaxis_title="P&L ($)"))
    return fig
