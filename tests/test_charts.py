"""Tests for figure builders and the shared chart layout."""

from __future__ import annotations

import pandas as pd


def _entries():
    from analytics.emotions import aggregate_emotions

    return aggregate_emotions([
        {"side": "Buy", "emotional_state": ["FOMO"]},
        {"side": "Sell", "emotional_state": ["FOMO"]},
        {"side": "Buy", "emotional_state": ["PATIENCE"]},
    ])


class TestPlotlyLayout:
    def test_transition_follows_sidebar_window(self):
        from ui_theme import plotly_layout

        layout = plotly_layout(transition_ms=300)
        assert layout["transition"]["duration"] == 300

    def test_no_animation_mid_transition(self):
        from ui_theme import plotly_layout

        assert plotly_layout(transition_ms=300, animate=False)["transition"]["duration"] == 0

    def test_overrides(self):
        from ui_theme import CHART_HEIGHTS, plotly_layout

        layout = plotly_layout("compact", showlegend=False)
        assert layout["height"] == CHART_HEIGHTS["compact"]
        assert layout["showlegend"] is False


class TestEmotionRadar:
    def test_traces_close_the_polygon(self):
        from charts import emotion_radar_figure

        fig = emotion_radar_figure(_entries())
        outline = fig.data[0]
        assert list(outline.theta) == ["FOMO", "PATIENCE", "FOMO"]
        assert list(fig.layout.polar.radialaxis.range) == [0, 100]

    def test_marker_colors_follow_side(self):
        from charts import SIDE_COLORS, emotion_radar_figure

        markers = emotion_radar_figure(_entries()).data[1]
        assert list(markers.marker.color) == [SIDE_COLORS["NULL"], SIDE_COLORS["Buy"]]

    def test_empty(self):
        from charts import emotion_radar_figure

        fig = emotion_radar_figure([])
        assert len(fig.data) == 0
        assert fig.layout.annotations[0].text == "No emotional data"

    def test_transition_duration(self):
        from charts import emotion_radar_figure

        fig = emotion_radar_figure(_entries(), transition_ms=250, animate=True)
        assert fig.layout.transition.duration == 250


class TestOtherFigures:
    def test_leaning_bar(self):
        from charts import emotion_leaning_bar

        bar = emotion_leaning_bar(_entries()).data[0]
        assert list(bar.y) == ["FOMO", "PATIENCE"]
        assert list(bar.x) == [0.0, 100.0]

    def test_cumulative_pnl(self):
        from analytics.performance import cumulative_pnl
        from charts import cumulative_pnl_figure

        df = pd.DataFrame({
            "trade_date": pd.date_range("2024-01-02", periods=3),
            "symbol": ["A", "B", "C"],
            "pnl": [10.0, -5.0, 20.0],
        })
        fig = cumulative_pnl_figure(cumulative_pnl(df))
        assert [t.name for t in fig.data] == ["Equity", "Drawdown"]
        assert list(fig.data[0].y) == [10.0, 5.0, 25.0]

    def test_cumulative_pnl_empty(self):
        from analytics.performance import cumulative_pnl
        from charts import cumulative_pnl_figure

        fig = cumulative_pnl_figure(cumulative_pnl(pd.DataFrame()))
        assert len(fig.data) == 0


class TestModels:
    def test_side_parse(self):
        from models import Side

        assert Side.parse(" buy ") == Side.BUY
        assert Side.parse("SELL") == Side.SELL
        assert Side.parse(None) == Side.NONE
        assert Side.parse("short") == Side.NONE

    def test_compute_pnl(self):
        from models import compute_pnl

        assert compute_pnl("Buy", 10.0, 12.5, 4) == 10.0
        assert compute_pnl("Sell", 10.0, 12.5, 4) == -10.0
        assert compute_pnl("Buy", 10.0, None, 4) is None

    def test_emotion_tags_match_vocabulary(self):
        from config import EMOTION_TAGS
        from models import EmotionTag

        assert [t.value for t in EmotionTag] == EMOTION_TAGS
        assert EmotionTag.FOMO == "FOMO"
