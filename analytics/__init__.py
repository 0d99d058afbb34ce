from analytics.emotions import aggregate_emotions, filter_trades_by_emotions, normalize_emotions
from analytics.performance import cumulative_pnl, streak_summary, summary_stats
from analytics.vrating import VRating, calculate_vrating, single_trade_vrating
