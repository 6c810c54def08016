"""
Backtesting Performance Metrics Module.

Aggregates graded spread bets into portfolio statistics.

Metrics Categories:
    1. Record - wins, losses, pushes, win rate (pushes excluded)
    2. Profitability - ROI, total profit, cumulative profit curve
    3. Drawdown & Streaks - max drawdown from the running peak,
       longest winning and losing runs
    4. Market - closing-line value
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .grading import BetOutcome, BetRecord

DEFAULT_EDGE_THRESHOLDS: Tuple[float, ...] = (0.0, 0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 4.0, 5.0)

BET_COLUMNS = [
    'game_id', 'season', 'week', 'side', 'stake', 'price', 'market_spread',
    'close_spread', 'model_spread', 'raw_edge', 'effective_edge',
    'uncertainty', 'tier', 'margin', 'result', 'profit', 'clv_points',
    'clv_cents',
]


@dataclass(frozen=True)
class BacktestStatistics:
    """
    Aggregate statistics for a list of graded bets.

    Attributes:
        total_bets: Number of bets placed (pushes included)
        wins / losses / pushes: Graded record
        win_rate: wins / (wins + losses)
        total_staked: Units wagered
        total_profit: Units won or lost
        roi: total_profit / total_staked
        max_drawdown: Largest drop of cumulative profit below its running
            peak (the peak starts at zero)
        longest_win_streak / longest_loss_streak: Longest runs; pushes
            neither extend nor break a run
        avg_clv: Mean CLV in points over bets with a closing line
        positive_clv_rate: Share of those bets that beat the close
    """
    total_bets: int = 0
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    win_rate: float = 0.0
    total_staked: float = 0.0
    total_profit: float = 0.0
    roi: float = 0.0
    max_drawdown: float = 0.0
    final_drawdown: float = 0.0
    longest_win_streak: int = 0
    longest_loss_streak: int = 0
    avg_clv: Optional[float] = None
    positive_clv_rate: Optional[float] = None
    clv_bets: int = 0
    avg_effective_edge: float = 0.0
    home_bets: int = 0
    home_wins: int = 0
    away_bets: int = 0
    away_wins: int = 0

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}-{self.pushes}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        clv = "n/a" if self.avg_clv is None else f"{self.avg_clv:+.2f} pts"
        return f"""
═══════════════════════════════════════════════════════════════
                    BACKTEST PERFORMANCE REPORT
═══════════════════════════════════════════════════════════════

📊 RECORD
   Bets:                {self.total_bets:,}
   Record (W-L-P):      {self.record}
   Win Rate:            {self.win_rate:.2%}
   Home / Away Bets:    {self.home_bets} / {self.away_bets}

💰 PROFITABILITY
   Total Staked:        {self.total_staked:,.2f}u
   Profit/Loss:         {self.total_profit:+,.2f}u
   ROI:                 {self.roi:+.2%}

📉 DRAWDOWN & STREAKS
   Max Drawdown:        {self.max_drawdown:,.2f}u
   Longest Win Streak:  {self.longest_win_streak}
   Longest Loss Streak: {self.longest_loss_streak}

🎯 MARKET
   Avg CLV:             {clv}
   Avg Effective Edge:  {self.avg_effective_edge:.2f}
═══════════════════════════════════════════════════════════════
"""


def bets_to_dataframe(bets: Sequence[BetRecord]) -> pd.DataFrame:
    """Bet records as a DataFrame in replay order."""
    return pd.DataFrame([b.to_dict() for b in bets], columns=BET_COLUMNS)


def calculate_cumulative_profit(bet_results: pd.DataFrame) -> pd.Series:
    """
    Running profit after each bet.

    Args:
        bet_results: DataFrame with 'profit' column, in replay order

    Returns:
        Series of cumulative profit
    """
    return bet_results['profit'].cumsum()


def calculate_drawdown(cumulative_profit: pd.Series) -> pd.Series:
    """
    Drawdown series: running peak minus current value.

    The peak starts at zero, so losing the first bets is a drawdown.
    """
    if cumulative_profit.empty:
        return cumulative_profit.copy()
    running_peak = cumulative_profit.cummax().clip(lower=0.0)
    return running_peak - cumulative_profit


def calculate_streaks(outcomes: Sequence[BetOutcome]) -> Tuple[int, int]:
    """
    Longest winning and losing streaks.

    Returns:
        Tuple of (longest_win_streak, longest_loss_streak)
    """
    longest_win = longest_loss = 0
    current_win = current_loss = 0

    for outcome in outcomes:
        if outcome == BetOutcome.WIN:
            current_win += 1
            current_loss = 0
            longest_win = max(longest_win, current_win)
        elif outcome == BetOutcome.LOSS:
            current_loss += 1
            current_win = 0
            longest_loss = max(longest_loss, current_loss)

    return longest_win, longest_loss


def calculate_statistics(bets: Sequence[BetRecord]) -> BacktestStatistics:
    """
    Calculate aggregate statistics from graded bets.

    Args:
        bets: Graded bets in replay order

    Returns:
        BacktestStatistics (all zero for an empty list)
    """
    if not bets:
        return BacktestStatistics()

    df = bets_to_dataframe(bets)

    wins = int((df['result'] == BetOutcome.WIN.value).sum())
    losses = int((df['result'] == BetOutcome.LOSS.value).sum())
    pushes = int((df['result'] == BetOutcome.PUSH.value).sum())
    decided = wins + losses

    total_staked = float(df['stake'].sum())
    total_profit = float(df['profit'].sum())
    roi = total_profit / total_staked if total_staked > 0 else 0.0

    cumulative = calculate_cumulative_profit(df)
    drawdown = calculate_drawdown(cumulative)

    longest_win, longest_loss = calculate_streaks([b.result for b in bets])

    clv = df['clv_points'].dropna().astype(float)
    avg_clv = float(clv.mean()) if len(clv) else None
    positive_clv_rate = float((clv > 0).mean()) if len(clv) else None

    home = df[df['side'] == 'home']
    away = df[df['side'] == 'away']

    return BacktestStatistics(
        total_bets=len(df),
        wins=wins,
        losses=losses,
        pushes=pushes,
        win_rate=wins / decided if decided > 0 else 0.0,
        total_staked=total_staked,
        total_profit=total_profit,
        roi=roi,
        max_drawdown=float(drawdown.max()),
        final_drawdown=float(drawdown.iloc[-1]),
        longest_win_streak=longest_win,
        longest_loss_streak=longest_loss,
        avg_clv=avg_clv,
        positive_clv_rate=positive_clv_rate,
        clv_bets=int(len(clv)),
        avg_effective_edge=float(np.abs(df['effective_edge']).mean()),
        home_bets=len(home),
        home_wins=int((home['result'] == BetOutcome.WIN.value).sum()),
        away_bets=len(away),
        away_wins=int((away['result'] == BetOutcome.WIN.value).sum()),
    )


def performance_by_edge_threshold(
    bets: Sequence[BetRecord],
    thresholds: Sequence[float] = DEFAULT_EDGE_THRESHOLDS
) -> pd.DataFrame:
    """
    Record and ROI of the bets whose |effective edge| clears each threshold.

    Returns:
        DataFrame with one row per threshold
    """
    columns = ['threshold', 'bets', 'wins', 'losses', 'pushes', 'win_rate', 'profit', 'roi']
    rows = []
    for threshold in thresholds:
        subset = [b for b in bets if abs(b.effective_edge) >= threshold]
        stats = calculate_statistics(subset)
        rows.append([
            threshold, stats.total_bets, stats.wins, stats.losses, stats.pushes,
            stats.win_rate, stats.total_profit, stats.roi,
        ])
    return pd.DataFrame(rows, columns=columns)


def performance_by_season(bets: Sequence[BetRecord]) -> pd.DataFrame:
    """Record and ROI per season, seasons ascending."""
    columns = ['season', 'bets', 'wins', 'losses', 'pushes', 'win_rate', 'profit', 'roi']
    rows = []
    for season in sorted({b.season for b in bets}):
        stats = calculate_statistics([b for b in bets if b.season == season])
        rows.append([
            season, stats.total_bets, stats.wins, stats.losses, stats.pushes,
            stats.win_rate, stats.total_profit, stats.roi,
        ])
    return pd.DataFrame(rows, columns=columns)
