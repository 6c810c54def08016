"""
Spread Bet Grading Module.

Settles a spread bet against the final margin and measures closing-line
value (CLV): how far the market moved toward our side between the bet
and the close.

Grading (home perspective spread, negative = home favoured):
    home bet:  adjusted = margin + spread
    away bet:  adjusted = -(margin + spread)
    win if adjusted > 0, loss if adjusted < 0, push only if exactly 0
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional

from spreadlab.core.odds import payout_multiplier
from spreadlab.model.edge import BetSide, ConfidenceTier

# One point of spread is worth roughly 20 cents of price at -110
CENTS_PER_POINT = 20.0


class BetOutcome(str, Enum):
    """Possible outcomes of a graded spread bet."""
    WIN = "win"
    LOSS = "loss"
    PUSH = "push"


def cover_margin(side: BetSide, margin: float, market_spread: float) -> float:
    """Points by which the chosen side beat the spread (negative if it failed)."""
    adjusted = margin + market_spread
    return adjusted if side == BetSide.HOME else -adjusted


def grade_spread_bet(side: BetSide, margin: float, market_spread: float) -> BetOutcome:
    """
    Grade a spread bet.

    Example:
        >>> grade_spread_bet(BetSide.HOME, 10, -7.0)
        <BetOutcome.WIN: 'win'>
        >>> grade_spread_bet(BetSide.AWAY, 7, -7.0)
        <BetOutcome.PUSH: 'push'>
    """
    adjusted = cover_margin(side, margin, market_spread)
    if adjusted > 0:
        return BetOutcome.WIN
    if adjusted < 0:
        return BetOutcome.LOSS
    return BetOutcome.PUSH


def settle_profit(outcome: BetOutcome, stake: float, price: float) -> float:
    """Profit in stake units: win pays the price, loss forfeits the stake."""
    if outcome == BetOutcome.WIN:
        return stake * payout_multiplier(price)
    if outcome == BetOutcome.LOSS:
        return -stake
    return 0.0


def closing_line_value(
    side: BetSide,
    bet_spread: float,
    close_spread: Optional[float]
) -> Optional[float]:
    """
    CLV in points; positive means we beat the closing number.

    The closing spread moving down (toward the home team) helps a home
    bet: we laid fewer points than the close. The reverse helps an
    away bet.
    """
    if close_spread is None:
        return None
    movement = close_spread - bet_spread
    return -movement if side == BetSide.HOME else movement


def clv_to_cents(clv_points: Optional[float]) -> Optional[float]:
    if clv_points is None:
        return None
    return clv_points * CENTS_PER_POINT


@dataclass(frozen=True)
class BetRecord:
    """A graded bet produced by the replay."""
    game_id: str
    season: int
    week: int
    side: BetSide
    stake: float
    price: int
    market_spread: float
    close_spread: Optional[float]
    model_spread: float
    raw_edge: float
    effective_edge: float
    uncertainty: float
    tier: ConfidenceTier
    margin: int
    result: BetOutcome
    profit: float
    clv_points: Optional[float] = None

    @property
    def won(self) -> bool:
        return self.result == BetOutcome.WIN

    @property
    def clv_cents(self) -> Optional[float]:
        return clv_to_cents(self.clv_points)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['side'] = self.side.value
        data['tier'] = self.tier.value
        data['result'] = self.result.value
        data['clv_cents'] = self.clv_cents
        return data

    def __str__(self) -> str:
        return (
            f"{self.game_id} {self.side.value} {self.market_spread:+.1f} "
            f"@ {self.price} -> {self.result.value} {self.profit:+.2f}u"
        )
