"""
Backtest configuration.

One frozen options struct per run. Rating and projection settings shape
the replay itself; everything else only decides which replayed games
become bets, so a parameter sweep can vary it against a single frozen
replay.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from spreadlab.core.config import Settings
from spreadlab.data.models import LineSource
from spreadlab.model.edge import ConfidenceTier, EdgeConfig, UncertaintyConfig
from spreadlab.model.projection import ProjectionConfig
from spreadlab.model.ratings import RatingConfig
from .staking import FlatStake, StakingStrategy


@dataclass(frozen=True)
class BacktestConfig:
    """
    Configuration for a backtest run.

    Attributes:
        min_edge: Smallest |effective edge| that qualifies a bet
        max_edge: Largest |effective edge| that qualifies (None = no limit)
        allowed_tiers: Confidence tiers that may be bet
        line_source: Bet at the opening or the closing spread
        staking: Staking strategy (units)
        initial_bankroll: Starting bankroll in units for bankroll-based staking
        min_games_played: Both teams need this many rated games this season
        max_uncertainty: Skip games above this uncertainty (None = no limit)
        require_bettable: Also apply the production edge-floor/uncertainty rule
        opponent_strength_weight: Opponent adjustment for performance signals
        validate_inputs: Run the input validator before replaying
        rating / projection / uncertainty / edge: Model settings
    """
    min_edge: float = 3.0
    max_edge: Optional[float] = None
    allowed_tiers: Tuple[ConfidenceTier, ...] = (ConfidenceTier.OK,)
    line_source: LineSource = LineSource.OPEN
    staking: StakingStrategy = field(default_factory=FlatStake)
    initial_bankroll: float = 100.0
    min_games_played: int = 0
    max_uncertainty: Optional[float] = None
    require_bettable: bool = False
    opponent_strength_weight: float = 0.2
    validate_inputs: bool = True

    rating: RatingConfig = field(default_factory=RatingConfig)
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    uncertainty: UncertaintyConfig = field(default_factory=UncertaintyConfig)
    edge: EdgeConfig = field(default_factory=EdgeConfig)

    def __post_init__(self):
        if self.min_edge < 0:
            raise ValueError("min_edge must be non-negative")
        if self.max_edge is not None and self.max_edge < self.min_edge:
            raise ValueError("max_edge must be >= min_edge")
        if self.initial_bankroll <= 0:
            raise ValueError("initial_bankroll must be positive")
        # Accept plain strings from CLI / settings
        object.__setattr__(self, 'line_source', LineSource(self.line_source))
        object.__setattr__(
            self, 'allowed_tiers', tuple(ConfidenceTier(t) for t in self.allowed_tiers)
        )

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "BacktestConfig":
        """Seed selection defaults from application settings."""
        values: Dict[str, Any] = dict(
            min_edge=settings.MIN_EDGE,
            max_edge=settings.MAX_EDGE,
            line_source=LineSource(settings.LINE_SOURCE),
            staking=FlatStake(settings.STAKE_UNITS),
        )
        values.update(overrides)
        return cls(**values)

    def with_changes(self, **changes) -> "BacktestConfig":
        return replace(self, **changes)

    def edge_in_band(self, abs_edge: float) -> bool:
        if abs_edge < self.min_edge:
            return False
        return self.max_edge is None or abs_edge <= self.max_edge

    def describe(self) -> str:
        band = f"[{self.min_edge:g}, {'inf' if self.max_edge is None else f'{self.max_edge:g}'}]"
        return (
            f"edge {band} | line {self.line_source.value} | {self.staking.name} | "
            f"min games {self.min_games_played} | max unc {self.max_uncertainty}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Flat, JSON-friendly view of the settings that shape results."""
        return {
            'min_edge': self.min_edge,
            'max_edge': self.max_edge,
            'allowed_tiers': [t.value for t in self.allowed_tiers],
            'line_source': self.line_source.value,
            'staking': self.staking.name,
            'initial_bankroll': self.initial_bankroll,
            'min_games_played': self.min_games_played,
            'max_uncertainty': self.max_uncertainty,
            'require_bettable': self.require_bettable,
            'opponent_strength_weight': self.opponent_strength_weight,
            'rating': self.rating.to_dict(),
            'projection': {
                'home_field_advantage': self.projection.home_field_advantage,
                'rating_scale': self.projection.rating_scale,
            },
            'uncertainty': {
                'week_weight': self.uncertainty.week_weight,
                'team_weight': self.uncertainty.team_weight,
                'cap': self.uncertainty.cap,
            },
        }
