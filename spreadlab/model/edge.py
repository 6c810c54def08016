"""
Edge and Uncertainty Module.

Compares the model spread to the market spread and shrinks the raw
disagreement by how much we trust the ratings at that point of the
season.

Edge:
    raw_edge       = model_spread - market_spread
    effective_edge = raw_edge * (1 - uncertainty)
    side           = home if raw_edge < 0, away if raw_edge > 0

Uncertainty:
    total = min(cap, week_weight * week_stage + team_weight * mean(home, away))

    Week stage: 0.45 (weeks 0-1), 0.25 (weeks 2-4), 0.10 (week 5+)
    Team: roster continuity quartile + starter availability + coaching change
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

import numpy as np

from spreadlab.data.models import StarterStatus, TeamContext

logger = logging.getLogger(__name__)


class BetSide(str, Enum):
    """Side of a spread bet."""
    HOME = "home"
    AWAY = "away"


class ConfidenceTier(str, Enum):
    """Whether an edge can be acted on directly."""
    OK = "ok"
    REQUIRES_CONFIRMATION = "requires-confirmation"


# ============================================================================
# Configuration
# ============================================================================

@dataclass(frozen=True)
class UncertaintyConfig:
    """
    Uncertainty penalties.

    ``week_schedule`` holds (last_week, value) steps in ascending week
    order; weeks past the last step use ``late_season``.
    """
    week_schedule: Tuple[Tuple[int, float], ...] = ((1, 0.45), (4, 0.25))
    late_season: float = 0.10
    cap: float = 0.75
    week_weight: float = 1.0
    team_weight: float = 1.0

    roster_bottom_quartile: float = 0.15
    roster_second_quartile: float = 0.08
    starter_transfer_out: float = 0.20
    coaching_change: float = 0.10

    starter_confirmed: float = -0.10
    starter_unknown: float = 0.15
    starter_questionable: float = 0.20
    starter_out: float = 0.20

    # Applied per component when a team has no preseason context at all
    missing_context: float = 0.10

    default_quartiles: Tuple[float, float] = (0.35, 0.50)

    def __post_init__(self):
        values = [v for _, v in self.week_schedule] + [self.late_season]
        if any(a < b for a, b in zip(values, values[1:])):
            raise ValueError("Week uncertainty must not increase with week")


@dataclass(frozen=True)
class EdgeConfig:
    """
    Attributes:
        high_edge_threshold: |raw edge| that triggers confirmation at high uncertainty
        high_uncertainty_threshold: Uncertainty that triggers confirmation on big edges
        edge_floor: Minimum |effective edge| considered bettable
        early_season_last_week: Last week held to the early uncertainty limit
        max_uncertainty_early: Uncertainty limit through the early season
        max_uncertainty_late: Uncertainty limit afterwards
    """
    high_edge_threshold: float = 10.0
    high_uncertainty_threshold: float = 0.40
    edge_floor: float = 3.0
    early_season_last_week: int = 4
    max_uncertainty_early: float = 0.50
    max_uncertainty_late: float = 0.60


# ============================================================================
# Result Types
# ============================================================================

@dataclass(frozen=True)
class TeamUncertainty:
    """Per-team uncertainty components."""
    roster: float
    starter: float
    coach: float
    has_context: bool = True

    @property
    def total(self) -> float:
        return self.roster + self.starter + self.coach


@dataclass(frozen=True)
class UncertaintyBreakdown:
    """Uncertainty score for a game with its components."""
    week: float
    home: TeamUncertainty
    away: TeamUncertainty
    total: float

    @property
    def team_average(self) -> float:
        return (self.home.total + self.away.total) / 2.0


@dataclass(frozen=True)
class EdgeResult:
    """Model vs market comparison for one game."""
    model_spread: float
    market_spread: float
    raw_edge: float
    effective_edge: float
    uncertainty: float
    side: Optional[BetSide]
    tier: ConfidenceTier

    @property
    def abs_effective_edge(self) -> float:
        return abs(self.effective_edge)

    def __str__(self) -> str:
        side = self.side.value if self.side else "none"
        return (
            f"model {self.model_spread:+.1f} vs market {self.market_spread:+.1f} | "
            f"raw {self.raw_edge:+.2f} eff {self.effective_edge:+.2f} "
            f"(unc {self.uncertainty:.2f}) -> {side} [{self.tier.value}]"
        )


# ============================================================================
# Uncertainty Model
# ============================================================================

def continuity_quartiles(
    values: Sequence[float],
    default: Tuple[float, float] = UncertaintyConfig.default_quartiles
) -> Tuple[float, float]:
    """
    25th and 50th percentile of returning production.

    Uses the lower order statistic so cut-offs are actual team values.
    """
    if len(values) == 0:
        return default
    ordered = np.sort(np.asarray(values, dtype=float))
    n = len(ordered)
    return float(ordered[int(n * 0.25)]), float(ordered[int(n * 0.5)])


class UncertaintyModel:
    """
    Scores how much to trust a projection.

    Example:
        >>> model = UncertaintyModel()
        >>> model.week_uncertainty(0), model.week_uncertainty(3), model.week_uncertainty(9)
        (0.45, 0.25, 0.1)
    """

    def __init__(
        self,
        config: Optional[UncertaintyConfig] = None,
        contexts: Optional[Iterable[TeamContext]] = None
    ):
        self.config = config or UncertaintyConfig()
        self._contexts: Dict[Tuple[str, int], TeamContext] = {}
        self._quartiles: Dict[int, Tuple[float, float]] = {}

        by_season: Dict[int, List[float]] = {}
        for ctx in contexts or []:
            self._contexts[(ctx.team_id, ctx.season)] = ctx
            if ctx.returning_production is not None:
                by_season.setdefault(ctx.season, []).append(ctx.returning_production)

        for season in sorted(by_season):
            self._quartiles[season] = continuity_quartiles(
                by_season[season], self.config.default_quartiles
            )

    def quartiles(self, season: int) -> Tuple[float, float]:
        return self._quartiles.get(season, self.config.default_quartiles)

    def week_uncertainty(self, week: int) -> float:
        for last_week, value in self.config.week_schedule:
            if week <= last_week:
                return value
        return self.config.late_season

    def team_uncertainty(self, team_id: str, season: int) -> TeamUncertainty:
        cfg = self.config
        ctx = self._contexts.get((team_id, season))

        if ctx is None:
            return TeamUncertainty(
                roster=cfg.missing_context,
                starter=cfg.missing_context,
                coach=cfg.missing_context,
                has_context=False,
            )

        q25, q50 = self.quartiles(season)
        returning = ctx.returning_production
        if returning is None:
            returning = 0.5

        roster = 0.0
        if returning < q25:
            roster = cfg.roster_bottom_quartile
        elif returning < q50:
            roster = cfg.roster_second_quartile

        starter = cfg.starter_transfer_out if ctx.starter_transferred_out else 0.0
        if ctx.starter_status == StarterStatus.CONFIRMED:
            starter = max(0.0, starter + cfg.starter_confirmed)
        elif ctx.starter_status == StarterStatus.UNKNOWN:
            starter += cfg.starter_unknown
        elif ctx.starter_status == StarterStatus.QUESTIONABLE:
            starter += cfg.starter_questionable
        elif ctx.starter_status == StarterStatus.OUT:
            starter += cfg.starter_out

        coach = cfg.coaching_change if ctx.coaching_change else 0.0

        return TeamUncertainty(roster=roster, starter=starter, coach=coach)

    def game_uncertainty(
        self,
        season: int,
        week: int,
        home_team: str,
        away_team: str
    ) -> UncertaintyBreakdown:
        cfg = self.config
        week_unc = self.week_uncertainty(week)
        home = self.team_uncertainty(home_team, season)
        away = self.team_uncertainty(away_team, season)

        team_avg = (home.total + away.total) / 2.0
        total = min(cfg.cap, cfg.week_weight * week_unc + cfg.team_weight * team_avg)

        return UncertaintyBreakdown(week=week_unc, home=home, away=away, total=total)


# ============================================================================
# Edge Calculator
# ============================================================================

class EdgeCalculator:
    """
    Pure model-vs-market comparison.

    Example:
        >>> calc = EdgeCalculator()
        >>> result = calc.compute_edge(-10.0, -7.0, 0.0)
        >>> result.raw_edge, result.side.value
        (-3.0, 'home')
    """

    def __init__(self, config: Optional[EdgeConfig] = None):
        self.config = config or EdgeConfig()

    def classify(self, raw_edge: float, uncertainty: float) -> ConfidenceTier:
        cfg = self.config
        if (
            abs(raw_edge) >= cfg.high_edge_threshold
            and uncertainty >= cfg.high_uncertainty_threshold
        ):
            return ConfidenceTier.REQUIRES_CONFIRMATION
        return ConfidenceTier.OK

    def compute_edge(
        self,
        model_spread: float,
        market_spread: float,
        uncertainty: float
    ) -> EdgeResult:
        """
        Compare a model spread with the market.

        Args:
            model_spread: Model spread, home perspective
            market_spread: Market spread, home perspective
            uncertainty: Uncertainty score in [0, 1]

        Returns:
            EdgeResult; side is None when model and market agree exactly
        """
        if not 0.0 <= uncertainty <= 1.0:
            raise ValueError(f"Uncertainty out of range: {uncertainty}")

        raw_edge = model_spread - market_spread
        effective_edge = raw_edge * (1.0 - uncertainty)

        if raw_edge < 0:
            side = BetSide.HOME
        elif raw_edge > 0:
            side = BetSide.AWAY
        else:
            side = None

        return EdgeResult(
            model_spread=model_spread,
            market_spread=market_spread,
            raw_edge=raw_edge,
            effective_edge=effective_edge,
            uncertainty=uncertainty,
            side=side,
            tier=self.classify(raw_edge, uncertainty),
        )

    def max_uncertainty(self, week: int) -> float:
        if week <= self.config.early_season_last_week:
            return self.config.max_uncertainty_early
        return self.config.max_uncertainty_late

    def is_bettable(self, edge: EdgeResult, week: int) -> bool:
        """
        Production betting rule: effective edge clears the floor and
        uncertainty is within the limit for the stage of the season.
        """
        return (
            edge.side is not None
            and edge.abs_effective_edge >= self.config.edge_floor
            and edge.uncertainty <= self.max_uncertainty(week)
        )


def rank_edges(edges: Iterable[Tuple[str, EdgeResult]]) -> List[Tuple[str, EdgeResult]]:
    """Sort (game id, edge) pairs by |effective edge| descending, game id ascending."""
    return sorted(edges, key=lambda item: (-item[1].abs_effective_edge, item[0]))
