"""
Bet selection and immediate grading.

The replay records one ``GameReplay`` per rated game: the point-in-time
ratings, the model spread, the market line and the final margin. A
``BetSelector`` turns those into projections and graded bets for one
configuration. The runner feeds it game by game during the replay and
parameter sweeps feed it the frozen list afterwards, so both paths share
exactly the same selection rules.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from spreadlab.data.models import MarketLine, TeamContext
from spreadlab.model.edge import (
    BetSide,
    ConfidenceTier,
    EdgeCalculator,
    EdgeResult,
    UncertaintyModel,
)
from .config import BacktestConfig
from .grading import BetRecord, closing_line_value, grade_spread_bet, settle_profit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameReplay:
    """Everything known about a game at kickoff, plus its result."""
    game_id: str
    season: int
    week: int
    home_team: str
    away_team: str
    neutral_site: bool
    home_rating: float
    away_rating: float
    home_games_played: int
    away_games_played: int
    home_cold_start: bool
    away_cold_start: bool
    model_spread: float
    home_win_prob: float
    margin: int
    line: Optional[MarketLine] = None


@dataclass(frozen=True)
class Projection:
    """Model view of a game with a market line."""
    game_id: str
    season: int
    week: int
    model_spread: float
    market_spread: float
    raw_edge: float
    effective_edge: float
    uncertainty: float
    tier: ConfidenceTier
    side: Optional[BetSide]
    home_rating: float
    away_rating: float
    home_win_prob: float
    home_cold_start: bool = False
    away_cold_start: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['tier'] = self.tier.value
        data['side'] = self.side.value if self.side else None
        return data


@dataclass
class SelectionDiagnostics:
    """Why replayed games did or did not become bets."""
    games_seen: int = 0
    no_line: int = 0
    no_spread: int = 0
    projections: int = 0
    no_side: int = 0
    outside_edge_band: int = 0
    tier_rejected: int = 0
    too_few_games: int = 0
    uncertainty_rejected: int = 0
    not_bettable: int = 0
    zero_stake: int = 0
    bets: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class BetSelector:
    """
    Applies one configuration to replayed games, in replay order.

    Stateful only through the bankroll used by bankroll-based staking.
    """

    def __init__(
        self,
        config: BacktestConfig,
        contexts: Optional[Iterable[TeamContext]] = None
    ):
        self.config = config
        self.uncertainty = UncertaintyModel(config.uncertainty, contexts)
        self.edge_calculator = EdgeCalculator(config.edge)
        self.bankroll = config.initial_bankroll
        self.diagnostics = SelectionDiagnostics()

    def project(self, game: GameReplay) -> Optional[Projection]:
        """Edge and uncertainty for a game, or None without a usable line."""
        projected = self._project(game)
        return projected[0] if projected else None

    def _project(self, game: GameReplay) -> Optional[Tuple[Projection, EdgeResult]]:
        if game.line is None:
            self.diagnostics.no_line += 1
            return None

        market_spread = game.line.spread_for(self.config.line_source)
        if market_spread is None:
            self.diagnostics.no_spread += 1
            return None

        breakdown = self.uncertainty.game_uncertainty(
            game.season, game.week, game.home_team, game.away_team
        )
        edge = self.edge_calculator.compute_edge(
            game.model_spread, market_spread, breakdown.total
        )
        self.diagnostics.projections += 1

        projection = Projection(
            game_id=game.game_id,
            season=game.season,
            week=game.week,
            model_spread=game.model_spread,
            market_spread=market_spread,
            raw_edge=edge.raw_edge,
            effective_edge=edge.effective_edge,
            uncertainty=edge.uncertainty,
            tier=edge.tier,
            side=edge.side,
            home_rating=game.home_rating,
            away_rating=game.away_rating,
            home_win_prob=game.home_win_prob,
            home_cold_start=game.home_cold_start,
            away_cold_start=game.away_cold_start,
        )
        return projection, edge

    def qualifies(self, game: GameReplay, edge: EdgeResult) -> bool:
        """Apply the configured filters, counting the first one that rejects."""
        cfg = self.config
        diag = self.diagnostics

        if edge.side is None:
            diag.no_side += 1
            return False
        if not cfg.edge_in_band(edge.abs_effective_edge):
            diag.outside_edge_band += 1
            return False
        if edge.tier not in cfg.allowed_tiers:
            diag.tier_rejected += 1
            return False
        if min(game.home_games_played, game.away_games_played) < cfg.min_games_played:
            diag.too_few_games += 1
            return False
        if cfg.max_uncertainty is not None and edge.uncertainty > cfg.max_uncertainty:
            diag.uncertainty_rejected += 1
            return False
        if cfg.require_bettable and not self.edge_calculator.is_bettable(edge, game.week):
            diag.not_bettable += 1
            return False
        return True

    def evaluate(self, game: GameReplay) -> Tuple[Optional[Projection], Optional[BetRecord]]:
        """
        Project, select and grade a single game.

        Returns:
            (projection, bet); either may be None
        """
        self.diagnostics.games_seen += 1

        projected = self._project(game)
        if projected is None:
            return None, None

        projection, edge = projected
        if not self.qualifies(game, edge):
            return projection, None

        stake = self.config.staking.calculate_stake(edge, self.bankroll)
        if stake <= 0:
            self.diagnostics.zero_stake += 1
            return projection, None

        line = game.line
        result = grade_spread_bet(projection.side, game.margin, projection.market_spread)
        profit = settle_profit(result, stake, line.price)
        self.bankroll += profit
        self.diagnostics.bets += 1

        bet = BetRecord(
            game_id=game.game_id,
            season=game.season,
            week=game.week,
            side=projection.side,
            stake=stake,
            price=line.price,
            market_spread=projection.market_spread,
            close_spread=line.close_spread,
            model_spread=projection.model_spread,
            raw_edge=projection.raw_edge,
            effective_edge=projection.effective_edge,
            uncertainty=projection.uncertainty,
            tier=projection.tier,
            margin=game.margin,
            result=result,
            profit=profit,
            clv_points=closing_line_value(
                projection.side, projection.market_spread, line.close_spread
            ),
        )
        logger.debug(f"Bet: {bet}")
        return projection, bet

    def evaluate_all(
        self,
        games: Iterable[GameReplay]
    ) -> Tuple[List[Projection], List[BetRecord]]:
        projections: List[Projection] = []
        bets: List[BetRecord] = []
        for game in games:
            projection, bet = self.evaluate(game)
            if projection is not None:
                projections.append(projection)
            if bet is not None:
                bets.append(bet)
        return projections, bets
