"""
Chronological Backtesting Engine Module.

Replays a season (or several) game by game:

    1. Look up both teams' ratings as of the game's week (snapshots only)
    2. Project the model spread
    3. Compare to the market line, select and grade a bet
    4. Update ratings with the actual result
    5. When the replay leaves a week, write that week's snapshots

Ratings for week W are only visible to games in later weeks, so a
prediction never uses its own result or any later one. The runner is a
single-use state machine: IDLE -> REPLAYING -> GRADED -> REPORTED.
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import logging

import pandas as pd

from spreadlab.core.exceptions import ChronologyError, DataValidationError, InvalidStateError
from spreadlab.data.models import Game, MarketLine, TeamContext, index_lines
from spreadlab.model.projection import ProjectionEngine
from spreadlab.model.ratings import RatingStore, RatingUpdater, opponent_adjusted_efficiency
from spreadlab.model.snapshots import PRESEASON_WEEK, SnapshotArchive

from .config import BacktestConfig
from .grading import BetRecord
from .metrics import (
    BacktestStatistics,
    bets_to_dataframe,
    calculate_cumulative_profit,
    calculate_statistics,
    performance_by_edge_threshold,
    performance_by_season,
)
from .selection import BetSelector, GameReplay, Projection, SelectionDiagnostics
from .statistics import RobustnessReport, analyze_robustness
from .validator import InputValidator, ValidationReport


logger = logging.getLogger(__name__)


# ============================================================================
# State and Result Types
# ============================================================================

class RunnerState(Enum):
    """Lifecycle of a BacktestRunner."""
    IDLE = "idle"
    REPLAYING = "replaying"
    GRADED = "graded"
    REPORTED = "reported"


@dataclass
class ReplayDiagnostics:
    """Recoverable conditions met during the replay."""
    games_total: int = 0
    games_replayed: int = 0
    skipped_missing_scores: int = 0
    cold_starts: int = 0
    games_without_line: int = 0
    season_transitions: int = 0
    snapshots_written: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ReplayFrame:
    """
    Frozen output of a replay, reusable by parameter sweeps.

    Holds only what bet selection needs; rating settings are fixed
    by the replay that produced it.
    """
    games: Tuple[GameReplay, ...]
    contexts: Tuple[TeamContext, ...]
    config: BacktestConfig

    def __len__(self) -> int:
        return len(self.games)


@dataclass
class BacktestReport:
    """
    Complete result of a backtest run.

    Attributes:
        config: Configuration used
        bets: Graded bets in replay order
        statistics: Aggregate statistics
        projections: Projections for every game with a usable line
        diagnostics: Replay counters
        selection: Bet selection counters
        robustness: Significance checks
        validation: Input validation report (None if skipped)
        frame: Frozen replay for parameter sweeps
        archive: Rating snapshots written during the replay
    """
    config: BacktestConfig
    bets: List[BetRecord]
    statistics: BacktestStatistics
    projections: List[Projection]
    diagnostics: ReplayDiagnostics
    selection: SelectionDiagnostics
    robustness: RobustnessReport
    frame: ReplayFrame
    archive: SnapshotArchive
    validation: Optional[ValidationReport] = None
    seasons: List[int] = field(default_factory=list)

    @property
    def has_bets(self) -> bool:
        return len(self.bets) > 0

    def bets_dataframe(self) -> pd.DataFrame:
        return bets_to_dataframe(self.bets)

    def projections_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([p.to_dict() for p in self.projections])

    def cumulative_profit(self) -> pd.Series:
        if not self.bets:
            return pd.Series(dtype=float)
        return calculate_cumulative_profit(self.bets_dataframe())

    def edge_threshold_table(self) -> pd.DataFrame:
        return performance_by_edge_threshold(self.bets)

    def season_table(self) -> pd.DataFrame:
        return performance_by_season(self.bets)

    def summary(self) -> str:
        """Generate summary string."""
        seasons = ', '.join(str(s) for s in self.seasons) or 'none'
        return f"""
Backtest Summary
================
Seasons: {seasons}
Config: {self.config.describe()}
Games: {self.diagnostics.games_replayed} replayed, {self.diagnostics.skipped_missing_scores} skipped
{self.statistics}
"""

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly report; identical inputs give identical output."""
        return {
            'config': self.config.to_dict(),
            'seasons': list(self.seasons),
            'statistics': self.statistics.to_dict(),
            'diagnostics': self.diagnostics.to_dict(),
            'selection': self.selection.to_dict(),
            'cumulative_profit': [float(x) for x in self.cumulative_profit()],
            'edge_thresholds': self.edge_threshold_table().to_dict(orient='records'),
            'bets': [b.to_dict() for b in self.bets],
        }


# ============================================================================
# Backtest Runner
# ============================================================================

class BacktestRunner:
    """
    Single-pass chronological replay.

    A RatingStore and SnapshotArchive are created per runner unless the
    caller passes its own; a store already holding the season before the
    first game is regressed into that season before the replay starts.
    Create a new runner per run.

    Example:
        >>> runner = BacktestRunner(BacktestConfig(min_edge=2.0))
        >>> report = runner.run(games, lines)
        >>> print(report.statistics)
    """

    def __init__(
        self,
        config: Optional[BacktestConfig] = None,
        store: Optional[RatingStore] = None,
        archive: Optional[SnapshotArchive] = None
    ):
        self.config = config or BacktestConfig()
        self.updater = RatingUpdater(self.config.rating)
        self.projector = ProjectionEngine(self.config.projection)
        if store is None:
            store = RatingStore(self.config.rating.base_rating)
        if archive is None:
            archive = SnapshotArchive(self.config.rating.base_rating)
        self.store = store
        self.archive = archive

        self._state = RunnerState.IDLE
        self._pending: Dict[str, Tuple[float, int, datetime]] = {}
        self._current: Optional[Tuple[int, int]] = None
        self._last_key: Optional[Tuple[int, int, datetime]] = None

    @property
    def state(self) -> RunnerState:
        return self._state

    def _transition(self, expected: RunnerState, new: RunnerState) -> None:
        if self._state != expected:
            raise InvalidStateError(
                f"Cannot move to {new.value} from {self._state.value} "
                f"(expected {expected.value})"
            )
        self._state = new

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        games: Sequence[Game],
        lines: Union[Mapping[str, MarketLine], Iterable[MarketLine], None] = None,
        contexts: Optional[Iterable[TeamContext]] = None
    ) -> BacktestReport:
        """
        Replay games in order and report graded bets.

        Args:
            games: Games sorted by (season, week, kickoff)
            lines: Market lines keyed by game id (or a list of lines)
            contexts: Optional preseason team contexts for uncertainty

        Returns:
            BacktestReport (a run with zero bets is still a valid report)

        Raises:
            ChronologyError: Games are out of order
            DataValidationError: Inputs fail validation
            IntegrityError: Any no-lookahead or zero-sum violation
        """
        if self._state != RunnerState.IDLE:
            raise InvalidStateError("BacktestRunner is single-use; create a new runner")

        games = list(games)
        line_map = self._index_lines(lines)
        contexts = tuple(contexts or ())

        validation = None
        if self.config.validate_inputs:
            validation = self._validate(games, line_map)

        self._transition(RunnerState.IDLE, RunnerState.REPLAYING)
        logger.info(f"Replaying {len(games)} games | {self.config.describe()}")

        selector = BetSelector(self.config, contexts)
        diagnostics = ReplayDiagnostics(games_total=len(games))
        replays: List[GameReplay] = []
        projections: List[Projection] = []
        bets: List[BetRecord] = []
        seasons: List[int] = []

        for game in games:
            self._advance(game, diagnostics, seasons)

            if not game.is_complete:
                diagnostics.skipped_missing_scores += 1
                logger.debug(f"Skipping {game.game_id}: missing final score")
                continue

            replay = self._replay_game(game, line_map.get(game.game_id), diagnostics)
            replays.append(replay)

            projection, bet = selector.evaluate(replay)
            if projection is not None:
                projections.append(projection)
            if bet is not None:
                bets.append(bet)

            self._apply_result(game, diagnostics)

        self._flush_week(diagnostics)
        self._transition(RunnerState.REPLAYING, RunnerState.GRADED)

        statistics = calculate_statistics(bets)
        robustness = analyze_robustness(bets)
        self._transition(RunnerState.GRADED, RunnerState.REPORTED)

        logger.info(
            f"Replay complete: {diagnostics.games_replayed} games, "
            f"{statistics.total_bets} bets ({statistics.record}), "
            f"ROI {statistics.roi:+.2%}"
        )

        return BacktestReport(
            config=self.config,
            bets=bets,
            statistics=statistics,
            projections=projections,
            diagnostics=diagnostics,
            selection=selector.diagnostics,
            robustness=robustness,
            frame=ReplayFrame(tuple(replays), contexts, self.config),
            archive=self.archive,
            validation=validation,
            seasons=seasons,
        )

    # ------------------------------------------------------------------
    # Replay steps
    # ------------------------------------------------------------------

    @staticmethod
    def _index_lines(lines) -> Dict[str, MarketLine]:
        if lines is None:
            return {}
        if isinstance(lines, Mapping):
            return dict(lines)
        return index_lines(lines)

    def _validate(self, games: List[Game], lines: Dict[str, MarketLine]) -> ValidationReport:
        report = InputValidator(self.config.line_source).validate(games, lines)
        for issue in report.issues:
            logger.warning(str(issue))

        if not report.passed:
            codes = {i.code for i in report.critical}
            logger.error(f"Input validation failed: {sorted(codes)}")
            if 'out_of_order' in codes:
                raise ChronologyError(str(report.by_code('out_of_order')))
            raise DataValidationError(str(report))
        return report

    def _advance(self, game: Game, diagnostics: ReplayDiagnostics, seasons: List[int]) -> None:
        """Enforce ordering and handle week and season boundaries."""
        key = (game.season, game.week, game.kickoff)
        if self._last_key is not None and key < self._last_key:
            logger.error(f"Out-of-order game {game.game_id}: {key} after {self._last_key}")
            raise ChronologyError(
                f"Game {game.game_id} ({game.season} W{game.week}) processed "
                f"after {self._last_key[0]} W{self._last_key[1]}"
            )
        self._last_key = key

        period = (game.season, game.week)
        if period == self._current:
            return

        self._flush_week(diagnostics)

        previous_season = self._current[0] if self._current else None
        if previous_season != game.season:
            seasons.append(game.season)
            if previous_season is not None:
                self._start_season(game.season, previous_season, diagnostics)
            elif self.store.teams(game.season - 1):
                # Store seeded with the prior season by the caller
                self._start_season(game.season, game.season - 1, diagnostics)

        self._current = period

    def _start_season(self, season: int, previous_season: int, diagnostics: ReplayDiagnostics) -> None:
        carried = self.store.start_season(season, previous_season, self.updater)
        for team in sorted(carried):
            entry = carried[team]
            self.archive.record(team, season, PRESEASON_WEEK, entry.rating, entry.games_played)
            diagnostics.snapshots_written += 1
        diagnostics.season_transitions += 1

    def _replay_game(
        self,
        game: Game,
        line: Optional[MarketLine],
        diagnostics: ReplayDiagnostics
    ) -> GameReplay:
        home = self.archive.query(game.home_team, game.season, as_of_week=game.week)
        away = self.archive.query(game.away_team, game.season, as_of_week=game.week)
        diagnostics.cold_starts += int(home.cold_start) + int(away.cold_start)

        if line is None:
            diagnostics.games_without_line += 1

        projection = self.projector.project_game(game, home.rating, away.rating)

        return GameReplay(
            game_id=game.game_id,
            season=game.season,
            week=game.week,
            home_team=game.home_team,
            away_team=game.away_team,
            neutral_site=game.neutral_site,
            home_rating=home.rating,
            away_rating=away.rating,
            home_games_played=home.games_played,
            away_games_played=away.games_played,
            home_cold_start=home.cold_start,
            away_cold_start=away.cold_start,
            model_spread=projection.model_spread,
            home_win_prob=projection.home_win_prob,
            margin=game.margin,
            line=line,
        )

    def _apply_result(self, game: Game, diagnostics: ReplayDiagnostics) -> None:
        home = self.store.get(game.home_team, game.season)
        away = self.store.get(game.away_team, game.season)

        home_eff = away_eff = None
        if game.home_efficiency is not None and game.away_efficiency is not None:
            mean = self.config.rating.mean_rating
            weight = self.config.opponent_strength_weight
            home_eff = opponent_adjusted_efficiency(game.home_efficiency, away.rating, mean, weight)
            away_eff = opponent_adjusted_efficiency(game.away_efficiency, home.rating, mean, weight)

        update = self.updater.update(
            home.rating,
            away.rating,
            game.home_score,
            game.away_score,
            home.games_played,
            away.games_played,
            neutral_site=game.neutral_site,
            home_efficiency=home_eff,
            away_efficiency=away_eff,
        )

        new_home = (home.rating + update.home_delta, home.games_played + 1)
        new_away = (away.rating + update.away_delta, away.games_played + 1)
        self.store.set(game.home_team, game.season, *new_home)
        self.store.set(game.away_team, game.season, *new_away)

        self._pending[game.home_team] = (*new_home, game.kickoff)
        self._pending[game.away_team] = (*new_away, game.kickoff)

        diagnostics.games_replayed += 1
        logger.debug(f"{game}: {update}")

    def _flush_week(self, diagnostics: ReplayDiagnostics) -> None:
        """Write snapshots for every team that played in the week just closed."""
        if not self._pending or self._current is None:
            self._pending.clear()
            return

        season, week = self._current
        for team in sorted(self._pending):
            rating, games_played, kickoff = self._pending[team]
            self.archive.record(team, season, week, rating, games_played, created_at=kickoff)
            diagnostics.snapshots_written += 1
        self._pending.clear()
