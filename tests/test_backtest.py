"""
Tests for the chronological backtest runner.

Tests cover:
    - Single game projection, selection and grading
    - Point-in-time ratings (same-week results are not visible)
    - Season transitions and preseason snapshots
    - Caller-supplied rating store and snapshot archive
    - Recoverable conditions (missing scores, missing lines, cold starts)
    - Integrity failures (chronology, duplicates, reuse of a runner)
    - Selection filters and determinism
"""

import pytest

from spreadlab.backtest import (
    BacktestConfig,
    BacktestRunner,
    BetOutcome,
    PercentageStake,
    RunnerState,
)
from spreadlab.core.exceptions import (
    ChronologyError,
    DataValidationError,
    IntegrityError,
    InvalidStateError,
)
from spreadlab.model.edge import BetSide
from spreadlab.model.ratings import RatingStore, RatingUpdater
from spreadlab.model.snapshots import PRESEASON_WEEK, SnapshotArchive, SnapshotSource


@pytest.fixture
def any_edge():
    return BacktestConfig(min_edge=0.0)


# ============================================================================
# Single Game
# ============================================================================

class TestSingleGame:
    """One week-1 game between two unrated teams."""

    @pytest.fixture
    def report(self, make_game, make_line, any_edge):
        game = make_game("g1", home_score=24, away_score=14)
        line = make_line("g1", open_spread=5.0, close_spread=4.0)
        return BacktestRunner(any_edge).run([game], [line])

    def test_projection(self, report):
        projection = report.projections[0]

        assert projection.model_spread == pytest.approx(-3.0)
        assert projection.market_spread == 5.0
        assert projection.raw_edge == pytest.approx(-8.0)
        # Week 1 (0.45) plus two teams without context (0.30)
        assert projection.uncertainty == pytest.approx(0.75)
        assert projection.effective_edge == pytest.approx(-2.0)
        assert projection.home_cold_start and projection.away_cold_start

    def test_bet_graded(self, report):
        bet = report.bets[0]

        assert bet.side == BetSide.HOME
        assert bet.result == BetOutcome.WIN
        assert bet.profit == pytest.approx(100 / 110)
        assert bet.clv_points == pytest.approx(1.0)

    def test_diagnostics(self, report):
        d = report.diagnostics

        assert d.games_total == 1
        assert d.games_replayed == 1
        assert d.cold_starts == 2
        assert d.snapshots_written == 2

    def test_ratings_updated_after_prediction(self, report):
        home = report.archive.query("HOME", 2023, as_of_week=2)
        away = report.archive.query("AWAY", 2023, as_of_week=2)

        assert home.rating > 1500 > away.rating
        assert home.rating + away.rating == pytest.approx(3000)
        assert home.games_played == 1

    def test_runner_state(self, make_game, any_edge):
        runner = BacktestRunner(any_edge)
        assert runner.state == RunnerState.IDLE

        runner.run([make_game()])
        assert runner.state == RunnerState.REPORTED


# ============================================================================
# Point-in-time Ratings
# ============================================================================

class TestNoLookahead:

    def test_same_week_result_not_visible(self, make_game, any_edge):
        games = [
            make_game("g1", week=1, home_team="A", away_team="B", home_score=40, away_score=10),
            make_game("g2", week=1, home_team="A", away_team="C", home_score=20, away_score=17, slot=3),
            make_game("g3", week=2, home_team="A", away_team="C", home_score=20, away_score=17),
        ]
        report = BacktestRunner(any_edge).run(games)
        replays = report.frame.games

        assert replays[0].home_rating == 1500.0
        # g1 was already final, but it is in the same week
        assert replays[1].home_rating == 1500.0
        assert replays[1].home_cold_start
        assert replays[2].home_rating > 1500.0
        assert replays[2].home_games_played == 2

    def test_replay_ratings_match_archive(self, league, loose_config):
        games, lines = league
        report = BacktestRunner(loose_config).run(games, lines)

        for replay in report.frame.games:
            for team, rating in ((replay.home_team, replay.home_rating),
                                 (replay.away_team, replay.away_rating)):
                lookup = report.archive.query(team, replay.season, as_of_week=replay.week)
                assert lookup.rating == rating
                if lookup.source == SnapshotSource.SNAPSHOT:
                    assert lookup.week < replay.week

    def test_ratings_conserved_within_season(self, league, loose_config):
        games, lines = league
        report = BacktestRunner(loose_config).run(games, lines)

        for season in (2022, 2023):
            total = sum(report.archive.latest(t, season).rating for t in ("ALA", "BAY", "CAL", "DUK"))
            assert total == pytest.approx(4 * 1500.0)

    def test_snapshot_timestamps_are_kickoffs(self, league, loose_config):
        games, lines = league
        report = BacktestRunner(loose_config).run(games, lines)
        kickoffs = {g.kickoff for g in games}

        for snap in report.archive:
            if not snap.is_preseason:
                assert snap.created_at in kickoffs


# ============================================================================
# Seasons
# ============================================================================

class TestSeasonTransition:

    def test_preseason_snapshots(self, league, loose_config):
        games, lines = league
        report = BacktestRunner(loose_config).run(games, lines)
        regress = RatingUpdater().regress

        assert report.seasons == [2022, 2023]
        assert report.diagnostics.season_transitions == 1
        for team in ("ALA", "BAY", "CAL", "DUK"):
            preseason = report.archive.query(team, 2023, as_of_week=1)
            assert preseason.week == PRESEASON_WEEK
            assert preseason.games_played == 0
            assert preseason.rating == pytest.approx(regress(report.archive.latest(team, 2022).rating))

    def test_cold_starts_only_in_first_week(self, league, loose_config):
        games, lines = league
        report = BacktestRunner(loose_config).run(games, lines)

        assert report.diagnostics.cold_starts == 4
        assert all(
            not (r.home_cold_start or r.away_cold_start)
            for r in report.frame.games if r.season == 2023
        )

    def test_snapshot_count(self, league, loose_config):
        games, lines = league
        report = BacktestRunner(loose_config).run(games, lines)

        # 4 teams x 8 weeks x 2 seasons, plus 4 preseason entries
        assert report.diagnostics.snapshots_written == 68
        assert len(report.archive) == 68


# ============================================================================
# Caller-supplied State
# ============================================================================

class TestCallerState:
    """Rating store and archive passed in by the caller."""

    def test_empty_store_and_archive_are_used(self, make_game, any_edge):
        store, archive = RatingStore(), SnapshotArchive()
        runner = BacktestRunner(any_edge, store=store, archive=archive)
        runner.run([make_game()])

        assert runner.store is store
        assert runner.archive is archive
        assert len(store) == 2
        assert len(archive) == 2

    def test_seeded_store_regressed_into_first_season(self, make_game, make_line, any_edge):
        store = RatingStore()
        store.set("HOME", 2022, 1700.0, 12)
        store.set("AWAY", 2022, 1300.0, 12)

        report = BacktestRunner(any_edge, store=store).run([make_game()], [make_line("g1")])
        projection = report.projections[0]

        assert projection.home_rating == pytest.approx(1620.0)
        assert projection.away_rating == pytest.approx(1380.0)
        assert not (projection.home_cold_start or projection.away_cold_start)
        assert report.diagnostics.cold_starts == 0
        assert report.diagnostics.season_transitions == 1
        assert report.archive.query("HOME", 2023, as_of_week=1).week == PRESEASON_WEEK

    def test_unseeded_store_still_cold_starts(self, make_game, any_edge):
        report = BacktestRunner(any_edge, store=RatingStore()).run([make_game()])

        assert report.diagnostics.cold_starts == 2
        assert report.diagnostics.season_transitions == 0


# ============================================================================
# Recoverable Conditions
# ============================================================================

class TestRecoverable:

    def test_missing_score_skipped(self, make_game, any_edge):
        games = [
            make_game("g1"),
            make_game("g2", week=2, home_score=None, away_score=None),
            make_game("g3", week=3),
        ]
        report = BacktestRunner(any_edge).run(games)

        assert report.diagnostics.skipped_missing_scores == 1
        assert report.diagnostics.games_replayed == 2
        assert [r.game_id for r in report.frame.games] == ["g1", "g3"]
        assert report.validation.by_code("missing_scores") is not None

    def test_missing_line_counted(self, make_game, make_line, any_edge):
        games = [make_game("g1"), make_game("g2", week=2)]
        report = BacktestRunner(any_edge).run(games, [make_line("g2", open_spread=4.0)])

        assert report.diagnostics.games_without_line == 1
        assert report.selection.no_line == 1
        assert len(report.projections) == 1

    def test_falls_back_to_close(self, make_game, make_line, any_edge):
        report = BacktestRunner(any_edge).run(
            [make_game("g1")], [make_line("g1", open_spread=None, close_spread=6.0)]
        )
        assert report.projections[0].market_spread == 6.0

    def test_zero_bets_is_valid(self, league):
        games, lines = league
        report = BacktestRunner(BacktestConfig(min_edge=50.0)).run(games, lines)

        assert not report.has_bets
        assert report.statistics.total_bets == 0
        assert report.statistics.roi == 0.0
        assert report.cumulative_profit().empty
        assert "Backtest Summary" in report.summary()
        assert report.to_dict()["bets"] == []


# ============================================================================
# Integrity Failures
# ============================================================================

class TestIntegrity:

    def test_out_of_order_rejected(self, make_game, any_edge):
        games = [make_game("g2", week=2), make_game("g1", week=1)]

        with pytest.raises(ChronologyError):
            BacktestRunner(any_edge).run(games)

    def test_out_of_order_caught_without_validation(self, make_game):
        games = [make_game("g2", week=2), make_game("g1", week=1)]
        runner = BacktestRunner(BacktestConfig(validate_inputs=False))

        with pytest.raises(ChronologyError) as exc_info:
            runner.run(games)
        assert isinstance(exc_info.value, IntegrityError)

    def test_duplicate_game_rejected(self, make_game, any_edge):
        game = make_game("g1")
        with pytest.raises(DataValidationError):
            BacktestRunner(any_edge).run([game, game])

    def test_self_play_rejected(self, make_game, any_edge):
        with pytest.raises(DataValidationError):
            BacktestRunner(any_edge).run([make_game(home_team="A", away_team="A")])

    def test_invalid_price_rejected(self, make_game, make_line, any_edge):
        with pytest.raises(DataValidationError):
            BacktestRunner(any_edge).run([make_game("g1")], [make_line("g1", price=-50)])

    def test_runner_is_single_use(self, make_game, any_edge):
        runner = BacktestRunner(any_edge)
        runner.run([make_game()])

        with pytest.raises(InvalidStateError):
            runner.run([make_game()])


# ============================================================================
# Selection Filters
# ============================================================================

class TestSelection:

    def test_min_games_played(self, league):
        games, lines = league
        report = BacktestRunner(BacktestConfig(min_edge=0.0, min_games_played=3)).run(games, lines)

        assert report.selection.too_few_games > 0
        assert all(b.week >= 4 for b in report.bets)

    def test_max_uncertainty(self, league):
        games, lines = league
        report = BacktestRunner(BacktestConfig(min_edge=0.0, max_uncertainty=0.5)).run(games, lines)

        assert all(b.uncertainty <= 0.5 for b in report.bets)
        assert all(b.week >= 5 for b in report.bets)

    def test_require_bettable(self, league):
        games, lines = league
        report = BacktestRunner(BacktestConfig(min_edge=0.0, require_bettable=True)).run(games, lines)

        assert report.selection.not_bettable > 0
        for bet in report.bets:
            assert abs(bet.effective_edge) >= 3.0
            assert bet.uncertainty <= (0.50 if bet.week <= 4 else 0.60)

    def test_edge_band(self, league):
        games, lines = league
        report = BacktestRunner(BacktestConfig(min_edge=0.5, max_edge=1.5)).run(games, lines)

        assert all(0.5 <= abs(b.effective_edge) <= 1.5 for b in report.bets)

    def test_closing_line_bets(self, league):
        games, lines = league
        report = BacktestRunner(BacktestConfig(min_edge=0.0, line_source="close")).run(games, lines)

        assert report.has_bets
        for bet in report.bets:
            assert bet.market_spread == lines[bet.game_id].close_spread
            assert bet.clv_points == 0.0
        assert report.validation.by_code("closing_line_bets") is not None

    def test_percentage_staking(self, league):
        games, lines = league
        config = BacktestConfig(min_edge=0.0, staking=PercentageStake(0.05))
        report = BacktestRunner(config).run(games, lines)

        assert report.bets[0].stake == pytest.approx(5.0)
        assert report.statistics.total_staked == pytest.approx(sum(b.stake for b in report.bets))

    def test_percentage_staking_never_adds_bets_at_higher_edge(self, make_game, make_line):
        # A big early loss must not stop later qualifying bets from being placed
        games = [
            make_game("g1", week=1, home_score=0, away_score=30),
            make_game("g2", week=2, home_team="C", away_team="D"),
            make_game("g3", week=3, home_team="E", away_team="F"),
        ]
        lines = [
            make_line("g1", open_spread=0.0),
            make_line("g2", open_spread=6.0),
            make_line("g3", open_spread=6.0),
        ]
        staking = PercentageStake(0.99)

        def count(min_edge):
            config = BacktestConfig(min_edge=min_edge, staking=staking)
            return len(BacktestRunner(config).run(games, lines).bets)

        counts = [count(edge) for edge in (0.0, 2.0, 4.0)]
        assert counts == sorted(counts, reverse=True)
        assert counts[0] == 3

    def test_contexts_change_uncertainty(self, league, league_contexts, loose_config):
        games, lines = league
        plain = BacktestRunner(loose_config).run(games, lines)
        informed = BacktestRunner(loose_config).run(games, lines, league_contexts)

        def season_2023(report):
            return [p.uncertainty for p in report.projections if p.season == 2023]

        assert season_2023(informed) != season_2023(plain)
        assert max(season_2023(informed)) <= 0.75


# ============================================================================
# Determinism
# ============================================================================

def test_identical_runs_identical_reports(league, loose_config):
    games, lines = league
    first = BacktestRunner(loose_config).run(games, lines)
    second = BacktestRunner(loose_config).run(games, lines)

    assert first.has_bets
    assert first.to_dict() == second.to_dict()
    assert first.archive.to_dataframe().equals(second.archive.to_dataframe())
