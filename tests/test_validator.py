"""
Tests for input validation before a replay.
"""

import pytest

from spreadlab.backtest.validator import InputValidator, IssueSeverity
from spreadlab.data.models import LineSource


@pytest.fixture
def validator():
    return InputValidator()


class TestGameChecks:

    def test_clean_inputs_pass(self, validator, league):
        games, lines = league
        report = validator.validate(games, lines)

        assert report.passed
        assert report.issues == []
        assert report.games_checked == len(games)
        assert "PASSED" in str(report)

    def test_out_of_order(self, validator, make_game):
        report = validator.validate([make_game("g2", week=2), make_game("g1", week=1)])

        issue = report.by_code("out_of_order")
        assert issue.severity == IssueSeverity.CRITICAL
        assert issue.example == "g1"
        assert not report.passed

    def test_same_week_kickoff_order(self, validator, make_game):
        games = [make_game("late", slot=5), make_game("early", slot=1)]
        assert validator.validate(games).by_code("out_of_order") is not None

    def test_duplicate(self, validator, make_game):
        game = make_game("g1")
        report = validator.validate([game, game])

        assert report.by_code("duplicate_game").affected_rows == 1
        assert report.critical

    def test_self_play(self, validator, make_game):
        report = validator.validate([make_game(home_team="A", away_team="A")])
        assert report.by_code("self_play") is not None

    def test_missing_scores_info_only(self, validator, make_game):
        report = validator.validate([make_game(home_score=None)])

        assert report.by_code("missing_scores").severity == IssueSeverity.INFO
        assert report.passed


class TestLineChecks:

    def test_orphan_line(self, validator, make_game, make_line):
        report = validator.validate([make_game("g1")], {"zz": make_line("zz")})
        assert report.by_code("orphan_line").example == "zz"
        assert report.passed

    def test_no_spread(self, validator, make_game, make_line):
        lines = {"g1": make_line("g1", open_spread=None, close_spread=None)}
        assert validator.validate([make_game("g1")], lines).by_code("no_spread") is not None

    def test_implausible_spread(self, validator, make_game, make_line):
        lines = {"g1": make_line("g1", open_spread=-85.0)}
        assert validator.validate([make_game("g1")], lines).by_code("implausible_spread") is not None

    def test_invalid_price(self, validator, make_game, make_line):
        lines = {"g1": make_line("g1", price=50)}
        report = validator.validate([make_game("g1")], lines)

        assert report.by_code("invalid_price").severity == IssueSeverity.CRITICAL
        assert not report.passed
        assert "FAILED" in str(report)

    def test_closing_line_warning(self, make_game, make_line):
        validator = InputValidator(line_source=LineSource.CLOSE)
        report = validator.validate([make_game("g1")], {"g1": make_line("g1")})

        assert report.by_code("closing_line_bets").severity == IssueSeverity.WARNING
        assert report.passed

    def test_strict_mode_fails_on_any_issue(self, make_game):
        report = InputValidator(strict_mode=True).validate([make_game(home_score=None)])
        assert not report.passed
