"""
Unit tests for edge calculation and uncertainty scoring.

Tests cover:
    - Raw and effective edge, side and confidence tier
    - Week and team uncertainty components
    - Roster continuity quartiles
    - The production betting rule
"""

import pytest

from spreadlab.data.models import StarterStatus, TeamContext
from spreadlab.model.edge import (
    BetSide,
    ConfidenceTier,
    EdgeCalculator,
    UncertaintyConfig,
    UncertaintyModel,
    continuity_quartiles,
    rank_edges,
)


# ============================================================================
# Edge Calculator
# ============================================================================

class TestComputeEdge:
    """Tests for EdgeCalculator.compute_edge."""

    def test_home_side(self):
        """Model -10 vs market -7: model likes home more."""
        edge = EdgeCalculator().compute_edge(-10.0, -7.0, 0.0)

        assert edge.raw_edge == pytest.approx(-3.0)
        assert edge.effective_edge == pytest.approx(-3.0)
        assert edge.side == BetSide.HOME

    def test_away_side(self):
        edge = EdgeCalculator().compute_edge(-4.0, -7.0, 0.5)

        assert edge.raw_edge == pytest.approx(3.0)
        assert edge.effective_edge == pytest.approx(1.5)
        assert edge.side == BetSide.AWAY

    def test_no_side_when_equal(self):
        edge = EdgeCalculator().compute_edge(-7.0, -7.0, 0.2)

        assert edge.side is None
        assert edge.effective_edge == 0.0

    def test_full_uncertainty_zeroes_edge(self):
        edge = EdgeCalculator().compute_edge(-15.0, -3.0, 1.0)
        assert edge.effective_edge == 0.0
        assert edge.side == BetSide.HOME

    def test_uncertainty_out_of_range(self):
        with pytest.raises(ValueError):
            EdgeCalculator().compute_edge(-3.0, -7.0, 1.2)
        with pytest.raises(ValueError):
            EdgeCalculator().compute_edge(-3.0, -7.0, -0.1)

    def test_big_edge_high_uncertainty_needs_confirmation(self):
        edge = EdgeCalculator().compute_edge(-20.0, -7.0, 0.45)
        assert edge.tier == ConfidenceTier.REQUIRES_CONFIRMATION

    def test_big_edge_low_uncertainty_ok(self):
        assert EdgeCalculator().compute_edge(-20.0, -7.0, 0.39).tier == ConfidenceTier.OK

    def test_small_edge_high_uncertainty_ok(self):
        assert EdgeCalculator().compute_edge(-16.5, -7.0, 0.70).tier == ConfidenceTier.OK

    def test_str(self):
        assert "home" in str(EdgeCalculator().compute_edge(-10.0, -7.0, 0.0))


class TestBettable:

    def test_clears_floor_early(self):
        calc = EdgeCalculator()
        edge = calc.compute_edge(-13.0, -7.0, 0.5)
        assert calc.is_bettable(edge, week=4)

    def test_too_uncertain_early(self):
        calc = EdgeCalculator()
        edge = calc.compute_edge(-17.0, -7.0, 0.55)

        assert not calc.is_bettable(edge, week=4)
        assert calc.is_bettable(edge, week=5)

    def test_below_floor(self):
        calc = EdgeCalculator()
        assert not calc.is_bettable(calc.compute_edge(-9.9, -7.0, 0.0), week=8)

    def test_max_uncertainty_by_stage(self):
        calc = EdgeCalculator()
        assert calc.max_uncertainty(1) == 0.50
        assert calc.max_uncertainty(4) == 0.50
        assert calc.max_uncertainty(5) == 0.60


def test_rank_edges():
    calc = EdgeCalculator()
    edges = [
        ("g2", calc.compute_edge(-10.0, -7.0, 0.0)),
        ("g1", calc.compute_edge(-4.0, -7.0, 0.0)),
        ("g3", calc.compute_edge(-1.0, -7.0, 0.0)),
    ]

    assert [gid for gid, _ in rank_edges(edges)] == ["g3", "g1", "g2"]


# ============================================================================
# Uncertainty Model
# ============================================================================

class TestWeekUncertainty:

    @pytest.mark.parametrize("week,expected", [
        (0, 0.45), (1, 0.45), (2, 0.25), (4, 0.25), (5, 0.10), (14, 0.10),
    ])
    def test_schedule(self, week, expected):
        assert UncertaintyModel().week_uncertainty(week) == expected

    def test_schedule_must_not_increase(self):
        with pytest.raises(ValueError):
            UncertaintyConfig(week_schedule=((1, 0.20), (4, 0.30)))


class TestTeamUncertainty:
    """Component scoring with the league_contexts fixture (q25=0.40, q50=0.55)."""

    def test_quartiles(self, league_contexts):
        assert UncertaintyModel(contexts=league_contexts).quartiles(2023) == (0.40, 0.55)

    def test_default_quartiles_other_season(self, league_contexts):
        assert UncertaintyModel(contexts=league_contexts).quartiles(2022) == (0.35, 0.50)

    def test_high_continuity_no_penalty(self, league_contexts):
        team = UncertaintyModel(contexts=league_contexts).team_uncertainty("ALA", 2023)
        assert team.total == 0.0
        assert team.has_context

    def test_coaching_change(self, league_contexts):
        team = UncertaintyModel(contexts=league_contexts).team_uncertainty("BAY", 2023)

        assert team.roster == 0.0
        assert team.coach == pytest.approx(0.10)

    def test_second_quartile_and_transfer(self, league_contexts):
        team = UncertaintyModel(contexts=league_contexts).team_uncertainty("CAL", 2023)

        assert team.roster == pytest.approx(0.08)
        assert team.starter == pytest.approx(0.20)
        assert team.total == pytest.approx(0.28)

    def test_bottom_quartile(self, league_contexts):
        team = UncertaintyModel(contexts=league_contexts).team_uncertainty("DUK", 2023)
        assert team.roster == pytest.approx(0.15)

    def test_missing_context(self):
        team = UncertaintyModel().team_uncertainty("ALA", 2023)

        assert not team.has_context
        assert team.total == pytest.approx(0.30)

    def test_missing_returning_production_is_average(self):
        model = UncertaintyModel(contexts=[TeamContext("ALA", 2023)])
        assert model.team_uncertainty("ALA", 2023).total == 0.0

    @pytest.mark.parametrize("transferred,status,expected", [
        (True, StarterStatus.CONFIRMED, 0.10),
        (False, StarterStatus.CONFIRMED, 0.0),
        (False, StarterStatus.UNKNOWN, 0.15),
        (False, StarterStatus.QUESTIONABLE, 0.20),
        (True, StarterStatus.OUT, 0.40),
        (False, None, 0.0),
    ])
    def test_starter_component(self, transferred, status, expected):
        ctx = TeamContext(
            "ALA", 2023,
            returning_production=0.9,
            starter_transferred_out=transferred,
            starter_status=status,
        )
        team = UncertaintyModel(contexts=[ctx]).team_uncertainty("ALA", 2023)
        assert team.starter == pytest.approx(expected)


class TestGameUncertainty:

    def test_combines_week_and_teams(self, league_contexts):
        model = UncertaintyModel(contexts=league_contexts)
        breakdown = model.game_uncertainty(2023, 6, "ALA", "DUK")

        assert breakdown.week == 0.10
        assert breakdown.team_average == pytest.approx(0.075)
        assert breakdown.total == pytest.approx(0.175)

    def test_capped(self):
        breakdown = UncertaintyModel().game_uncertainty(2023, 1, "ALA", "BAY")
        assert breakdown.total == pytest.approx(0.75)

    def test_custom_cap(self):
        model = UncertaintyModel(UncertaintyConfig(cap=0.5))
        assert model.game_uncertainty(2023, 1, "ALA", "BAY").total == pytest.approx(0.5)

    def test_weights(self):
        model = UncertaintyModel(UncertaintyConfig(week_weight=0.5, team_weight=0.0))
        assert model.game_uncertainty(2023, 3, "ALA", "BAY").total == pytest.approx(0.125)


class TestContinuityQuartiles:

    def test_lower_order_statistic(self):
        assert continuity_quartiles([0.9, 0.1, 0.5, 0.3, 0.7]) == (0.3, 0.5)

    def test_empty_uses_default(self):
        assert continuity_quartiles([]) == (0.35, 0.50)
