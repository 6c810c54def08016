"""
Pytest configuration and shared fixtures for SpreadLab testing.

This file provides:
- Entity factories (games, lines, team context)
- A small deterministic two-season league with market lines
- Test markers
"""

import os
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List

import numpy as np
import pytest

# Ensure the package root is importable without installation
sys.path.insert(0, str(Path(__file__).parent))

# Settings are read at import time; keep a developer .env from changing log output
os.environ.setdefault("SPREADLAB_LOG_LEVEL", "WARNING")

from spreadlab.backtest import BacktestConfig
from spreadlab.data.models import Game, MarketLine, TeamContext


# ============================================================================
# Entity Factories
# ============================================================================

@pytest.fixture
def make_game():
    """
    Factory fixture for games.

    Usage:
        def test_x(make_game):
            game = make_game("g1", week=3, home_score=24, away_score=17)
    """
    def _create(
        game_id: str = "g1",
        season: int = 2023,
        week: int = 1,
        home_team: str = "HOME",
        away_team: str = "AWAY",
        home_score=21,
        away_score=14,
        slot: int = 0,
        **overrides
    ) -> Game:
        kickoff = datetime(season, 9, 1) + timedelta(weeks=week, hours=slot)
        return Game(
            game_id=game_id,
            season=season,
            week=week,
            home_team=home_team,
            away_team=away_team,
            kickoff=kickoff,
            home_score=home_score,
            away_score=away_score,
            **overrides
        )

    return _create


@pytest.fixture
def make_line():
    """Factory fixture for market lines (-110 unless overridden)."""
    def _create(game_id: str = "g1", open_spread=-3.0, close_spread=None, price: int = -110) -> MarketLine:
        return MarketLine(
            game_id=game_id,
            open_spread=open_spread,
            close_spread=close_spread,
            price=price,
        )

    return _create


# ============================================================================
# Synthetic League
# ============================================================================

TEAM_STRENGTH = {"ALA": 10.0, "BAY": 4.0, "CAL": -3.0, "DUK": -11.0}

PAIRINGS = [
    (("ALA", "BAY"), ("CAL", "DUK")),
    (("CAL", "ALA"), ("DUK", "BAY")),
    (("ALA", "DUK"), ("BAY", "CAL")),
]


def build_league(seasons=(2022, 2023), weeks: int = 8, seed: int = 7):
    """
    Two games per week between four teams of fixed strength.

    Margins are strength difference + 3 points home field + noise;
    opening lines are the fair number plus noise so edges exist on
    both sides. Seeded, so every call returns the same league.
    """
    rng = np.random.default_rng(seed)
    games: List[Game] = []
    lines: Dict[str, MarketLine] = {}

    for season in seasons:
        for week in range(1, weeks + 1):
            for slot, (home, away) in enumerate(PAIRINGS[(week - 1) % len(PAIRINGS)]):
                if week % 2 == 0:
                    home, away = away, home
                fair = TEAM_STRENGTH[home] - TEAM_STRENGTH[away] + 3.0
                margin = int(round(fair + rng.integers(-10, 11)))
                away_score = int(rng.integers(10, 28))
                home_score = away_score + margin
                if home_score < 0:
                    away_score -= home_score
                    home_score = 0

                game_id = f"{season}-{week:02d}-{slot}"
                games.append(Game(
                    game_id=game_id,
                    season=season,
                    week=week,
                    home_team=home,
                    away_team=away,
                    kickoff=datetime(season, 9, 1) + timedelta(weeks=week, hours=slot),
                    home_score=home_score,
                    away_score=away_score,
                ))

                open_spread = -round(fair * 2) / 2 + float(rng.choice([-4, -2.5, -1, 0, 1, 2.5, 4]))
                close_spread = open_spread + float(rng.choice([-1.0, -0.5, 0.0, 0.5, 1.0]))
                lines[game_id] = MarketLine(game_id, open_spread, close_spread)

    return games, lines


@pytest.fixture
def league():
    """(games, lines) for a deterministic two-season league."""
    return build_league()


@pytest.fixture
def league_contexts() -> List[TeamContext]:
    return [
        TeamContext("ALA", 2023, returning_production=0.80),
        TeamContext("BAY", 2023, returning_production=0.55, coaching_change=True),
        TeamContext("CAL", 2023, returning_production=0.40, starter_transferred_out=True),
        TeamContext("DUK", 2023, returning_production=0.30),
    ]


@pytest.fixture
def loose_config() -> BacktestConfig:
    """Selection settings loose enough that the league produces bets."""
    return BacktestConfig(min_edge=0.5)


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
