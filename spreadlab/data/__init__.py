"""
Input entities and bulk loaders.

Components:
    - models: Team, Game, MarketLine, TeamContext
    - loaders: DataFrame to entity conversion
"""

from .models import (
    Game,
    LineSource,
    MarketLine,
    StarterStatus,
    Team,
    TeamContext,
    index_contexts,
    index_lines,
    sort_games,
)
from .loaders import (
    contexts_from_dataframe,
    games_from_dataframe,
    lines_from_dataframe,
    load_csv,
    teams_from_dataframe,
)

__all__ = [
    "Game",
    "LineSource",
    "MarketLine",
    "StarterStatus",
    "Team",
    "TeamContext",
    "index_contexts",
    "index_lines",
    "sort_games",
    "contexts_from_dataframe",
    "games_from_dataframe",
    "lines_from_dataframe",
    "load_csv",
    "teams_from_dataframe",
]
