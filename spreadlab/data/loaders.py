"""
Bulk loaders from tabular data.

The engine never touches files or databases; callers hand it lists of
entities. These helpers turn pandas DataFrames (from CSV exports,
database queries, ...) into those lists.

Expected columns:
    games:    game_id, season, week, home_team, away_team, kickoff,
              home_score, away_score, [neutral_site], [home_efficiency],
              [away_efficiency]
    lines:    game_id, [open_spread], [close_spread], [price], [sportsbook]
    contexts: team_id, season, [returning_production],
              [starter_transferred_out], [starter_status], [coaching_change]
    teams:    team_id, [name], [conference]
"""

from pathlib import Path
from typing import Any, List, Optional, Union
import logging

import pandas as pd

from spreadlab.core.exceptions import DataValidationError
from spreadlab.data.models import Game, MarketLine, StarterStatus, Team, TeamContext


logger = logging.getLogger(__name__)

GAME_COLUMNS = ['game_id', 'season', 'week', 'home_team', 'away_team', 'kickoff']
LINE_COLUMNS = ['game_id']
CONTEXT_COLUMNS = ['team_id', 'season']
TEAM_COLUMNS = ['team_id']


def _require(df: pd.DataFrame, columns: List[str], what: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise DataValidationError(f"{what} data missing columns: {missing}")


def _optional(value: Any) -> Optional[Any]:
    """Map pandas missing markers (NaN, NaT, None) to None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if pd.isna(value):
        return None
    return value


def _optional_int(value: Any) -> Optional[int]:
    value = _optional(value)
    return None if value is None else int(value)


def _optional_float(value: Any) -> Optional[float]:
    value = _optional(value)
    return None if value is None else float(value)


def _flag(value: Any) -> bool:
    value = _optional(value)
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'y', 't')
    return bool(value)


def load_csv(path: Union[str, Path]) -> pd.DataFrame:
    """Read a CSV export, stripping header whitespace."""
    df = pd.read_csv(path)
    df.columns = df.columns.str.strip()
    logger.info(f"Loaded {len(df)} rows from {path}")
    return df


def games_from_dataframe(df: pd.DataFrame) -> List[Game]:
    """
    Build Game entities from a DataFrame.

    Rows are returned in replay order (season, week, kickoff, game id).
    Missing scores are preserved as None so the replay can count them.
    """
    _require(df, GAME_COLUMNS, "Game")

    kickoffs = pd.to_datetime(df['kickoff'])
    games = []
    for (_, row), kickoff in zip(df.iterrows(), kickoffs):
        games.append(Game(
            game_id=str(row['game_id']),
            season=int(row['season']),
            week=int(row['week']),
            home_team=str(row['home_team']),
            away_team=str(row['away_team']),
            kickoff=kickoff.to_pydatetime(),
            home_score=_optional_int(row.get('home_score')),
            away_score=_optional_int(row.get('away_score')),
            neutral_site=_flag(row.get('neutral_site')),
            home_efficiency=_optional_float(row.get('home_efficiency')),
            away_efficiency=_optional_float(row.get('away_efficiency')),
        ))

    games.sort(key=lambda g: g.sort_key)
    return games


def lines_from_dataframe(df: pd.DataFrame) -> List[MarketLine]:
    """Build MarketLine entities; price defaults to -110 when absent."""
    _require(df, LINE_COLUMNS, "Line")

    lines = []
    for _, row in df.iterrows():
        price = _optional_int(row.get('price'))
        lines.append(MarketLine(
            game_id=str(row['game_id']),
            open_spread=_optional_float(row.get('open_spread')),
            close_spread=_optional_float(row.get('close_spread')),
            price=price if price is not None else -110,
            sportsbook=_optional(row.get('sportsbook')) or "consensus",
        ))
    return lines


def contexts_from_dataframe(df: pd.DataFrame) -> List[TeamContext]:
    """Build TeamContext entities for uncertainty scoring."""
    _require(df, CONTEXT_COLUMNS, "Team context")

    contexts = []
    for _, row in df.iterrows():
        status = _optional(row.get('starter_status'))
        try:
            starter_status = StarterStatus(str(status).lower()) if status else None
        except ValueError as e:
            raise DataValidationError(
                f"Unknown starter_status {status!r} for team {row['team_id']}"
            ) from e

        contexts.append(TeamContext(
            team_id=str(row['team_id']),
            season=int(row['season']),
            returning_production=_optional_float(row.get('returning_production')),
            starter_transferred_out=_flag(row.get('starter_transferred_out')),
            starter_status=starter_status,
            coaching_change=_flag(row.get('coaching_change')),
        ))
    return contexts


def teams_from_dataframe(df: pd.DataFrame) -> List[Team]:
    """Build Team reference entities; the name falls back to the id."""
    _require(df, TEAM_COLUMNS, "Team")

    teams = []
    for _, row in df.iterrows():
        team_id = str(row['team_id'])
        teams.append(Team(
            team_id=team_id,
            name=_optional(row.get('name')) or team_id,
            conference=_optional(row.get('conference')),
        ))
    return teams
