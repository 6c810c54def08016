"""
Domain entities supplied by the ingestion layer.

Everything here is a frozen dataclass: games, teams and lines are read
once from historical data and never mutated by the engine.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class LineSource(str, Enum):
    """Which market number a bet is struck at."""
    OPEN = "open"
    CLOSE = "close"


class StarterStatus(str, Enum):
    """Availability of the primary starter (quarterback, point guard...)."""
    CONFIRMED = "confirmed"
    QUESTIONABLE = "questionable"
    OUT = "out"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Team:
    """Reference entity for a team."""
    team_id: str
    name: str
    conference: Optional[str] = None


@dataclass(frozen=True)
class Game:
    """
    A single historical game.

    Scores are None until the game is final. ``home_efficiency`` and
    ``away_efficiency`` are optional per-game performance signals (net
    points per play or similar) used by the blended rating update.
    """
    game_id: str
    season: int
    week: int
    home_team: str
    away_team: str
    kickoff: datetime
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    neutral_site: bool = False
    home_efficiency: Optional[float] = None
    away_efficiency: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        return self.home_score is not None and self.away_score is not None

    @property
    def margin(self) -> int:
        """Home score minus away score."""
        if not self.is_complete:
            raise ValueError(f"Game {self.game_id} has no final score")
        return self.home_score - self.away_score

    @property
    def sort_key(self) -> Tuple[int, int, datetime, str]:
        return (self.season, self.week, self.kickoff, self.game_id)

    def __str__(self) -> str:
        where = "vs" if self.neutral_site else "@"
        score = ""
        if self.is_complete:
            score = f" ({self.away_score}-{self.home_score})"
        return (
            f"{self.season} W{self.week}: {self.away_team} {where} "
            f"{self.home_team}{score}"
        )


@dataclass(frozen=True)
class MarketLine:
    """
    Market point spread for a game, home perspective.

    Negative spread means the home team is favoured.
    """
    game_id: str
    open_spread: Optional[float] = None
    close_spread: Optional[float] = None
    price: int = -110
    sportsbook: str = "consensus"

    def spread_for(self, source: LineSource) -> Optional[float]:
        """Spread to bet at, falling back to the other number when missing."""
        if source == LineSource.CLOSE:
            primary, fallback = self.close_spread, self.open_spread
        else:
            primary, fallback = self.open_spread, self.close_spread
        return primary if primary is not None else fallback

    @property
    def has_spread(self) -> bool:
        return self.open_spread is not None or self.close_spread is not None


@dataclass(frozen=True)
class TeamContext:
    """
    Preseason information about a team, used for uncertainty scoring.

    Attributes:
        team_id: Team identifier
        season: Season the context applies to
        returning_production: Share of production returning (0-1), None if unknown
        starter_transferred_out: Last season's primary starter left the program
        starter_status: Availability of the primary starter
        coaching_change: New head coach this season
    """
    team_id: str
    season: int
    returning_production: Optional[float] = None
    starter_transferred_out: bool = False
    starter_status: Optional[StarterStatus] = None
    coaching_change: bool = False


ContextKey = Tuple[str, int]


def sort_games(games: Iterable[Game]) -> List[Game]:
    """Sort games into replay order: (season, week, kickoff, game id)."""
    return sorted(games, key=lambda g: g.sort_key)


def index_lines(lines: Iterable[MarketLine]) -> Dict[str, MarketLine]:
    """Key lines by game id; the last line supplied for a game wins."""
    return {line.game_id: line for line in lines}


def index_contexts(contexts: Iterable[TeamContext]) -> Dict[ContextKey, TeamContext]:
    """Key team contexts by (team id, season)."""
    return {(ctx.team_id, ctx.season): ctx for ctx in contexts}
