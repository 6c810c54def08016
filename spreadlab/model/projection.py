"""
Point-spread projection from ratings.

Rating differences convert to spread points at a fixed scale
(25 rating points per point of spread by default). Spreads are quoted
from the home perspective: negative means the home team is favoured.
"""

from dataclasses import dataclass
from typing import Optional

from spreadlab.data.models import Game


@dataclass(frozen=True)
class ProjectionConfig:
    """
    Attributes:
        home_field_advantage: Home edge in spread points
        rating_scale: Rating points per spread point
    """
    home_field_advantage: float = 3.0
    rating_scale: float = 25.0

    def __post_init__(self):
        if self.rating_scale <= 0:
            raise ValueError("rating_scale must be positive")


@dataclass(frozen=True)
class GameProjection:
    """Model view of a single game before kickoff."""
    game_id: str
    home_rating: float
    away_rating: float
    model_spread: float
    home_win_prob: float

    @property
    def away_win_prob(self) -> float:
        return 1.0 - self.home_win_prob

    def __str__(self) -> str:
        return (
            f"{self.game_id}: home {self.home_rating:.0f} vs away "
            f"{self.away_rating:.0f} | spread {self.model_spread:+.1f} | "
            f"P(home) {self.home_win_prob:.1%}"
        )


class ProjectionEngine:
    """
    Stateless spread projector.

    Example:
        >>> engine = ProjectionEngine()
        >>> engine.project(1600, 1500, neutral_site=True)
        -4.0
        >>> engine.project(1500, 1500)
        -3.0
    """

    def __init__(self, config: Optional[ProjectionConfig] = None):
        self.config = config or ProjectionConfig()

    def rating_edge(self, home_rating: float, away_rating: float, neutral_site: bool = False) -> float:
        """Home rating advantage including home field, in rating points."""
        hfa = 0.0 if neutral_site else self.config.home_field_advantage * self.config.rating_scale
        return home_rating - away_rating + hfa

    def project(self, home_rating: float, away_rating: float, neutral_site: bool = False) -> float:
        """Model spread for the home team (negative = home favoured)."""
        return -self.rating_edge(home_rating, away_rating, neutral_site) / self.config.rating_scale

    def win_probability(self, home_rating: float, away_rating: float, neutral_site: bool = False) -> float:
        """Elo logistic win probability on the same home-field basis."""
        edge = self.rating_edge(home_rating, away_rating, neutral_site)
        return 1.0 / (1.0 + 10 ** (-edge / 400.0))

    def project_game(self, game: Game, home_rating: float, away_rating: float) -> GameProjection:
        return GameProjection(
            game_id=game.game_id,
            home_rating=home_rating,
            away_rating=away_rating,
            model_spread=self.project(home_rating, away_rating, game.neutral_site),
            home_win_prob=self.win_probability(home_rating, away_rating, game.neutral_site),
        )
