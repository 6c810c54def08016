"""
Point-in-time rating snapshots.

The archive is an append-only ledger of ratings keyed by
(team, season, week). A snapshot for week W holds a team's rating after
every game it played in weeks up to and including W. ``query`` is the
only way the replay reads ratings for a projection, and it refuses to
return anything recorded for the requested week or later.

Preseason entries (prior-season ratings after regression) are stored
under ``PRESEASON_WEEK`` so they sort before week 0.
"""

from bisect import bisect_left, insort
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple
import logging

import pandas as pd

from spreadlab.core.exceptions import DuplicateSnapshotError, LookaheadViolationError

logger = logging.getLogger(__name__)

PRESEASON_WEEK = -1


class SnapshotSource(str, Enum):
    """Where a looked-up rating came from."""
    SNAPSHOT = "snapshot"
    PRIOR_SEASON = "prior_season"
    BASELINE = "baseline"


@dataclass(frozen=True)
class RatingSnapshot:
    """Immutable rating value for (team, season, week)."""
    team_id: str
    season: int
    week: int
    rating: float
    games_played: int
    created_at: Optional[datetime] = None

    @property
    def key(self) -> Tuple[str, int, int]:
        return (self.team_id, self.season, self.week)

    @property
    def is_preseason(self) -> bool:
        return self.week == PRESEASON_WEEK


@dataclass(frozen=True)
class SnapshotLookup:
    """Result of a point-in-time query."""
    rating: float
    games_played: int
    source: SnapshotSource
    season: Optional[int] = None
    week: Optional[int] = None

    @property
    def cold_start(self) -> bool:
        return self.source == SnapshotSource.BASELINE


class SnapshotArchive:
    """
    Append-only archive of rating snapshots.

    Example:
        >>> archive = SnapshotArchive()
        >>> _ = archive.record('ALA', 2023, 1, 1520.0, 1)
        >>> archive.query('ALA', 2023, as_of_week=2).rating
        1520.0
        >>> archive.query('ALA', 2023, as_of_week=1).cold_start
        True
    """

    IF_EXISTS = ('error', 'skip', 'replace')

    def __init__(self, base_rating: float = 1500.0):
        self.base_rating = base_rating
        self._snapshots: Dict[Tuple[str, int, int], RatingSnapshot] = {}
        # Sorted week lists per (team, season) for point-in-time lookups
        self._weeks: Dict[Tuple[str, int], List[int]] = {}

    def record(
        self,
        team_id: str,
        season: int,
        week: int,
        rating: float,
        games_played: int,
        created_at: Optional[datetime] = None,
        if_exists: str = 'error'
    ) -> RatingSnapshot:
        """
        Append a snapshot.

        Args:
            team_id: Team identifier
            season: Season
            week: Week the rating is final for (PRESEASON_WEEK for preseason)
            rating: Rating value
            games_played: Games rated this season
            created_at: Kickoff of the last game that contributed
            if_exists: 'error' raises, 'skip' keeps the existing snapshot,
                'replace' overwrites it explicitly

        Returns:
            The snapshot now stored under the key

        Raises:
            DuplicateSnapshotError: If the key exists and if_exists='error'
        """
        if if_exists not in self.IF_EXISTS:
            raise ValueError(f"if_exists must be one of {self.IF_EXISTS}")

        key = (team_id, season, week)
        existing = self._snapshots.get(key)

        if existing is not None:
            if if_exists == 'skip':
                return existing
            if if_exists == 'error':
                logger.error(f"Duplicate snapshot write for {key}")
                raise DuplicateSnapshotError(team_id, season, week)
            logger.debug(f"Replacing snapshot {key}")

        snapshot = RatingSnapshot(
            team_id=team_id,
            season=season,
            week=week,
            rating=rating,
            games_played=games_played,
            created_at=created_at,
        )
        self._snapshots[key] = snapshot
        if existing is None:
            insort(self._weeks.setdefault((team_id, season), []), week)
        return snapshot

    def query(self, team_id: str, season: int, as_of_week: int) -> SnapshotLookup:
        """
        Rating for a team as known strictly before ``as_of_week``.

        Falls back to the prior season's final snapshot, then to the
        baseline (flagged as a cold start).

        Raises:
            LookaheadViolationError: If the selected snapshot is not
                strictly earlier than ``as_of_week``
        """
        weeks = self._weeks.get((team_id, season), [])
        idx = bisect_left(weeks, as_of_week)

        if idx > 0:
            week = weeks[idx - 1]
            if week >= as_of_week:
                raise LookaheadViolationError(
                    f"Query for {team_id} {season} as of week {as_of_week} "
                    f"selected week {week}"
                )
            snap = self._snapshots[(team_id, season, week)]
            return SnapshotLookup(
                rating=snap.rating,
                games_played=snap.games_played,
                source=SnapshotSource.SNAPSHOT,
                season=season,
                week=week,
            )

        prior = self.latest(team_id, season - 1)
        if prior is not None:
            return SnapshotLookup(
                rating=prior.rating,
                games_played=prior.games_played,
                source=SnapshotSource.PRIOR_SEASON,
                season=prior.season,
                week=prior.week,
            )

        return SnapshotLookup(
            rating=self.base_rating,
            games_played=0,
            source=SnapshotSource.BASELINE,
        )

    def latest(self, team_id: str, season: int) -> Optional[RatingSnapshot]:
        """Final snapshot recorded for a team in a season, if any."""
        weeks = self._weeks.get((team_id, season))
        if not weeks:
            return None
        return self._snapshots[(team_id, season, weeks[-1])]

    def history(self, team_id: str) -> List[RatingSnapshot]:
        """All snapshots for a team in (season, week) order."""
        return sorted(
            (s for s in self._snapshots.values() if s.team_id == team_id),
            key=lambda s: (s.season, s.week),
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Snapshots as a DataFrame sorted by team, season and week."""
        columns = ['team_id', 'season', 'week', 'rating', 'games_played', 'created_at']
        rows = [
            [s.team_id, s.season, s.week, s.rating, s.games_played, s.created_at]
            for s in sorted(self._snapshots.values(), key=lambda s: s.key)
        ]
        return pd.DataFrame(rows, columns=columns)

    def __iter__(self) -> Iterator[RatingSnapshot]:
        return iter(sorted(self._snapshots.values(), key=lambda s: s.key))

    def __len__(self) -> int:
        return len(self._snapshots)

    def __contains__(self, key: Tuple[str, int, int]) -> bool:
        return key in self._snapshots
