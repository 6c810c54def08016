"""
Exception hierarchy for SpreadLab.

Recoverable data problems (missing scores, missing lines, cold starts)
are never raised; they are counted in replay diagnostics. Everything
under IntegrityError means the no-lookahead guarantee is broken and the
run must stop.
"""


class SpreadLabError(Exception):
    """Base class for all SpreadLab errors."""


class IntegrityError(SpreadLabError):
    """A replay invariant was violated. Results would be biased."""


class DuplicateSnapshotError(IntegrityError):
    """A rating snapshot already exists for (team, season, week)."""

    def __init__(self, team_id: str, season: int, week: int):
        self.team_id = team_id
        self.season = season
        self.week = week
        super().__init__(
            f"Snapshot already recorded for team={team_id} "
            f"season={season} week={week}"
        )


class LookaheadViolationError(IntegrityError):
    """A lookup returned information from the requested week or later."""


class RatingSymmetryError(IntegrityError):
    """A rating update was not zero-sum."""


class ChronologyError(IntegrityError):
    """Games were supplied or processed out of chronological order."""


class InvalidStateError(SpreadLabError):
    """An operation was attempted in the wrong runner state."""


class DataValidationError(SpreadLabError):
    """Input rows are malformed (self-play, duplicate ids, bad values)."""
