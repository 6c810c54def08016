"""
Rating, projection and edge models.

Components:
    - ratings: RatingStore and the zero-sum RatingUpdater
    - snapshots: Point-in-time SnapshotArchive
    - projection: Ratings to model spread
    - edge: Model vs market edge with uncertainty shrinkage
"""

from .ratings import (
    RatingConfig,
    RatingEntry,
    RatingStore,
    RatingUpdate,
    RatingUpdater,
    opponent_adjusted_efficiency,
)
from .snapshots import (
    PRESEASON_WEEK,
    RatingSnapshot,
    SnapshotArchive,
    SnapshotLookup,
    SnapshotSource,
)
from .projection import GameProjection, ProjectionConfig, ProjectionEngine
from .edge import (
    BetSide,
    ConfidenceTier,
    EdgeCalculator,
    EdgeConfig,
    EdgeResult,
    TeamUncertainty,
    UncertaintyBreakdown,
    UncertaintyConfig,
    UncertaintyModel,
    continuity_quartiles,
    rank_edges,
)

__all__ = [
    # Ratings
    "RatingConfig",
    "RatingEntry",
    "RatingStore",
    "RatingUpdate",
    "RatingUpdater",
    "opponent_adjusted_efficiency",
    # Snapshots
    "PRESEASON_WEEK",
    "RatingSnapshot",
    "SnapshotArchive",
    "SnapshotLookup",
    "SnapshotSource",
    # Projection
    "GameProjection",
    "ProjectionConfig",
    "ProjectionEngine",
    # Edge
    "BetSide",
    "ConfidenceTier",
    "EdgeCalculator",
    "EdgeConfig",
    "EdgeResult",
    "TeamUncertainty",
    "UncertaintyBreakdown",
    "UncertaintyConfig",
    "UncertaintyModel",
    "continuity_quartiles",
    "rank_edges",
]
