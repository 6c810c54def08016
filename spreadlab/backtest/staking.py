"""
Staking Strategies.

Stakes are expressed in units. ROI is profit over total staked, so
flat staking reproduces the classic (wins * payout - losses) / bets.

Staking Strategies:
    - FlatStake: Fixed units per bet
    - PercentageStake: share of the running bankroll
    - EdgeScaledStake: Units proportional to the effective edge
"""

from abc import ABC, abstractmethod

from spreadlab.model.edge import EdgeResult


class StakingStrategy(ABC):
    """Sizes each bet in units from its edge and the running bankroll."""

    @abstractmethod
    def calculate_stake(self, edge: EdgeResult, bankroll: float) -> float:
        """
        Calculate stake for a qualifying bet.

        Args:
            edge: Edge that qualified the bet
            bankroll: Bankroll in units before the bet

        Returns:
            Stake in units (0 means skip)
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Label used in reports and sweep tables."""


class FlatStake(StakingStrategy):
    """Fixed stake per bet regardless of edge or bankroll."""

    def __init__(self, units: float = 1.0):
        if units <= 0:
            raise ValueError("units must be positive")
        self.units = units

    def calculate_stake(self, edge: EdgeResult, bankroll: float) -> float:
        return self.units

    @property
    def name(self) -> str:
        return f"Flat Stake ({self.units:g}u)"

    def __eq__(self, other) -> bool:
        return isinstance(other, FlatStake) and other.units == self.units

    def __hash__(self) -> int:
        return hash(("flat", self.units))


class PercentageStake(StakingStrategy):
    """
    Stake a fixed share of the running bankroll.

    Scales with wins and losses. The share is below 1 so a loss never
    empties the bankroll and every qualifying bet gets a stake.
    """

    def __init__(self, percentage: float = 0.02):
        if not 0.0 < percentage < 1.0:
            raise ValueError("percentage must be within (0, 1)")
        self.percentage = percentage

    def calculate_stake(self, edge: EdgeResult, bankroll: float) -> float:
        return max(0.0, bankroll * self.percentage)

    @property
    def name(self) -> str:
        return f"Percentage Stake ({self.percentage:.1%})"

    def __eq__(self, other) -> bool:
        return isinstance(other, PercentageStake) and other.percentage == self.percentage

    def __hash__(self) -> int:
        return hash(("percentage", self.percentage))


class EdgeScaledStake(StakingStrategy):
    """
    Stake grows with the effective edge.

    ``units`` per ``edge_unit`` points of |effective edge|, clamped to
    [min_units, max_units].
    """

    def __init__(
        self,
        units: float = 1.0,
        edge_unit: float = 3.0,
        min_units: float = 0.5,
        max_units: float = 3.0
    ):
        if edge_unit <= 0:
            raise ValueError("edge_unit must be positive")
        if not 0 < min_units <= max_units:
            raise ValueError("need 0 < min_units <= max_units")
        self.units = units
        self.edge_unit = edge_unit
        self.min_units = min_units
        self.max_units = max_units

    def calculate_stake(self, edge: EdgeResult, bankroll: float) -> float:
        raw = self.units * edge.abs_effective_edge / self.edge_unit
        return max(self.min_units, min(self.max_units, raw))

    @property
    def name(self) -> str:
        return f"Edge Scaled ({self.units:g}u per {self.edge_unit:g} pts)"

    def __eq__(self, other) -> bool:
        return isinstance(other, EdgeScaledStake) and (
            (other.units, other.edge_unit, other.min_units, other.max_units)
            == (self.units, self.edge_unit, self.min_units, self.max_units)
        )

    def __hash__(self) -> int:
        return hash(("edge", self.units, self.edge_unit, self.min_units, self.max_units))
