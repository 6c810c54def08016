"""
Backtesting Framework for Point-Spread Ratings.

Components:
    - engine: Chronological replay (BacktestRunner)
    - selection: Edge-based bet selection and grading per game
    - grading: Spread grading and closing-line value
    - staking: Staking strategies
    - metrics: Record, ROI, drawdown and streaks
    - statistics: Significance tests and bootstrap intervals
    - validator: Input validation
    - sweep: Parallel parameter sweeps over a frozen replay
    - report: Report generation
"""

from .config import BacktestConfig
from .engine import (
    BacktestReport,
    BacktestRunner,
    ReplayDiagnostics,
    ReplayFrame,
    RunnerState,
)
from .grading import (
    BetOutcome,
    BetRecord,
    closing_line_value,
    clv_to_cents,
    grade_spread_bet,
    settle_profit,
)
from .staking import EdgeScaledStake, FlatStake, PercentageStake, StakingStrategy
from .selection import BetSelector, GameReplay, Projection, SelectionDiagnostics
from .metrics import (
    BacktestStatistics,
    calculate_statistics,
    performance_by_edge_threshold,
    performance_by_season,
)
from .statistics import RobustnessReport, analyze_robustness, win_rate_significance
from .validator import InputValidator, IssueSeverity, ValidationIssue, ValidationReport
from .sweep import ParameterSweep, SweepResult, evaluate_config, results_to_dataframe
from .report import ReportWriter, save_report

__all__ = [
    # Engine
    "BacktestConfig",
    "BacktestReport",
    "BacktestRunner",
    "ReplayDiagnostics",
    "ReplayFrame",
    "RunnerState",
    # Grading
    "BetOutcome",
    "BetRecord",
    "closing_line_value",
    "clv_to_cents",
    "grade_spread_bet",
    "settle_profit",
    # Staking
    "EdgeScaledStake",
    "FlatStake",
    "PercentageStake",
    "StakingStrategy",
    # Selection
    "BetSelector",
    "GameReplay",
    "Projection",
    "SelectionDiagnostics",
    # Metrics
    "BacktestStatistics",
    "calculate_statistics",
    "performance_by_edge_threshold",
    "performance_by_season",
    # Statistics
    "RobustnessReport",
    "analyze_robustness",
    "win_rate_significance",
    # Validator
    "InputValidator",
    "IssueSeverity",
    "ValidationIssue",
    "ValidationReport",
    # Sweep
    "ParameterSweep",
    "SweepResult",
    "evaluate_config",
    "results_to_dataframe",
    # Report
    "ReportWriter",
    "save_report",
]
