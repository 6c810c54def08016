"""
Parameter Sweep Module.

Evaluates many bet-selection configurations against one frozen replay.
The rating loop is sequential and runs once; each configuration is then
an independent task (edge band, uncertainty weights, minimum games,
staking) that only reads the frozen ReplayFrame, so tasks can run in
parallel worker processes and be cancelled individually.

Example:
    >>> report = BacktestRunner(base).run(games, lines)
    >>> sweep = ParameterSweep(report.frame)
    >>> configs = sweep.grid(min_edges=[1, 2, 3, 4], uncertainty_scales=[0.5, 1.0])
    >>> table = results_to_dataframe(sweep.run(configs))
"""

from concurrent.futures import Executor, Future, ProcessPoolExecutor, as_completed
from dataclasses import dataclass, replace
from itertools import product
from typing import Dict, List, Optional, Sequence, Type
import logging

import pandas as pd

from .config import BacktestConfig
from .engine import ReplayFrame
from .metrics import BacktestStatistics, calculate_statistics
from .selection import BetSelector, SelectionDiagnostics


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    """Aggregate outcome of one configuration."""
    index: int
    config: BacktestConfig
    statistics: BacktestStatistics
    selection: SelectionDiagnostics

    def to_row(self) -> Dict:
        cfg = self.config
        stats = self.statistics
        return {
            'index': self.index,
            'min_edge': cfg.min_edge,
            'max_edge': cfg.max_edge,
            'week_weight': cfg.uncertainty.week_weight,
            'team_weight': cfg.uncertainty.team_weight,
            'min_games_played': cfg.min_games_played,
            'max_uncertainty': cfg.max_uncertainty,
            'line_source': cfg.line_source.value,
            'staking': cfg.staking.name,
            'bets': stats.total_bets,
            'wins': stats.wins,
            'losses': stats.losses,
            'pushes': stats.pushes,
            'win_rate': stats.win_rate,
            'profit': stats.total_profit,
            'roi': stats.roi,
            'max_drawdown': stats.max_drawdown,
            'avg_clv': stats.avg_clv,
        }


def evaluate_config(frame: ReplayFrame, config: BacktestConfig, index: int = 0) -> SweepResult:
    """
    Apply one configuration to a frozen replay.

    Module-level so it can be pickled into worker processes.

    Raises:
        ValueError: If the configuration changes rating or projection
            settings, which would need a new replay
    """
    base = frame.config
    if config.rating != base.rating or config.projection != base.projection:
        raise ValueError(
            "Rating and projection settings are fixed by the replay; "
            "run a new BacktestRunner to change them"
        )

    selector = BetSelector(config, frame.contexts)
    _, bets = selector.evaluate_all(frame.games)

    return SweepResult(
        index=index,
        config=config,
        statistics=calculate_statistics(bets),
        selection=selector.diagnostics,
    )


class ParameterSweep:
    """
    Runs independent selection configurations over one replay.

    Results never depend on worker count or completion order.
    """

    def __init__(self, frame: ReplayFrame):
        self.frame = frame

    def grid(
        self,
        min_edges: Sequence[float] = (0.0, 1.0, 2.0, 3.0, 4.0, 5.0),
        max_edges: Sequence[Optional[float]] = (None,),
        uncertainty_scales: Sequence[float] = (1.0,),
        min_games: Sequence[int] = (0,),
        base: Optional[BacktestConfig] = None
    ) -> List[BacktestConfig]:
        """
        Cartesian product of selection settings, in a fixed order.

        Combinations with max_edge below min_edge are dropped.
        """
        base = base or self.frame.config
        configs = []
        for min_edge, max_edge, scale, games in product(
            min_edges, max_edges, uncertainty_scales, min_games
        ):
            if max_edge is not None and max_edge < min_edge:
                continue
            uncertainty = replace(base.uncertainty, week_weight=scale, team_weight=scale)
            configs.append(replace(
                base,
                min_edge=min_edge,
                max_edge=max_edge,
                uncertainty=uncertainty,
                min_games_played=games,
            ))
        return configs

    def submit(self, executor: Executor, configs: Sequence[BacktestConfig]) -> List[Future]:
        """
        Submit one task per configuration.

        Returns:
            Futures in configuration order; cancel any of them to drop
            that configuration
        """
        return [
            executor.submit(evaluate_config, self.frame, config, index)
            for index, config in enumerate(configs)
        ]

    def run(
        self,
        configs: Sequence[BacktestConfig],
        max_workers: Optional[int] = None,
        executor_class: Type[Executor] = ProcessPoolExecutor
    ) -> List[SweepResult]:
        """
        Evaluate every configuration in parallel.

        Args:
            configs: Configurations to evaluate
            max_workers: Worker count (executor default if None)
            executor_class: Executor to use (ProcessPoolExecutor or
                ThreadPoolExecutor)

        Returns:
            Results in configuration order
        """
        if not configs:
            return []

        logger.info(f"Sweeping {len(configs)} configurations over {len(self.frame)} games")

        results: Dict[int, SweepResult] = {}
        with executor_class(max_workers=max_workers) as executor:
            futures = {future: i for i, future in enumerate(self.submit(executor, configs))}
            try:
                for future in as_completed(futures):
                    result = future.result()
                    results[futures[future]] = result
                    logger.debug(
                        f"Config {futures[future]} done: {result.statistics.total_bets} bets, "
                        f"ROI {result.statistics.roi:+.2%}"
                    )
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        return [results[i] for i in range(len(configs))]

    def run_serial(self, configs: Sequence[BacktestConfig]) -> List[SweepResult]:
        """Evaluate configurations in-process, one after another."""
        return [evaluate_config(self.frame, config, i) for i, config in enumerate(configs)]


def results_to_dataframe(results: Sequence[SweepResult]) -> pd.DataFrame:
    """Sweep results as a table, ordered by configuration."""
    return pd.DataFrame([r.to_row() for r in sorted(results, key=lambda r: r.index)])
