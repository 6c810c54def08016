"""
Parameter Sweep Script.

Replays the ratings once, then evaluates a grid of edge thresholds,
uncertainty weights and minimum-games filters in parallel.

Usage:
    python scripts/run_sweep.py --games data/games.csv --lines data/lines.csv \
        --min-edges 0 1 2 3 4 5 --uncertainty-scales 0.5 1.0 1.5 --workers 4
"""

import argparse
import logging
import sys
from pathlib import Path

from spreadlab.backtest import BacktestConfig, BacktestRunner, ParameterSweep, ReportWriter
from spreadlab.core.config import settings
from spreadlab.core.exceptions import SpreadLabError
from spreadlab.data import contexts_from_dataframe, games_from_dataframe, lines_from_dataframe, load_csv

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Sweep bet-selection settings over one replay")
    parser.add_argument("--games", required=True, help="CSV of games with final scores")
    parser.add_argument("--lines", required=True, help="CSV of market lines")
    parser.add_argument("--contexts", help="CSV of preseason team context")
    parser.add_argument("--min-edges", type=float, nargs="+", default=[0, 1, 2, 3, 4, 5])
    parser.add_argument("--max-edges", type=float, nargs="+", default=None)
    parser.add_argument("--uncertainty-scales", type=float, nargs="+", default=[1.0])
    parser.add_argument("--min-games", type=int, nargs="+", default=[0])
    parser.add_argument("--workers", type=int, default=settings.SWEEP_MAX_WORKERS)
    parser.add_argument("--output", help="Write the sweep table as Markdown here")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)

    games = games_from_dataframe(load_csv(args.games))
    lines = lines_from_dataframe(load_csv(args.lines))
    contexts = contexts_from_dataframe(load_csv(args.contexts)) if args.contexts else None

    try:
        report = BacktestRunner(BacktestConfig.from_settings(settings)).run(games, lines, contexts)
    except SpreadLabError as e:
        logger.error(f"Replay aborted: {e}")
        return 1

    sweep = ParameterSweep(report.frame)
    configs = sweep.grid(
        min_edges=args.min_edges,
        max_edges=args.max_edges or [None],
        uncertainty_scales=args.uncertainty_scales,
        min_games=args.min_games,
    )
    results = sweep.run(configs, max_workers=args.workers)

    table = ReportWriter().generate_sweep_markdown(results)
    print(table)

    if args.output:
        Path(args.output).parent.mkdir(parents=True, exist_ok=True)
        Path(args.output).write_text(table, encoding="utf-8")
        logger.info(f"Saved sweep table to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
