"""
Run Backtest Script.

Loads games, market lines and (optionally) preseason team context from
CSV exports, replays them chronologically, and writes the report.

Usage:
    python scripts/run_backtest.py --games data/games.csv --lines data/lines.csv
    python scripts/run_backtest.py --games g.csv --lines l.csv --min-edge 2 --max-edge 8 \
        --line-source close --output results/report.md --json results/report.json
"""

import argparse
import logging
import sys
from pathlib import Path

from spreadlab.backtest import BacktestConfig, BacktestRunner, save_report
from spreadlab.core.config import settings
from spreadlab.core.exceptions import SpreadLabError
from spreadlab.data import contexts_from_dataframe, games_from_dataframe, lines_from_dataframe, load_csv

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay point-spread ratings against market lines")
    parser.add_argument("--games", required=True, help="CSV of games with final scores")
    parser.add_argument("--lines", required=True, help="CSV of market lines")
    parser.add_argument("--contexts", help="CSV of preseason team context")
    parser.add_argument("--min-edge", type=float, default=settings.MIN_EDGE, help="Minimum |effective edge|")
    parser.add_argument("--max-edge", type=float, default=settings.MAX_EDGE, help="Maximum |effective edge|")
    parser.add_argument(
        "--line-source", choices=["open", "close"], default=settings.LINE_SOURCE,
        help="Bet at the opening or closing spread"
    )
    parser.add_argument("--min-games", type=int, default=0, help="Games each team must have played")
    parser.add_argument("--output", help="Write a Markdown report here")
    parser.add_argument("--json", help="Write a JSON report here")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
    logger.info(f"Starting {settings.APP_NAME} backtest v{settings.APP_VERSION}")

    games = games_from_dataframe(load_csv(args.games))
    lines = lines_from_dataframe(load_csv(args.lines))
    contexts = contexts_from_dataframe(load_csv(args.contexts)) if args.contexts else None

    config = BacktestConfig.from_settings(
        settings,
        min_edge=args.min_edge,
        max_edge=args.max_edge,
        line_source=args.line_source,
        min_games_played=args.min_games,
    )

    try:
        report = BacktestRunner(config).run(games, lines, contexts)
    except SpreadLabError as e:
        logger.error(f"Backtest aborted: {e}")
        return 1

    print(report.summary())
    print(report.robustness)

    for path, fmt in ((args.output, "markdown"), (args.json, "json")):
        if path:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            save_report(report, path, format=fmt)
            logger.info(f"Saved {fmt} report to {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
