"""
Backtest Report Generation Module.

Renders a BacktestReport as Markdown or JSON. The engine never writes
files; ``save_report`` is the caller-side convenience for doing so.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union
import json

import pandas as pd

from .engine import BacktestReport
from .sweep import SweepResult, results_to_dataframe


def _markdown_table(df: pd.DataFrame, float_format: str = "{:.3f}") -> str:
    """Render a DataFrame as a GitHub-flavoured Markdown table."""
    if df.empty:
        return "_No rows._\n"

    def fmt(value) -> str:
        if value is None or (isinstance(value, float) and pd.isna(value)):
            return "-"
        if isinstance(value, float):
            return float_format.format(value)
        return str(value)

    header = "| " + " | ".join(str(c) for c in df.columns) + " |"
    divider = "|" + "|".join("---" for _ in df.columns) + "|"
    rows = [
        "| " + " | ".join(fmt(v) for v in row) + " |"
        for row in df.itertuples(index=False, name=None)
    ]
    return "\n".join([header, divider, *rows]) + "\n"


class ReportWriter:
    """
    Generate backtest reports.

    Supports Markdown and JSON output formats.
    """

    def generate_markdown(
        self,
        report: BacktestReport,
        title: str = "Backtest Report",
        generated_at: Optional[datetime] = None
    ) -> str:
        """
        Generate a Markdown report for a single backtest.

        Args:
            report: BacktestReport to render
            title: Report title
            generated_at: Timestamp to print (omitted when None so that
                reruns produce identical files)

        Returns:
            Markdown formatted string
        """
        s = report.statistics
        d = report.diagnostics
        sel = report.selection
        clv = "n/a" if s.avg_clv is None else f"{s.avg_clv:+.2f} pts"
        positive_clv = "n/a" if s.positive_clv_rate is None else f"{s.positive_clv_rate:.1%}"
        seasons = ', '.join(str(x) for x in report.seasons) or 'none'

        md = f"# {title}\n\n"
        if generated_at is not None:
            md += f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}\n\n"

        md += f"""## Executive Summary

| Metric | Value |
|--------|-------|
| **Record (W-L-P)** | {s.record} |
| **Win Rate** | {s.win_rate:.2%} |
| **ROI** | {s.roi:+.2%} |
| **Profit** | {s.total_profit:+,.2f}u |
| **Max Drawdown** | {s.max_drawdown:,.2f}u |
| **Total Bets** | {s.total_bets:,} |

## Configuration

- **Seasons:** {seasons}
- **Selection:** {report.config.describe()}

## Detailed Metrics

### Record
- Home bets: {s.home_bets} ({s.home_wins} won)
- Away bets: {s.away_bets} ({s.away_wins} won)
- Longest win streak: {s.longest_win_streak}
- Longest loss streak: {s.longest_loss_streak}

### Market
- Average CLV: {clv} over {s.clv_bets} bets
- Beat the close: {positive_clv}
- Average |effective edge|: {s.avg_effective_edge:.2f}

### Significance
- {report.robustness.win_rate_test}
- ROI 95% CI: {report.robustness.roi_confidence_interval[0]:+.2%} to {report.robustness.roi_confidence_interval[1]:+.2%}

## Performance by Edge Threshold

{_markdown_table(report.edge_threshold_table())}
## Performance by Season

{_markdown_table(report.season_table())}
## Replay Diagnostics

| Counter | Value |
|---------|-------|
| Games supplied | {d.games_total} |
| Games replayed | {d.games_replayed} |
| Skipped (missing scores) | {d.skipped_missing_scores} |
| Cold starts | {d.cold_starts} |
| Games without a line | {d.games_without_line} |
| Outside edge band | {sel.outside_edge_band} |
| Tier rejected | {sel.tier_rejected} |
| Too few games | {sel.too_few_games} |
| Snapshots written | {d.snapshots_written} |
"""

        if report.robustness.warnings:
            md += "\n## Warnings ⚠️\n\n"
            md += "".join(f"- {w}\n" for w in report.robustness.warnings)

        if report.validation is not None:
            if report.validation.issues:
                md += "\n## Input Validation ⚠️\n\n"
                md += "".join(f"- {issue}\n" for issue in report.validation.issues)
            else:
                md += "\n## Input Validation ✅\n\nNo input issues detected.\n"

        return md

    def generate_sweep_markdown(
        self,
        results: Sequence[SweepResult],
        title: str = "Parameter Sweep"
    ) -> str:
        """Markdown table of sweep results, best ROI first."""
        df = results_to_dataframe(results)
        if not df.empty:
            df = df.sort_values(['roi', 'bets', 'index'], ascending=[False, False, True])
        return f"# {title}\n\n{_markdown_table(df)}"

    def generate_json(self, report: BacktestReport) -> str:
        """JSON with sorted keys for byte-stable output."""
        return json.dumps(report.to_dict(), indent=2, sort_keys=True, default=str)


def save_report(
    report: BacktestReport,
    filepath: Union[str, Path],
    format: str = "markdown"
) -> None:
    """
    Save backtest report to file.

    Args:
        report: BacktestReport to save
        filepath: Output file path
        format: 'markdown' or 'json'
    """
    writer = ReportWriter()

    if format == "json":
        content = writer.generate_json(report)
    elif format == "markdown":
        content = writer.generate_markdown(report)
    else:
        raise ValueError(f"Unknown report format: {format}")

    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(content)
