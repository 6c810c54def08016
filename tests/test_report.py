"""
Tests for Markdown and JSON report generation.
"""

import json
from datetime import datetime

import pytest

from spreadlab.backtest import BacktestConfig, BacktestRunner, ParameterSweep, ReportWriter, save_report


@pytest.fixture
def report(league, loose_config):
    games, lines = league
    return BacktestRunner(loose_config).run(games, lines)


class TestReportWriter:

    def test_markdown_sections(self, report):
        md = ReportWriter().generate_markdown(report, title="League Replay")

        assert md.startswith("# League Replay")
        for section in ("Executive Summary", "Performance by Edge Threshold",
                        "Performance by Season", "Replay Diagnostics"):
            assert f"## {section}" in md
        assert "Generated:" not in md

    def test_markdown_timestamp(self, report):
        md = ReportWriter().generate_markdown(report, generated_at=datetime(2024, 1, 2, 3, 4, 5))
        assert "Generated: 2024-01-02 03:04:05" in md

    def test_markdown_stable(self, league, loose_config):
        games, lines = league
        first = ReportWriter().generate_markdown(BacktestRunner(loose_config).run(games, lines))
        second = ReportWriter().generate_markdown(BacktestRunner(loose_config).run(games, lines))
        assert first == second

    def test_json(self, report):
        data = json.loads(ReportWriter().generate_json(report))

        assert data['statistics']['total_bets'] == len(report.bets)
        assert len(data['cumulative_profit']) == len(report.bets)
        assert data['seasons'] == [2022, 2023]

    def test_empty_report(self, league):
        games, lines = league
        empty = BacktestRunner(BacktestConfig(min_edge=50.0)).run(games, lines)
        md = ReportWriter().generate_markdown(empty)

        assert "0-0-0" in md
        assert "No qualifying bets" in md

    def test_sweep_markdown(self, report):
        sweep = ParameterSweep(report.frame)
        md = ReportWriter().generate_sweep_markdown(sweep.run_serial(sweep.grid(min_edges=[0.0, 1.0])))

        assert md.startswith("# Parameter Sweep")
        assert "| index |" in md


class TestSaveReport:

    def test_markdown_file(self, report, tmp_path):
        path = tmp_path / "report.md"
        save_report(report, path)
        assert path.read_text(encoding="utf-8").startswith("# Backtest Report")

    def test_json_file(self, report, tmp_path):
        path = tmp_path / "report.json"
        save_report(report, path, format="json")
        assert json.loads(path.read_text(encoding="utf-8"))['config']['min_edge'] == 0.5

    def test_unknown_format(self, report, tmp_path):
        with pytest.raises(ValueError):
            save_report(report, tmp_path / "report.html", format="html")
