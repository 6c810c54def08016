"""
Input Validation Module.

Checks the bulk inputs before a replay starts. Anything that would make
the replay silently biased (games out of order, the same game twice, a
team playing itself) is CRITICAL and stops the run; softer problems are
reported and tallied.

Common sources of bias in spread backtests:
    1. Games not in chronological order (later results leak into earlier weeks)
    2. Duplicate games (a result counted twice)
    3. Betting the closing number (only known at kickoff)
    4. Lines attached to games that are not in the schedule
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from spreadlab.data.models import Game, LineSource, MarketLine


class IssueSeverity(Enum):
    """Severity level of an input issue."""
    INFO = "info"           # Worth knowing, replay unaffected
    WARNING = "warning"     # Likely data problem, replay still valid
    CRITICAL = "critical"   # Would invalidate the backtest


@dataclass
class ValidationIssue:
    """A single problem found in the inputs."""
    code: str
    severity: IssueSeverity
    description: str
    affected_rows: int = 0
    example: Optional[str] = None

    def __str__(self) -> str:
        icon = {
            IssueSeverity.INFO: "ℹ️",
            IssueSeverity.WARNING: "⚠️",
            IssueSeverity.CRITICAL: "🚨"
        }[self.severity]

        example = f" (e.g. {self.example})" if self.example else ""
        return (
            f"{icon} [{self.severity.value.upper()}] {self.code}: "
            f"{self.description} - {self.affected_rows} rows{example}"
        )


@dataclass
class ValidationReport:
    """Complete validation report for a replay's inputs."""
    issues: List[ValidationIssue]
    games_checked: int
    lines_checked: int
    passed: bool

    def by_code(self, code: str) -> Optional[ValidationIssue]:
        return next((i for i in self.issues if i.code == code), None)

    @property
    def critical(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.CRITICAL]

    def __str__(self) -> str:
        status = "✅ PASSED" if self.passed else "❌ FAILED"

        counts = {
            severity: sum(1 for i in self.issues if i.severity == severity)
            for severity in IssueSeverity
        }

        report = f"""
═══════════════════════════════════════════════════════════════
                INPUT VALIDATION REPORT
═══════════════════════════════════════════════════════════════
Status: {status}
Games Checked: {self.games_checked}
Lines Checked: {self.lines_checked}

Issues Found:
  🚨 Critical: {counts[IssueSeverity.CRITICAL]}
  ⚠️  Warning:  {counts[IssueSeverity.WARNING]}
  ℹ️  Info:     {counts[IssueSeverity.INFO]}
───────────────────────────────────────────────────────────────
"""
        if self.issues:
            report += "\nDETAILS:\n"
            order = list(IssueSeverity)
            for issue in sorted(self.issues, key=lambda i: -order.index(i.severity)):
                report += f"{issue}\n"
        else:
            report += "\n✨ No input issues detected!\n"

        return report


class InputValidator:
    """
    Validates games and lines before a replay.

    Example:
        >>> validator = InputValidator()
        >>> report = validator.validate(games, lines)
        >>> assert report.passed, str(report)
    """

    # Spreads beyond this are almost certainly data errors
    MAX_PLAUSIBLE_SPREAD = 70.0

    def __init__(self, line_source: LineSource = LineSource.OPEN, strict_mode: bool = False):
        """
        Args:
            line_source: Line the replay will bet at
            strict_mode: If True, any issue fails validation
        """
        self.line_source = LineSource(line_source)
        self.strict_mode = strict_mode

    def validate(
        self,
        games: Sequence[Game],
        lines: Optional[Dict[str, MarketLine]] = None
    ) -> ValidationReport:
        """
        Run all validation checks.

        Args:
            games: Games in the order they will be replayed
            lines: Market lines keyed by game id

        Returns:
            ValidationReport with all issues
        """
        lines = lines or {}
        issues: List[ValidationIssue] = []

        issues.extend(self.check_chronology(games))
        issues.extend(self.check_duplicates(games))
        issues.extend(self.check_self_play(games))
        issues.extend(self.check_missing_scores(games))
        issues.extend(self.check_lines(games, lines))

        passed = not any(i.severity == IssueSeverity.CRITICAL for i in issues)
        if self.strict_mode:
            passed = len(issues) == 0

        return ValidationReport(
            issues=issues,
            games_checked=len(games),
            lines_checked=len(lines),
            passed=passed,
        )

    def check_chronology(self, games: Sequence[Game]) -> List[ValidationIssue]:
        """Games must be sorted by (season, week, kickoff)."""
        bad = [
            cur for prev, cur in zip(games, games[1:])
            if cur.sort_key[:3] < prev.sort_key[:3]
        ]
        if not bad:
            return []
        return [ValidationIssue(
            code="out_of_order",
            severity=IssueSeverity.CRITICAL,
            description="Games are not sorted by (season, week, kickoff)",
            affected_rows=len(bad),
            example=bad[0].game_id,
        )]

    def check_duplicates(self, games: Sequence[Game]) -> List[ValidationIssue]:
        seen = set()
        dupes = []
        for game in games:
            if game.game_id in seen:
                dupes.append(game.game_id)
            seen.add(game.game_id)
        if not dupes:
            return []
        return [ValidationIssue(
            code="duplicate_game",
            severity=IssueSeverity.CRITICAL,
            description="Game id appears more than once",
            affected_rows=len(dupes),
            example=dupes[0],
        )]

    def check_self_play(self, games: Sequence[Game]) -> List[ValidationIssue]:
        bad = [g.game_id for g in games if g.home_team == g.away_team]
        if not bad:
            return []
        return [ValidationIssue(
            code="self_play",
            severity=IssueSeverity.CRITICAL,
            description="Home and away team are the same",
            affected_rows=len(bad),
            example=bad[0],
        )]

    def check_missing_scores(self, games: Sequence[Game]) -> List[ValidationIssue]:
        bad = [g.game_id for g in games if not g.is_complete]
        if not bad:
            return []
        return [ValidationIssue(
            code="missing_scores",
            severity=IssueSeverity.INFO,
            description="Games without final scores will be skipped",
            affected_rows=len(bad),
            example=bad[0],
        )]

    def check_lines(
        self,
        games: Sequence[Game],
        lines: Dict[str, MarketLine]
    ) -> List[ValidationIssue]:
        issues = []
        game_ids = {g.game_id for g in games}

        orphans = sorted(gid for gid in lines if gid not in game_ids)
        if orphans:
            issues.append(ValidationIssue(
                code="orphan_line",
                severity=IssueSeverity.WARNING,
                description="Lines reference games not in the schedule",
                affected_rows=len(orphans),
                example=orphans[0],
            ))

        no_spread = sorted(gid for gid, line in lines.items() if not line.has_spread)
        if no_spread:
            issues.append(ValidationIssue(
                code="no_spread",
                severity=IssueSeverity.INFO,
                description="Lines without an opening or closing spread",
                affected_rows=len(no_spread),
                example=no_spread[0],
            ))

        implausible = sorted(
            gid for gid, line in lines.items()
            for spread in (line.open_spread, line.close_spread)
            if spread is not None and abs(spread) > self.MAX_PLAUSIBLE_SPREAD
        )
        if implausible:
            issues.append(ValidationIssue(
                code="implausible_spread",
                severity=IssueSeverity.WARNING,
                description=f"Spreads larger than {self.MAX_PLAUSIBLE_SPREAD:g} points",
                affected_rows=len(implausible),
                example=implausible[0],
            ))

        bad_price = sorted(gid for gid, line in lines.items() if -100 < line.price < 100)
        if bad_price:
            issues.append(ValidationIssue(
                code="invalid_price",
                severity=IssueSeverity.CRITICAL,
                description="American price between -100 and +100",
                affected_rows=len(bad_price),
                example=bad_price[0],
            ))

        if self.line_source == LineSource.CLOSE:
            issues.append(ValidationIssue(
                code="closing_line_bets",
                severity=IssueSeverity.WARNING,
                description=(
                    "Bets are struck at the closing spread, which is only known "
                    "at kickoff; CLV will be zero by construction"
                ),
                affected_rows=len(lines),
            ))

        return issues
