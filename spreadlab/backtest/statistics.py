"""
Significance checks for a graded bet list.

Answers "is this record distinguishable from luck?" for a spread
betting backtest:
- Exact binomial test of the win rate against the price's break-even rate
- Block bootstrap confidence interval for ROI (preserves streaks)
- Sample size adequacy checks

Bootstraps take an explicit seed so repeated reports are identical.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from spreadlab.core.odds import STANDARD_PRICE, break_even_win_rate
from .grading import BetOutcome, BetRecord


# ============================================================================
# Result Types
# ============================================================================

@dataclass(frozen=True)
class SampleSizeRequirements:
    """
    Bet counts below which a metric is reported as noise.

    Separating a 55% ATS record from the 52.4% break-even at -110 with
    80% power takes about 1,000 decided bets, so these are reporting
    floors rather than significance guarantees.
    """
    roi: int = 385
    win_rate: int = 96
    clv: int = 50
    fallback: int = 100

    def minimum(self, metric: str) -> int:
        key = metric.lower()
        if key in ('roi', 'win_rate', 'clv'):
            return getattr(self, key)
        return self.fallback

    @classmethod
    def validate(cls, n_samples: int, metric: str) -> Tuple[bool, str]:
        needed = cls().minimum(metric)
        if n_samples < needed:
            return False, f"{metric}: only {n_samples} bets, {needed} needed"
        return True, f"{metric}: {n_samples} bets (floor {needed})"


@dataclass(frozen=True)
class StatisticalTestResult:
    """One hypothesis test outcome, printable as a single report line."""
    test_name: str
    statistic: float
    p_value: float
    significant_at_05: bool
    significant_at_01: bool
    sample_size: int = 0
    sample_adequate: bool = True
    confidence_interval: Optional[Tuple[float, float]] = None

    def __str__(self) -> str:
        verdict = "significant" if self.significant_at_05 else "not significant"
        if self.confidence_interval:
            low, high = self.confidence_interval
            verdict += f", 95% CI {low:.3f}-{high:.3f}"
        return f"{self.test_name}: p={self.p_value:.4f} ({verdict})"


@dataclass
class RobustnessReport:
    """Statistical robustness assessment of a bet list."""
    win_rate_test: StatisticalTestResult
    roi_confidence_interval: Tuple[float, float]
    sample_size_checks: Dict[str, Tuple[bool, str]]
    warnings: List[str] = field(default_factory=list)

    @property
    def is_statistically_significant(self) -> bool:
        return self.win_rate_test.significant_at_05

    @property
    def is_sample_adequate(self) -> bool:
        return all(check[0] for check in self.sample_size_checks.values())

    def __str__(self) -> str:
        low, high = self.roi_confidence_interval
        lines = [
            "─" * 60,
            "  ATS ROBUSTNESS CHECKS",
            "─" * 60,
            f"🎲 {self.win_rate_test}",
            f"📈 Bootstrap ROI (95%): {low:+.2%} .. {high:+.2%}",
        ]
        lines.extend(
            f"{'✓' if adequate else '⚠'}  {msg}"
            for adequate, msg in self.sample_size_checks.values()
        )
        lines.extend(f"⚠️  {w}" for w in self.warnings)
        lines.append("─" * 60)
        return "\n".join(lines)


# ============================================================================
# Significance Tests
# ============================================================================

def win_rate_significance(
    wins: int,
    losses: int,
    price: float = STANDARD_PRICE
) -> StatisticalTestResult:
    """
    One-sided exact binomial test: is the win rate above break-even?

    Pushes are excluded. At -110 the break-even rate is 52.38%.

    Args:
        wins: Winning bets
        losses: Losing bets
        price: American price the bets were struck at

    Returns:
        StatisticalTestResult with a Clopper-Pearson interval for the win rate
    """
    n_total = wins + losses
    p_break_even = break_even_win_rate(price)

    if n_total == 0:
        return StatisticalTestResult(
            test_name="Binomial Win Rate",
            statistic=0.0,
            p_value=1.0,
            significant_at_05=False,
            significant_at_01=False,
            sample_size=0,
            sample_adequate=False,
        )

    result = stats.binomtest(wins, n_total, p=p_break_even, alternative='greater')
    ci = result.proportion_ci(confidence_level=0.95, method='exact')

    return StatisticalTestResult(
        test_name="Binomial Win Rate",
        statistic=wins / n_total,
        p_value=float(result.pvalue),
        significant_at_05=bool(result.pvalue < 0.05),
        significant_at_01=bool(result.pvalue < 0.01),
        sample_size=n_total,
        sample_adequate=SampleSizeRequirements.validate(n_total, 'win_rate')[0],
        confidence_interval=(float(ci.low), float(ci.high)),
    )


# ============================================================================
# Bootstrap Confidence Intervals
# ============================================================================

def block_bootstrap_roi_ci(
    profits: pd.Series,
    stakes: pd.Series,
    n_bootstrap: int = 2000,
    confidence: float = 0.95,
    block_size: int = 10,
    seed: int = 42
) -> Tuple[float, float, float]:
    """
    Confidence interval for ROI using a circular block bootstrap.

    Block resampling keeps winning and losing streaks intact.

    Args:
        profits: Per-bet profit in replay order
        stakes: Per-bet stake in replay order
        n_bootstrap: Resamples to draw
        confidence: Two-sided coverage, e.g. 0.95
        block_size: Consecutive bets kept together per draw
        seed: Random seed

    Returns:
        (lower, upper, observed ROI)
    """
    profit = profits.to_numpy(dtype=float)
    stake = stakes.to_numpy(dtype=float)
    n = len(profit)

    if n == 0 or stake.sum() <= 0:
        return 0.0, 0.0, 0.0

    point = float(profit.sum() / stake.sum())
    if n < 4:
        return point, point, point

    if n < block_size * 2:
        block_size = max(2, n // 4)

    rng = np.random.default_rng(seed)
    n_blocks = int(np.ceil(n / block_size))
    offsets = np.arange(block_size)

    estimates = np.empty(n_bootstrap)
    for i in range(n_bootstrap):
        starts = rng.integers(0, n, size=n_blocks)
        idx = ((starts[:, None] + offsets[None, :]) % n).ravel()[:n]
        estimates[i] = profit[idx].sum() / stake[idx].sum()

    tail = (1 - confidence) / 2
    lower, upper = np.percentile(estimates, [tail * 100, (1 - tail) * 100])

    return float(lower), float(upper), point


# ============================================================================
# Comprehensive Analysis
# ============================================================================

def analyze_robustness(
    bets: Sequence[BetRecord],
    seed: int = 42
) -> RobustnessReport:
    """
    Run the significance checks on a bet list.

    Args:
        bets: Graded bets in replay order
        seed: Bootstrap seed

    Returns:
        RobustnessReport
    """
    wins = sum(1 for b in bets if b.result == BetOutcome.WIN)
    losses = sum(1 for b in bets if b.result == BetOutcome.LOSS)

    # Flat -110 is by far the common case; mixed prices use the median
    price = float(np.median([b.price for b in bets])) if bets else STANDARD_PRICE
    if -100 < price < 100:
        price = STANDARD_PRICE

    win_test = win_rate_significance(wins, losses, price)

    profits = pd.Series([b.profit for b in bets], dtype=float)
    stakes = pd.Series([b.stake for b in bets], dtype=float)
    lower, upper, _ = block_bootstrap_roi_ci(profits, stakes, seed=seed)

    n_bets = len(bets)
    n_clv = sum(1 for b in bets if b.clv_points is not None)
    sample_checks = {
        'roi': SampleSizeRequirements.validate(n_bets, 'roi'),
        'win_rate': SampleSizeRequirements.validate(wins + losses, 'win_rate'),
        'clv': SampleSizeRequirements.validate(n_clv, 'clv'),
    }

    warnings = []
    if n_bets == 0:
        warnings.append("No qualifying bets: nothing to evaluate")
    elif not sample_checks['roi'][0]:
        warnings.append(f"Only {n_bets} bets - ROI estimate is noisy")
    if lower < 0 < upper:
        warnings.append("ROI confidence interval includes zero")

    return RobustnessReport(
        win_rate_test=win_test,
        roi_confidence_interval=(lower, upper),
        sample_size_checks=sample_checks,
        warnings=warnings,
    )
