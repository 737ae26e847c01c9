# convergence_suite/core/convergence.py
"""
Closed-form convergence engine (chaser vs target).

Both entities compound at a constant rate:
    chaser * (1 + gc)^n = target * (1 + gt)^n
    n = ln(target / chaser) / ln((1 + gc) / (1 + gt))

"Never converges" is math.inf, "unknown" is None; neither raises.

Exports:
- years_to_convergence(...)
- required_growth_rate(...)
- generate_projection(...) -> Projection (lazy, restartable)
- calculate_milestones(...)
- summarize_convergence(...) -> ConvergenceSummary
- thin_projection(...)
- benchmark_growth_rate(...)
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence

import pandas as pd

from .settings import DEFAULT_MILESTONES, HORIZON_CAP_YEARS
from .timeseries import is_finite_number

logger = logging.getLogger(__name__)

NEVER = math.inf


class ConvergenceStatus(Enum):
    """Outcome of a convergence calculation."""

    CONVERGED = "converged"   # finite years (0 if already ahead)
    NEVER = "never"           # chaser growth <= target growth
    UNKNOWN = "unknown"       # inputs unusable


@dataclass(frozen=True)
class ProjectionPoint:
    year: int
    chaser_value: float
    target_value: float


@dataclass(frozen=True)
class Milestone:
    percentage: float
    year: int
    chaser_value: float
    target_value: float


# ---------- Closed forms ----------

def years_to_convergence(
    chaser_value: float,
    target_value: float,
    chaser_growth_rate: float,
    target_growth_rate: float = 0.0,
) -> float:
    """Years until chaser reaches target.

    Returns 0.0 if the chaser is already at or above the target and
    math.inf when it never catches up (its growth rate is not above the
    target's, the target shrinks by 100% or more a year, or the inputs
    leave no finite answer).
    """
    if chaser_value >= target_value:
        return 0.0
    if chaser_growth_rate <= target_growth_rate:
        return NEVER
    if chaser_value <= 0:
        return NEVER
    if 1 + target_growth_rate <= 0:
        # target wiped out; no meaningful crossing
        return NEVER

    ratio = target_value / chaser_value
    growth_ratio = (1 + chaser_growth_rate) / (1 + target_growth_rate)
    if growth_ratio <= 1:
        return NEVER

    years = math.log(ratio) / math.log(growth_ratio)
    return years if math.isfinite(years) else NEVER


def convergence_status(years: Optional[float]) -> ConvergenceStatus:
    if years is None or (isinstance(years, float) and math.isnan(years)):
        return ConvergenceStatus.UNKNOWN
    if math.isinf(years):
        return ConvergenceStatus.NEVER
    return ConvergenceStatus.CONVERGED


def required_growth_rate(
    chaser_value: float,
    target_value: float,
    target_growth_rate: float,
    years: float,
) -> Optional[float]:
    """Chaser growth rate needed to close the gap in exactly `years`."""
    if years <= 0:
        return None
    if chaser_value <= 0 or target_value <= 0:
        return None

    try:
        rate = (target_value / chaser_value) ** (1 / years) * (1 + target_growth_rate) - 1
    except OverflowError:
        return None
    return rate if math.isfinite(rate) else None


def convergence_year(base_year: int, years: Optional[float]) -> Optional[int]:
    if years is None or not math.isfinite(years):
        return None
    return int(round(base_year + years))


# ---------- Projection ----------

class Projection:
    """Year-by-year compounding of both entities.

    Iterating yields ProjectionPoint from `start_year` for offsets
    0..horizon_cap_years, stopping after the first point where the chaser
    is at or above the target. It also ends early, after the last
    finite point, if compounding overflows a float. Each iteration
    starts over; nothing is cached between passes.
    """

    def __init__(
        self,
        chaser_value: float,
        target_value: float,
        chaser_growth_rate: float,
        target_growth_rate: float,
        start_year: int,
        horizon_cap_years: int = HORIZON_CAP_YEARS,
    ):
        if horizon_cap_years < 0:
            raise ValueError("horizon_cap_years must be non-negative")
        self.chaser_value = chaser_value
        self.target_value = target_value
        self.chaser_growth_rate = chaser_growth_rate
        self.target_growth_rate = target_growth_rate
        self.start_year = int(start_year)
        self.horizon_cap_years = int(horizon_cap_years)

    def __iter__(self) -> Iterator[ProjectionPoint]:
        gc = 1.0 + self.chaser_growth_rate
        gt = 1.0 + self.target_growth_rate
        for i in range(self.horizon_cap_years + 1):
            try:
                chaser = self.chaser_value * gc ** i
                target = self.target_value * gt ** i
            except OverflowError:
                chaser = target = math.inf
            if not (math.isfinite(chaser) and math.isfinite(target)):
                logger.debug("Projection stopped at %d: non-finite values", self.start_year + i)
                return
            yield ProjectionPoint(self.start_year + i, chaser, target)
            if chaser >= target:
                break

    def to_list(self) -> List[ProjectionPoint]:
        return list(self)

    def to_frame(self) -> pd.DataFrame:
        """Projection as a DataFrame with year / chaser / target columns."""
        rows = [(p.year, p.chaser_value, p.target_value) for p in self]
        return pd.DataFrame(rows, columns=["year", "chaser", "target"])


def generate_projection(
    chaser_value: float,
    target_value: float,
    chaser_growth_rate: float,
    target_growth_rate: float,
    start_year: int,
    horizon_cap_years: int = HORIZON_CAP_YEARS,
) -> Projection:
    return Projection(
        chaser_value, target_value,
        chaser_growth_rate, target_growth_rate,
        start_year, horizon_cap_years,
    )


def default_horizon(years: float, cap: int = HORIZON_CAP_YEARS) -> int:
    """Projection length for charts: 20 years past convergence, 100 if never."""
    span = math.ceil(years) + 20 if math.isfinite(years) else 100
    return min(span, cap)


# ---------- Milestones ----------

def calculate_milestones(
    projection: Iterable[ProjectionPoint],
    percentages: Sequence[float] = DEFAULT_MILESTONES,
) -> List[Milestone]:
    """First year the chaser reaches each fraction of the target's value.

    Each requested percentage is reported at most once; unreached ones are
    omitted. Output is sorted by percentage.
    """
    percentages = list(percentages)
    for p in percentages:
        if not (0 < p <= 1):
            raise ValueError(f"milestone percentage must be in (0, 1], got {p}")

    remaining = sorted(set(percentages))
    found: List[Milestone] = []

    for pt in sorted(projection, key=lambda p: p.year):
        if not remaining:
            break
        if not (is_finite_number(pt.chaser_value) and is_finite_number(pt.target_value)):
            continue
        if pt.chaser_value <= 0 or pt.target_value <= 0:
            continue

        ratio = pt.chaser_value / pt.target_value
        crossed = [p for p in remaining if ratio >= p]
        for p in crossed:
            found.append(Milestone(p, pt.year, pt.chaser_value, pt.target_value))
        remaining = [p for p in remaining if p not in crossed]

    found.sort(key=lambda m: m.percentage)
    return found


def thin_projection(
    points: Sequence[ProjectionPoint],
    max_points: int = 50,
    keep_years: Iterable[int] = (),
) -> List[ProjectionPoint]:
    """Downsample long projections for display.

    Keeps every Nth point, the final point, and any year in `keep_years`
    (typically milestone years).
    """
    if max_points <= 0:
        raise ValueError(f"max_points must be positive, got {max_points}")
    points = list(points)
    if len(points) <= max_points:
        return points

    step = math.ceil(len(points) / max_points)
    keep = set(keep_years)
    last = len(points) - 1
    return [
        p for i, p in enumerate(points)
        if i % step == 0 or i == last or p.year in keep
    ]


# ---------- Summary ----------

@dataclass
class ConvergenceSummary:
    years_to_convergence: float
    status: ConvergenceStatus
    convergence_year: Optional[int]
    gap: Optional[float]                  # target / chaser
    net_growth_advantage: float           # chaser rate - target rate
    projection: List[ProjectionPoint] = field(default_factory=list)
    milestones: List[Milestone] = field(default_factory=list)


def summarize_convergence(
    chaser_value: float,
    target_value: float,
    chaser_growth_rate: float,
    target_growth_rate: float,
    base_year: int,
    percentages: Sequence[float] = DEFAULT_MILESTONES,
    max_points: Optional[int] = 50,
) -> ConvergenceSummary:
    """Everything a comparison view needs in one call."""
    years = years_to_convergence(chaser_value, target_value, chaser_growth_rate, target_growth_rate)
    status = convergence_status(years)

    horizon = default_horizon(years)
    points = generate_projection(
        chaser_value, target_value, chaser_growth_rate, target_growth_rate,
        base_year, horizon,
    ).to_list()
    milestones = calculate_milestones(points, percentages)
    if max_points is not None:
        points = thin_projection(points, max_points, keep_years=[m.year for m in milestones])

    gap = target_value / chaser_value if chaser_value > 0 else None
    if status == ConvergenceStatus.NEVER:
        logger.debug(
            "No convergence: chaser growth %.4f <= target growth %.4f",
            chaser_growth_rate, target_growth_rate,
        )

    return ConvergenceSummary(
        years_to_convergence=years,
        status=status,
        convergence_year=convergence_year(base_year, years),
        gap=gap,
        net_growth_advantage=chaser_growth_rate - target_growth_rate,
        projection=points,
        milestones=milestones,
    )


# ---------- Growth benchmarks ----------

GROWTH_BENCHMARKS = {
    "unprecedented": 0.10,  # >10% - very rare (e.g., peaks)
    "exceptional": 0.07,    # 7-10% - historically exceptional
    "strong": 0.05,
    "moderate": 0.03,
}


class BenchmarkTone(Enum):
    GOOD = "good"
    AMBITIOUS = "ambitious"
    UNPRECEDENTED = "unprecedented"


@dataclass(frozen=True)
class GrowthBenchmark:
    label: str
    tone: BenchmarkTone


def benchmark_growth_rate(rate: Optional[float]) -> GrowthBenchmark:
    """Classify a (required) growth rate against historical experience."""
    if not is_finite_number(rate):
        return GrowthBenchmark("—", BenchmarkTone.GOOD)
    if rate <= 0:
        return GrowthBenchmark("No growth required", BenchmarkTone.GOOD)
    if rate > GROWTH_BENCHMARKS["unprecedented"]:
        return GrowthBenchmark("Unprecedented", BenchmarkTone.UNPRECEDENTED)
    if rate >= GROWTH_BENCHMARKS["exceptional"]:
        return GrowthBenchmark("Ambitious", BenchmarkTone.AMBITIOUS)
    if rate >= GROWTH_BENCHMARKS["strong"]:
        return GrowthBenchmark("Strong", BenchmarkTone.GOOD)
    if rate >= GROWTH_BENCHMARKS["moderate"]:
        return GrowthBenchmark("Moderate", BenchmarkTone.GOOD)
    return GrowthBenchmark("Slow", BenchmarkTone.GOOD)
