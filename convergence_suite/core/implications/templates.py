"""Template paths: learn an income -> metric curve from donor countries.

Donor histories are pooled into one flat set of (income, value) pairs,
keyed by income rather than by donor. The curve is piecewise linear in
log-income space and flat beyond the observed income range; it never
extrapolates past the donors' data.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from ..timeseries import SeriesLike, coerce_series, is_finite_number
from .metrics import MetricDefinition, MetricTransform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DonorPool:
    """A named set of donor countries whose histories are pooled."""

    id: str
    label: str
    members: Tuple[str, ...]

    def __post_init__(self):
        """Validate configuration."""
        if not self.members:
            raise ValueError(f"donor pool '{self.id}' has no members")
        object.__setattr__(self, "members", tuple(self.members))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"id": self.id, "label": self.label, "members": list(self.members)}

    @classmethod
    def from_dict(cls, data: dict) -> "DonorPool":
        """Create from dictionary."""
        return cls(id=data["id"], label=data.get("label", data["id"]), members=tuple(data["members"]))


# Built-in template paths
TEMPLATE_PATHS: Dict[str, DonorPool] = {
    "china": DonorPool("china", "China-like", ("CHN",)),
    "us": DonorPool("us", "US-like", ("USA",)),
    "eu": DonorPool("eu", "Europe-like", ("DEU", "FRA", "GBR")),
}


def get_template_path(template_id: str) -> Optional[DonorPool]:
    return TEMPLATE_PATHS.get(template_id)


@dataclass(frozen=True)
class Interpolant:
    """Sorted, de-duplicated (income, value) points for one metric."""

    incomes: Tuple[float, ...]
    values: Tuple[float, ...]
    transform: MetricTransform

    @property
    def income_min(self) -> Optional[float]:
        return self.incomes[0] if self.incomes else None

    @property
    def income_max(self) -> Optional[float]:
        return self.incomes[-1] if self.incomes else None

    @property
    def points(self) -> List[Tuple[float, float]]:
        return list(zip(self.incomes, self.values))

    @property
    def is_empty(self) -> bool:
        return len(self.incomes) < 2

    def covers(self, income: float) -> bool:
        """True if `income` lies inside the donors' observed range."""
        if self.is_empty:
            return False
        return self.income_min <= income <= self.income_max

    def predict(self, income: float) -> Optional[float]:
        return predict(self, income)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"income": self.incomes, "value": self.values})


def _pair_by_year(
    income_series: SeriesLike,
    metric_series: SeriesLike,
    require_positive_value: bool,
) -> pd.DataFrame:
    """Join one donor's income and metric on year, dropping unusable pairs."""
    inc = pd.DataFrame(
        [(p.year, p.value) for p in coerce_series(income_series)],
        columns=["year", "income"],
    )
    met = pd.DataFrame(
        [(p.year, p.value) for p in coerce_series(metric_series)],
        columns=["year", "value"],
    )
    if inc.empty or met.empty:
        return pd.DataFrame(columns=["income", "value"])

    inc = inc[np.isfinite(inc["income"]) & (inc["income"] > 0)]
    # one income per year; the last reading wins
    inc = inc.drop_duplicates(subset="year", keep="last")

    pairs = met.merge(inc, on="year", how="inner")
    pairs = pairs[np.isfinite(pairs["value"])]
    if require_positive_value:
        pairs = pairs[pairs["value"] > 0]
    return pairs[["income", "value"]]


def build_mapping(
    income_by_country: Mapping[str, SeriesLike],
    metric_by_country: Mapping[str, SeriesLike],
    definition: MetricDefinition,
    members: Optional[Iterable[str]] = None,
) -> Interpolant:
    """Pool donor histories into an Interpolant for `definition`.

    Args:
        income_by_country: Income per capita series keyed by country id
        metric_by_country: Metric series keyed by country id
        definition: Metric transform (decides the positivity filter)
        members: Donor ids to pool; defaults to every country in
            `metric_by_country`

    Returns:
        Interpolant with unique incomes ascending; incomes observed more
        than once carry the mean of their metric values.
    """
    donors = list(members) if members is not None else list(metric_by_country.keys())

    frames = [
        _pair_by_year(
            income_by_country.get(iso),
            metric_by_country.get(iso),
            definition.requires_positive_value,
        )
        for iso in donors
    ]
    frames = [f for f in frames if not f.empty]

    if not frames:
        logger.debug("No donor pairs for %s (donors=%s)", definition.code, donors)
        return Interpolant((), (), definition.transform)

    pooled = pd.concat(frames, ignore_index=True).astype("float64")
    grouped = pooled.groupby("income", sort=True)["value"].mean()

    if len(grouped) < 2:
        logger.debug("Only %d template point(s) for %s", len(grouped), definition.code)

    return Interpolant(
        incomes=tuple(float(x) for x in grouped.index),
        values=tuple(float(v) for v in grouped.to_numpy()),
        transform=definition.transform,
    )


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _log_lerp(a: float, b: float, t: float) -> float:
    if a <= 0 or b <= 0:
        return _lerp(a, b, t)
    return math.exp(_lerp(math.log(a), math.log(b), t))


def predict(interpolant: Interpolant, income: float) -> Optional[float]:
    """Metric level the donors showed at `income`.

    Clamped to the end values outside the observed income range. None when
    the interpolant has fewer than two points or income is not a positive
    finite number.
    """
    if interpolant.is_empty:
        return None
    if not is_finite_number(income) or income <= 0:
        return None

    incomes = interpolant.incomes
    values = interpolant.values
    if income <= incomes[0]:
        return values[0]
    if income >= incomes[-1]:
        return values[-1]

    xs = np.log(np.asarray(incomes))
    x = math.log(income)
    hi = int(np.searchsorted(xs, x, side="left"))
    lo = hi - 1

    x0, x1 = xs[lo], xs[hi]
    t = 0.0 if x1 == x0 else float((x - x0) / (x1 - x0))

    if interpolant.transform == MetricTransform.LOG_LOG:
        out = _log_lerp(values[lo], values[hi], t)
    else:
        out = _lerp(values[lo], values[hi], t)
    return out if math.isfinite(out) else None
