# convergence_suite/core/timeseries.py
"""
Shared helpers for yearly (year, value) series.

Series come in from the data layer unsorted and sometimes dirty (NaN,
zeros, negative placeholders). Every helper here returns new objects and
never touches the caller's list.

Exports:
- SeriesPoint
- coerce_series / sort_series / clean_series / latest_value
- project_value(value, growth_rate, years)
- calculate_cagr(series, lookback_years)
"""

from __future__ import annotations
import math
import numbers
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Union

import pandas as pd


@dataclass(frozen=True)
class SeriesPoint:
    year: int
    value: float


SeriesLike = Union[Iterable[SeriesPoint], Iterable[tuple], Iterable[Mapping], pd.Series]


def is_finite_number(x) -> bool:
    return isinstance(x, numbers.Real) and not isinstance(x, bool) and math.isfinite(x)


def _to_float(value) -> float:
    # gaps (None) become NaN so cleaning drops them
    return math.nan if value is None else float(value)


def _to_point(item) -> SeriesPoint:
    if isinstance(item, SeriesPoint):
        return item if item.value is not None else SeriesPoint(item.year, math.nan)
    if isinstance(item, Mapping):
        return SeriesPoint(int(item["year"]), _to_float(item.get("value")))
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return SeriesPoint(int(item[0]), _to_float(item[1]))
    raise TypeError(f"Cannot interpret {item!r} as a (year, value) point")


def coerce_series(series: Optional[SeriesLike]) -> List[SeriesPoint]:
    """Normalize any supported series shape into a list of SeriesPoint.

    Accepts SeriesPoint objects, (year, value) pairs, {"year", "value"}
    mappings, a {year: value} dict or a pandas Series indexed by year.
    None is an empty series.
    """
    if series is None:
        return []
    if isinstance(series, (pd.Series, Mapping)):
        return [SeriesPoint(int(y), _to_float(v)) for y, v in series.items()]
    if isinstance(series, (str, bytes)):
        raise TypeError("series must be an iterable of points, not a string")
    return [_to_point(p) for p in series]


def sort_series(series: Optional[SeriesLike]) -> List[SeriesPoint]:
    """Return a new list sorted ascending by year."""
    return sorted(coerce_series(series), key=lambda p: p.year)


def clean_series(series: Optional[SeriesLike], require_positive: bool = False) -> List[SeriesPoint]:
    """Drop non-finite (and optionally non-positive) points; result is sorted."""
    out = []
    for p in sort_series(series):
        if not math.isfinite(p.value):
            continue
        if require_positive and p.value <= 0:
            continue
        out.append(p)
    return out


def latest_value(series: Optional[SeriesLike], require_positive: bool = False) -> Optional[float]:
    """Value at the latest valid year, or None if the series has none."""
    pts = clean_series(series, require_positive=require_positive)
    return pts[-1].value if pts else None


def latest_year(series: Optional[SeriesLike]) -> Optional[int]:
    pts = clean_series(series)
    return pts[-1].year if pts else None


def project_value(value: float, growth_rate: float, years: float) -> float:
    """Compound `value` at `growth_rate` for `years`. No clamping.

    Results too large for a float come back as +/-inf.
    """
    try:
        return value * (1 + growth_rate) ** years
    except OverflowError:
        return math.copysign(math.inf, value) if value else 0.0


def calculate_cagr(series: Optional[SeriesLike], lookback_years: int) -> Optional[float]:
    """Compound annual growth rate over (roughly) the last `lookback_years`.

    The earlier anchor is the latest point at or before
    `latest.year - lookback_years`; short series fall back to their
    earliest point.

    Returns:
        The rate as a decimal, or None when the window is degenerate or
        either endpoint is not positive.
    """
    pts = sort_series(series)
    if not pts:
        return None

    latest = pts[-1]
    if not math.isfinite(latest.value) or latest.value <= 0:
        return None

    target_year = latest.year - lookback_years
    earlier = None
    for p in reversed(pts[:-1]):
        if p.year <= target_year:
            earlier = p
            break
    if earlier is None:
        earlier = pts[0]

    if not math.isfinite(earlier.value) or earlier.value <= 0:
        return None

    years = latest.year - earlier.year
    if years <= 0:
        return None

    rate = (latest.value / earlier.value) ** (1 / years) - 1
    return rate if math.isfinite(rate) else None
