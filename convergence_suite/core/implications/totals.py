"""Convert per-capita and percentage metrics into absolute totals."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from ..settings import POP_GROWTH_BOUNDS, POP_LOOKBACK_YEARS
from ..timeseries import (
    SeriesLike,
    calculate_cagr,
    is_finite_number,
    latest_value,
    project_value,
)
from .estimator import clamp
from .metrics import PERCENT_RANGE

__all__ = [
    "TotalUnit",
    "TotalValue",
    "Totals",
    "PopulationAssumption",
    "PopulationProjection",
    "calculate_cagr",
    "project_value",
    "compute_totals",
    "income_total",
    "project_population",
]


class TotalUnit(Enum):
    PERSONS = "persons"
    TOE = "toe"            # tonnes of oil equivalent
    TWH = "TWh"
    MTCO2 = "MtCO2"
    INTL_DOLLARS = "int$"


@dataclass(frozen=True)
class TotalValue:
    unit: TotalUnit
    value: float


@dataclass(frozen=True)
class Totals:
    current_total: Optional[TotalValue] = None
    implied_total: Optional[TotalValue] = None


EMPTY_TOTALS = Totals(None, None)


def _safe_positive(x: Optional[float]) -> Optional[float]:
    return float(x) if is_finite_number(x) and x > 0 else None


def _safe_finite(x: Optional[float]) -> Optional[float]:
    return float(x) if is_finite_number(x) else None


def _to_fraction(pct: float) -> float:
    return clamp(pct, *PERCENT_RANGE) / 100


# Per-capita unit -> total: (unit, divisor). Energy is kg oil eq, electricity
# kWh, emissions tonnes.
PER_CAPITA_RULES: Dict[str, Tuple[TotalUnit, float]] = {
    "ENERGY_USE_PCAP": (TotalUnit.TOE, 1000.0),
    "ELECTRICITY_USE_PCAP": (TotalUnit.TWH, 1e9),
    "CO2_PCAP": (TotalUnit.MTCO2, 1e6),
}

PCT_OF_POPULATION_CODES = ("URBAN_POP_PCT",)
PCT_OF_GDP_CODES = ("INDUSTRY_VA_PCT_GDP", "CAPITAL_FORMATION_PCT_GDP")


def income_total(income_per_capita: Optional[float], population: Optional[float]) -> Optional[TotalValue]:
    """Aggregate income (int$) = income per capita x population."""
    pop = _safe_positive(population)
    pcap = _safe_finite(income_per_capita)
    if pop is None or pcap is None:
        return None
    return TotalValue(TotalUnit.INTL_DOLLARS, pcap * pop)


def compute_totals(
    metric_code: str,
    current_metric: Optional[float],
    implied_metric: Optional[float],
    pop_current: Optional[float],
    pop_future: Optional[float],
    income_pcap_current: Optional[float],
    income_pcap_future: Optional[float],
) -> Totals:
    """Current and implied absolute totals for one metric.

    Args:
        metric_code: Implication metric code
        current_metric: Entity's current metric value (per capita or %)
        implied_metric: Estimated metric value at the future income
        pop_current: Population now
        pop_future: Population at the horizon
        income_pcap_current: Income per capita now
        income_pcap_future: Income per capita at the horizon

    Returns:
        Totals; both sides None for unknown codes or missing population /
        income inputs, one side None when that metric value is missing.
    """
    pop_now = _safe_positive(pop_current)
    pop_then = _safe_positive(pop_future)
    cur = _safe_finite(current_metric)
    imp = _safe_finite(implied_metric)

    if metric_code in PER_CAPITA_RULES:
        if pop_now is None or pop_then is None:
            return EMPTY_TOTALS
        unit, divisor = PER_CAPITA_RULES[metric_code]
        return Totals(
            current_total=TotalValue(unit, cur * pop_now / divisor) if cur is not None else None,
            implied_total=TotalValue(unit, imp * pop_then / divisor) if imp is not None else None,
        )

    if metric_code in PCT_OF_POPULATION_CODES:
        if pop_now is None or pop_then is None:
            return EMPTY_TOTALS
        return Totals(
            current_total=TotalValue(TotalUnit.PERSONS, _to_fraction(cur) * pop_now) if cur is not None else None,
            implied_total=TotalValue(TotalUnit.PERSONS, _to_fraction(imp) * pop_then) if imp is not None else None,
        )

    if metric_code in PCT_OF_GDP_CODES:
        gdp_now = income_total(income_pcap_current, pop_now)
        gdp_then = income_total(income_pcap_future, pop_then)
        if gdp_now is None or gdp_then is None:
            return EMPTY_TOTALS
        return Totals(
            current_total=(
                TotalValue(TotalUnit.INTL_DOLLARS, _to_fraction(cur) * gdp_now.value)
                if cur is not None else None
            ),
            implied_total=(
                TotalValue(TotalUnit.INTL_DOLLARS, _to_fraction(imp) * gdp_then.value)
                if imp is not None else None
            ),
        )

    return EMPTY_TOTALS


# ---------- Population ----------

class PopulationAssumption(Enum):
    TREND = "trend"    # recent CAGR, clamped
    STATIC = "static"  # hold today's level


@dataclass(frozen=True)
class PopulationProjection:
    current: Optional[float]
    future: Optional[float]
    growth_rate: float


def project_population(
    series: SeriesLike,
    horizon_years: float,
    assumption: PopulationAssumption = PopulationAssumption.TREND,
    lookback_years: int = POP_LOOKBACK_YEARS,
    bounds: Tuple[float, float] = POP_GROWTH_BOUNDS,
) -> PopulationProjection:
    """Population now and `horizon_years` ahead.

    The trend rate is the CAGR over `lookback_years`, clamped to `bounds`;
    an unknown CAGR counts as zero growth.
    """
    current = latest_value(series, require_positive=True)

    rate = 0.0
    if PopulationAssumption(assumption) == PopulationAssumption.TREND:
        cagr = calculate_cagr(series, lookback_years)
        rate = clamp(cagr, *bounds) if cagr is not None else 0.0

    future = project_value(current, rate, horizon_years) if current is not None else None
    if future is not None and not math.isfinite(future):
        future = None
    return PopulationProjection(current=current, future=future, growth_rate=rate)
