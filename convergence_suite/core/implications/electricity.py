"""Electricity build-out and housing arithmetic on top of implied totals.

Capacity factors and unit sizes are clamped to physically sensible ranges
before use.

Exports:
- electricity_demand: demand change and required domestic generation
- tech_equivalents: a generation gap as capacity of each technology
- observed_electricity: latest generation snapshot with a source breakdown
- baseline_multipliers: required capacity relative to today's fleet
- mix_buildout: a generation gap split across a power mix
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple, Union

from ..timeseries import SeriesLike, clean_series, is_finite_number, sort_series
from .estimator import clamp

HOURS_PER_YEAR = 8760


class PowerSource(Enum):
    """Generation technologies tracked per country."""

    SOLAR = "solar"
    WIND = "wind"
    NUCLEAR = "nuclear"
    COAL = "coal"

    @property
    def generation_code(self) -> str:
        return f"ELECTRICITY_GEN_{self.name}"

    @property
    def capacity_code(self) -> str:
        return f"INSTALLED_CAPACITY_{self.name}_GW"


class CapacityBaseline(Enum):
    """Where today's capacity figures come from."""

    REPORTED = "reported"  # installed capacity series
    INFERRED = "inferred"  # observed generation / capacity factor


@dataclass(frozen=True)
class ImplicationAssumptions:
    """User-tunable engineering assumptions."""

    solar_cf: float = 0.2
    wind_cf: float = 0.35
    nuclear_cf: float = 0.9
    coal_cf: float = 0.6
    panel_watts: float = 400
    wind_turbine_mw: float = 3
    household_size: float = 4
    grid_loss_pct: float = 10
    net_imports_pct: float = 0

    def with_presets(self, presets) -> "ImplicationAssumptions":
        """Overlay a scenario's grid-loss / net-import presets."""
        changes = {}
        if presets.grid_loss_pct is not None:
            changes["grid_loss_pct"] = presets.grid_loss_pct
        if presets.net_imports_pct is not None:
            changes["net_imports_pct"] = presets.net_imports_pct
        return replace(self, **changes) if changes else self

    def clamped(self) -> "ImplicationAssumptions":
        """Copy with capacity factors and unit sizes in sensible ranges."""
        return replace(
            self,
            solar_cf=clamp(self.solar_cf, 0.05, 0.5),
            wind_cf=clamp(self.wind_cf, 0.05, 0.7),
            nuclear_cf=clamp(self.nuclear_cf, 0.05, 0.98),
            coal_cf=clamp(self.coal_cf, 0.05, 0.95),
            panel_watts=clamp(self.panel_watts, 100, 1000),
            wind_turbine_mw=clamp(self.wind_turbine_mw, 0.5, 20),
        )

    def capacity_factor(self, source: PowerSource) -> float:
        return getattr(self, f"{source.value}_cf")


DEFAULT_ASSUMPTIONS = ImplicationAssumptions()


def average_gw(twh_per_year: float) -> float:
    """Average continuous power (GW) of an annual energy flow (TWh)."""
    return twh_per_year * 1000 / HOURS_PER_YEAR


def twh_per_gw(capacity_factor: float) -> float:
    return 8.76 * capacity_factor


@dataclass
class ElectricityDemand:
    demand_current_twh: Optional[float]
    demand_future_twh: Optional[float]
    demand_delta_twh: Optional[float]
    required_domestic_generation_twh: Optional[float]
    buildout_delta_twh: Optional[float]
    demand_delta_avg_gw: Optional[float]
    buildout_delta_avg_gw: Optional[float]
    grid_loss_pct: float
    net_imports_pct: float


def electricity_demand(
    demand_current_twh: Optional[float],
    demand_future_twh: Optional[float],
    observed_generation_twh: Optional[float] = None,
    assumptions: ImplicationAssumptions = DEFAULT_ASSUMPTIONS,
) -> ElectricityDemand:
    """Demand change and the domestic generation needed to serve it.

    Required generation grosses future demand up for grid losses and nets
    out imports; the build-out is how far that exceeds today's observed
    generation (never negative).
    """
    cur = demand_current_twh if is_finite_number(demand_current_twh) else None
    fut = demand_future_twh if is_finite_number(demand_future_twh) else None
    delta = fut - cur if cur is not None and fut is not None else None

    grid_loss = clamp(assumptions.grid_loss_pct / 100, 0, 0.5)
    net_imports = clamp(assumptions.net_imports_pct / 100, -0.5, 0.5)

    required = fut / (1 - grid_loss) - fut * net_imports if fut is not None else None

    buildout = None
    if required is not None and is_finite_number(observed_generation_twh):
        buildout = max(0.0, required - observed_generation_twh)

    return ElectricityDemand(
        demand_current_twh=cur,
        demand_future_twh=fut,
        demand_delta_twh=delta,
        required_domestic_generation_twh=required,
        buildout_delta_twh=buildout,
        demand_delta_avg_gw=average_gw(delta) if delta is not None else None,
        buildout_delta_avg_gw=average_gw(buildout) if buildout is not None else None,
        grid_loss_pct=assumptions.grid_loss_pct,
        net_imports_pct=assumptions.net_imports_pct,
    )


@dataclass
class TechEquivalents:
    delta_twh: float
    nuclear_gw: float
    nuclear_plants: float      # 1 GW units
    coal_gw: float
    coal_plants: float
    solar_gw: float
    solar_panels: Optional[float]
    wind_gw: float
    wind_turbines: Optional[float]

    def gw(self, source: PowerSource) -> float:
        return getattr(self, f"{source.value}_gw")


def tech_equivalents(
    delta_twh: Optional[float],
    assumptions: ImplicationAssumptions = DEFAULT_ASSUMPTIONS,
) -> Optional[TechEquivalents]:
    """Express an annual generation gap as capacity of each technology."""
    if not is_finite_number(delta_twh):
        return None

    a = assumptions.clamped()
    turbine_mw = a.wind_turbine_mw

    nuclear_gw = delta_twh / twh_per_gw(a.nuclear_cf)
    coal_gw = delta_twh / twh_per_gw(a.coal_cf)
    solar_gw = delta_twh / twh_per_gw(a.solar_cf)
    wind_gw = delta_twh / twh_per_gw(a.wind_cf)

    twh_per_panel = (a.panel_watts / 1000) * a.solar_cf * HOURS_PER_YEAR / 1e9

    return TechEquivalents(
        delta_twh=delta_twh,
        nuclear_gw=nuclear_gw,
        nuclear_plants=nuclear_gw,
        coal_gw=coal_gw,
        coal_plants=coal_gw,
        solar_gw=solar_gw,
        solar_panels=delta_twh / twh_per_panel if twh_per_panel > 0 else None,
        wind_gw=wind_gw,
        wind_turbines=wind_gw * 1000 / turbine_mw if turbine_mw > 0 else None,
    )


# Power mix

@dataclass(frozen=True)
class MixPreset:
    """A named split of new generation across technologies (percent)."""

    id: str
    label: str
    solar: float = 0
    wind: float = 0
    nuclear: float = 0
    coal: float = 0

    def shares(self) -> Dict[PowerSource, float]:
        return {source: float(getattr(self, source.value)) for source in PowerSource}


MIX_PRESETS: Dict[str, MixPreset] = {
    "clean": MixPreset("clean", "Clean (60/30/10)", solar=60, wind=30, nuclear=10),
    "renewables": MixPreset("renewables", "Solar+Wind (50/50)", solar=50, wind=50),
    "nuclear": MixPreset("nuclear", "All nuclear", nuclear=100),
    "coal": MixPreset("coal", "All coal", coal=100),
    "balanced": MixPreset("balanced", "Balanced", solar=30, wind=30, nuclear=20, coal=20),
}

DEFAULT_MIX = MIX_PRESETS["clean"]

# used when the shares do not add up to anything positive
_FALLBACK_FRACTIONS = {
    PowerSource.SOLAR: 0.6,
    PowerSource.WIND: 0.3,
    PowerSource.NUCLEAR: 0.1,
    PowerSource.COAL: 0.0,
}

MixLike = Union[MixPreset, Mapping]


def get_mix_preset(preset_id: str) -> Optional[MixPreset]:
    return MIX_PRESETS.get(preset_id)


def _mix_shares(mix: MixLike) -> Dict[PowerSource, float]:
    if isinstance(mix, MixPreset):
        return mix.shares()
    shares = {source: 0.0 for source in PowerSource}
    for key, share in mix.items():
        shares[PowerSource(key)] = float(share)
    return shares


# Observed generation

@dataclass
class ObservedElectricity:
    """Generation in the latest year that has a source breakdown."""

    year: int
    total_twh: float
    by_source_twh: Dict[PowerSource, Optional[float]]
    shares_pct: Dict[PowerSource, Optional[float]]


def observed_electricity(
    total: Optional[SeriesLike],
    by_source: Optional[Mapping[PowerSource, SeriesLike]] = None,
) -> Optional[ObservedElectricity]:
    """Latest generation snapshot with a per-source breakdown.

    Walks the total back from its latest year and stops at the first year
    whose total is positive and where at least one source has a
    non-negative reading for that same year. Totals without any source
    data never qualify.

    Args:
        total: Total generation series (TWh)
        by_source: Generation series (TWh) per PowerSource

    Returns:
        ObservedElectricity, or None when no year qualifies
    """
    by_source = by_source or {}
    readings = {
        source: {p.year: p.value for p in clean_series(by_source.get(source))}
        for source in PowerSource
    }

    for point in reversed(clean_series(total, require_positive=True)):
        at_year = {source: readings[source].get(point.year) for source in PowerSource}
        if not any(v is not None and v >= 0 for v in at_year.values()):
            continue
        return ObservedElectricity(
            year=point.year,
            total_twh=point.value,
            by_source_twh=at_year,
            shares_pct={
                source: v / point.value * 100 if v is not None and v >= 0 else None
                for source, v in at_year.items()
            },
        )
    return None


# Capacity baselines

def _ratio(need_gw, base_gw) -> Optional[float]:
    if not is_finite_number(need_gw) or need_gw <= 0:
        return None
    if not is_finite_number(base_gw) or base_gw <= 0:
        return None
    return need_gw / base_gw


def _capacity_bases(
    observed: Optional[ObservedElectricity],
    capacity: Optional[Mapping[PowerSource, SeriesLike]],
    assumptions: ImplicationAssumptions,
) -> Dict[PowerSource, Tuple[Optional[float], Optional[int]]]:
    """Today's GW per source, with the reporting year (None when inferred).

    A positive reported capacity at the latest year wins; otherwise the
    capacity is backed out of observed generation.
    """
    capacity = capacity or {}
    bases = {}
    for source in PowerSource:
        points = sort_series(capacity.get(source))
        latest = points[-1] if points else None
        if latest is not None and is_finite_number(latest.value) and latest.value > 0:
            bases[source] = (latest.value, latest.year)
            continue

        twh = observed.by_source_twh.get(source) if observed is not None else None
        inferred = None
        if is_finite_number(twh) and twh > 0:
            inferred = twh / twh_per_gw(assumptions.capacity_factor(source))
        bases[source] = (inferred, None)
    return bases


@dataclass
class BaselineMultipliers:
    """Required capacity per technology as a multiple of today's fleet."""

    kind: CapacityBaseline
    year: int
    ratios: Dict[PowerSource, Optional[float]]


def baseline_multipliers(
    equivalents: Optional[TechEquivalents],
    observed: Optional[ObservedElectricity],
    capacity: Optional[Mapping[PowerSource, SeriesLike]] = None,
    assumptions: ImplicationAssumptions = DEFAULT_ASSUMPTIONS,
) -> Optional[BaselineMultipliers]:
    """Compare single-technology equivalents against existing capacity.

    The result is "reported" when any source has installed capacity data
    (its year is the latest such report) and "inferred" otherwise (its year
    is the observed snapshot's). Needs both equivalents and a snapshot.
    """
    if equivalents is None or observed is None:
        return None

    bases = _capacity_bases(observed, capacity, assumptions.clamped())
    reported_years = [year for _, year in bases.values() if year is not None]
    kind = CapacityBaseline.REPORTED if reported_years else CapacityBaseline.INFERRED

    return BaselineMultipliers(
        kind=kind,
        year=max(reported_years) if reported_years else observed.year,
        ratios={source: _ratio(equivalents.gw(source), bases[source][0]) for source in PowerSource},
    )


# Mix build-out

def max_annual_growth(series: Optional[SeriesLike]) -> Tuple[Optional[float], Optional[float]]:
    """Fastest historical increase of a series, in units per year.

    Returns:
        (max year-over-year change, max average change over 5 years); each
        is None when the series never grew over that span
    """
    points = clean_series(series)
    if len(points) < 2:
        return None, None

    max_yoy = None
    for prev, cur in zip(points, points[1:]):
        span = cur.year - prev.year
        if span <= 0:
            continue
        annual = (cur.value - prev.value) / span
        if math.isfinite(annual) and annual > 0:
            max_yoy = annual if max_yoy is None else max(max_yoy, annual)

    values = {p.year: p.value for p in points}
    max_5y = None
    for year, value in values.items():
        earlier = values.get(year - 5)
        if earlier is None:
            continue
        annual = (value - earlier) / 5
        if math.isfinite(annual) and annual > 0:
            max_5y = annual if max_5y is None else max(max_5y, annual)

    return max_yoy, max_5y


@dataclass
class TechBuildout:
    share: float
    twh: float
    gw: float
    twh_per_year: float
    gw_per_year: float
    plants: Optional[float]         # 1 GW units; nuclear and coal only
    panels: Optional[float]
    turbines: Optional[float]
    capacity_x: Optional[float]     # new GW / today's GW
    generation_x: Optional[float]   # new TWh / today's TWh
    max_5y_twh_per_year: Optional[float]
    pace_x: Optional[float]         # needed yearly additions / fastest 5y history


@dataclass
class MixBuildout:
    delta_twh: float
    share_sum: float
    fractions: Dict[PowerSource, float]
    percent: Dict[PowerSource, int]
    tech: Dict[PowerSource, TechBuildout]
    baseline_kind: CapacityBaseline
    assumptions: ImplicationAssumptions  # clamped values actually used


def _percent(fraction: float) -> int:
    # half-up, so 12.5 -> 13
    return int(math.floor(fraction * 100 + 0.5))


def mix_buildout(
    delta_twh: Optional[float],
    horizon_years: float,
    mix: MixLike = DEFAULT_MIX,
    observed: Optional[ObservedElectricity] = None,
    capacity: Optional[Mapping[PowerSource, SeriesLike]] = None,
    generation: Optional[Mapping[PowerSource, SeriesLike]] = None,
    assumptions: ImplicationAssumptions = DEFAULT_ASSUMPTIONS,
) -> Optional[MixBuildout]:
    """Split a generation gap across a power mix and size each technology.

    Args:
        delta_twh: Annual generation to add (TWh); nothing is built unless positive
        horizon_years: Years available for the build-out
        mix: MixPreset or {source: share}; shares are normalized and an
            all-zero mix falls back to 60/30/10 solar/wind/nuclear
        observed: Generation snapshot, for generation multiples and
            inferred capacity
        capacity: Installed capacity series (GW) per source
        generation: Generation history (TWh) per source, for the pace check
        assumptions: Capacity factors and unit sizes (clamped before use)

    Returns:
        MixBuildout, or None when there is nothing to build
    """
    if horizon_years <= 0:
        raise ValueError(f"horizon_years must be positive, got {horizon_years}")
    if not is_finite_number(delta_twh) or delta_twh <= 0:
        return None

    shares = _mix_shares(mix)
    share_sum = sum(shares.values())
    if share_sum > 0:
        fractions = {source: share / share_sum for source, share in shares.items()}
    else:
        fractions = dict(_FALLBACK_FRACTIONS)

    a = assumptions.clamped()
    bases = _capacity_bases(observed, capacity, a)
    generation = generation or {}

    tech = {}
    for source in PowerSource:
        twh = delta_twh * fractions[source]
        gw = twh / twh_per_gw(a.capacity_factor(source))
        observed_twh = observed.by_source_twh.get(source) if observed is not None else None
        _, max_5y = max_annual_growth(generation.get(source))

        tech[source] = TechBuildout(
            share=fractions[source],
            twh=twh,
            gw=gw,
            twh_per_year=twh / horizon_years,
            gw_per_year=gw / horizon_years,
            plants=gw if source in (PowerSource.NUCLEAR, PowerSource.COAL) else None,
            panels=gw * 1e9 / a.panel_watts if source == PowerSource.SOLAR else None,
            turbines=gw * 1000 / a.wind_turbine_mw if source == PowerSource.WIND else None,
            capacity_x=_ratio(gw, bases[source][0]),
            generation_x=twh / observed_twh if is_finite_number(observed_twh) and observed_twh > 0 else None,
            max_5y_twh_per_year=max_5y,
            pace_x=twh / horizon_years / max_5y if max_5y is not None else None,
        )

    reported = any(year is not None for _, year in bases.values())
    return MixBuildout(
        delta_twh=delta_twh,
        share_sum=share_sum,
        fractions=fractions,
        percent={source: _percent(f) for source, f in fractions.items()},
        tech=tech,
        baseline_kind=CapacityBaseline.REPORTED if reported else CapacityBaseline.INFERRED,
        assumptions=a,
    )


# Housing

def homes_needed(delta_persons: Optional[float], household_size: float) -> Optional[float]:
    """Dwellings required to house additional urban residents."""
    if not is_finite_number(delta_persons) or household_size <= 0:
        return None
    return delta_persons / household_size
