"""End-to-end implications for a chaser reaching a future income level.

Per metric: template mapping -> estimate -> scenario -> totals. The macro
block then derives electricity build-out, urbanization and CO2 figures
from the per-metric totals.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from ..timeseries import SeriesLike, latest_value, latest_year, project_value
from .electricity import (
    DEFAULT_ASSUMPTIONS,
    DEFAULT_MIX,
    BaselineMultipliers,
    ElectricityDemand,
    ImplicationAssumptions,
    MixBuildout,
    MixLike,
    ObservedElectricity,
    PowerSource,
    TechEquivalents,
    baseline_multipliers,
    electricity_demand,
    homes_needed,
    mix_buildout,
    observed_electricity,
    tech_equivalents,
)
from .estimator import estimate_metric
from .metrics import IMPLICATION_METRICS, INCOME_CODE, POPULATION_CODE, MetricDefinition
from .scenarios import BASELINE_ID, ScenarioRegistry, apply_scenario, get_scenario
from .templates import DonorPool, build_mapping
from .totals import (
    PopulationAssumption,
    TotalUnit,
    TotalValue,
    compute_totals,
    income_total,
    project_population,
)

logger = logging.getLogger(__name__)

ELECTRICITY_GEN_CODE = "ELECTRICITY_GEN_TOTAL"

NOTE_FALLBACK = "Using template level (no current local baseline)."
NOTE_SCENARIO = "Scenario adjustment applied."
NOTE_OUT_OF_RANGE = "Outside template GDP range; estimate is capped to endpoints."
NOTE_NO_TEMPLATE = "Not enough template data for this metric."

# metric code -> {country id -> series}
IndicatorData = Mapping[str, Mapping[str, SeriesLike]]


@dataclass
class ImplicationRow:
    code: str
    current: Optional[float]
    implied: Optional[float]
    delta: Optional[float]          # pp for percentage metrics, relative change otherwise
    delta_is_points: bool
    current_total: Optional[TotalValue]
    implied_total: Optional[TotalValue]
    notes: List[str] = field(default_factory=list)

    @property
    def note(self) -> Optional[str]:
        return " ".join(self.notes) if self.notes else None


@dataclass
class UrbanizationImplications:
    current_persons: Optional[float]
    future_persons: Optional[float]
    delta_persons: Optional[float]
    homes_needed: Optional[float]
    household_size: float


@dataclass
class ImplicationsResult:
    chaser_id: str
    template_id: str
    scenario_id: str
    base_year: Optional[int]
    target_year: Optional[int]
    income_current: float
    income_future: float
    pop_current: Optional[float]
    pop_future: Optional[float]
    pop_growth_rate: float
    rows: List[ImplicationRow]
    income_total_current: Optional[TotalValue]
    income_total_future: Optional[TotalValue]
    electricity: ElectricityDemand
    electricity_equivalents: Optional[TechEquivalents]
    observed_electricity: Optional[ObservedElectricity]
    baseline_multipliers: Optional[BaselineMultipliers]
    mix_buildout: Optional[MixBuildout]
    urbanization: UrbanizationImplications
    co2_current_mt: Optional[float]
    co2_future_mt: Optional[float]

    @property
    def has_any(self) -> bool:
        return any(r.implied is not None for r in self.rows)

    def row(self, code: str) -> Optional[ImplicationRow]:
        for r in self.rows:
            if r.code == code:
                return r
        return None


def _delta(definition: MetricDefinition, current, implied):
    if current is None or implied is None:
        return None
    if definition.is_percentage:
        return implied - current
    if current == 0:
        return None
    return (implied - current) / current


def _total_value(total: Optional[TotalValue], unit: TotalUnit) -> Optional[float]:
    return total.value if total is not None and total.unit == unit else None


def _by_source(data: IndicatorData, chaser_id: str, code_attr: str) -> Dict[PowerSource, SeriesLike]:
    """Chaser series per power source; `code_attr` picks the PowerSource code."""
    out = {}
    for source in PowerSource:
        series = data.get(getattr(source, code_attr), {}).get(chaser_id)
        if series is not None:
            out[source] = series
    return out


def compute_implications(
    chaser_id: str,
    income_current: float,
    chaser_growth_rate: float,
    horizon_years: int,
    template: DonorPool,
    data: IndicatorData,
    scenario_id: str = BASELINE_ID,
    pop_assumption: PopulationAssumption = PopulationAssumption.TREND,
    assumptions: ImplicationAssumptions = DEFAULT_ASSUMPTIONS,
    base_year: Optional[int] = None,
    metrics: Optional[Mapping[str, MetricDefinition]] = None,
    registry: Optional[ScenarioRegistry] = None,
    mix: MixLike = DEFAULT_MIX,
) -> ImplicationsResult:
    """Estimate what the chaser looks like after `horizon_years` of growth.

    Args:
        chaser_id: Country id of the chaser in `data`
        income_current: Chaser's current income per capita
        chaser_growth_rate: Assumed annual income growth (decimal)
        horizon_years: Years ahead to evaluate
        template: Donor pool the income -> metric curves are learned from
        data: Series keyed by metric code, then country id; must include
            income (GDP_PCAP_PPP) for the donors and may include POPULATION,
            ELECTRICITY_GEN_TOTAL, per-source ELECTRICITY_GEN_* and
            INSTALLED_CAPACITY_*_GW for the chaser
        scenario_id: Implication scenario; unknown ids act as baseline
        pop_assumption: Population trend or static
        assumptions: Engineering assumptions (scenario presets override
            grid loss / net imports)
        base_year: Fallback when the chaser has no income history
        metrics: Metric definitions; defaults to the built-in set
        registry: Scenario registry; defaults to built-ins only
        mix: Power mix for the generation build-out (preset or shares)

    Returns:
        ImplicationsResult
    """
    metrics = metrics or IMPLICATION_METRICS
    scenario = get_scenario(scenario_id, registry)
    assumptions = assumptions.with_presets(scenario.presets)

    income_future = project_value(income_current, chaser_growth_rate, horizon_years)
    income_by_country = data.get(INCOME_CODE, {})

    observed_year = latest_year(income_by_country.get(chaser_id))
    start_year = observed_year if observed_year is not None else base_year
    target_year = start_year + horizon_years if start_year is not None else None

    pop = project_population(
        data.get(POPULATION_CODE, {}).get(chaser_id),
        horizon_years,
        assumption=pop_assumption,
    )

    rows: List[ImplicationRow] = []
    for code, definition in metrics.items():
        metric_by_country = data.get(code, {})
        interpolant = build_mapping(
            income_by_country, metric_by_country, definition, members=template.members,
        )
        current = latest_value(metric_by_country.get(chaser_id))
        est = estimate_metric(interpolant, definition, income_current, income_future, current)
        implied = apply_scenario(scenario.id, code, est.implied, registry)

        totals = compute_totals(
            code, current, implied,
            pop.current, pop.future,
            income_current, income_future,
        )

        notes: List[str] = []
        if est.used_fallback:
            notes.append(NOTE_FALLBACK)
        if scenario.id != BASELINE_ID and implied is not None and est.implied is not None \
                and implied != est.implied:
            notes.append(NOTE_SCENARIO)
        if interpolant.is_empty:
            notes.append(NOTE_NO_TEMPLATE)
        elif est.out_of_range:
            notes.append(NOTE_OUT_OF_RANGE)

        rows.append(ImplicationRow(
            code=code,
            current=current,
            implied=implied,
            delta=_delta(definition, current, implied),
            delta_is_points=definition.is_percentage,
            current_total=totals.current_total,
            implied_total=totals.implied_total,
            notes=notes,
        ))

    by_code: Dict[str, ImplicationRow] = {r.code: r for r in rows}

    elec = by_code.get("ELECTRICITY_USE_PCAP")
    generation = _by_source(data, chaser_id, "generation_code")
    capacity = _by_source(data, chaser_id, "capacity_code")
    observed = observed_electricity(data.get(ELECTRICITY_GEN_CODE, {}).get(chaser_id), generation)
    demand = electricity_demand(
        _total_value(elec.current_total, TotalUnit.TWH) if elec else None,
        _total_value(elec.implied_total, TotalUnit.TWH) if elec else None,
        observed.total_twh if observed is not None else None,
        assumptions,
    )
    equivalents = tech_equivalents(demand.buildout_delta_twh, assumptions)
    buildout = None
    if equivalents is not None and horizon_years > 0:
        buildout = mix_buildout(
            equivalents.delta_twh, horizon_years, mix, observed, capacity, generation, assumptions,
        )

    urban = by_code.get("URBAN_POP_PCT")
    urban_now = _total_value(urban.current_total, TotalUnit.PERSONS) if urban else None
    urban_then = _total_value(urban.implied_total, TotalUnit.PERSONS) if urban else None
    urban_delta = urban_then - urban_now if urban_now is not None and urban_then is not None else None

    co2 = by_code.get("CO2_PCAP")

    if not any(r.implied is not None for r in rows):
        logger.debug("No implications for %s on template '%s'", chaser_id, template.id)

    return ImplicationsResult(
        chaser_id=chaser_id,
        template_id=template.id,
        scenario_id=scenario.id,
        base_year=start_year,
        target_year=target_year,
        income_current=income_current,
        income_future=income_future,
        pop_current=pop.current,
        pop_future=pop.future,
        pop_growth_rate=pop.growth_rate,
        rows=rows,
        income_total_current=income_total(income_current, pop.current),
        income_total_future=income_total(income_future, pop.future),
        electricity=demand,
        electricity_equivalents=equivalents,
        observed_electricity=observed,
        baseline_multipliers=baseline_multipliers(equivalents, observed, capacity, assumptions),
        mix_buildout=buildout,
        urbanization=UrbanizationImplications(
            current_persons=urban_now,
            future_persons=urban_then,
            delta_persons=urban_delta,
            homes_needed=homes_needed(urban_delta, assumptions.household_size),
            household_size=assumptions.household_size,
        ),
        co2_current_mt=_total_value(co2.current_total, TotalUnit.MTCO2) if co2 else None,
        co2_future_mt=_total_value(co2.implied_total, TotalUnit.MTCO2) if co2 else None,
    )
