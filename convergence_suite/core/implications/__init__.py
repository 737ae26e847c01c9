"""
Implications - what a chaser economy looks like at a future income level.

Learns income -> metric curves from donor countries ("template paths") and
applies them to the chaser's own baseline.

Pieces:
- metrics: which metrics exist and how each is interpolated / composed
- templates: donor pooling and log-space interpolation
- estimator: anchor template changes on the chaser's current value
- scenarios: named adjustments on top of the estimate
- totals: per-capita / percentage -> absolute totals, population projection
- electricity: generation build-out, power mix and housing arithmetic
- pipeline: all of the above for every metric in one call
"""

from .metrics import (
    MetricTransform,
    MetricComposition,
    MetricDefinition,
    IMPLICATION_METRICS,
    INCOME_CODE,
    POPULATION_CODE,
    get_metric,
)
from .templates import (
    DonorPool,
    Interpolant,
    TEMPLATE_PATHS,
    build_mapping,
    get_template_path,
    predict,
)
from .estimator import EstimateResult, anchor_value, estimate, estimate_metric
from .scenarios import (
    MetricAdjustment,
    Scenario,
    ScenarioPresets,
    ScenarioRegistry,
    BUILTIN_SCENARIOS,
    apply_scenario,
    get_scenario,
)
from .totals import (
    TotalUnit,
    TotalValue,
    Totals,
    PopulationAssumption,
    PopulationProjection,
    calculate_cagr,
    compute_totals,
    income_total,
    project_population,
    project_value,
)
from .electricity import (
    ImplicationAssumptions,
    DEFAULT_ASSUMPTIONS,
    PowerSource,
    CapacityBaseline,
    ElectricityDemand,
    TechEquivalents,
    ObservedElectricity,
    BaselineMultipliers,
    MixPreset,
    MIX_PRESETS,
    DEFAULT_MIX,
    TechBuildout,
    MixBuildout,
    baseline_multipliers,
    electricity_demand,
    get_mix_preset,
    homes_needed,
    max_annual_growth,
    mix_buildout,
    observed_electricity,
    tech_equivalents,
)
from .pipeline import ImplicationRow, ImplicationsResult, compute_implications

__all__ = [
    # Metrics
    "MetricTransform",
    "MetricComposition",
    "MetricDefinition",
    "IMPLICATION_METRICS",
    "INCOME_CODE",
    "POPULATION_CODE",
    "get_metric",
    # Templates
    "DonorPool",
    "Interpolant",
    "TEMPLATE_PATHS",
    "build_mapping",
    "get_template_path",
    "predict",
    # Estimator
    "EstimateResult",
    "anchor_value",
    "estimate",
    "estimate_metric",
    # Scenarios
    "MetricAdjustment",
    "Scenario",
    "ScenarioPresets",
    "ScenarioRegistry",
    "BUILTIN_SCENARIOS",
    "apply_scenario",
    "get_scenario",
    # Totals
    "TotalUnit",
    "TotalValue",
    "Totals",
    "PopulationAssumption",
    "PopulationProjection",
    "calculate_cagr",
    "compute_totals",
    "income_total",
    "project_population",
    "project_value",
    # Electricity
    "ImplicationAssumptions",
    "DEFAULT_ASSUMPTIONS",
    "PowerSource",
    "CapacityBaseline",
    "ElectricityDemand",
    "TechEquivalents",
    "ObservedElectricity",
    "BaselineMultipliers",
    "MixPreset",
    "MIX_PRESETS",
    "DEFAULT_MIX",
    "TechBuildout",
    "MixBuildout",
    "baseline_multipliers",
    "electricity_demand",
    "get_mix_preset",
    "homes_needed",
    "max_annual_growth",
    "mix_buildout",
    "observed_electricity",
    "tech_equivalents",
    # Pipeline
    "ImplicationRow",
    "ImplicationsResult",
    "compute_implications",
]
