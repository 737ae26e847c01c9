# convergence_suite/core/sensitivity.py
"""
Growth-rate sensitivity bands for a convergence comparison.

Re-runs the closed form with the chaser's growth nudged up and down by
`delta`. The pessimistic rate is floored at zero.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from .convergence import (
    ConvergenceStatus,
    ProjectionPoint,
    convergence_status,
    convergence_year,
    generate_projection,
    years_to_convergence,
)
from .settings import HORIZON_CAP_YEARS, SENSITIVITY_DELTA


@dataclass
class SensitivityScenario:
    label: str
    chaser_growth: float
    target_growth: float
    years_to_convergence: Optional[float]   # None when it never converges
    convergence_year: Optional[int]
    status: ConvergenceStatus


@dataclass
class SensitivityResult:
    baseline: SensitivityScenario
    optimistic: SensitivityScenario
    pessimistic: SensitivityScenario

    def scenarios(self) -> Dict[str, SensitivityScenario]:
        return {
            "baseline": self.baseline,
            "optimistic": self.optimistic,
            "pessimistic": self.pessimistic,
        }


def _scenario(label, chaser_value, target_value, chaser_growth, target_growth, base_year):
    years = years_to_convergence(chaser_value, target_value, chaser_growth, target_growth)
    finite = math.isfinite(years)
    return SensitivityScenario(
        label=label,
        chaser_growth=chaser_growth,
        target_growth=target_growth,
        years_to_convergence=years if finite else None,
        convergence_year=convergence_year(base_year, years),
        status=convergence_status(years),
    )


def analyze(
    chaser_value: float,
    target_value: float,
    chaser_growth_rate: float,
    target_growth_rate: float,
    base_year: int,
    delta: float = SENSITIVITY_DELTA,
) -> SensitivityResult:
    """Baseline, optimistic (+delta) and pessimistic (-delta, >= 0) runs.

    Args:
        chaser_value: Current value of the lagging entity
        target_value: Current value of the leading entity
        chaser_growth_rate: Assumed annual growth of the chaser (decimal)
        target_growth_rate: Assumed annual growth of the target (decimal)
        base_year: Year the current values refer to
        delta: Perturbation applied to the chaser's growth rate

    Returns:
        SensitivityResult with one scenario per band
    """
    pct = f"{delta * 100:.0f}%"
    optimistic_growth = chaser_growth_rate + delta
    pessimistic_growth = max(0.0, chaser_growth_rate - delta)

    return SensitivityResult(
        baseline=_scenario(
            "Baseline", chaser_value, target_value,
            chaser_growth_rate, target_growth_rate, base_year,
        ),
        optimistic=_scenario(
            f"+{pct} growth", chaser_value, target_value,
            optimistic_growth, target_growth_rate, base_year,
        ),
        pessimistic=_scenario(
            f"-{pct} growth", chaser_value, target_value,
            pessimistic_growth, target_growth_rate, base_year,
        ),
    )


def sensitivity_projections(
    result: SensitivityResult,
    chaser_value: float,
    target_value: float,
    start_year: int,
    horizon_cap_years: int = HORIZON_CAP_YEARS,
) -> Dict[str, List[ProjectionPoint]]:
    """Materialized projection for each band, keyed like `result.scenarios()`."""
    return {
        name: generate_projection(
            chaser_value, target_value,
            s.chaser_growth, s.target_growth,
            start_year, horizon_cap_years,
        ).to_list()
        for name, s in result.scenarios().items()
    }
