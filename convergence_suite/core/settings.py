# convergence_suite/core/settings.py
"""
Runtime defaults for the projection engine.

Every value has a module-level default; `load_settings()` lets the
environment override them:

  CONVERGENCE_HORIZON_CAP_YEARS   max years a projection may run (150)
  CONVERGENCE_POP_LOOKBACK_YEARS  population trend lookback window (10)
  CONVERGENCE_SENSITIVITY_DELTA   growth perturbation for sensitivity bands (0.01)
  CONVERGENCE_SCENARIOS_PATH      JSON file with custom implication scenarios
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

HORIZON_CAP_YEARS = 150
POP_LOOKBACK_YEARS = 10
POP_GROWTH_BOUNDS = (-0.03, 0.05)
SENSITIVITY_DELTA = 0.01
DEFAULT_MILESTONES = (0.25, 0.5, 0.75)
DEFAULT_SCENARIOS_PATH = Path.home() / ".convergence" / "scenarios.json"


@dataclass(frozen=True)
class Settings:
    horizon_cap_years: int = HORIZON_CAP_YEARS
    pop_lookback_years: int = POP_LOOKBACK_YEARS
    sensitivity_delta: float = SENSITIVITY_DELTA
    scenarios_path: Path = DEFAULT_SCENARIOS_PATH

    def __post_init__(self):
        if self.horizon_cap_years < 0:
            raise ValueError("horizon_cap_years must be non-negative")
        if self.pop_lookback_years <= 0:
            raise ValueError("pop_lookback_years must be positive")
        if self.sensitivity_delta < 0:
            raise ValueError("sensitivity_delta must be non-negative")


def load_settings() -> Settings:
    """
    Precedence:
      1) CONVERGENCE_* environment variables
      2) module defaults above
    """
    return Settings(
        horizon_cap_years=int(os.getenv("CONVERGENCE_HORIZON_CAP_YEARS", HORIZON_CAP_YEARS)),
        pop_lookback_years=int(os.getenv("CONVERGENCE_POP_LOOKBACK_YEARS", POP_LOOKBACK_YEARS)),
        sensitivity_delta=float(os.getenv("CONVERGENCE_SENSITIVITY_DELTA", SENSITIVITY_DELTA)),
        scenarios_path=Path(os.getenv("CONVERGENCE_SCENARIOS_PATH", str(DEFAULT_SCENARIOS_PATH))),
    )
