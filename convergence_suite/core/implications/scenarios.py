"""
Implication scenarios

Named adjustments layered on top of template estimates. Built-in
scenarios ship with the package; custom ones can be read from a JSON
config file.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..settings import Settings, load_settings
from ..timeseries import is_finite_number
from .estimator import clamp
from .metrics import PERCENT_RANGE

logger = logging.getLogger(__name__)

BASELINE_ID = "baseline"


@dataclass(frozen=True)
class MetricAdjustment:
    """Multiplier and/or additive percentage points for one metric."""

    multiplier: Optional[float] = None
    additive_points: Optional[float] = None

    def __post_init__(self):
        """Validate configuration."""
        if self.multiplier is not None and not math.isfinite(self.multiplier):
            raise ValueError("multiplier must be finite")
        if self.additive_points is not None and not math.isfinite(self.additive_points):
            raise ValueError("additive_points must be finite")

    def apply(self, value: float) -> float:
        out = value
        if self.multiplier is not None:
            out = out * self.multiplier
        if self.additive_points is not None:
            out = clamp(out + self.additive_points, *PERCENT_RANGE)
        return out

    def to_dict(self) -> dict:
        return {"multiplier": self.multiplier, "additive_points": self.additive_points}

    @classmethod
    def from_dict(cls, data: dict) -> "MetricAdjustment":
        return cls(
            multiplier=data.get("multiplier"),
            additive_points=data.get("additive_points"),
        )


@dataclass(frozen=True)
class ScenarioPresets:
    """Defaults a caller may adopt with the scenario (not used by the math)."""

    horizon_years: Optional[int] = None
    grid_loss_pct: Optional[float] = None
    net_imports_pct: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "horizon_years": self.horizon_years,
            "grid_loss_pct": self.grid_loss_pct,
            "net_imports_pct": self.net_imports_pct,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ScenarioPresets":
        data = data or {}
        return cls(
            horizon_years=data.get("horizon_years"),
            grid_loss_pct=data.get("grid_loss_pct"),
            net_imports_pct=data.get("net_imports_pct"),
        )


@dataclass(frozen=True)
class Scenario:
    """A named set of per-metric adjustments."""

    id: str
    label: str
    blurb: str = ""
    adjustments: Dict[str, MetricAdjustment] = field(default_factory=dict)
    presets: ScenarioPresets = field(default_factory=ScenarioPresets)
    is_builtin: bool = False

    def adjustment_for(self, metric_code: str) -> Optional[MetricAdjustment]:
        return self.adjustments.get(metric_code)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "label": self.label,
            "blurb": self.blurb,
            "adjustments": {k: v.to_dict() for k, v in self.adjustments.items()},
            "presets": self.presets.to_dict(),
            "is_builtin": self.is_builtin,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Scenario":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            label=data.get("label", data["id"]),
            blurb=data.get("blurb", ""),
            adjustments={
                code: MetricAdjustment.from_dict(adj)
                for code, adj in (data.get("adjustments") or {}).items()
            },
            presets=ScenarioPresets.from_dict(data.get("presets")),
            is_builtin=data.get("is_builtin", False),
        )


# Built-in scenarios
BUILTIN_SCENARIOS: Dict[str, Scenario] = {
    "baseline": Scenario(
        id="baseline",
        label="Baseline",
        blurb="Template-only (no extra assumptions).",
        is_builtin=True,
    ),
    "highGrowth": Scenario(
        id="highGrowth",
        label="High growth (25y)",
        blurb="Sets horizon to 25 years (growth rate is still controlled elsewhere).",
        presets=ScenarioPresets(horizon_years=25),
        is_builtin=True,
    ),
    "efficient": Scenario(
        id="efficient",
        label="Efficient growth",
        blurb="Less energy/electricity per unit of GDP than the template path.",
        adjustments={
            "ELECTRICITY_USE_PCAP": MetricAdjustment(multiplier=0.85),
            "ENERGY_USE_PCAP": MetricAdjustment(multiplier=0.9),
            "CO2_PCAP": MetricAdjustment(multiplier=0.85),
        },
        presets=ScenarioPresets(grid_loss_pct=7),
        is_builtin=True,
    ),
    "electrify": Scenario(
        id="electrify",
        label="Electrify everything",
        blurb="Higher electricity demand (transport + heat + industry electrification).",
        adjustments={"ELECTRICITY_USE_PCAP": MetricAdjustment(multiplier=1.35)},
        is_builtin=True,
    ),
    "highIndustry": Scenario(
        id="highIndustry",
        label="High industry",
        blurb="More heavy industry; higher electricity intensity and industry share.",
        adjustments={
            "ELECTRICITY_USE_PCAP": MetricAdjustment(multiplier=1.15),
            "INDUSTRY_VA_PCT_GDP": MetricAdjustment(additive_points=5),
        },
        presets=ScenarioPresets(grid_loss_pct=12),
        is_builtin=True,
    ),
    "importDependent": Scenario(
        id="importDependent",
        label="Import-dependent",
        blurb="Meets part of demand via net electricity imports.",
        presets=ScenarioPresets(net_imports_pct=10),
        is_builtin=True,
    ),
}


class ScenarioRegistry:
    """Built-in scenarios plus read-only custom ones from a JSON file."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._custom: Dict[str, Scenario] = {}
        if self.config_path is not None:
            self._load_custom_scenarios()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ScenarioRegistry":
        """Registry reading custom scenarios from the configured path."""
        settings = settings or load_settings()
        return cls(str(settings.scenarios_path))

    def _load_custom_scenarios(self):
        """Load custom scenarios; unreadable files are logged and skipped."""
        if not self.config_path.exists():
            return
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            entries = self._keyed_entries(data) if isinstance(data, dict) else data
            for entry in entries:
                scenario = Scenario.from_dict(entry)
                if scenario.id in BUILTIN_SCENARIOS:
                    logger.warning("Ignoring custom scenario shadowing built-in '%s'", scenario.id)
                    continue
                self._custom[scenario.id] = Scenario(
                    id=scenario.id,
                    label=scenario.label,
                    blurb=scenario.blurb,
                    adjustments=scenario.adjustments,
                    presets=scenario.presets,
                    is_builtin=False,
                )
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Could not load custom scenarios from %s: %s", self.config_path, e)
            self._custom = {}

    @staticmethod
    def _keyed_entries(data: dict) -> List[dict]:
        """Entries of an {id: entry} file; the key is the scenario id."""
        entries = []
        for key, entry in data.items():
            entry = dict(entry)
            if entry.setdefault("id", key) != key:
                logger.warning("Scenario key '%s' disagrees with id '%s'; using the key", key, entry["id"])
                entry["id"] = key
            entries.append(entry)
        return entries

    def get_all(self) -> Dict[str, Scenario]:
        out = dict(BUILTIN_SCENARIOS)
        out.update(self._custom)
        return out

    def get_custom(self) -> Dict[str, Scenario]:
        return dict(self._custom)

    def get(self, scenario_id: str) -> Scenario:
        """Scenario by id; unknown ids resolve to the baseline."""
        if scenario_id in BUILTIN_SCENARIOS:
            return BUILTIN_SCENARIOS[scenario_id]
        if scenario_id in self._custom:
            return self._custom[scenario_id]
        logger.debug("Unknown scenario '%s'; using baseline", scenario_id)
        return BUILTIN_SCENARIOS[BASELINE_ID]

    def ids(self) -> List[str]:
        return list(self.get_all().keys())


_DEFAULT_REGISTRY = ScenarioRegistry()


def get_scenario(scenario_id: str, registry: Optional[ScenarioRegistry] = None) -> Scenario:
    return (registry or _DEFAULT_REGISTRY).get(scenario_id)


def apply_scenario(
    scenario_id: str,
    metric_code: str,
    implied_value: Optional[float],
    registry: Optional[ScenarioRegistry] = None,
) -> Optional[float]:
    """Apply a scenario's rule for `metric_code` to an implied value.

    None (or non-finite) input stays None. Metrics the scenario does not
    mention pass through unchanged.
    """
    if not is_finite_number(implied_value):
        return None

    adj = get_scenario(scenario_id, registry).adjustment_for(metric_code)
    if adj is None:
        return float(implied_value)
    return adj.apply(float(implied_value))
