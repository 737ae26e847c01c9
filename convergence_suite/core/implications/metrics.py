"""Implication metric definitions (how each metric is interpolated and applied)."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


INCOME_CODE = "GDP_PCAP_PPP"
POPULATION_CODE = "POPULATION"


class MetricTransform(Enum):
    """Interpolation space for a metric against income."""

    LOG_LOG = "log-log"   # ln(income) vs ln(value); value must be > 0
    LOG_X = "log-x"       # ln(income) vs raw value (percent shares)


class MetricComposition(Enum):
    """How the template's change is applied to an entity's own value."""

    MULTIPLY = "multiply"  # scale by template ratio
    ADD = "add"            # shift by template difference


@dataclass(frozen=True)
class MetricDefinition:
    """Interpolation and composition rules for one metric code."""

    code: str
    transform: MetricTransform
    composition: MetricComposition
    clamp_range: Optional[Tuple[float, float]] = None

    def __post_init__(self):
        """Validate configuration."""
        if not self.code:
            raise ValueError("metric code must be non-empty")
        if not isinstance(self.transform, MetricTransform):
            object.__setattr__(self, "transform", MetricTransform(self.transform))
        if not isinstance(self.composition, MetricComposition):
            object.__setattr__(self, "composition", MetricComposition(self.composition))
        if self.clamp_range is not None:
            lo, hi = self.clamp_range
            if lo > hi:
                raise ValueError(f"clamp_range min > max for {self.code}")
            object.__setattr__(self, "clamp_range", (float(lo), float(hi)))

    @property
    def requires_positive_value(self) -> bool:
        return self.transform == MetricTransform.LOG_LOG

    @property
    def is_percentage(self) -> bool:
        return self.transform == MetricTransform.LOG_X

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code,
            "transform": self.transform.value,
            "composition": self.composition.value,
            "clamp_range": list(self.clamp_range) if self.clamp_range else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MetricDefinition":
        """Create from dictionary."""
        clamp = data.get("clamp_range")
        return cls(
            code=data["code"],
            transform=MetricTransform(data["transform"]),
            composition=MetricComposition(data["composition"]),
            clamp_range=tuple(clamp) if clamp else None,
        )


PERCENT_RANGE = (0.0, 100.0)

IMPLICATION_METRICS: Dict[str, MetricDefinition] = {
    "ENERGY_USE_PCAP": MetricDefinition(
        "ENERGY_USE_PCAP", MetricTransform.LOG_LOG, MetricComposition.MULTIPLY,
    ),
    "ELECTRICITY_USE_PCAP": MetricDefinition(
        "ELECTRICITY_USE_PCAP", MetricTransform.LOG_LOG, MetricComposition.MULTIPLY,
    ),
    "CO2_PCAP": MetricDefinition(
        "CO2_PCAP", MetricTransform.LOG_LOG, MetricComposition.MULTIPLY,
    ),
    "URBAN_POP_PCT": MetricDefinition(
        "URBAN_POP_PCT", MetricTransform.LOG_X, MetricComposition.ADD, PERCENT_RANGE,
    ),
    "INDUSTRY_VA_PCT_GDP": MetricDefinition(
        "INDUSTRY_VA_PCT_GDP", MetricTransform.LOG_X, MetricComposition.ADD, PERCENT_RANGE,
    ),
    "CAPITAL_FORMATION_PCT_GDP": MetricDefinition(
        "CAPITAL_FORMATION_PCT_GDP", MetricTransform.LOG_X, MetricComposition.ADD, PERCENT_RANGE,
    ),
}


def get_metric(code: str) -> Optional[MetricDefinition]:
    return IMPLICATION_METRICS.get(code)
