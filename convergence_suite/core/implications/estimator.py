"""Combine a template curve with an entity's own baseline."""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from ..timeseries import is_finite_number
from .metrics import MetricComposition, MetricDefinition, MetricTransform
from .templates import Interpolant, predict


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def anchor_value(value: Optional[float], transform: MetricTransform) -> Optional[float]:
    """An entity's current value if usable as an anchor, else None.

    Anchors must be finite; log-log metrics also need them strictly positive.
    """
    if not is_finite_number(value):
        return None
    if MetricTransform(transform) == MetricTransform.LOG_LOG and value <= 0:
        return None
    return float(value)


def estimate(
    template_at_current: Optional[float],
    template_at_future: Optional[float],
    entity_current: Optional[float],
    composition: MetricComposition,
    clamp_range: Optional[Tuple[float, float]] = None,
) -> Optional[float]:
    """Future metric level for an entity.

    With a baseline, the template's change between current and future
    income is applied to the entity's own value (ratio for MULTIPLY,
    difference for ADD). Without one, the template level at the future
    income is used as-is.
    """
    if not is_finite_number(template_at_future):
        return None

    composition = MetricComposition(composition)
    estimated: Optional[float] = None

    if is_finite_number(entity_current) and is_finite_number(template_at_current):
        if composition == MetricComposition.MULTIPLY:
            if template_at_current != 0:
                estimated = entity_current * (template_at_future / template_at_current)
        else:
            estimated = entity_current + (template_at_future - template_at_current)
    else:
        estimated = template_at_future

    if estimated is None or not math.isfinite(estimated):
        return None
    if clamp_range is not None:
        return clamp(estimated, clamp_range[0], clamp_range[1])
    return float(estimated)


@dataclass
class EstimateResult:
    template_at_current: Optional[float]
    template_at_future: Optional[float]
    implied: Optional[float]
    used_fallback: bool       # no usable baseline; implied is the raw template level
    out_of_range: bool        # an income fell outside the template's range


def estimate_metric(
    interpolant: Interpolant,
    definition: MetricDefinition,
    income_current: float,
    income_future: float,
    entity_current: Optional[float],
) -> EstimateResult:
    """Predict at both income levels and compose with the entity's baseline."""
    at_current = predict(interpolant, income_current)
    at_future = predict(interpolant, income_future)
    anchor = anchor_value(entity_current, definition.transform)

    implied = estimate(
        at_current, at_future, anchor,
        definition.composition, definition.clamp_range,
    )

    out_of_range = not interpolant.is_empty and not (
        interpolant.covers(income_current) and interpolant.covers(income_future)
    )
    return EstimateResult(
        template_at_current=at_current,
        template_at_future=at_future,
        implied=implied,
        used_fallback=implied is not None and (anchor is None or at_current is None),
        out_of_range=out_of_range,
    )
