"""Metric derivation from aggregated carbon-stock sums.

Formulas (constants in ``core.constants``)::

    forest_growth      = (sum_later - sum_earlier) / 7
    leakage            = forest_growth * 0.10
    net_sequestration  = forest_growth - leakage
    marketable_credits = net_sequestration * 96000 if net_sequestration > 0 else 0
    area               = planar_area_m2(polygon)
    carbon_stocks      = sum_earlier

Rounding policy: the primary path rounds every field to the nearest
integer, halves rounding up (``floor(x + 0.5)``). Preview paths pass
``rounded=False`` and keep full float precision. Rounding is applied to
each field independently after derivation, so rounded ``leakage`` and
``net_sequestration`` need not sum to rounded ``forest_growth``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

from carbon_measure.core.constants import (
    CREDIT_PRICE_PER_UNIT,
    FALLBACK_MODE_HEURISTIC,
    FALLBACK_MODE_ZERO,
    HEURISTIC_CARBON_STOCK_RATE,
    HEURISTIC_FOREST_GROWTH_RATE,
    HEURISTIC_LEAKAGE_RATE,
    HIGH_GROWTH_THRESHOLD_PCT,
    LEAKAGE_RATE,
    OBSERVATION_SPAN_YEARS,
)
from carbon_measure.engine.geometry import planar_area_m2
from carbon_measure.models.metrics import CarbonMetrics

if TYPE_CHECKING:
    from carbon_measure.models.metrics import AggregationResult
    from carbon_measure.models.parcel import LandParcel

Polygon = Sequence[Sequence[float]]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return math.floor(value + 0.5)


# ---------------------------------------------------------------------------
# Primary path
# ---------------------------------------------------------------------------


def forest_growth(sum_earlier: float, sum_later: float) -> float:
    """Annualised stock change over the fixed observation span."""
    return (sum_later - sum_earlier) / OBSERVATION_SPAN_YEARS


def marketable_credits(net_sequestration: float) -> float:
    """Value of net sequestration; zero unless it is positive."""
    return net_sequestration * CREDIT_PRICE_PER_UNIT if net_sequestration > 0 else 0


def derive_metrics(
    aggregation: AggregationResult,
    polygon: Polygon,
    *,
    rounded: bool = True,
) -> CarbonMetrics:
    """Map aggregated sums to the six reported metrics.

    Total: never raises, and an empty aggregation yields all-zero carbon
    metrics with the polygon's area.
    """
    growth = forest_growth(aggregation.sum_earlier_stock, aggregation.sum_later_stock)
    leakage = growth * LEAKAGE_RATE
    net = growth - leakage

    metrics = CarbonMetrics(
        area=planar_area_m2(polygon),
        carbon_stocks=aggregation.sum_earlier_stock,
        forest_growth=growth,
        leakage=leakage,
        net_sequestration=net,
        marketable_credits=marketable_credits(net),
    )
    return round_metrics(metrics) if rounded else metrics


def round_metrics(metrics: CarbonMetrics) -> CarbonMetrics:
    """Apply the half-up integer rounding policy to every field."""
    return CarbonMetrics(
        area=round_half_up(metrics.area),
        carbon_stocks=round_half_up(metrics.carbon_stocks),
        forest_growth=round_half_up(metrics.forest_growth),
        leakage=round_half_up(metrics.leakage),
        net_sequestration=round_half_up(metrics.net_sequestration),
        marketable_credits=round_half_up(metrics.marketable_credits),
    )


# ---------------------------------------------------------------------------
# Area-only fallback (no parcel matched)
# ---------------------------------------------------------------------------


def area_only_metrics(polygon: Polygon, *, mode: str = FALLBACK_MODE_ZERO) -> CarbonMetrics:
    """Metrics for a polygon that contains no usable parcel.

    ``"zero"`` reports the polygon area with every carbon metric at 0.
    ``"heuristic"`` estimates the carbon metrics from area alone
    (stock 7.5%, growth 15%, leakage 10% of m²); those values follow
    their own rates and do not satisfy the primary-path leakage ratio.

    Raises:
        ValueError: If *mode* is not a known fallback mode.
    """
    area = planar_area_m2(polygon)

    if mode == FALLBACK_MODE_ZERO:
        return CarbonMetrics(area=round_half_up(area))

    if mode == FALLBACK_MODE_HEURISTIC:
        growth = round_half_up(area * HEURISTIC_FOREST_GROWTH_RATE)
        leakage = round_half_up(area * HEURISTIC_LEAKAGE_RATE)
        net = growth - leakage
        return CarbonMetrics(
            area=round_half_up(area),
            carbon_stocks=round_half_up(area * HEURISTIC_CARBON_STOCK_RATE),
            forest_growth=growth,
            leakage=leakage,
            net_sequestration=net,
            marketable_credits=round_half_up(net * CREDIT_PRICE_PER_UNIT),
        )

    msg = f"Unknown fallback mode: {mode!r}"
    raise ValueError(msg)


# ---------------------------------------------------------------------------
# Preview helpers
# ---------------------------------------------------------------------------


def parcel_metrics(parcel: LandParcel) -> CarbonMetrics:
    """Unrounded metrics for a single parcel, for choropleth previews.

    Missing stock attributes read as 0. ``area`` is the parcel's own
    ``area`` attribute (0 when absent).
    """
    earlier = parcel.earlier_stock or 0.0
    later = parcel.later_stock or 0.0
    growth = forest_growth(earlier, later)
    leakage = growth * LEAKAGE_RATE
    net = growth - leakage
    return CarbonMetrics(
        area=parcel.area or 0.0,
        carbon_stocks=earlier,
        forest_growth=growth,
        leakage=leakage,
        net_sequestration=net,
        marketable_credits=marketable_credits(net),
    )


def growth_percentage(metrics: CarbonMetrics) -> float:
    """Forest growth as a percentage of ``carbon_stocks - forest_growth``.

    Returns 0 when that baseline is 0.
    """
    baseline = metrics.carbon_stocks - metrics.forest_growth
    if baseline == 0:
        return 0.0
    return metrics.forest_growth / baseline * 100


def is_high_growth(metrics: CarbonMetrics) -> bool:
    """Whether growth exceeds the natural-sequestration review threshold."""
    return growth_percentage(metrics) > HIGH_GROWTH_THRESHOLD_PCT
