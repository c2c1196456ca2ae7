"""Typed value objects produced by the aggregation engine.

- ``AggregationResult``: summed carbon-stock attributes of the parcels
  whose centroid falls inside the user polygon.
- ``CarbonMetrics``: the six reported metrics derived from an aggregation.
- ``Measurement``: what a session keeps for its current polygon.
- ``MetricKind``: catalogue of the six metrics with display names and units.

All models are frozen dataclasses; a new polygon produces new objects
rather than mutating the previous ones.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

Point = tuple[float, float]


# ---------------------------------------------------------------------------
# Metric catalogue
# ---------------------------------------------------------------------------


class MetricKind(enum.Enum):
    """The six reported metrics, in display order.

    Each member's value is the ``CarbonMetrics`` attribute it reads.
    """

    AREA_COVERAGE = "area"
    CARBON_STOCK = "carbon_stocks"
    FOREST_GROWTH = "forest_growth"
    LEAKAGE = "leakage"
    NET_SEQUESTRATION = "net_sequestration"
    MARKETABLE_CREDITS = "marketable_credits"

    @property
    def display_name(self) -> str:
        """Human-readable metric name."""
        return _DISPLAY_NAMES[self]

    @property
    def unit(self) -> str:
        """Display unit (``m²``, ``tCO₂e`` or ``Rp.``)."""
        return _UNITS[self]

    def format_value(self, value: float) -> str:
        """Format *value* with thousands separators and this metric's unit."""
        number = f"{value:,.0f}" if float(value).is_integer() else f"{value:,.2f}"
        if self is MetricKind.MARKETABLE_CREDITS:
            return f"{self.unit} {number}"
        if self is MetricKind.AREA_COVERAGE:
            return f"{number}{self.unit}"
        return f"{number} {self.unit}"


_DISPLAY_NAMES: dict[MetricKind, str] = {
    MetricKind.AREA_COVERAGE: "Area Coverage",
    MetricKind.CARBON_STOCK: "Carbon Stock Baseline",
    MetricKind.FOREST_GROWTH: "Project Forest Growth",
    MetricKind.LEAKAGE: "Leakage Risk",
    MetricKind.NET_SEQUESTRATION: "Net Sequestration",
    MetricKind.MARKETABLE_CREDITS: "Marketable Credits",
}

_UNITS: dict[MetricKind, str] = {
    MetricKind.AREA_COVERAGE: "m²",
    MetricKind.CARBON_STOCK: "tCO₂e",
    MetricKind.FOREST_GROWTH: "tCO₂e",
    MetricKind.LEAKAGE: "tCO₂e",
    MetricKind.NET_SEQUESTRATION: "tCO₂e",
    MetricKind.MARKETABLE_CREDITS: "Rp.",
}


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AggregationResult:
    """Sums over the parcels contained by one user polygon.

    Attributes:
        sum_earlier_stock: Sum of earlier-year carbon stock.
        sum_later_stock: Sum of later-year carbon stock.
        included_feature_count: Parcels that contributed to the sums.
        skipped_feature_count: Parcels skipped for malformed geometry.
        sum_parcel_area: Sum of the optional parcel ``area`` attribute
            over included parcels (informational).
    """

    sum_earlier_stock: float = 0.0
    sum_later_stock: float = 0.0
    included_feature_count: int = 0
    skipped_feature_count: int = 0
    sum_parcel_area: float = 0.0

    @property
    def is_empty(self) -> bool:
        """True when no parcel contributed (area-only fallback applies)."""
        return self.included_feature_count == 0

    def to_dict(self) -> dict[str, object]:
        """Serialise to a plain dict."""
        return {
            "sum_earlier_stock": self.sum_earlier_stock,
            "sum_later_stock": self.sum_later_stock,
            "included_feature_count": self.included_feature_count,
            "skipped_feature_count": self.skipped_feature_count,
            "sum_parcel_area": self.sum_parcel_area,
        }


# ---------------------------------------------------------------------------
# Derived metrics
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CarbonMetrics:
    """The six reported metrics for one polygon.

    Attributes:
        area: Polygon area estimate in square metres.
        carbon_stocks: Baseline (earlier-year) carbon stock, tCO₂e.
        forest_growth: Annualised stock change, tCO₂e per year.
        leakage: Leakage discount on forest growth, tCO₂e.
        net_sequestration: Forest growth minus leakage, tCO₂e.
        marketable_credits: Value of positive net sequestration, Rp.
    """

    area: float = 0.0
    carbon_stocks: float = 0.0
    forest_growth: float = 0.0
    leakage: float = 0.0
    net_sequestration: float = 0.0
    marketable_credits: float = 0.0

    def value_of(self, kind: MetricKind) -> float:
        """Return the value of one catalogued metric."""
        return getattr(self, kind.value)

    def to_dict(self) -> dict[str, float]:
        """Serialise to a dict keyed by attribute name."""
        return {kind.value: self.value_of(kind) for kind in MetricKind}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> CarbonMetrics:
        """Deserialise from a dict; absent fields default to 0.

        Raises:
            TypeError: If a present field is not numeric.
        """
        values: dict[str, float] = {}
        for kind in MetricKind:
            raw = data.get(kind.value, 0)
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                msg = f"{kind.value} must be a number, got {type(raw).__name__}"
                raise TypeError(msg)
            values[kind.value] = raw
        return cls(**values)


@dataclass(frozen=True, slots=True)
class Measurement:
    """One completed measurement of a user polygon.

    Attributes:
        polygon: The user polygon as ``(lon, lat)`` tuples.
        aggregation: Spatial-join sums.
        metrics: Derived metrics (rounded in the primary path).
        fallback_used: True when no parcel matched and the area-only
            fallback produced ``metrics``.
    """

    polygon: tuple[Point, ...] = ()
    aggregation: AggregationResult = field(default_factory=AggregationResult)
    metrics: CarbonMetrics = field(default_factory=CarbonMetrics)
    fallback_used: bool = False

    def to_dict(self) -> dict[str, object]:
        """Serialise to a plain dict."""
        return {
            "polygon": [list(p) for p in self.polygon],
            "aggregation": self.aggregation.to_dict(),
            "metrics": self.metrics.to_dict(),
            "fallback_used": self.fallback_used,
        }
