"""Data models and schemas.

Defines the data structures used throughout the engine:
- LandParcel / ParcelCollection: parcels from the static GeoJSON
- AggregationResult: spatial-join sums
- CarbonMetrics: the six reported metrics
- Measurement: one completed polygon measurement
- CarbonReportRecord: report JSON schema (``models.report``)
"""

from carbon_measure.models.metrics import (
    AggregationResult,
    CarbonMetrics,
    Measurement,
    MetricKind,
)
from carbon_measure.models.parcel import LandParcel, ParcelCollection

__all__ = [
    "AggregationResult",
    "CarbonMetrics",
    "LandParcel",
    "Measurement",
    "MetricKind",
    "ParcelCollection",
]
