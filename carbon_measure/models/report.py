"""Pydantic report model for a completed measurement.

The report is the read-only document handed to report rendering and
export: what polygon was drawn, what the engine measured, and how the
numbers were obtained.

The schema is split into nested sections:
- **geometry**: Polygon coordinates, bbox, centroid, area estimates
- **metrics**: The six derived metrics
- **summary**: Display lines (name, value, unit) in catalogue order
- **assessment**: Parcel counts, fallback flag, growth percentage
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from carbon_measure.core.constants import SQ_METRES_PER_HECTARE
from carbon_measure.engine.derivation import growth_percentage, is_high_growth
from carbon_measure.engine.geometry import bounding_box, centroid, close_ring, geodesic_area_ha
from carbon_measure.models.metrics import MetricKind

if TYPE_CHECKING:
    from carbon_measure.models.metrics import CarbonMetrics, Measurement

SCHEMA_VERSION = "carbon-report-v1"


class ReportGeometry(BaseModel):
    """Geometry section of the report.

    Attributes:
        type: GeoJSON geometry type, always ``"Polygon"``.
        coordinates: GeoJSON coordinates ``[closed_ring]``.
        centroid: Vertex-average centroid of the drawn polygon.
        bounding_box: ``[min_lon, min_lat, max_lon, max_lat]``.
        area_m2: Planar area estimate used by the metrics.
        area_hectares: ``area_m2`` in hectares.
        geodesic_area_hectares: WGS 84 geodesic area, for comparison only.
        crs: Coordinate reference system EPSG code.
    """

    type: str = "Polygon"
    coordinates: list[list[list[float]]] = Field(default_factory=list)
    centroid: list[float] = Field(default_factory=list)
    bounding_box: list[float] = Field(default_factory=list)
    area_m2: float = 0.0
    area_hectares: float = 0.0
    geodesic_area_hectares: float = 0.0
    crs: str = "EPSG:4326"


class ReportMetrics(BaseModel):
    """The six derived metrics."""

    area: float = 0.0
    carbon_stocks: float = 0.0
    forest_growth: float = 0.0
    leakage: float = 0.0
    net_sequestration: float = 0.0
    marketable_credits: float = 0.0


class MetricSummaryLine(BaseModel):
    """One display line of the metric summary."""

    metric: str
    name: str
    value: float
    unit: str
    display: str


class ReportAssessment(BaseModel):
    """How the metrics were obtained.

    Attributes:
        included_feature_count: Parcels that contributed to the sums.
        skipped_feature_count: Parcels skipped for malformed geometry.
        fallback_used: True when the area-only fallback was used.
        growth_percentage: Forest growth relative to the baseline stock.
        high_growth_flag: True when growth exceeds the review threshold.
    """

    included_feature_count: int = 0
    skipped_feature_count: int = 0
    fallback_used: bool = False
    growth_percentage: float = 0.0
    high_growth_flag: bool = False


class CarbonReportRecord(BaseModel):
    """Top-level carbon measurement report."""

    schema_version: str = Field(default=SCHEMA_VERSION, alias="$schema")
    report_id: str = ""
    project_name: str = ""
    generated_at: str = ""
    geometry: ReportGeometry = Field(default_factory=ReportGeometry)
    metrics: ReportMetrics = Field(default_factory=ReportMetrics)
    summary: list[MetricSummaryLine] = Field(default_factory=list)
    assessment: ReportAssessment = Field(default_factory=ReportAssessment)

    model_config = {"populate_by_name": True}

    @classmethod
    def from_measurement(
        cls,
        measurement: Measurement,
        *,
        report_id: str = "",
        project_name: str = "",
        timestamp: str = "",
    ) -> CarbonReportRecord:
        """Construct a report from a completed ``Measurement``.

        Args:
            measurement: The session's current measurement.
            report_id: Caller-supplied report identifier.
            project_name: Project name shown on the report.
            timestamp: Generation timestamp (ISO 8601). If empty, uses
                the current UTC time.

        Raises:
            ValueError: If the measurement has no polygon.
        """
        polygon = measurement.polygon
        if not polygon:
            msg = "Cannot build a report for a measurement without a polygon"
            raise ValueError(msg)

        if not timestamp:
            timestamp = datetime.now(UTC).isoformat()

        metrics = measurement.metrics
        return cls(
            report_id=report_id,
            project_name=project_name or "unnamed project",
            generated_at=timestamp,
            geometry=ReportGeometry(
                coordinates=[[list(p) for p in close_ring(polygon)]],
                centroid=list(centroid(polygon)),
                bounding_box=list(bounding_box(polygon)),
                area_m2=metrics.area,
                area_hectares=metrics.area / SQ_METRES_PER_HECTARE,
                geodesic_area_hectares=geodesic_area_ha(polygon),
            ),
            metrics=ReportMetrics(**metrics.to_dict()),
            summary=summary_lines(metrics),
            assessment=ReportAssessment(
                included_feature_count=measurement.aggregation.included_feature_count,
                skipped_feature_count=measurement.aggregation.skipped_feature_count,
                fallback_used=measurement.fallback_used,
                growth_percentage=growth_percentage(metrics),
                high_growth_flag=is_high_growth(metrics),
            ),
        )

    def to_json(self, *, indent: int = 2) -> str:
        """Serialise to a JSON string using the ``$schema`` alias."""
        return self.model_dump_json(indent=indent, by_alias=True)

    def to_dict(self) -> dict[str, object]:
        """Serialise to a plain dict."""
        return self.model_dump(by_alias=True)  # type: ignore[return-value]


def summary_lines(metrics: CarbonMetrics) -> list[MetricSummaryLine]:
    """Display lines for the six metrics, in catalogue order."""
    return [
        MetricSummaryLine(
            metric=kind.value,
            name=kind.display_name,
            value=metrics.value_of(kind),
            unit=kind.unit,
            display=kind.format_value(metrics.value_of(kind)),
        )
        for kind in MetricKind
    ]
