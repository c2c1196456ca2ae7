"""Request handlers behind the HTTP functions.

``function_app.py`` only adapts ``func.HttpRequest`` / ``func.HttpResponse``;
the request flow lives here so it can be tested without the Functions
runtime. Handlers raise ``MeasurementError`` subclasses and leave the
status mapping to the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from carbon_measure.core.constants import FALLBACK_MODE_ZERO, MIN_POLYGON_VERTICES
from carbon_measure.core.exceptions import ContractError
from carbon_measure.core.ingress import build_metrics_response, parse_json_body, parse_polygon
from carbon_measure.engine.measure import measure_polygon
from carbon_measure.models.payloads import MetricsRequest, ReportRequest, validate_payload
from carbon_measure.models.report import CarbonReportRecord

if TYPE_CHECKING:
    from carbon_measure.engine.loader import FeatureIndexLoader
    from carbon_measure.models.payloads import MetricsResponse

logger = logging.getLogger("carbon_measure.handlers")


async def handle_metrics(
    raw_body: bytes | str | dict[str, Any],
    loader: FeatureIndexLoader,
    *,
    fallback_mode: str = FALLBACK_MODE_ZERO,
) -> MetricsResponse:
    """Compute the metrics response for a ``{"polygon": [...]}`` body.

    Raises:
        ContractError: If the body or polygon is malformed.
        LoadError: If the parcel collection cannot be loaded.
    """
    body = parse_json_body(raw_body)
    validate_payload(body, MetricsRequest, endpoint="metrics")
    polygon = parse_polygon(body["polygon"])

    measurement = await measure_polygon(polygon, loader, fallback_mode=fallback_mode)
    logger.info(
        "metrics handled | vertices=%d | fallback=%s",
        len(polygon),
        measurement.fallback_used if measurement is not None else None,
    )
    return build_metrics_response(measurement)


async def handle_report(
    raw_body: bytes | str | dict[str, Any],
    loader: FeatureIndexLoader,
    *,
    fallback_mode: str = FALLBACK_MODE_ZERO,
    timestamp: str = "",
) -> CarbonReportRecord:
    """Build the report for a ``{"polygon": [...], "project_name": ...}`` body.

    Raises:
        ContractError: If the body is malformed or the polygon has fewer
            than three points.
        LoadError: If the parcel collection cannot be loaded.
    """
    body = parse_json_body(raw_body)
    validate_payload(body, ReportRequest, endpoint="report")
    polygon = parse_polygon(body["polygon"])

    measurement = await measure_polygon(polygon, loader, fallback_mode=fallback_mode)
    if measurement is None:
        msg = f"report: polygon needs at least {MIN_POLYGON_VERTICES} points, got {len(polygon)}"
        raise ContractError(msg, stage="report", code="INSUFFICIENT_GEOMETRY")

    record = CarbonReportRecord.from_measurement(
        measurement,
        report_id=str(body.get("report_id", "")),
        project_name=str(body.get("project_name", "")),
        timestamp=timestamp,
    )
    logger.info(
        "report handled | report_id=%s | fallback=%s",
        record.report_id,
        measurement.fallback_used,
    )
    return record
