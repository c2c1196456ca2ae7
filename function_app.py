"""Azure Functions entry point: Carbon Measurement Engine.

This module registers the HTTP functions using the Python v2
programming model.

All business logic lives in the carbon_measure package. This file is
purely the wiring layer between Azure Functions bindings and
application code.
"""

from __future__ import annotations

import json
import logging

import azure.functions as func

from carbon_measure.core.config import MeasurementConfig
from carbon_measure.core.exceptions import MeasurementError
from carbon_measure.core.ingress import status_for_error
from carbon_measure.engine.loader import FeatureIndexLoader
from carbon_measure.handlers import handle_metrics, handle_report

app = func.FunctionApp()

logger = logging.getLogger("carbon_measure.function_app")

# One loader per worker process: the parcel collection is fetched on the
# first request and reused until the worker is recycled.
_config: MeasurementConfig | None = None
_loader: FeatureIndexLoader | None = None


def _get_config() -> MeasurementConfig:
    global _config  # noqa: PLW0603
    if _config is None:
        _config = MeasurementConfig.from_env()
    return _config


def _get_loader() -> FeatureIndexLoader:
    global _loader  # noqa: PLW0603
    if _loader is None:
        _loader = FeatureIndexLoader.from_config(_get_config())
    return _loader


def _error_response(exc: MeasurementError) -> func.HttpResponse:
    status_code = status_for_error(exc)
    log = logger.warning if status_code < 500 else logger.error
    log("Request failed | status=%d | code=%s | error=%s", status_code, exc.code, exc)
    return func.HttpResponse(
        json.dumps({"error": exc.to_error_dict()}),
        status_code=status_code,
        mimetype="application/json",
    )


# ---------------------------------------------------------------------------
# POST /api/metrics
# ---------------------------------------------------------------------------


@app.function_name("metrics")
@app.route(route="metrics", methods=["POST"])
async def metrics_endpoint(req: func.HttpRequest) -> func.HttpResponse:
    """Compute the six carbon metrics for a drawn polygon.

    Body: ``{"polygon": [[lon, lat], ...]}``. Polygons with fewer than
    three points return ``{"metrics": null}``.
    """
    try:
        response = await handle_metrics(
            req.get_body(),
            _get_loader(),
            fallback_mode=_get_config().fallback_mode,
        )
    except MeasurementError as exc:
        return _error_response(exc)

    return func.HttpResponse(json.dumps(response), status_code=200, mimetype="application/json")


# ---------------------------------------------------------------------------
# POST /api/report
# ---------------------------------------------------------------------------


@app.function_name("report")
@app.route(route="report", methods=["POST"])
async def report_endpoint(req: func.HttpRequest) -> func.HttpResponse:
    """Build the JSON report for a drawn polygon.

    Body: ``{"polygon": [[lon, lat], ...], "project_name": "...",
    "report_id": "..."}``.
    """
    try:
        record = await handle_report(
            req.get_body(),
            _get_loader(),
            fallback_mode=_get_config().fallback_mode,
        )
    except MeasurementError as exc:
        return _error_response(exc)

    return func.HttpResponse(record.to_json(), status_code=200, mimetype="application/json")
