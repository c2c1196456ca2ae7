"""Thin ingress boundary helpers for the HTTP entry points.

Keeps transport concerns out of ``function_app.py`` so the function
bindings only parse, hand off and respond:

- **parse_json_body**: decodes a request body into a dict.
- **parse_polygon**: validates the ``polygon`` field into points.
- **build_metrics_response**: shapes a measurement for the client.
- **status_for_error**: maps domain errors to HTTP status codes.
"""

from __future__ import annotations

import json
import logging
import math
from typing import TYPE_CHECKING, Any

from carbon_measure.core.exceptions import ContractError, MeasurementError

if TYPE_CHECKING:
    from carbon_measure.models.metrics import Measurement
    from carbon_measure.models.payloads import MetricsResponse

logger = logging.getLogger("carbon_measure.core.ingress")

Point = tuple[float, float]

HTTP_BAD_REQUEST = 400
HTTP_SERVICE_UNAVAILABLE = 503
HTTP_INTERNAL_ERROR = 500


def parse_json_body(raw: bytes | str | dict[str, Any] | object) -> dict[str, Any]:
    """Normalise a request body to a plain dict.

    Raises:
        ContractError: If *raw* is not a JSON object.
    """
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"Request body is not UTF-8: {exc}"
            raise ContractError(msg, stage="ingress", code="INVALID_ENCODING") from exc
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, ValueError) as exc:
            msg = f"Request body is not valid JSON: {exc}"
            raise ContractError(msg, stage="ingress", code="INVALID_JSON") from exc
        if not isinstance(parsed, dict):
            msg = f"Request body JSON must be an object, got {type(parsed).__name__}"
            raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")
        return parsed
    msg = f"Unexpected request body type: {type(raw).__name__}"
    raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")


def parse_polygon(raw: object) -> list[Point]:
    """Validate a ``[[lon, lat], ...]`` array into ``(lon, lat)`` tuples.

    Fewer than three points is accepted here; the engine treats it as
    an empty result rather than an error.

    Raises:
        ContractError: If *raw* is not a list of finite numeric pairs.
    """
    if not isinstance(raw, list):
        msg = f"polygon must be a list of [lon, lat] pairs, got {type(raw).__name__}"
        raise ContractError(msg, stage="ingress", code="INVALID_POLYGON")

    points: list[Point] = []
    for index, vertex in enumerate(raw):
        if not isinstance(vertex, (list, tuple)) or len(vertex) < 2:
            msg = f"polygon[{index}] must be a [lon, lat] pair, got {vertex!r}"
            raise ContractError(msg, stage="ingress", code="INVALID_POLYGON")
        lon, lat = vertex[0], vertex[1]
        for value in (lon, lat):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                msg = f"polygon[{index}] coordinates must be numbers, got {vertex!r}"
                raise ContractError(msg, stage="ingress", code="INVALID_POLYGON")
            try:
                finite = math.isfinite(value)
            except OverflowError:
                finite = False
            if not finite:
                msg = f"polygon[{index}] coordinates must be finite, got {vertex!r}"
                raise ContractError(msg, stage="ingress", code="INVALID_POLYGON")
        points.append((float(lon), float(lat)))
    return points


def build_metrics_response(measurement: Measurement | None) -> MetricsResponse:
    """Shape a measurement (or its absence) for the ``metrics`` endpoint."""
    if measurement is None:
        return {"metrics": None, "fallback_used": False, "included_feature_count": 0}
    return {
        "metrics": measurement.metrics.to_dict(),
        "fallback_used": measurement.fallback_used,
        "included_feature_count": measurement.aggregation.included_feature_count,
    }


def status_for_error(exc: MeasurementError) -> int:
    """Map a domain error to an HTTP status code."""
    if isinstance(exc, ContractError):
        return HTTP_BAD_REQUEST
    if exc.stage == "load_features":
        return HTTP_SERVICE_UNAVAILABLE
    return HTTP_INTERNAL_ERROR
