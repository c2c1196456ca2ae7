"""Typed payload schemas for the HTTP endpoints.

These ``TypedDict`` definitions make the request/response contracts of
``function_app.py`` explicit; ``validate_payload`` enforces the
required keys at runtime.

Usage::

    from carbon_measure.models.payloads import MetricsRequest, validate_payload

    validate_payload(body, MetricsRequest, endpoint="metrics")
"""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict

from carbon_measure.core.exceptions import ContractError

# ---------------------------------------------------------------------------
# POST /api/metrics
# ---------------------------------------------------------------------------


class MetricsRequest(TypedDict):
    """Client → ``metrics`` endpoint."""

    polygon: list[list[float]]


class MetricsResponse(TypedDict):
    """``metrics`` endpoint → client.

    ``metrics`` is ``None`` when the polygon has fewer than three points.
    """

    metrics: dict[str, float] | None
    fallback_used: bool
    included_feature_count: int


# ---------------------------------------------------------------------------
# POST /api/report
# ---------------------------------------------------------------------------


class ReportRequest(TypedDict):
    """Client → ``report`` endpoint."""

    polygon: list[list[float]]
    project_name: NotRequired[str]
    report_id: NotRequired[str]


# ---------------------------------------------------------------------------
# Required-key registrations (used by validate_payload)
# ---------------------------------------------------------------------------

_REQUIRED_KEYS: dict[type, frozenset[str]] = {
    MetricsRequest: frozenset({"polygon"}),
    ReportRequest: frozenset({"polygon"}),
}


def validate_payload(
    raw: dict[str, Any],
    schema: type,
    *,
    endpoint: str,
) -> None:
    """Validate that *raw* contains the required keys for *schema*.

    Raises:
        ContractError: If required keys are missing from the payload.
    """
    required = _REQUIRED_KEYS.get(schema)
    if required is None:
        return

    missing = required - raw.keys()
    if missing:
        msg = f"{endpoint}: missing required payload key(s): {', '.join(sorted(missing))}"
        raise ContractError(msg, stage=endpoint, code="PAYLOAD_MISSING_KEYS")
