"""Engine entry point: polygon in, measurement out.

``measure`` is the pure pipeline (spatial join, then either metric
derivation or the area-only fallback). ``compute_metrics`` awaits the
parcel collection first and is what presentation code calls.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from carbon_measure.core.constants import FALLBACK_MODE_ZERO, MIN_POLYGON_VERTICES
from carbon_measure.engine.aggregation import aggregate
from carbon_measure.engine.derivation import area_only_metrics, derive_metrics
from carbon_measure.engine.geometry import ring_validity_issue
from carbon_measure.models.metrics import Measurement

if TYPE_CHECKING:
    from collections.abc import Iterable

    from carbon_measure.engine.loader import FeatureIndexLoader
    from carbon_measure.models.metrics import CarbonMetrics
    from carbon_measure.models.parcel import LandParcel

logger = logging.getLogger("carbon_measure.engine.measure")

Polygon = Sequence[Sequence[float]]


def measure(
    polygon: Polygon,
    parcels: Iterable[LandParcel],
    *,
    fallback_mode: str = FALLBACK_MODE_ZERO,
) -> Measurement | None:
    """Measure *polygon* against *parcels*.

    Returns:
        ``None`` when *polygon* has fewer than three vertices. Otherwise
        a ``Measurement`` whose ``fallback_used`` is True when no parcel
        contributed and the metrics came from ``area_only_metrics``.
    """
    if len(polygon) < MIN_POLYGON_VERTICES:
        logger.debug("Measurement skipped | vertices=%d", len(polygon))
        return None

    points = tuple((float(p[0]), float(p[1])) for p in polygon)

    issue = ring_validity_issue(points)
    if issue:
        logger.warning("User polygon is not a simple ring | issue=%s", issue)

    aggregation = aggregate(points, parcels)

    if aggregation.is_empty:
        logger.warning(
            "No parcels found in the drawn area, using area-only fallback | mode=%s",
            fallback_mode,
        )
        return Measurement(
            polygon=points,
            aggregation=aggregation,
            metrics=area_only_metrics(points, mode=fallback_mode),
            fallback_used=True,
        )

    return Measurement(
        polygon=points,
        aggregation=aggregation,
        metrics=derive_metrics(aggregation, points),
        fallback_used=False,
    )


async def measure_polygon(
    polygon: Polygon,
    loader: FeatureIndexLoader,
    *,
    fallback_mode: str = FALLBACK_MODE_ZERO,
) -> Measurement | None:
    """Load (or reuse) the parcel collection and measure *polygon*.

    The collection is not loaded for polygons with fewer than three
    vertices.

    Raises:
        LoadError: If the parcel collection cannot be loaded.
    """
    if len(polygon) < MIN_POLYGON_VERTICES:
        return None
    parcels = await loader.load()
    return measure(polygon, parcels, fallback_mode=fallback_mode)


async def compute_metrics(
    polygon: Polygon,
    loader: FeatureIndexLoader,
    *,
    fallback_mode: str = FALLBACK_MODE_ZERO,
) -> CarbonMetrics | None:
    """Return the rounded metrics for *polygon*, or ``None`` if degenerate.

    Raises:
        LoadError: If the parcel collection cannot be loaded.
    """
    measurement = await measure_polygon(polygon, loader, fallback_mode=fallback_mode)
    return measurement.metrics if measurement is not None else None
