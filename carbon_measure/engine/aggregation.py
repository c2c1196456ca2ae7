"""Spatial join between a user polygon and the parcel collection.

For every parcel, the vertex-average centroid of its first ring is
tested against the user polygon. Contained parcels that carry both
carbon-stock attributes contribute to the sums.

Parcels are included or excluded on their *vertex-average* centroid,
not their true geometric centroid, so concave or irregularly sampled
parcels can be over- or under-included. Existing reports depend
on this selection.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from carbon_measure.core.constants import MIN_POLYGON_VERTICES
from carbon_measure.engine.geometry import centroid, contains
from carbon_measure.models.metrics import AggregationResult

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from carbon_measure.models.parcel import LandParcel

logger = logging.getLogger("carbon_measure.engine.aggregation")


def aggregate(
    polygon: Sequence[Sequence[float]],
    parcels: Iterable[LandParcel],
) -> AggregationResult:
    """Sum carbon-stock attributes of parcels contained by *polygon*.

    Args:
        polygon: User polygon as ``(lon, lat)`` pairs, closed or unclosed.
        parcels: Parcels to test (typically a ``ParcelCollection``).

    Returns:
        An ``AggregationResult``. Empty (all zero) when *polygon* has
        fewer than three vertices; ``included_feature_count == 0`` also
        signals that the caller must take the area-only fallback.
    """
    if len(polygon) < MIN_POLYGON_VERTICES:
        logger.debug("Aggregation skipped | vertices=%d", len(polygon))
        return AggregationResult()

    sum_earlier = 0.0
    sum_later = 0.0
    sum_area = 0.0
    included = 0
    skipped = 0
    contained_without_stock = 0

    for parcel in parcels:
        if not parcel.has_geometry:
            skipped += 1
            continue

        if not contains(centroid(parcel.ring), polygon):
            continue

        if not parcel.has_stock_attributes:
            contained_without_stock += 1
            continue

        sum_earlier += parcel.earlier_stock  # type: ignore[operator]
        sum_later += parcel.later_stock  # type: ignore[operator]
        if parcel.area is not None:
            sum_area += parcel.area
        included += 1

    if skipped:
        logger.debug("Parcels skipped for malformed geometry | count=%d", skipped)

    logger.info(
        "Aggregation complete | included=%d | contained_without_stock=%d | "
        "skipped=%d | earlier=%.2f | later=%.2f",
        included,
        contained_without_stock,
        skipped,
        sum_earlier,
        sum_later,
    )

    return AggregationResult(
        sum_earlier_stock=sum_earlier,
        sum_later_stock=sum_later,
        included_feature_count=included,
        skipped_feature_count=skipped,
        sum_parcel_area=sum_area,
    )
