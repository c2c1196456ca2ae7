"""Planar geometry primitives for the spatial join.

- ``contains``: even-odd ray-casting point-in-polygon test.
- ``centroid``: vertex-average centroid of a ring.
- ``planar_area_m2``: shoelace area in squared degrees scaled to m².

The centroid is the mean of the listed vertices (a repeated closing
vertex is counted), not the area-weighted centroid. The area is a
small-angle equirectangular estimate rather than a geodesic one.
Existing reports depend on both approximations.

A point lying exactly on a polygon edge or vertex has no defined
inside/outside classification; the result is whatever the crossing
arithmetic produces for that input.

The geodesic area (pyproj) and validity check (shapely) below are used
only to annotate reports and logs. They never feed the derived metrics.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from carbon_measure.core.constants import (
    MIN_POLYGON_VERTICES,
    SQ_METRES_PER_HECTARE,
    SQ_METRES_PER_SQ_DEGREE,
)

logger = logging.getLogger("carbon_measure.engine.geometry")

Point = tuple[float, float]
Ring = Sequence[Sequence[float]]


# ---------------------------------------------------------------------------
# Containment
# ---------------------------------------------------------------------------


def contains(point: Sequence[float], polygon: Ring) -> bool:
    """Return True if *point* is inside *polygon* (even-odd rule).

    Each edge ``(p[i], p[j])`` with ``j = i - 1`` (wrapping) toggles the
    result when a horizontal ray from *point* crosses it. Winding order
    does not matter, and a closed ring (first vertex repeated last) only
    adds a zero-length edge that never crosses.

    Args:
        point: ``(lon, lat)`` query point.
        polygon: Ring vertices as ``(lon, lat)`` pairs.

    Returns:
        False for polygons with fewer than three vertices.
    """
    n = len(polygon)
    if n < MIN_POLYGON_VERTICES:
        return False

    px, py = point[0], point[1]
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i][0], polygon[i][1]
        xj, yj = polygon[j][0], polygon[j][1]
        if (yi > py) != (yj > py) and px < (xj - xi) * (py - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


# ---------------------------------------------------------------------------
# Centroid
# ---------------------------------------------------------------------------


def centroid(ring: Ring) -> Point:
    """Return the arithmetic mean of all vertices of *ring*.

    Raises:
        ValueError: If *ring* has no vertices.
    """
    if not ring:
        msg = "Cannot compute centroid of an empty ring"
        raise ValueError(msg)
    sum_x = 0.0
    sum_y = 0.0
    for vertex in ring:
        sum_x += vertex[0]
        sum_y += vertex[1]
    count = len(ring)
    return (sum_x / count, sum_y / count)


# ---------------------------------------------------------------------------
# Area
# ---------------------------------------------------------------------------


def planar_area_m2(polygon: Ring) -> float:
    """Estimate polygon area in square metres.

    ``0.5 * |sum(x_i * y_(i+1) - x_(i+1) * y_i)|`` over ``(lon, lat)``
    pairs, scaled by ``111319.9 ** 2``. Valid only near the equator and
    for small polygons.

    Returns:
        0 for polygons with fewer than three vertices.
    """
    n = len(polygon)
    if n < MIN_POLYGON_VERTICES:
        return 0.0

    twice_area = 0.0
    for i in range(n):
        j = (i + 1) % n
        twice_area += polygon[i][0] * polygon[j][1]
        twice_area -= polygon[j][0] * polygon[i][1]
    return abs(twice_area) / 2 * SQ_METRES_PER_SQ_DEGREE


def geodesic_area_ha(polygon: Ring) -> float:
    """Compute geodesic polygon area in hectares on the WGS 84 ellipsoid.

    Report annotation only; the derived metrics use ``planar_area_m2``.

    Returns:
        0 for polygons with fewer than three vertices.
    """
    if len(polygon) < MIN_POLYGON_VERTICES:
        return 0.0

    from pyproj import Geod

    geod = Geod(ellps="WGS84")
    lons = [p[0] for p in polygon]
    lats = [p[1] for p in polygon]
    area_m2, _perimeter = geod.polygon_area_perimeter(lons, lats)
    return abs(area_m2) / SQ_METRES_PER_HECTARE


def bounding_box(polygon: Ring) -> tuple[float, float, float, float]:
    """Return ``(min_lon, min_lat, max_lon, max_lat)``.

    Raises:
        ValueError: If *polygon* has no vertices.
    """
    if not polygon:
        msg = "Cannot compute bounding box of an empty polygon"
        raise ValueError(msg)
    lons = [p[0] for p in polygon]
    lats = [p[1] for p in polygon]
    return (min(lons), min(lats), max(lons), max(lats))


# ---------------------------------------------------------------------------
# Ring helpers
# ---------------------------------------------------------------------------


def close_ring(polygon: Ring) -> list[Point]:
    """Return *polygon* as a closed ring (first vertex repeated last)."""
    points = [(float(p[0]), float(p[1])) for p in polygon]
    if points and points[0] != points[-1]:
        points.append(points[0])
    return points


def ring_validity_issue(polygon: Ring) -> str:
    """Describe why *polygon* is not a simple ring, or return ``""``.

    User polygons are expected to be simple (non-self-intersecting).
    The engine does not reject or repair them; callers log the issue.
    """
    if len(polygon) < MIN_POLYGON_VERTICES:
        return ""

    from shapely.geometry import Polygon
    from shapely.validation import explain_validity

    try:
        poly = Polygon(close_ring(polygon))
    except Exception as exc:
        return f"Cannot build polygon: {exc}"

    if poly.is_valid:
        return ""
    return explain_validity(poly)
