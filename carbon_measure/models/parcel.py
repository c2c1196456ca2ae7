"""Data model for land parcels loaded from the static feature collection.

A ``LandParcel`` is one feature of the joined carbon / land-use GeoJSON
document. Only the first ring of the first sub-polygon of its
(multi-)polygon geometry is kept; all other rings and sub-polygons are
ignored. A parcel whose geometry does not have that nesting keeps an
empty ring and is skipped by aggregation rather than rejected at load.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from carbon_measure.core.constants import (
    DEFAULT_EARLIER_STOCK_FIELD,
    DEFAULT_LATER_STOCK_FIELD,
    PARCEL_AREA_FIELD,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

Point = tuple[float, float]


def is_number(value: object) -> bool:
    """Return True for finite JSON numbers (int or float), excluding booleans.

    NaN, infinities and integers too large for a float are not numbers
    here: a parcel carrying one is treated as if the attribute were absent.
    """
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


@dataclass(frozen=True, slots=True)
class LandParcel:
    """A single land parcel with its carbon-stock attributes.

    Attributes:
        ring: First ring of the first sub-polygon as ``(lon, lat)`` tuples.
            Empty when the source geometry was malformed.
        earlier_stock: Total carbon stock at the earlier reference year.
        later_stock: Total carbon stock at the later reference year.
        area: Parcel area from the ``area`` property, if present.
        feature_index: Zero-based index of the feature in the collection.
        properties: Raw GeoJSON properties.
    """

    ring: tuple[Point, ...] = ()
    earlier_stock: float | None = None
    later_stock: float | None = None
    area: float | None = None
    feature_index: int = 0
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def has_geometry(self) -> bool:
        """Whether a usable first ring was extracted."""
        return len(self.ring) > 0

    @property
    def has_stock_attributes(self) -> bool:
        """Whether both carbon-stock attributes are present and numeric."""
        return self.earlier_stock is not None and self.later_stock is not None

    @classmethod
    def from_geojson(
        cls,
        feature: object,
        *,
        feature_index: int = 0,
        earlier_field: str = DEFAULT_EARLIER_STOCK_FIELD,
        later_field: str = DEFAULT_LATER_STOCK_FIELD,
    ) -> LandParcel:
        """Build a parcel from one GeoJSON feature object.

        Never raises for malformed geometry or properties: the parcel is
        returned with an empty ring and/or missing attributes instead.
        """
        if not isinstance(feature, dict):
            return cls(feature_index=feature_index)

        properties = feature.get("properties")
        if not isinstance(properties, dict):
            properties = {}

        earlier = properties.get(earlier_field)
        later = properties.get(later_field)
        area = properties.get(PARCEL_AREA_FIELD)

        return cls(
            ring=extract_first_ring(feature.get("geometry")),
            earlier_stock=float(earlier) if is_number(earlier) else None,
            later_stock=float(later) if is_number(later) else None,
            area=float(area) if is_number(area) and area else None,
            feature_index=feature_index,
            properties=dict(properties),
        )


@dataclass(frozen=True, slots=True)
class ParcelCollection:
    """Immutable set of parcels loaded once per session.

    Attributes:
        parcels: All parcels, in document order.
        source: Location the collection was loaded from.
    """

    parcels: tuple[LandParcel, ...] = ()
    source: str = ""

    def __len__(self) -> int:
        return len(self.parcels)

    def __iter__(self) -> Iterator[LandParcel]:
        return iter(self.parcels)

    @classmethod
    def from_geojson(
        cls,
        document: object,
        *,
        source: str = "",
        earlier_field: str = DEFAULT_EARLIER_STOCK_FIELD,
        later_field: str = DEFAULT_LATER_STOCK_FIELD,
    ) -> ParcelCollection:
        """Parse a GeoJSON FeatureCollection document.

        Raises:
            ValueError: If *document* is not a ``FeatureCollection`` with
                a ``features`` list.
        """
        if not isinstance(document, dict):
            msg = f"Feature collection must be a JSON object, got {type(document).__name__}"
            raise ValueError(msg)
        if document.get("type") != "FeatureCollection":
            msg = f"Expected type 'FeatureCollection', got {document.get('type')!r}"
            raise ValueError(msg)
        features = document.get("features")
        if not isinstance(features, list):
            msg = f"'features' must be a list, got {type(features).__name__}"
            raise ValueError(msg)

        parcels = tuple(
            LandParcel.from_geojson(
                feature,
                feature_index=index,
                earlier_field=earlier_field,
                later_field=later_field,
            )
            for index, feature in enumerate(features)
        )
        return cls(parcels=parcels, source=source)


def extract_first_ring(geometry: object) -> tuple[Point, ...]:
    """Return ``coordinates[0][0]`` of a multi-polygon geometry.

    Returns an empty tuple when the geometry does not have the expected
    ``[[[ [x, y], ... ]]]`` nesting or any vertex is not a numeric pair.
    """
    if not isinstance(geometry, dict):
        return ()
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, list) or not coordinates:
        return ()
    polygon = coordinates[0]
    if not isinstance(polygon, list) or not polygon:
        return ()
    ring = polygon[0]
    if not isinstance(ring, list):
        return ()

    points: list[Point] = []
    for vertex in ring:
        if not isinstance(vertex, (list, tuple)) or len(vertex) < 2:
            return ()
        x, y = vertex[0], vertex[1]
        if not (is_number(x) and is_number(y)):
            return ()
        points.append((float(x), float(y)))
    return tuple(points)
