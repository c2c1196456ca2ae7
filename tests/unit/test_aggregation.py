"""Tests for the spatial join / aggregation engine.

Covers:
- Parcels included on their vertex-average centroid
- Malformed parcels skipped, incomplete parcels excluded
- Empty results for degenerate polygons
"""

from __future__ import annotations

import logging

import pytest

from carbon_measure.engine.aggregation import aggregate
from carbon_measure.models.parcel import ParcelCollection
from tests.builders import make_collection, make_feature, square_ring


def _collection(*features: dict) -> ParcelCollection:
    return ParcelCollection.from_geojson(make_collection(*features))


class TestAggregateSample:
    """Aggregation over the sample document."""

    def test_unit_square(
        self,
        unit_square: list[list[float]],
        sample_parcels: ParcelCollection,
    ) -> None:
        result = aggregate(unit_square, sample_parcels)

        assert result.included_feature_count == 2
        assert result.skipped_feature_count == 1
        assert result.sum_earlier_stock == pytest.approx(300.0)
        assert result.sum_later_stock == pytest.approx(440.0)
        assert result.sum_parcel_area == pytest.approx(8000.0)
        assert not result.is_empty

    def test_polygon_without_parcels(
        self,
        empty_area: list[list[float]],
        sample_parcels: ParcelCollection,
    ) -> None:
        result = aggregate(empty_area, sample_parcels)
        assert result.is_empty
        assert result.sum_earlier_stock == 0.0
        assert result.sum_later_stock == 0.0
        assert result.skipped_feature_count == 1

    def test_logs_summary(
        self,
        unit_square: list[list[float]],
        sample_parcels: ParcelCollection,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO, logger="carbon_measure.engine.aggregation"):
            aggregate(unit_square, sample_parcels)
        assert "Aggregation complete | included=2" in caplog.text


class TestAggregateRules:
    """Inclusion rules on hand-built collections."""

    def test_all_contained(self) -> None:
        parcels = _collection(
            make_feature(square_ring(0.1, 0.1), earlier=10, later=20),
            make_feature(square_ring(0.4, 0.4), earlier=30, later=50),
            make_feature(square_ring(0.7, 0.2), earlier=5, later=5),
        )
        result = aggregate([[0, 0], [0, 1], [1, 1], [1, 0]], parcels)
        assert result.included_feature_count == 3
        assert result.sum_earlier_stock == 45.0
        assert result.sum_later_stock == 75.0

    def test_single_feature(self) -> None:
        parcels = _collection(make_feature(square_ring(0.1, 0.1), earlier=100, later=170))
        result = aggregate([[0, 0], [0, 1], [1, 1], [1, 0]], parcels)
        assert result.included_feature_count == 1
        assert result.sum_earlier_stock == 100.0
        assert result.sum_later_stock == 170.0

    def test_centroid_decides_inclusion(self) -> None:
        """A parcel overlapping the polygon is excluded when its centroid lies outside."""
        straddling = [[0.9, 0.1], [1.5, 0.1], [1.5, 0.3], [0.9, 0.3], [0.9, 0.1]]
        parcels = _collection(make_feature(straddling, earlier=10, later=20))
        result = aggregate([[0, 0], [0, 1], [1, 1], [1, 0]], parcels)
        assert result.is_empty

    def test_malformed_geometry_skipped(self) -> None:
        parcels = _collection(
            make_feature(None, earlier=999, later=999),
            {"type": "Feature", "properties": {}, "geometry": {"coordinates": "bad"}},
            make_feature(square_ring(0.1, 0.1), earlier=1, later=2),
        )
        result = aggregate([[0, 0], [0, 1], [1, 1], [1, 0]], parcels)
        assert result.skipped_feature_count == 2
        assert result.included_feature_count == 1
        assert result.sum_earlier_stock == 1.0

    @pytest.mark.parametrize(
        ("earlier", "later"),
        [
            (None, 20),
            (10, None),
            (None, None),
            (True, 20),
            (10, "20"),
            (float("inf"), 20),
            (10, float("nan")),
            (10**400, 20),
        ],
    )
    def test_incomplete_attributes_excluded(self, earlier: object, later: object) -> None:
        parcels = _collection(make_feature(square_ring(0.1, 0.1), earlier=earlier, later=later))
        result = aggregate([[0, 0], [0, 1], [1, 1], [1, 0]], parcels)
        assert result.is_empty
        assert result.sum_earlier_stock == 0.0
        assert result.skipped_feature_count == 0

    def test_winding_and_closure_do_not_matter(self, sample_parcels: ParcelCollection) -> None:
        variants = [
            [[0, 0], [0, 1], [1, 1], [1, 0]],
            [[1, 0], [1, 1], [0, 1], [0, 0]],
            [[0, 0], [0, 1], [1, 1], [1, 0], [0, 0]],
        ]
        results = [aggregate(v, sample_parcels) for v in variants]
        assert all(r == results[0] for r in results)


class TestAggregateDegenerate:
    """Polygons with fewer than three vertices."""

    @pytest.mark.parametrize("polygon", [[], [[0, 0]], [[0, 0], [1, 1]]])
    def test_empty_result(self, polygon: list[list[float]], sample_parcels: ParcelCollection) -> None:
        result = aggregate(polygon, sample_parcels)
        assert result.is_empty
        assert result.sum_earlier_stock == 0.0
        assert result.sum_later_stock == 0.0
        assert result.skipped_feature_count == 0
