"""Tests for the engine entry points (measure / measure_polygon / compute_metrics)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx
import pytest

from carbon_measure.engine.loader import FeatureIndexLoader, LoadError
from carbon_measure.engine.measure import compute_metrics, measure, measure_polygon
from carbon_measure.models.metrics import CarbonMetrics
from carbon_measure.models.parcel import ParcelCollection

UNIT_SQUARE_AREA_M2 = 12_392_120_136


class TestMeasure:
    """Pure pipeline over an in-memory collection."""

    def test_primary_path(
        self,
        unit_square: list[list[float]],
        sample_parcels: ParcelCollection,
    ) -> None:
        result = measure(unit_square, sample_parcels)

        assert result is not None
        assert result.fallback_used is False
        assert result.aggregation.included_feature_count == 2
        assert result.metrics == CarbonMetrics(
            area=UNIT_SQUARE_AREA_M2,
            carbon_stocks=300,
            forest_growth=20,
            leakage=2,
            net_sequestration=18,
            marketable_credits=1_728_000,
        )
        assert result.polygon == ((0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0))

    def test_fallback_when_nothing_matches(
        self,
        empty_area: list[list[float]],
        sample_parcels: ParcelCollection,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="carbon_measure.engine.measure"):
            result = measure(empty_area, sample_parcels)

        assert result is not None
        assert result.fallback_used is True
        assert result.metrics.area > 0
        assert result.metrics.carbon_stocks == 0
        assert result.metrics.marketable_credits == 0
        assert "No parcels found" in caplog.text

    def test_heuristic_fallback(
        self,
        empty_area: list[list[float]],
        sample_parcels: ParcelCollection,
    ) -> None:
        result = measure(empty_area, sample_parcels, fallback_mode="heuristic")
        assert result is not None
        assert result.fallback_used is True
        assert result.metrics.carbon_stocks > 0
        assert result.metrics.forest_growth > result.metrics.leakage

    def test_empty_collection_uses_fallback(self, unit_square: list[list[float]]) -> None:
        result = measure(unit_square, ParcelCollection())
        assert result is not None
        assert result.fallback_used is True
        assert result.metrics == CarbonMetrics(area=UNIT_SQUARE_AREA_M2)

    @pytest.mark.parametrize("polygon", [[], [[0, 0]], [[0, 0], [1, 1]]])
    def test_degenerate_polygon(
        self,
        polygon: list[list[float]],
        sample_parcels: ParcelCollection,
    ) -> None:
        assert measure(polygon, sample_parcels) is None

    def test_self_intersecting_polygon_logged(
        self,
        sample_parcels: ParcelCollection,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        bowtie = [[0, 0], [1, 1], [1, 0], [0, 1]]
        with caplog.at_level(logging.WARNING, logger="carbon_measure.engine.measure"):
            result = measure(bowtie, sample_parcels)
        assert result is not None
        assert "not a simple ring" in caplog.text


class TestComputeMetrics:
    """Async entry point over a loader."""

    @pytest.mark.asyncio()
    async def test_from_file(self, unit_square: list[list[float]], sample_parcels_path: Path) -> None:
        loader = FeatureIndexLoader(str(sample_parcels_path))
        metrics = await compute_metrics(unit_square, loader)

        assert metrics is not None
        assert metrics.carbon_stocks == 300
        assert metrics.marketable_credits == 1_728_000

    @pytest.mark.asyncio()
    async def test_degenerate_polygon_does_not_load(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        loader = FeatureIndexLoader("http://x.test/f.geojson", transport=httpx.MockTransport(handler))

        assert await compute_metrics([[0, 0], [1, 1]], loader) is None
        assert await measure_polygon([], loader) is None
        assert calls == []

    @pytest.mark.asyncio()
    async def test_load_error_propagates(self, unit_square: list[list[float]]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        loader = FeatureIndexLoader("http://x.test/f.geojson", transport=httpx.MockTransport(handler))

        with pytest.raises(LoadError):
            await compute_metrics(unit_square, loader)

    @pytest.mark.asyncio()
    async def test_single_fetch_for_several_polygons(
        self,
        sample_document: dict[str, Any],
        unit_square: list[list[float]],
        empty_area: list[list[float]],
    ) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=sample_document)

        loader = FeatureIndexLoader("http://x.test/f.geojson", transport=httpx.MockTransport(handler))

        first = await measure_polygon(unit_square, loader)
        second = await measure_polygon(empty_area, loader)

        assert first is not None and not first.fallback_used
        assert second is not None and second.fallback_used
        assert len(calls) == 1
