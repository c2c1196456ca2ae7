"""Shared pytest fixtures for the carbon measurement test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from carbon_measure.models.parcel import ParcelCollection

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory."""
    return DATA_DIR


@pytest.fixture()
def sample_parcels_path(data_dir: Path) -> Path:
    """Path to the sample joined carbon / land-use GeoJSON (5 parcels).

    Against ``unit_square``: P-001 and P-002 are included, P-003 lies
    outside, P-004 is contained but lacks the later stock, and P-005 has
    no geometry.
    """
    return data_dir / "sample_parcels.geojson"


@pytest.fixture()
def sample_document(sample_parcels_path: Path) -> dict[str, Any]:
    """The sample GeoJSON document as parsed JSON."""
    return json.loads(sample_parcels_path.read_text(encoding="utf-8"))


@pytest.fixture()
def sample_parcels(sample_document: dict[str, Any]) -> ParcelCollection:
    """The sample document parsed into a ``ParcelCollection``."""
    return ParcelCollection.from_geojson(sample_document, source="sample_parcels.geojson")


# ---------------------------------------------------------------------------
# Polygon fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def unit_square() -> list[list[float]]:
    """1° x 1° square at the origin, unclosed."""
    return [[0.0, 0.0], [0.0, 1.0], [1.0, 1.0], [1.0, 0.0]]


@pytest.fixture()
def empty_area() -> list[list[float]]:
    """Small triangle far from every sample parcel."""
    return [[10.0, 10.0], [10.1, 10.0], [10.0, 10.1]]

