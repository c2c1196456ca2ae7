"""Tests for measurement configuration.

Covers:
- Default values match the bundled static feature collection
- Loading from environment variables
- Type coercion (string env vars → numeric fields)
- Fail-fast range validation
- Feature collection location resolution
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from carbon_measure.core.config import ConfigValidationError, MeasurementConfig

_ENV_KEYS = (
    "FEATURE_BASE_URL",
    "FEATURE_COLLECTION_PATH",
    "FEATURE_FETCH_TIMEOUT_S",
    "FEATURE_FETCH_MAX_RETRIES",
    "EARLIER_STOCK_FIELD",
    "LATER_STOCK_FIELD",
    "FALLBACK_MODE",
)


def _clean_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if k not in _ENV_KEYS}


class TestMeasurementConfigDefaults:
    """Verify default configuration values."""

    def test_default_location(self) -> None:
        cfg = MeasurementConfig()
        assert cfg.feature_base_url == "http://localhost:3000"
        assert cfg.feature_collection_path == "/15_carbon_lulc_joined.geojson"

    def test_default_stock_fields(self) -> None:
        cfg = MeasurementConfig()
        assert cfg.earlier_stock_field == "total_carbon_2017_sum"
        assert cfg.later_stock_field == "total_carbon_2024_sum"

    def test_default_fetch_settings(self) -> None:
        cfg = MeasurementConfig()
        assert cfg.fetch_timeout_s == 30.0
        assert cfg.fetch_max_retries == 0

    def test_default_fallback_mode(self) -> None:
        assert MeasurementConfig().fallback_mode == "zero"


class TestMeasurementConfigFromEnv:
    """Verify loading from environment variables."""

    def test_loads_from_environment(self) -> None:
        """All env vars are read and coerced to correct types."""
        env = {
            "FEATURE_BASE_URL": "https://static.example.org",
            "FEATURE_COLLECTION_PATH": "/geo/parcels.geojson",
            "FEATURE_FETCH_TIMEOUT_S": "12.5",
            "FEATURE_FETCH_MAX_RETRIES": "3",
            "EARLIER_STOCK_FIELD": "carbon_2015",
            "LATER_STOCK_FIELD": "carbon_2022",
            "FALLBACK_MODE": " Heuristic ",
        }
        with patch.dict(os.environ, env, clear=False):
            cfg = MeasurementConfig.from_env()

        assert cfg.feature_base_url == "https://static.example.org"
        assert cfg.feature_collection_path == "/geo/parcels.geojson"
        assert cfg.fetch_timeout_s == 12.5
        assert cfg.fetch_max_retries == 3
        assert cfg.earlier_stock_field == "carbon_2015"
        assert cfg.later_stock_field == "carbon_2022"
        assert cfg.fallback_mode == "heuristic"

    def test_defaults_when_env_missing(self) -> None:
        with patch.dict(os.environ, _clean_env(), clear=True):
            cfg = MeasurementConfig.from_env()
        assert cfg == MeasurementConfig()

    def test_non_numeric_timeout_raises(self) -> None:
        with (
            patch.dict(os.environ, {"FEATURE_FETCH_TIMEOUT_S": "abc"}, clear=False),
            pytest.raises(ValueError),
        ):
            MeasurementConfig.from_env()

    def test_frozen(self) -> None:
        cfg = MeasurementConfig()
        with pytest.raises(AttributeError):
            cfg.fallback_mode = "heuristic"  # type: ignore[misc]


class TestMeasurementConfigValidation:
    """Fail-fast range validation."""

    @pytest.mark.parametrize(
        ("env", "key"),
        [
            ({"FEATURE_FETCH_TIMEOUT_S": "0"}, "FEATURE_FETCH_TIMEOUT_S"),
            ({"FEATURE_FETCH_TIMEOUT_S": "-5"}, "FEATURE_FETCH_TIMEOUT_S"),
            ({"FEATURE_FETCH_MAX_RETRIES": "-1"}, "FEATURE_FETCH_MAX_RETRIES"),
            ({"FEATURE_FETCH_MAX_RETRIES": "6"}, "FEATURE_FETCH_MAX_RETRIES"),
            ({"FEATURE_COLLECTION_PATH": ""}, "FEATURE_COLLECTION_PATH"),
            ({"EARLIER_STOCK_FIELD": ""}, "EARLIER_STOCK_FIELD"),
            ({"LATER_STOCK_FIELD": ""}, "LATER_STOCK_FIELD"),
            ({"LATER_STOCK_FIELD": "total_carbon_2017_sum"}, "LATER_STOCK_FIELD"),
            ({"FALLBACK_MODE": "estimate"}, "FALLBACK_MODE"),
        ],
    )
    def test_invalid_values(self, env: dict[str, str], key: str) -> None:
        with (
            patch.dict(os.environ, {**_clean_env(), **env}, clear=True),
            pytest.raises(ConfigValidationError) as exc_info,
        ):
            MeasurementConfig.from_env()

        assert exc_info.value.key == key
        assert exc_info.value.stage == "config"
        assert exc_info.value.code == "CONFIG_VALIDATION_FAILED"

    def test_boundary_values_accepted(self) -> None:
        env = {"FEATURE_FETCH_MAX_RETRIES": "5", "FEATURE_FETCH_TIMEOUT_S": "0.1"}
        with patch.dict(os.environ, {**_clean_env(), **env}, clear=True):
            cfg = MeasurementConfig.from_env()
        assert cfg.fetch_max_retries == 5

    def test_error_message(self) -> None:
        err = ConfigValidationError("FALLBACK_MODE", "x", "must be one of ['heuristic', 'zero']")
        assert "FALLBACK_MODE='x'" in str(err)
        assert err.retryable is False


class TestFeatureCollectionLocation:
    """Resolution of the collection path."""

    def test_absolute_path_joined_to_base_url(self) -> None:
        cfg = MeasurementConfig(feature_base_url="http://localhost:3000/")
        assert cfg.feature_collection_location == (
            "http://localhost:3000/15_carbon_lulc_joined.geojson"
        )

    def test_base_url_with_prefix(self) -> None:
        cfg = MeasurementConfig(
            feature_base_url="https://cdn.example.org/static",
            feature_collection_path="/parcels.geojson",
        )
        assert cfg.feature_collection_location == "https://cdn.example.org/static/parcels.geojson"

    def test_full_url_used_as_is(self) -> None:
        cfg = MeasurementConfig(feature_collection_path="https://other.example/p.geojson")
        assert cfg.feature_collection_location == "https://other.example/p.geojson"

    def test_existing_file_used_as_is(self, sample_parcels_path: Path) -> None:
        cfg = MeasurementConfig(feature_collection_path=str(sample_parcels_path))
        assert cfg.feature_collection_location == str(sample_parcels_path)

    def test_relative_path_used_as_is(self) -> None:
        cfg = MeasurementConfig(feature_collection_path="data/parcels.geojson")
        assert cfg.feature_collection_location == "data/parcels.geojson"
