"""Measurement configuration loaded from environment variables.

All configuration values have defaults that match the bundled static
feature collection. Azure Functions app settings (or
``local.settings.json`` for local dev) are the source of truth.

``from_env()`` raises ``ConfigValidationError`` if any value is out of
its valid range, so bad configuration is caught at startup rather than
on the first polygon.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urljoin

from carbon_measure.core.constants import (
    DEFAULT_EARLIER_STOCK_FIELD,
    DEFAULT_FEATURE_BASE_URL,
    DEFAULT_FEATURE_COLLECTION_PATH,
    DEFAULT_LATER_STOCK_FIELD,
    FALLBACK_MODE_ZERO,
    FALLBACK_MODES,
)
from carbon_measure.core.exceptions import ValidationError

MAX_FETCH_RETRIES = 5


class ConfigValidationError(ValidationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        self.message = message
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class MeasurementConfig:
    """Immutable measurement configuration.

    Attributes:
        feature_base_url: Base URL the collection path is resolved against.
        feature_collection_path: Path (or absolute URL / filesystem path)
            of the parcel GeoJSON document.
        fetch_timeout_s: HTTP timeout for the collection fetch in seconds.
        fetch_max_retries: Extra attempts for transport errors and 5xx
            responses (``0`` = single attempt).
        earlier_stock_field: Property name of the earlier-year carbon stock.
        later_stock_field: Property name of the later-year carbon stock.
        fallback_mode: ``"zero"`` or ``"heuristic"`` area-only fallback.
    """

    feature_base_url: str = DEFAULT_FEATURE_BASE_URL
    feature_collection_path: str = DEFAULT_FEATURE_COLLECTION_PATH
    fetch_timeout_s: float = 30.0
    fetch_max_retries: int = 0
    earlier_stock_field: str = DEFAULT_EARLIER_STOCK_FIELD
    later_stock_field: str = DEFAULT_LATER_STOCK_FIELD
    fallback_mode: str = FALLBACK_MODE_ZERO

    @property
    def feature_collection_location(self) -> str:
        """Resolved location of the feature collection.

        Absolute URLs and filesystem paths that exist locally are used
        as-is; anything else is joined onto ``feature_base_url``.
        """
        path = self.feature_collection_path
        if "://" in path:
            return path
        if not path.startswith("/") or os.path.exists(path):
            return path
        return urljoin(self.feature_base_url.rstrip("/") + "/", path.lstrip("/"))

    @classmethod
    def from_env(cls) -> MeasurementConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a
                required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``FEATURE_FETCH_TIMEOUT_S=abc``).
        """
        config = cls(
            feature_base_url=os.getenv("FEATURE_BASE_URL", DEFAULT_FEATURE_BASE_URL),
            feature_collection_path=os.getenv(
                "FEATURE_COLLECTION_PATH", DEFAULT_FEATURE_COLLECTION_PATH
            ),
            fetch_timeout_s=float(os.getenv("FEATURE_FETCH_TIMEOUT_S", "30")),
            fetch_max_retries=int(os.getenv("FEATURE_FETCH_MAX_RETRIES", "0")),
            earlier_stock_field=os.getenv("EARLIER_STOCK_FIELD", DEFAULT_EARLIER_STOCK_FIELD),
            later_stock_field=os.getenv("LATER_STOCK_FIELD", DEFAULT_LATER_STOCK_FIELD),
            fallback_mode=os.getenv("FALLBACK_MODE", FALLBACK_MODE_ZERO).strip().lower(),
        )
        _validate(config)
        return config


def _validate(config: MeasurementConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.fetch_timeout_s <= 0:
        raise ConfigValidationError(
            "FEATURE_FETCH_TIMEOUT_S",
            config.fetch_timeout_s,
            "must be > 0 (seconds)",
        )

    if not 0 <= config.fetch_max_retries <= MAX_FETCH_RETRIES:
        raise ConfigValidationError(
            "FEATURE_FETCH_MAX_RETRIES",
            config.fetch_max_retries,
            f"must be between 0 and {MAX_FETCH_RETRIES}",
        )

    if not config.feature_collection_path:
        raise ConfigValidationError(
            "FEATURE_COLLECTION_PATH",
            config.feature_collection_path,
            "must not be empty",
        )

    if not config.earlier_stock_field:
        raise ConfigValidationError(
            "EARLIER_STOCK_FIELD",
            config.earlier_stock_field,
            "must not be empty",
        )

    if not config.later_stock_field:
        raise ConfigValidationError(
            "LATER_STOCK_FIELD",
            config.later_stock_field,
            "must not be empty",
        )

    if config.earlier_stock_field == config.later_stock_field:
        raise ConfigValidationError(
            "LATER_STOCK_FIELD",
            config.later_stock_field,
            "must differ from EARLIER_STOCK_FIELD",
        )

    if config.fallback_mode not in FALLBACK_MODES:
        raise ConfigValidationError(
            "FALLBACK_MODE",
            config.fallback_mode,
            f"must be one of {sorted(FALLBACK_MODES)}",
        )
