"""FeatureIndex loader for the static parcel collection.

Fetches the joined carbon / land-use GeoJSON once, parses it into a
``ParcelCollection`` and caches it for the lifetime of the loader
(one session). Concurrent ``load()`` calls share a single fetch.

Locations:
    - ``http://`` / ``https://`` URLs are fetched with ``httpx``.
    - ``file://`` URLs and plain filesystem paths are read from disk.

Failures (non-2xx status, transport error, non-JSON body, ``NaN`` or
``Infinity`` literals, wrong document shape) raise ``LoadError``. No substitute data is returned.
Transport errors and 5xx responses are retried up to ``max_retries``
extra times; 4xx responses and parse failures are not.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlparse

import httpx

from carbon_measure.core.constants import (
    DEFAULT_EARLIER_STOCK_FIELD,
    DEFAULT_LATER_STOCK_FIELD,
)
from carbon_measure.core.exceptions import MeasurementError
from carbon_measure.models.parcel import ParcelCollection

if TYPE_CHECKING:
    from carbon_measure.core.config import MeasurementConfig

logger = logging.getLogger("carbon_measure.engine.loader")

DEFAULT_TIMEOUT_S = 30.0


def _reject_constant(name: str) -> float:
    msg = f"non-finite number literal {name!r}"
    raise ValueError(msg)


class LoadError(MeasurementError):
    """Raised when the parcel collection cannot be fetched or parsed.

    Attributes:
        location: The resource location that failed.
        status_code: HTTP status code, or ``None`` for non-HTTP failures.
    """

    default_stage = "load_features"
    default_code = "FEATURE_LOAD_FAILED"

    def __init__(
        self,
        message: str,
        *,
        location: str = "",
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        self.location = location
        self.status_code = status_code
        super().__init__(message, retryable=retryable)


class FeatureIndexLoader:
    """Loads and caches the parcel collection for one session.

    Args:
        location: URL or filesystem path of the GeoJSON document.
        timeout_s: HTTP timeout in seconds.
        max_retries: Extra attempts for retryable failures.
        earlier_field: Property name of the earlier-year carbon stock.
        later_field: Property name of the later-year carbon stock.
        transport: Optional ``httpx`` transport (tests inject
            ``httpx.MockTransport``).
    """

    def __init__(
        self,
        location: str,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_retries: int = 0,
        earlier_field: str = DEFAULT_EARLIER_STOCK_FIELD,
        later_field: str = DEFAULT_LATER_STOCK_FIELD,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._location = location
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._earlier_field = earlier_field
        self._later_field = later_field
        self._transport = transport
        self._collection: ParcelCollection | None = None
        self._lock = asyncio.Lock()
        self._fetch_count = 0
        self._epoch = 0

    @classmethod
    def from_config(
        cls,
        config: MeasurementConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> FeatureIndexLoader:
        """Build a loader from a ``MeasurementConfig``."""
        return cls(
            config.feature_collection_location,
            timeout_s=config.fetch_timeout_s,
            max_retries=config.fetch_max_retries,
            earlier_field=config.earlier_stock_field,
            later_field=config.later_stock_field,
            transport=transport,
        )

    @property
    def location(self) -> str:
        """The resource location this loader reads."""
        return self._location

    @property
    def is_loaded(self) -> bool:
        """Whether a collection is cached."""
        return self._collection is not None

    @property
    def fetch_count(self) -> int:
        """Number of completed fetch attempts (including failures)."""
        return self._fetch_count

    async def load(self) -> ParcelCollection:
        """Return the cached collection, fetching it on first use.

        Raises:
            LoadError: If the document cannot be fetched or parsed.
        """
        if self._collection is not None:
            return self._collection

        async with self._lock:
            if self._collection is not None:
                return self._collection

            epoch = self._epoch
            document = await self._fetch_with_retry()
            collection = self._parse(document)
            logger.info(
                "Feature collection loaded | location=%s | parcels=%d",
                self._location,
                len(collection),
            )
            if epoch == self._epoch:
                self._collection = collection
            else:
                logger.debug(
                    "Loader invalidated during fetch; not caching | location=%s",
                    self._location,
                )
            return collection

    def invalidate(self) -> None:
        """Drop the cached collection (session end).

        A fetch already in flight still returns its collection to its
        caller but does not repopulate the cache.
        """
        self._epoch += 1
        self._collection = None

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _fetch_with_retry(self) -> Any:
        attempt = 0
        while True:
            try:
                return await self._fetch()
            except LoadError as exc:
                if not exc.retryable:
                    raise
                if attempt >= self._max_retries:
                    logger.error(
                        "Feature fetch retries exhausted | location=%s | attempts=%d | error=%s",
                        self._location,
                        attempt + 1,
                        exc,
                    )
                    raise
                attempt += 1
                logger.warning(
                    "Feature fetch attempt %d/%d failed (retryable) | location=%s | error=%s",
                    attempt,
                    self._max_retries + 1,
                    self._location,
                    exc,
                )

    async def _fetch(self) -> Any:
        self._fetch_count += 1
        scheme = urlparse(self._location).scheme
        if scheme in ("http", "https"):
            return await self._fetch_http()
        return await self._read_file()

    async def _fetch_http(self) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(self._location)
        except httpx.HTTPError as exc:
            msg = f"Failed to fetch feature collection: {exc}"
            raise LoadError(msg, location=self._location, retryable=True) from exc

        if not response.is_success:
            msg = f"Feature collection request returned HTTP {response.status_code}"
            raise LoadError(
                msg,
                location=self._location,
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        try:
            return response.json(parse_constant=_reject_constant)
        except ValueError as exc:
            msg = f"Feature collection is not valid JSON: {exc}"
            raise LoadError(msg, location=self._location, status_code=response.status_code) from exc

    async def _read_file(self) -> Any:
        parsed = urlparse(self._location)
        path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(self._location)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as exc:
            msg = f"Failed to read feature collection: {exc}"
            raise LoadError(msg, location=self._location) from exc

        try:
            return json.loads(text, parse_constant=_reject_constant)
        except ValueError as exc:
            msg = f"Feature collection is not valid JSON: {exc}"
            raise LoadError(msg, location=self._location) from exc

    def _parse(self, document: Any) -> ParcelCollection:
        try:
            return ParcelCollection.from_geojson(
                document,
                source=self._location,
                earlier_field=self._earlier_field,
                later_field=self._later_field,
            )
        except ValueError as exc:
            msg = f"Unexpected feature collection structure: {exc}"
            raise LoadError(msg, location=self._location) from exc
