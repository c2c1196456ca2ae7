"""Measurement session: owns per-user state for one drawing session.

A session holds the parcel loader (and therefore the cached
collection), the finalized polygons, the current measurement slot and
the session's event channel.

Every finalized polygon takes a new generation token before awaiting
the collection. When the await resumes, the result is committed only
if that token is still the latest; otherwise it is discarded. A slow
aggregation for an earlier polygon therefore cannot overwrite the
result of a later one, and ``clear_drawings`` cannot be undone by an
aggregation that was already in flight.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import TYPE_CHECKING

from carbon_measure.core.constants import FALLBACK_MODE_ZERO, MIN_POLYGON_VERTICES
from carbon_measure.engine.loader import FeatureIndexLoader, LoadError
from carbon_measure.engine.measure import measure_polygon
from carbon_measure.session.events import SessionEvent, SessionEvents, SessionTopic

if TYPE_CHECKING:
    import httpx

    from carbon_measure.core.config import MeasurementConfig
    from carbon_measure.models.metrics import CarbonMetrics, Measurement

logger = logging.getLogger("carbon_measure.session.session")

Point = tuple[float, float]


class MeasurementSession:
    """Session-scoped measurement state.

    Args:
        loader: Loader for the parcel collection (cached per session).
        fallback_mode: Area-only fallback mode (``"zero"`` or ``"heuristic"``).
        events: Event channel; a fresh one is created when omitted.
        session_id: Identifier attached to published events.
    """

    def __init__(
        self,
        loader: FeatureIndexLoader,
        *,
        fallback_mode: str = FALLBACK_MODE_ZERO,
        events: SessionEvents | None = None,
        session_id: str = "",
    ) -> None:
        self._loader = loader
        self._fallback_mode = fallback_mode
        self._events = events if events is not None else SessionEvents()
        self._session_id = session_id or uuid.uuid4().hex
        self._generation = 0
        self._polygons: list[tuple[Point, ...]] = []
        self._current: Measurement | None = None

    @classmethod
    def from_config(
        cls,
        config: MeasurementConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        session_id: str = "",
    ) -> MeasurementSession:
        """Build a session (and its loader) from configuration."""
        return cls(
            FeatureIndexLoader.from_config(config, transport=transport),
            fallback_mode=config.fallback_mode,
            session_id=session_id,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def events(self) -> SessionEvents:
        return self._events

    @property
    def generation(self) -> int:
        """Latest generation token issued by this session."""
        return self._generation

    @property
    def current(self) -> Measurement | None:
        """Measurement of the latest committed polygon, if any."""
        return self._current

    @property
    def current_metrics(self) -> CarbonMetrics | None:
        """Metrics of the latest committed polygon, if any."""
        return self._current.metrics if self._current is not None else None

    @property
    def polygons(self) -> tuple[tuple[Point, ...], ...]:
        """All polygons finalized since the last clear."""
        return tuple(self._polygons)

    @property
    def drawn_area(self) -> tuple[Point, ...] | None:
        """The most recently finalized polygon."""
        return self._polygons[-1] if self._polygons else None

    # ------------------------------------------------------------------
    # Events from the drawing UI
    # ------------------------------------------------------------------

    async def finalize_polygon(self, polygon: Sequence[Sequence[float]]) -> Measurement | None:
        """Measure a newly finalized polygon and commit the result.

        Polygons with fewer than three vertices are ignored.

        Returns:
            The committed measurement, or ``None`` when the polygon was
            ignored or its result went stale before it completed.

        Raises:
            LoadError: If the parcel collection cannot be loaded and
                this polygon is still the latest one.
        """
        if len(polygon) < MIN_POLYGON_VERTICES:
            logger.debug(
                "Polygon ignored | session=%s | vertices=%d",
                self._session_id,
                len(polygon),
            )
            return None

        points = tuple((float(p[0]), float(p[1])) for p in polygon)
        self._polygons.append(points)
        self._generation += 1
        token = self._generation
        self._publish(
            SessionTopic.POLYGON_FINALIZED,
            token,
            {"polygon": [list(p) for p in points]},
        )

        try:
            measurement = await measure_polygon(
                points, self._loader, fallback_mode=self._fallback_mode
            )
        except LoadError as exc:
            if token != self._generation:
                self._discard(token, reason=exc.code)
                return None
            self._current = None
            logger.error(
                "Metrics unavailable | session=%s | generation=%d | error=%s",
                self._session_id,
                token,
                exc,
            )
            self._publish(SessionTopic.METRICS_FAILED, token, {"error": exc.to_error_dict()})
            raise

        if token != self._generation:
            self._discard(token, reason="superseded")
            return None

        self._current = measurement
        self._publish(SessionTopic.METRICS_UPDATED, token, measurement.to_dict())
        return measurement

    def clear_drawings(self) -> None:
        """Discard all polygons and the current metrics without recomputing."""
        self._generation += 1
        self._polygons.clear()
        self._current = None
        self._publish(SessionTopic.METRICS_CLEARED, self._generation, {})

    def close(self) -> None:
        """End the session: drop the cached collection and subscriptions."""
        self._generation += 1
        self._current = None
        self._polygons.clear()
        self._loader.invalidate()
        self._events.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _discard(self, token: int, *, reason: str) -> None:
        logger.info(
            "Stale result discarded | session=%s | generation=%d | latest=%d | reason=%s",
            self._session_id,
            token,
            self._generation,
            reason,
        )
        self._publish(SessionTopic.RESULT_DISCARDED, token, {"reason": reason})

    def _publish(self, topic: SessionTopic, generation: int, payload: dict[str, object]) -> None:
        self._events.publish(
            SessionEvent(
                topic=topic,
                session_id=self._session_id,
                generation=generation,
                payload=payload,
            )
        )
