"""Session-scoped publish/subscribe channel.

Each ``MeasurementSession`` owns one ``SessionEvents`` instance;
presentation collaborators (metrics panels, map layers, verification
views) subscribe to it instead of registering callbacks on shared
process state.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("carbon_measure.session.events")

DEFAULT_MAX_HISTORY = 100


class SessionTopic(enum.Enum):
    """Topics published by a measurement session."""

    POLYGON_FINALIZED = "polygon_finalized"
    METRICS_UPDATED = "metrics_updated"
    METRICS_FAILED = "metrics_failed"
    METRICS_CLEARED = "metrics_cleared"
    RESULT_DISCARDED = "result_discarded"


@dataclass(frozen=True, slots=True)
class SessionEvent:
    """A message published on a session channel.

    Attributes:
        topic: The topic channel.
        session_id: Session that published the event.
        generation: Session generation token the event belongs to.
        payload: Event data (JSON-serialisable).
        timestamp: When the event was created (UTC).
    """

    topic: SessionTopic
    session_id: str = ""
    generation: int = 0
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Serialise the event to a dict."""
        return {
            "topic": self.topic.value,
            "session_id": self.session_id,
            "generation": self.generation,
            "payload": dict(self.payload),
            "timestamp": self.timestamp.isoformat(),
        }


class SessionEvents:
    """Publish/subscribe channel owned by a single session.

    Subscribers run synchronously in publish order. A subscriber that
    raises is logged and does not stop delivery to the others.
    """

    def __init__(self, *, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        self._subscribers: dict[SessionTopic, list[Callable[[SessionEvent], None]]] = {}
        self._history: list[SessionEvent] = []
        self._max_history = max_history

    def subscribe(
        self,
        topic: SessionTopic,
        callback: Callable[[SessionEvent], None],
    ) -> Callable[[], None]:
        """Register *callback* for *topic*.

        Returns:
            A function that removes the subscription when called.
        """
        self._subscribers.setdefault(topic, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(topic, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def subscriber_count(self, topic: SessionTopic) -> int:
        """Number of callbacks registered for *topic*."""
        return len(self._subscribers.get(topic, []))

    def publish(self, event: SessionEvent) -> None:
        """Deliver *event* to every subscriber of its topic."""
        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history.pop(0)

        for callback in list(self._subscribers.get(event.topic, [])):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Subscriber failed | topic=%s | session=%s | generation=%d",
                    event.topic.value,
                    event.session_id,
                    event.generation,
                )

    def history(self, topic: SessionTopic | None = None, limit: int = 100) -> list[SessionEvent]:
        """Return up to *limit* most recent events, optionally filtered by *topic*."""
        if limit <= 0:
            return []
        if topic is None:
            events = list(self._history)
        else:
            events = [e for e in self._history if e.topic is topic]
        return events[-limit:]

    def clear(self) -> None:
        """Remove all subscriptions and history."""
        self._subscribers.clear()
        self._history.clear()
