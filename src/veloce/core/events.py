# src/veloce/core/events.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    field: str
    value: Any = None


ChangeListener = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """
    Explicit state-change broadcaster.

    Owners call emit() after every mutation; front-ends subscribe and redraw.
    A listener that raises is logged and skipped, delivery continues.
    """

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, field: str, value: Any = None) -> None:
        event = ChangeEvent(field=field, value=value)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Change listener failed field=%s", field)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class LoggingFeedback:
    """Default FeedbackSink: no device, cues only go to the debug log."""

    def signal(self, name: str) -> None:
        logger.debug("feedback cue=%s", name)
