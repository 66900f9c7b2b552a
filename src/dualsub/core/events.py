"""Translation event system for decoupled re-rendering.

The queue publishes a ``TranslationResolved`` event whenever the state of
a normalized key changes. Renderers subscribe and update any on-screen
placeholder for that key without waiting for another content change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from dualsub.core.models import TranslationStatus


@dataclass
class TranslationResolved:
    """A normalized key reached a terminal state for this round-trip.

    Attributes:
        key: Normalized subtitle key.
        status: ``success`` or ``failed``.
        text: Translated text on success.
        error: Failure reason on failure.
    """

    key: str
    status: TranslationStatus
    text: str | None = None
    error: str | None = None


EventCallback = Callable[[TranslationResolved], None]


class EventBus:
    """Synchronous publish/subscribe fan-out."""

    def __init__(self) -> None:
        self._subscribers: list[EventCallback] = []

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register a callback and return a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: TranslationResolved) -> None:
        for callback in list(self._subscribers):
            callback(event)
