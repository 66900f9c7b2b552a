"""Per-key translation state as seen by the renderer."""

from __future__ import annotations

import time
from typing import Callable

from dualsub.core.models import SubtitleState, TranslationStatus


class TranslationStateStore:
    """Tracks the translation status of each normalized key.

    A failed key carries ``next_retry_at``; until then the renderer shows
    the original text instead of enqueueing the line again.
    """

    def __init__(self, retry_cooldown: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.retry_cooldown = retry_cooldown
        self._clock = clock
        self._states: dict[str, SubtitleState] = {}

    def get(self, key: str) -> SubtitleState | None:
        return self._states.get(key)

    def mark_pending(self, key: str) -> SubtitleState:
        state = SubtitleState(status=TranslationStatus.PENDING)
        self._states[key] = state
        return state

    def mark_success(self, key: str, text: str) -> SubtitleState:
        state = SubtitleState(status=TranslationStatus.SUCCESS, text=text)
        self._states[key] = state
        return state

    def mark_failed(self, key: str, error: str) -> SubtitleState:
        state = SubtitleState(
            status=TranslationStatus.FAILED,
            error=error,
            next_retry_at=self._clock() + self.retry_cooldown,
        )
        self._states[key] = state
        return state

    def mark_retry_later(self, key: str, error: str) -> SubtitleState:
        """Leave the key untranslated without a cooldown so the next render asks again."""
        state = SubtitleState(status=TranslationStatus.RETRY_LATER, error=error)
        self._states[key] = state
        return state

    def is_failed(self, key: str) -> bool:
        state = self._states.get(key)
        return state is not None and state.status == TranslationStatus.FAILED

    def in_cooldown(self, key: str) -> bool:
        state = self._states.get(key)
        if state is None or state.status != TranslationStatus.FAILED:
            return False
        return state.next_retry_at is not None and self._clock() < state.next_retry_at

    def clear(self) -> None:
        self._states.clear()

    def __len__(self) -> int:
        return len(self._states)
