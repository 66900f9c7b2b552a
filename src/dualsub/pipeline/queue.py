"""Translation request queue with batching and a single worker.

Lines are enqueued as they appear on screen. ``process_queue`` drains
the backlog in batches of at most ``BATCH_MAXIMUM_SIZE``; only one
worker runs at a time and a second call while it is running returns
immediately.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable

from rich.console import Console

from dualsub.cache.translation_cache import TranslationCache, clean_translation
from dualsub.core.events import EventBus, TranslationResolved
from dualsub.core.models import SubtitleCue, TranslationStatus, TranslationUnit
from dualsub.pipeline.channel import ChannelClient
from dualsub.pipeline.state import TranslationStateStore
from dualsub.subtitles.cues import CueTimeline

console = Console()

BATCH_MAXIMUM_SIZE = 7
PRETRANSLATE_CHUNK_SIZE = 10
PRETRANSLATE_CHUNK_DELAY = 0.5  # seconds

RETRY_LATER = "Translation unavailable, will retry"

Sleep = Callable[[float], Awaitable[None]]


class TranslationQueue:
    def __init__(
        self,
        cache: TranslationCache,
        channel: ChannelClient,
        states: TranslationStateStore | None = None,
        events: EventBus | None = None,
        timeline: CueTimeline | None = None,
        batch_size: int = BATCH_MAXIMUM_SIZE,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.cache = cache
        self.channel = channel
        self.states = states if states is not None else TranslationStateStore()
        self.events = events if events is not None else EventBus()
        self.timeline = timeline if timeline is not None else CueTimeline()
        self.batch_size = max(1, min(batch_size, BATCH_MAXIMUM_SIZE))
        self.enabled = True
        self._sleep = sleep
        self._backlog: list[TranslationUnit] = []
        self._processing = False
        self._translating_all = False

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def backlog_size(self) -> int:
        return len(self._backlog)

    def enqueue(self, text: str) -> TranslationUnit:
        """Append a line to the backlog; duplicates are tolerated."""
        unit = TranslationUnit.from_text(text)
        self._backlog.append(unit)
        state = self.states.get(unit.normalized_key)
        if state is None or state.status != TranslationStatus.PENDING:
            self.states.mark_pending(unit.normalized_key)
        return unit

    async def process_queue(self) -> None:
        """Drain the backlog, one batch per iteration."""
        if self._processing or not self._backlog:
            return
        self._processing = True
        try:
            while self._backlog and self.enabled:
                batch = self._backlog[: self.batch_size]
                del self._backlog[: self.batch_size]
                await self._process_batch(batch)
        finally:
            self._processing = False

    async def _process_batch(self, batch: list[TranslationUnit]) -> None:
        units: list[TranslationUnit] = []
        seen: set[str] = set()
        for unit in batch:
            key = unit.normalized_key
            if key in seen:
                continue
            seen.add(key)
            cached = self.cache.get(key)
            if cached is not None:
                # Resolved by an earlier batch while this line waited.
                self._resolve_success(key, cached)
                continue
            units.append(unit)
        if not units:
            return

        texts = [clean_translation(unit.text) for unit in units]
        try:
            ok, payload = await self.channel.translate_batch(texts, self.cache.target_lang)
        except Exception as e:
            ok, payload = False, str(e) or type(e).__name__

        if not ok:
            console.print(f"[yellow]Translation failed:[/yellow] {payload}")
            for unit in units:
                self._resolve_failure(unit.normalized_key, str(payload))
            return

        values = list(payload) if isinstance(payload, (list, tuple)) else []
        translated: dict[str, str] = {}
        for index, unit in enumerate(units):
            value = values[index] if index < len(values) else None
            if value is None or not str(value).strip():
                self._resolve_retry_later(unit.normalized_key)
                continue
            translated[unit.normalized_key] = clean_translation(str(value))

        self.cache.put_translations(translated)
        for key, text in translated.items():
            self._resolve_success(key, text)

    async def translate_all(self, cues: Iterable[SubtitleCue]) -> int:
        """Pre-translate a whole track in contextual chunks.

        Records the cues in the timeline, skips lines already cached or
        known to have failed, and returns the number of lines translated.
        """
        if self._translating_all:
            return 0
        self._translating_all = True
        try:
            cues = list(cues)
            self.timeline.add_all(cues)

            pending: list[TranslationUnit] = []
            seen: set[str] = set()
            for cue in cues:
                unit = TranslationUnit.from_text(cue.text)
                key = unit.normalized_key
                if not key or key in seen:
                    continue
                seen.add(key)
                if self.states.is_failed(key) or self.cache.get(key) is not None:
                    continue
                pending.append(unit)

            if not pending:
                return 0
            console.print(f"[bold]Pre-translating {len(pending)} subtitle lines...[/bold]")

            done = 0
            for start in range(0, len(pending), PRETRANSLATE_CHUNK_SIZE):
                if not self.enabled:
                    break
                if start > 0:
                    await self._sleep(PRETRANSLATE_CHUNK_DELAY)
                chunk = pending[start : start + PRETRANSLATE_CHUNK_SIZE]
                done += await self._translate_chunk(chunk)

            console.print(f"[green]Pre-translation complete:[/green] {done}/{len(pending)} lines")
            return done
        finally:
            self._translating_all = False

    async def _translate_chunk(self, chunk: list[TranslationUnit]) -> int:
        texts = [clean_translation(unit.text) for unit in chunk]
        ok, payload = await self.channel.translate_batch_with_context(
            texts, self.cache.target_lang, True
        )
        if not ok:
            console.print(f"[yellow]Pre-translation chunk failed:[/yellow] {payload}")
            return 0

        values = list(payload) if isinstance(payload, (list, tuple)) else []
        translated = {
            unit.normalized_key: clean_translation(str(value))
            for unit, value in zip(chunk, values)
            if value is not None and str(value).strip()
        }
        self.cache.put_translations(translated)
        for key, text in translated.items():
            self._resolve_success(key, text)
        return len(translated)

    def _resolve_success(self, key: str, text: str) -> None:
        self.states.mark_success(key, text)
        self.events.publish(TranslationResolved(key, TranslationStatus.SUCCESS, text=text))

    def _resolve_failure(self, key: str, error: str) -> None:
        self.states.mark_failed(key, error)
        self.events.publish(TranslationResolved(key, TranslationStatus.FAILED, error=error))

    def _resolve_retry_later(self, key: str) -> None:
        self.states.mark_retry_later(key, RETRY_LATER)
        self.events.publish(
            TranslationResolved(key, TranslationStatus.RETRY_LATER, error=RETRY_LATER)
        )
