"""Subtitle change detection and dual-line rendering.

Each content change is reduced to the text of the native subtitle
container. When it differs from what is on screen the overlay is
rebuilt: the original line always, and a translated line taken from the
cache, from a failed state's fallback, or a placeholder that is filled
in when the queue resolves the key.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Coroutine, Protocol

from dualsub.cache.translation_cache import TranslationCache
from dualsub.core.events import EventBus, TranslationResolved
from dualsub.core.languages import is_same_language
from dualsub.core.models import SubtitleCue, TranslationStatus, normalize_key
from dualsub.pipeline.queue import TranslationQueue
from dualsub.pipeline.state import TranslationStateStore
from dualsub.subtitles.content import ContainerResolver, ContentChange, TextExtractor, extract_text
from dualsub.subtitles.cues import resolve_displayed_end_time

PLACEHOLDER = "Translating..."
RECENT_LINES_MAX = 10
CONTEXT_LINES = 2


class DetectorState(str, Enum):
    IDLE = "idle"
    EXTRACTED_UNCHANGED = "extracted_unchanged"
    EXTRACTED_CHANGED = "extracted_changed"


class SpanKind(str, Enum):
    TRANSLATED = "translated"
    PLACEHOLDER = "placeholder"
    FALLBACK = "fallback"  # original text, dimmed, with an error hint


@dataclass
class TranslationSpan:
    """The translated line of the overlay for one normalized key."""

    key: str
    original: str
    text: str
    kind: SpanKind
    error: str | None = None
    attached: bool = True


class Renderer(Protocol):
    def clear(self) -> None: ...

    def show(self, original: str, translation: TranslationSpan | None) -> None: ...

    def update(self, span: TranslationSpan) -> None: ...


class AutoPauseSink(Protocol):
    def set_end_time(self, end_time: float | None) -> None: ...

    def schedule(self) -> None: ...


class RecentLines:
    """The last few distinct subtitle lines, used as word-lookup context."""

    def __init__(self, maxlen: int = RECENT_LINES_MAX) -> None:
        self._lines: deque[str] = deque(maxlen=maxlen)

    def add(self, line: str) -> None:
        if line and (not self._lines or self._lines[-1] != line):
            self._lines.append(line)

    def context_for(self, line: str) -> tuple[list[str], list[str]]:
        """Up to two lines before and two after the most recent occurrence of ``line``."""
        lines = list(self._lines)
        try:
            index = len(lines) - 1 - lines[::-1].index(line)
        except ValueError:
            return lines[-CONTEXT_LINES:], []
        before = lines[max(0, index - CONTEXT_LINES) : index]
        after = lines[index + 1 : index + 1 + CONTEXT_LINES]
        return before, after

    def __len__(self) -> int:
        return len(self._lines)


class PendingSpans:
    """Placeholder spans awaiting a resolved event, grouped by key."""

    def __init__(self) -> None:
        self._spans: dict[str, list[TranslationSpan]] = {}

    def track(self, span: TranslationSpan) -> None:
        self._spans.setdefault(span.key, []).append(span)

    def pop(self, key: str) -> list[TranslationSpan]:
        return self._spans.pop(key, [])

    def detach_all(self) -> None:
        for spans in self._spans.values():
            for span in spans:
                span.attached = False
        self._spans.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._spans

    def __len__(self) -> int:
        return sum(len(spans) for spans in self._spans.values())


class SubtitleChangeDetector:
    """Turns content changes into overlay renders and translation requests.

    Args:
        resolver: Locates the native subtitle container.
        cache: Translation lookups.
        queue: Receives cache misses.
        renderer: Draws the overlay.
        settings: Returns ``(enabled, source_lang, target_lang)``.
        active_cues: Returns the cues active at the current position.
        autopause: Receives the displayed subtitle's end time.
        extractor: Container-to-text strategy.
        spawn: Schedules the queue worker in the background.
    """

    def __init__(
        self,
        resolver: ContainerResolver,
        cache: TranslationCache,
        queue: TranslationQueue,
        renderer: Renderer,
        settings: Callable[[], tuple[bool, str, str]],
        active_cues: Callable[[], list[SubtitleCue]] = list,
        autopause: AutoPauseSink | None = None,
        extractor: TextExtractor = extract_text,
        spawn: Callable[[Coroutine], object] | None = None,
    ) -> None:
        self.resolver = resolver
        self.cache = cache
        self.queue = queue
        self.renderer = renderer
        self.settings = settings
        self.active_cues = active_cues
        self.autopause = autopause
        self.extractor = extractor
        self.state = DetectorState.IDLE
        self.displayed_text = ""
        self.recent = RecentLines()
        self.pending = PendingSpans()
        self._spawn = spawn if spawn is not None else self._create_task
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribe = self.events.subscribe(self.on_resolved)

    @property
    def states(self) -> TranslationStateStore:
        return self.queue.states

    @property
    def events(self) -> EventBus:
        return self.queue.events

    def close(self) -> None:
        self._unsubscribe()
        for task in list(self._tasks):
            task.cancel()

    def handle_change(self, change: ContentChange | None = None) -> DetectorState:
        container = self.resolver.resolve()
        if container is None:
            self.state = DetectorState.IDLE
            return self.state

        text = self.extractor(container)
        if text == self.displayed_text and text:
            self.state = DetectorState.EXTRACTED_UNCHANGED
            return self.state

        self.state = DetectorState.EXTRACTED_CHANGED
        self.displayed_text = text
        self.renderer.clear()
        self.pending.detach_all()

        if not text:
            if self.autopause is not None:
                self.autopause.set_end_time(None)
            return self.state

        self.recent.add(text)
        self.renderer.show(text, self._translation_span(text))
        self._sync_autopause(text)
        return self.state

    def on_resolved(self, event: TranslationResolved) -> None:
        """Fill in every still-attached placeholder for the resolved key."""
        for span in self.pending.pop(event.key):
            if not span.attached:
                continue
            if event.status == TranslationStatus.SUCCESS and event.text:
                span.text = event.text
                span.kind = SpanKind.TRANSLATED
                span.error = None
            else:
                span.text = span.original
                span.kind = SpanKind.FALLBACK
                span.error = event.error
            self.renderer.update(span)

    def word_context(self, line: str) -> tuple[list[str], list[str]]:
        return self.recent.context_for(line)

    def _translation_span(self, text: str) -> TranslationSpan | None:
        enabled, source_lang, target_lang = self.settings()
        if not enabled or is_same_language(source_lang, target_lang):
            return None

        key = normalize_key(text)
        cached = self.cache.get(key)
        if cached is not None:
            return TranslationSpan(key, text, cached, SpanKind.TRANSLATED)

        if self.states.in_cooldown(key):
            state = self.states.get(key)
            return TranslationSpan(key, text, text, SpanKind.FALLBACK, error=state.error)

        span = TranslationSpan(key, text, PLACEHOLDER, SpanKind.PLACEHOLDER)
        self.pending.track(span)
        self.queue.enqueue(text)
        self._spawn(self.queue.process_queue())
        return span

    def _sync_autopause(self, text: str) -> None:
        if self.autopause is None:
            return
        end_time = resolve_displayed_end_time(text, self.active_cues())
        self.autopause.set_end_time(end_time)
        if end_time is not None:
            self.autopause.schedule()

    def _create_task(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
