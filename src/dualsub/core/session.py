"""Session wiring: one context object per playback session.

A ``DualSubSession`` owns the router, channel, cache, queue, detector
and auto-pause scheduler for one work, and keeps them in step with the
``ConfigStore``. Nothing here is module-global, so several sessions can
run side by side.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import httpx
from rich.console import Console

from dualsub.cache.store import CacheStore
from dualsub.cache.translation_cache import TranslationCache
from dualsub.core.config import ConfigStore, DualSubConfig
from dualsub.core.events import EventBus
from dualsub.core.models import SubtitleCue
from dualsub.pipeline.channel import ChannelClient, LocalChannel
from dualsub.pipeline.queue import TranslationQueue
from dualsub.pipeline.state import TranslationStateStore
from dualsub.pipeline.words import WordLookup, WordLookupResult
from dualsub.player.autopause import AutoPauseScheduler, Player
from dualsub.providers.router import ProviderRouter
from dualsub.subtitles.content import ContainerResolver, ContentChange, ContentNode
from dualsub.subtitles.cues import CueTimeline
from dualsub.subtitles.detector import Renderer, SubtitleChangeDetector

console = Console()

Sleep = Callable[[float], Awaitable[None]]


class DualSubSession:
    """Explicit context object for the translation pipeline.

    Args:
        store: Live configuration.
        cache_store: Durable store; ``None`` keeps the cache in memory.
        player: Playback clock and controls; enables auto-pause.
        renderer: Overlay renderer; enables change detection.
        root: Returns the root of the content tree the detector observes.
        own_container: The overlay's own container, skipped when resolving.
        http_client: Shared HTTP client for Google, DeepL and Wiktionary.
        timeline: Cue timeline shared with the player.
        sleep: Awaitable sleep used for pacing and retries.
    """

    def __init__(
        self,
        store: ConfigStore,
        cache_store: CacheStore | None = None,
        player: Player | None = None,
        renderer: Renderer | None = None,
        root: Callable[[], ContentNode | None] | None = None,
        own_container: ContentNode | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeline: CueTimeline | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.store = store
        config = store.current
        self._owns_client = http_client is None
        self.http_client = http_client if http_client is not None else httpx.AsyncClient()

        self.router = ProviderRouter(config.providers.snapshot(), self.http_client, sleep=sleep)
        self.channel = LocalChannel(self.router)
        self.client = ChannelClient(self.channel, sleep=sleep)
        self.events = EventBus()
        self.states = TranslationStateStore(config.translation.retry_cooldown)
        self.timeline = timeline if timeline is not None else CueTimeline()
        self.cache = TranslationCache(
            cache_store,
            source_lang=config.translation.source_language,
            target_lang=config.translation.target_language,
        )
        self.queue = TranslationQueue(
            self.cache,
            self.client,
            states=self.states,
            events=self.events,
            timeline=self.timeline,
            batch_size=config.translation.batch_size,
            sleep=sleep,
        )
        self.queue.enabled = config.translation.enabled
        self.words = WordLookup(self.cache, self.client, self.http_client)

        self.player = player
        self.scheduler: AutoPauseScheduler | None = None
        if player is not None:
            self.scheduler = AutoPauseScheduler(
                player,
                enabled=config.autopause.enabled,
                lead=config.autopause.lead,
                lookup_retries=config.autopause.lookup_retries,
                lookup_retry_delay=config.autopause.lookup_retry_delay,
                sleep=sleep,
            )

        self.detector: SubtitleChangeDetector | None = None
        if renderer is not None and root is not None:
            self.detector = SubtitleChangeDetector(
                ContainerResolver(root, own_container=own_container),
                self.cache,
                self.queue,
                renderer,
                settings=self._translation_settings,
                active_cues=self._active_cues,
                autopause=self.scheduler,
            )

        store.subscribe(self._on_config_change)

    @property
    def config(self) -> DualSubConfig:
        return self.store.current

    def open_work(self, work_identity: str) -> int:
        """Enter a work scope and run the retention sweep."""
        cache_config = self.config.cache
        evicted = self.cache.evict_older_than(cache_config.subtitle_retention_days)
        words = self.cache.evict_words_older_than(cache_config.word_retention_days)
        if evicted or words:
            console.print(f"[dim]Evicted {evicted} stale works and {words} stale words[/dim]")
        return self.cache.load_work(work_identity)

    def handle_content_change(self, change: ContentChange | None = None) -> None:
        if self.detector is not None:
            self.detector.handle_change(change)

    async def translate_all(self, cues: list[SubtitleCue]) -> int:
        return await self.queue.translate_all(cues)

    async def lookup_word(self, word: str, line: str = "") -> WordLookupResult:
        before: list[str] = []
        after: list[str] = []
        if self.detector is not None and line:
            before, after = self.detector.word_context(line)
        return await self.words.lookup(word, line, before, after)

    # autopause hooks, safe to call without a player
    def on_play(self) -> None:
        if self.scheduler is not None:
            self.scheduler.on_play()

    def on_pause(self) -> None:
        if self.scheduler is not None:
            self.scheduler.on_pause()

    def on_seeked(self) -> None:
        if self.scheduler is not None:
            self.scheduler.on_seeked()

    def on_rate_change(self) -> None:
        if self.scheduler is not None:
            self.scheduler.on_rate_change()

    async def aclose(self) -> None:
        if self.scheduler is not None:
            self.scheduler.cancel()
        if self.detector is not None:
            self.detector.close()
        self.channel.close()
        if self._owns_client:
            await self.http_client.aclose()

    def _translation_settings(self) -> tuple[bool, str, str]:
        translation = self.config.translation
        return translation.enabled, translation.source_language, translation.target_language

    def _active_cues(self) -> list[SubtitleCue]:
        if self.player is not None:
            return self.player.active_cues()
        return []

    def _on_config_change(self, old: DualSubConfig, new: DualSubConfig) -> None:
        if old.providers != new.providers:
            self.router.reload(new.providers.snapshot())

        if old.translation.target_language != new.translation.target_language:
            self.cache.set_target_language(new.translation.target_language)
            self.states.clear()
        if old.translation.source_language != new.translation.source_language:
            self.cache.source_lang = new.translation.source_language
            self.cache.clear_subtitles()
        self.states.retry_cooldown = new.translation.retry_cooldown
        self.queue.enabled = new.translation.enabled

        if self.scheduler is not None and old.autopause.enabled != new.autopause.enabled:
            self.scheduler.set_enabled(new.autopause.enabled)
