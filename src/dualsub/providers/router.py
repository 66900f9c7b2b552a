"""Provider router: dispatches translation calls to the active adapter.

The router holds one immutable ``ProviderConfig`` snapshot. ``reload``
swaps it wholesale; a call that has already started keeps the snapshot
it read on entry.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable

import httpx
from rich.console import Console

from dualsub.core.config import ProviderConfig
from dualsub.core.errors import ErrorKind
from dualsub.core.models import Failure, Success, TranslationResult
from dualsub.providers.deepl import translate_deepl
from dualsub.providers.google import translate_google
from dualsub.providers.llm import LLM_PROVIDERS, translate_llm, translate_word_llm

console = Console()

MAX_ATTEMPTS = 3
BACKOFF_BASE_MS = 1000
BACKOFF_JITTER_MS = 500

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(attempt: int, rng: Callable[[], float] = random.random) -> float:
    """Delay in milliseconds after a rate-limited attempt: 1 s, 2 s, 4 s plus jitter."""
    return BACKOFF_BASE_MS * (2**attempt) + rng() * BACKOFF_JITTER_MS


def _is_rate_limited(result: Failure) -> bool:
    return result.kind == ErrorKind.RATE_LIMITED or "rate limit" in result.reason.lower()


class ProviderRouter:
    """Routes batches, contextual batches and word lookups to a provider.

    Args:
        config: Initial provider snapshot.
        client: Shared HTTP client for Google and DeepL. One is created
            when omitted and closed by ``aclose``.
        sleep: Awaitable sleep in seconds (injected in tests).
        rng: Jitter source returning a float in [0, 1).
    """

    def __init__(
        self,
        config: ProviderConfig | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._config = config if config is not None else ProviderConfig()
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()
        self._sleep = sleep
        self._rng = rng

    @property
    def config(self) -> ProviderConfig:
        return self._config

    def reload(self, config: ProviderConfig) -> None:
        if config != self._config:
            console.print(f"[dim]Translation provider:[/dim] {config.provider_id}")
        self._config = config

    async def translate(self, texts: list[str], target_lang: str) -> TranslationResult:
        """One attempt against the current provider.

        On success the value is a list the same length as ``texts``;
        ``None`` elements mean "retry later" for that index.
        """
        config = self._config
        provider = config.provider_id
        if provider == "deepl":
            return await translate_deepl(self._client, texts, target_lang, config)
        if provider in LLM_PROVIDERS:
            return await translate_llm(texts, target_lang, config)
        return await translate_google(self._client, texts, target_lang, sleep=self._sleep)

    async def translate_with_retry(self, texts: list[str], target_lang: str) -> TranslationResult:
        return await self._with_retry(lambda: self.translate(texts, target_lang))

    async def translate_batch_with_context(
        self,
        texts: list[str],
        target_lang: str,
        contextual: bool = True,
    ) -> TranslationResult:
        """Pre-translate a chunk of cues with the narrative-consistency prompt.

        Google and DeepL gain nothing from context and take the plain path.
        """
        config = self._config
        if config.provider_id not in LLM_PROVIDERS or not contextual:
            return await self.translate_with_retry(texts, target_lang)
        return await self._with_retry(
            lambda: translate_llm(texts, target_lang, config, contextual=True)
        )

    async def translate_word(
        self,
        word: str,
        context: str,
        target_lang: str,
        lang_name: str,
    ) -> TranslationResult:
        """Translate a single word, using surrounding lines when the provider is an LLM."""
        config = self._config
        if config.provider_id in LLM_PROVIDERS:
            return await translate_word_llm(word, context, lang_name, config)

        result = await self.translate([word], target_lang)
        if isinstance(result, Failure):
            return result
        first = result.value[0] if result.value else None
        if not first:
            return Failure(ErrorKind.TRANSIENT, "Translation failed")
        return Success(first)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _with_retry(
        self, call: Callable[[], Awaitable[TranslationResult]]
    ) -> TranslationResult:
        # A backoff sleep follows every rate-limited attempt, the last included.
        result: TranslationResult = Failure(ErrorKind.TRANSIENT, "Translation failed after retries")
        for attempt in range(MAX_ATTEMPTS):
            try:
                result = await call()
            except Exception as e:
                result = Failure(ErrorKind.TRANSIENT, str(e) or "Translation failed")
                await self._sleep(backoff_delay(attempt, self._rng) / 1000)
                continue

            if isinstance(result, Success) or not _is_rate_limited(result):
                return result
            await self._sleep(backoff_delay(attempt, self._rng) / 1000)
        return result
