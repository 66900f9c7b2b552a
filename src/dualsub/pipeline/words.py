"""Single-word lookup: cache, then Wiktionary, then an LLM with context."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from dualsub.cache.translation_cache import TranslationCache
from dualsub.core.errors import DualSubError, ProviderError
from dualsub.core.languages import language_name
from dualsub.pipeline.channel import ChannelClient
from dualsub.providers.prompts import format_word_context
from dualsub.providers.wiktionary import fetch_definition, wiktionary_page_url


@dataclass
class WordLookupResult:
    word: str
    translation: str
    source: str  # "cache", "wiktionary" or "llm"
    wiktionary_url: str


class WordLookupError(DualSubError):
    def __init__(self, message: str, wiktionary_url: str) -> None:
        super().__init__(message)
        self.wiktionary_url = wiktionary_url


class WordLookup:
    """Resolves words for the dictionary popup.

    Args:
        cache: Word entries are read from and written to this cache.
        channel: Used for the LLM fallback.
        client: HTTP client for Wiktionary.
    """

    def __init__(
        self,
        cache: TranslationCache,
        channel: ChannelClient,
        client: httpx.AsyncClient,
    ) -> None:
        self.cache = cache
        self.channel = channel
        self.client = client

    async def lookup(
        self,
        word: str,
        current_line: str = "",
        before: list[str] | None = None,
        after: list[str] | None = None,
    ) -> WordLookupResult:
        normalized = word.lower().strip()
        target = self.cache.target_lang
        url = wiktionary_page_url(normalized, target, self.cache.source_lang)

        cached = self.cache.get_word(normalized)
        if cached is not None:
            return WordLookupResult(normalized, cached.translation, cached.source or "cache", url)

        try:
            definition = await fetch_definition(
                self.client, normalized, target, self.cache.source_lang
            )
        except ProviderError:
            pass
        else:
            self.cache.put_word(normalized, definition, source="wiktionary")
            return WordLookupResult(normalized, definition, "wiktionary", url)

        context = format_word_context(word, current_line or word, before or [], after or [])
        return await self.ask_llm(word, context, url)

    async def ask_llm(self, word: str, context: str, wiktionary_url: str = "") -> WordLookupResult:
        """Translate with the active provider and overwrite the cached entry."""
        normalized = word.lower().strip()
        target = self.cache.target_lang
        url = wiktionary_url or wiktionary_page_url(normalized, target, self.cache.source_lang)

        ok, payload = await self.channel.translate_word(
            word, context, target, language_name(target)
        )
        if not ok or not str(payload).strip():
            raise WordLookupError(str(payload) or "Translation failed", url)

        translation = str(payload).strip()
        self.cache.put_word(normalized, translation, source="llm")
        return WordLookupResult(normalized, translation, "llm", url)
