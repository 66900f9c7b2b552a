"""Two-tier translation cache: in-process fast path over the durable store."""

from __future__ import annotations

from typing import Callable

from rich.console import Console

from dualsub.cache.store import CacheStore, days_since_epoch
from dualsub.core.models import CacheEntry, WordEntry, normalize_key, normalize_text

console = Console()

MAX_WORD_TRANSLATION_LENGTH = 200

REFUSAL_PATTERNS = (
    "please provide",
    "finnish text",
    "translate to",
    "i cannot",
    "i can't",
    "sorry, ",
    "error:",
    "failed to",
    "undefined",
)


def is_invalid_subtitle_translation(text: str | None) -> bool:
    """Subtitle values are only rejected when blank; dialogue may say "I cannot"."""
    return not text or not text.strip()


def is_invalid_word_translation(text: str | None) -> bool:
    """Reject blank, overlong, or refusal-looking word translations."""
    if not text or not isinstance(text, str):
        return True
    cleaned = text.strip()
    if not cleaned or len(cleaned) > MAX_WORD_TRANSLATION_LENGTH:
        return True
    lowered = cleaned.lower()
    return any(pattern in lowered for pattern in REFUSAL_PATTERNS)


def clean_translation(text: str) -> str:
    """Strip and fold newlines to spaces before caching."""
    return normalize_text(text)


class TranslationCache:
    """Translation lookups scoped to one work and one language pair.

    The fast path is a dict keyed by normalized text for the current
    target language. Changing the target language clears it. The
    durable store is optional; without it the cache is memory-only.
    """

    def __init__(
        self,
        store: CacheStore | None = None,
        work_identity: str = "",
        source_lang: str = "FI",
        target_lang: str = "EN-US",
        today: Callable[[], int] = days_since_epoch,
    ) -> None:
        self.store = store
        self.work_identity = work_identity
        self.source_lang = source_lang
        self.target_lang = target_lang
        self._today = today
        self._subtitles: dict[str, str] = {}
        self._words: dict[str, WordEntry] = {}

    # -- subtitles --------------------------------------------------------

    def get(self, key: str, target_lang: str | None = None) -> str | None:
        """Look up a normalized key; the fast path is checked first."""
        target = target_lang or self.target_lang
        key = normalize_key(key)

        if target == self.target_lang and key in self._subtitles:
            value = self._subtitles[key]
            if not is_invalid_subtitle_translation(value):
                return value
            del self._subtitles[key]

        if self.store is None or not self.work_identity:
            return None
        value = self.store.get_subtitle(self.work_identity, self.source_lang, target, key)
        if is_invalid_subtitle_translation(value):
            return None
        if target == self.target_lang:
            self._subtitles[key] = value
        return value

    def put(self, entries: list[CacheEntry]) -> None:
        """Store a chunk of translations (one durable transaction)."""
        valid = [
            entry
            for entry in entries
            if not is_invalid_subtitle_translation(entry.translated_text)
        ]
        for entry in valid:
            if entry.target_lang == self.target_lang:
                self._subtitles[entry.original_key] = entry.translated_text
        if self.store is not None and self.work_identity:
            self.store.save_subtitles([entry for entry in valid if entry.work_identity])

    def put_translations(self, translations: dict[str, str]) -> None:
        """Store ``{normalized_key: translated}`` for the current scope."""
        self.put(
            [
                CacheEntry(
                    work_identity=self.work_identity,
                    source_lang=self.source_lang,
                    target_lang=self.target_lang,
                    original_key=normalize_key(key),
                    translated_text=clean_translation(text),
                )
                for key, text in translations.items()
            ]
        )

    def contains(self, key: str) -> bool:
        return self.get(key) is not None

    def load_work(self, work_identity: str, target_lang: str | None = None) -> int:
        """Enter a work scope: bulk-load its entries into the fast path.

        Refreshes the work's last-accessed day. Returns the number of
        entries loaded.
        """
        self.work_identity = work_identity
        if target_lang and target_lang != self.target_lang:
            self.set_target_language(target_lang)
        if self.store is None:
            return 0

        entries = self.store.load_work(
            work_identity, self.source_lang, self.target_lang, self._today()
        )
        loaded = 0
        for entry in entries:
            if is_invalid_subtitle_translation(entry.translated_text):
                continue
            self._subtitles[entry.original_key] = entry.translated_text
            loaded += 1
        if loaded:
            console.print(f"[dim]Loaded {loaded} cached translations for {work_identity}[/dim]")
        return loaded

    def set_target_language(self, target_lang: str) -> None:
        if target_lang != self.target_lang:
            self.target_lang = target_lang
            self._subtitles.clear()
            self._words.clear()

    def evict_older_than(self, days: int) -> int:
        """Remove works not accessed in ``days`` days; returns works removed."""
        if self.store is None:
            return 0
        return self.store.evict_works_before(self._today() - days)

    def subtitle_count(self) -> int:
        return len(self._subtitles)

    def clear_subtitles(self) -> int:
        count = len(self._subtitles)
        self._subtitles.clear()
        return count

    # -- words ------------------------------------------------------------

    def get_word(
        self, word: str, source_lang: str | None = None, target_lang: str | None = None
    ) -> WordEntry | None:
        source = source_lang or self.source_lang
        target = target_lang or self.target_lang
        normalized = word.lower().strip()
        mem_key = f"{normalized}:{source}:{target}"

        cached = self._words.get(mem_key)
        if cached is not None:
            if not is_invalid_word_translation(cached.translation):
                return cached
            del self._words[mem_key]

        if self.store is None:
            return None
        entry = self.store.get_word(normalized, source, target)
        if entry is None:
            return None
        if is_invalid_word_translation(entry.translation):
            console.print(f"[dim]Removed invalid cached translation for '{normalized}'[/dim]")
            self.store.delete_word(normalized, source, target)
            return None
        self._words[mem_key] = entry
        return entry

    def put_word(
        self,
        word: str,
        translation: str,
        source: str = "wiktionary",
        source_lang: str | None = None,
        target_lang: str | None = None,
    ) -> WordEntry | None:
        """Cache a word translation with its provenance; invalid values are dropped."""
        if is_invalid_word_translation(translation):
            return None
        entry = WordEntry(
            word=word.lower().strip(),
            source_lang=source_lang or self.source_lang,
            target_lang=target_lang or self.target_lang,
            translation=translation.strip(),
            source=source,
            last_accessed_day=self._today(),
        )
        self._words[f"{entry.word}:{entry.source_lang}:{entry.target_lang}"] = entry
        if self.store is not None:
            self.store.save_word(entry)
        return entry

    def evict_words_older_than(self, days: int) -> int:
        self._words.clear()
        if self.store is None:
            return 0
        return self.store.evict_words_before(self._today() - days)

    def word_count(self) -> int:
        if self.store is None:
            return len(self._words)
        return self.store.word_count()

    def clear_words(self) -> int:
        count = len(self._words)
        self._words.clear()
        if self.store is not None:
            count = self.store.clear_words()
        return count
