"""Tests for the two-tier translation cache and the durable store."""

from dualsub.cache.store import CacheStore, days_since_epoch
from dualsub.cache.translation_cache import (
    TranslationCache,
    is_invalid_subtitle_translation,
    is_invalid_word_translation,
)
from dualsub.core.models import CacheEntry

TODAY = 20000


def _cache(store=None, work="show-s01e01", target="EN-US"):
    return TranslationCache(
        store, work_identity=work, source_lang="FI", target_lang=target, today=lambda: TODAY
    )


def test_days_since_epoch():
    assert days_since_epoch(0) == 0
    assert days_since_epoch(86400 * 3 + 5) == 3


class TestSubtitles:
    def test_fast_path_hit(self):
        cache = _cache()
        cache.put_translations({"Hei\nmaailma": "Hello world"})
        assert cache.get("hei maailma") == "Hello world"
        assert cache.get("HEI   MAAILMA") == "Hello world"
        assert cache.subtitle_count() == 1

    def test_durable_hit_refills_fast_path(self):
        store = CacheStore()
        _cache(store).put_translations({"Hei": "Hello"})

        fresh = _cache(store)
        assert fresh.subtitle_count() == 0
        assert fresh.get("hei") == "Hello"
        assert fresh.subtitle_count() == 1

    def test_load_work_bulk_reads_and_refreshes_access(self):
        store = CacheStore()
        _cache(store).put_translations({"Hei": "Hello", "Moi": "Hi"})
        store.set_last_accessed_day("show-s01e01", TODAY - 5)

        fresh = _cache(store, work="")
        loaded = fresh.load_work("show-s01e01")

        assert loaded == 2
        assert fresh.subtitle_count() == 2
        assert store.last_accessed_day("show-s01e01") == TODAY

    def test_entries_scoped_to_work_and_language(self):
        store = CacheStore()
        _cache(store, work="a").put_translations({"Hei": "Hello"})
        assert _cache(store, work="b").get("hei") is None
        assert _cache(store, work="a", target="DE").get("hei") is None

    def test_target_change_clears_fast_path(self):
        cache = _cache()
        cache.put_translations({"Hei": "Hello"})
        cache.set_target_language("DE")
        assert cache.subtitle_count() == 0
        assert cache.get("hei") is None

    def test_blank_values_rejected(self):
        cache = _cache()
        cache.put_translations({"Hei": "   "})
        assert cache.get("hei") is None

    def test_dialogue_with_refusal_words_kept(self):
        cache = _cache()
        cache.put_translations({"En voi": "I cannot"})
        assert cache.get("en voi") == "I cannot"

    def test_put_writes_one_chunk(self):
        store = CacheStore()
        cache = _cache(store)
        cache.put(
            [
                CacheEntry("show-s01e01", "FI", "EN-US", f"line {i}", f"translated {i}")
                for i in range(10)
            ]
        )
        assert store.subtitle_row_count() == 10

    def test_clear_subtitles_only_clears_fast_path(self):
        store = CacheStore()
        cache = _cache(store)
        cache.put_translations({"Hei": "Hello"})
        assert cache.clear_subtitles() == 1
        assert cache.subtitle_count() == 0
        assert store.subtitle_row_count() == 1


class TestEviction:
    def test_evicts_only_stale_works(self):
        store = CacheStore()
        _cache(store, work="old").put_translations({"Vanha": "Old"})
        _cache(store, work="new").put_translations({"Uusi": "New"})
        store.set_last_accessed_day("old", TODAY - 40)
        store.set_last_accessed_day("new", TODAY - 10)

        removed = _cache(store).evict_older_than(30)

        assert removed == 1
        assert store.last_accessed_day("old") is None
        assert store.last_accessed_day("new") == TODAY - 10
        assert _cache(store, work="old").get("vanha") is None
        assert _cache(store, work="new").get("uusi") == "New"

    def test_nothing_to_evict(self):
        store = CacheStore()
        store.set_last_accessed_day("fresh", TODAY)
        assert _cache(store).evict_older_than(30) == 0

    def test_word_eviction_by_access_day(self):
        store = CacheStore()
        cache = _cache(store)
        cache.put_word("kissa", "cat")
        stale = TranslationCache(store, today=lambda: TODAY - 90)
        stale.put_word("koira", "dog")

        assert cache.evict_words_older_than(60) == 1
        assert cache.get_word("kissa").translation == "cat"
        assert cache.get_word("koira") is None


class TestWords:
    def test_round_trip_with_provenance(self):
        store = CacheStore()
        _cache(store).put_word("Kissa ", "cat", source="llm")

        entry = _cache(store).get_word("kissa")
        assert entry.translation == "cat"
        assert entry.source == "llm"
        assert entry.last_accessed_day == TODAY

    def test_words_shared_across_works(self):
        store = CacheStore()
        _cache(store, work="a").put_word("kissa", "cat")
        assert _cache(store, work="b").get_word("kissa").translation == "cat"

    def test_refusals_not_cached(self):
        cache = _cache(CacheStore())
        assert cache.put_word("kissa", "I cannot translate this") is None
        assert cache.put_word("kissa", "x" * 201) is None
        assert cache.get_word("kissa") is None

    def test_admin_counts(self):
        cache = _cache(CacheStore())
        cache.put_word("kissa", "cat")
        cache.put_word("koira", "dog")
        assert cache.word_count() == 2
        assert cache.clear_words() == 2
        assert cache.word_count() == 0


class TestValidity:
    def test_word_patterns(self):
        for bad in ["", "   ", "Please provide the text", "Sorry, I can't", "Error: x", "undefined"]:
            assert is_invalid_word_translation(bad)
        assert not is_invalid_word_translation("cat; feline")

    def test_subtitle_only_rejects_blank(self):
        assert is_invalid_subtitle_translation("")
        assert is_invalid_subtitle_translation(None)
        assert not is_invalid_subtitle_translation("Sorry, I can't stay")


def test_durable_store_on_disk(tmp_path):
    path = tmp_path / "cache" / "local.db"
    store = CacheStore(path)
    _cache(store).put_translations({"Hei": "Hello"})
    store.close()

    reopened = CacheStore(path)
    assert _cache(reopened).get("hei") == "Hello"
    reopened.close()
