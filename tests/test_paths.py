"""Tests for cache path and work identity helpers."""

from dualsub.utils.paths import cache_db_path, media_origin, slugify, work_identity


class TestSlugify:
    def test_basic(self):
        assert slugify("Hello World") == "hello-world"

    def test_special_characters(self):
        assert slugify("Yle Areena: Jakso 1 / Kausi 2!") == "yle-areena-jakso-1-kausi-2"

    def test_collapses_dashes(self):
        assert slugify("a---b   c") == "a-b-c"

    def test_truncates_long_strings(self):
        assert len(slugify("a" * 200)) <= 80

    def test_empty_string(self):
        assert slugify("") == ""


class TestWorkIdentity:
    def test_url_keeps_host_and_path(self):
        assert (
            work_identity("https://areena.yle.fi/1-64876540?autoplay=1")
            == "areenaylefi-1-64876540"
        )

    def test_episodes_on_same_host_differ(self):
        first = work_identity("https://example.com/show/s01e01")
        second = work_identity("https://example.com/show/s01e02")
        assert first != second

    def test_local_file_uses_stem(self):
        assert work_identity("/media/Kummeli S01E03.mkv") == "kummeli-s01e03"

    def test_fallback(self):
        assert work_identity("???.mkv") == "untitled"


class TestMediaOrigin:
    def test_url_host(self):
        assert media_origin("https://areena.yle.fi/1-123") == "areena.yle.fi"

    def test_local(self):
        assert media_origin("/media/film.mkv") == "local"
        assert media_origin("C:film.mkv") == "local"


def test_cache_db_path(tmp_path):
    path = cache_db_path(tmp_path / "cache", "areena.yle.fi")
    assert path == tmp_path / "cache" / "areenaylefi.db"
    assert path.parent.is_dir()
