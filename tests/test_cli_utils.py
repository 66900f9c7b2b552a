"""Tests for CLI utility functions: flag validation and subtitle export."""

import pysubs2
import pytest
import typer

from dualsub.cli.translate import save_translated
from dualsub.cli.utils import config_overrides, open_cache_store
from dualsub.core.config import DualSubConfig
from dualsub.core.models import SubtitleCue


class TestConfigOverrides:
    def test_empty(self):
        assert config_overrides() == {}

    def test_codes_upper_cased(self):
        assert config_overrides(to="de", source="fi", provider="deepl") == {
            "translation.target_language": "DE",
            "translation.source_language": "FI",
            "providers.provider": "deepl",
        }

    @pytest.mark.parametrize("flag", ["to", "source"])
    def test_invalid_code_exits(self, flag):
        with pytest.raises(typer.Exit) as exc:
            config_overrides(**{flag: "klingon"})
        assert exc.value.exit_code == 1


class TestSaveTranslated:
    CUES = [SubtitleCue(1.0, 2.5, "Hei maailma"), SubtitleCue(3.0, 4.0, "Mitä kuuluu?")]

    def test_untranslated_lines_keep_original(self, tmp_path):
        path = save_translated(self.CUES, {"hei maailma": "Hello world"}, tmp_path / "out.srt")

        subs = pysubs2.load(str(path))
        assert [e.plaintext for e in subs.events] == ["Hello world", "Mitä kuuluu?"]
        assert (subs.events[0].start, subs.events[0].end) == (1000, 2500)

    def test_bilingual(self, tmp_path):
        path = save_translated(
            self.CUES[:1], {"hei maailma": "Hello world"}, tmp_path / "out.srt", bilingual=True
        )
        assert pysubs2.load(str(path)).events[0].plaintext == "Hello world\nHei maailma"


def test_open_cache_store_per_origin(tmp_path):
    config = DualSubConfig(workspace_dir=tmp_path)
    store = open_cache_store(config, "https://areena.yle.fi/1-123")
    store.close()
    assert (tmp_path / ".cache" / "areenaylefi.db").is_file()
