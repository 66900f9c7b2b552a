"""Tests for session wiring and live configuration updates."""

import asyncio

import httpx
import pytest

from dualsub.cache.store import CacheStore
from dualsub.core.config import ConfigStore, DualSubConfig
from dualsub.core.session import DualSubSession
from dualsub.subtitles.content import ContentNode
from dualsub.subtitles.cues import load_cues
from dualsub.subtitles.detector import SpanKind


def _google(request: httpx.Request) -> httpx.Response:
    text = request.url.params["q"]
    return httpx.Response(200, json=[[[f"EN({text})", text]]])


class RecordingRenderer:
    def __init__(self):
        self.shown = []
        self.updates = []

    def clear(self):
        pass

    def show(self, original, translation):
        self.shown.append((original, translation))

    def update(self, span):
        self.updates.append((span.text, span.kind))


class PausedPlayer:
    current_time = 0.0
    playback_rate = 1.0
    paused = True

    def pause(self):
        pass

    def active_cues(self):
        return []


@pytest.fixture
def store():
    return ConfigStore(DualSubConfig())


def _session(store, sleep, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(_google))
    return DualSubSession(store, http_client=client, sleep=sleep, **kwargs)


class TestConfigUpdates:
    def test_provider_change_reloads_router(self, store, sleep):
        session = _session(store, sleep)
        store.update(**{"providers.provider": "deepl", "providers.deepl_api_key": "k:fx"})
        assert session.router.config.provider_id == "deepl"
        assert session.router.config.api_key == "k:fx"

    def test_target_change_clears_fast_path_and_states(self, store, sleep):
        session = _session(store, sleep)
        session.cache.put_translations({"Hei": "Hello"})
        session.states.mark_failed("moi", "nope")

        store.update(**{"translation.target_language": "DE"})

        assert session.cache.target_lang == "DE"
        assert session.cache.subtitle_count() == 0
        assert len(session.states) == 0

    def test_source_change(self, store, sleep):
        session = _session(store, sleep)
        session.cache.put_translations({"Hei": "Hello"})
        store.update(**{"translation.source_language": "SV"})
        assert session.cache.source_lang == "SV"
        assert session.cache.subtitle_count() == 0

    def test_disabling_translation_stops_queue(self, store, sleep):
        session = _session(store, sleep)
        store.update(**{"translation.enabled": False})
        assert not session.queue.enabled

    def test_cooldown_follows_config(self, store, sleep):
        session = _session(store, sleep)
        store.update(**{"translation.retry_cooldown": 5.0})
        assert session.states.retry_cooldown == 5.0

    def test_autopause_toggle(self, store, sleep):
        session = _session(store, sleep, player=PausedPlayer())
        assert not session.scheduler.enabled
        store.update(**{"autopause.enabled": True})
        assert session.scheduler.enabled


def test_content_change_to_translated_overlay(store, sleep):
    root = ContentNode()
    native = root.append(ContentNode(attrs={"data-testid": "subtitles-wrapper"}))
    native.append(ContentNode(text="Hei maailma"))
    renderer = RecordingRenderer()
    session = _session(store, sleep, renderer=renderer, root=lambda: root)

    async def scenario():
        session.handle_content_change()
        await session.queue.process_queue()
        await session.aclose()
        await session.http_client.aclose()

    asyncio.run(scenario())

    original, span = renderer.shown[0]
    assert original == "Hei maailma"
    assert renderer.updates == [("EN(Hei maailma)", SpanKind.TRANSLATED)]
    assert span.kind == SpanKind.TRANSLATED


def test_open_work_loads_durable_entries(store, sleep):
    cache_store = CacheStore()
    first = _session(store, sleep, cache_store=cache_store)
    first.cache.work_identity = "show-s01e01"
    first.cache.put_translations({"Hei": "Hello"})

    second = _session(store, sleep, cache_store=cache_store)
    assert second.open_work("show-s01e01") == 1
    assert second.cache.get("hei") == "Hello"


def test_pretranslate_through_session(store, sleep, sample_srt):
    session = _session(store, sleep)
    done = asyncio.run(session.translate_all(load_cues(sample_srt)))

    assert done == 2
    assert session.cache.get("mitä kuuluu?") == "EN(Mitä kuuluu?)"
    assert len(session.timeline) == 3


def test_repeated_line_translated_once(store, sleep):
    requests = []

    def handler(request):
        requests.append(request)
        return _google(request)

    root = ContentNode()
    native = root.append(ContentNode(attrs={"data-testid": "subtitles-wrapper"}))
    renderer = RecordingRenderer()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    session = DualSubSession(
        store, http_client=client, sleep=sleep, renderer=renderer, root=lambda: root
    )

    async def scenario():
        for _ in range(3):
            native.append(ContentNode(text="Hei maailma"))
            session.handle_content_change()
            await session.queue.process_queue()
            native.clear_children()
            session.handle_content_change()
        await session.aclose()
        await client.aclose()

    asyncio.run(scenario())

    assert len(requests) == 1
    assert [original for original, _ in renderer.shown] == ["Hei maailma"] * 3
    spans = [span for _, span in renderer.shown]
    assert spans[0].text == "EN(Hei maailma)"
    assert [span.kind for span in spans[1:]] == [SpanKind.TRANSLATED, SpanKind.TRANSLATED]
    assert all(span.text == "EN(Hei maailma)" for span in spans[1:])
