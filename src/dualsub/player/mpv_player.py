"""mpv front end: subtitle source, overlay renderer and playback clock.

mpv reports native subtitle changes through the ``sub-text`` property.
Each change is mirrored into a small content tree so the change
detector can treat it like any other subtitle container. The dual-line
overlay is drawn on the OSD while the native subtitles stay hidden.

mpv invokes property observers on its own event thread; every callback
is handed to the asyncio loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Callable

from rich.console import Console

from dualsub.core.config import PlayerConfig
from dualsub.core.models import SubtitleCue
from dualsub.subtitles.content import ContentChange, ContentNode
from dualsub.subtitles.cues import CueTimeline
from dualsub.subtitles.detector import SpanKind, TranslationSpan

console = Console()


def check_mpv() -> bool:
    """Check if mpv is available on the system."""
    return shutil.which("mpv") is not None


def format_overlay(original: str, span: TranslationSpan | None) -> str:
    """Compose the OSD text: translation above the original line."""
    if span is None:
        return original
    if span.kind == SpanKind.FALLBACK and span.error:
        return f"{span.text}  ({span.error})\n{original}"
    return f"{span.text}\n{original}"


class MpvPlayer:
    """Wraps a python-mpv instance for a dual-subtitle session.

    Args:
        config: Player configuration.
        timeline: Cue timeline; when empty, mpv's ``sub-start``/``sub-end``
            describe the active cue.
    """

    def __init__(self, config: PlayerConfig | None = None, timeline: CueTimeline | None = None):
        if not check_mpv():
            raise FileNotFoundError("mpv not found. Install it with: brew install mpv")

        try:
            import mpv
        except ImportError:
            raise ImportError("python-mpv is not installed. Install with: pip install dualsub[player]")

        self.config = config if config is not None else PlayerConfig()
        self.timeline = timeline if timeline is not None else CueTimeline()
        self._mpv_module = mpv
        self._mpv = mpv.MPV(
            input_default_bindings=True,
            input_vo_keyboard=True,
            osc=True,
        )
        self._mpv["sub-font-size"] = self.config.sub_font_size
        self._mpv["sub-visibility"] = False

        self.root = ContentNode(attrs={"id": "player"})
        self.wrapper = self.root.append(ContentNode(attrs={"data-testid": "subtitles-wrapper"}))
        self.overlay = self.root.append(
            ContentNode(attrs={"id": "displayed-subtitles-wrapper", "aria-live": "polite"})
        )
        self._overlay_text = ""
        self._current_original = ""
        self._current_span: TranslationSpan | None = None

    # -- Player -----------------------------------------------------------

    @property
    def current_time(self) -> float:
        return self._mpv.time_pos or 0.0

    @property
    def playback_rate(self) -> float:
        return self._mpv.speed or 1.0

    @property
    def paused(self) -> bool:
        return bool(self._mpv.pause)

    def pause(self) -> None:
        self._mpv.pause = True

    def active_cues(self) -> list[SubtitleCue]:
        if len(self.timeline):
            return self.timeline.active_at(self.current_time)
        start, end = self._mpv.sub_start, self._mpv.sub_end
        text = self._mpv.sub_text or ""
        if start is None or end is None or end <= start:
            return []
        return [SubtitleCue(start=start, end=end, text=text)]

    # -- Renderer ---------------------------------------------------------

    def clear(self) -> None:
        self.overlay.clear_children()
        self._current_original = ""
        self._current_span = None
        self._draw("")

    def show(self, original: str, translation: TranslationSpan | None) -> None:
        self._current_original = original
        self._current_span = translation
        self.overlay.clear_children()
        self.overlay.append(ContentNode(text=original))
        if translation is not None:
            self.overlay.append(ContentNode(text=translation.text))
        self._draw(format_overlay(original, translation))

    def update(self, span: TranslationSpan) -> None:
        if span is self._current_span and span.attached:
            self.show(self._current_original, span)

    def _draw(self, text: str) -> None:
        if text == self._overlay_text:
            return
        self._overlay_text = text
        duration_ms = int(self.config.osd_duration * 1000) if text else 1
        self._mpv.show_text(text, duration_ms)

    # -- events -----------------------------------------------------------

    def attach(
        self,
        loop: asyncio.AbstractEventLoop,
        on_content_change: Callable[[ContentChange], None],
        on_play: Callable[[], None],
        on_pause: Callable[[], None],
        on_seeked: Callable[[], None],
        on_rate_change: Callable[[], None],
    ) -> None:
        """Observe mpv and forward events to the loop."""

        def sub_text_changed(_name, value):
            loop.call_soon_threadsafe(self._apply_sub_text, value or "", on_content_change)

        def pause_changed(_name, value):
            loop.call_soon_threadsafe(on_pause if value else on_play)

        def speed_changed(_name, _value):
            loop.call_soon_threadsafe(on_rate_change)

        self._mpv.observe_property("sub-text", sub_text_changed)
        self._mpv.observe_property("pause", pause_changed)
        self._mpv.observe_property("speed", speed_changed)

        @self._mpv.event_callback("playback-restart")
        def seeked(_event):
            loop.call_soon_threadsafe(on_seeked)

    def _apply_sub_text(self, text: str, on_content_change: Callable[[ContentChange], None]):
        self.wrapper.clear_children()
        if text:
            self.wrapper.append(ContentNode(text=text))
        on_content_change(ContentChange(node=self.wrapper, added_nodes=bool(text)))

    # -- lifecycle --------------------------------------------------------

    def play(self, media: str, subtitle_file: Path | None = None) -> None:
        if subtitle_file is not None and subtitle_file.is_file():
            self._mpv["sub-file"] = str(subtitle_file)
        console.print(f"[bold]Playing:[/bold] {media}")
        if subtitle_file is not None:
            console.print(f"[bold]Subtitles:[/bold] {subtitle_file.name}")
        self._mpv.play(media)

    def wait_for_shutdown(self) -> None:
        try:
            self._mpv.wait_for_shutdown()
        except self._mpv_module.ShutdownError:
            pass

    def terminate(self) -> None:
        self._mpv.terminate()
