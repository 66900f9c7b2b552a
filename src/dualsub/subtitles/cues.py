"""Cue timeline and fuzzy matching of displayed text against cues.

The subtitle that is on screen is known only as text, while timing
lives in cues. Matching tolerates line-wrapping differences: texts
match when, after normalization, one equals or contains the other.
"""

from __future__ import annotations

import bisect
from pathlib import Path
from typing import Iterable

import pysubs2

from dualsub.core.models import SubtitleCue, normalize_key


def texts_likely_match(displayed_text: str, cue_text: str) -> bool:
    displayed = normalize_key(displayed_text)
    cue = normalize_key(cue_text)
    if not displayed or not cue:
        return False
    return displayed == cue or cue in displayed or displayed in cue


def pick_later(current: SubtitleCue | None, candidate: SubtitleCue) -> SubtitleCue:
    """Latest start wins; equal starts are broken by the later end."""
    if current is None:
        return candidate
    if candidate.start > current.start:
        return candidate
    if candidate.start == current.start and candidate.end > current.end:
        return candidate
    return current


def resolve_displayed_end_time(displayed_text: str, active_cues: Iterable[SubtitleCue]) -> float | None:
    """End time of the displayed subtitle.

    Prefers the best text match among the active cues and falls back to
    the latest active cue when nothing matches.
    """
    best_match: SubtitleCue | None = None
    best_active: SubtitleCue | None = None
    for cue in active_cues:
        best_active = pick_later(best_active, cue)
        if texts_likely_match(displayed_text, cue.text):
            best_match = pick_later(best_match, cue)
    if best_match is not None:
        return best_match.end
    if best_active is not None:
        return best_active.end
    return None


def active_cue_end_time(position: float, cues: Iterable[SubtitleCue]) -> float | None:
    """End time of the latest cue overlapping ``position``."""
    best: SubtitleCue | None = None
    for cue in cues:
        if cue.contains(position):
            best = pick_later(best, cue)
    return best.end if best is not None else None


class CueTimeline:
    """Deduplicated cues kept sorted by start time."""

    def __init__(self, cues: Iterable[SubtitleCue] = ()) -> None:
        self._cues: list[SubtitleCue] = []
        self._seen: set[tuple[float, float, str]] = set()
        self.add_all(cues)

    def add(self, cue: SubtitleCue) -> bool:
        """Insert a cue unless an identical one is already recorded."""
        identity = (cue.start, cue.end, cue.text)
        if identity in self._seen:
            return False
        self._seen.add(identity)
        bisect.insort(self._cues, cue, key=lambda c: c.start)
        return True

    def add_all(self, cues: Iterable[SubtitleCue]) -> int:
        return sum(1 for cue in cues if self.add(cue))

    def active_at(self, position: float) -> list[SubtitleCue]:
        # Cues starting after ``position`` cannot be active.
        upper = bisect.bisect_right([c.start for c in self._cues], position)
        return [cue for cue in self._cues[:upper] if cue.contains(position)]

    def clear(self) -> None:
        self._cues.clear()
        self._seen.clear()

    def __iter__(self):
        return iter(self._cues)

    def __len__(self) -> int:
        return len(self._cues)


def load_cues(path: Path) -> list[SubtitleCue]:
    """Load an SRT/VTT/ASS file into cues, skipping comments and empty lines."""
    subs = pysubs2.load(str(path))
    cues = []
    for event in subs.events:
        if event.is_comment:
            continue
        text = event.plaintext.strip()
        if not text or event.end <= event.start:
            continue
        cues.append(SubtitleCue(start=event.start / 1000.0, end=event.end / 1000.0, text=text))
    return cues
