"""Shared data models for dualsub."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from dualsub.core.errors import ErrorKind, classify_message

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Fold newlines and collapse whitespace, keeping case."""
    return _WHITESPACE_RE.sub(" ", text.replace("\n", " ")).strip()


def normalize_key(text: str) -> str:
    """Canonical identity of a subtitle line for caching and deduplication."""
    return normalize_text(text).lower()


@dataclass(frozen=True)
class TranslationUnit:
    """A raw subtitle line together with its normalized key."""

    text: str
    normalized_key: str

    @classmethod
    def from_text(cls, text: str) -> TranslationUnit:
        return cls(text=text, normalized_key=normalize_key(text))


@dataclass(frozen=True)
class Success:
    """Successful provider call.

    For batch calls ``value`` is a list whose ``None`` elements mean
    "retry later" for that index.
    """

    value: object

    ok = True


@dataclass(frozen=True)
class Failure:
    """Failed provider call, permanent until something changes."""

    kind: ErrorKind
    reason: str

    ok = False


TranslationResult = Union[Success, Failure]


def to_wire(result: TranslationResult) -> tuple[bool, object]:
    """Encode a result in the ``(ok, payload)`` shape used over the channel."""
    if isinstance(result, Success):
        return True, result.value
    return False, result.reason


def from_wire(response: tuple[bool, object]) -> TranslationResult:
    ok, payload = response
    if ok:
        return Success(payload)
    reason = str(payload)
    return Failure(classify_message(reason), reason)


@dataclass
class CacheEntry:
    """A translated subtitle line scoped to a work (episode, film, ...)."""

    work_identity: str
    source_lang: str
    target_lang: str
    original_key: str
    translated_text: str


@dataclass
class WordEntry:
    """A translated single word, independent of work identity."""

    word: str
    source_lang: str
    target_lang: str
    translation: str
    source: str = "wiktionary"  # "wiktionary" or "llm"
    last_accessed_day: int = 0


@dataclass(frozen=True)
class SubtitleCue:
    """A timed text range on the media timeline (seconds)."""

    start: float
    end: float
    text: str

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(f"Cue start must precede end: {self.start} >= {self.end}")

    def contains(self, position: float) -> bool:
        return self.start <= position < self.end


class TranslationStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    RETRY_LATER = "retry_later"


@dataclass
class SubtitleState:
    """Render-side view of one normalized key."""

    status: TranslationStatus
    text: str | None = None
    error: str | None = None
    next_retry_at: float | None = None  # monotonic seconds


@dataclass
class AutoPauseTimer:
    """The single live auto-pause timer owned by the scheduler."""

    target_media_time: float
    handle: asyncio.Task | None = None
    retry_count: int = 0
