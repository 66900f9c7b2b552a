"""Shared test fixtures."""

from pathlib import Path

import pytest

SAMPLE_SRT = """\
1
00:00:01,000 --> 00:00:02,500
Hei maailma

2
00:00:03,000 --> 00:00:04,000
Mitä kuuluu?

3
00:00:05,000 --> 00:00:06,000
Hei maailma
"""


class SleepRecorder:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def total(self) -> float:
        return sum(self.delays)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def sample_srt(tmp_path: Path) -> Path:
    path = tmp_path / "episode.srt"
    path.write_text(SAMPLE_SRT, encoding="utf-8")
    return path
