"""Auto-pause: pause playback just before the current subtitle ends.

The pause instant comes from the end time of the subtitle on screen,
resolved by the change detector. When that is missing or already
passed, the cue overlapping the playback position is used instead. A
single asyncio task sleeps until the target, re-checks the position and
either pauses or sleeps again for the remaining distance.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Protocol

from dualsub.core.models import AutoPauseTimer, SubtitleCue
from dualsub.subtitles.cues import active_cue_end_time

PAUSE_LEAD = 0.05  # seconds before cue end
LOOKUP_RETRY_LIMIT = 3
LOOKUP_RETRY_DELAY = 0.12  # seconds

Sleep = Callable[[float], Awaitable[None]]


class Player(Protocol):
    @property
    def current_time(self) -> float: ...

    @property
    def playback_rate(self) -> float: ...

    @property
    def paused(self) -> bool: ...

    def pause(self) -> None: ...

    def active_cues(self) -> list[SubtitleCue]: ...


class AutoPauseScheduler:
    def __init__(
        self,
        player: Player,
        enabled: bool = False,
        lead: float = PAUSE_LEAD,
        lookup_retries: int = LOOKUP_RETRY_LIMIT,
        lookup_retry_delay: float = LOOKUP_RETRY_DELAY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.player = player
        self.enabled = enabled
        self.lead = lead
        self.lookup_retries = lookup_retries
        self.lookup_retry_delay = lookup_retry_delay
        self._sleep = sleep
        self.timer: AutoPauseTimer | None = None
        self.end_time: float | None = None
        self.retry_count = 0

    @property
    def scheduled(self) -> bool:
        return self.timer is not None and self.timer.handle is not None

    def set_end_time(self, end_time: float | None) -> None:
        self.end_time = end_time
        if end_time is not None:
            self.retry_count = 0

    def schedule(self, from_retry: bool = False) -> None:
        """(Re)arm the pause timer for the current subtitle."""
        self._cancel_task()
        if not from_retry:
            self.retry_count = 0
        if not self.enabled or self.player.paused:
            return

        now = self.player.current_time
        end_time = self.end_time
        if end_time is not None and end_time - self.lead <= now:
            end_time = None  # stale

        if end_time is None:
            end_time = active_cue_end_time(now, self.player.active_cues())
            if end_time is None:
                self._schedule_lookup_retry()
                return
            self.set_end_time(end_time)

        self.retry_count = 0
        pause_at = end_time - self.lead
        if pause_at - now <= 0:
            return

        self.timer = AutoPauseTimer(target_media_time=pause_at)
        self.timer.handle = asyncio.get_running_loop().create_task(self._run(pause_at))

    def cancel(self) -> None:
        self._cancel_task()
        self.retry_count = 0

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        if enabled:
            self.schedule()
        else:
            self.cancel()

    def on_seeked(self) -> None:
        self.end_time = None
        self.schedule()

    def on_play(self) -> None:
        self.schedule()

    def on_pause(self) -> None:
        self.cancel()

    def on_rate_change(self) -> None:
        self.schedule()

    def delay_for(self, pause_at: float) -> float:
        """Wall-clock seconds until ``pause_at`` at the current playback rate."""
        rate = self.player.playback_rate or 1.0
        return (pause_at - self.player.current_time) / rate

    async def _run(self, pause_at: float) -> None:
        while True:
            delay = self.delay_for(pause_at)
            if delay > 0:
                await self._sleep(delay)
            if not self.enabled or self.player.paused:
                break
            if self.player.current_time >= pause_at:
                self.player.pause()
                break
            # Fired early: playback lagged behind the wall clock.
        self._release(asyncio.current_task())

    def _schedule_lookup_retry(self) -> None:
        if self.retry_count >= self.lookup_retries:
            return
        self.retry_count += 1
        self.timer = AutoPauseTimer(
            target_media_time=self.player.current_time, retry_count=self.retry_count
        )
        self.timer.handle = asyncio.get_running_loop().create_task(self._retry_lookup())

    async def _retry_lookup(self) -> None:
        await self._sleep(self.lookup_retry_delay)
        self._release(asyncio.current_task())
        self.schedule(from_retry=True)

    def _release(self, task: asyncio.Task | None) -> None:
        if self.timer is not None and self.timer.handle is task:
            self.timer = None

    def _cancel_task(self) -> None:
        if self.timer is not None and self.timer.handle is not None:
            self.timer.handle.cancel()
        self.timer = None
