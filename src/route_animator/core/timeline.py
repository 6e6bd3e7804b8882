"""Playback timeline for the route animation preview."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from route_animator.core.easing import apply_easing


class Clock(Protocol):
    def now_ms(self) -> float: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class MonotonicClock:
    """Wall clock backed by :func:`time.monotonic`."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class PlaybackState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class TimelineState:
    current_time_ms: float
    total_duration_ms: float
    playback_speed: float
    easing_name: str
    playback: PlaybackState


class Timeline:
    """
    Stopped / playing / paused state machine over ``[0, total_duration_ms]``.

    While playing, the current time is derived from the clock and a virtual
    start reference (``now - current / speed``), so pausing and resuming never
    makes the animation jump.
    """

    def __init__(
        self,
        total_duration_ms: float = 5000,
        *,
        playback_speed: float = 1.0,
        easing_name: str = "easeInOutCubic",
        clock: Clock | None = None,
    ):
        if total_duration_ms < 0:
            msg = "total_duration_ms must not be negative"
            raise ValueError(msg)
        if playback_speed <= 0:
            msg = "playback_speed must be positive"
            raise ValueError(msg)
        self.clock = clock or MonotonicClock()
        self.total_duration_ms = float(total_duration_ms)
        self.playback_speed = float(playback_speed)
        self.easing_name = easing_name
        self.current_time_ms = 0.0
        self.playback = PlaybackState.STOPPED
        self._virtual_start_ms = 0.0

    @property
    def is_playing(self) -> bool:
        return self.playback is PlaybackState.PLAYING

    @property
    def progress(self) -> float:
        if self.total_duration_ms == 0:
            return 0.0
        return self.current_time_ms / self.total_duration_ms

    @property
    def eased_progress(self) -> float:
        return apply_easing(self.easing_name, self.progress)

    def state(self) -> TimelineState:
        return TimelineState(
            current_time_ms=self.current_time_ms,
            total_duration_ms=self.total_duration_ms,
            playback_speed=self.playback_speed,
            easing_name=self.easing_name,
            playback=self.playback,
        )

    def _anchor(self, now_ms: float) -> None:
        self._virtual_start_ms = now_ms - self.current_time_ms / self.playback_speed

    def play(self) -> None:
        if self.current_time_ms >= self.total_duration_ms:
            self.current_time_ms = 0.0
        self._anchor(self.clock.now_ms())
        self.playback = PlaybackState.PLAYING

    def pause(self) -> None:
        self.playback = PlaybackState.PAUSED

    def stop(self) -> None:
        self.playback = PlaybackState.STOPPED
        self.current_time_ms = 0.0

    def seek(self, time_ms: float) -> None:
        self.current_time_ms = min(max(0.0, float(time_ms)), self.total_duration_ms)
        if self.is_playing:
            self._anchor(self.clock.now_ms())

    def tick(self, now_ms: float | None = None) -> float:
        """Advance the current time from the clock; pauses at the end."""
        if not self.is_playing:
            return self.current_time_ms
        if now_ms is None:
            now_ms = self.clock.now_ms()
        elapsed = (now_ms - self._virtual_start_ms) * self.playback_speed
        self.current_time_ms = min(max(0.0, elapsed), self.total_duration_ms)
        if self.current_time_ms >= self.total_duration_ms:
            self.playback = PlaybackState.PAUSED
        return self.current_time_ms

    def set_duration(self, total_duration_ms: float) -> None:
        if total_duration_ms < 0:
            msg = "total_duration_ms must not be negative"
            raise ValueError(msg)
        self.total_duration_ms = float(total_duration_ms)
        self.seek(self.current_time_ms)

    def set_speed(self, playback_speed: float) -> None:
        if playback_speed <= 0:
            msg = "playback_speed must be positive"
            raise ValueError(msg)
        self.playback_speed = float(playback_speed)
        if self.is_playing:
            self._anchor(self.clock.now_ms())


class Player:
    """
    Cooperative preview loop: one rendered frame per scheduled tick.

    Every pause, stop or seek cancels the pending tick and bumps a generation
    counter. A callback from an older generation that still fires renders
    nothing, so no stale frame appears after cancellation.

    Args:
        timeline: Timeline driven by this player.
        scheduler: Schedules the next tick.
        render: Called with the eased global progress for each frame.
        frame_interval_ms: Delay between ticks (default ~60 fps).

    """

    def __init__(
        self,
        timeline: Timeline,
        scheduler: Scheduler,
        render: Callable[[float], None],
        frame_interval_ms: float = 1000 / 60,
    ):
        self.timeline = timeline
        self.scheduler = scheduler
        self.render = render
        self.frame_interval_ms = frame_interval_ms
        self._generation = 0
        self._handle: Any = None

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None

    def _schedule(self) -> None:
        generation = self._generation
        self._handle = self.scheduler.call_later(
            self.frame_interval_ms,
            lambda: self._tick(generation),
        )

    def _tick(self, generation: int) -> None:
        if generation != self._generation or not self.timeline.is_playing:
            return
        self._handle = None
        self.timeline.tick()
        self.render(self.timeline.eased_progress)
        if self.timeline.is_playing:
            self._schedule()

    def play(self) -> None:
        if self.timeline.is_playing:
            return
        self._cancel_pending()
        self.timeline.play()
        self.render(self.timeline.eased_progress)
        self._schedule()

    def pause(self) -> None:
        self._cancel_pending()
        self.timeline.pause()

    def stop(self) -> None:
        self._cancel_pending()
        self.timeline.stop()
        self.render(self.timeline.eased_progress)

    def seek(self, time_ms: float) -> None:
        self.timeline.seek(time_ms)
        if self.timeline.is_playing:
            self._cancel_pending()
            self._schedule()
        self.render(self.timeline.eased_progress)


__all__ = [
    "Clock",
    "MonotonicClock",
    "PlaybackState",
    "Player",
    "Scheduler",
    "Timeline",
    "TimelineState",
]
