from __future__ import annotations

import asyncio
from collections.abc import Callable
import time


TimerCallback = Callable[[], None]


class Timer:
    """Resumable countdown that calls back once when its target is reached.

    A timer is started without a target and fires only after ``update``
    gives it one. Elapsed time keeps counting against whatever target is
    set later, so a target already behind the elapsed time fires on the
    next loop iteration. Pausing and resetting cancel a scheduled firing.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._callback: TimerCallback | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._target: float | None = None
        self._started_at: float | None = None
        self._paused_at: float | None = None
        self._spent_paused = 0.0
        self._has_triggered = False

    @property
    def target(self) -> float | None:
        return self._target

    def start(self, callback: TimerCallback) -> None:
        self.reset()
        self._callback = callback
        self._started_at = self._clock()
        self._schedule()

    def pause(self) -> None:
        if self._started_at is None or self._paused_at is not None:
            return
        self._paused_at = self._clock()
        self._cancel()

    def resume(self) -> None:
        if self._paused_at is None:
            return
        self._spent_paused += self._clock() - self._paused_at
        self._paused_at = None
        self._schedule()

    def update(self, seconds: float | None) -> None:
        self._target = seconds
        self._cancel()
        self._schedule()

    def reset(self) -> None:
        self._cancel()
        self._callback = None
        self._target = None
        self._started_at = None
        self._paused_at = None
        self._spent_paused = 0.0
        self._has_triggered = False

    def is_running(self) -> bool:
        return self._started_at is not None and self._paused_at is None

    def is_paused(self) -> bool:
        return self._paused_at is not None

    def is_expired(self) -> bool:
        if self._has_triggered:
            return True
        if self._target is None or self._started_at is None:
            return False
        return self.get_elapsed() >= self._target

    def get_elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        now = self._paused_at if self._paused_at is not None else self._clock()
        return now - self._started_at - self._spent_paused

    def get_remaining_seconds(self) -> float | None:
        if self._target is None:
            return None
        return max(0.0, self._target - self.get_elapsed())

    def _schedule(self) -> None:
        if (
            self._target is None
            or self._callback is None
            or self._has_triggered
            or not self.is_running()
        ):
            return
        delay = max(0.0, self._target - self.get_elapsed())
        self._handle = asyncio.get_running_loop().call_later(delay, self._fire)

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        callback = self._callback
        if callback is None or self._has_triggered:
            return
        self._has_triggered = True
        callback()
