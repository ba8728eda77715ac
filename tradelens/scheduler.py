"""Cooperative animation-frame scheduler with an injectable clock.

Animations (force ticks, focus transitions) never loop on their own: each
step requests the next frame and returns. Tests drive frames explicitly.
"""

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from tradelens.config import SchedulerConfig

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


class ManualClock:
    """Monotonic clock in milliseconds that only moves when told to."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = start_ms

    def now(self) -> float:
        return self._now

    def advance(self, ms: float) -> float:
        if ms < 0:
            raise ValueError("Clock cannot go backwards")
        self._now += ms
        return self._now


@dataclass
class _Pending:
    handle: int
    callback: FrameCallback
    cancelled: bool = field(default=False)


class FrameScheduler:
    """Single-threaded frame queue.

    ``run_frame()`` advances the clock by one frame interval and runs the
    callbacks that were queued before the frame started; callbacks requested
    during the frame run on the next one.
    """

    def __init__(self, config: SchedulerConfig | None = None, clock: ManualClock | None = None) -> None:
        self.config = config or SchedulerConfig()
        self.clock = clock or ManualClock()
        self._queue: list[_Pending] = []
        self._by_handle: dict[int, _Pending] = {}
        self._ids = itertools.count(1)
        self.frames_run = 0

    def now(self) -> float:
        return self.clock.now()

    def request_frame(self, callback: FrameCallback) -> int:
        pending = _Pending(next(self._ids), callback)
        self._queue.append(pending)
        self._by_handle[pending.handle] = pending
        return pending.handle

    def cancel(self, handle: int | None) -> bool:
        """Cancel a pending callback. Returns False if it already ran or never existed."""
        if handle is None:
            return False
        pending = self._by_handle.pop(handle, None)
        if pending is None:
            return False
        pending.cancelled = True
        return True

    @property
    def idle(self) -> bool:
        return not any(not p.cancelled for p in self._queue)

    def run_frame(self) -> int:
        """Run one frame. Returns the number of callbacks invoked."""
        batch, self._queue = self._queue, []
        now = self.clock.advance(self.config.frame_ms)
        self.frames_run += 1
        ran = 0
        for pending in batch:
            if pending.cancelled:
                continue
            self._by_handle.pop(pending.handle, None)
            pending.callback(now)
            ran += 1
        return ran

    def run_until_idle(self, max_frames: int | None = None) -> int:
        """Run frames until nothing is pending. Returns frames run.

        Raises RuntimeError if the queue is still busy after ``max_frames``.
        """
        limit = max_frames if max_frames is not None else self.config.max_frames
        frames = 0
        while not self.idle:
            if frames >= limit:
                raise RuntimeError(f"Scheduler still busy after {limit} frames")
            self.run_frame()
            frames += 1
        logger.debug("Scheduler idle after %d frames (t=%.0fms)", frames, self.now())
        return frames
