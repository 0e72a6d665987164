"""
Playback of a planning sequence.

The controller moves a cursor over the session's sequence, either stepping
manually or advancing on a timer. Timers come from a :class:`Scheduler` so
that playback can run on an asyncio loop or on a virtual clock in tests.

Only one timer is ever pending. Every (re)schedule cancels the previous
timer first, and each tick re-checks that it is still the current timer
and re-reads the sequence length before moving the cursor.
"""

import asyncio
import heapq
import itertools
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

import structlog

from .claims import ClaimMap
from .plan_codec import Move, PlanItem
from .planner import PlanningSession

logger = structlog.get_logger()

# Interval per step in milliseconds, slowest first
PLAYBACK_SPEEDS = {
    4000: "0.25x",
    2000: "0.5x",
    1000: "1x",
    500: "2x",
    250: "4x",
}


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. Safe to call more than once."""


class Scheduler(ABC):
    """Source of one-shot timers."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds."""


class _ManualTimer(TimerHandle):
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Virtual clock. Timers fire only when :meth:`advance` moves time past them."""

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, _ManualTimer]] = []
        self._order = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self.now + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (timer.when, next(self._order), timer))
        return timer

    @property
    def pending(self) -> int:
        """Number of timers that are scheduled and not cancelled."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing due timers in order.

        Timers scheduled by callbacks fire too if they fall within the window.

        Returns:
            Number of callbacks run
        """
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = when
            timer.cancelled = True
            timer.callback()
            fired += 1
        self.now = target
        return fired


class _AsyncioTimer(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


class AsyncioScheduler(Scheduler):
    """Timers on an asyncio event loop (the running loop by default)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return _AsyncioTimer(loop.call_later(delay, callback))


class PlaybackState(str, Enum):
    STOPPED = "stopped"
    PAUSED = "paused"
    PLAYING = "playing"


@dataclass(frozen=True)
class PlaybackFrame:
    """Claim map to render for one cursor position."""

    index: int
    claims: ClaimMap
    highlight_tile_id: Optional[int]
    item: Optional[PlanItem]


class PlaybackController:
    """
    Transport controls over a planning session.

    The cursor ranges over ``[-1, len - 1]``; -1 means stopped. Reaching the
    end while playing pauses on the last item rather than stopping. Without
    an explicit ``speed_ms`` the configured ``playback_speed_ms`` is used.
    """

    def __init__(
        self,
        session: PlanningSession,
        scheduler: Scheduler,
        speed_ms: Optional[int] = None,
    ):
        if speed_ms is None:
            from ..config import settings

            speed_ms = settings.playback_speed_ms
        self.session = session
        self.scheduler = scheduler
        self._check_speed(speed_ms)
        self.speed_ms = speed_ms
        self.cursor = -1
        self._playing = False
        self._timer: Optional[TimerHandle] = None
        self._generation = 0
        self._unsubscribe = session.subscribe(self._on_sequence_changed)

    @staticmethod
    def _check_speed(speed_ms: int) -> None:
        if speed_ms not in PLAYBACK_SPEEDS:
            raise ValueError(f"Unsupported playback speed {speed_ms}ms, expected one of {sorted(PLAYBACK_SPEEDS)}")

    # State

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def state(self) -> PlaybackState:
        if self._playing:
            return PlaybackState.PLAYING
        if self.cursor < 0:
            return PlaybackState.STOPPED
        return PlaybackState.PAUSED

    @property
    def progress(self) -> float:
        """Cursor position normalised to [0, 1]; 0 when stopped."""
        length = len(self.session)
        if self.cursor < 0 or length <= 1:
            return 0.0
        return self.cursor / (length - 1)

    # Timer

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self) -> None:
        self._cancel_timer()
        generation = self._generation
        self._timer = self.scheduler.call_later(self.speed_ms / 1000, lambda: self._tick(generation))

    def _tick(self, generation: int) -> None:
        # A timer that was cancelled or replaced must not move the cursor
        if generation != self._generation or not self._playing:
            return
        self._timer = None

        length = len(self.session)
        if length == 0:
            self.stop()
            return

        if self.cursor >= length - 1:
            self.cursor = length - 1
            self._playing = False
            self._generation += 1
            logger.debug("Playback reached the end", cursor=self.cursor)
            return

        self.cursor += 1
        self._schedule()

    # Transport

    def play(self) -> None:
        """Start or resume; restarts from the first item when at the end."""
        length = len(self.session)
        if length == 0 or self._playing:
            return
        if self.cursor < 0 or self.cursor >= length - 1:
            self.cursor = 0
        self._playing = True
        self._schedule()
        logger.debug("Playback started", cursor=self.cursor, speed_ms=self.speed_ms)

    def pause(self) -> None:
        self._cancel_timer()
        if self._playing:
            self._playing = False
            logger.debug("Playback paused", cursor=self.cursor)

    def toggle(self) -> None:
        if self._playing:
            self.pause()
        else:
            self.play()

    def stop(self) -> None:
        self._cancel_timer()
        self._playing = False
        self.cursor = -1

    def step_forward(self) -> None:
        length = len(self.session)
        if length == 0:
            return
        self.pause()
        self.cursor = min(length - 1, 0 if self.cursor < 0 else self.cursor + 1)

    def step_backward(self) -> None:
        if len(self.session) == 0:
            return
        self.pause()
        self.cursor = max(0, max(0, self.cursor) - 1)

    def seek(self, position: float) -> None:
        """Jump to a normalised position in [0, 1] (clamped)."""
        length = len(self.session)
        if length == 0:
            return
        if not math.isfinite(position):
            position = 0.0
        position = min(max(position, 0.0), 1.0)
        index = math.floor(position * (length - 1) + 0.5)
        self.cursor = max(0, min(length - 1, index))

    def set_speed(self, speed_ms: int) -> None:
        """Change the interval; a running timer restarts at the new speed."""
        self._check_speed(speed_ms)
        self.speed_ms = speed_ms
        if self._playing:
            self._schedule()

    def close(self) -> None:
        """Cancel any pending timer and detach from the session."""
        self.pause()
        self._unsubscribe()

    # Views

    def _on_sequence_changed(self, session: PlanningSession) -> None:
        length = len(session)
        if length == 0:
            if self.cursor != -1 or self._playing:
                self.stop()
            return
        if self.cursor > length - 1:
            self.cursor = length - 1

    def state_at(self, cursor: int) -> PlaybackFrame:
        """Claims after replaying items ``0..cursor`` and the tile touched at ``cursor``."""
        sequence = self.session.sequence
        if cursor < 0:
            return PlaybackFrame(index=cursor, claims=dict(self.session.base_claims), highlight_tile_id=None, item=None)

        claims = self.session.claims_at(min(cursor, len(sequence) - 1))
        item = sequence[cursor] if cursor < len(sequence) else None
        highlight = item.tile_id if isinstance(item, Move) else None
        return PlaybackFrame(index=cursor, claims=claims, highlight_tile_id=highlight, item=item)

    def frame(self) -> PlaybackFrame:
        return self.state_at(self.cursor)
