"""
Pipeline State - explicit shared state of one speaking engine.

One PipelineState is created by the SpeakStream that owns the pipeline
and passed by reference to every stage. It carries:

    - the epoch (generation) counter used to reject pre-interrupt work
    - the activity of each stage, from which the session state is derived

Session states:

    IDLE → ACCUMULATING → DISPATCHING → PLAYING → IDLE
      └───────────── INTERRUPTED (from any state) ───────┘

Stages overlap in time (text can accumulate while earlier sentences
play), so the reported state is the most advanced active stage.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

logger = logging.getLogger(__name__)


class SpeechState(Enum):
    """State of a speaking session."""

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    DISPATCHING = "dispatching"
    PLAYING = "playing"
    INTERRUPTED = "interrupted"


class PipelineState:
    """Epoch counter and stage activity shared by the pipeline stages.

    Every job carries the epoch that was current when its sentence was
    emitted. An interrupt advances the epoch, so any stage can tell
    deterministically whether an item predates the last interrupt.

    Thread-safe. All methods may be called from any stage's thread.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._epoch = 0
        self._buffering = False
        self._playing = False
        self._interrupting = False
        # epoch -> jobs submitted and not yet played or discarded
        self._in_flight: dict[int, int] = {}
        self._last_state = SpeechState.IDLE

    @property
    def epoch(self) -> int:
        """Current epoch."""
        with self._cond:
            return self._epoch

    def is_current(self, epoch: int) -> bool:
        """Whether work tagged with epoch is still wanted."""
        with self._cond:
            return epoch == self._epoch

    def advance_epoch(self) -> int:
        """Invalidate all outstanding work. Returns the new epoch."""
        with self._cond:
            self._epoch += 1
            self._buffering = False
            self._changed()
            return self._epoch

    @property
    def state(self) -> SpeechState:
        """Current session state."""
        with self._cond:
            return self._derive()

    @property
    def in_flight(self) -> int:
        """Jobs of the current epoch not yet played or discarded."""
        with self._cond:
            return self._in_flight.get(self._epoch, 0)

    def set_buffering(self, buffering: bool) -> None:
        with self._cond:
            self._buffering = buffering
            self._changed()

    def set_playing(self, playing: bool) -> None:
        with self._cond:
            self._playing = playing
            self._changed()

    def job_submitted(self, epoch: int) -> None:
        with self._cond:
            self._in_flight[epoch] = self._in_flight.get(epoch, 0) + 1
            self._changed()

    def job_finished(self, epoch: int) -> None:
        """Record the terminal outcome of one job (played or discarded)."""
        with self._cond:
            remaining = self._in_flight.get(epoch, 0) - 1
            if remaining > 0:
                self._in_flight[epoch] = remaining
            else:
                self._in_flight.pop(epoch, None)
            self._changed()

    @contextmanager
    def interrupting(self) -> Iterator[int]:
        """Hold the INTERRUPTED state while the pipeline is being reset.

        Advances the epoch on entry and yields the new epoch.
        """
        with self._cond:
            self._interrupting = True
        new_epoch = self.advance_epoch()
        try:
            yield new_epoch
        finally:
            with self._cond:
                self._interrupting = False
                self._changed()

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until the session is IDLE.

        Returns:
            True if idle, False if the timeout expired first.
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: self._derive() is SpeechState.IDLE,
                timeout=timeout,
            )

    def _derive(self) -> SpeechState:
        if self._interrupting:
            return SpeechState.INTERRUPTED
        if self._playing:
            return SpeechState.PLAYING
        if self._in_flight.get(self._epoch, 0) > 0:
            return SpeechState.DISPATCHING
        if self._buffering:
            return SpeechState.ACCUMULATING
        return SpeechState.IDLE

    def _changed(self) -> None:
        # Caller holds the condition.
        new_state = self._derive()
        if new_state is not self._last_state:
            logger.debug(
                "Speech state %s -> %s (epoch %d)",
                self._last_state.value, new_state.value, self._epoch,
            )
            self._last_state = new_state
        self._cond.notify_all()
