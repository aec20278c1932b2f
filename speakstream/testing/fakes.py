"""
Fake output device for testing without audio hardware.

Features:
    - Records every appended clip with the device it "played" on
    - Simulates playback time from clip durations
    - Simulated system default device that tests can change
    - Failure injection for append()
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from speakstream.errors import PlaybackError
from speakstream.playback.device import AudioClip


@dataclass
class PlayedClip:
    """Record of a clip appended to the fake device."""

    clip: AudioClip
    device: str | None
    started_at: float
    volume: float

    @property
    def label(self) -> str:
        return self.clip.label


class FakeOutputDevice:
    """In-memory OutputDevice with simulated timing.

    Example:
        device = FakeOutputDevice(default_device="Speakers")
        speaker = SpeakStream(config, backend=MockSpeechBackend(), device=device)
        ...
        device.set_default_device("Headphones")
        assert device.labels == ["Hello there.", "General Kenobi."]

    Args:
        default_device: Name of the simulated system default device.
        time_scale: Simulated seconds per second of audio. 0 plays instantly.
        min_duration: Lower bound on simulated play time per clip.
    """

    def __init__(
        self,
        default_device: str | None = "Fake Speakers",
        time_scale: float = 1.0,
        min_duration: float = 0.0,
    ):
        self.time_scale = time_scale
        self.min_duration = min_duration

        self._cond = threading.Condition()
        self._default_device = default_device
        self._selected: str | None = None
        self._device_name = default_device
        self._ends_at = 0.0
        self._fail_appends = 0

        self.played: list[PlayedClip] = []
        self.switches: list[tuple[str | None, str | None]] = []
        self.stop_count = 0
        self.volume = 1.0
        self.paused = False
        self.closed = False

    # =========================================================================
    # Test controls
    # =========================================================================

    def set_default_device(self, name: str | None) -> None:
        """Simulate the user changing the system default device."""
        with self._cond:
            self._default_device = name

    def fail_next_appends(self, count: int = 1) -> None:
        """Make the next count append() calls raise PlaybackError."""
        with self._cond:
            self._fail_appends = count

    @property
    def labels(self) -> list[str]:
        """Labels of appended clips, in order."""
        with self._cond:
            return [p.label for p in self.played]

    @property
    def device_name(self) -> str | None:
        with self._cond:
            return self._device_name

    # =========================================================================
    # OutputDevice
    # =========================================================================

    def append(self, clip: AudioClip) -> None:
        with self._cond:
            target = self._selected or self._default_device
            if target != self._device_name:
                self.switches.append((self._device_name, target))
                self._device_name = target

            if self._fail_appends > 0:
                self._fail_appends -= 1
                raise PlaybackError(f"Simulated device failure for {clip.label!r}")

            now = time.monotonic()
            start = max(now, self._ends_at)
            duration = max(self.min_duration, clip.duration * self.time_scale)
            self._ends_at = start + duration
            self.played.append(PlayedClip(
                clip=clip,
                device=self._device_name,
                started_at=start,
                volume=self.volume,
            ))
            self._cond.notify_all()

    def stop(self) -> None:
        with self._cond:
            self._ends_at = time.monotonic()
            self.stop_count += 1
            self._cond.notify_all()

    def play(self) -> None:
        self.paused = False

    def pause(self) -> None:
        self.paused = True

    def is_empty(self) -> bool:
        with self._cond:
            return time.monotonic() >= self._ends_at

    def sleep_until_end(self, timeout: float | None = None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                now = time.monotonic()
                remaining = self._ends_at - now
                if remaining <= 0:
                    return True
                wait = remaining if deadline is None else min(remaining, deadline - now)
                if wait <= 0:
                    return False
                self._cond.wait(wait)

    def current_default_device_name(self) -> str | None:
        with self._cond:
            return self._default_device

    def select_device(self, device: str | None) -> None:
        with self._cond:
            self._selected = device

    def set_volume(self, volume: float) -> None:
        self.volume = volume

    def close(self) -> None:
        self.stop()
        self.closed = True
