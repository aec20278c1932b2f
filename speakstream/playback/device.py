"""
Output Device - the audio sink the sequencer plays into.

OutputDevice is the protocol the PlaybackSequencer depends on.
DefaultDeviceSink implements it on a ``sounddevice.OutputStream``:

    - follows the system default output device, or a selected device
    - reopens its stream when the target device changes (hot-swap),
      carrying the unplayed audio over to the new device
    - converts every clip to the stream's sample rate and channel count

PortAudio snapshots the device list when it is initialized. To notice
a new system default the sink re-initializes PortAudio, which closes
every open stream, so this only happens while the sink is idle and at
most once per ``refresh_interval``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import numpy as np
import soundfile as sf

from speakstream.errors import DeviceUnavailableError, PlaybackError
from speakstream.formats.sample_rate import match_channels, resample

logger = logging.getLogger(__name__)


@dataclass
class AudioClip:
    """Decoded audio ready for playback.

    Attributes:
        samples: float32 samples shaped (frames,) or (frames, channels).
        sample_rate: Sample rate in Hz.
        label: What the clip is (sentence text, cue name), for logs.
    """

    samples: np.ndarray
    sample_rate: int
    label: str = ""

    @property
    def channels(self) -> int:
        return 1 if self.samples.ndim == 1 else self.samples.shape[1]

    @property
    def frames(self) -> int:
        return len(self.samples)

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate if self.sample_rate else 0.0

    @classmethod
    def from_file(cls, path: str | Path) -> "AudioClip":
        """Decode an audio file.

        Raises:
            PlaybackError: If the file cannot be read or decoded.
        """
        try:
            data, sample_rate = sf.read(str(path), dtype="float32", always_2d=True)
        except (RuntimeError, OSError) as e:
            # soundfile.LibsndfileError subclasses RuntimeError
            raise PlaybackError(
                f"Could not decode {Path(path).name}: {e}",
                details={"path": str(path)},
            ) from e
        return cls(samples=data, sample_rate=sample_rate, label=Path(path).name)


@runtime_checkable
class OutputDevice(Protocol):
    """Protocol for playback sinks."""

    def append(self, clip: AudioClip) -> None:
        """Queue a clip after whatever is already queued."""
        ...

    def stop(self) -> None:
        """Drop all queued audio immediately."""
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def is_empty(self) -> bool:
        ...

    def sleep_until_end(self, timeout: float | None = None) -> bool:
        """Block until the queue has played out.

        Returns:
            True if the queue is empty, False if the timeout expired first.
        """
        ...

    def current_default_device_name(self) -> str | None:
        ...

    def select_device(self, device: str | None) -> None:
        """Play on device from the next clip on. None follows the default."""
        ...

    def set_volume(self, volume: float) -> None:
        ...

    def close(self) -> None:
        ...


# =============================================================================
# Device discovery
# =============================================================================

def _sounddevice():
    """Import sounddevice on first use. It needs the PortAudio library."""
    try:
        import sounddevice
    except OSError as e:
        raise DeviceUnavailableError(f"PortAudio library not available: {e}") from e
    return sounddevice


def list_output_devices() -> list[str]:
    """Names of all devices with output channels."""
    try:
        sd = _sounddevice()
    except DeviceUnavailableError as e:
        logger.warning("Could not query audio devices: %s", e)
        return []
    try:
        devices = sd.query_devices()
    except sd.PortAudioError as e:
        logger.warning("Could not query audio devices: %s", e)
        return []
    return [d["name"] for d in devices if d["max_output_channels"] > 0]


def default_output_device_name() -> str | None:
    """Name of the system default output device, if there is one."""
    try:
        sd = _sounddevice()
    except DeviceUnavailableError:
        return None
    try:
        return sd.query_devices(kind="output")["name"]
    except (sd.PortAudioError, ValueError):
        return None


def _find_output_device(name: str) -> int | None:
    sd = _sounddevice()
    try:
        devices = sd.query_devices()
    except sd.PortAudioError:
        return None
    for index, device in enumerate(devices):
        if device["name"] == name and device["max_output_channels"] > 0:
            return index
    return None


def _portaudio_restart():
    """Hooks that re-enumerate devices, or None if unavailable.

    PortAudio reads the device list once, in Pa_Initialize, and
    sounddevice has no public rescan. Its private _terminate/_initialize
    pair restarts PortAudio, closing every open stream.
    """
    sd = _sounddevice()
    try:
        return sd._terminate, sd._initialize
    except AttributeError:
        return None


class _QueuedClip:
    """Converted clip plus its play position."""

    def __init__(self, data: np.ndarray):
        self.data = data
        self.pos = 0

    def take(self, frames: int) -> np.ndarray:
        chunk = self.data[self.pos:self.pos + frames]
        self.pos += len(chunk)
        return chunk

    @property
    def exhausted(self) -> bool:
        return self.pos >= len(self.data)

    def remainder(self) -> np.ndarray:
        return self.data[self.pos:]


# =============================================================================
# Sounddevice sink
# =============================================================================

class DefaultDeviceSink:
    """
    Playback sink following the default (or a selected) output device.

    Example:
        sink = DefaultDeviceSink()
        sink.append(AudioClip.from_file("hello.wav"))
        sink.sleep_until_end()
        sink.close()

    Args:
        device: Output device name. None follows the system default.
        refresh_interval: Minimum seconds between default-device checks.

    Raises:
        DeviceUnavailableError: If no output device can be opened.
    """

    def __init__(
        self,
        device: str | None = None,
        refresh_interval: float = 1.0,
    ):
        self._selected = device
        self._refresh_interval = refresh_interval
        self._last_refresh = time.monotonic()

        # _lock guards the clip queue and is taken by the audio callback.
        # _device_lock guards the stream and is never taken by the callback.
        self._lock = threading.Lock()
        self._device_lock = threading.RLock()
        self._queue: deque[_QueuedClip] = deque()
        self._drained = threading.Event()
        self._drained.set()
        self._paused = False
        self._volume = 1.0

        self._stream = None
        self._device_name: str | None = None
        self._sample_rate = 0
        self._channels = 0

        with self._device_lock:
            self._open(self._target_device_name())

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def device_name(self) -> str | None:
        """Name of the device the stream is open on."""
        return self._device_name

    @property
    def selected_device(self) -> str | None:
        return self._selected

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    def select_device(self, device: str | None) -> None:
        """Select an output device by name. None follows the system default.

        Takes effect with the next appended clip.
        """
        with self._device_lock:
            self._selected = device

    def current_default_device_name(self) -> str | None:
        return default_output_device_name()

    # =========================================================================
    # Playback control
    # =========================================================================

    def append(self, clip: AudioClip) -> None:
        with self._device_lock:
            self._ensure_device()
            data = resample(clip.samples, clip.sample_rate, self._sample_rate)
            data = match_channels(data, self._channels).astype(np.float32, copy=False)

        with self._lock:
            self._queue.append(_QueuedClip(data))
            self._drained.clear()

    def stop(self) -> None:
        with self._lock:
            self._queue.clear()
            self._drained.set()

    def play(self) -> None:
        self._paused = False

    def pause(self) -> None:
        self._paused = True

    def is_empty(self) -> bool:
        with self._lock:
            return not self._queue

    def sleep_until_end(self, timeout: float | None = None) -> bool:
        if self._drained.wait(timeout):
            return True

        stream = self._stream
        if stream is None or not stream.active:
            logger.warning("Output stream stopped with audio still queued; dropping it")
            self.stop()
            return True
        return False

    def set_volume(self, volume: float) -> None:
        self._volume = max(0.0, float(volume))

    def close(self) -> None:
        self.stop()
        with self._device_lock:
            self._close_stream()

    # =========================================================================
    # Device management
    # =========================================================================

    def _target_device_name(self) -> str | None:
        if self._selected is not None:
            if _find_output_device(self._selected) is not None:
                return self._selected
            logger.warning(
                "Output device %r not found, using the system default", self._selected
            )
        return None

    def _ensure_device(self) -> None:
        """Reopen the stream if the target device changed."""
        # Caller holds _device_lock.
        previous = self._device_name
        if self._stream is not None and not self._stream.active:
            logger.warning("Output stream on %s died, reopening", previous)
            self._close_stream()

        target = self._target_device_name()
        if target is None and self._should_refresh():
            self._last_refresh = time.monotonic()
            restart = _portaudio_restart()
            if restart is None:
                logger.debug("sounddevice cannot re-enumerate devices")
            else:
                terminate, initialize = restart
                self._close_stream()
                terminate()
                initialize()

        if self._stream is not None:
            wanted = target if target is not None else default_output_device_name()
            if wanted == previous:
                return
            self._close_stream()

        self._open(target)
        if self._device_name != previous:
            logger.info(
                "Output device changed: %s -> %s", previous, self._device_name,
                extra={"event": "hot_swap", "device": self._device_name},
            )

    def _should_refresh(self) -> bool:
        if time.monotonic() - self._last_refresh < self._refresh_interval:
            return False
        return self.is_empty()

    def _open(self, name: str | None) -> None:
        """Open and start a stream on name (None = system default)."""
        index = _find_output_device(name) if name is not None else None
        sd = _sounddevice()
        try:
            info = sd.query_devices(index, kind="output")
            sample_rate = int(info["default_samplerate"])
            channels = max(1, min(2, int(info["max_output_channels"])))
            stream = sd.OutputStream(
                device=index,
                samplerate=sample_rate,
                channels=channels,
                dtype="float32",
                callback=self._callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            raise DeviceUnavailableError(
                f"Could not open output device {name or 'default'}: {e}",
                device=name,
            ) from e

        previous_rate, previous_channels = self._sample_rate, self._channels
        self._stream = stream
        self._device_name = info["name"]
        self._sample_rate = sample_rate
        self._channels = channels
        logger.debug(
            "Opened output stream on %s (%d Hz, %d ch)",
            self._device_name, sample_rate, channels,
        )

        if previous_rate and (previous_rate, previous_channels) != (sample_rate, channels):
            self._convert_queue(previous_rate)

    def _convert_queue(self, from_rate: int) -> None:
        """Carry unplayed audio over to the new stream format."""
        with self._lock:
            carried = deque()
            for queued in self._queue:
                data = resample(queued.remainder(), from_rate, self._sample_rate)
                carried.append(_QueuedClip(
                    match_channels(data, self._channels).astype(np.float32, copy=False)
                ))
            self._queue = carried

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        sd = _sounddevice()
        try:
            stream.close(ignore_errors=True)
        except sd.PortAudioError as e:
            logger.debug("Error closing output stream: %s", e)

    def _callback(self, outdata, frames, time_info, status) -> None:
        if status:
            logger.debug("Output stream status: %s", status)

        filled = 0
        volume = self._volume
        with self._lock:
            if not self._paused:
                while filled < frames and self._queue:
                    queued = self._queue[0]
                    chunk = queued.take(frames - filled)
                    outdata[filled:filled + len(chunk)] = chunk * volume
                    filled += len(chunk)
                    if queued.exhausted:
                        self._queue.popleft()
                if not self._queue:
                    self._drained.set()
        outdata[filled:] = 0
