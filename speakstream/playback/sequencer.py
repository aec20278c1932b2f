"""
Playback Sequencer - plays released segments strictly in order.

The sequencer owns the output device and a dedicated worker thread
(``speakstream-playback``). Released results arrive in the inbox in
submission order. For each one the worker:

    1. drops it if its epoch predates the last interrupt
    2. decodes the audio, or picks the fallback cue for failed segments
    3. appends it to the device and waits for it to finish, checking the
       interrupt mailbox and the epoch every ``playback_poll_interval``

Whatever happens, the segment's temporary file is deleted and its
outcome is reported to the pipeline state exactly once.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, replace

from speakstream.config import SpeakStreamConfig
from speakstream.errors import PlaybackError
from speakstream.playback.cues import load_fallback_cue
from speakstream.playback.device import AudioClip, OutputDevice
from speakstream.runtime.jobs import SynthesisResult
from speakstream.state import PipelineState

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass(frozen=True)
class InterruptSignal:
    """Stop request for everything older than ``epoch``."""

    epoch: int


class PlaybackSequencer:
    """
    Ordered playback of synthesis results.

    Example:
        sequencer = PlaybackSequencer(DefaultDeviceSink(), state, config)
        sequencer.enqueue(result)
        sequencer.interrupt()

    Args:
        device: Output device, owned by the sequencer from now on.
        state: Shared pipeline state.
        config: Session configuration.
        fallback_cue: Clip played for failed segments. Defaults to the
            configured cue file or a generated chime.
    """

    def __init__(
        self,
        device: OutputDevice,
        state: PipelineState,
        config: SpeakStreamConfig,
        fallback_cue: AudioClip | None = None,
    ):
        self._device = device
        self._state = state
        self._poll_interval = config.playback_poll_interval
        self._fallback_cue = fallback_cue or load_fallback_cue(config.fallback_cue)

        self._inbox: queue.Queue = queue.Queue()
        self._interrupts: queue.Queue[InterruptSignal] = queue.Queue()
        self._stop_event = threading.Event()
        self._playing = threading.Event()

        self._lock = threading.Lock()
        self._volume = 1.0
        self._muted = False

        self._worker = threading.Thread(
            target=self._worker_loop,
            name="speakstream-playback",
            daemon=True,
        )
        self._worker.start()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def device(self) -> OutputDevice:
        return self._device

    @property
    def is_playing(self) -> bool:
        return self._playing.is_set()

    @property
    def queued(self) -> int:
        """Segments waiting in the inbox."""
        return self._inbox.qsize()

    @property
    def is_muted(self) -> bool:
        with self._lock:
            return self._muted

    @property
    def volume(self) -> float:
        with self._lock:
            return self._volume

    # =========================================================================
    # Control
    # =========================================================================

    def enqueue(self, result: SynthesisResult) -> None:
        """Queue a released result behind everything already queued."""
        if self._stop_event.is_set():
            self._finish(result)
            return
        self._inbox.put(result)

    def interrupt(self) -> None:
        """Stop the current segment. Returns immediately."""
        self._interrupts.put(InterruptSignal(self._state.epoch))

    def drain(self) -> int:
        """Discard every queued segment.

        Returns:
            Number of segments discarded.
        """
        drained = 0
        while True:
            try:
                item = self._inbox.get_nowait()
            except queue.Empty:
                break
            if item is _STOP:
                # Keep the stop request for the worker
                self._inbox.put(item)
                break
            self._finish(item)
            drained += 1

        if drained:
            logger.debug("Drained %d queued segments", drained)
        return drained

    def set_volume(self, volume: float) -> None:
        if volume < 0:
            raise ValueError("volume must be >= 0")
        with self._lock:
            self._volume = volume
            if not self._muted:
                self._device.set_volume(volume)

    def mute(self) -> None:
        with self._lock:
            self._muted = True
            self._device.set_volume(0.0)
        logger.info("Speech muted")

    def unmute(self) -> None:
        with self._lock:
            self._muted = False
            self._device.set_volume(self._volume)
        logger.info("Speech unmuted")

    def select_device(self, device: str | None) -> None:
        """Select an output device by name. None follows the system default."""
        self._device.select_device(device)
        logger.info("Output device set to %s", device or "system default")

    def close(self) -> None:
        """Stop the worker and close the device."""
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        self._inbox.put(_STOP)
        self._worker.join(timeout=2.0)
        self.drain()
        self._device.stop()
        self._device.close()

    # =========================================================================
    # Worker
    # =========================================================================

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                item = self._inbox.get(timeout=0.1)
            except queue.Empty:
                continue
            if item is _STOP:
                break

            try:
                self._play(item)
            except Exception:
                logger.exception("Playback of segment %d failed", item.index)
            finally:
                self._finish(item)

    def _play(self, result: SynthesisResult) -> None:
        if self._interrupted(result.epoch):
            logger.debug("Skipping stale segment %d", result.index)
            return

        clip = self._clip_for(result)

        self._playing.set()
        self._state.set_playing(True)
        try:
            try:
                self._device.append(clip)
            except PlaybackError as e:
                logger.error("Could not play segment %d: %s", result.index, e)
                return
            self._wait_for_end(result)
        finally:
            self._playing.clear()
            self._state.set_playing(False)

    def _clip_for(self, result: SynthesisResult) -> AudioClip:
        if not result.ok:
            logger.error(
                "Segment %d failed (%r): %s. Playing fallback cue.",
                result.index, result.text, result.error,
            )
            return self._fallback_cue

        try:
            return replace(AudioClip.from_file(result.audio_path), label=result.text)
        except PlaybackError as e:
            logger.error("Segment %d: %s. Playing fallback cue.", result.index, e)
            return self._fallback_cue

    def _wait_for_end(self, result: SynthesisResult) -> None:
        while not self._device.sleep_until_end(timeout=self._poll_interval):
            if self._interrupted(result.epoch):
                self._device.stop()
                logger.info(
                    "Interrupted playback of segment %d", result.index,
                    extra={"event": "interrupt", "segment": result.index},
                )
                return
        logger.debug("Played segment %d", result.index)

    def _interrupted(self, epoch: int) -> bool:
        """Consume pending interrupt signals and check the epoch."""
        interrupted = False
        while True:
            try:
                signal = self._interrupts.get_nowait()
            except queue.Empty:
                break
            # Signals from before this segment's epoch are stale
            if signal.epoch > epoch:
                interrupted = True
        return (
            interrupted
            or self._stop_event.is_set()
            or not self._state.is_current(epoch)
        )

    def _finish(self, result: SynthesisResult) -> None:
        result.discard()
        self._state.job_finished(result.epoch)
