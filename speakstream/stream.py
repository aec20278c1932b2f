"""
SpeakStream - incremental text-to-speech with ordered playback.

Turns a live stream of text fragments (e.g. LLM tokens) into speech:

    add_token() ─► SentenceAccumulator ─► SynthesisDispatcher ─► PlaybackSequencer ─► device
                      (caller thread)       (asyncio loop +        (playback thread)
                                             release thread)

Sentences are synthesized concurrently but always played in the order
they were emitted. stop_speech() silences everything at once: buffered
text, in-flight requests and queued or playing audio.

Usage:
    with SpeakStream(SpeakStreamConfig(voice="nova")) as speaker:
        for token in llm_tokens:
            speaker.add_token(token)
        speaker.complete_sentence()
        speaker.wait_until_idle()
"""

from __future__ import annotations

import logging
import threading

from speakstream.backends.base import SpeechBackend
from speakstream.backends.loader import load_backend
from speakstream.config import SpeakStreamConfig
from speakstream.playback.device import DefaultDeviceSink, OutputDevice
from speakstream.playback.sequencer import PlaybackSequencer
from speakstream.runtime.dispatcher import SynthesisDispatcher
from speakstream.state import PipelineState, SpeechState
from speakstream.text.accumulator import SentenceAccumulator

logger = logging.getLogger(__name__)


class SpeakStream:
    """
    Speaking session: accumulator, dispatcher and sequencer wired together.

    ``add_token`` and ``complete_sentence`` must be called from one
    thread at a time. ``stop_speech`` may be called from any thread.

    Args:
        config: Session configuration (default: read from the environment).
        backend: Speech backend (default: built from ``config.backend``).
        device: Output device (default: a DefaultDeviceSink).

    Raises:
        DeviceUnavailableError: If no output device can be opened.
    """

    def __init__(
        self,
        config: SpeakStreamConfig | None = None,
        backend: SpeechBackend | None = None,
        device: OutputDevice | None = None,
    ):
        self.config = config or SpeakStreamConfig.from_env()
        config = self.config

        if backend is None:
            backend = load_backend(config.backend, **self._backend_options())
        if device is None:
            device = DefaultDeviceSink(config.output_device)

        self._backend = backend
        self._state = PipelineState()
        self._text_lock = threading.Lock()
        self._accumulator = SentenceAccumulator(
            min_length=config.min_sentence_chars,
            soft_limit=config.soft_limit_chars,
            hard_limit=config.hard_limit_chars,
        )
        self._sequencer = PlaybackSequencer(device, self._state, config)
        self._dispatcher = SynthesisDispatcher(
            backend, self._state, config, self._sequencer.enqueue
        )
        self._output_device = config.output_device
        self._closed = False

        logger.debug(
            "SpeakStream started (backend=%s, voice=%s, speed=%s)",
            backend.name, config.voice, config.speed,
        )

    def _backend_options(self) -> dict:
        if self.config.backend == "openai":
            return {
                "model": self.config.model,
                "response_format": self.config.response_format,
            }
        return {}

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> SpeechState:
        return self._state.state

    @property
    def epoch(self) -> int:
        return self._state.epoch

    @property
    def backend(self) -> SpeechBackend:
        return self._backend

    @property
    def buffer(self) -> str:
        """Text received but not yet emitted as a sentence."""
        with self._text_lock:
            return self._accumulator.buffer

    @property
    def pending(self) -> int:
        """Sentences submitted and not yet played or discarded."""
        return self._state.in_flight

    @property
    def is_playing(self) -> bool:
        return self._sequencer.is_playing

    # =========================================================================
    # Text input
    # =========================================================================

    def add_token(self, token: str) -> None:
        """Feed a text fragment. Completed sentences are dispatched at once.

        May block while too many sentences await playback.
        """
        with self._text_lock:
            sentences = self._accumulator.add_token(token)
            epoch = self._state.epoch
            self._state.set_buffering(self._accumulator.buffer_size > 0)
        self._dispatch(sentences, epoch)

    def complete_sentence(self) -> None:
        """Dispatch whatever text is buffered, even without a sentence end."""
        with self._text_lock:
            sentence = self._accumulator.complete_sentence()
            epoch = self._state.epoch
            self._state.set_buffering(False)
        if sentence is not None:
            self._dispatch([sentence], epoch)

    def _dispatch(self, sentences: list[str], epoch: int) -> None:
        for sentence in sentences:
            logger.debug("Sentence emitted: %r", sentence)
            self._dispatcher.submit(sentence, epoch)

    # =========================================================================
    # Interruption
    # =========================================================================

    def stop_speech(self) -> None:
        """Silence everything: buffered text, pending synthesis, playback.

        Returns without waiting for the device to go quiet.
        """
        # Advanced under _text_lock: add_token sees the old epoch or an empty buffer
        with self._text_lock, self._state.interrupting() as epoch:
            self._accumulator.clear_buffer()
            cancelled = self._dispatcher.cancel_pending()
            drained = self._sequencer.drain()
            self._sequencer.interrupt()

        logger.info(
            "Speech stopped (cancelled %d pending, drained %d queued)",
            cancelled, drained,
            extra={"event": "stop_speech", "epoch": epoch},
        )

    # =========================================================================
    # Session settings
    # =========================================================================

    def set_speech_speed(self, speed: float) -> None:
        """Set the speed of sentences dispatched from now on (0.5 - 100).

        Raises:
            ValueError: If speed is out of range.
        """
        self._dispatcher.set_speed(speed)

    def get_speech_speed(self) -> float:
        return self._dispatcher.speed

    def set_voice(self, voice: str) -> None:
        """Set the voice of sentences dispatched from now on.

        Raises:
            ValueError: If voice is empty.
        """
        self._dispatcher.set_voice(voice)

    def get_voice(self) -> str:
        return self._dispatcher.voice

    def mute(self) -> None:
        self._sequencer.mute()

    def unmute(self) -> None:
        self._sequencer.unmute()

    @property
    def is_muted(self) -> bool:
        return self._sequencer.is_muted

    def set_volume(self, volume: float) -> None:
        self._sequencer.set_volume(volume)

    def set_output_device(self, device: str | None) -> None:
        """Play on the named device. None follows the system default."""
        self._sequencer.select_device(device)
        self._output_device = device

    def get_output_device(self) -> str | None:
        """Selected output device name, None for the system default."""
        return self._output_device

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until everything dispatched has played.

        Returns:
            True if the session went idle, False on timeout.
        """
        return self._state.wait_until_idle(timeout)

    def close(self) -> None:
        """Stop all work and release the device."""
        if self._closed:
            return
        self._closed = True
        self._dispatcher.close()
        self._sequencer.close()
        logger.debug("SpeakStream closed")

    def __enter__(self) -> "SpeakStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
