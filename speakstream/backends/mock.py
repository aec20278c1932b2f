"""
Mock Backend - For testing without network access.

Features:
    - Tone or silence of a duration proportional to the text
    - Per-sentence latency simulation
    - Failure injection
    - Call recording
"""

from __future__ import annotations

import asyncio
import io
import time
from dataclasses import dataclass, field
from typing import Callable

import numpy as np
import soundfile as sf

from speakstream.backends.base import BaseSpeechBackend
from speakstream.errors import SynthesisError


@dataclass
class CallRecord:
    """Record of a mock backend call."""

    text: str
    voice: str
    speed: float
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None
    error: Exception | None = None


class MockSpeechBackend(BaseSpeechBackend):
    """Mock speech backend producing WAV audio.

    Example:
        mock = MockSpeechBackend(delays={"Slow one.": 0.5})
        mock.fail_on("Broken sentence.")

        audio = await mock.synthesize("Hello!", voice="echo")
        assert mock.texts == ["Hello!"]

    Args:
        sample_rate: Sample rate of the generated audio.
        duration_per_char: Seconds of audio per character of text.
        output_type: "tone" or "silence".
        latency: Default simulated request latency in seconds.
        delays: Per-text latency overrides, or a callable text -> seconds.
    """

    def __init__(
        self,
        sample_rate: int = 24000,
        duration_per_char: float = 0.002,
        output_type: str = "tone",
        latency: float = 0.0,
        delays: dict[str, float] | Callable[[str], float] | None = None,
    ):
        self.sample_rate = sample_rate
        self.duration_per_char = duration_per_char
        self.output_type = output_type
        self.latency = latency
        self._delays = delays or {}
        self._failures: dict[str, Exception] = {}
        self._calls: list[CallRecord] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def audio_format(self) -> str:
        return "wav"

    @property
    def calls(self) -> list[CallRecord]:
        """All recorded calls, in start order."""
        return list(self._calls)

    @property
    def call_count(self) -> int:
        return len(self._calls)

    @property
    def texts(self) -> list[str]:
        """Texts requested so far, in start order."""
        return [call.text for call in self._calls]

    def fail_on(self, text: str, error: Exception | None = None) -> None:
        """Make requests for text fail with error (default SynthesisError)."""
        self._failures[text] = error or SynthesisError(text, f"mock failure for {text!r}")

    def reset(self) -> None:
        self._calls.clear()
        self._failures.clear()

    def delay_for(self, text: str) -> float:
        if callable(self._delays):
            return self._delays(text)
        return self._delays.get(text, self.latency)

    async def synthesize(self, text: str, *, voice: str, speed: float = 1.0) -> bytes:
        record = CallRecord(text=text, voice=voice, speed=speed)
        self._calls.append(record)

        delay = self.delay_for(text)
        if delay > 0:
            await asyncio.sleep(delay)

        try:
            if text in self._failures:
                raise self._failures[text]
            return self._render(text, speed)
        except Exception as e:
            record.error = e
            raise
        finally:
            record.finished_at = time.monotonic()

    def _render(self, text: str, speed: float) -> bytes:
        duration = max(0.01, len(text) * self.duration_per_char / speed)
        num_samples = int(duration * self.sample_rate)

        if self.output_type == "silence":
            audio = np.zeros(num_samples, dtype=np.float32)
        else:
            t = np.linspace(0, duration, num_samples, dtype=np.float32)
            audio = (0.3 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)

        buffer = io.BytesIO()
        sf.write(buffer, audio, self.sample_rate, format="WAV", subtype="PCM_16")
        return buffer.getvalue()
