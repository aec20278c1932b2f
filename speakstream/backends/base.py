"""
Backend Base - SpeechBackend protocol.

All backends implement ``synthesize(text, voice=..., speed=...) -> bytes``.

BACKEND CONTRACT:
    Backends MUST:
        - Be awaitable: synthesize() is a coroutine run on the
          dispatcher's event loop, many at a time
        - Return the encoded audio file contents (not raw PCM)
        - Declare the file suffix of that audio in ``audio_format``
        - Raise SynthesisError (or let the client error propagate)
          on failure

    Backends MUST NOT:
        - Enforce their own deadline (the dispatcher owns timeouts)
        - Write files or touch the output device
        - Block the event loop with synchronous network calls
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable


@runtime_checkable
class SpeechBackend(Protocol):
    """Protocol for speech-synthesis backends."""

    @property
    def name(self) -> str:
        """Backend identifier (e.g., 'openai', 'mock')."""
        ...

    @property
    def audio_format(self) -> str:
        """File suffix of the returned audio, without the dot."""
        ...

    async def synthesize(self, text: str, *, voice: str, speed: float = 1.0) -> bytes:
        """Synthesize one sentence.

        Args:
            text: Sentence to speak.
            voice: Voice identifier.
            speed: Speed multiplier the service should apply (1.0 = normal).

        Returns:
            Encoded audio file contents.
        """
        ...


class BaseSpeechBackend(ABC):
    """Base class for speech backends with common functionality."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""
        ...

    @property
    @abstractmethod
    def audio_format(self) -> str:
        """File suffix of the returned audio."""
        ...

    @abstractmethod
    async def synthesize(self, text: str, *, voice: str, speed: float = 1.0) -> bytes:
        """Synthesize one sentence to encoded audio."""
        ...

    async def aclose(self) -> None:
        """Release network resources. Override if the backend holds any."""

    def get_voices(self) -> list[str]:
        """Return list of supported voice IDs."""
        return []

    def supports_voice(self, voice_id: str) -> bool:
        """Check if this backend supports a voice."""
        voices = self.get_voices()
        return not voices or voice_id in voices
