"""
OpenAI Speech Backend - cloud text-to-speech.

Usage:
    backend = OpenAISpeechBackend(model="tts-1")
    audio = await backend.synthesize("Hello!", voice="echo")

Voices:
    - alloy: Neutral, balanced
    - echo: Slightly deeper
    - fable: Expressive, British accent
    - onyx: Deep, authoritative
    - nova: Warm, friendly
    - shimmer: Clear, energetic

Requires:
    - OPENAI_API_KEY environment variable (or api_key argument)
    - openai package
"""

from __future__ import annotations

import logging
import os

from speakstream.backends.base import BaseSpeechBackend
from speakstream.errors import SynthesisError

logger = logging.getLogger(__name__)


OPENAI_VOICES = {
    "alloy": "Neutral, balanced tone",
    "echo": "Slightly deeper voice",
    "fable": "Expressive, British accent",
    "onyx": "Deep, authoritative",
    "nova": "Warm, friendly",
    "shimmer": "Clear, energetic",
}

# Formats soundfile can decode for playback
SUPPORTED_FORMATS = ("mp3", "wav", "flac", "opus")

# Speed range accepted by the speech endpoint
API_MIN_SPEED = 0.25
API_MAX_SPEED = 4.0


class OpenAISpeechBackend(BaseSpeechBackend):
    """OpenAI speech backend using the async OpenAI client.

    One AsyncOpenAI client is shared by all concurrent requests of the
    session, so connections are pooled.

    Limitations:
        - Requires API key and internet
        - Speed is clamped to the API range (0.25-4.0); use the
          transcoder for faster speech
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = "tts-1",
        response_format: str = "mp3",
        base_url: str | None = None,
    ):
        """Initialize OpenAI speech backend.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Model to use ("tts-1", "tts-1-hd", ...)
            response_format: Audio format (one of SUPPORTED_FORMATS)
            base_url: Optional API base URL override
        """
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self._api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )
        if response_format not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported response_format {response_format!r}, "
                f"expected one of {SUPPORTED_FORMATS}"
            )

        self._model = model
        self._response_format = response_format
        self._base_url = base_url
        self._client = None

    def _get_client(self):
        """Lazy-load the AsyncOpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError:
                raise ImportError(
                    "openai package required. Install with: pip install openai"
                )
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    @property
    def name(self) -> str:
        return "openai"

    @property
    def audio_format(self) -> str:
        return self._response_format

    async def synthesize(self, text: str, *, voice: str, speed: float = 1.0) -> bytes:
        """Request speech for one sentence."""
        client = self._get_client()
        clamped = max(API_MIN_SPEED, min(API_MAX_SPEED, speed))
        if clamped != speed:
            logger.warning(
                "Speed %s is outside the OpenAI range %s-%s, requesting %s. "
                "Enable transcode_speed to apply it with ffmpeg.",
                speed, API_MIN_SPEED, API_MAX_SPEED, clamped,
            )
            speed = clamped

        logger.debug(f"OpenAI speech: {len(text)} chars, voice={voice}, speed={speed}")

        try:
            response = await client.audio.speech.create(
                model=self._model,
                voice=voice,
                input=text,
                response_format=self._response_format,
                speed=speed,
            )
        except Exception as e:
            raise SynthesisError(
                text,
                f"OpenAI speech request failed: {e}",
                details={"model": self._model, "voice": voice},
            ) from e

        audio = response.content
        if not audio:
            raise SynthesisError(text, "OpenAI speech response contained no audio")
        return audio

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    def get_voices(self) -> list[str]:
        """Get available OpenAI voices."""
        return list(OPENAI_VOICES.keys())
