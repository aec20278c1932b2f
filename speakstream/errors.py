"""
SpeakStream Errors - Domain-specific error types.

Error hierarchy:
    SpeakStreamError (base)
    ├── SynthesisError
    ├── TranscodeError
    └── PlaybackError
        └── DeviceUnavailableError (fatal at startup)

Synthesis and transcode errors never escape the dispatcher. They are
converted into failed results that still occupy their slot in the
playback order.
"""

from __future__ import annotations

from typing import Any


class SpeakStreamError(Exception):
    """Base error for all speakstream errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SynthesisError(SpeakStreamError):
    """
    Raised when the speech service cannot produce audio for a sentence.

    Covers request failures, deadline overruns and failures while
    saving the returned audio.
    """

    def __init__(
        self,
        text: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.text = text


class TranscodeError(SpeakStreamError):
    """
    Raised when the external transcoder fails.

    Examples:
    - ffmpeg is not installed or not on PATH
    - ffmpeg exits with a non-zero status
    - ffmpeg runs past its deadline
    """

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.returncode = returncode
        self.stderr = stderr


class PlaybackError(SpeakStreamError):
    """Raised when a single item cannot be decoded or played."""


class DeviceUnavailableError(PlaybackError):
    """
    CRITICAL: Raised when no output device can be opened.

    This is the only fatal condition of the engine. Without an audio
    sink there is nothing to play to, so startup aborts.
    """

    def __init__(
        self,
        message: str,
        device: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.device = device
