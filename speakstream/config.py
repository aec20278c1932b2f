"""
SpeakStream configuration.

Defines the session parameters and timing constraints of the pipeline.
Values can be given directly or read from ``SPEAKSTREAM_*`` environment
variables with :meth:`SpeakStreamConfig.from_env`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping


MIN_SPEED = 0.5
MAX_SPEED = 100.0


def validate_speed(speed: float) -> float:
    """Check a speech speed multiplier against the supported range.

    Raises:
        ValueError: If speed is outside [MIN_SPEED, MAX_SPEED].
    """
    speed = float(speed)
    if not MIN_SPEED <= speed <= MAX_SPEED:
        raise ValueError(
            f"speed must be between {MIN_SPEED} and {MAX_SPEED}, got {speed}"
        )
    return speed


@dataclass
class SpeakStreamConfig:
    """Configuration for a speaking session.

    Args:
        voice: Voice identifier passed to the speech backend.
        speed: Speech speed multiplier. 1.0 is normal speed.
        backend: Speech backend name ("openai" or "mock").
        model: Speech model name for backends that take one.
        response_format: Audio format requested from the backend.
        output_device: Output device name. None follows the system default.
        queue_capacity: Jobs allowed to await release before submission blocks.
        request_timeout: Deadline for one synthesis request, in seconds.
        save_timeout: Deadline for saving one synthesized segment, in seconds.
        transcode_timeout: Deadline for one ffmpeg speed change, in seconds.
        release_poll_interval: Fallback wake-up of the release walk.
        playback_poll_interval: Interrupt check interval during playback.
        min_sentence_chars: Minimum buffered length for a punctuation cut.
        soft_limit_chars: Length after which any whitespace cuts.
        hard_limit_chars: Length at which the buffer is cut unconditionally.
        transcode_speed: Apply speed with ffmpeg instead of the backend.
        ffmpeg_path: ffmpeg binary. None looks it up on PATH.
        fallback_cue: Audio file played for failed segments. None uses a chime.
        temp_dir: Directory for synthesized segments. None uses the system temp.

    Example:
        config = SpeakStreamConfig(voice="nova", speed=1.25)
        config = SpeakStreamConfig.from_env()
    """

    voice: str = "echo"
    speed: float = 1.0
    backend: str = "openai"
    model: str = "tts-1"
    response_format: str = "mp3"
    output_device: str | None = None

    queue_capacity: int = 10
    request_timeout: float = 15.0
    save_timeout: float = 10.0
    transcode_timeout: float = 10.0
    release_poll_interval: float = 0.1
    playback_poll_interval: float = 0.05

    min_sentence_chars: int = 15
    soft_limit_chars: int = 200
    hard_limit_chars: int = 300

    transcode_speed: bool = True
    ffmpeg_path: str | None = None
    fallback_cue: Path | None = None
    temp_dir: Path | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        self.speed = validate_speed(self.speed)
        if self.queue_capacity < 1:
            raise ValueError("queue_capacity must be >= 1")
        if min(self.request_timeout, self.save_timeout, self.transcode_timeout) <= 0:
            raise ValueError("timeouts must be positive")
        if self.release_poll_interval <= 0 or self.playback_poll_interval <= 0:
            raise ValueError("poll intervals must be positive")
        if not 0 < self.min_sentence_chars < self.soft_limit_chars < self.hard_limit_chars:
            raise ValueError(
                "sentence limits must satisfy "
                "0 < min_sentence_chars < soft_limit_chars < hard_limit_chars"
            )
        if self.fallback_cue is not None:
            self.fallback_cue = Path(self.fallback_cue)
        if self.temp_dir is not None:
            self.temp_dir = Path(self.temp_dir)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "SpeakStreamConfig":
        """Build a config from ``SPEAKSTREAM_*`` environment variables.

        Args:
            environ: Mapping to read from (default: os.environ).
            **overrides: Explicit values that win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        for field_name, var, convert in _ENV_FIELDS:
            raw = env.get(var)
            if raw is None or raw == "":
                continue
            try:
                values[field_name] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {var}: {raw!r}") from e

        values.update(overrides)
        return cls(**values)


_ENV_FIELDS = (
    ("voice", "SPEAKSTREAM_VOICE", str),
    ("speed", "SPEAKSTREAM_SPEED", float),
    ("backend", "SPEAKSTREAM_BACKEND", str),
    ("model", "SPEAKSTREAM_MODEL", str),
    ("response_format", "SPEAKSTREAM_FORMAT", str),
    ("output_device", "SPEAKSTREAM_OUTPUT_DEVICE", str),
    ("queue_capacity", "SPEAKSTREAM_QUEUE_CAPACITY", int),
    ("request_timeout", "SPEAKSTREAM_REQUEST_TIMEOUT", float),
    ("save_timeout", "SPEAKSTREAM_SAVE_TIMEOUT", float),
    ("transcode_timeout", "SPEAKSTREAM_TRANSCODE_TIMEOUT", float),
    ("ffmpeg_path", "SPEAKSTREAM_FFMPEG", str),
    ("fallback_cue", "SPEAKSTREAM_FALLBACK_CUE", Path),
)
