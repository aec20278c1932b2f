"""
Synthesis jobs and their results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SynthesisJob:
    """One sentence scheduled for synthesis.

    Attributes:
        index: Submission index, monotonic per engine starting at 0.
        text: Sentence text.
        voice: Voice captured at submit time.
        speed: Speed captured at submit time.
        epoch: Epoch current when the sentence was emitted.
    """

    index: int
    text: str
    voice: str
    speed: float
    epoch: int


@dataclass(frozen=True)
class SynthesisResult:
    """Outcome of a synthesis job: an audio file or an error message.

    Exactly one of ``audio_path`` and ``error`` is set.
    """

    job: SynthesisJob
    audio_path: Path | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.audio_path is None) == (self.error is None):
            raise ValueError("SynthesisResult needs exactly one of audio_path or error")

    @classmethod
    def success(cls, job: SynthesisJob, audio_path: Path) -> "SynthesisResult":
        return cls(job=job, audio_path=Path(audio_path))

    @classmethod
    def failure(cls, job: SynthesisJob, error: str) -> "SynthesisResult":
        return cls(job=job, error=error)

    @property
    def ok(self) -> bool:
        return self.audio_path is not None

    @property
    def index(self) -> int:
        return self.job.index

    @property
    def text(self) -> str:
        return self.job.text

    @property
    def epoch(self) -> int:
        return self.job.epoch

    def discard(self) -> None:
        """Delete the temporary audio file, if any. Safe to call twice."""
        if self.audio_path is None:
            return
        try:
            self.audio_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove %s: %s", self.audio_path, e)
