"""
Fallback cue - the sound played in place of a segment that failed.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import numpy as np

from speakstream.errors import PlaybackError
from speakstream.playback.device import AudioClip

logger = logging.getLogger(__name__)

CHIME_SAMPLE_RATE = 24000
CHIME_TONES = (660.0, 880.0)
CHIME_TONE_DURATION = 0.12
CHIME_AMPLITUDE = 0.25

FALLBACK_LABEL = "fallback-cue"


def chime(sample_rate: int = CHIME_SAMPLE_RATE) -> AudioClip:
    """Two short rising tones with a fade on each edge."""
    num_samples = int(CHIME_TONE_DURATION * sample_rate)
    t = np.arange(num_samples, dtype=np.float32) / sample_rate

    fade = min(num_samples // 4, int(0.01 * sample_rate))
    envelope = np.ones(num_samples, dtype=np.float32)
    if fade:
        ramp = np.linspace(0.0, 1.0, fade, dtype=np.float32)
        envelope[:fade] = ramp
        envelope[-fade:] = ramp[::-1]

    tones = [
        (np.sin(2 * np.pi * freq * t) * CHIME_AMPLITUDE * envelope).astype(np.float32)
        for freq in CHIME_TONES
    ]
    return AudioClip(
        samples=np.concatenate(tones),
        sample_rate=sample_rate,
        label=FALLBACK_LABEL,
    )


def load_fallback_cue(path: str | Path | None = None) -> AudioClip:
    """Load the configured cue file, or generate the chime.

    An unreadable cue file is logged and replaced by the chime.
    """
    if path is None:
        return chime()
    try:
        return replace(AudioClip.from_file(path), label=FALLBACK_LABEL)
    except PlaybackError as e:
        logger.warning("Fallback cue %s unusable, using chime: %s", path, e)
        return chime()
