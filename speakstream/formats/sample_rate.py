"""
Sample rate and channel conversion for playback.

Synthesized segments arrive at whatever rate the speech service
produces. The output stream runs at the device rate, so every clip is
converted before it is queued on the device.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np


class ResamplingQuality(Enum):
    """Quality level for resampling."""
    FAST = "fast"           # Linear interpolation
    MEDIUM = "medium"       # Cubic interpolation


@dataclass
class SampleRateConverter:
    """
    Sample rate converter for mono or multi-channel float audio.

    Audio is shaped (frames,) or (frames, channels). Each channel is
    resampled independently.

    Attributes:
        quality: Resampling quality level
    """
    quality: ResamplingQuality = ResamplingQuality.FAST

    def convert(
        self,
        audio: np.ndarray,
        from_rate: int,
        to_rate: int,
    ) -> np.ndarray:
        """
        Convert sample rate of audio.

        Args:
            audio: Input audio samples
            from_rate: Source sample rate
            to_rate: Target sample rate

        Returns:
            Resampled audio
        """
        if from_rate == to_rate:
            return audio.copy()

        if len(audio) == 0:
            return np.zeros((0,) + audio.shape[1:], dtype=audio.dtype)

        new_length = int(len(audio) * to_rate / from_rate)
        if new_length == 0:
            return np.zeros((0,) + audio.shape[1:], dtype=audio.dtype)

        if audio.ndim == 1:
            return self._resample_channel(audio, new_length)

        channels = [
            self._resample_channel(audio[:, ch], new_length)
            for ch in range(audio.shape[1])
        ]
        return np.stack(channels, axis=1)

    def _resample_channel(self, audio: np.ndarray, new_length: int) -> np.ndarray:
        if self.quality == ResamplingQuality.MEDIUM:
            return self._cubic_resample(audio, new_length)
        return self._linear_resample(audio, new_length)

    def _linear_resample(
        self,
        audio: np.ndarray,
        new_length: int,
    ) -> np.ndarray:
        """Linear interpolation resampling."""
        indices = np.linspace(0, len(audio) - 1, new_length)
        return np.interp(indices, np.arange(len(audio)), audio).astype(audio.dtype)

    def _cubic_resample(
        self,
        audio: np.ndarray,
        new_length: int,
    ) -> np.ndarray:
        """Catmull-Rom cubic interpolation, vectorized."""
        audio_float = audio.astype(np.float64)
        last = len(audio) - 1

        indices = np.linspace(0, last, new_length)
        idx = indices.astype(np.int64)
        frac = indices - idx

        p0 = audio_float[np.clip(idx - 1, 0, last)]
        p1 = audio_float[idx]
        p2 = audio_float[np.clip(idx + 1, 0, last)]
        p3 = audio_float[np.clip(idx + 2, 0, last)]

        result = (
            (-0.5 * p0 + 1.5 * p1 - 1.5 * p2 + 0.5 * p3) * frac**3 +
            (p0 - 2.5 * p1 + 2 * p2 - 0.5 * p3) * frac**2 +
            (-0.5 * p0 + 0.5 * p2) * frac +
            p1
        )
        return result.astype(audio.dtype)


def match_channels(audio: np.ndarray, channels: int) -> np.ndarray:
    """
    Reshape audio to (frames, channels).

    Mono is duplicated to every channel. Extra channels are mixed down
    by averaging.
    """
    if audio.ndim == 1:
        audio = audio[:, np.newaxis]

    current = audio.shape[1]
    if current == channels:
        return audio
    if current == 1:
        return np.repeat(audio, channels, axis=1)
    if channels == 1:
        return audio.mean(axis=1, keepdims=True).astype(audio.dtype)
    # Mix down, then spread
    mono = audio.mean(axis=1, keepdims=True).astype(audio.dtype)
    return np.repeat(mono, channels, axis=1)


def resample(
    audio: np.ndarray,
    from_rate: int,
    to_rate: int,
    quality: ResamplingQuality = ResamplingQuality.FAST,
) -> np.ndarray:
    """Convenience function for resampling."""
    return SampleRateConverter(quality=quality).convert(audio, from_rate, to_rate)
