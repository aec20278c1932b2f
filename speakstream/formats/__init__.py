"""
Audio format helpers: speed transcoding and playback conversion.
"""

from speakstream.formats.sample_rate import (
    ResamplingQuality,
    SampleRateConverter,
    match_channels,
    resample,
)
from speakstream.formats.transcoder import adjust_speed, build_command, find_ffmpeg

__all__ = [
    "ResamplingQuality",
    "SampleRateConverter",
    "match_channels",
    "resample",
    "adjust_speed",
    "build_command",
    "find_ffmpeg",
]
