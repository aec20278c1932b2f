"""
Playback: output devices, fallback cue and the ordered sequencer.
"""

from speakstream.playback.device import (
    AudioClip,
    OutputDevice,
    DefaultDeviceSink,
    list_output_devices,
    default_output_device_name,
)
from speakstream.playback.cues import chime, load_fallback_cue
from speakstream.playback.sequencer import PlaybackSequencer, InterruptSignal

__all__ = [
    "AudioClip",
    "OutputDevice",
    "DefaultDeviceSink",
    "list_output_devices",
    "default_output_device_name",
    "chime",
    "load_fallback_cue",
    "PlaybackSequencer",
    "InterruptSignal",
]
