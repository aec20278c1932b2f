"""
SpeakStream - incremental text-to-speech for streaming text.

Speaks an LLM response while it is still being generated: tokens are
cut into sentences, sentences are synthesized concurrently, and the
audio is played strictly in order. One call silences everything.

Example:
    from speakstream import SpeakStream

    with SpeakStream() as speaker:
        for token in stream:
            speaker.add_token(token)
        speaker.complete_sentence()
        speaker.wait_until_idle()
"""

from speakstream.config import SpeakStreamConfig, MIN_SPEED, MAX_SPEED
from speakstream.errors import (
    SpeakStreamError,
    SynthesisError,
    TranscodeError,
    PlaybackError,
    DeviceUnavailableError,
)
from speakstream.state import PipelineState, SpeechState
from speakstream.stream import SpeakStream
from speakstream.text.accumulator import SentenceAccumulator
from speakstream.runtime import SynthesisDispatcher, SynthesisJob, SynthesisResult
from speakstream.playback import (
    AudioClip,
    DefaultDeviceSink,
    OutputDevice,
    PlaybackSequencer,
    list_output_devices,
)
from speakstream.backends import (
    SpeechBackend,
    MockSpeechBackend,
    load_backend,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "SpeakStream",
    "SpeakStreamConfig",
    "SpeechState",
    "MIN_SPEED",
    "MAX_SPEED",
    # Pipeline stages
    "SentenceAccumulator",
    "SynthesisDispatcher",
    "SynthesisJob",
    "SynthesisResult",
    "PlaybackSequencer",
    "PipelineState",
    # Playback
    "AudioClip",
    "OutputDevice",
    "DefaultDeviceSink",
    "list_output_devices",
    # Backends
    "SpeechBackend",
    "MockSpeechBackend",
    "load_backend",
    # Errors
    "SpeakStreamError",
    "SynthesisError",
    "TranscodeError",
    "PlaybackError",
    "DeviceUnavailableError",
]
