"""
Testing utilities for code built on SpeakStream.

Run a full pipeline without network access or audio hardware:

    from speakstream.testing import FakeOutputDevice, MockSpeechBackend

    device = FakeOutputDevice(time_scale=0)
    with SpeakStream(config, backend=MockSpeechBackend(), device=device) as s:
        s.add_token("Hello there, how are you? ")
        s.wait_until_idle(5)
    assert device.labels == ["Hello there, how are you?"]
"""

from speakstream.backends.mock import CallRecord, MockSpeechBackend
from speakstream.testing.fakes import FakeOutputDevice, PlayedClip

__all__ = [
    "CallRecord",
    "MockSpeechBackend",
    "FakeOutputDevice",
    "PlayedClip",
]
