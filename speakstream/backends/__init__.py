"""
Speech backends - the boundary to the speech-synthesis service.

Backends:
    openai  - OpenAI speech endpoint (AsyncOpenAI)
    mock    - Local tone generator for tests and demos
"""

from speakstream.backends.base import SpeechBackend, BaseSpeechBackend
from speakstream.backends.loader import load_backend, list_backends
from speakstream.backends.mock import MockSpeechBackend

__all__ = [
    "SpeechBackend",
    "BaseSpeechBackend",
    "MockSpeechBackend",
    "load_backend",
    "list_backends",
]
