"""
Backend Loader - build a speech backend from its name.
"""

from __future__ import annotations

import logging

from speakstream.backends.base import SpeechBackend

logger = logging.getLogger(__name__)


def load_backend(backend: str = "openai", **kwargs) -> SpeechBackend:
    """Load a speech backend.

    Args:
        backend: Backend name. Options: "openai", "mock"
        **kwargs: Backend-specific options

    Returns:
        Initialized SpeechBackend

    Raises:
        ValueError: If the backend name is unknown
        ImportError: If the backend's client library is missing
    """
    if backend == "openai":
        from speakstream.backends.openai import OpenAISpeechBackend
        return OpenAISpeechBackend(**kwargs)

    if backend == "mock":
        from speakstream.backends.mock import MockSpeechBackend
        return MockSpeechBackend(**kwargs)

    raise ValueError(f"Unknown backend: {backend}")


def list_backends() -> list[str]:
    """List available backends."""
    available = ["mock"]  # Always available

    try:
        import openai  # noqa: F401
        available.append("openai")
    except ImportError:
        pass

    return available
