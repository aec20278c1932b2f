"""
Shared fixtures for speakstream tests.
"""

import logging
import time

import numpy as np
import pytest
import soundfile as sf

from speakstream.config import SpeakStreamConfig
from speakstream.runtime.jobs import SynthesisJob, SynthesisResult


@pytest.fixture(autouse=True)
def reset_speakstream_logger():
    """Undo configure_logging() so caplog keeps working across tests."""
    yield
    logger = logging.getLogger("speakstream")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def fast_config(tmp_path):
    """Config with short poll intervals and a private temp dir."""
    return SpeakStreamConfig(
        backend="mock",
        transcode_speed=False,
        release_poll_interval=0.02,
        playback_poll_interval=0.01,
        temp_dir=tmp_path,
    )


def write_wav(path, duration=0.05, sample_rate=24000, frequency=440.0):
    """Write a short tone to path and return the path."""
    num_samples = int(duration * sample_rate)
    t = np.linspace(0, duration, num_samples, dtype=np.float32)
    audio = (0.3 * np.sin(2 * np.pi * frequency * t)).astype(np.float32)
    sf.write(str(path), audio, sample_rate)
    return path


def make_result(tmp_path, index, text, epoch=0, duration=0.05, error=None):
    """Build a SynthesisResult, backed by a real WAV file unless error is set."""
    job = SynthesisJob(index=index, text=text, voice="echo", speed=1.0, epoch=epoch)
    if error is not None:
        return SynthesisResult.failure(job, error)
    path = write_wav(tmp_path / f"speakstream-segment-{index}.wav", duration=duration)
    return SynthesisResult.success(job, path)


def wait_until(predicate, timeout=5.0, interval=0.01):
    """Poll predicate until it is true or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def segment_files(directory):
    return sorted(directory.glob("speakstream-segment-*"))
