"""
Synthesis runtime: jobs, results and the concurrent dispatcher.
"""

from speakstream.runtime.jobs import SynthesisJob, SynthesisResult
from speakstream.runtime.dispatcher import SynthesisDispatcher

__all__ = [
    "SynthesisJob",
    "SynthesisResult",
    "SynthesisDispatcher",
]
