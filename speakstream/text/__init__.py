"""
Text stage - turns streamed tokens into sentences for synthesis.
"""

from speakstream.text.accumulator import SentenceAccumulator, SENTENCE_END_CHARS

__all__ = ["SentenceAccumulator", "SENTENCE_END_CHARS"]
