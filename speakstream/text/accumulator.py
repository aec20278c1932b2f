"""
Sentence Accumulator - cuts a token stream into speakable sentences.

Architecture:
    LLM tokens (stream)
            ↓
    SentenceAccumulator.add_token()
            ↓
    sentences → SynthesisDispatcher

Cut policy, checked after every appended character:
    1. Hard cut:   buffer reached hard_limit characters (any content)
    2. Soft cut:   buffer longer than soft_limit and ends in whitespace
    3. Sentence:   buffer longer than min_length and ends in one of
                   ". ", "? ", "! " (terminator followed by whitespace)

Short sentences are spoken sooner; the minimum length keeps
abbreviations like "Dr. " from being cut off on their own.
"""

from __future__ import annotations


SENTENCE_END_CHARS = frozenset(".?!")


class SentenceAccumulator:
    """Accumulates text fragments and emits completed sentences.

    Emitted sentences are trimmed and never empty.

    Attributes:
        min_length: Length the buffer must exceed before a punctuation cut.
        soft_limit: Length after which any trailing whitespace cuts.
        hard_limit: Length at which the buffer is cut unconditionally.

    Example:
        acc = SentenceAccumulator()
        acc.add_token("Hello world. This")   # -> []
        acc.add_token(" is a test! ")        # -> ["Hello world. This is a test!"]
        acc.complete_sentence()              # -> None
    """

    def __init__(
        self,
        min_length: int = 15,
        soft_limit: int = 200,
        hard_limit: int = 300,
    ):
        if not 0 < min_length < soft_limit < hard_limit:
            raise ValueError(
                "limits must satisfy 0 < min_length < soft_limit < hard_limit"
            )
        self.min_length = min_length
        self.soft_limit = soft_limit
        self.hard_limit = hard_limit
        self._buffer: list[str] = []

    @property
    def buffer(self) -> str:
        """Text accumulated since the last cut."""
        return "".join(self._buffer)

    @property
    def buffer_size(self) -> int:
        """Current buffer size in characters."""
        return len(self._buffer)

    def add_token(self, token: str) -> list[str]:
        """Add a fragment and return the sentences it completed.

        Args:
            token: Text fragment from the stream. Any size, may be empty.

        Returns:
            Completed sentences in order (possibly empty).
        """
        sentences: list[str] = []
        buf = self._buffer

        for char in token:
            buf.append(char)
            length = len(buf)

            if length >= self.hard_limit:
                self._cut(sentences)
            elif length > self.soft_limit and char.isspace():
                self._cut(sentences)
            elif (
                length > self.min_length
                and char.isspace()
                and buf[-2] in SENTENCE_END_CHARS
            ):
                self._cut(sentences)

        return sentences

    def complete_sentence(self) -> str | None:
        """Flush the remainder at the end of a turn.

        The last sentence of a response usually lacks the trailing
        whitespace that triggers a cut, so it has to be flushed.

        Returns:
            The trimmed remainder, or None if nothing speakable is left.
        """
        sentence = self.buffer.strip()
        self._buffer.clear()
        return sentence or None

    def clear_buffer(self) -> None:
        """Discard buffered text without emitting it."""
        self._buffer.clear()

    def _cut(self, sentences: list[str]) -> None:
        sentence = "".join(self._buffer).strip()
        if sentence:
            sentences.append(sentence)
        self._buffer.clear()
