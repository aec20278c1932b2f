"""
Tests for the sentence accumulator.
"""

import pytest
from hypothesis import given, settings, strategies as st

from speakstream.text import SentenceAccumulator, SENTENCE_END_CHARS


class TestSentenceCuts:
    """Tests for punctuation-based sentence cuts."""

    def test_short_sentence_waits_for_min_length(self):
        acc = SentenceAccumulator()
        # "Hello world." is too short to stand alone with the default minimum
        assert acc.add_token("Hello world. This is a test! ") == [
            "Hello world. This is a test!"
        ]
        assert acc.buffer == ""

    def test_two_sentences_with_lower_minimum(self):
        acc = SentenceAccumulator(min_length=10)
        assert acc.add_token("Hello world. This is a test! ") == [
            "Hello world.",
            "This is a test!",
        ]

    def test_cut_needs_whitespace_after_terminator(self):
        acc = SentenceAccumulator()
        assert acc.add_token("The value is 3.14 exactly.") == []
        assert acc.buffer == "The value is 3.14 exactly."

    def test_question_and_exclamation(self):
        acc = SentenceAccumulator(min_length=5)
        assert acc.add_token("Are you there? Yes I am! ") == [
            "Are you there?",
            "Yes I am!",
        ]

    def test_newline_counts_as_whitespace(self):
        acc = SentenceAccumulator()
        assert acc.add_token("This is the first line.\nSecond") == [
            "This is the first line."
        ]
        assert acc.buffer == "Second"

    def test_abbreviation_not_cut_alone(self):
        acc = SentenceAccumulator()
        assert acc.add_token("Dr. Smith is here. ") == ["Dr. Smith is here."]

    def test_token_boundaries_do_not_matter(self):
        text = "Streaming tokens arrive in pieces. They still form sentences! "
        whole = SentenceAccumulator().add_token(text)

        acc = SentenceAccumulator()
        pieces = []
        for char in text:
            pieces.extend(acc.add_token(char))

        assert pieces == whole
        assert len(whole) == 2

    def test_sentence_end_chars(self):
        assert SENTENCE_END_CHARS == frozenset(".?!")


class TestLengthLimits:
    """Tests for the soft and hard length limits."""

    def test_hard_limit_forces_cut(self):
        acc = SentenceAccumulator()
        sentences = acc.add_token("a" * 310)

        assert sentences == ["a" * 300]
        assert acc.buffer_size == 10

    def test_hard_limit_exact(self):
        acc = SentenceAccumulator()
        assert acc.add_token("b" * 300) == ["b" * 300]
        assert acc.buffer_size == 0

    def test_soft_limit_cuts_at_whitespace(self):
        acc = SentenceAccumulator()
        sentences = acc.add_token("word " * 50)

        # First whitespace after 200 chars is at length 205
        assert sentences == [("word " * 41).strip()]
        assert acc.buffer == "word " * 9

    def test_whitespace_only_never_emitted(self):
        acc = SentenceAccumulator()
        assert acc.add_token(" " * 310) == []
        assert acc.buffer_size == 109

    def test_custom_limits(self):
        acc = SentenceAccumulator(min_length=2, soft_limit=10, hard_limit=20)
        assert acc.add_token("abcdefghijk lmn") == ["abcdefghijk"]
        assert acc.add_token("x" * 20) == ["lmn" + "x" * 17]

    @pytest.mark.parametrize("limits", [
        (0, 200, 300),
        (15, 15, 300),
        (15, 300, 200),
    ])
    def test_invalid_limits(self, limits):
        with pytest.raises(ValueError):
            SentenceAccumulator(*limits)


class TestFlushAndClear:
    """Tests for complete_sentence() and clear_buffer()."""

    def test_complete_sentence_flushes_remainder(self):
        acc = SentenceAccumulator()
        acc.add_token("  No trailing punctuation here ")
        assert acc.complete_sentence() == "No trailing punctuation here"
        assert acc.buffer_size == 0

    def test_complete_sentence_empty(self):
        acc = SentenceAccumulator()
        assert acc.complete_sentence() is None

    def test_complete_sentence_whitespace_only(self):
        acc = SentenceAccumulator()
        acc.add_token("   \n ")
        assert acc.complete_sentence() is None
        assert acc.buffer_size == 0

    def test_clear_buffer_discards(self):
        acc = SentenceAccumulator()
        acc.add_token("This will never be spoken")
        acc.clear_buffer()

        assert acc.buffer == ""
        assert acc.complete_sentence() is None

    def test_accumulation_continues_after_clear(self):
        acc = SentenceAccumulator()
        acc.add_token("Old text")
        acc.clear_buffer()
        assert acc.add_token("A brand new sentence. ") == ["A brand new sentence."]


# =============================================================================
# Properties
# =============================================================================

# Punctuation and whitespace are drawn often so every cut rule fires
text_strategy = st.text(
    alphabet=st.one_of(st.sampled_from(".?! \n\t"), st.characters()),
    max_size=700,
)
limits_strategy = st.sampled_from([(15, 200, 300), (3, 20, 30)])


def _split(text, points):
    points = sorted({min(p, len(text)) for p in points})
    bounds = [0] + points + [len(text)]
    return [text[a:b] for a, b in zip(bounds, bounds[1:])]


def _without_whitespace(text):
    return "".join(text.split())


class TestAccumulatorProperties:
    """Invariants over arbitrary texts and fragment boundaries."""

    @given(text_strategy, st.lists(st.integers(min_value=0, max_value=700), max_size=40), limits_strategy)
    @settings(max_examples=200)
    def test_sentences_rebuild_text(self, text, points, limits):
        acc = SentenceAccumulator(*limits)
        sentences = []
        for fragment in _split(text, points):
            sentences.extend(acc.add_token(fragment))
        final = acc.complete_sentence()
        if final is not None:
            sentences.append(final)

        assert _without_whitespace("".join(sentences)) == _without_whitespace(text)
        assert acc.buffer == ""

    @given(text_strategy, st.lists(st.integers(min_value=0, max_value=700), max_size=40), limits_strategy)
    @settings(max_examples=200)
    def test_sentences_trimmed_and_bounded(self, text, points, limits):
        acc = SentenceAccumulator(*limits)
        sentences = []
        for fragment in _split(text, points):
            sentences.extend(acc.add_token(fragment))

        for sentence in sentences:
            assert sentence
            assert sentence == sentence.strip()
            assert len(sentence) <= acc.hard_limit
        assert acc.buffer_size < acc.hard_limit

    @given(text_strategy, st.lists(st.integers(min_value=0, max_value=700), max_size=40))
    @settings(max_examples=100)
    def test_fragment_boundaries_do_not_matter(self, text, points):
        whole = SentenceAccumulator()
        pieces = SentenceAccumulator()

        expected = whole.add_token(text)
        actual = []
        for fragment in _split(text, points):
            actual.extend(pieces.add_token(fragment))

        assert actual == expected
        assert pieces.buffer == whole.buffer
