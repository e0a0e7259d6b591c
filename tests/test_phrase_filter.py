from __future__ import annotations

import unittest
from typing import Iterator, List, Optional

from autophrase.analysis.dictionary import PhraseDictionary
from autophrase.analysis.errors import InvariantViolation
from autophrase.analysis.filter import FilterPhase, PhraseStreamFilter
from autophrase.analysis.tokens import OutputToken, Word, whitespace_tokenize


COMMON_PHRASES = ["big apple", "new york city", "property tax", "three word phrase"]
OVERLAPPING_PHRASES = ["new york", "new york city", "city of new york"]


def _run(
    phrases: Optional[List[str]],
    text: str,
    separator: Optional[str] = "_",
    emit_single_tokens: bool = False,
    case_sensitive: bool = True,
) -> List[OutputToken]:
    dictionary = PhraseDictionary.build(phrases, case_sensitive=case_sensitive)
    phrase_filter = PhraseStreamFilter(
        dictionary,
        whitespace_tokenize(text),
        separator=separator,
        emit_single_tokens=emit_single_tokens,
    )
    return list(phrase_filter)


def _texts(tokens: List[OutputToken]) -> List[str]:
    return [t.text for t in tokens]


class PassThroughTestCase(unittest.TestCase):
    def test_empty_dictionary_is_identity(self) -> None:
        text = "what is my  income tax\trefund"
        tokens = _run([], text)
        words = list(whitespace_tokenize(text))
        self.assertEqual(
            [(t.text, t.start_offset, t.end_offset, t.position_increment) for t in tokens],
            [(w.text, w.start_offset, w.end_offset, 1) for w in words],
        )
        self.assertEqual("".join(_texts(tokens)), "".join(w.text for w in words))

    def test_absent_dictionary_is_identity(self) -> None:
        self.assertEqual(_texts(_run(None, "new york city")), ["new", "york", "city"])

    def test_empty_input(self) -> None:
        self.assertEqual(_run(COMMON_PHRASES, ""), [])

    def test_single_non_matching_word(self) -> None:
        self.assertEqual(_texts(_run(COMMON_PHRASES, "something")), ["something"])


class PhraseMergeTestCase(unittest.TestCase):
    def test_partial_prefix_is_replayed(self) -> None:
        self.assertEqual(
            _texts(_run(COMMON_PHRASES, "something big orange", separator=None)),
            ["something", "big", "orange"],
        )

    def test_total_failure_replays_once(self) -> None:
        self.assertEqual(_texts(_run(COMMON_PHRASES, "big orange", separator=None)), ["big", "orange"])

    def test_partial_phrase_is_only_token(self) -> None:
        self.assertEqual(_texts(_run(COMMON_PHRASES, "big", separator=None)), ["big"])

    def test_partial_phrase_at_end(self) -> None:
        self.assertEqual(_texts(_run(COMMON_PHRASES, "orange big", separator=None)), ["orange", "big"])

    def test_partial_phrase_at_end_after_merge(self) -> None:
        self.assertEqual(
            _texts(_run(COMMON_PHRASES, "new york city something orange big", separator=None)),
            ["newyorkcity", "something", "orange", "big"],
        )

    def test_incomplete_longer_prefix_is_replayed(self) -> None:
        self.assertEqual(
            _texts(_run(COMMON_PHRASES, "three word salad")),
            ["three", "word", "salad"],
        )

    def test_null_separator_concatenates(self) -> None:
        self.assertEqual(
            _texts(_run(["new york city"], "new york city something", separator=None)),
            ["newyorkcity", "something"],
        )

    def test_phrase_at_end_of_stream(self) -> None:
        self.assertEqual(_texts(_run(COMMON_PHRASES, "some new york city")), ["some", "new_york_city"])

    def test_multiple_phrases_with_separator(self) -> None:
        text = "what is my income tax refund this year now that my property tax is so high"
        tokens = _run(["income tax", "tax refund", "property tax"], text)
        self.assertEqual(
            _texts(tokens),
            ["what", "is", "my", "income_tax", "tax_refund", "this", "year", "now", "that", "my",
             "property_tax", "is", "so", "high"],
        )
        merged = [t for t in tokens if t.is_phrase]
        self.assertEqual([t.word_count for t in merged], [2, 2, 2])

    def test_chained_phrase_that_fails_does_not_repeat_shared_word(self) -> None:
        tokens = _run(["property tax", "tax refund"], "property tax is high")
        self.assertEqual(_texts(tokens), ["property_tax", "is", "high"])


class OverlapTestCase(unittest.TestCase):
    def test_longest_match_at_beginning(self) -> None:
        self.assertEqual(
            _texts(_run(OVERLAPPING_PHRASES, "new york city is great")),
            ["new_york_city", "is", "great"],
        )

    def test_overlap_at_end(self) -> None:
        self.assertEqual(
            _texts(_run(OVERLAPPING_PHRASES, "the great city of new york")),
            ["the", "great", "city_of_new_york"],
        )

    def test_shorter_match_emitted_when_extension_breaks(self) -> None:
        self.assertEqual(
            _texts(_run(OVERLAPPING_PHRASES, "new york is great")),
            ["new_york", "is", "great"],
        )

    def test_shorter_match_emitted_at_end_of_stream(self) -> None:
        self.assertEqual(_texts(_run(OVERLAPPING_PHRASES, "i love new york")), ["i", "love", "new_york"])

    def test_words_after_last_valid_match_are_replayed(self) -> None:
        tokens = _run(["a b", "a b c d"], "a b c x")
        self.assertEqual(_texts(tokens), ["a_b", "c", "x"])

    def test_breaking_word_can_start_new_phrase(self) -> None:
        tokens = _run(["big apple", "apple pie"], "big apple pie")
        self.assertEqual(_texts(tokens), ["big_apple", "apple_pie"])

    def test_failed_attempt_reseeds_on_breaking_word(self) -> None:
        tokens = _run(["big apple", "new york"], "big new york")
        self.assertEqual(_texts(tokens), ["big", "new_york"])


class OffsetTestCase(unittest.TestCase):
    def test_merged_token_spans_constituents(self) -> None:
        tokens = _run(COMMON_PHRASES, "some  new york   city here")
        merged = tokens[1]
        self.assertEqual(merged.text, "new_york_city")
        self.assertEqual((merged.start_offset, merged.end_offset), (6, 21))
        self.assertTrue(merged.is_phrase)
        self.assertEqual(merged.word_count, 3)

    def test_replayed_tokens_keep_original_offsets(self) -> None:
        text = "something big  orange"
        tokens = _run(COMMON_PHRASES, text)
        self.assertEqual(
            [(t.text, t.start_offset, t.end_offset) for t in tokens],
            [("something", 0, 9), ("big", 10, 13), ("orange", 15, 21)],
        )
        for token in tokens:
            self.assertEqual(text[token.start_offset : token.end_offset], token.text)


class PositionIncrementTestCase(unittest.TestCase):
    def _positions(self, tokens: List[OutputToken]) -> List[int]:
        positions: List[int] = []
        position = -1
        for token in tokens:
            self.assertGreaterEqual(token.position_increment, 0)
            position += token.position_increment
            positions.append(position)
        return positions

    def test_each_output_occupies_one_position(self) -> None:
        cases = [
            (OVERLAPPING_PHRASES, "new york city is great"),
            (OVERLAPPING_PHRASES, "the great city of new york"),
            (COMMON_PHRASES, "something big orange big apple three word"),
            (["income tax", "tax refund", "property tax"], "my income tax refund and property tax"),
        ]
        for phrases, text in cases:
            tokens = _run(phrases, text)
            self.assertEqual(self._positions(tokens), list(range(len(tokens))), text)

    def test_emit_single_tokens_stacks_phrases(self) -> None:
        tokens = _run(OVERLAPPING_PHRASES, "new york city is great", emit_single_tokens=True)
        positions = self._positions(tokens)
        self.assertEqual(positions, sorted(positions))
        raw = [t for t in tokens if not t.is_phrase]
        self.assertEqual(_texts(raw), ["new", "york", "city", "is", "great"])
        self.assertEqual(positions[-1], len(raw) - 1)
        self._assert_phrases_on_last_word(tokens, positions)

    def test_deferred_shorter_match_sits_on_its_last_word(self) -> None:
        cases = [
            (["new york", "new york city"], "new york is"),
            (["a b", "a b c d"], "a b c x"),
            (OVERLAPPING_PHRASES, "i love new york"),
            (["income tax", "tax refund"], "my income tax refund"),
        ]
        for phrases, text in cases:
            tokens = _run(phrases, text, emit_single_tokens=True)
            positions = self._positions(tokens)
            self._assert_phrases_on_last_word(tokens, positions)
            starts = [t.start_offset for t in tokens if not t.is_phrase]
            self.assertEqual(starts, sorted(starts), text)

    def _assert_phrases_on_last_word(self, tokens: List[OutputToken], positions: List[int]) -> None:
        word_positions = {
            t.end_offset: p for t, p in zip(tokens, positions) if not t.is_phrase
        }
        for token, position in zip(tokens, positions):
            if token.is_phrase:
                self.assertEqual(token.position_increment, 0)
                self.assertEqual(position, word_positions[token.end_offset], token.text)


class EmitSingleTokensTestCase(unittest.TestCase):
    def test_phrases_are_interleaved(self) -> None:
        tokens = _run(["income tax", "tax refund"], "my income tax refund", emit_single_tokens=True)
        self.assertEqual(
            _texts(tokens),
            ["my", "income", "tax", "income_tax", "refund", "tax_refund"],
        )

    def test_failed_attempt_emits_nothing_extra(self) -> None:
        tokens = _run(COMMON_PHRASES, "something big orange", emit_single_tokens=True)
        self.assertEqual(_texts(tokens), ["something", "big", "orange"])

    def test_shorter_match_after_break(self) -> None:
        tokens = _run(OVERLAPPING_PHRASES, "new york is", emit_single_tokens=True)
        self.assertEqual(_texts(tokens), ["new", "york", "new_york", "is"])
        self.assertEqual([t.position_increment for t in tokens], [1, 1, 0, 1])

    def test_words_after_shorter_match_follow_it(self) -> None:
        tokens = _run(["a b", "a b c d"], "a b c x", emit_single_tokens=True)
        self.assertEqual(_texts(tokens), ["a", "b", "a_b", "c", "x"])

    def test_pending_match_at_end(self) -> None:
        tokens = _run(OVERLAPPING_PHRASES, "new york", emit_single_tokens=True)
        self.assertEqual(_texts(tokens), ["new", "york", "new_york"])


class CaseSensitivityTestCase(unittest.TestCase):
    def test_case_sensitive_requires_exact_case(self) -> None:
        self.assertEqual(_texts(_run(["New York"], "new york")), ["new", "york"])

    def test_case_insensitive_keeps_input_text(self) -> None:
        self.assertEqual(
            _texts(_run(["New York"], "NEW york rocks", case_sensitive=False)),
            ["NEW_york", "rocks"],
        )


class UpstreamSourceTestCase(unittest.TestCase):
    def test_upstream_error_propagates(self) -> None:
        def _words() -> Iterator[Word]:
            yield Word("big", 0, 3)
            raise IOError("reader closed")

        phrase_filter = PhraseStreamFilter(PhraseDictionary.build(COMMON_PHRASES), _words())
        with self.assertRaises(IOError):
            phrase_filter.next_token()

    def test_long_non_matching_run_does_not_recurse(self) -> None:
        text = " ".join(["big"] * 2000)
        tokens = _run(COMMON_PHRASES, text)
        self.assertEqual(len(tokens), 2000)
        self.assertTrue(all(t.text == "big" for t in tokens))


class LifecycleTestCase(unittest.TestCase):
    def test_next_token_returns_none_when_done(self) -> None:
        phrase_filter = PhraseStreamFilter(
            PhraseDictionary.build(COMMON_PHRASES), whitespace_tokenize("big apple"), separator="_"
        )
        self.assertEqual(phrase_filter.next_token().text, "big_apple")
        self.assertIsNone(phrase_filter.next_token())
        self.assertIs(phrase_filter.phase, FilterPhase.DONE)
        self.assertIsNone(phrase_filter.next_token())

    def test_reset_allows_reuse(self) -> None:
        dictionary = PhraseDictionary.build(OVERLAPPING_PHRASES)
        phrase_filter = PhraseStreamFilter(dictionary, whitespace_tokenize("new york"), separator="_")
        self.assertEqual(phrase_filter.next_token().text, "new_york")

        phrase_filter.reset(whitespace_tokenize("the great city of new york"))
        self.assertIs(phrase_filter.phase, FilterPhase.IDLE)
        first = list(phrase_filter)

        phrase_filter.reset(whitespace_tokenize("the great city of new york"))
        second = list(phrase_filter)
        self.assertEqual(first, second)
        self.assertEqual(_texts(first), ["the", "great", "city_of_new_york"])

    def test_separator_must_be_single_character(self) -> None:
        with self.assertRaises(ValueError):
            PhraseStreamFilter(PhraseDictionary.build(COMMON_PHRASES), separator="__")

    def test_out_of_order_upstream_is_invariant_violation(self) -> None:
        words = [Word("big", 10, 13), Word("orange", 0, 6)]
        phrase_filter = PhraseStreamFilter(PhraseDictionary.build(COMMON_PHRASES), words)
        with self.assertRaises(InvariantViolation):
            list(phrase_filter)

    def test_replayed_word_outside_buffer_span_is_invariant_violation(self) -> None:
        words = [Word("three", 0, 50), Word("word", 6, 10), Word("salad", 11, 16)]
        phrase_filter = PhraseStreamFilter(PhraseDictionary.build(COMMON_PHRASES), words)
        with self.assertRaises(InvariantViolation):
            list(phrase_filter)


if __name__ == "__main__":
    unittest.main()
