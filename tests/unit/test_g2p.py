"""
Tests for kotone/nlp/g2p.py: phones, tones and word2ph of whole utterances.
"""

import pytest

from kotone.exceptions import MismatchedPhonemeError
from kotone.nlp.analyzer import Analysis
from kotone.nlp.g2p import G2PResult, g2p

from tests.conftest import ANALYSES, ame_labels, hashi_labels


class TestG2P:
    def test_single_word(self):
        result = g2p(ANALYSES["箸"])
        assert result.phones == ["_", "h", "a", "sh", "i", "_"]
        assert result.tones == [0, 1, 1, 0, 0, 0]
        assert result.word2ph == [1, 4, 1]
        assert result.reading_text == "箸"

    def test_trailing_punctuation(self):
        result = g2p(ANALYSES["箸."])
        assert result.phones == ["_", "h", "a", "sh", "i", ".", "_"]
        assert result.tones == [0, 1, 1, 0, 0, 0, 0]
        assert result.word2ph == [1, 4, 1, 1]
        assert result.words == ["箸", "."]

    def test_question(self):
        result = g2p(ANALYSES["箸?"])
        assert result.phones[-2:] == ["?", "_"]
        assert result.tones[1:5] == [1, 1, 0, 0]

    def test_rising_accent(self):
        result = g2p(ANALYSES["飴"])
        assert result.phones == ["_", "a", "m", "e", "_"]
        assert result.tones == [0, 0, 1, 1, 0]

    def test_phones_spread_over_characters(self):
        analysis = Analysis(words=[("あめ", "アメ")], labels=ame_labels())
        result = g2p(analysis)
        # 3 phones over 2 characters, leftmost first
        assert result.word2ph == [1, 2, 1, 1]

    def test_word2ph_length_matches_reading_text(self):
        for analysis in ANALYSES.values():
            result = g2p(analysis)
            assert len(result.word2ph) == len(result.reading_text) + 2
            assert sum(result.word2ph) == len(result.phones)
            assert len(result.phones) == len(result.tones)

    def test_reading_mismatch_raises(self):
        analysis = Analysis(words=[("飴", "アメ")], labels=hashi_labels())
        with pytest.raises(MismatchedPhonemeError):
            g2p(analysis)

    def test_empty_result(self):
        result = G2PResult()
        assert result.reading_text == ""
