"""
Katakana readings to phonemes, and the bookkeeping that ties phonemes back
to the characters of the input text.
"""

import logging
import re
from typing import List, Sequence, Tuple

from ..exceptions import MismatchedPhonemeError, PhonemeError, ReadingError
from .mora import MORA_KATA_TO_MORA_PHONEMES, MORA_PATTERN, VOWELS
from .normalizer import replace_punctuation
from .symbols import PUNCTUATION_SET

logger = logging.getLogger(__name__)

LONG_VOWEL_MARK = "ー"

_KATAKANA_PATTERN = re.compile(r"[\u30A0-\u30FF]+")
_LONG_PATTERN = re.compile(r"(\w)(ー*)")

# Punctuation readings, including the analyzer's pause reading
_READING_PUNCTUATION = PUNCTUATION_SET | {"、"}


def _mora_replacement(match: "re.Match[str]") -> str:
    consonant, vowel = MORA_KATA_TO_MORA_PHONEMES[match.group()]
    if consonant is None:
        return f" {vowel}"
    return f" {consonant} {vowel}"


def _long_vowel_replacement(match: "re.Match[str]") -> str:
    char, marks = match.group(1), match.group(2)
    return char + f" {char}" * len(marks)


def kata_to_phoneme_list(text: str) -> List[str]:
    """
    Split a katakana reading into phonemes.

    A reading made only of punctuation is returned character by character.
    Long-vowel marks repeat the phoneme before them; a mark with nothing before
    it is kept as "ー" for handle_long to resolve.

    >>> kata_to_phoneme_list("キャット")
    ['ky', 'a', 'q', 't', 'o']
    """
    if set(text) <= _READING_PUNCTUATION:
        return list(text)
    if not _KATAKANA_PATTERN.search(text):
        raise PhonemeError(f"Input must be katakana only: {text}", text)

    spaced = MORA_PATTERN.sub(_mora_replacement, text)
    spaced = _LONG_PATTERN.sub(_long_vowel_replacement, spaced)
    return spaced.strip().split(" ")


def handle_long(sep_phonemes: Sequence[Sequence[str]]) -> List[List[str]]:
    """
    Resolve long-vowel marks left in per-word phoneme lists.

    A word starting with "ー" continues the last phoneme of the previous word
    when that is a vowel (or "N"); otherwise the mark stays. Any later "ー" in a
    word repeats the last character of the phoneme before it.
    """
    result = [list(phonemes) for phonemes in sep_phonemes]

    for i, phonemes in enumerate(result):
        if not phonemes:
            continue

        if phonemes[0] == LONG_VOWEL_MARK and i > 0 and result[i - 1]:
            prev_phoneme = result[i - 1][-1]
            if prev_phoneme in VOWELS:
                phonemes[0] = prev_phoneme

        for j in range(1, len(phonemes)):
            if phonemes[j] == LONG_VOWEL_MARK:
                phonemes[j] = phonemes[j - 1][-1]

    return result


def align_tones(
    phones_with_punct: Sequence[str], phone_tone_list: Sequence[Tuple[str, int]]
) -> List[Tuple[str, int]]:
    """
    Merge tones onto the punctuation-bearing phoneme sequence.

    Args:
        phones_with_punct: Phonemes from the readings, punctuation included.
        phone_tone_list: (phone, tone) pairs from the labels, no punctuation.

    Returns:
        One (phone, tone) pair per entry of phones_with_punct. Punctuation and
        phones past the end of phone_tone_list get tone 0.

    Raises:
        MismatchedPhonemeError: If the two sequences disagree on a phone.
    """
    result: List[Tuple[str, int]] = []
    tone_index = 0

    for phone in phones_with_punct:
        if tone_index >= len(phone_tone_list):
            result.append((phone, 0))
        elif phone == phone_tone_list[tone_index][0]:
            result.append((phone, phone_tone_list[tone_index][1]))
            tone_index += 1
        elif phone in PUNCTUATION_SET:
            result.append((phone, 0))
        else:
            logger.debug(f"phones: {list(phones_with_punct)}")
            logger.debug(f"phone_tone_list: {list(phone_tone_list)}")
            logger.debug(f"aligned so far: {result}, tone_index: {tone_index}")
            raise MismatchedPhonemeError(phone, phones_with_punct, phone_tone_list)

    return result


def distribute_phone(n_phone: int, n_word: int) -> List[int]:
    """Spread n_phone phonemes over n_word characters, leftmost first."""
    phones_per_word = [0] * n_word
    for _ in range(n_phone):
        min_index = phones_per_word.index(min(phones_per_word))
        phones_per_word[min_index] += 1
    return phones_per_word


def text_to_seq_kata(words: Sequence[Tuple[str, str]]) -> Tuple[List[str], List[str]]:
    """
    Build parallel word and reading lists from analyzer morphemes.

    Readings lose their devoicing mark. The analyzer reads punctuation as "、";
    such words keep the punctuation itself as reading, or one "'" per character
    when the surface is not punctuation at all (unreadable characters).

    Args:
        words: (surface, pronunciation) pairs.

    Returns:
        Tuple of (surfaces, readings).
    """
    seq_text: List[str] = []
    seq_kata: List[str] = []

    for surface, pron in words:
        word = replace_punctuation(surface)
        yomi = pron.replace("’", "")

        if not yomi:
            raise ReadingError(f"Empty reading for word: {word}", surface)

        if yomi == "、":
            if set(word) <= PUNCTUATION_SET:
                yomi = word
            else:
                logger.warning(f"Cannot read: {word}, replaced with \"'\"")
                yomi = "'" * len(word)
        elif yomi == "？":
            if word != "?":
                raise ReadingError(f"Reading '？' comes from: {word}", surface)
            yomi = "?"

        seq_text.append(word)
        seq_kata.append(yomi)

    return seq_text, seq_kata
