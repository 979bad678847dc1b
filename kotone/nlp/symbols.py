"""
Symbol inventory shared with the vocoder.

The vocoder was trained on a joint Chinese/Japanese/English symbol set, so the
ids below must match the training-time table exactly. Only the Japanese part is
produced by this front-end.
"""

from typing import List, Sequence, Tuple, TypeVar

from ..exceptions import PhonemeError

_T = TypeVar("_T")

# Non-phoneme symbols that survive normalization
PUNCTUATIONS = ["!", "?", "…", ",", ".", "'", "-"]
PUNCTUATION_SET = frozenset(PUNCTUATIONS)

PUNCTUATION_SYMBOLS = PUNCTUATIONS + ["SP", "UNK"]
PAD = "_"

ZH_SYMBOLS = [
    "E", "En", "a", "ai", "an", "ang", "ao", "b", "c", "ch", "d", "e", "ei",
    "en", "eng", "er", "f", "g", "h", "i", "i0", "ia", "ian", "iang", "iao",
    "ie", "in", "ing", "iong", "ir", "iu", "j", "k", "l", "m", "n", "o", "ong",
    "ou", "p", "q", "r", "s", "sh", "t", "u", "ua", "uai", "uan", "uang", "ui",
    "un", "uo", "v", "van", "ve", "vn", "w", "x", "y", "z", "zh", "AA", "EE",
    "OO",
]  # fmt: skip
NUM_ZH_TONES = 6

JP_SYMBOLS = [
    "N", "a", "a:", "b", "by", "ch", "d", "dy", "e", "e:", "f", "g", "gy", "h",
    "hy", "i", "i:", "j", "k", "ky", "m", "my", "n", "ny", "o", "o:", "p", "py",
    "q", "r", "ry", "s", "sh", "t", "ts", "ty", "u", "u:", "w", "y", "z", "zy",
]  # fmt: skip
NUM_JP_TONES = 2

EN_SYMBOLS = [
    "aa", "ae", "ah", "ao", "aw", "ay", "b", "ch", "d", "dh", "eh", "er", "ey",
    "f", "g", "hh", "ih", "iy", "jh", "k", "l", "m", "n", "ng", "ow", "oy", "p",
    "r", "s", "sh", "t", "th", "uh", "uw", "V", "w", "y", "z", "zh",
]  # fmt: skip
NUM_EN_TONES = 4

NORMAL_SYMBOLS = sorted(set(ZH_SYMBOLS + JP_SYMBOLS + EN_SYMBOLS))
SYMBOLS = [PAD] + NORMAL_SYMBOLS + PUNCTUATION_SYMBOLS
NUM_TONES = NUM_ZH_TONES + NUM_JP_TONES + NUM_EN_TONES

LANGUAGE_ID_MAP = {"ZH": 0, "JP": 1, "EN": 2}
LANGUAGE_TONE_START_MAP = {
    "ZH": 0,
    "JP": NUM_ZH_TONES,
    "EN": NUM_ZH_TONES + NUM_JP_TONES,
}

SYMBOL_TO_ID = {symbol: i for i, symbol in enumerate(SYMBOLS)}


def cleaned_text_to_sequence(
    phones: Sequence[str], tones: Sequence[int], language: str = "JP"
) -> Tuple[List[int], List[int], List[int]]:
    """
    Convert phones and tones to the id sequences the vocoder consumes.

    Args:
        phones: Phoneme symbols, including the "_" boundaries and punctuation.
        tones: Tone per phoneme (0 or 1 for Japanese).
        language: Language key of LANGUAGE_ID_MAP.

    Returns:
        Tuple of (phone_ids, tone_ids, language_ids), all the same length.
    """
    try:
        phone_ids = [SYMBOL_TO_ID[phone] for phone in phones]
    except KeyError as exc:
        raise PhonemeError(f"Unknown phoneme symbol: {exc.args[0]}") from exc

    tone_start = LANGUAGE_TONE_START_MAP[language]
    tone_ids = [tone + tone_start for tone in tones]
    lang_ids = [LANGUAGE_ID_MAP[language]] * len(phone_ids)
    return phone_ids, tone_ids, lang_ids


def intersperse(items: Sequence[_T], item: _T) -> List[_T]:
    """Put `item` before, between and after every element: [a, b] -> [x, a, x, b, x]."""
    result = [item] * (len(items) * 2 + 1)
    result[1::2] = items
    return result
