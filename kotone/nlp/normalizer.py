"""
Japanese text normalization.

Folds punctuation to the vocoder's small punctuation set and drops every
character the analyzer cannot read. The result only contains hiragana,
katakana (including the long-vowel mark "ー"), kanji, Latin and Greek letters,
and the symbols of PUNCTUATIONS.
"""

import re
import unicodedata

from .symbols import PUNCTUATIONS

# Punctuation folding table
PUNCTUATION_MAP = {
    "：": ",",
    "；": ",",
    "，": ",",
    "。": ".",
    "！": "!",
    "？": "?",
    "\n": ".",
    "．": ".",
    "…": "...",
    "···": "...",
    "・・・": "...",
    "·": ",",
    "・": ",",
    "、": ",",
    "$": ".",
    "“": "'",
    "”": "'",
    '"': "'",
    "‘": "'",
    "’": "'",
    "（": "'",
    "）": "'",
    "(": "'",
    ")": "'",
    "《": "'",
    "》": "'",
    "【": "'",
    "】": "'",
    "[": "'",
    "]": "'",
    "—": "-",
    "−": "-",
    "「": "'",
    "」": "'",
}

_PUNCTUATION_PATTERN = re.compile(
    "|".join(re.escape(p) for p in sorted(PUNCTUATION_MAP, key=len, reverse=True))
)

_UNREADABLE_PATTERN = re.compile(
    # hiragana, katakana, kanji
    r"[^\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FFF\u3400-\u4DBF\u3005"
    # half-width Latin
    r"A-Za-z"
    # full-width Latin
    r"\uFF21-\uFF3A\uFF41-\uFF5A"
    # Greek
    r"\u0370-\u03FF\u1F00-\u1FFF"
    + "".join(re.escape(p) for p in PUNCTUATIONS)
    + r"]+"
)


def replace_punctuation(text: str) -> str:
    """Fold punctuation and remove characters the analyzer has no reading for."""
    replaced = _PUNCTUATION_PATTERN.sub(lambda m: PUNCTUATION_MAP[m.group()], text)
    return _UNREADABLE_PATTERN.sub("", replaced)


def normalize_text(text: str) -> str:
    """
    Normalize text before analysis.

    Numerals are expected to have been expanded already by the analyzer's
    front-end. Punctuation runs keep their position and count, so
    "??あ、、！！！" becomes "??あ,,!!!".

    Args:
        text: Raw input text.

    Returns:
        Normalized text.
    """
    result = unicodedata.normalize("NFKC", text)

    # Wave dashes are read as long vowels
    result = result.replace("~", "ー").replace("～", "ー")

    result = replace_punctuation(result)

    # Combining (han)dakuten left over from NFKC
    result = result.replace("\u3099", "").replace("\u309A", "")
    return result
