"""
Grapheme-to-phoneme conversion for normalized Japanese text.

Two phoneme sequences are derived from one analysis: a tone-bearing one from
the full-context labels (no punctuation) and a punctuation-bearing one from
the katakana readings. They are aligned so every output phone, punctuation
included, has a tone, and the per-word phoneme counts are spread over the
word's characters to give word2ph.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from .analyzer import Analysis
from .phonemes import (
    align_tones,
    distribute_phone,
    handle_long,
    kata_to_phoneme_list,
    text_to_seq_kata,
)
from .prosody import extract_prosody, g2phone_tone_wo_punct
from .symbols import PAD, PUNCTUATION_SET

logger = logging.getLogger(__name__)


@dataclass
class G2PResult:
    """Phones, tones and word2ph of one utterance, boundaries included."""
    phones: List[str] = field(default_factory=list)
    tones: List[int] = field(default_factory=list)
    word2ph: List[int] = field(default_factory=list)
    words: List[str] = field(default_factory=list)

    @property
    def reading_text(self) -> str:
        """The text the tokenizer sees: the analyzer words joined."""
        return "".join(self.words)


def g2p(analysis: Analysis) -> G2PResult:
    """
    Convert an analysis into phones, tones and word2ph.

    The phone and tone lists start and end with the pad symbol "_" (tone 0),
    and word2ph carries a matching count of 1 at both ends. Every other entry
    of word2ph belongs to one character of the reading text; a punctuation
    word counts as one character.

    Args:
        analysis: Analyzer output for normalized text.

    Returns:
        G2PResult for the utterance.
    """
    phone_tone_wo_punct = g2phone_tone_wo_punct(extract_prosody(analysis.labels))
    seq_text, seq_kata = text_to_seq_kata(analysis.words)

    sep_phonemes = handle_long([kata_to_phoneme_list(kata) for kata in seq_kata])
    phones_with_punct = [phone for phonemes in sep_phonemes for phone in phonemes]

    phone_tone_list = align_tones(phones_with_punct, phone_tone_wo_punct)

    word2ph: List[int] = []
    for word, phonemes in zip(seq_text, sep_phonemes):
        n_chars = 1 if word in PUNCTUATION_SET else len(word)
        word2ph.extend(distribute_phone(len(phonemes), n_chars))

    phone_tone_list = [(PAD, 0)] + phone_tone_list + [(PAD, 0)]
    word2ph = [1] + word2ph + [1]

    logger.debug(f"g2p: {len(phone_tone_list)} phones for {len(seq_text)} words")
    return G2PResult(
        phones=[phone for phone, _ in phone_tone_list],
        tones=[tone for _, tone in phone_tone_list],
        word2ph=word2ph,
        words=seq_text,
    )
