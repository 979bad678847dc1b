"""
Prosody extraction from full-context labels.

The label stream is first turned into a flat list of phones interleaved with
prosody markers, then the markers are consumed to give every phone a tone
value of 0 (low) or 1 (high) within its accent phrase.
"""

import logging
from enum import Enum
from typing import List, Sequence, Tuple, Union

from ..exceptions import InternalConsistencyError, InvalidToneValuesError
from .analyzer import MISSING_FEATURE, AnalyzedLabel

logger = logging.getLogger(__name__)

PhoneTone = Tuple[str, int]


class ProsodyMarker(str, Enum):
    """Prosody symbols inserted between phones."""
    PHRASE_START = "^"
    PHRASE_END = "$"
    INTERROGATIVE_END = "?"
    PAUSE = "_"
    PHRASE_BOUNDARY = "#"
    TONE_UP = "["
    TONE_DOWN = "]"


ProsodyItem = Union[ProsodyMarker, str]

_UNVOICED_VOWELS = frozenset(["A", "I", "U", "E", "O"])
# Phones after which an accent phrase boundary may be placed (substring test)
_BOUNDARY_PHONES = "aeiouAEIOUNcl"

_FLUSH_MARKERS = (
    ProsodyMarker.PHRASE_END,
    ProsodyMarker.INTERROGATIVE_END,
    ProsodyMarker.PAUSE,
    ProsodyMarker.PHRASE_BOUNDARY,
)
_END_MARKERS = (ProsodyMarker.PHRASE_END, ProsodyMarker.INTERROGATIVE_END)


def extract_prosody(labels: Sequence[AnalyzedLabel]) -> List[ProsodyItem]:
    """
    Convert a label stream into phones and prosody markers.

    The stream is expected to start and end with a "sil" label. Unvoiced vowels
    are folded into their voiced counterparts. After each phone at most one of
    three look-ahead markers is emitted, decided from the next label's forward
    mora position:

    - "#" when the phone closes its accent phrase and the next phrase starts;
    - "]" on the accent nucleus, unless it is the last mora of the phrase;
    - "[" on the first mora when the pitch rises into the second one.

    Args:
        labels: Parsed labels of one utterance.

    Returns:
        Flat list of ProsodyMarker values and phone strings.
    """
    items: List[ProsodyItem] = []
    last_index = len(labels) - 1

    for i, label in enumerate(labels):
        phone = label.phoneme
        if phone in _UNVOICED_VOWELS:
            phone = phone.lower()

        if phone == "sil":
            if i == 0:
                items.append(ProsodyMarker.PHRASE_START)
            elif i == last_index:
                if label.is_interrogative:
                    items.append(ProsodyMarker.INTERROGATIVE_END)
                else:
                    items.append(ProsodyMarker.PHRASE_END)
            else:
                raise InternalConsistencyError(
                    f"Silence label at position {i} of {len(labels)}"
                )
            continue

        if phone == "pau":
            items.append(ProsodyMarker.PAUSE)
            continue

        items.append(phone)

        a2_next = labels[i + 1].a2 if i < last_index else MISSING_FEATURE

        if label.a3 == 1 and a2_next == 1 and phone in _BOUNDARY_PHONES:
            items.append(ProsodyMarker.PHRASE_BOUNDARY)
        elif label.a1 == 0 and a2_next == label.a2 + 1 and label.a2 != label.f1:
            items.append(ProsodyMarker.TONE_DOWN)
        elif label.a2 == 1 and a2_next == 2:
            items.append(ProsodyMarker.TONE_UP)

    return items


def fix_phone_tone(phrase: Sequence[PhoneTone], phrase_index: int = -1) -> List[PhoneTone]:
    """
    Canonicalize the tones of one accent phrase to 0/1.

    A phrase may only use tones {0}, {0, 1} or {-1, 0}; the last one is shifted
    up by one. Anything else raises InvalidToneValuesError.
    """
    tone_values = {tone for _, tone in phrase}

    if tone_values == {0} or tone_values == {0, 1}:
        return list(phrase)
    if tone_values == {-1, 0}:
        return [(phone, 0 if tone == -1 else 1) for phone, tone in phrase]

    raise InvalidToneValuesError(tone_values, phrase, phrase_index)


def g2phone_tone_wo_punct(prosody: Sequence[ProsodyItem]) -> List[PhoneTone]:
    """
    Assign tones to phones using the prosody markers.

    Punctuation is not part of the label stream, so the result has none.
    The geminate placeholder "cl" is renamed to "q".

    Args:
        prosody: Output of extract_prosody.

    Returns:
        List of (phone, tone) pairs with tone 0 or 1.
    """
    results: List[PhoneTone] = []
    current_phrase: List[PhoneTone] = []
    current_tone = 0
    phrase_index = 0
    last_index = len(prosody) - 1

    for i, item in enumerate(prosody):
        if item == ProsodyMarker.PHRASE_START:
            if i != 0:
                raise InternalConsistencyError(f"Phrase start marker at position {i}")

        elif item in _FLUSH_MARKERS:
            if current_phrase:
                try:
                    results.extend(fix_phone_tone(current_phrase, phrase_index))
                except InvalidToneValuesError:
                    logger.debug(f"Prosody stream: {list(prosody)}")
                    raise
                phrase_index += 1

            if item in _END_MARKERS and i != last_index:
                raise InternalConsistencyError(
                    f"Phrase end marker at position {i} of {len(prosody)}"
                )

            current_phrase = []
            current_tone = 0

        elif item == ProsodyMarker.TONE_UP:
            current_tone += 1

        elif item == ProsodyMarker.TONE_DOWN:
            current_tone -= 1

        else:
            phone = "q" if item == "cl" else item
            current_phrase.append((phone, current_tone))

    return results
