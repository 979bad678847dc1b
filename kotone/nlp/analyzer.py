"""
Open JTalk front-end wrapper.

Only three things are taken from the analyzer: the morpheme list (surface and
katakana pronunciation), the HTS full-context labels built from it, and the
numeral-expanded surface text. Everything downstream works on the plain
records defined here, so tests can feed hand-written labels.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Tuple

import pyopenjtalk

from ..exceptions import AnalyzerError

logger = logging.getLogger(__name__)

# Value used by the label format for an absent field ("xx")
MISSING_FEATURE = -50

_P3_PATTERN = re.compile(r"\-(.*?)\+")
_A1_PATTERN = re.compile(r"/A:([0-9\-]+)\+")
_A2_PATTERN = re.compile(r"\+(\d+)\+")
_A3_PATTERN = re.compile(r"\+(\d+)/")
_E3_PATTERN = re.compile(r"!(\d+)_")
_F1_PATTERN = re.compile(r"/F:(\d+)_")


def _numeric_feature(pattern: Pattern[str], label: str) -> int:
    match = pattern.search(label)
    if match is None:
        return MISSING_FEATURE
    return int(match.group(1))


@dataclass(frozen=True)
class AnalyzedLabel:
    """The fields of one full-context label that prosody extraction needs."""
    phoneme: str
    a1: int = MISSING_FEATURE  # accent position relative to the nucleus
    a2: int = MISSING_FEATURE  # mora position in the accent phrase, forward
    a3: int = MISSING_FEATURE  # mora position in the accent phrase, backward
    f1: int = MISSING_FEATURE  # mora count of the accent phrase
    e3: int = MISSING_FEATURE  # 1 if the previous accent phrase is interrogative

    @property
    def is_interrogative(self) -> bool:
        return self.e3 == 1

    @classmethod
    def from_fullcontext(cls, label: str) -> "AnalyzedLabel":
        """Parse an HTS full-context label string."""
        match = _P3_PATTERN.search(label)
        if match is None:
            raise AnalyzerError(f"Malformed full-context label: {label}")

        return cls(
            phoneme=match.group(1),
            a1=_numeric_feature(_A1_PATTERN, label),
            a2=_numeric_feature(_A2_PATTERN, label),
            a3=_numeric_feature(_A3_PATTERN, label),
            f1=_numeric_feature(_F1_PATTERN, label),
            e3=_numeric_feature(_E3_PATTERN, label),
        )


@dataclass
class Analysis:
    """Analyzer output for one normalized utterance."""
    words: List[Tuple[str, str]] = field(default_factory=list)  # (surface, pron)
    labels: List[AnalyzedLabel] = field(default_factory=list)


class OpenJTalkAnalyzer:
    """
    Thin wrapper around pyopenjtalk.

    The instance holds no mutable state of its own and is shared read-only by
    every utterance the engine processes.
    """

    def __init__(self, user_dictionary: Optional[str] = None):
        self.user_dictionary = user_dictionary
        if user_dictionary:
            try:
                pyopenjtalk.update_global_jtalk_with_user_dict(user_dictionary)
            except Exception as e:
                raise AnalyzerError(
                    f"Failed to load user dictionary {user_dictionary}: {e}"
                ) from e
            logger.info(f"Loaded Open JTalk user dictionary: {user_dictionary}")

    def run_frontend(self, text: str) -> List[Dict[str, Any]]:
        """Run text analysis and return the NJD feature list."""
        try:
            return pyopenjtalk.run_frontend(text)
        except Exception as e:
            raise AnalyzerError(f"Open JTalk front-end failed: {e}") from e

    def make_label(self, features: List[Dict[str, Any]]) -> List[str]:
        try:
            return pyopenjtalk.make_label(features)
        except Exception as e:
            raise AnalyzerError(f"Open JTalk label generation failed: {e}") from e

    def num2word(self, text: str) -> str:
        """Return the surface text with numerals spelled out by the front-end."""
        if not text:
            return text
        return "".join(node["string"] for node in self.run_frontend(text))

    def analyze(self, text: str) -> Analysis:
        """
        Analyze normalized text.

        Args:
            text: Output of normalize_text.

        Returns:
            Analysis with one (surface, pronunciation) pair per morpheme and the
            parsed full-context labels of the whole utterance.
        """
        features = self.run_frontend(text)
        words = [(node["string"], node["pron"]) for node in features]
        labels = [
            AnalyzedLabel.from_fullcontext(label)
            for label in self.make_label(features)
        ]
        logger.debug(f"Analyzed {len(words)} morphemes into {len(labels)} labels")
        return Analysis(words=words, labels=labels)
