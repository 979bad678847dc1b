"""
Japanese text front-end.

Turns raw text into phones, tones and word2ph using Open JTalk analysis.
"""

from .analyzer import AnalyzedLabel, Analysis, OpenJTalkAnalyzer
from .g2p import G2PResult, g2p
from .normalizer import normalize_text, replace_punctuation
from .prosody import ProsodyMarker, extract_prosody, fix_phone_tone, g2phone_tone_wo_punct
from .symbols import cleaned_text_to_sequence, intersperse

__all__ = [
    'AnalyzedLabel',
    'Analysis',
    'OpenJTalkAnalyzer',
    'G2PResult',
    'g2p',
    'normalize_text',
    'replace_punctuation',
    'ProsodyMarker',
    'extract_prosody',
    'fix_phone_tone',
    'g2phone_tone_wo_punct',
    'cleaned_text_to_sequence',
    'intersperse',
]
