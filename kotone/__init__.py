"""
Kotone - Japanese text-to-speech core for Style-Bert-VITS2 ONNX voices.
"""

from .config import SynthesizeOptions
from .engine import ParsedText, TTSEngine

__version__ = "0.1.0"

__all__ = ['SynthesizeOptions', 'ParsedText', 'TTSEngine']
