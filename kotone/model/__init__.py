"""
Voice models: package format, style vectors, ONNX sessions and the cache
that decides which voices keep a live session.
"""

from .archive import VoiceArchive, load_archive, load_archive_path
from .cache import ModelCache, ModelEntry
from .sessions import load_model_session, predict_bert, run_vocoder
from .style import get_style_vector, load_style

__all__ = [
    'VoiceArchive',
    'load_archive',
    'load_archive_path',
    'ModelCache',
    'ModelEntry',
    'load_model_session',
    'predict_bert',
    'run_vocoder',
    'get_style_vector',
    'load_style',
]
