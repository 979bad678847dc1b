"""
Kotone TTS - Engine Lifecycle

Process-wide engine instance used by the HTTP server. Every engine call goes
through one lock, since the model cache expects serialized access.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .config import (
    BERT_MODEL_PATH,
    MAX_LOADED_MODELS,
    MODELS_DIR,
    ONNX_PROVIDERS,
    TOKENIZER_PATH,
    VOICE_PACKAGE_SUFFIX,
    SynthesizeOptions,
)
from .engine import TTSEngine

logger = logging.getLogger(__name__)

# Global engine instance
_engine: Optional[TTSEngine] = None
_engine_ready: bool = False
_engine_lock = threading.Lock()


def get_engine() -> TTSEngine:
    """Get the global engine instance."""
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call initialize_engine() first.")
    return _engine


def is_engine_ready() -> bool:
    """Check if the engine is loaded and ready."""
    return _engine_ready


def set_engine(engine: Optional[TTSEngine]) -> None:
    """Install an already built engine, or clear it with None."""
    global _engine, _engine_ready
    with _engine_lock:
        _engine = engine
        _engine_ready = engine is not None


def load_voice_directory(engine: TTSEngine, models_dir: Path = MODELS_DIR) -> List[str]:
    """
    Register every voice package found in a directory.

    The file stem is the voice ident. Packages that fail to load are logged
    and skipped.
    """
    loaded = []
    if not models_dir.is_dir():
        logger.warning(f"Models directory {models_dir} does not exist")
        return loaded

    for path in sorted(models_dir.glob(f"*{VOICE_PACKAGE_SUFFIX}")):
        try:
            engine.register_archive_path(path.stem, path)
        except Exception as e:
            logger.error(f"Failed to load voice package {path.name}: {e}")
            continue
        loaded.append(path.stem)

    return loaded


def initialize_engine() -> float:
    """
    Initialize the engine from the configured paths and load all voices.

    Returns:
        Initialization time in seconds.
    """
    start_time = time.perf_counter()

    engine = TTSEngine.from_paths(
        BERT_MODEL_PATH,
        TOKENIZER_PATH,
        max_loaded_models=MAX_LOADED_MODELS,
        providers=ONNX_PROVIDERS,
    )
    voices = load_voice_directory(engine)
    set_engine(engine)

    init_time = time.perf_counter() - start_time
    logger.info(f"Engine initialized with {len(voices)} voices in {init_time:.2f}s")
    return init_time


def list_models() -> List[Dict[str, Any]]:
    """List registered voices with their session state."""
    if _engine is None:
        return []
    with _engine_lock:
        return [
            {
                "ident": entry.ident,
                "loaded": entry.is_hot,
                "styles": int(entry.style_vectors.shape[0]),
            }
            for entry in _engine.models.entries()
        ]


def get_cache_status() -> Dict[str, Any]:
    engine = get_engine()
    with _engine_lock:
        return engine.models.status()


def register_voice(ident: str, data: bytes) -> bool:
    """
    Register a voice package.

    Returns:
        False if the ident was already registered.
    """
    engine = get_engine()
    with _engine_lock:
        if ident in engine.models:
            return False
        engine.register_archive(ident, data)
        return True


def unregister_voice(ident: str) -> bool:
    engine = get_engine()
    with _engine_lock:
        return engine.unregister(ident)


def generate_audio(
    ident: str,
    text: str,
    style_id: int = 0,
    speaker_id: int = 0,
    options: Optional[SynthesizeOptions] = None,
) -> Tuple[np.ndarray, float]:
    """
    Generate audio from text.

    Returns:
        Tuple of (audio_array, generation_time).
    """
    engine = get_engine()

    start_time = time.perf_counter()
    with _engine_lock:
        audio = engine.synthesize(ident, text, style_id, speaker_id, options)
    generation_time = time.perf_counter() - start_time

    return audio, generation_time
