"""
Kotone TTS - Configuration

Environment-driven settings for the engine and the HTTP server, plus the
validated synthesis options passed to every synthesize call.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    if not value:
        return None
    return int(value)


def _provider_list(name: str, default: str) -> List[str]:
    return [p.strip() for p in os.getenv(name, default).split(",") if p.strip()]


# Base paths
PROJECT_ROOT = Path(__file__).parent.parent
MODELS_DIR = Path(os.getenv("KOTONE_MODELS_DIR", str(PROJECT_ROOT / "models")))

# Shared embedding model (DeBERTa, Japanese char-level) and its tokenizer
BERT_MODEL_PATH = Path(
    os.getenv("KOTONE_BERT_MODEL_PATH", str(MODELS_DIR / "deberta.onnx"))
)
TOKENIZER_PATH = Path(
    os.getenv("KOTONE_TOKENIZER_PATH", str(MODELS_DIR / "tokenizer.json"))
)

# Voice package extension scanned in MODELS_DIR at startup
VOICE_PACKAGE_SUFFIX = ".sbv2"

# Server settings
HOST = os.getenv("KOTONE_HOST", "0.0.0.0")
PORT = int(os.getenv("KOTONE_PORT", "3000"))
LOG_LEVEL = os.getenv("KOTONE_LOG_LEVEL", "INFO").upper()

# Model cache: unset means every registered voice keeps a live session
MAX_LOADED_MODELS = _optional_int("KOTONE_MAX_LOADED_MODELS")

# ONNX Runtime execution providers, in priority order (CPU is always appended)
ONNX_PROVIDERS = _provider_list("KOTONE_ONNX_PROVIDERS", "CPUExecutionProvider")

# Audio settings
SAMPLE_RATE = 44100  # vocoder output rate, mono float32
SILENCE_SECONDS = 1.0  # gap between split sentences
CHUNK_SIZE_MS = 100
CHUNK_SIZE_SAMPLES = int(SAMPLE_RATE * CHUNK_SIZE_MS / 1000)

# Default synthesis settings
DEFAULT_SDP_RATIO = 0.0
DEFAULT_LENGTH_SCALE = 1.0
DEFAULT_STYLE_WEIGHT = 1.0
DEFAULT_NOISE_SCALE = 0.677
DEFAULT_NOISE_SCALE_W = 0.8
MAX_TEXT_LENGTH = 10000


@dataclass
class SynthesizeOptions:
    """Per-request knobs for the vocoder."""
    sdp_ratio: float = DEFAULT_SDP_RATIO
    length_scale: float = DEFAULT_LENGTH_SCALE  # inverse of speaking rate
    style_weight: float = DEFAULT_STYLE_WEIGHT
    split_sentences: bool = True
    noise_scale: float = DEFAULT_NOISE_SCALE
    noise_scale_w: float = DEFAULT_NOISE_SCALE_W

    def __post_init__(self):
        """Validate synthesis options."""
        if not 0.0 <= self.sdp_ratio <= 1.0:
            raise ValueError("sdp_ratio must be between 0 and 1")
        if self.length_scale <= 0:
            raise ValueError("length_scale must be positive")
        if self.noise_scale < 0 or self.noise_scale_w < 0:
            raise ValueError("noise scales must be non-negative")


def verify_config() -> None:
    """Check settings that cannot be validated at import time."""
    if MAX_LOADED_MODELS is not None and MAX_LOADED_MODELS < 1:
        raise ValueError("KOTONE_MAX_LOADED_MODELS must be at least 1")
