"""
ONNX Runtime sessions for the embedding model and the vocoder.

Sessions are always built from in-memory bytes. The two call helpers encode
the tensor contracts of the graphs: the embedding model takes a single row of
token ids and returns one hidden vector per token, the vocoder takes the
phone-level inputs and returns a (batch, channel, samples) waveform.
"""

import logging
import os
from typing import List, Optional, Sequence

import numpy as np
import onnxruntime as ort
import psutil

from .. import config
from ..exceptions import InferenceError

logger = logging.getLogger(__name__)

CPU_PROVIDER = "CPUExecutionProvider"
VOCODER_OUTPUT = "output"


def _physical_cores() -> int:
    return psutil.cpu_count(logical=False) or os.cpu_count() or 1


def create_session_options() -> ort.SessionOptions:
    """Session options shared by every graph: full optimization, threads per physical core."""
    session_options = ort.SessionOptions()
    session_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    session_options.execution_mode = ort.ExecutionMode.ORT_PARALLEL

    cores = _physical_cores()
    session_options.intra_op_num_threads = cores
    session_options.inter_op_num_threads = cores

    session_options.enable_mem_pattern = True
    session_options.enable_mem_reuse = True
    return session_options


def select_providers(requested: Optional[Sequence[str]] = None) -> List[str]:
    """
    Keep the requested providers this onnxruntime build offers, in order.

    The CPU provider is always present, last unless requested earlier.
    """
    requested = list(requested if requested is not None else config.ONNX_PROVIDERS)
    available = set(ort.get_available_providers())

    providers = []
    for provider in requested:
        if provider in providers:
            continue
        if provider in available:
            providers.append(provider)
        else:
            logger.warning(f"Execution provider {provider} is not available, skipping")

    if CPU_PROVIDER not in providers:
        providers.append(CPU_PROVIDER)
    return providers


def load_model_session(
    model_bytes: bytes,
    providers: Optional[Sequence[str]] = None,
    name: Optional[str] = None,
) -> ort.InferenceSession:
    """
    Build an inference session from serialized ONNX bytes.

    Args:
        model_bytes: Contents of an .onnx file.
        providers: Execution providers, defaults to the configured ones.
        name: Model name used in logs and errors.

    Returns:
        A ready onnxruntime.InferenceSession.
    """
    try:
        session = ort.InferenceSession(
            model_bytes,
            sess_options=create_session_options(),
            providers=select_providers(providers),
        )
    except Exception as e:
        raise InferenceError(f"Failed to create session: {e}", model=name) from e

    logger.debug(f"Session created for {name or 'model'}: {session.get_providers()}")
    return session


def predict_bert(
    session: ort.InferenceSession,
    token_ids: Sequence[int],
    attention_mask: Sequence[int],
) -> np.ndarray:
    """Run the embedding model and return a (tokens, hidden) float32 matrix."""
    inputs = {
        "input_ids": np.asarray([token_ids], dtype=np.int64),
        "attention_mask": np.asarray([attention_mask], dtype=np.int64),
    }
    try:
        outputs = session.run(None, inputs)
    except Exception as e:
        raise InferenceError(f"Embedding model failed: {e}", model="bert") from e

    embedding = np.asarray(outputs[0], dtype=np.float32)
    if embedding.ndim == 3:
        embedding = embedding[0]
    return embedding


def run_vocoder(
    session: ort.InferenceSession,
    bert: np.ndarray,
    phone_ids: Sequence[int],
    tone_ids: Sequence[int],
    lang_ids: Sequence[int],
    style_vector: np.ndarray,
    speaker_id: int = 0,
    sdp_ratio: float = config.DEFAULT_SDP_RATIO,
    length_scale: float = config.DEFAULT_LENGTH_SCALE,
    noise_scale: float = config.DEFAULT_NOISE_SCALE,
    noise_scale_w: float = config.DEFAULT_NOISE_SCALE_W,
    model: Optional[str] = None,
) -> np.ndarray:
    """
    Run the vocoder on one utterance.

    Args:
        session: Vocoder session.
        bert: (hidden, phones) phone-level features.
        phone_ids: Interspersed phone ids.
        tone_ids: Interspersed tone ids.
        lang_ids: Interspersed language ids.
        style_vector: Blended style vector.
        speaker_id: Speaker index of multi-speaker models.
        model: Model ident used in errors.

    Returns:
        (batch, channel, samples) float32 waveform.
    """
    inputs = {
        "x_tst": np.asarray([phone_ids], dtype=np.int64),
        "x_tst_lengths": np.asarray([len(phone_ids)], dtype=np.int64),
        "sid": np.asarray([speaker_id], dtype=np.int64),
        "tones": np.asarray([tone_ids], dtype=np.int64),
        "language": np.asarray([lang_ids], dtype=np.int64),
        "bert": np.asarray(bert, dtype=np.float32)[np.newaxis, ...],
        "style_vec": np.asarray(style_vector, dtype=np.float32)[np.newaxis, ...],
        "sdp_ratio": np.asarray([sdp_ratio], dtype=np.float32),
        "length_scale": np.asarray([length_scale], dtype=np.float32),
        "noise_scale": np.asarray([noise_scale], dtype=np.float32),
        "noise_scale_w": np.asarray([noise_scale_w], dtype=np.float32),
    }
    try:
        outputs = session.run([VOCODER_OUTPUT], inputs)
    except Exception as e:
        raise InferenceError(f"Vocoder failed: {e}", model=model) from e

    audio = np.asarray(outputs[0], dtype=np.float32)
    if audio.ndim != 3:
        raise InferenceError(
            f"Vocoder output must be 3-D, got shape {audio.shape}", model=model
        )
    return audio
