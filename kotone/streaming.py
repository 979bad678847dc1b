"""
Kotone TTS - Audio Encoding and Streaming

The vocoder produces mono float32 samples; they are sent as 32-bit IEEE float
PCM, either raw or behind a WAV header, in fixed-size chunks.
"""

import struct
from typing import AsyncGenerator

import numpy as np

from .config import CHUNK_SIZE_SAMPLES, SAMPLE_RATE

BYTES_PER_SAMPLE = 4
WAVE_FORMAT_IEEE_FLOAT = 3


def audio_to_pcm_bytes(audio: np.ndarray) -> bytes:
    """
    Convert audio to 32-bit float PCM bytes.

    Args:
        audio: Mono audio array.

    Returns:
        Raw PCM bytes (float32, little-endian).
    """
    return np.asarray(audio, dtype="<f4").tobytes()


def create_wav_header(num_samples: int, sample_rate: int = SAMPLE_RATE) -> bytes:
    """
    Create a WAV header for mono 32-bit float audio.

    Args:
        num_samples: Total number of audio samples.
        sample_rate: Audio sample rate in Hz.

    Returns:
        44-byte WAV header.
    """
    channels = 1
    bits_per_sample = BYTES_PER_SAMPLE * 8
    byte_rate = sample_rate * channels * BYTES_PER_SAMPLE
    block_align = channels * BYTES_PER_SAMPLE
    data_size = num_samples * block_align
    file_size = 36 + data_size

    header = struct.pack(
        '<4sI4s4sIHHIIHH4sI',
        b'RIFF',
        file_size,
        b'WAVE',
        b'fmt ',
        16,
        WAVE_FORMAT_IEEE_FLOAT,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b'data',
        data_size,
    )

    return header


def encode_wav(audio: np.ndarray, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Encode audio as a complete WAV file."""
    return create_wav_header(len(audio), sample_rate) + audio_to_pcm_bytes(audio)


async def stream_audio_chunks(
    audio: np.ndarray,
    include_wav_header: bool = False,
) -> AsyncGenerator[bytes, None]:
    """
    Stream audio in chunks for chunked transfer encoding.

    Args:
        audio: Float32 audio array.
        include_wav_header: Whether to include WAV header as first chunk.

    Yields:
        Audio data chunks as bytes.
    """
    if include_wav_header:
        yield create_wav_header(len(audio))

    pcm_data = audio_to_pcm_bytes(audio)
    chunk_size_bytes = CHUNK_SIZE_SAMPLES * BYTES_PER_SAMPLE

    for i in range(0, len(pcm_data), chunk_size_bytes):
        yield pcm_data[i:i + chunk_size_bytes]


def get_audio_duration(audio: np.ndarray, sample_rate: int = SAMPLE_RATE) -> float:
    """Calculate audio duration in seconds."""
    return len(audio) / sample_rate
