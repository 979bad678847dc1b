"""
Character-level tokenization and per-phoneme feature broadcast.

The embedding model returns one row per character of the reading text plus the
start and end tokens. The vocoder wants one column per phoneme, so every row
is repeated as many times as its character has phonemes.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np
from tokenizers import Tokenizer

from .exceptions import InternalConsistencyError, TokenizerError

logger = logging.getLogger(__name__)

BOS_TOKEN_ID = 1
EOS_TOKEN_ID = 2


def expand_word2ph(word2ph: Sequence[int]) -> List[int]:
    """
    Adjust word2ph to the interspersed phone sequence.

    Interspersing a blank around every phone doubles the phone count and adds
    one leading blank, so every count is doubled and the first gets one more.
    """
    expanded = [count * 2 for count in word2ph]
    if expanded:
        expanded[0] += 1
    return expanded


def broadcast_features(embedding: np.ndarray, word2ph: Sequence[int]) -> np.ndarray:
    """
    Repeat embedding rows per phoneme.

    Args:
        embedding: (characters, hidden) matrix, one row per word2ph entry.
        word2ph: Phoneme count per row.

    Returns:
        (hidden, sum(word2ph)) float32 matrix.
    """
    if embedding.ndim != 2:
        raise InternalConsistencyError(
            f"Embedding must be 2-D, got shape {embedding.shape}"
        )
    if embedding.shape[0] != len(word2ph):
        raise InternalConsistencyError(
            f"Embedding has {embedding.shape[0]} rows but word2ph has {len(word2ph)} entries"
        )

    phone_level = np.repeat(embedding, np.asarray(word2ph, dtype=np.int64), axis=0)
    return np.ascontiguousarray(phone_level.T, dtype=np.float32)


def tokenize(text: str, tokenizer: Tokenizer) -> Tuple[List[int], List[int]]:
    """
    Tokenize text one character at a time.

    Each character is encoded on its own, without special tokens, so the
    embedding model sees character-aligned ids between the start id 1 and the
    end id 2.

    Returns:
        Tuple of (token_ids, attention_mask).
    """
    token_ids = [BOS_TOKEN_ID]
    attention_mask = [1]

    for char in text:
        try:
            encoding = tokenizer.encode(char, add_special_tokens=False)
        except Exception as e:
            raise TokenizerError(f"Failed to tokenize {char!r}: {e}") from e
        token_ids.extend(encoding.ids)
        attention_mask.extend(encoding.attention_mask)

    token_ids.append(EOS_TOKEN_ID)
    attention_mask.append(1)
    return token_ids, attention_mask


def load_tokenizer(data: bytes) -> Tokenizer:
    """Build a tokenizer from the bytes of a tokenizer.json file."""
    try:
        return Tokenizer.from_buffer(data)
    except Exception as e:
        raise TokenizerError(f"Failed to load tokenizer: {e}") from e
