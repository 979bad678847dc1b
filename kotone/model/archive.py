"""
Voice package (.sbv2) reader.

A voice package is a zstd-compressed tar stream holding the vocoder graph
(model.onnx) and its style vectors (style_vectors.json). Packages are small
enough to be decoded completely in memory.
"""

import io
import logging
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

import zstandard

from ..exceptions import ArchiveFormatError, ArchiveMemberMissingError

logger = logging.getLogger(__name__)

MODEL_MEMBER = "model.onnx"
STYLE_VECTORS_MEMBER = "style_vectors.json"

# Names used in "not found" errors, in reporting order
_MEMBER_LABELS = {MODEL_MEMBER: "vits2", STYLE_VECTORS_MEMBER: "style_vectors"}


@dataclass(frozen=True)
class VoiceArchive:
    """Raw members of a voice package."""
    model_bytes: bytes
    style_vectors_bytes: bytes


def _decompress(data: bytes) -> bytes:
    dctx = zstandard.ZstdDecompressor()
    try:
        with dctx.stream_reader(io.BytesIO(data)) as reader:
            return reader.read()
    except zstandard.ZstdError as e:
        raise ArchiveFormatError(f"Voice package is not valid zstd data: {e}") from e


def load_archive(data: bytes) -> VoiceArchive:
    """
    Extract the model and style vectors from voice package bytes.

    Member names may carry a leading "./". Other members are ignored.

    Raises:
        ArchiveFormatError: If the data is not a zstd-compressed tar stream.
        ArchiveMemberMissingError: If either required member is absent.
    """
    decoded = _decompress(data)

    members: Dict[str, bytes] = {}
    try:
        with tarfile.open(fileobj=io.BytesIO(decoded), mode="r:") as tar:
            for member in tar:
                if not member.isfile():
                    continue
                name = member.name[2:] if member.name.startswith("./") else member.name
                if name not in _MEMBER_LABELS:
                    continue
                extracted = tar.extractfile(member)
                if extracted is not None:
                    members[name] = extracted.read()
    except tarfile.TarError as e:
        raise ArchiveFormatError(f"Voice package is not a valid tar stream: {e}") from e

    missing = [label for name, label in _MEMBER_LABELS.items() if name not in members]
    if missing:
        raise ArchiveMemberMissingError(missing)

    logger.debug(
        f"Voice package: model {len(members[MODEL_MEMBER])} bytes, "
        f"style vectors {len(members[STYLE_VECTORS_MEMBER])} bytes"
    )
    return VoiceArchive(
        model_bytes=members[MODEL_MEMBER],
        style_vectors_bytes=members[STYLE_VECTORS_MEMBER],
    )


def load_archive_path(path: Union[str, Path]) -> VoiceArchive:
    """Read and extract a voice package file."""
    return load_archive(Path(path).read_bytes())
