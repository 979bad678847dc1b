"""
Tests for kotone/model/archive.py
"""

import pytest

from kotone.exceptions import (
    ArchiveFormatError,
    ArchiveMemberMissingError,
    ModelNotFoundError,
)
from kotone.model.archive import load_archive, load_archive_path

from tests.conftest import build_archive


class TestLoadArchive:
    def test_extracts_members(self, voice_archive, model_bytes, style_bytes):
        archive = load_archive(voice_archive)
        assert archive.model_bytes == model_bytes
        assert archive.style_vectors_bytes == style_bytes

    def test_dot_slash_prefix(self, model_bytes, style_bytes):
        data = build_archive(
            {"model.onnx": model_bytes, "style_vectors.json": style_bytes}, prefix="./"
        )
        archive = load_archive(data)
        assert archive.model_bytes == model_bytes

    def test_extra_members_ignored(self, model_bytes, style_bytes):
        data = build_archive({
            "README.txt": b"hello",
            "model.onnx": model_bytes,
            "style_vectors.json": style_bytes,
        })
        assert load_archive(data).style_vectors_bytes == style_bytes

    def test_missing_style_vectors(self, model_bytes):
        data = build_archive({"model.onnx": model_bytes})
        with pytest.raises(ArchiveMemberMissingError) as exc_info:
            load_archive(data)
        assert exc_info.value.missing == ["style_vectors"]
        assert str(exc_info.value) == "style_vectors not found"

    def test_missing_model(self, style_bytes):
        data = build_archive({"style_vectors.json": style_bytes})
        with pytest.raises(ModelNotFoundError, match="vits2 not found"):
            load_archive(data)

    def test_missing_both(self):
        data = build_archive({"other.bin": b"x"})
        with pytest.raises(ArchiveMemberMissingError) as exc_info:
            load_archive(data)
        assert str(exc_info.value) == "vits2, style_vectors not found"

    def test_not_zstd(self):
        with pytest.raises(ArchiveFormatError):
            load_archive(b"definitely not zstd")

    def test_load_archive_path(self, tmp_path, voice_archive, model_bytes):
        path = tmp_path / "voice.sbv2"
        path.write_bytes(voice_archive)
        assert load_archive_path(path).model_bytes == model_bytes
