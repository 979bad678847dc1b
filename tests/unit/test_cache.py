"""
Tests for kotone/model/cache.py: registration and bounded session loading.
"""

from unittest.mock import MagicMock

import pytest

from kotone.exceptions import InferenceError, ModelNotFoundError, StyleVectorError
from kotone.model.cache import ModelCache

from tests.conftest import build_archive, make_fake_vocoder_session


def _hot(cache):
    return [entry.ident for entry in cache.entries() if entry.is_hot]


@pytest.fixture
def register_all(style_bytes, model_bytes):
    def register(cache, idents):
        for ident in idents:
            cache.register(ident, style_bytes, model_bytes)
        return cache
    return register


class TestRegistration:
    def test_unbounded_loads_every_session(self, session_factory, register_all):
        cache = register_all(ModelCache(session_factory=session_factory), ["a", "b", "c"])

        assert _hot(cache) == ["a", "b", "c"]
        assert cache.live_count() == 3
        assert not cache.is_saturated()
        assert session_factory.call_count == 3

    def test_bounded_registers_cold_when_saturated(self, session_factory, register_all):
        cache = register_all(ModelCache(2, session_factory), ["a", "b", "c"])

        assert cache.idents() == ["a", "b", "c"]
        assert _hot(cache) == ["a", "b"]
        assert cache.is_saturated()

    def test_duplicate_register_is_noop(self, session_factory, style_bytes, model_bytes):
        cache = ModelCache(session_factory=session_factory)
        first = cache.register("a", style_bytes, model_bytes)
        second = cache.register("a", b"ignored", b"ignored")

        assert first is second
        assert len(cache) == 1
        assert session_factory.call_count == 1

    def test_invalid_style_stores_nothing(self, session_factory, model_bytes):
        cache = ModelCache(session_factory=session_factory)
        with pytest.raises(StyleVectorError):
            cache.register("a", b"[]", model_bytes)
        assert "a" not in cache
        session_factory.assert_not_called()

    def test_session_failure_stores_nothing(self, style_bytes, model_bytes):
        cache = ModelCache(session_factory=MagicMock(side_effect=InferenceError("bad")))
        with pytest.raises(InferenceError):
            cache.register("a", style_bytes, model_bytes)
        assert len(cache) == 0

    def test_register_archive(self, session_factory, voice_archive):
        cache = ModelCache(session_factory=session_factory)
        entry = cache.register_archive("a", voice_archive)
        assert entry.style_vectors.shape == (3, 4)
        assert entry.model_bytes == b"fake-onnx-model"

    def test_register_archive_missing_member(self, session_factory, model_bytes):
        cache = ModelCache(session_factory=session_factory)
        with pytest.raises(ModelNotFoundError):
            cache.register_archive("a", build_archive({"model.onnx": model_bytes}))
        assert "a" not in cache

    def test_register_archive_path(self, tmp_path, session_factory, voice_archive):
        path = tmp_path / "a.sbv2"
        path.write_bytes(voice_archive)
        cache = ModelCache(session_factory=session_factory)
        cache.register_archive_path("a", path)
        assert "a" in cache

    def test_register_archive_path_missing(self, tmp_path, session_factory):
        cache = ModelCache(session_factory=session_factory)
        with pytest.raises(ModelNotFoundError, match="not found"):
            cache.register_archive_path("a", tmp_path / "nope.sbv2")

    def test_register_from_paths(self, tmp_path, session_factory, style_bytes, model_bytes):
        style_path = tmp_path / "style_vectors.json"
        model_path = tmp_path / "model.onnx"
        style_path.write_bytes(style_bytes)
        model_path.write_bytes(model_bytes)

        cache = ModelCache(session_factory=session_factory)
        cache.register_from_paths("a", style_path, model_path)
        session_factory.assert_called_once_with(model_bytes, "a")

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            ModelCache(0)


class TestEnsureReady:
    def test_unknown_ident(self, session_factory):
        with pytest.raises(ModelNotFoundError):
            ModelCache(session_factory=session_factory).ensure_ready("missing")

    def test_hot_entry_reused(self, session_factory, register_all):
        cache = register_all(ModelCache(2, session_factory), ["a", "b"])
        calls = session_factory.call_count

        cache.ensure_ready("a")
        assert session_factory.call_count == calls
        # activation moves "a" to the most recent end
        assert cache.idents() == ["b", "a"]

    def test_cold_entry_evicts_least_recent(self, session_factory, register_all):
        cache = register_all(ModelCache(2, session_factory), ["a", "b", "c"])

        entry = cache.ensure_ready("c")
        assert entry.is_hot
        assert _hot(cache) == ["b", "c"]
        assert cache.get("a").session is None

    def test_live_sessions_never_exceed_cap(self, session_factory, register_all):
        cache = register_all(ModelCache(2, session_factory), ["a", "b", "c", "d"])

        for ident in ["c", "a", "d", "b", "b", "c", "a"]:
            entry = cache.ensure_ready(ident)
            assert entry.is_hot
            assert cache.live_count() <= 2

    def test_cap_of_one(self, session_factory, register_all):
        cache = register_all(ModelCache(1, session_factory), ["a", "b"])
        assert _hot(cache) == ["a"]

        cache.ensure_ready("b")
        assert _hot(cache) == ["b"]
        cache.ensure_ready("a")
        assert _hot(cache) == ["a"]

    def test_failure_leaves_cache_unchanged(self, style_bytes, model_bytes):
        sessions = iter([make_fake_vocoder_session(), make_fake_vocoder_session()])

        def factory(data, ident):
            if ident == "c":
                raise InferenceError("cannot load", model=ident)
            return next(sessions)

        cache = ModelCache(2, factory)
        for ident in ["a", "b", "c"]:
            cache.register(ident, style_bytes, model_bytes)

        with pytest.raises(InferenceError):
            cache.ensure_ready("c")
        assert _hot(cache) == ["a", "b"]
        assert cache.idents() == ["a", "b", "c"]

    def test_unbounded_never_evicts(self, session_factory, register_all):
        cache = register_all(ModelCache(session_factory=session_factory), ["a", "b"])
        cache.ensure_ready("a")
        cache.ensure_ready("b")
        assert _hot(cache) == ["a", "b"]


class TestUnregister:
    def test_hot_entry(self, session_factory, register_all):
        cache = register_all(ModelCache(2, session_factory), ["a", "b"])
        assert cache.unregister("a")
        assert cache.idents() == ["b"]
        assert cache.live_count() == 1

    def test_cold_entry(self, session_factory, register_all):
        cache = register_all(ModelCache(1, session_factory), ["a", "b"])
        assert cache.unregister("b")
        assert _hot(cache) == ["a"]

    def test_unknown(self, session_factory):
        assert ModelCache(session_factory=session_factory).unregister("x") is False

    def test_freed_slot_used_by_next_register(self, session_factory, register_all):
        cache = register_all(ModelCache(1, session_factory), ["a"])
        cache.unregister("a")
        register_all(cache, ["b"])
        assert _hot(cache) == ["b"]


class TestStatus:
    def test_status(self, session_factory, register_all):
        cache = register_all(ModelCache(2, session_factory), ["a", "b", "c"])
        assert cache.status() == {
            "models": 3,
            "live_sessions": 2,
            "max_loaded_models": 2,
            "saturated": True,
        }
