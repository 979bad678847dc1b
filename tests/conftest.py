"""
Shared test fixtures for Kotone TTS tests.

The analyzer, tokenizer and ONNX sessions are replaced by fakes that return
real numpy arrays, so the front-end, feature broadcast and audio code run on
actual data.
"""

import io
import json
import tarfile
from types import SimpleNamespace
from typing import Dict, Optional
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import zstandard
from fastapi.testclient import TestClient

import kotone.main as main_module
import kotone.tts as tts_module
from kotone.engine import TTSEngine
from kotone.main import app
from kotone.nlp.analyzer import Analysis, AnalyzedLabel

HIDDEN_SIZE = 8
SAMPLES_PER_PHONE = 10


# --- Label fixtures ---

def make_label(
    p3: str,
    a1: Optional[int] = None,
    a2: Optional[int] = None,
    a3: Optional[int] = None,
    f1: Optional[int] = None,
    e3: Optional[int] = None,
) -> str:
    """Build a full-context label string; None fields are written as "xx"."""
    def f(value):
        return "xx" if value is None else str(value)

    return (
        f"xx^xx-{p3}+xx=xx/A:{f(a1)}+{f(a2)}+{f(a3)}/B:xx-xx_xx/C:xx_xx+xx"
        f"/D:xx+xx_xx/E:xx_xx!{f(e3)}_xx-xx/F:{f(f1)}_xx#xx_xx@xx_xx|xx_xx"
        f"/G:xx_xx%xx_xx_xx/H:xx_xx/I:xx-xx@xx+xx&xx-xx|xx+xx/J:xx_xx/K:xx+xx-xx"
    )


def hashi_labels(interrogative: bool = False):
    """Labels of 箸 (ハシ), accent type 1: high-low."""
    return [
        AnalyzedLabel.from_fullcontext(make_label("sil")),
        AnalyzedLabel.from_fullcontext(make_label("h", a1=0, a2=1, a3=2, f1=2)),
        AnalyzedLabel.from_fullcontext(make_label("a", a1=0, a2=1, a3=2, f1=2)),
        AnalyzedLabel.from_fullcontext(make_label("sh", a1=1, a2=2, a3=1, f1=2)),
        AnalyzedLabel.from_fullcontext(make_label("i", a1=1, a2=2, a3=1, f1=2)),
        AnalyzedLabel.from_fullcontext(make_label("sil", e3=1 if interrogative else 0)),
    ]


def ame_labels():
    """Labels of 飴 (アメ), accent type 0: low-high."""
    return [
        AnalyzedLabel.from_fullcontext(make_label("sil")),
        AnalyzedLabel.from_fullcontext(make_label("a", a1=1, a2=1, a3=2, f1=2)),
        AnalyzedLabel.from_fullcontext(make_label("m", a1=2, a2=2, a3=1, f1=2)),
        AnalyzedLabel.from_fullcontext(make_label("e", a1=2, a2=2, a3=1, f1=2)),
        AnalyzedLabel.from_fullcontext(make_label("sil", e3=0)),
    ]


ANALYSES: Dict[str, Analysis] = {
    "箸": Analysis(words=[("箸", "ハシ")], labels=hashi_labels()),
    "箸.": Analysis(words=[("箸", "ハシ"), (".", "、")], labels=hashi_labels()),
    "箸?": Analysis(words=[("箸", "ハシ"), ("?", "？")], labels=hashi_labels(True)),
    "飴": Analysis(words=[("飴", "アメ")], labels=ame_labels()),
}


class FakeAnalyzer:
    """Analyzer returning canned analyses keyed by normalized text."""

    def __init__(self, analyses: Optional[Dict[str, Analysis]] = None):
        self.analyses = dict(ANALYSES if analyses is None else analyses)
        self.num2word = MagicMock(side_effect=lambda text: text)

    def analyze(self, text: str) -> Analysis:
        return self.analyses[text]


@pytest.fixture
def fake_analyzer():
    return FakeAnalyzer()


@pytest.fixture
def hashi_analysis():
    return ANALYSES["箸"]


# --- Tokenizer and session fakes ---

def _make_fake_tokenizer():
    tokenizer = MagicMock()

    def fake_encode(text, add_special_tokens=True):
        return SimpleNamespace(ids=[10 + ord(c) % 1000 for c in text], attention_mask=[1] * len(text))

    tokenizer.encode.side_effect = fake_encode
    return tokenizer


def _make_fake_bert_session():
    """Embedding session returning row i filled with the value i."""
    session = MagicMock()

    def fake_run(output_names, inputs):
        n_tokens = inputs["input_ids"].shape[1]
        rows = np.repeat(np.arange(n_tokens, dtype=np.float32)[:, None], HIDDEN_SIZE, axis=1)
        return [rows[np.newaxis, ...]]

    session.run.side_effect = fake_run
    return session


def make_fake_vocoder_session(value: float = 0.5):
    """Vocoder session producing SAMPLES_PER_PHONE samples of `value` per phone id."""
    session = MagicMock()

    def fake_run(output_names, inputs):
        n_samples = inputs["x_tst"].shape[1] * SAMPLES_PER_PHONE
        return [np.full((1, 1, n_samples), value, dtype=np.float32)]

    session.run.side_effect = fake_run
    return session


@pytest.fixture
def fake_tokenizer():
    return _make_fake_tokenizer()


@pytest.fixture
def fake_bert_session():
    return _make_fake_bert_session()


@pytest.fixture
def session_factory():
    """Session factory recording every session it creates."""
    factory = MagicMock(side_effect=lambda model_bytes, ident: make_fake_vocoder_session())
    return factory


# --- Voice package fixtures ---

STYLE_VECTORS = {"shape": [3, 4], "data": [[0.0] * 4, [1.0] * 4, [-1.0, 0.0, 1.0, 2.0]]}


@pytest.fixture
def style_bytes():
    return json.dumps(STYLE_VECTORS).encode("utf-8")


@pytest.fixture
def model_bytes():
    return b"fake-onnx-model"


def build_archive(members: Dict[str, bytes], prefix: str = "") -> bytes:
    """Pack members into a zstd-compressed tar stream."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(prefix + name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return zstandard.ZstdCompressor().compress(buf.getvalue())


@pytest.fixture
def make_archive():
    return build_archive


@pytest.fixture
def voice_archive(style_bytes, model_bytes):
    return build_archive({"model.onnx": model_bytes, "style_vectors.json": style_bytes})


# --- Engine fixtures ---

def _make_engine(max_loaded_models=None, session_factory=None):
    return TTSEngine(
        _make_fake_bert_session(),
        _make_fake_tokenizer(),
        analyzer=FakeAnalyzer(),
        max_loaded_models=max_loaded_models,
        session_factory=session_factory
        or (lambda model_bytes, ident: make_fake_vocoder_session()),
    )


@pytest.fixture
def engine(style_bytes, model_bytes):
    """Engine with one registered voice, 'alpha'."""
    eng = _make_engine()
    eng.register("alpha", style_bytes, model_bytes)
    return eng


@pytest.fixture
def make_engine():
    return _make_engine


# --- Client fixtures ---

@pytest.fixture
def client(engine):
    """TestClient with a fake engine loaded."""
    with patch.object(main_module, 'initialize_engine', return_value=0.01), \
         patch.object(tts_module, '_engine', engine), \
         patch.object(tts_module, '_engine_ready', True):
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c


@pytest.fixture
def client_no_engine():
    """TestClient with no engine, for 503 responses."""
    with patch.object(main_module, 'initialize_engine', return_value=0.01), \
         patch.object(tts_module, '_engine', None), \
         patch.object(tts_module, '_engine_ready', False):
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c
