"""
Kotone TTS - Synthesis Engine

Ties the text front-end, the shared embedding model and the voice cache
together. One engine serves any number of registered voices; calls must be
serialized by the caller.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import numpy as np
from tokenizers import Tokenizer

from .config import SAMPLE_RATE, SILENCE_SECONDS, SynthesizeOptions
from .exceptions import InternalConsistencyError, ModelNotFoundError, TextProcessingError
from .features import broadcast_features, expand_word2ph, load_tokenizer, tokenize
from .model.cache import ModelCache, ModelEntry, SessionFactory
from .model.sessions import load_model_session, predict_bert, run_vocoder
from .model.style import get_style_vector
from .nlp.analyzer import OpenJTalkAnalyzer
from .nlp.g2p import g2p
from .nlp.normalizer import normalize_text
from .nlp.symbols import cleaned_text_to_sequence, intersperse
from .streaming import encode_wav

logger = logging.getLogger(__name__)


@dataclass
class ParsedText:
    """Vocoder inputs for one utterance, blanks interspersed."""
    bert: np.ndarray  # (hidden, phones)
    phone_ids: List[int]
    tone_ids: List[int]
    lang_ids: List[int]


class TTSEngine:
    """
    Japanese text-to-speech over Style-Bert-VITS2 ONNX voices.

    Args:
        bert_session: Session of the shared embedding model.
        tokenizer: Tokenizer of the embedding model.
        analyzer: Open JTalk wrapper, created when omitted.
        max_loaded_models: Cap on live vocoder sessions, None for no cap.
        session_factory: Builds a vocoder session from (model_bytes, ident).
    """

    def __init__(
        self,
        bert_session: Any,
        tokenizer: Tokenizer,
        analyzer: Optional[OpenJTalkAnalyzer] = None,
        max_loaded_models: Optional[int] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.bert_session = bert_session
        self.tokenizer = tokenizer
        self.analyzer = analyzer or OpenJTalkAnalyzer()
        self.models = ModelCache(max_loaded_models, session_factory)

    @classmethod
    def from_bytes(
        cls,
        bert_model_bytes: bytes,
        tokenizer_bytes: bytes,
        max_loaded_models: Optional[int] = None,
        providers: Optional[Sequence[str]] = None,
    ) -> "TTSEngine":
        """Build an engine from embedding model and tokenizer.json bytes."""
        bert_session = load_model_session(bert_model_bytes, providers, name="bert")
        tokenizer = load_tokenizer(tokenizer_bytes)

        def session_factory(model_bytes: bytes, ident: str) -> Any:
            return load_model_session(model_bytes, providers, name=ident)

        return cls(
            bert_session,
            tokenizer,
            max_loaded_models=max_loaded_models,
            session_factory=session_factory,
        )

    @classmethod
    def from_paths(
        cls,
        bert_model_path: Union[str, Path],
        tokenizer_path: Union[str, Path],
        max_loaded_models: Optional[int] = None,
        providers: Optional[Sequence[str]] = None,
    ) -> "TTSEngine":
        """Build an engine from embedding model and tokenizer.json files."""
        for path in (Path(bert_model_path), Path(tokenizer_path)):
            if not path.is_file():
                raise ModelNotFoundError(str(path), f"Model file not found: {path}")
        logger.info(f"Loading embedding model from {bert_model_path}")
        return cls.from_bytes(
            Path(bert_model_path).read_bytes(),
            Path(tokenizer_path).read_bytes(),
            max_loaded_models=max_loaded_models,
            providers=providers,
        )

    # --- Voice management ---

    def register(self, ident: str, style_bytes: bytes, model_bytes: bytes) -> ModelEntry:
        return self.models.register(ident, style_bytes, model_bytes)

    def register_archive(self, ident: str, data: bytes) -> ModelEntry:
        return self.models.register_archive(ident, data)

    def register_archive_path(self, ident: str, path: Union[str, Path]) -> ModelEntry:
        return self.models.register_archive_path(ident, path)

    def register_from_paths(
        self, ident: str, style_path: Union[str, Path], model_path: Union[str, Path]
    ) -> ModelEntry:
        return self.models.register_from_paths(ident, style_path, model_path)

    def unregister(self, ident: str) -> bool:
        return self.models.unregister(ident)

    def model_idents(self) -> List[str]:
        return self.models.idents()

    # --- Synthesis ---

    def parse_text(self, text: str) -> ParsedText:
        """
        Run the front-end and the embedding model on one utterance.

        Args:
            text: Raw text, a single line.

        Returns:
            ParsedText with phone-level features and interspersed id sequences.
        """
        expanded = self.analyzer.num2word(text)
        normalized = normalize_text(expanded)
        if not normalized:
            raise TextProcessingError("No readable text", text, "normalization")

        result = g2p(self.analyzer.analyze(normalized))
        phone_ids, tone_ids, lang_ids = cleaned_text_to_sequence(result.phones, result.tones)

        phone_ids = intersperse(phone_ids, 0)
        tone_ids = intersperse(tone_ids, 0)
        lang_ids = intersperse(lang_ids, 0)
        word2ph = expand_word2ph(result.word2ph)

        reading_text = result.reading_text
        if len(word2ph) != len(reading_text) + 2:
            raise InternalConsistencyError(
                f"word2ph has {len(word2ph)} entries for {len(reading_text)} characters"
            )

        token_ids, attention_mask = tokenize(reading_text, self.tokenizer)
        embedding = predict_bert(self.bert_session, token_ids, attention_mask)
        bert = broadcast_features(embedding, word2ph)

        return ParsedText(
            bert=bert,
            phone_ids=phone_ids,
            tone_ids=tone_ids,
            lang_ids=lang_ids,
        )

    def _synthesize_line(
        self,
        entry: ModelEntry,
        text: str,
        style_vector: np.ndarray,
        speaker_id: int,
        options: SynthesizeOptions,
    ) -> np.ndarray:
        parsed = self.parse_text(text)
        audio = run_vocoder(
            entry.session,
            parsed.bert,
            parsed.phone_ids,
            parsed.tone_ids,
            parsed.lang_ids,
            style_vector,
            speaker_id=speaker_id,
            sdp_ratio=options.sdp_ratio,
            length_scale=options.length_scale,
            noise_scale=options.noise_scale,
            noise_scale_w=options.noise_scale_w,
            model=entry.ident,
        )
        # (batch, channel, samples) -> mono samples, batches back to back
        return audio[:, 0, :].reshape(-1)

    def synthesize(
        self,
        ident: str,
        text: str,
        style_id: int = 0,
        speaker_id: int = 0,
        options: Optional[SynthesizeOptions] = None,
    ) -> np.ndarray:
        """
        Synthesize text with a registered voice.

        With split_sentences, every non-empty line is synthesized on its own
        and consecutive lines are separated by one second of silence.

        Args:
            ident: Registered voice.
            text: Text to synthesize.
            style_id: Row of the voice's style vectors.
            speaker_id: Speaker of multi-speaker voices.
            options: Synthesis options, defaults when omitted.

        Returns:
            Mono float32 samples at SAMPLE_RATE.
        """
        options = options or SynthesizeOptions()
        entry = self.models.ensure_ready(ident)
        style_vector = get_style_vector(entry.style_vectors, style_id, options.style_weight)

        start_time = time.perf_counter()

        if options.split_sentences:
            lines = [line for line in text.split("\n") if line]
            if not lines:
                raise TextProcessingError("No text to synthesize", text, "input")

            silence = np.zeros(int(SAMPLE_RATE * SILENCE_SECONDS), dtype=np.float32)
            segments: List[np.ndarray] = []
            for line in lines:
                if segments:
                    segments.append(silence)
                segments.append(
                    self._synthesize_line(entry, line, style_vector, speaker_id, options)
                )
            audio = np.concatenate(segments)
        else:
            audio = self._synthesize_line(entry, text, style_vector, speaker_id, options)

        generation_time = time.perf_counter() - start_time
        audio_duration = len(audio) / SAMPLE_RATE
        rtf = generation_time / audio_duration if audio_duration > 0 else 0
        logger.info(
            f"Synthesized {audio_duration:.2f}s with '{ident}' in {generation_time:.2f}s "
            f"(RTF: {rtf:.3f})"
        )
        return audio.astype(np.float32, copy=False)

    def synthesize_wav(
        self,
        ident: str,
        text: str,
        style_id: int = 0,
        speaker_id: int = 0,
        options: Optional[SynthesizeOptions] = None,
    ) -> bytes:
        """Like synthesize, but return a 32-bit float WAV file."""
        return encode_wav(self.synthesize(ident, text, style_id, speaker_id, options))
