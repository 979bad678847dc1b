"""
Custom exceptions for the Kotone TTS core.

Every failure the front-end, the model cache or the inference layer can
report is a subclass of KotoneError, so callers can handle the whole family
with one except clause or pick out the specific kind they care about.
"""

from typing import Iterable, Optional, Sequence, Tuple


class KotoneError(Exception):
    """Base exception for all Kotone errors."""


# --- Text processing ---

class TextProcessingError(KotoneError):
    """Exception raised while turning text into phonemes and tones."""

    def __init__(self, message: str, original_text: str = "", stage: str = ""):
        super().__init__(message)
        self.original_text = original_text
        self.stage = stage

    def __str__(self):
        base_msg = super().__str__()
        if self.stage:
            base_msg = f"[{self.stage}] {base_msg}"
        if self.original_text:
            base_msg += f" (text: '{self.original_text[:50]}...')"
        return base_msg


class PhonemeError(TextProcessingError):
    """Exception raised when a reading cannot be converted to phonemes."""

    def __init__(self, message: str, original_text: str = ""):
        super().__init__(message, original_text, "phonemization")


class ReadingError(TextProcessingError):
    """Exception raised when the analyzer returns an unusable reading."""

    def __init__(self, message: str, original_text: str = ""):
        super().__init__(message, original_text, "reading")


class InvalidToneValuesError(TextProcessingError):
    """Exception raised when an accent phrase has an impossible tone pattern."""

    def __init__(
        self,
        tone_values: Iterable[int],
        phrase: Sequence[Tuple[str, int]],
        phrase_index: int = -1,
    ):
        self.tone_values = sorted(set(tone_values))
        self.phrase = list(phrase)
        self.phrase_index = phrase_index
        phones = "".join(phone for phone, _ in self.phrase)
        super().__init__(
            f"Invalid tone values {self.tone_values} in phrase {phrase_index} ({phones})",
            stage="prosody",
        )


class MismatchedPhonemeError(TextProcessingError):
    """Exception raised when the two phoneme sequences cannot be aligned."""

    def __init__(
        self,
        phone: str,
        phones_with_punct: Sequence[str],
        phone_tone_list: Sequence[Tuple[str, int]],
    ):
        self.phone = phone
        self.phones_with_punct = list(phones_with_punct)
        self.phone_tone_list = list(phone_tone_list)
        super().__init__(f"Mismatched phoneme: {phone}", stage="alignment")


# --- Models ---

class ModelError(KotoneError):
    """Base exception for voice model and archive problems."""


class ModelNotFoundError(ModelError):
    """Exception raised when a model ident, or a model file, does not exist."""

    def __init__(self, ident: str, message: Optional[str] = None):
        super().__init__(message or f"Model not found: {ident}")
        self.ident = ident


class ArchiveMemberMissingError(ModelNotFoundError):
    """Exception raised when a voice package lacks a required member."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        names = ", ".join(self.missing)
        super().__init__(names, f"{names} not found")


class ArchiveFormatError(ModelError):
    """Exception raised when a voice package cannot be decompressed or read."""


class StyleVectorError(ModelError):
    """Exception raised for malformed style vector files or bad style ids."""


# --- External collaborators ---

class AnalyzerError(KotoneError):
    """Exception raised when the morphological analyzer fails."""


class TokenizerError(KotoneError):
    """Exception raised when the tokenizer fails."""


class InferenceError(KotoneError):
    """Exception raised when an ONNX session cannot be built or run."""

    def __init__(self, message: str, model: Optional[str] = None):
        super().__init__(message)
        self.model = model


class InternalConsistencyError(KotoneError):
    """Exception raised when pipeline stages disagree on sizes or positions."""
