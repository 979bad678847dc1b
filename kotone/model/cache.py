"""
Voice model cache.

Every registered voice keeps its style vectors and raw model bytes in memory.
With a cap on loaded models, only some voices also hold a live inference
session; activating a cold voice rebuilds its session from the resident bytes
and drops the session of the least recently activated hot voice. Entries are
never evicted, only their sessions.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np

from ..exceptions import ModelNotFoundError
from .archive import load_archive
from .sessions import load_model_session
from .style import load_style

logger = logging.getLogger(__name__)

SessionFactory = Callable[[bytes, str], Any]


def _default_session_factory(model_bytes: bytes, ident: str) -> Any:
    return load_model_session(model_bytes, name=ident)


@dataclass
class ModelEntry:
    """One registered voice."""
    ident: str
    style_vectors: np.ndarray
    model_bytes: bytes
    session: Optional[Any] = None

    @property
    def is_hot(self) -> bool:
        return self.session is not None


class ModelCache:
    """
    Registered voices, ordered from least to most recently activated.

    `max_loaded_models=None` means unbounded: every voice gets a session at
    registration and keeps it. Callers serialize access; the cache itself does
    no locking.
    """

    def __init__(
        self,
        max_loaded_models: Optional[int] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        if max_loaded_models is not None and max_loaded_models < 1:
            raise ValueError("max_loaded_models must be at least 1")
        self.max_loaded_models = max_loaded_models
        self._session_factory = session_factory or _default_session_factory
        self._entries: "OrderedDict[str, ModelEntry]" = OrderedDict()

    @property
    def is_bounded(self) -> bool:
        return self.max_loaded_models is not None

    def __contains__(self, ident: str) -> bool:
        return ident in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def idents(self) -> List[str]:
        return list(self._entries)

    def entries(self) -> List[ModelEntry]:
        return list(self._entries.values())

    def get(self, ident: str) -> Optional[ModelEntry]:
        return self._entries.get(ident)

    def live_count(self) -> int:
        """Number of voices with a live session."""
        if not self.is_bounded:
            return len(self._entries)
        return sum(1 for entry in self._entries.values() if entry.is_hot)

    def is_saturated(self) -> bool:
        """True when bounded and no further session may be created."""
        return self.is_bounded and self.live_count() >= self.max_loaded_models

    def _create_session(self, ident: str, model_bytes: bytes) -> Any:
        start_time = time.perf_counter()
        session = self._session_factory(model_bytes, ident)
        elapsed = time.perf_counter() - start_time
        logger.info(f"Loaded session for '{ident}' in {elapsed:.2f}s")
        return session

    def register(self, ident: str, style_bytes: bytes, model_bytes: bytes) -> ModelEntry:
        """
        Register a voice from style vector and model bytes.

        Registering an ident twice is a no-op. A session is created right away
        unless the cache is bounded and already saturated. Nothing is stored if
        parsing or session creation fails.
        """
        existing = self._entries.get(ident)
        if existing is not None:
            logger.debug(f"Model '{ident}' already registered")
            return existing

        style_vectors = load_style(style_bytes)
        session = None if self.is_saturated() else self._create_session(ident, model_bytes)

        entry = ModelEntry(
            ident=ident,
            style_vectors=style_vectors,
            model_bytes=model_bytes,
            session=session,
        )
        self._entries[ident] = entry
        logger.info(
            f"Registered model '{ident}' ({style_vectors.shape[0]} styles, "
            f"{'hot' if entry.is_hot else 'cold'})"
        )
        return entry

    def register_archive(self, ident: str, data: bytes) -> ModelEntry:
        """Register a voice from voice package bytes."""
        archive = load_archive(data)
        return self.register(ident, archive.style_vectors_bytes, archive.model_bytes)

    def register_archive_path(self, ident: str, path: Union[str, Path]) -> ModelEntry:
        """Register a voice from a voice package file."""
        path = Path(path)
        if not path.is_file():
            raise ModelNotFoundError(ident, f"Voice package not found: {path}")
        return self.register_archive(ident, path.read_bytes())

    def register_from_paths(
        self,
        ident: str,
        style_path: Union[str, Path],
        model_path: Union[str, Path],
    ) -> ModelEntry:
        """Register a voice from separate style vector and model files."""
        for path in (Path(style_path), Path(model_path)):
            if not path.is_file():
                raise ModelNotFoundError(ident, f"Model file not found: {path}")
        return self.register(
            ident, Path(style_path).read_bytes(), Path(model_path).read_bytes()
        )

    def unregister(self, ident: str) -> bool:
        """Remove a voice and its session. Returns whether it was registered."""
        entry = self._entries.pop(ident, None)
        if entry is None:
            return False
        entry.session = None
        logger.info(f"Unregistered model '{ident}'")
        return True

    def ensure_ready(self, ident: str) -> ModelEntry:
        """
        Make sure a voice has a live session and return its entry.

        For a cold voice in a bounded cache, the session of the least recently
        activated other hot voice is dropped when `live_count()` has reached
        `max_loaded_models - 1`. The new session is created before anything is
        dropped, so a failure leaves the cache unchanged.

        Raises:
            ModelNotFoundError: If the ident is not registered.
        """
        entry = self._entries.get(ident)
        if entry is None:
            raise ModelNotFoundError(ident)

        if entry.is_hot:
            self._entries.move_to_end(ident)
            return entry

        victim: Optional[ModelEntry] = None
        if self.is_bounded and self.live_count() >= self.max_loaded_models - 1:
            victim = next(
                (e for e in self._entries.values() if e.is_hot and e.ident != ident),
                None,
            )

        session = self._create_session(ident, entry.model_bytes)

        if victim is not None:
            victim.session = None
            logger.info(f"Evicted session of '{victim.ident}' to load '{ident}'")

        entry.session = session
        self._entries.move_to_end(ident)
        return entry

    def status(self) -> Dict[str, Any]:
        """Summary for status endpoints."""
        return {
            "models": len(self._entries),
            "live_sessions": self.live_count(),
            "max_loaded_models": self.max_loaded_models,
            "saturated": self.is_saturated(),
        }
