"""Base classes for transcription and its cooperative cancellation."""

import threading
from abc import ABC, abstractmethod
from typing import List, Optional
import numpy as np

from ..core import NoteEvent


class TranscriptionCancelled(Exception):
    """Raised when a transcription request was superseded or cancelled.

    This is not a failure: callers should revert to their previous state
    quietly instead of reporting an error.
    """

    is_failure = False


class CancellationToken:
    """Cooperative cancellation flag checked by transcribers between stages."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TranscriptionCancelled()


class Transcriber(ABC):
    """Abstract base class for audio transcription."""

    @abstractmethod
    def transcribe(
        self,
        audio: np.ndarray,
        sr: int,
        token: Optional[CancellationToken] = None,
    ) -> List[NoteEvent]:
        """
        Transcribe audio to notes.

        Args:
            audio: Audio array
            sr: Sample rate
            token: Optional cancellation token polled between stages

        Returns:
            List of detected notes

        Raises:
            TranscriptionCancelled: If the token was cancelled
        """
        pass


class TranscriptionSession:
    """Runs one transcription at a time on behalf of a caller.

    Starting a new request cancels the one in flight. A cancelled request
    raises ``TranscriptionCancelled`` and never returns its notes, even if
    the transcriber finished before noticing the cancellation.
    """

    def __init__(self, transcriber: Transcriber):
        self.transcriber = transcriber
        self._lock = threading.Lock()
        self._current: Optional[CancellationToken] = None

    @property
    def is_transcribing(self) -> bool:
        with self._lock:
            return self._current is not None

    def cancel(self) -> None:
        """Cancel the in-flight request, if any."""
        with self._lock:
            if self._current is not None:
                self._current.cancel()
                self._current = None

    def transcribe(self, audio: np.ndarray, sr: int) -> List[NoteEvent]:
        """
        Transcribe, superseding any earlier request.

        Returns:
            The complete note list

        Raises:
            TranscriptionCancelled: If this request was superseded or cancelled
        """
        token = CancellationToken()
        with self._lock:
            if self._current is not None:
                self._current.cancel()
            self._current = token

        try:
            notes = self.transcriber.transcribe(audio, sr, token)
            token.raise_if_cancelled()
            return notes
        finally:
            with self._lock:
                if self._current is token:
                    self._current = None
