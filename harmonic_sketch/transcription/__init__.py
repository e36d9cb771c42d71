"""Transcription layer - Note-level detection from audio.

Transcription is the only step that may be slow, so it supports
cooperative cancellation:
- CancellationToken is polled between transcriber stages
- TranscriptionSession supersedes in-flight requests
- TranscriptionCancelled marks a cancelled request (not a failure)
"""

from .base import (
    CancellationToken,
    Transcriber,
    TranscriptionCancelled,
    TranscriptionSession,
)
from .pyin import PyinTranscriber

__all__ = [
    "CancellationToken",
    "Transcriber",
    "TranscriptionCancelled",
    "TranscriptionSession",
    "PyinTranscriber",
]
