"""Input layer - Audio and note-file loading."""

from .loader import AudioLoader, NoteLoader

__all__ = ["AudioLoader", "NoteLoader"]
