"""Tests for transcription cancellation, the pYIN transcriber and note loading."""

import json
import threading

import numpy as np
import pytest

from harmonic_sketch.core import NoteEvent
from harmonic_sketch.input import AudioLoader, NoteLoader
from harmonic_sketch.output import MIDIExporter
from harmonic_sketch.transcription import (
    CancellationToken,
    PyinTranscriber,
    Transcriber,
    TranscriptionCancelled,
    TranscriptionSession,
)

SR = 22050


# ============================================================================
# Fake transcribers
# ============================================================================

class InstantTranscriber(Transcriber):
    def __init__(self, on_call=None):
        self.on_call = on_call

    def transcribe(self, audio, sr, token=None):
        if self.on_call is not None:
            self.on_call()
        return [NoteEvent(start=0.0, end=1.0, pitch=60)]


class BlockingTranscriber(Transcriber):
    """First call blocks until released; later calls return immediately."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def transcribe(self, audio, sr, token=None):
        self.calls += 1
        if self.calls == 1:
            self.started.set()
            self.release.wait(timeout=5)
        return [NoteEvent(start=0.0, end=1.0, pitch=60 + self.calls)]


def create_tone(freq: float = 440.0, duration: float = 1.0, sr: int = SR) -> np.ndarray:
    t = np.arange(int(sr * duration)) / sr
    envelope = np.minimum(1.0, t / 0.01)
    return (0.5 * envelope * np.sin(2 * np.pi * freq * t)).astype(np.float32)


# ============================================================================
# Cancellation
# ============================================================================

class TestCancellation:
    """Test cooperative cancellation."""

    def test_cancelled_is_not_a_failure(self):
        assert TranscriptionCancelled.is_failure is False
        assert TranscriptionCancelled().is_failure is False

    def test_token(self):
        token = CancellationToken()
        token.raise_if_cancelled()

        token.cancel()

        assert token.cancelled
        with pytest.raises(TranscriptionCancelled):
            token.raise_if_cancelled()

    def test_session_returns_notes(self):
        session = TranscriptionSession(InstantTranscriber())

        notes = session.transcribe(np.zeros(10), SR)

        assert [n.pitch for n in notes] == [60]
        assert not session.is_transcribing

    def test_cancel_during_request_discards_result(self):
        """A request cancelled before it returns never delivers its notes."""
        holder = {}
        session = TranscriptionSession(InstantTranscriber(on_call=lambda: holder["session"].cancel()))
        holder["session"] = session

        with pytest.raises(TranscriptionCancelled):
            session.transcribe(np.zeros(10), SR)
        assert not session.is_transcribing

    def test_new_request_supersedes_in_flight(self):
        transcriber = BlockingTranscriber()
        session = TranscriptionSession(transcriber)
        outcome = {}

        def first_request():
            try:
                outcome["notes"] = session.transcribe(np.zeros(10), SR)
            except TranscriptionCancelled as e:
                outcome["error"] = e

        worker = threading.Thread(target=first_request)
        worker.start()
        assert transcriber.started.wait(timeout=5)

        second = session.transcribe(np.zeros(10), SR)
        transcriber.release.set()
        worker.join(timeout=5)

        assert [n.pitch for n in second] == [62]
        assert "notes" not in outcome
        assert isinstance(outcome["error"], TranscriptionCancelled)


# ============================================================================
# pYIN transcriber
# ============================================================================

class TestPyinTranscriber:
    """Test monophonic transcription on synthetic tones."""

    def test_sine_tone(self):
        notes = PyinTranscriber().transcribe(create_tone(440.0), SR)

        assert notes
        assert all(0.0 <= n.velocity <= 1.0 for n in notes)
        longest = max(notes, key=lambda n: n.duration)
        assert longest.pitch == 69

    def test_silence(self):
        assert PyinTranscriber().transcribe(np.zeros(SR, dtype=np.float32), SR) == []

    def test_cancelled_token(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(TranscriptionCancelled):
            PyinTranscriber().transcribe(create_tone(), SR, token)


# ============================================================================
# Loading
# ============================================================================

class TestNoteLoader:
    """Test note files."""

    def test_json(self, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps([
            {"start": 0.5, "end": 1.0, "pitch": 64, "velocity": 0.9},
            {"start": 0.0, "end": 0.5, "pitch": 60, "pitch_bends": [0.1, -0.1]},
        ]))

        notes = NoteLoader().load(str(path))

        assert [n.pitch for n in notes] == [60, 64]
        assert notes[0].velocity == 0.5
        assert notes[0].pitch_bends == (0.1, -0.1)

    def test_json_object_with_notes_key(self, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps({"notes": [{"start": 0, "end": 1, "pitch": 57}]}))
        assert [n.pitch for n in NoteLoader().load(str(path))] == [57]

    def test_unreadable_bends_warn(self, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps([{"start": 0, "end": 1, "pitch": 57, "pitch_bends": ["up"]}]))

        with pytest.warns(UserWarning):
            notes = NoteLoader().load(str(path))
        assert notes[0].pitch_bends == ()

    def test_missing_field_names_the_field(self, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps([
            {"start": 0, "end": 1, "pitch": 57},
            {"start": 1, "pitch": 60},
        ]))

        with pytest.raises(ValueError, match="Note 1 is missing required field 'end'"):
            NoteLoader().load(str(path))

    def test_non_object_note(self, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps([[0, 1, 57]]))
        with pytest.raises(ValueError, match="not an object"):
            NoteLoader().load(str(path))

    def test_midi(self, tmp_path):
        path = tmp_path / "notes.mid"
        source = [
            NoteEvent(start=0.0, end=0.5, pitch=57, velocity=1.0),
            NoteEvent(start=0.5, end=1.0, pitch=60, velocity=0.5),
        ]
        MIDIExporter().export_notes(source, str(path))

        notes = NoteLoader().load(str(path))

        assert [n.pitch for n in notes] == [57, 60]
        assert notes[0].velocity == pytest.approx(1.0)
        assert notes[1].velocity == pytest.approx(64 / 127)
        assert notes[1].start == pytest.approx(0.5, abs=0.01)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            NoteLoader().load(str(tmp_path / "missing.json"))

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("C4")
        with pytest.raises(ValueError):
            NoteLoader().load(str(path))


class TestAudioLoader:
    """Test audio loading."""

    def test_load_and_info(self, tmp_path):
        import soundfile as sf

        path = tmp_path / "tone.wav"
        sf.write(str(path), create_tone(duration=0.5) * 0.5, SR)
        loader = AudioLoader()

        audio, sr = loader.load(str(path))
        info = loader.info(str(path))

        assert sr == SR
        assert np.max(np.abs(audio)) == pytest.approx(1.0)
        assert loader.get_duration(audio, sr) == pytest.approx(0.5, abs=0.01)
        assert info["channels"] == 1
        assert info["sample_rate"] == SR

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "tone.xyz"
        path.write_bytes(b"")
        with pytest.raises(ValueError):
            AudioLoader().load(str(path))
