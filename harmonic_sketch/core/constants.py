"""Global constants for Harmonic Sketch."""

# Pitch names
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Accepted spellings when parsing note names
NATURAL_PITCH_CLASSES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

# Audio processing defaults
DEFAULT_SR = 22050
DEFAULT_HOP_LENGTH = 512
DEFAULT_N_FFT = 2048

# Transcription defaults
DEFAULT_MAX_POLYPHONY = 6  # guitar strings
DEFAULT_VELOCITY = 0.5

# MIDI ranges
MIDI_MIN = 0
MIDI_MAX = 127
