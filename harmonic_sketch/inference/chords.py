"""Chord suggestions - Enumerate and score chords that fit a key.

Given an active key candidate and pitch-class features, builds three families:
- Diatonic chords (triads or sevenths stacked in thirds on each degree)
- Secondary dominants and their tritone substitutes
- Borrowed chords from parallel modes (plus the Neapolitan bII)

Each chord gets a support score (how well the played notes cover its tones)
and a color score (a fixed ordinal distance from the plain diatonic set).
"""

from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..core import PITCH_NAMES, chord_symbol, chord_pitch_classes, identify_quality
from ..core.chord import is_minor_quality
from ..analysis.features import PitchClassFeatures
from .key import KeyCandidate, Mode, scale_pitch_classes


class HarmonicFunction(Enum):
    """Harmonic function of a chord within a key."""
    TONIC = "T"
    SUBDOMINANT = "SD"
    DOMINANT = "D"


class ChordSource(Enum):
    """Where a suggested chord comes from."""
    DIATONIC = "diatonic"
    SECONDARY_DOMINANT = "secondary_dominant"
    TRITONE_SUBSTITUTE = "tritone_substitute"
    BORROWED = "borrowed"


ROMAN_NUMERALS = ["I", "II", "III", "IV", "V", "VI", "VII"]

# Roman numerals of chromatic roots, by semitone distance from the tonic
CHROMATIC_NUMERALS = {
    0: "I", 1: "bII", 2: "II", 3: "bIII", 4: "III", 5: "IV",
    6: "bV", 7: "V", 8: "bVI", 9: "VI", 10: "bVII", 11: "VII",
}

# Suffix appended to a Roman numeral for each chord quality
NUMERAL_SUFFIXES = {
    "dim": "°",
    "aug": "+",
    "7": "7",
    "maj7": "maj7",
    "m7": "7",
    "m7b5": "ø7",
    "dim7": "°7",
    "6": "6",
    "m6": "6",
    "sus2": "sus2",
    "sus4": "sus4",
}

# Fixed degree -> function mapping per key mode
DEGREE_FUNCTIONS = {
    Mode.MAJOR: (
        HarmonicFunction.TONIC,        # I
        HarmonicFunction.SUBDOMINANT,  # ii
        HarmonicFunction.TONIC,        # iii
        HarmonicFunction.SUBDOMINANT,  # IV
        HarmonicFunction.DOMINANT,     # V
        HarmonicFunction.TONIC,        # vi
        HarmonicFunction.DOMINANT,     # vii°
    ),
    Mode.MINOR: (
        HarmonicFunction.TONIC,        # i
        HarmonicFunction.SUBDOMINANT,  # ii°
        HarmonicFunction.TONIC,        # III
        HarmonicFunction.SUBDOMINANT,  # iv
        HarmonicFunction.DOMINANT,     # v
        HarmonicFunction.TONIC,        # VI
        HarmonicFunction.DOMINANT,     # VII
    ),
}

# Function of borrowed chords by root distance from the tonic; others are ambiguous
BORROWED_FUNCTIONS = {
    0: HarmonicFunction.TONIC,
    1: HarmonicFunction.SUBDOMINANT,
    2: HarmonicFunction.SUBDOMINANT,
    3: HarmonicFunction.TONIC,
    5: HarmonicFunction.SUBDOMINANT,
    7: HarmonicFunction.DOMINANT,
    8: HarmonicFunction.SUBDOMINANT,
    10: HarmonicFunction.DOMINANT,
    11: HarmonicFunction.DOMINANT,
}

PARALLEL_MODES = (Mode.MAJOR, Mode.MINOR, Mode.DORIAN, Mode.MIXOLYDIAN)


def numeral_for(base: str, quality: str) -> str:
    """Apply case and suffix for a quality to a base numeral ('bVI', 'ii°')."""
    if is_minor_quality(quality):
        base = base[:1] + base[1:].lower() if base.startswith("b") else base.lower()
    return base + NUMERAL_SUFFIXES.get(quality, "")


def stack_degree(scale: Tuple[int, ...], degree: int, seventh: bool) -> Tuple[int, str]:
    """Root and quality of the chord stacked in thirds on a scale degree."""
    size = 4 if seventh else 3
    pcs = [scale[(degree + 2 * k) % 7] for k in range(size)]
    root = pcs[0]
    quality = identify_quality([(pc - root) % 12 for pc in pcs])
    return root, quality if quality is not None else ""


def degree_numeral(key: KeyCandidate, degree: int) -> str:
    """Triad Roman numeral of a diatonic degree (e.g. 'v' for degree 4 in minor)."""
    _, quality = stack_degree(key.scale, degree, seventh=False)
    return numeral_for(ROMAN_NUMERALS[degree], quality)


@dataclass(frozen=True)
class ChordSuggestion:
    """A chord suggested for a key.

    Attributes:
        id: Unique identifier within a result (the chord symbol)
        symbol: Chord symbol (e.g. 'E7', 'Bdim')
        roman: Roman numeral in the key (e.g. 'V7/v', 'bVII')
        function: Harmonic function, None when ambiguous
        tones: Chord tone names, root first
        support_score: Coverage of the chord tones by the features (0-1)
        color_score: Harmonic distance from the diatonic set (0-1)
        source: Chord family
        root_pc: Root pitch class
        quality: Quality suffix ('' for major)
        degree: Scale degree (0-6) for diatonic chords
        resolves_to_roman: Numeral this chord resolves to (applied chords)
        note: Provenance text (e.g. 'Borrowed from A dorian')
    """

    id: str
    symbol: str
    roman: str
    function: Optional[HarmonicFunction]
    tones: Tuple[str, ...]
    support_score: float
    color_score: float
    source: ChordSource
    root_pc: int
    quality: str
    degree: Optional[int] = None
    resolves_to_roman: Optional[str] = None
    note: Optional[str] = None

    @property
    def pitch_classes(self) -> Tuple[int, ...]:
        return chord_pitch_classes(self.root_pc, self.quality)

    @property
    def cardinality(self) -> int:
        return len(self.tones)

    @property
    def is_color(self) -> bool:
        return self.source != ChordSource.DIATONIC


@dataclass(frozen=True)
class ChordSuggestionResult:
    """Chord families for one key, with indexes derived from the flat lists."""

    key: KeyCandidate
    diatonic: Tuple[ChordSuggestion, ...] = ()
    secondary: Tuple[ChordSuggestion, ...] = ()
    borrowed: Tuple[ChordSuggestion, ...] = ()
    ranked: Tuple[ChordSuggestion, ...] = ()

    @property
    def all_chords(self) -> Tuple[ChordSuggestion, ...]:
        return self.diatonic + self.secondary + self.borrowed

    @property
    def is_empty(self) -> bool:
        return not self.all_chords

    @property
    def by_id(self) -> Dict[str, ChordSuggestion]:
        return {c.id: c for c in _unique_by_id(self.all_chords)}

    @property
    def by_roman(self) -> Dict[str, List[ChordSuggestion]]:
        return _group(self.all_chords, lambda c: c.roman)

    @property
    def by_function(self) -> Dict[HarmonicFunction, List[ChordSuggestion]]:
        return _group(self.all_chords, lambda c: c.function)

    @property
    def by_resolves_to(self) -> Dict[str, List[ChordSuggestion]]:
        return _group(self.all_chords, lambda c: c.resolves_to_roman)

    def diatonic_degree(self, degree: int) -> Optional[ChordSuggestion]:
        for chord in self.diatonic:
            if chord.degree == degree:
                return chord
        return None


def _group(chords, key_fn) -> Dict:
    groups = OrderedDict()
    for chord in chords:
        key = key_fn(chord)
        if key is None:
            continue
        groups.setdefault(key, []).append(chord)
    return dict(groups)


def _unique_by_id(chords) -> List[ChordSuggestion]:
    """Drop repeated ids, keeping the first occurrence."""
    seen = set()
    unique = []
    for chord in chords:
        if chord.id not in seen:
            seen.add(chord.id)
            unique.append(chord)
    return unique


@dataclass
class ChordEngineConfig:
    """Configuration for chord suggestion.

    Attributes:
        support_weight: Weight of support in the combined ranking (default: 0.7)
        color_weight: Weight of color in the combined ranking (default: 0.3)
        use_sevenths: Build seventh chords instead of triads (default: False)
        include_substitutes: Add tritone substitutes (default: True)
        include_neapolitan: Add the Neapolitan bII to borrowed chords (default: True)
    """

    support_weight: float = 0.7
    color_weight: float = 0.3
    use_sevenths: bool = False
    include_substitutes: bool = True
    include_neapolitan: bool = True


class ChordSuggestionEngine:
    """Generate diatonic, applied and borrowed chords for a key."""

    # Fixed ordinal distance from the plain diatonic set
    COLOR_SCORES = {
        ChordSource.DIATONIC: 0.0,
        ChordSource.BORROWED: 0.5,
        ChordSource.SECONDARY_DOMINANT: 0.7,
        ChordSource.TRITONE_SUBSTITUTE: 0.9,
    }

    SOURCE_ORDER = (
        ChordSource.DIATONIC,
        ChordSource.SECONDARY_DOMINANT,
        ChordSource.TRITONE_SUBSTITUTE,
        ChordSource.BORROWED,
    )

    def __init__(self, config: Optional[ChordEngineConfig] = None):
        self.config = config or ChordEngineConfig()

    def suggest(
        self, key: KeyCandidate, features: PitchClassFeatures
    ) -> ChordSuggestionResult:
        """
        Build the chord catalog for a key.

        Args:
            key: Active key candidate
            features: Pitch-class features of the notes

        Returns:
            ChordSuggestionResult (empty when the features are empty)
        """
        if features.is_empty:
            return ChordSuggestionResult(key=key)

        diatonic = self._build_diatonic(key, features)
        diatonic_symbols = {c.symbol for c in diatonic}

        secondary = self._build_secondary(key, features, diatonic_symbols)
        # A borrowed chord may also be an applied dominant and keeps both tags
        borrowed = self._build_borrowed(key, features, diatonic_symbols)

        secondary = sorted(secondary, key=lambda c: -c.support_score)
        borrowed = sorted(borrowed, key=lambda c: -c.support_score)

        ranked = self.rank(_unique_by_id(diatonic + secondary + borrowed))

        return ChordSuggestionResult(
            key=key,
            diatonic=tuple(diatonic),
            secondary=tuple(secondary),
            borrowed=tuple(borrowed),
            ranked=tuple(ranked),
        )

    def rank(self, chords: List[ChordSuggestion]) -> List[ChordSuggestion]:
        """Sort chords by the support/color blend, best first."""
        return sorted(
            chords,
            key=lambda c: (
                -self.combined_score(c),
                self.SOURCE_ORDER.index(c.source),
                c.symbol,
            ),
        )

    def combined_score(self, chord: ChordSuggestion) -> float:
        return (
            self.config.support_weight * chord.support_score
            + self.config.color_weight * chord.color_score
        )

    @staticmethod
    def support_score(pitch_classes, features: PitchClassFeatures) -> float:
        """Matched feature weight per chord tone, relative to the heaviest bin."""
        if not pitch_classes or features.max_weight <= 0:
            return 0.0
        matched = sum(features.weights[pc] for pc in set(pitch_classes))
        score = matched / (len(pitch_classes) * features.max_weight)
        return min(1.0, max(0.0, score))

    def _make(
        self,
        root_pc: int,
        quality: str,
        roman: str,
        function: Optional[HarmonicFunction],
        source: ChordSource,
        features: PitchClassFeatures,
        degree: Optional[int] = None,
        resolves_to: Optional[str] = None,
        note: Optional[str] = None,
    ) -> ChordSuggestion:
        pcs = chord_pitch_classes(root_pc, quality)
        symbol = chord_symbol(root_pc, quality)
        return ChordSuggestion(
            id=symbol,
            symbol=symbol,
            roman=roman,
            function=function,
            tones=tuple(PITCH_NAMES[pc] for pc in pcs),
            support_score=self.support_score(pcs, features),
            color_score=self.COLOR_SCORES[source],
            source=source,
            root_pc=root_pc,
            quality=quality,
            degree=degree,
            resolves_to_roman=resolves_to,
            note=note,
        )

    def _build_diatonic(
        self, key: KeyCandidate, features: PitchClassFeatures
    ) -> List[ChordSuggestion]:
        chords = []
        for degree in range(7):
            root, quality = stack_degree(key.scale, degree, self.config.use_sevenths)
            chords.append(
                self._make(
                    root,
                    quality,
                    numeral_for(ROMAN_NUMERALS[degree], quality),
                    DEGREE_FUNCTIONS[key.mode][degree],
                    ChordSource.DIATONIC,
                    features,
                    degree=degree,
                )
            )
        return chords

    def _build_secondary(
        self, key: KeyCandidate, features: PitchClassFeatures, taken: set
    ) -> List[ChordSuggestion]:
        chords = []
        seen = set(taken)

        def add(chord: ChordSuggestion):
            if chord.symbol not in seen:
                seen.add(chord.symbol)
                chords.append(chord)

        for degree in range(1, 7):
            root, quality = stack_degree(key.scale, degree, seventh=False)
            if quality not in ("", "m"):
                continue  # diminished/augmented degrees are not tonicized

            target = degree_numeral(key, degree)
            dominant_root = (root + 7) % 12

            if key.is_minor and degree == 4:
                # Raised dominant of the minor key stands in for v
                add(
                    self._make(
                        root,
                        "7",
                        "V7",
                        HarmonicFunction.DOMINANT,
                        ChordSource.SECONDARY_DOMINANT,
                        features,
                        resolves_to=target,
                        note=f"Raised (harmonic minor) dominant replacing {target}",
                    )
                )

            dominant = self._make(
                dominant_root,
                "7",
                f"V7/{target}",
                HarmonicFunction.DOMINANT,
                ChordSource.SECONDARY_DOMINANT,
                features,
                resolves_to=target,
                note=f"Secondary dominant resolving to {target}",
            )
            add(dominant)

            if self.config.include_substitutes:
                add(
                    self._make(
                        (dominant_root + 6) % 12,
                        "7",
                        f"subV7/{target}",
                        HarmonicFunction.DOMINANT,
                        ChordSource.TRITONE_SUBSTITUTE,
                        features,
                        resolves_to=target,
                        note=f"Tritone substitute for {dominant.symbol}",
                    )
                )
        return chords

    def _build_borrowed(
        self, key: KeyCandidate, features: PitchClassFeatures, taken: set
    ) -> List[ChordSuggestion]:
        found: "OrderedDict[str, dict]" = OrderedDict()
        seventh = self.config.use_sevenths

        for mode in PARALLEL_MODES:
            if mode == key.mode:
                continue
            scale = scale_pitch_classes(key.tonic_pc, mode)
            for degree in range(7):
                root, quality = stack_degree(scale, degree, seventh)
                symbol = chord_symbol(root, quality)
                if symbol in taken:
                    continue
                entry = found.setdefault(
                    symbol, {"root": root, "quality": quality, "modes": []}
                )
                entry["modes"].append(f"{key.tonic} {mode.value}")

        if self.config.include_neapolitan:
            root = (key.tonic_pc + 1) % 12
            quality = "maj7" if seventh else ""
            symbol = chord_symbol(root, quality)
            if symbol not in taken and symbol not in found:
                found[symbol] = {
                    "root": root,
                    "quality": quality,
                    "modes": [],
                    "note": "Neapolitan (borrowed from Phrygian)",
                }

        chords = []
        for entry in found.values():
            distance = (entry["root"] - key.tonic_pc) % 12
            note = entry.get("note") or "Borrowed from " + ", ".join(entry["modes"])
            chords.append(
                self._make(
                    entry["root"],
                    entry["quality"],
                    numeral_for(CHROMATIC_NUMERALS[distance], entry["quality"]),
                    BORROWED_FUNCTIONS.get(distance),
                    ChordSource.BORROWED,
                    features,
                    note=note,
                )
            )
        return chords


def generate_chord_suggestions(
    candidate: KeyCandidate,
    features: PitchClassFeatures,
    config: Optional[ChordEngineConfig] = None,
) -> ChordSuggestionResult:
    """Build the chord catalog with the default (or given) configuration."""
    return ChordSuggestionEngine(config).suggest(candidate, features)
