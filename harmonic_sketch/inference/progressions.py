"""Progression generation - Fill, decorate and rank chord progressions.

Progressions come from key-independent skeletons (scale-degree slots with a
functional role). Each skeleton is filled from the diatonic catalog, then
decorated by single-slot transformations:
- applied dominant: the slot before a target becomes V7/target
- tritone substitute: the slot before a target becomes subV7/target
- Neapolitan: a subdominant slot before a dominant becomes bII
- borrowed: a slot is replaced by a parallel-mode chord of the same function

Ranking blends a conventional score (fit, voice leading, cadence) with spice
(color of non-diatonic chords). The blend is controlled by ``weirdness``.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
import warnings

from .chords import (
    ChordSource,
    ChordSuggestion,
    ChordSuggestionResult,
    HarmonicFunction,
    DEGREE_FUNCTIONS,
    degree_numeral,
)
from .key import KeyCandidate, Mode
from ..analysis.features import PitchClassFeatures


@dataclass(frozen=True)
class ProgressionTemplate:
    """A skeleton progression: scale degrees (0 = tonic) for each slot."""

    name: str
    degrees: Tuple[int, ...]
    modes: Tuple[Mode, ...] = (Mode.MAJOR, Mode.MINOR)

    def roles(self, mode: Mode) -> Tuple[HarmonicFunction, ...]:
        return tuple(DEGREE_FUNCTIONS[mode][d] for d in self.degrees)


# Skeleton catalog; degree sequences read as I-IV-V-I etc. in major
TEMPLATES = (
    ProgressionTemplate("authentic", (0, 3, 4, 0)),
    ProgressionTemplate("doo-wop", (0, 5, 3, 4)),
    ProgressionTemplate("axis", (0, 4, 5, 3)),
    ProgressionTemplate("turnaround", (0, 5, 1, 4)),
    ProgressionTemplate("sensitive", (5, 3, 0, 4)),
    ProgressionTemplate("plagal-lift", (0, 3, 5, 4)),
    ProgressionTemplate("ii-V-I", (0, 1, 4, 0), modes=(Mode.MAJOR,)),
    ProgressionTemplate("aeolian-vamp", (0, 6, 5, 6), modes=(Mode.MINOR,)),
    ProgressionTemplate("andalusian", (0, 6, 5, 4), modes=(Mode.MINOR,)),
    ProgressionTemplate("long-turnaround", (0, 5, 1, 4, 0)),
    ProgressionTemplate("predominant-cadence", (0, 3, 1, 4, 0)),
    ProgressionTemplate("pop-cadence", (0, 4, 5, 3, 0)),
    ProgressionTemplate("minor-circle", (0, 3, 6, 2, 5), modes=(Mode.MINOR,)),
)


@dataclass
class ProgressionConfig:
    """Configuration for progression generation.

    Attributes:
        max_results: Number of progressions returned (default: 15)
        max_alternatives: Alternatives listed per slot (default: 3)
        max_borrowed_per_slot: Borrowed replacements tried per slot (default: 2)
        fit_weight: Share of fit in the conventional score (default: 0.6)
        voice_leading_weight: Share of voice leading (default: 0.2)
        cadence_weight: Share of cadence strength (default: 0.2)
    """

    max_results: int = 15
    max_alternatives: int = 3
    max_borrowed_per_slot: int = 2
    fit_weight: float = 0.6
    voice_leading_weight: float = 0.2
    cadence_weight: float = 0.2


# Weirdness blend: score = conventional_weight(w) * conventional + spice_weight(w) * spice,
# each weight interpolating linearly between its value at w=0 and at w=1.
CONVENTIONAL_WEIGHT_AT_0 = 1.0
CONVENTIONAL_WEIGHT_AT_1 = 0.5
SPICE_WEIGHT_AT_0 = -1.0
SPICE_WEIGHT_AT_1 = 1.0

# Cadence strengths
AUTHENTIC_CADENCE = 1.0
PLAGAL_CADENCE = 0.6
TONIC_ENDING = 0.4
HALF_CADENCE = 0.3

# Largest nearest-tone movement between pitch classes
MAX_SEMITONE_MOVE = 6


def clamp_weirdness(weirdness: float) -> float:
    """Bring a weirdness value into [0, 1], warning when it had to change.

    NaN carries no preference and falls back to 0 (conventional).
    """
    if math.isnan(weirdness):
        warnings.warn("weirdness is NaN, using 0")
        return 0.0
    if not 0.0 <= weirdness <= 1.0:
        warnings.warn(f"weirdness {weirdness} outside [0, 1], clamping")
        return min(1.0, max(0.0, weirdness))
    return weirdness


def blend_weights(weirdness: float) -> Tuple[float, float]:
    """(conventional weight, spice weight) for a weirdness in [0, 1]."""
    conventional = CONVENTIONAL_WEIGHT_AT_0 + weirdness * (
        CONVENTIONAL_WEIGHT_AT_1 - CONVENTIONAL_WEIGHT_AT_0
    )
    spice = SPICE_WEIGHT_AT_0 + weirdness * (SPICE_WEIGHT_AT_1 - SPICE_WEIGHT_AT_0)
    return conventional, spice


def blend_score(conventional: float, spice: float, weirdness: float) -> float:
    """Weirdness-weighted score rescaled into [0, 1].

    The rescaling is affine for a fixed weirdness, so it never changes the
    order of progressions ranked at that weirdness.
    """
    conv_w, spice_w = blend_weights(weirdness)
    raw = conv_w * conventional + spice_w * spice
    low = min(0.0, spice_w)
    span = conv_w + abs(spice_w)
    return (raw - low) / span


def pitch_class_distance(a: int, b: int) -> int:
    """Shortest distance between two pitch classes in semitones."""
    d = abs(a - b) % 12
    return min(d, 12 - d)


def voice_leading_cost(prev: Sequence[int], nxt: Sequence[int]) -> float:
    """Nearest-tone movement into ``nxt``, normalized to [0, 1]."""
    if not prev or not nxt:
        return 0.0
    total = sum(min(pitch_class_distance(p, n) for p in prev) for n in nxt)
    return total / (MAX_SEMITONE_MOVE * len(nxt))


def voice_leading_score(chords: Sequence[ChordSuggestion]) -> float:
    """1 for static harmony, lower as voices have to move further."""
    if len(chords) < 2:
        return 1.0
    costs = [
        voice_leading_cost(a.pitch_classes, b.pitch_classes)
        for a, b in zip(chords, chords[1:])
    ]
    return 1.0 - sum(costs) / len(costs)


def cadence_score(chords: Sequence[ChordSuggestion], key: KeyCandidate) -> float:
    """Strength of the closing gesture of a progression."""
    if not chords:
        return 0.0
    last = chords[-1]
    ends_on_tonic = last.root_pc == key.tonic_pc and last.function in (
        HarmonicFunction.TONIC,
        None,
    )
    if ends_on_tonic and len(chords) > 1:
        penultimate = chords[-2].function
        if penultimate == HarmonicFunction.DOMINANT:
            return AUTHENTIC_CADENCE
        if penultimate == HarmonicFunction.SUBDOMINANT:
            return PLAGAL_CADENCE
    if ends_on_tonic:
        return TONIC_ENDING
    if last.function == HarmonicFunction.DOMINANT:
        return HALF_CADENCE
    return 0.0


@dataclass(frozen=True)
class ProgressionSlot:
    """One position of a progression."""

    role: str
    chord: ChordSuggestion
    alternatives: Tuple[ChordSuggestion, ...] = ()


@dataclass(frozen=True)
class ProgressionSuggestion:
    """A fully resolved, scored progression.

    Attributes:
        symbols: Chord symbols in order
        romans: Roman numerals in order
        slots: Slot detail with alternatives
        has_color: Contains any non-diatonic chord
        has_secondary: Contains a secondary dominant or tritone substitute
        has_borrowed: Contains a borrowed chord
        score: Weirdness-weighted overall score (0-1)
        template: Skeleton name
        transformation: Applied decoration ('none' for the plain skeleton)
        fit: Mean support of the slot chords
        spice: Summed color of non-diatonic chords, capped at 1
        voice_leading: Smoothness of chord-to-chord motion (0-1)
        cadence: Cadence strength (0-1)
    """

    symbols: Tuple[str, ...]
    romans: Tuple[str, ...]
    slots: Tuple[ProgressionSlot, ...]
    has_color: bool
    has_secondary: bool
    has_borrowed: bool
    score: float
    template: str = ""
    transformation: str = "none"
    fit: float = 0.0
    spice: float = 0.0
    voice_leading: float = 0.0
    cadence: float = 0.0

    @property
    def length(self) -> int:
        return len(self.slots)

    @property
    def chords(self) -> Tuple[ChordSuggestion, ...]:
        return tuple(slot.chord for slot in self.slots)


@dataclass
class _Draft:
    """A filled template before scoring."""

    template: ProgressionTemplate
    chords: List[ChordSuggestion]
    roles: List[str]
    transformation: str = "none"
    order: int = 0


class ProgressionGenerator:
    """Build and rank progressions for a key and its chord catalog."""

    def __init__(
        self,
        config: Optional[ProgressionConfig] = None,
        templates: Sequence[ProgressionTemplate] = TEMPLATES,
    ):
        self.config = config or ProgressionConfig()
        self.templates = tuple(templates)

    def generate(
        self,
        key: KeyCandidate,
        chords: ChordSuggestionResult,
        features: PitchClassFeatures,
        weirdness: float = 0.0,
    ) -> List[ProgressionSuggestion]:
        """
        Generate ranked progressions.

        Args:
            key: Active key candidate
            chords: Chord catalog for the key
            features: Pitch-class features (empty features give no progressions)
            weirdness: 0 favours conventional progressions, 1 favours color

        Returns:
            Ranked, de-duplicated progressions
        """
        weirdness = clamp_weirdness(weirdness)

        if features.is_empty or len(chords.diatonic) < 7:
            return []

        drafts = []
        for template in self.templates:
            if key.mode not in template.modes:
                continue
            base = self._fill(template, key, chords)
            drafts.append(base)
            drafts.extend(self._decorate(base, key, chords))

        for i, draft in enumerate(drafts):
            draft.order = i

        best: Dict[Tuple[str, ...], Tuple[tuple, ProgressionSuggestion]] = {}
        for draft in drafts:
            suggestion = self._score(draft, key, chords, weirdness)
            sort_key = (
                -suggestion.score,
                sum(1 for c in draft.chords if c.is_color),
                draft.order,
            )
            current = best.get(suggestion.symbols)
            if current is None or sort_key < current[0]:
                best[suggestion.symbols] = (sort_key, suggestion)

        ranked = sorted(best.values(), key=lambda item: item[0])
        return [s for _, s in ranked[: self.config.max_results]]

    # ------------------------------------------------------------------
    # Filling and decoration
    # ------------------------------------------------------------------

    def _fill(
        self,
        template: ProgressionTemplate,
        key: KeyCandidate,
        chords: ChordSuggestionResult,
    ) -> _Draft:
        filled = [chords.diatonic_degree(d) for d in template.degrees]
        roles = [
            f"{role.value}:{degree_numeral(key, d)}"
            for role, d in zip(template.roles(key.mode), template.degrees)
        ]
        return _Draft(template=template, chords=filled, roles=roles)

    def _replace(self, draft: _Draft, index: int, chord: ChordSuggestion, name: str) -> _Draft:
        replaced = list(draft.chords)
        replaced[index] = chord
        return _Draft(
            template=draft.template,
            chords=replaced,
            roles=list(draft.roles),
            transformation=name,
        )

    def _decorate(
        self,
        base: _Draft,
        key: KeyCandidate,
        chords: ChordSuggestionResult,
    ) -> List[_Draft]:
        variants = []
        resolving = chords.by_resolves_to
        degrees = base.template.degrees

        # Applied chords replace the slot before their target; the opening tonic stays
        for target_index in range(2, len(degrees)):
            target = degree_numeral(key, degrees[target_index])
            if degrees[target_index] == degrees[target_index - 1]:
                continue
            for chord in resolving.get(target, []):
                name = (
                    "tritone_substitute"
                    if chord.source == ChordSource.TRITONE_SUBSTITUTE
                    else "applied_dominant"
                )
                variants.append(self._replace(base, target_index - 1, chord, name))

        neapolitan = next(
            (c for c in chords.borrowed if c.roman.startswith("bII")), None
        )
        roles = base.template.roles(key.mode)
        for i in range(1, len(degrees) - 1):
            if (
                neapolitan is not None
                and roles[i] == HarmonicFunction.SUBDOMINANT
                and roles[i + 1] == HarmonicFunction.DOMINANT
            ):
                variants.append(self._replace(base, i, neapolitan, "neapolitan"))

        # Borrowed chords sharing the slot's function (e.g. iv for IV, bVII for V)
        for i in range(1, len(degrees)):
            options = [
                c
                for c in chords.borrowed
                if c.function == roles[i] and c is not neapolitan
            ]
            for chord in options[: self.config.max_borrowed_per_slot]:
                variants.append(self._replace(base, i, chord, "borrowed"))

        return variants

    def _alternatives(
        self,
        chord: ChordSuggestion,
        next_chord: Optional[ChordSuggestion],
        chords: ChordSuggestionResult,
    ) -> Tuple[ChordSuggestion, ...]:
        found: List[ChordSuggestion] = []
        if next_chord is not None and next_chord.degree is not None:
            target = degree_numeral(chords.key, next_chord.degree)
            found.extend(chords.by_resolves_to.get(target, []))
        if chord.function is not None:
            found.extend(chords.by_function.get(chord.function, []))

        unique = []
        for alt in found:
            if alt.symbol != chord.symbol and alt not in unique:
                unique.append(alt)
        return tuple(unique[: self.config.max_alternatives])

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _score(
        self,
        draft: _Draft,
        key: KeyCandidate,
        chords: ChordSuggestionResult,
        weirdness: float,
    ) -> ProgressionSuggestion:
        cfg = self.config
        seq = draft.chords

        fit = sum(c.support_score for c in seq) / len(seq)
        spice = min(1.0, sum(c.color_score for c in seq if c.is_color))
        voice_leading = voice_leading_score(seq)
        cadence = cadence_score(seq, key)

        conventional = (
            cfg.fit_weight * fit
            + cfg.voice_leading_weight * voice_leading
            + cfg.cadence_weight * cadence
        )
        score = blend_score(conventional, spice, weirdness)

        slots = tuple(
            ProgressionSlot(
                role=draft.roles[i],
                chord=chord,
                alternatives=self._alternatives(
                    chord, seq[i + 1] if i + 1 < len(seq) else None, chords
                ),
            )
            for i, chord in enumerate(seq)
        )

        return ProgressionSuggestion(
            symbols=tuple(c.symbol for c in seq),
            romans=tuple(c.roman for c in seq),
            slots=slots,
            has_color=any(c.is_color for c in seq),
            has_secondary=any(
                c.source
                in (ChordSource.SECONDARY_DOMINANT, ChordSource.TRITONE_SUBSTITUTE)
                for c in seq
            ),
            has_borrowed=any(c.source == ChordSource.BORROWED for c in seq),
            score=score,
            template=draft.template.name,
            transformation=draft.transformation,
            fit=fit,
            spice=spice,
            voice_leading=voice_leading,
            cadence=cadence,
        )


def generate_progressions(
    candidate: KeyCandidate,
    chords: ChordSuggestionResult,
    features: PitchClassFeatures,
    weirdness: float = 0.0,
    config: Optional[ProgressionConfig] = None,
) -> List[ProgressionSuggestion]:
    """Generate progressions with the default (or given) configuration."""
    return ProgressionGenerator(config).generate(candidate, chords, features, weirdness)
