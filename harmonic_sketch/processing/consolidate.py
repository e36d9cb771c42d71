"""Note consolidation - Turn noisy transcription output into a clean note list.

Transcription models hallucinate harmonics, split sustained notes and flicker
between neighbouring semitones. This module provides:
- Isolated noise removal (weak notes with no neighbours)
- Polyphony limiting (keep the loudest overlapping notes)
- Phrase grouping (gaps between phrases are intentional rests)
- Wobble absorption (A, B, A' with B a short half-step flicker)
- Consecutive same-pitch merging
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..core import NoteEvent, DEFAULT_MAX_POLYPHONY


@dataclass
class ConsolidationConfig:
    """Configuration for note consolidation.

    Attributes:
        max_polyphony: Maximum simultaneous notes (default: 6)
        merge_gap: Max gap in seconds between connected notes (default: 0.15)
        wobble_semitones: Pitch deviation treated as wobble (default: 1)
        wobble_max_duration: Wobble notes must be shorter than this (default: 0.2)
        bend_threshold: Bends above this many semitones are intentional (default: 0.3)
        filter_isolated: Remove weak notes far from any other note (default: True)
        isolated_min_velocity: Notes below this velocity may be noise (default: 0.35)
        isolated_window: Neighbour search window in seconds (default: 0.3)
    """

    max_polyphony: int = DEFAULT_MAX_POLYPHONY
    merge_gap: float = 0.15
    wobble_semitones: int = 1
    wobble_max_duration: float = 0.2
    bend_threshold: float = 0.3
    filter_isolated: bool = True
    isolated_min_velocity: float = 0.35
    isolated_window: float = 0.3


@dataclass
class ConsolidationStats:
    """Statistics from a consolidation run."""

    original_count: int = 0
    final_count: int = 0
    removed_isolated: int = 0
    removed_polyphony: int = 0
    absorbed_wobbles: int = 0
    merged_notes: int = 0
    passes: int = 0

    @property
    def total_removed(self) -> int:
        """Total notes removed or merged away."""
        return self.original_count - self.final_count


def sort_notes(notes: Sequence[NoteEvent]) -> List[NoteEvent]:
    """Order notes by start time (stable for equal starts)."""
    return sorted(notes, key=lambda n: n.start)


def concatenate_bends(*notes: NoteEvent) -> tuple:
    """Concatenate pitch-bend samples of several notes in the given order."""
    bends = []
    for note in notes:
        bends.extend(note.pitch_bends)
    return tuple(bends)


def has_significant_bend(note: NoteEvent, threshold: float = 0.3) -> bool:
    """Whether a note bends further than ``threshold`` semitones."""
    return note.max_bend > threshold


def filter_isolated_notes(
    notes: Sequence[NoteEvent],
    min_velocity: float = 0.35,
    window: float = 0.3,
) -> List[NoteEvent]:
    """Drop weak notes that have no other note starting nearby.

    Args:
        notes: Notes to filter
        min_velocity: Notes at or above this velocity are always kept
        window: Seconds around a note's start to look for neighbours

    Returns:
        Filtered notes in start order
    """
    ordered = sort_notes(notes)
    kept = []
    for i, note in enumerate(ordered):
        if note.velocity >= min_velocity:
            kept.append(note)
            continue
        has_neighbour = any(
            abs(other.start - note.start) <= window
            for j, other in enumerate(ordered)
            if j != i
        )
        if has_neighbour:
            kept.append(note)
    return kept


def limit_polyphony(
    notes: Sequence[NoteEvent],
    max_simultaneous: int = DEFAULT_MAX_POLYPHONY,
) -> List[NoteEvent]:
    """Keep at most ``max_simultaneous`` overlapping notes at any instant.

    Notes are processed by start time. When admitting a note would exceed
    the limit, it replaces the quietest overlapping kept note only if it is
    strictly louder; otherwise it is dropped. Among equally quiet kept notes
    the most recently admitted one is evicted.

    Args:
        notes: Notes in any order
        max_simultaneous: Maximum overlap allowed

    Returns:
        Kept notes in start order
    """
    if max_simultaneous <= 0:
        return []

    ordered = sort_notes(notes)
    kept = [True] * len(ordered)
    active: List[int] = []

    for i, note in enumerate(ordered):
        # Half-open intervals: a note ending exactly at this start no longer overlaps
        active = [j for j in active if kept[j] and ordered[j].end > note.start]

        if len(active) < max_simultaneous:
            active.append(i)
            continue

        quietest = min(
            active,
            key=lambda j: (ordered[j].velocity, -j),
        )
        if note.velocity > ordered[quietest].velocity:
            kept[quietest] = False
            active.remove(quietest)
            active.append(i)
        else:
            kept[i] = False

    return [note for i, note in enumerate(ordered) if kept[i]]


def max_overlap(notes: Sequence[NoteEvent]) -> int:
    """Largest number of notes sounding at the same instant."""
    events = []
    for note in notes:
        events.append((note.start, 1))
        events.append((note.end, -1))
    # Ends sort before starts at the same time
    events.sort(key=lambda e: (e[0], e[1]))
    current = best = 0
    for _, delta in events:
        current += delta
        best = max(best, current)
    return best


def group_into_phrases(
    notes: Sequence[NoteEvent], merge_gap: float = 0.15
) -> List[List[NoteEvent]]:
    """Split notes into phrases wherever the gap exceeds ``merge_gap``."""
    ordered = sort_notes(notes)
    if not ordered:
        return []

    phrases = [[ordered[0]]]
    for prev, curr in zip(ordered, ordered[1:]):
        if curr.start - prev.end > merge_gap:
            phrases.append([curr])
        else:
            phrases[-1].append(curr)
    return phrases


def absorb_wobble_notes(
    phrase: Sequence[NoteEvent],
    wobble_semitones: int = 1,
    max_duration: float = 0.2,
    bend_threshold: float = 0.3,
) -> List[NoteEvent]:
    """Collapse A, B, A' triples where B is a brief flicker around A.

    The collapsed note spans A..A' at A's pitch. Its velocity averages A and
    A' only; B is treated as an artifact.
    """
    result = []
    i = 0
    while i < len(phrase):
        if i + 2 < len(phrase):
            a, b, a2 = phrase[i], phrase[i + 1], phrase[i + 2]
            if (
                a.pitch == a2.pitch
                and abs(b.pitch - a.pitch) <= wobble_semitones
                and b.duration < max_duration
                and not has_significant_bend(b, bend_threshold)
            ):
                result.append(
                    NoteEvent(
                        start=a.start,
                        end=max(a.end, a2.end),
                        pitch=a.pitch,
                        velocity=(a.velocity + a2.velocity) / 2,
                        pitch_bends=concatenate_bends(a, b, a2),
                    )
                )
                i += 3
                continue
        result.append(phrase[i])
        i += 1
    return result


def merge_consecutive_same_pitch(
    phrase: Sequence[NoteEvent], merge_gap: float = 0.15
) -> List[NoteEvent]:
    """Merge adjacent notes of identical pitch separated by at most ``merge_gap``."""
    if not phrase:
        return []

    result = [phrase[0]]
    for note in phrase[1:]:
        prev = result[-1]
        if note.pitch == prev.pitch and note.start - prev.end <= merge_gap:
            result[-1] = NoteEvent(
                start=min(prev.start, note.start),
                end=max(prev.end, note.end),
                pitch=prev.pitch,
                velocity=(prev.velocity + note.velocity) / 2,
                pitch_bends=concatenate_bends(prev, note),
            )
        else:
            result.append(note)
    return result


def smart_merge(
    notes: Sequence[NoteEvent],
    merge_gap: float = 0.15,
    wobble_semitones: int = 1,
    wobble_max_duration: float = 0.2,
    bend_threshold: float = 0.3,
) -> List[NoteEvent]:
    """Phrase-aware wobble absorption followed by same-pitch merging."""
    merged = []
    for phrase in group_into_phrases(notes, merge_gap):
        phrase = absorb_wobble_notes(
            phrase, wobble_semitones, wobble_max_duration, bend_threshold
        )
        merged.extend(merge_consecutive_same_pitch(phrase, merge_gap))
    return merged


class NoteConsolidator:
    """Consolidate raw transcription output into a coherent note sequence.

    A single pass filters isolated noise, limits polyphony and smart-merges.
    Merging can expose new wobble or same-pitch neighbours, so passes repeat
    until the notes stop changing. Every pass that changes anything removes at
    least one note, so the loop terminates, and the result is a fixed point:
    consolidating it again returns it unchanged.
    """

    def __init__(self, config: Optional[ConsolidationConfig] = None):
        self.config = config or ConsolidationConfig()

    def consolidate(
        self,
        notes: Sequence[NoteEvent],
        return_stats: bool = False,
    ):
        """Run consolidation to a fixed point.

        Args:
            notes: Raw notes (any order)
            return_stats: Whether to return consolidation statistics

        Returns:
            Consolidated notes in start order, optionally with statistics
        """
        stats = ConsolidationStats(original_count=len(notes))
        current = sort_notes(notes)

        while True:
            stats.passes += 1
            after = self._single_pass(current, stats)
            if after == current:
                break
            current = after

        stats.final_count = len(current)
        if return_stats:
            return current, stats
        return current

    def _single_pass(
        self, notes: List[NoteEvent], stats: ConsolidationStats
    ) -> List[NoteEvent]:
        cfg = self.config

        if cfg.filter_isolated:
            count_before = len(notes)
            notes = filter_isolated_notes(
                notes, cfg.isolated_min_velocity, cfg.isolated_window
            )
            stats.removed_isolated += count_before - len(notes)

        count_before = len(notes)
        notes = limit_polyphony(notes, cfg.max_polyphony)
        stats.removed_polyphony += count_before - len(notes)

        merged = []
        for phrase in group_into_phrases(notes, cfg.merge_gap):
            dewobbled = absorb_wobble_notes(
                phrase,
                cfg.wobble_semitones,
                cfg.wobble_max_duration,
                cfg.bend_threshold,
            )
            stats.absorbed_wobbles += (len(phrase) - len(dewobbled)) // 2
            joined = merge_consecutive_same_pitch(dewobbled, cfg.merge_gap)
            stats.merged_notes += len(dewobbled) - len(joined)
            merged.extend(joined)
        return merged


def consolidate(
    notes: Sequence[NoteEvent],
    config: Optional[ConsolidationConfig] = None,
) -> List[NoteEvent]:
    """Consolidate notes with the default (or given) configuration."""
    return NoteConsolidator(config).consolidate(notes)
