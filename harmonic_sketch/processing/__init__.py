"""Processing layer - Note post-processing.

Cleans raw transcription output before analysis:
- Isolated noise filtering
- Polyphony limiting
- Phrase-aware wobble absorption and same-pitch merging
"""

from .consolidate import (
    NoteConsolidator,
    ConsolidationConfig,
    ConsolidationStats,
    consolidate,
    limit_polyphony,
    smart_merge,
    group_into_phrases,
    absorb_wobble_notes,
    merge_consecutive_same_pitch,
    filter_isolated_notes,
    max_overlap,
)

__all__ = [
    "NoteConsolidator",
    "ConsolidationConfig",
    "ConsolidationStats",
    "consolidate",
    "limit_polyphony",
    "smart_merge",
    "group_into_phrases",
    "absorb_wobble_notes",
    "merge_consecutive_same_pitch",
    "filter_isolated_notes",
    "max_overlap",
]
