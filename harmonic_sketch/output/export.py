"""Plain-structure export of analysis results for debugging and JSON output.

Everything is flattened to dicts, lists, strings, numbers, booleans and None,
so the encoding is always acyclic and ``json.dumps`` can write it directly.
"""

import dataclasses
import json
import math
from enum import Enum
from typing import Any

import numpy as np

from ..inference.chords import ChordSuggestionResult
from ..inference.key import HarmonyAnalysis, KeyCandidate


# Derived properties worth exporting alongside dataclass fields
EXTRA_PROPERTIES = {
    KeyCandidate: ("id", "name"),
    HarmonyAnalysis: ("top",),
}


def to_plain(value: Any) -> Any:
    """Recursively convert analysis objects to plain Python structures."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float):
        # JSON has no infinities (silent level metrics use -inf)
        return value if math.isfinite(value) else None
    if isinstance(value, np.ndarray):
        return [to_plain(v) for v in value.tolist()]
    if isinstance(value, np.generic):
        return to_plain(value.item())
    if isinstance(value, ChordSuggestionResult):
        # Indexes are derived from these lists, so only the lists are exported
        return {
            "key": to_plain(value.key),
            "diatonic": to_plain(value.diatonic),
            "secondary": to_plain(value.secondary),
            "borrowed": to_plain(value.borrowed),
            "ranked": [c.id for c in value.ranked],
        }
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {
            f.name: to_plain(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if not f.name.startswith("_")
        }
        for name in EXTRA_PROPERTIES.get(type(value), ()):
            out[name] = to_plain(getattr(value, name))
        return out
    if isinstance(value, dict):
        return {str(to_plain(k)): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


def to_json(value: Any, indent: int = 2) -> str:
    """Serialize analysis objects to a JSON string."""
    return json.dumps(to_plain(value), indent=indent, ensure_ascii=False)
