"""Land-cover label resolution and ranked summaries."""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Iterable, Mapping, Pattern

from pipelines.common import payload_source, pick_first_key, pick_first_mapping
from pipelines.model import LandCoverEntry, ObservationRecord

UNKNOWN_LABEL = "Unknown"
SUMMARY_LIMIT = 5

LABEL_KEYS = (
    "landCoverClass",
    "landcover",
    "land_cover",
    "lc_label",
    "label",
    "class",
    "type",
    "name",
    "category",
)
CODE_KEYS = ("landCover", "landcover", "lc", "code", "classId", "class_id", "lc_code")
NESTED_KEYS = ("landcover", "land_cover")

# Checked in order; the first keyword pattern found in the label wins
KEYWORD_RULES: tuple[tuple[Pattern[str], str], ...] = (
    (re.compile(r"urban|built|settlement|impervious|residential|city"), "Urban/Built-up"),
    (re.compile(r"crop|agri|farmland|pasture|field"), "Cropland"),
    (re.compile(r"forest|tree|wood"), "Forest"),
    (re.compile(r"water|lake|river|ocean"), "Water"),
    (re.compile(r"grass|savanna|prairie"), "Grassland"),
    (re.compile(r"shrub|scrub"), "Shrubland"),
    (re.compile(r"wetland|swamp|marsh|bog|peat"), "Wetland"),
    (re.compile(r"barren|desert|bare"), "Barren"),
)

# NLCD-style class codes, as inclusive ranges
CODE_TABLE: tuple[tuple[int, int, str], ...] = (
    (11, 11, "Water"),
    (21, 24, "Urban/Built-up"),
    (31, 31, "Barren"),
    (41, 43, "Forest"),
    (52, 52, "Shrubland"),
    (71, 71, "Grassland"),
    (81, 82, "Cropland"),
    (90, 95, "Wetland"),
)


def normalize_label(text: str) -> str:
    lowered = text.strip().lower()
    if not lowered:
        return UNKNOWN_LABEL
    for pattern, label in KEYWORD_RULES:
        if pattern.search(lowered):
            return label
    return text


def label_for_code(code: float) -> str:
    for low, high, label in CODE_TABLE:
        if low <= code <= high:
            return label
    return UNKNOWN_LABEL


def extract_label(payload: Any) -> str:
    """Resolve a canonical land-cover label from a loosely structured payload.

    Tries a string label first, then a numeric class code, then a nested
    ``landcover`` object.
    """

    if not isinstance(payload, Mapping):
        return UNKNOWN_LABEL

    text = pick_first_key(payload, LABEL_KEYS)
    if isinstance(text, str):
        return normalize_label(text)

    code = pick_first_key(payload, CODE_KEYS)
    if isinstance(code, (int, float)):
        return label_for_code(code)

    nested = pick_first_mapping(payload, NESTED_KEYS)
    if nested is not None:
        return extract_label(nested)

    return UNKNOWN_LABEL


def summarize_land_cover(
    records: Iterable[ObservationRecord], limit: int = SUMMARY_LIMIT
) -> list[LandCoverEntry]:
    counts = Counter(extract_label(payload_source(record.raw)) for record in records)
    return [LandCoverEntry(label=label, count=count) for label, count in counts.most_common(limit)]


def is_usable_summary(summary: list[LandCoverEntry]) -> bool:
    """A summary is only worth returning when its leading label is known."""

    if not summary:
        return False
    top = summary[0].label
    return bool(top) and UNKNOWN_LABEL.lower() not in top.lower()


__all__ = [
    "UNKNOWN_LABEL",
    "KEYWORD_RULES",
    "CODE_TABLE",
    "normalize_label",
    "label_for_code",
    "extract_label",
    "summarize_land_cover",
    "is_usable_summary",
]
