"""Local JSON source ingestor.

Turns observation files of varying shapes into normalized ``ObservationRecord``
rows that the record store can cache and query.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from pipelines.common import coerce_number, pick_first_key
from pipelines.model import ObservationRecord

# Canonical field -> accepted upstream aliases (matched case-insensitively)
RECORD_FIELD_ALIASES: Mapping[str, tuple[str, ...]] = {
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lon", "lng"),
    "measured_at": ("measuredAt", "measuredDate", "date", "timestamp"),
    "protocol": ("protocol", "type"),
    "country_name": ("countryName", "country"),
    "organization_name": ("organizationName", "org"),
    "site_name": ("siteName", "site"),
}

logger = logging.getLogger(__name__)


def extract_rows(payload: Any) -> list[Mapping[str, Any]]:
    """
    Accepts a top-level array, or an object carrying the array under
    'results' or 'data'. Anything else yields no rows.
    """
    rows: Any
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, Mapping) and isinstance(payload.get("results"), list):
        rows = payload["results"]
    elif isinstance(payload, Mapping) and isinstance(payload.get("data"), list):
        rows = payload["data"]
    else:
        rows = []
    return [row for row in rows if isinstance(row, Mapping)]


def _optional_text(row: Mapping[str, Any], field: str) -> str | None:
    value = pick_first_key(row, RECORD_FIELD_ALIASES[field])
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_record(row: Mapping[str, Any], source_file: str) -> ObservationRecord | None:
    """Build a record from one upstream row; rows without numeric coordinates are dropped."""

    latitude = coerce_number(pick_first_key(row, RECORD_FIELD_ALIASES["latitude"]))
    longitude = coerce_number(pick_first_key(row, RECORD_FIELD_ALIASES["longitude"]))
    if latitude is None or longitude is None:
        return None

    return ObservationRecord(
        latitude=latitude,
        longitude=longitude,
        measured_at=_optional_text(row, "measured_at"),
        protocol=_optional_text(row, "protocol"),
        country_name=_optional_text(row, "country_name"),
        organization_name=_optional_text(row, "organization_name"),
        site_name=_optional_text(row, "site_name"),
        source_file=source_file,
        raw=dict(row),
    )


def iter_source_files(data_dir: Path) -> list[Path]:
    if not data_dir.is_dir():
        logger.warning("Data directory %s does not exist; no records will be loaded.", data_dir)
        return []
    return sorted(
        path for path in data_dir.iterdir() if path.is_file() and path.suffix.lower() == ".json"
    )


def read_source_file(path: Path) -> list[ObservationRecord]:
    """Decode one source file; raises on unreadable or malformed JSON."""

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    records: list[ObservationRecord] = []
    skipped = 0
    for row in extract_rows(payload):
        record = normalize_record(row, path.name)
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.debug("Skipped %s rows without coordinates in %s.", skipped, path.name)
    return records


def load_records(paths: Iterable[Path]) -> list[ObservationRecord]:
    """Read every file, logging and skipping the ones that fail to decode."""

    records: list[ObservationRecord] = []
    for path in paths:
        try:
            loaded = read_source_file(path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.exception("Failed reading source file %s; skipping.", path.name)
            continue
        logger.info("Loaded %s records from %s.", len(loaded), path.name)
        records.extend(loaded)
    return records


__all__ = [
    "RECORD_FIELD_ALIASES",
    "extract_rows",
    "normalize_record",
    "iter_source_files",
    "read_source_file",
    "load_records",
]
