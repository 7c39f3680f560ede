"""Free-text lookup over record descriptors with GeoJSON output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from shapely.geometry import MultiPoint, box, mapping

from pipelines.model import ObservationRecord

_SEARCHABLE_FIELDS = (
    "protocol",
    "country_name",
    "organization_name",
    "site_name",
    "measured_at",
    "source_file",
)


@dataclass(frozen=True)
class SearchResult:
    matches: list[ObservationRecord]
    points: dict[str, Any]
    aoi: dict[str, Any] | None


def _haystack(record: ObservationRecord) -> str:
    parts = [getattr(record, name) for name in _SEARCHABLE_FIELDS]
    return " ".join(part for part in parts if part).lower()


def to_point_feature(record: ObservationRecord) -> dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {
            "measuredAt": record.measured_at,
            "protocol": record.protocol,
            "countryName": record.country_name,
            "organizationName": record.organization_name,
            "siteName": record.site_name,
            "sourceFile": record.source_file,
        },
        "geometry": {"type": "Point", "coordinates": [record.longitude, record.latitude]},
    }


def bbox_polygon(records: list[ObservationRecord]) -> dict[str, Any] | None:
    """Bounding-box polygon feature around ``records`` (``None`` when empty)."""

    if not records:
        return None
    bounds = MultiPoint([(r.longitude, r.latitude) for r in records]).bounds
    return {
        "type": "Feature",
        "bbox": list(bounds),
        "properties": {},
        "geometry": mapping(box(*bounds)),
    }


def search_by_text(records: Iterable[ObservationRecord], query: str) -> SearchResult:
    needle = query.strip().lower()
    if not needle:
        raise ValueError("Search query must not be blank.")
    matches = [record for record in records if needle in _haystack(record)]
    points = {
        "type": "FeatureCollection",
        "features": [to_point_feature(record) for record in matches],
    }
    return SearchResult(matches=matches, points=points, aoi=bbox_polygon(matches))


__all__ = ["SearchResult", "search_by_text", "to_point_feature", "bbox_polygon"]
