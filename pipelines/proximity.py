"""Great-circle proximity search over the record set, widening until something matches."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Iterable, Pattern, Sequence

from pipelines.model import ObservationRecord

EARTH_RADIUS_KM = 6371.0

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchPolicy:
    """Escalation settings for one source category."""

    category: str
    pattern: str
    radius_km: float
    widened_radius_km: float | None
    nearest_k: int

    @property
    def regex(self) -> Pattern[str]:
        return _compile(self.pattern)


AIR_TEMP_POLICY = SearchPolicy("air_temperature", "airtemp", 200.0, 800.0, 50)
CLOUD_POLICY = SearchPolicy("cloud", "cloud", 200.0, 800.0, 50)
WIND_POLICY = SearchPolicy("wind", "wind", 200.0, 800.0, 50)
LAND_COVER_POLICY = SearchPolicy("land_cover", "landcover", 150.0, None, 100)


def _compile(pattern: str | Pattern[str]) -> Pattern[str]:
    if isinstance(pattern, str):
        return re.compile(pattern, re.IGNORECASE)
    return pattern


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _in_category(records: Iterable[ObservationRecord], regex: Pattern[str]) -> list[ObservationRecord]:
    return [record for record in records if regex.search(record.source_file)]


def filter_nearby(
    records: Iterable[ObservationRecord],
    pattern: str | Pattern[str],
    lng: float,
    lat: float,
    radius_km: float,
) -> list[ObservationRecord]:
    """Records of the category whose distance to (lng, lat) is within ``radius_km``."""

    regex = _compile(pattern)
    return [
        record
        for record in _in_category(records, regex)
        if haversine_km(lat, lng, record.latitude, record.longitude) <= radius_km
    ]


def nearest(
    records: Iterable[ObservationRecord],
    pattern: str | Pattern[str],
    lng: float,
    lat: float,
    k: int,
) -> list[ObservationRecord]:
    regex = _compile(pattern)
    ranked = sorted(
        _in_category(records, regex),
        key=lambda record: haversine_km(lat, lng, record.latitude, record.longitude),
    )
    return ranked[:k]


def search_with_widening(
    records: Sequence[ObservationRecord],
    policy: SearchPolicy,
    lng: float,
    lat: float,
    radius_km: float | None = None,
) -> list[ObservationRecord]:
    """Requested radius, then the widened radius, then the k nearest records."""

    regex = policy.regex
    radius = policy.radius_km if radius_km is None else radius_km

    found = filter_nearby(records, regex, lng, lat, radius)
    if found:
        return found

    if policy.widened_radius_km is not None and policy.widened_radius_km > radius:
        found = filter_nearby(records, regex, lng, lat, policy.widened_radius_km)
        if found:
            logger.debug(
                "Widened %s search to %s km at (%s, %s).",
                policy.category,
                policy.widened_radius_km,
                lng,
                lat,
            )
            return found

    found = nearest(records, regex, lng, lat, policy.nearest_k)
    if found:
        logger.debug(
            "Using %s nearest %s records for (%s, %s).", len(found), policy.category, lng, lat
        )
    return found


__all__ = [
    "SearchPolicy",
    "AIR_TEMP_POLICY",
    "CLOUD_POLICY",
    "WIND_POLICY",
    "LAND_COVER_POLICY",
    "EARTH_RADIUS_KM",
    "haversine_km",
    "filter_nearby",
    "nearest",
    "search_with_widening",
]
