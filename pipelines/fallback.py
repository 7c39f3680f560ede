"""Deterministic synthetic insights used when no real observations are available.

Values come from a latitude-driven seasonality model plus jitter from a seeded
Lehmer generator, so the same coordinate and date range always yield the same
output.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

from pipelines.common import clamp01, format_timestamp, parse_timestamp
from pipelines.model import LandCoverEntry, LocalInsights, NdviPoint, SeriesPoint

LCG_MODULUS = 2147483647
LCG_MULTIPLIER = 16807
STEP_DAYS = 7

NORTHERN_PHASE_DOY = 172  # ~June 21
SOUTHERN_PHASE_DOY = 355  # ~December 21

FALLBACK_LAND_COVER: tuple[tuple[str, int], ...] = (
    ("Urban/Built-up", 60),
    ("Water", 15),
    ("Cropland", 10),
    ("Forest", 8),
    ("Grassland", 7),
)


def seed_for(lng: float, lat: float) -> int:
    return math.floor((lat + 90) * 1000 + (lng + 180))


def pseudo_random(seed: int) -> Callable[[], float]:
    """Return a generator of floats in [0, 1) with its own state."""

    state = int(math.fmod(seed, LCG_MODULUS))
    if state <= 0:
        state += LCG_MODULUS - 1

    def _next() -> float:
        nonlocal state
        state = (state * LCG_MULTIPLIER) % LCG_MODULUS
        return state / LCG_MODULUS

    return _next


def iter_dates(start: datetime, end: datetime, step_days: int = STEP_DAYS) -> Iterator[datetime]:
    current = datetime(start.year, start.month, start.day, tzinfo=timezone.utc)
    step = timedelta(days=step_days)
    while current <= end:
        yield current
        current += step


def _resolve_range(
    start_date: str | datetime | None, end_date: str | datetime | None
) -> tuple[datetime, datetime]:
    now = datetime.now(timezone.utc)
    start = _as_datetime(start_date) or datetime(now.year, 1, 1, tzinfo=timezone.utc)
    end = _as_datetime(end_date) or now
    return start.astimezone(timezone.utc), end


def _as_datetime(value: str | datetime | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"Unrecognized date {value!r}; expected ISO-8601.")
    return parsed


def generate_fallback_insights(
    lng: float,
    lat: float,
    start_date: str | datetime | None = None,
    end_date: str | datetime | None = None,
) -> LocalInsights:
    """Synthesize weekly NDVI, cloud and wind series plus a static land-cover mix."""

    start, end = _resolve_range(start_date, end_date)
    dates = list(iter_dates(start, end))
    if not dates:
        dates = [datetime(start.year, start.month, start.day, tzinfo=timezone.utc)]

    lat_abs = abs(lat)
    season_amp = clamp01((lat_abs - 10) / 50)
    phase = NORTHERN_PHASE_DOY if lat >= 0 else SOUTHERN_PHASE_DOY
    rand = pseudo_random(seed_for(lng, lat))

    ndvi_series = []
    for day in dates:
        doy = day.timetuple().tm_yday
        seasonal = 0.3 + 0.5 * season_amp * math.sin((doy - phase) / 365 * 2 * math.pi)
        noise = (rand() - 0.5) * 0.05
        ndvi_series.append(NdviPoint(date=format_timestamp(day), ndvi=clamp01(seasonal + noise)))

    cloud_base = 0.45 + 0.15 * clamp01((lat_abs - 35) / 25)
    cloud_series = [
        SeriesPoint(date=format_timestamp(day), value=clamp01(cloud_base + (rand() - 0.5) * 0.1))
        for day in dates
    ]

    wind_base = 0.35 + 0.1 * clamp01((lat_abs - 30) / 40)
    wind_series = [
        SeriesPoint(date=format_timestamp(day), value=clamp01(wind_base + (rand() - 0.5) * 0.1))
        for day in dates
    ]

    return LocalInsights(
        ndvi_series=ndvi_series,
        cloud_series=cloud_series,
        wind_series=wind_series,
        land_cover_summary=[
            LandCoverEntry(label=label, count=count) for label, count in FALLBACK_LAND_COVER
        ],
    )


__all__ = [
    "FALLBACK_LAND_COVER",
    "seed_for",
    "pseudo_random",
    "iter_dates",
    "generate_fallback_insights",
]
