"""Bucket matched records into time series and rescale them."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from pipelines.common import (
    coerce_number,
    format_timestamp,
    parse_timestamp,
    payload_source,
    pick_first_key,
)
from pipelines.model import NdviPoint, ObservationRecord, SeriesPoint


@dataclass(frozen=True)
class SeriesFields:
    """Time and value aliases recognized for one series category."""

    time_keys: tuple[str, ...]
    value_keys: tuple[str, ...]


AIR_TEMP_FIELDS = SeriesFields(
    time_keys=("airtempsMeasuredAt", "measuredAt", "time", "timestamp", "date"),
    value_keys=("airtempsCurrentTemp", "temperature", "temp", "airtemp"),
)
CLOUD_FIELDS = SeriesFields(
    time_keys=("cloudsMeasuredAt", "measuredAt", "time", "timestamp", "date"),
    value_keys=("cloudsCurrentCover", "cloudCover", "cloudiness", "clouds"),
)
WIND_FIELDS = SeriesFields(
    time_keys=("windsMeasuredAt", "measuredAt", "time", "timestamp", "date"),
    value_keys=("windsCurrentSpeed", "windSpeed", "speed", "windspeed"),
)


def _bucket_key(moment: datetime, bucket_to_hour: bool) -> datetime:
    if bucket_to_hour:
        return moment.replace(minute=0, second=0, microsecond=0)
    return moment


def extract_sample(
    record: ObservationRecord, time_keys: Sequence[str], value_keys: Sequence[str]
) -> tuple[datetime, float] | None:
    source = payload_source(record.raw)
    moment = parse_timestamp(pick_first_key(source, time_keys))
    value = coerce_number(pick_first_key(source, value_keys))
    if moment is None or value is None:
        return None
    return moment, value


def build_series_from_records(
    records: Iterable[ObservationRecord],
    time_keys: Sequence[str],
    value_keys: Sequence[str],
    *,
    normalize: bool = False,
    bucket_to_hour: bool = False,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[SeriesPoint]:
    """Average values per time bucket and return them in ascending date order.

    Records lacking a parseable timestamp or numeric value are dropped, as are
    records outside ``[start, end]`` when either bound is given.
    """

    buckets: dict[datetime, list[float]] = defaultdict(list)
    for record in records:
        sample = extract_sample(record, time_keys, value_keys)
        if sample is None:
            continue
        moment, value = sample
        if start is not None and moment < start:
            continue
        if end is not None and moment > end:
            continue
        buckets[_bucket_key(moment, bucket_to_hour)].append(value)

    series = [
        SeriesPoint(date=format_timestamp(key), value=sum(values) / len(values))
        for key, values in sorted(buckets.items())
    ]
    if normalize:
        return normalize_values(series)
    return series


def normalize_values(series: Sequence[SeriesPoint]) -> list[SeriesPoint]:
    """Min-max rescale into [0, 1]; a flat series maps to all zeros."""

    if not series:
        return []
    values = [point.value for point in series]
    low = min(values)
    span = (max(values) - low) or 1.0
    return [SeriesPoint(date=point.date, value=(point.value - low) / span) for point in series]


def as_ndvi_proxy(series: Sequence[SeriesPoint]) -> list[NdviPoint]:
    """Relabel a normalized scalar series as a vegetation-index stand-in."""

    return [NdviPoint(date=point.date, ndvi=point.value) for point in normalize_values(series)]


__all__ = [
    "SeriesFields",
    "AIR_TEMP_FIELDS",
    "CLOUD_FIELDS",
    "WIND_FIELDS",
    "extract_sample",
    "build_series_from_records",
    "normalize_values",
    "as_ndvi_proxy",
]
