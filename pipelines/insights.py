"""Compose local insights from nearby records, filling gaps with the fallback model."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Literal, Sequence, TypeVar, Union

from pipelines.common import parse_timestamp, validate_coordinates
from pipelines.fallback import generate_fallback_insights
from pipelines.landcover import is_usable_summary, summarize_land_cover
from pipelines.model import LandCoverEntry, LocalInsights, NdviPoint, ObservationRecord, SeriesPoint
from pipelines.proximity import (
    AIR_TEMP_POLICY,
    CLOUD_POLICY,
    LAND_COVER_POLICY,
    WIND_POLICY,
    SearchPolicy,
    search_with_widening,
)
from pipelines.series import (
    AIR_TEMP_FIELDS,
    CLOUD_FIELDS,
    WIND_FIELDS,
    SeriesFields,
    as_ndvi_proxy,
    build_series_from_records,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Real(Generic[T]):
    items: list[T]
    origin: Literal["real"] = "real"


@dataclass(frozen=True)
class Fallback(Generic[T]):
    items: list[T]
    origin: Literal["fallback"] = "fallback"


Resolved = Union[Real[T], Fallback[T]]


@dataclass(frozen=True)
class InsightsResolution:
    """Per-field outcome of a local insights query."""

    ndvi_series: Resolved[NdviPoint]
    cloud_series: Resolved[SeriesPoint]
    wind_series: Resolved[SeriesPoint]
    land_cover_summary: Resolved[LandCoverEntry]

    def provenance(self) -> dict[str, str]:
        return {
            "ndviSeries": self.ndvi_series.origin,
            "cloudSeries": self.cloud_series.origin,
            "windSeries": self.wind_series.origin,
            "landCoverSummary": self.land_cover_summary.origin,
        }

    def to_insights(self) -> LocalInsights:
        return LocalInsights(
            ndvi_series=self.ndvi_series.items,
            cloud_series=self.cloud_series.items,
            wind_series=self.wind_series.items,
            land_cover_summary=self.land_cover_summary.items,
        )


def _parse_bound(raw: str | None, name: str) -> datetime | None:
    if raw is None or raw == "":
        return None
    parsed = parse_timestamp(raw)
    if parsed is None:
        raise ValueError(f"{name} must be an ISO-8601 date, got {raw!r}.")
    return parsed


def _series_near(
    records: Sequence[ObservationRecord],
    policy: SearchPolicy,
    fields: SeriesFields,
    lng: float,
    lat: float,
    start: datetime | None,
    end: datetime | None,
    *,
    normalize: bool,
) -> list[SeriesPoint]:
    nearby = search_with_widening(records, policy, lng, lat)
    return build_series_from_records(
        nearby,
        fields.time_keys,
        fields.value_keys,
        normalize=normalize,
        bucket_to_hour=True,
        start=start,
        end=end,
    )


def air_temp_ndvi_series_near(
    records: Sequence[ObservationRecord],
    lng: float,
    lat: float,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[NdviPoint]:
    """Hourly air temperature, min-max scaled and exposed as an NDVI stand-in."""

    raw_series = _series_near(
        records, AIR_TEMP_POLICY, AIR_TEMP_FIELDS, lng, lat, start, end, normalize=False
    )
    return as_ndvi_proxy(raw_series)


def cloud_series_near(
    records: Sequence[ObservationRecord],
    lng: float,
    lat: float,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[SeriesPoint]:
    return _series_near(records, CLOUD_POLICY, CLOUD_FIELDS, lng, lat, start, end, normalize=True)


def wind_series_near(
    records: Sequence[ObservationRecord],
    lng: float,
    lat: float,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[SeriesPoint]:
    return _series_near(records, WIND_POLICY, WIND_FIELDS, lng, lat, start, end, normalize=True)


def land_cover_summary_near(
    records: Sequence[ObservationRecord], lng: float, lat: float
) -> list[LandCoverEntry]:
    """Top land-cover labels nearby; empty when nothing usable was resolved."""

    nearby = search_with_widening(records, LAND_COVER_POLICY, lng, lat)
    summary = summarize_land_cover(nearby)
    if not is_usable_summary(summary):
        return []
    return summary


def _pick(real: list[T], fallback: list[T]) -> Resolved[T]:
    if real:
        return Real(real)
    return Fallback(fallback)


def resolve_local_insights(
    records: Sequence[ObservationRecord],
    lng: float,
    lat: float,
    start_date: str | None = None,
    end_date: str | None = None,
) -> InsightsResolution:
    lng, lat = validate_coordinates(lng, lat)
    start = _parse_bound(start_date, "startDate")
    end = _parse_bound(end_date, "endDate")

    ndvi = air_temp_ndvi_series_near(records, lng, lat, start, end)
    cloud = cloud_series_near(records, lng, lat, start, end)
    wind = wind_series_near(records, lng, lat, start, end)
    land_cover = land_cover_summary_near(records, lng, lat)

    fallback = generate_fallback_insights(lng, lat, start, end)
    resolution = InsightsResolution(
        ndvi_series=_pick(ndvi, fallback.ndvi_series),
        cloud_series=_pick(cloud, fallback.cloud_series),
        wind_series=_pick(wind, fallback.wind_series),
        land_cover_summary=_pick(land_cover, fallback.land_cover_summary),
    )
    logger.debug("Local insights at (%s, %s): %s", lng, lat, resolution.provenance())
    return resolution


def get_local_insights(
    records: Sequence[ObservationRecord],
    lng: float,
    lat: float,
    start_date: str | None = None,
    end_date: str | None = None,
) -> LocalInsights:
    """Nearby NDVI proxy, cloud, wind and land-cover data, never empty."""

    return resolve_local_insights(records, lng, lat, start_date, end_date).to_insights()


__all__ = [
    "Real",
    "Fallback",
    "InsightsResolution",
    "air_temp_ndvi_series_near",
    "cloud_series_near",
    "wind_series_near",
    "land_cover_summary_near",
    "resolve_local_insights",
    "get_local_insights",
]
