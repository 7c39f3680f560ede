"""Canonical data model for observation records and the insights built from them."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ObservationRecord(BaseModel):
    """Normalized representation of a single environmental observation row."""

    latitude: float = Field(..., description="Latitude of the observation in degrees.")
    longitude: float = Field(..., description="Longitude of the observation in degrees.")
    measured_at: Optional[str] = Field(
        default=None,
        alias="measuredAt",
        description="Source-native timestamp string, parsed on demand.",
    )
    protocol: Optional[str] = Field(
        default=None, description="Observation protocol or record type (e.g. 'air_temps')."
    )
    country_name: Optional[str] = Field(default=None, alias="countryName")
    organization_name: Optional[str] = Field(default=None, alias="organizationName")
    site_name: Optional[str] = Field(default=None, alias="siteName")
    source_file: str = Field(
        ...,
        alias="sourceFile",
        description="Identifier of the originating source, matched against category patterns.",
    )
    raw: Any = Field(
        default=None,
        description="Original upstream payload retained for alias-based field extraction.",
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SeriesPoint(BaseModel):
    """A single aggregated scalar value at a UTC ISO-8601 date."""

    date: str
    value: float

    model_config = ConfigDict(frozen=True)


class NdviPoint(BaseModel):
    """Vegetation-index sample; ``ndvi`` is expected to lie in [0, 1]."""

    date: str
    ndvi: float

    model_config = ConfigDict(frozen=True)


class LandCoverEntry(BaseModel):
    label: str
    count: int

    model_config = ConfigDict(frozen=True)


class LocalInsights(BaseModel):
    """Conditions near a coordinate; every field is populated, real or synthesized."""

    ndvi_series: list[NdviPoint] = Field(default_factory=list, alias="ndviSeries")
    cloud_series: list[SeriesPoint] = Field(default_factory=list, alias="cloudSeries")
    wind_series: list[SeriesPoint] = Field(default_factory=list, alias="windSeries")
    land_cover_summary: list[LandCoverEntry] = Field(
        default_factory=list, alias="landCoverSummary"
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class BloomPoint(BaseModel):
    date: str
    ndvi: float
    bloom_prob: float = Field(
        ..., description="Probability in [0, 1] that the rise into this point is a bloom."
    )

    model_config = ConfigDict(frozen=True)


class BloomAnalysis(BaseModel):
    """Outcome of spike detection over a vegetation-index series."""

    peak_bloom_date: Optional[str] = Field(default=None, alias="peakBloomDate")
    bloom_intensity: float = Field(default=0.0, alias="bloomIntensity")
    time_series: list[BloomPoint] = Field(default_factory=list, alias="timeSeries")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


__all__ = [
    "ObservationRecord",
    "SeriesPoint",
    "NdviPoint",
    "LandCoverEntry",
    "LocalInsights",
    "BloomPoint",
    "BloomAnalysis",
]
