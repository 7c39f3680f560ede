"""Bloom spike detection over vegetation-index series."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from pipelines.model import BloomAnalysis, BloomPoint, NdviPoint

SPIKE_THRESHOLD = 0.1
MOVING_AVERAGE_WINDOW = 2


class InsufficientSeriesError(ValueError):
    """Raised when a series is shorter than the smoothing window."""


def coerce_ndvi_series(series: Iterable[NdviPoint | Mapping[str, Any]]) -> list[NdviPoint]:
    return [point if isinstance(point, NdviPoint) else NdviPoint(**point) for point in series]


def moving_average(
    series: Sequence[NdviPoint], window: int = MOVING_AVERAGE_WINDOW
) -> list[NdviPoint]:
    """Trailing mean of each ``window`` points, dated at the window's last point."""

    return [
        NdviPoint(
            date=series[i + window - 1].date,
            ndvi=sum(point.ndvi for point in series[i : i + window]) / window,
        )
        for i in range(len(series) - window + 1)
    ]


def find_peak_spike(
    smoothed: Sequence[NdviPoint], threshold: float = SPIKE_THRESHOLD
) -> tuple[str | None, float]:
    peak_date: str | None = None
    max_spike = 0.0
    for previous, current in zip(smoothed, smoothed[1:]):
        spike = current.ndvi - previous.ndvi
        if spike > threshold and spike > max_spike:
            max_spike = spike
            peak_date = current.date
    return peak_date, max_spike


def bloom_probabilities(
    series: Sequence[NdviPoint], threshold: float = SPIKE_THRESHOLD
) -> list[BloomPoint]:
    points = []
    for index, point in enumerate(series):
        probability = 0.0
        if index > 0:
            increase = point.ndvi - series[index - 1].ndvi
            if increase > 0:
                probability = min(increase / threshold, 1.0)
        points.append(BloomPoint(date=point.date, ndvi=point.ndvi, bloom_prob=probability))
    return points


def detect_bloom(ndvi_series: Iterable[NdviPoint | Mapping[str, Any]]) -> BloomAnalysis:
    """Smooth the series, locate the strongest rise above threshold and score it.

    Raises
    ------
    InsufficientSeriesError
        If the series has fewer points than the moving-average window.
    """

    series = coerce_ndvi_series(ndvi_series)
    if len(series) < MOVING_AVERAGE_WINDOW:
        raise InsufficientSeriesError("Insufficient NDVI data provided")

    smoothed = moving_average(series)
    peak_date, max_spike = find_peak_spike(smoothed)
    intensity = min(max_spike / (SPIKE_THRESHOLD * 2), 1.0)

    return BloomAnalysis(
        peak_bloom_date=peak_date,
        bloom_intensity=intensity,
        time_series=bloom_probabilities(series),
    )


def peak_ndvi(series: Sequence[NdviPoint]) -> tuple[str | None, float]:
    """Date and value of the first maximum NDVI sample, or ``(None, 0.0)``."""

    if not series:
        return None, 0.0
    best = series[0]
    for point in series[1:]:
        if point.ndvi > best.ndvi:
            best = point
    return best.date, best.ndvi


__all__ = [
    "SPIKE_THRESHOLD",
    "MOVING_AVERAGE_WINDOW",
    "InsufficientSeriesError",
    "moving_average",
    "find_peak_spike",
    "bloom_probabilities",
    "detect_bloom",
    "peak_ndvi",
]
