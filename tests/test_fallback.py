import math
from datetime import datetime, timezone

import pytest

from pipelines.fallback import (
    FALLBACK_LAND_COVER,
    generate_fallback_insights,
    iter_dates,
    pseudo_random,
    seed_for,
)


def test_seed_formula():
    assert seed_for(-105.27, 40.01) == 130084
    assert seed_for(-180.0, -90.0) == 0


def test_generator_is_reproducible_and_bounded():
    first = pseudo_random(12345)
    second = pseudo_random(12345)

    draws = [first() for _ in range(100)]
    assert draws == [second() for _ in range(100)]
    assert all(0 <= value < 1 for value in draws)
    assert draws[0] == pytest.approx(12345 * 16807 / 2147483647)


def test_zero_seed_is_shifted_into_range():
    assert pseudo_random(0)() == pytest.approx((2147483646 * 16807 % 2147483647) / 2147483647)


def test_weekly_dates_are_truncated_to_utc_day():
    start = datetime(2024, 1, 1, 15, 30, tzinfo=timezone.utc)
    end = datetime(2024, 1, 29, tzinfo=timezone.utc)

    dates = list(iter_dates(start, end))

    assert [d.day for d in dates] == [1, 8, 15, 22, 29]
    assert all(d.hour == 0 for d in dates)


def test_fallback_is_deterministic():
    args = (-105.27, 40.01, "2024-01-01", "2024-12-31")

    first = generate_fallback_insights(*args)
    second = generate_fallback_insights(*args)

    assert first.model_dump_json() == second.model_dump_json()


def test_fallback_shape_and_ranges():
    insights = generate_fallback_insights(10.0, -45.0, "2024-01-01", "2024-03-01")

    assert len(insights.ndvi_series) == 9
    assert insights.ndvi_series[0].date == "2024-01-01T00:00:00.000Z"
    assert [p.date for p in insights.cloud_series] == [p.date for p in insights.ndvi_series]
    assert [p.date for p in insights.wind_series] == [p.date for p in insights.ndvi_series]
    for series in (
        [p.ndvi for p in insights.ndvi_series],
        [p.value for p in insights.cloud_series],
        [p.value for p in insights.wind_series],
    ):
        assert all(0.0 <= value <= 1.0 for value in series)
    assert [(e.label, e.count) for e in insights.land_cover_summary] == list(FALLBACK_LAND_COVER)


def test_fallback_values_follow_the_seasonal_model():
    insights = generate_fallback_insights(-105.27, 40.01, "2024-01-01", "2024-01-15")

    # One stream: every NDVI draw, then every cloud draw, then every wind draw
    rand = pseudo_random(130084)
    draws = [rand() for _ in range(9)]
    assert draws[0] == pytest.approx(130084 * 16807 % 2147483647 / 2147483647)

    amp = (40.01 - 10) / 50
    expected_ndvi = [
        0.3 + 0.5 * amp * math.sin((doy - 172) / 365 * 2 * math.pi) + (draw - 0.5) * 0.05
        for doy, draw in zip((1, 8, 15), draws[:3])
    ]
    cloud_base = 0.45 + 0.15 * ((40.01 - 35) / 25)
    wind_base = 0.35 + 0.1 * ((40.01 - 30) / 40)

    assert [p.ndvi for p in insights.ndvi_series] == pytest.approx(expected_ndvi)
    assert [p.value for p in insights.cloud_series] == pytest.approx(
        [cloud_base + (draw - 0.5) * 0.1 for draw in draws[3:6]]
    )
    assert [p.value for p in insights.wind_series] == pytest.approx(
        [wind_base + (draw - 0.5) * 0.1 for draw in draws[6:9]]
    )


def test_equatorial_ndvi_stays_near_baseline():
    insights = generate_fallback_insights(0.0, 0.0, "2024-01-01", "2024-12-31")

    # No seasonality below 10 degrees; only +/-0.025 jitter around 0.3
    assert all(abs(p.ndvi - 0.3) <= 0.025 for p in insights.ndvi_series)


def test_hemispheres_peak_in_opposite_seasons():
    north = generate_fallback_insights(0.0, 60.0, "2024-01-01", "2024-12-31").ndvi_series
    south = generate_fallback_insights(0.0, -60.0, "2024-01-01", "2024-12-31").ndvi_series

    north_peak = max(north, key=lambda p: p.ndvi).date
    south_peak = max(south, key=lambda p: p.ndvi).date

    assert north_peak[5:7] in {"08", "09", "10"}
    assert south_peak[5:7] in {"02", "03", "04"}


def test_inverted_range_still_yields_one_point():
    insights = generate_fallback_insights(0.0, 0.0, "2024-02-01", "2024-01-01")

    assert len(insights.ndvi_series) == 1
    assert insights.ndvi_series[0].date == "2024-02-01T00:00:00.000Z"


def test_invalid_date_is_rejected():
    with pytest.raises(ValueError):
        generate_fallback_insights(0.0, 0.0, "yesterday")
