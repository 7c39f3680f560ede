import pytest

from pipelines.model import ObservationRecord

# Query point used throughout the suite (Boulder, CO)
QUERY_LNG = -105.27
QUERY_LAT = 40.01


def make_record(
    source_file: str,
    *,
    lat: float = QUERY_LAT,
    lng: float = QUERY_LNG,
    raw: dict | None = None,
    **descriptors,
) -> ObservationRecord:
    return ObservationRecord(
        latitude=lat,
        longitude=lng,
        source_file=source_file,
        raw=raw or {},
        **descriptors,
    )


@pytest.fixture()
def records() -> list[ObservationRecord]:
    return [
        make_record(
            "globe_airtemps.json",
            raw={"data": {"airtempsMeasuredAt": "2024-05-01T10:15:00Z", "airtempsCurrentTemp": 10}},
            site_name="Boulder Creek",
            country_name="United States",
        ),
        make_record(
            "globe_airtemps.json",
            raw={"data": {"airtempsMeasuredAt": "2024-05-01T10:45:00Z", "airtempsCurrentTemp": 20}},
            site_name="Boulder Creek",
            country_name="United States",
        ),
        make_record(
            "globe_airtemps.json",
            raw={"data": {"airtempsMeasuredAt": "2024-05-01T11:05:00Z", "airtempsCurrentTemp": 25}},
            site_name="Boulder Creek",
            country_name="United States",
        ),
        make_record(
            "globe_landcovers.json",
            raw={"data": {"landCoverClass": "Deciduous Forest"}},
            site_name="Chautauqua Meadow",
            country_name="United States",
        ),
        make_record(
            "globe_landcovers.json",
            raw={"data": {"landCoverClass": "evergreen trees"}},
            site_name="Flagstaff Trail",
            country_name="United States",
        ),
        make_record(
            "globe_landcovers.json",
            raw={"data": {"lc_code": 82}},
            site_name="Longmont Fields",
            country_name="United States",
        ),
    ]
