import pytest
from pydantic import ValidationError

from api.main import BloomDetectRequest, LocalInsightsRequest
from pipelines.model import BloomAnalysis, LocalInsights, NdviPoint, ObservationRecord


def test_observation_record_serialization_roundtrip():
    payload = {
        "latitude": 40.01,
        "longitude": -105.27,
        "measuredAt": "2024-05-01T10:15:00Z",
        "protocol": "air_temps",
        "countryName": "United States",
        "sourceFile": "globe_airtemps.json",
        "raw": {"data": {"airtempsCurrentTemp": 12.5}},
    }

    record = ObservationRecord(**payload)

    assert record.latitude == pytest.approx(40.01)
    assert record.measured_at == "2024-05-01T10:15:00Z"
    assert record.country_name == "United States"

    serialized = record.model_dump(by_alias=True)
    assert serialized["sourceFile"] == "globe_airtemps.json"
    assert isinstance(serialized["raw"], dict)


def test_observation_record_requires_numeric_coordinates():
    with pytest.raises(ValueError):
        ObservationRecord(latitude="north", longitude=-105.27, source_file="globe_airtemps.json")


def test_observation_record_is_immutable():
    record = ObservationRecord(latitude=1.0, longitude=2.0, source_file="a.json")

    with pytest.raises(ValidationError):
        record.latitude = 3.0


def test_local_insights_dump_uses_camel_case_keys():
    insights = LocalInsights(ndvi_series=[NdviPoint(date="2024-01-01T00:00:00.000Z", ndvi=0.4)])

    dumped = insights.model_dump(by_alias=True)

    assert set(dumped) == {"ndviSeries", "cloudSeries", "windSeries", "landCoverSummary"}
    assert dumped["ndviSeries"][0]["ndvi"] == pytest.approx(0.4)


def test_bloom_analysis_defaults():
    analysis = BloomAnalysis()

    dumped = analysis.model_dump(by_alias=True)
    assert dumped == {"peakBloomDate": None, "bloomIntensity": 0.0, "timeSeries": []}


@pytest.mark.parametrize("model", [ObservationRecord, LocalInsights, BloomAnalysis])
def test_response_models_are_frozen_and_accept_field_names(model):
    assert model.model_config["frozen"] is True
    assert model.model_config["populate_by_name"] is True


def test_request_models_accept_field_names_and_aliases():
    by_name = LocalInsightsRequest(lng=1.0, lat=2.0, start_date="2024-01-01")
    by_alias = LocalInsightsRequest(lng=1.0, lat=2.0, startDate="2024-01-01")

    assert by_name == by_alias
    assert BloomDetectRequest(ndvi_series=[]).ndvi_series == []
