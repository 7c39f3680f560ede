import asyncio
import json
from datetime import date

import httpx
import pytest

import pipelines.sources.globe as globe
from jobs.__main__ import main as cli_main
from jobs.config import get_protocol_by_key, iter_protocols
from jobs.load_all import load_all_async, resolve_date_range
from jobs.snapshot import snapshot_records
from pipelines.proximity import CLOUD_POLICY
from pipelines.sources.globe import GlobeProtocolConfig
from storage.db import connect, fetch_observations
from storage.exports import export_to_csv
from storage.records import RecordStore

AIR_TEMPS = get_protocol_by_key("air_temperature")


def test_iter_protocols_filters_unknown_keys():
    assert [p.key for p in iter_protocols(["winds", "nope"])] == ["winds"]
    assert len(tuple(iter_protocols())) == 4


def test_protocol_files_are_found_by_their_search_policy():
    for protocol in iter_protocols():
        assert protocol.policy.regex.search(protocol.file_name)


def test_protocol_config_rejects_file_stem_outside_its_category():
    with pytest.raises(ValueError):
        GlobeProtocolConfig(key="clouds", protocol="clouds", file_stem="globe_sky", policy=CLOUD_POLICY)


def test_fetch_globe_protocol_writes_results(monkeypatch, tmp_path):
    captured = {}

    async def fake_fetch_json(url, *, params=None, **kwargs):
        captured["url"] = url
        captured["params"] = params
        return {"count": 1, "results": [{"latitude": 1.0, "longitude": 2.0, "protocol": "air_temps"}]}

    monkeypatch.setattr(globe, "fetch_json", fake_fetch_json)

    written = asyncio.run(
        globe.fetch_globe_protocol(
            AIR_TEMPS, data_dir=tmp_path, start_date=date(2024, 5, 1), end_date=date(2024, 5, 31)
        )
    )

    assert written == 1
    assert captured["url"] == globe.GLOBE_BASE_URL
    assert captured["params"]["protocols"] == "air_temps"
    assert captured["params"]["startdate"] == "2024-05-01"
    stored = json.loads((tmp_path / "globe_airtemps.json").read_text())
    assert stored["results"][0]["protocol"] == "air_temps"
    assert RecordStore(tmp_path).load_all()[0].source_file == "globe_airtemps.json"


def test_fetch_globe_protocol_skips_http_errors(monkeypatch, tmp_path):
    async def failing_fetch_json(url, **kwargs):
        request = httpx.Request("GET", url)
        response = httpx.Response(503, request=request)
        raise httpx.HTTPStatusError("unavailable", request=request, response=response)

    monkeypatch.setattr(globe, "fetch_json", failing_fetch_json)

    written = asyncio.run(
        globe.fetch_globe_protocol(
            AIR_TEMPS, data_dir=tmp_path, start_date=date(2024, 5, 1), end_date=date(2024, 5, 2)
        )
    )

    assert written == 0
    assert not (tmp_path / "globe_airtemps.json").exists()


def test_load_all_sums_rows(monkeypatch, tmp_path):
    async def fake_fetch_json(url, *, params=None, **kwargs):
        if params["protocols"] == "clouds":
            return {"results": []}
        return [{"lat": 0.0, "lon": 0.0}, {"lat": 1.0, "lon": 1.0}]

    monkeypatch.setattr(globe, "fetch_json", fake_fetch_json)

    total = asyncio.run(
        load_all_async(
            iter_protocols(["air_temperature", "clouds", "winds"]),
            data_dir=tmp_path,
            start="2024-05-01",
            end="2024-05-02",
        )
    )

    assert total == 4
    assert sorted(p.name for p in tmp_path.iterdir()) == ["globe_airtemps.json", "globe_winds.json"]


def test_resolve_date_range(monkeypatch):
    monkeypatch.setenv("GLOBE_START_DATE", "2024-01-01")
    monkeypatch.setenv("GLOBE_END_DATE", "2024-01-31")

    assert resolve_date_range() == (date(2024, 1, 1), date(2024, 1, 31))
    assert resolve_date_range("2024-01-10") == (date(2024, 1, 10), date(2024, 1, 31))
    with pytest.raises(ValueError):
        resolve_date_range("2024-02-10")
    with pytest.raises(ValueError):
        resolve_date_range("01/02/2024")


def test_snapshot_round_trip(records, tmp_path):
    db_path = tmp_path / "observations.duckdb"

    assert snapshot_records(RecordStore.from_records(records), db_path) == 6
    # A second snapshot replaces rather than appends
    assert snapshot_records(RecordStore.from_records(records[:2]), db_path) == 2

    conn = connect(db_path, read_only=True)
    try:
        stored = fetch_observations(conn)
        export_to_csv(conn, tmp_path / "out" / "observations.csv")
    finally:
        conn.close()

    assert len(stored) == 2
    assert stored[0].raw == records[0].raw
    assert stored[0].site_name == "Boulder Creek"
    assert "Boulder Creek" in (tmp_path / "out" / "observations.csv").read_text()


def test_cli_list_sources(capsys):
    assert cli_main(["list-sources"]) == 0

    out = capsys.readouterr().out
    assert "air_temperature: protocol=air_temps file=globe_airtemps.json" in out


def test_cli_insights_prints_fallback_json(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("LOCAL_DATA_DIR", str(tmp_path))

    code = cli_main(
        ["insights", "--lng", "0", "--lat", "45", "--start", "2024-01-01", "--end", "2024-01-15"]
    )

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert len(payload["ndviSeries"]) == 3
    assert set(payload["provenance"].values()) == {"fallback"}


def test_cli_rejects_unknown_protocols():
    with pytest.raises(SystemExit):
        cli_main(["fetch-sources", "--protocols", "volcanoes"])
