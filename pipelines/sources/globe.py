"""GLOBE Observer measurement ingestor.

Downloads protocol measurements from the GLOBE search API and stores the rows
as JSON files the record store can read.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Mapping

from httpx import HTTPStatusError

from pipelines.common import fetch_json
from pipelines.proximity import SearchPolicy
from pipelines.sources.local_files import extract_rows

GLOBE_BASE_URL = "https://api.globe.gov/search/v1/measurement/protocol/measureddate/"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobeProtocolConfig:
    """Metadata describing one GLOBE protocol and where its rows are stored."""

    key: str
    protocol: str
    file_stem: str
    policy: SearchPolicy

    def __post_init__(self) -> None:
        # Rows written under file_stem must be found by the policy's search
        if not self.policy.regex.search(self.file_name):
            raise ValueError(
                f"{self.file_name} does not match the {self.policy.category} pattern "
                f"{self.policy.pattern!r}."
            )

    @property
    def file_name(self) -> str:
        return f"{self.file_stem}.json"


def _resolve_base_url(base_url: str | None) -> str:
    return base_url or os.getenv("GLOBE_API_URL") or GLOBE_BASE_URL


def _write_rows(path: Path, rows: list[Mapping[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as handle:
        json.dump({"results": rows}, handle)
    tmp_path.replace(path)


async def fetch_globe_protocol(
    config: GlobeProtocolConfig,
    *,
    data_dir: Path,
    start_date: date,
    end_date: date,
    base_url: str | None = None,
    params: Mapping[str, Any] | None = None,
) -> int:
    """Fetch one protocol's measurements into ``<data_dir>/<file_stem>.json``.

    Returns the number of rows written; 0 when the request fails or returns nothing.
    """

    request_params: dict[str, Any] = {
        "protocols": config.protocol,
        "startdate": start_date.isoformat(),
        "enddate": end_date.isoformat(),
        "geojson": "FALSE",
        "sample": "FALSE",
    }
    if params:
        request_params.update(params)

    try:
        payload = await fetch_json(_resolve_base_url(base_url), params=request_params)
    except HTTPStatusError as exc:
        status = exc.response.status_code if exc.response is not None else "?"
        logger.warning(
            "GLOBE request failed for protocol %s (%s to %s) status=%s. Skipping.",
            config.protocol,
            start_date,
            end_date,
            status,
        )
        return 0

    rows = extract_rows(payload)
    if not rows:
        logger.info("GLOBE returned no %s rows for %s to %s.", config.protocol, start_date, end_date)
        return 0

    destination = data_dir / config.file_name
    _write_rows(destination, rows)
    logger.info("Wrote %s %s rows to %s.", len(rows), config.protocol, destination)
    return len(rows)


__all__ = ["GlobeProtocolConfig", "fetch_globe_protocol", "GLOBE_BASE_URL"]
