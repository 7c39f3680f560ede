"""End-to-end job that downloads every configured protocol into the data directory."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable

from dotenv import load_dotenv

from jobs.config import TARGET_PROTOCOLS, iter_protocols
from pipelines.sources.globe import GlobeProtocolConfig, fetch_globe_protocol
from storage.records import get_data_dir

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 30


def _parse_date(raw: str, name: str) -> date:
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must use the format YYYY-MM-DD, got {raw!r}.") from exc


def resolve_date_range(
    start: str | None = None, end: str | None = None
) -> tuple[date, date]:
    """Explicit bounds, else ``GLOBE_START_DATE``/``GLOBE_END_DATE``, else the last 30 days."""

    raw_end = end or os.getenv("GLOBE_END_DATE")
    raw_start = start or os.getenv("GLOBE_START_DATE")
    end_date = (
        _parse_date(raw_end, "end date") if raw_end else datetime.now(timezone.utc).date()
    )
    start_date = (
        _parse_date(raw_start, "start date")
        if raw_start
        else end_date - timedelta(days=DEFAULT_LOOKBACK_DAYS)
    )
    if start_date > end_date:
        raise ValueError(f"start date {start_date} is after end date {end_date}.")
    return start_date, end_date


def _resolve_protocols() -> tuple[GlobeProtocolConfig, ...]:
    requested = os.getenv("LOAD_PROTOCOLS")
    if requested:
        keys = [key.strip() for key in requested.split(",") if key.strip()]
        selected = tuple(iter_protocols(keys))
        if selected:
            return selected
        logger.warning(
            "LOAD_PROTOCOLS=%s did not match any configured protocols; falling back to defaults.",
            requested,
        )

    return TARGET_PROTOCOLS


async def load_all_async(
    protocols: Iterable[GlobeProtocolConfig] | None = None,
    *,
    data_dir: Path | None = None,
    start: str | None = None,
    end: str | None = None,
) -> int:
    """Fetch all configured protocols and write them where the record store reads."""

    protocols = tuple(protocols) if protocols is not None else _resolve_protocols()
    target_dir = data_dir or get_data_dir()
    start_date, end_date = resolve_date_range(start, end)
    total_written = 0
    for protocol in protocols:
        logger.info(
            "Fetching %s (%s) for %s to %s...", protocol.key, protocol.protocol, start_date, end_date
        )
        written = await fetch_globe_protocol(
            protocol, data_dir=target_dir, start_date=start_date, end_date=end_date
        )
        if not written:
            logger.warning("No rows fetched for %s; existing file left untouched.", protocol.key)
            continue
        total_written += written
    return total_written


def main(
    protocols: Iterable[GlobeProtocolConfig] | None = None,
    *,
    start: str | None = None,
    end: str | None = None,
) -> int:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    written = asyncio.run(load_all_async(protocols, start=start, end=end))
    logger.info("Load-all job finished (rows written=%s).", written)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
