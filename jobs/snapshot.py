"""Persist the loaded record set into DuckDB for offline analysis."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from storage.db import connect, replace_observations
from storage.records import RecordStore

load_dotenv()

logger = logging.getLogger(__name__)


def snapshot_records(
    store: RecordStore | None = None, db_path: str | os.PathLike[str] | None = None
) -> int:
    records = (store or RecordStore()).load_all()
    conn = connect(db_path)
    try:
        written = replace_observations(conn, records)
    finally:
        conn.close()
    logger.info("Snapshot wrote %s records.", written)
    return written


def main(db_path: str | None = None) -> int:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    written = snapshot_records(db_path=db_path)
    if not written:
        logger.warning("Record store was empty; snapshot table is now empty too.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
