"""DuckDB persistence utilities for normalized observation records."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, Sequence

import duckdb

from pipelines.model import ObservationRecord

DB_ENV_VAR = "OBSERVATIONS_DB_PATH"
DEFAULT_DB_PATH = Path("data/observations.duckdb")
IN_MEMORY = ":memory:"

OBSERVATIONS_TABLE = "observations"

_COLUMNS = (
    "latitude",
    "longitude",
    "measured_at",
    "protocol",
    "country_name",
    "organization_name",
    "site_name",
    "source_file",
    "raw",
)


def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def get_database_path(override: str | os.PathLike[str] | None = None) -> str:
    """Resolve the DuckDB location from an explicit override or environment variable."""

    if override is not None:
        return str(override)
    env_value = os.getenv(DB_ENV_VAR)
    if env_value:
        return env_value
    return str(DEFAULT_DB_PATH)


def connect(
    path: str | os.PathLike[str] | None = None,
    *,
    read_only: bool = False,
    ensure: bool = True,
) -> duckdb.DuckDBPyConnection:
    """Create a DuckDB connection, optionally ensuring schema availability."""

    db_path = get_database_path(path)
    if db_path == IN_MEMORY:
        conn = duckdb.connect(IN_MEMORY)
    else:
        if not read_only:
            _ensure_parent_dir(Path(db_path))
        conn = duckdb.connect(db_path, read_only=read_only)
    if ensure and not read_only:
        ensure_observations_table(conn)
    return conn


def ensure_observations_table(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the canonical storage table if it does not already exist."""

    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {OBSERVATIONS_TABLE} (
            latitude DOUBLE NOT NULL,
            longitude DOUBLE NOT NULL,
            measured_at TEXT,
            protocol TEXT,
            country_name TEXT,
            organization_name TEXT,
            site_name TEXT,
            source_file TEXT NOT NULL,
            raw JSON
        )
        """
    )
    conn.execute(
        f"""
        CREATE INDEX IF NOT EXISTS idx_{OBSERVATIONS_TABLE}_source
        ON {OBSERVATIONS_TABLE} (source_file)
        """
    )


def _serialize_record(record: ObservationRecord) -> tuple:
    return (
        record.latitude,
        record.longitude,
        record.measured_at,
        record.protocol,
        record.country_name,
        record.organization_name,
        record.site_name,
        record.source_file,
        json.dumps(record.raw) if record.raw is not None else None,
    )


def insert_observations(
    conn: duckdb.DuckDBPyConnection, records: Iterable[ObservationRecord]
) -> int:
    """Append a batch of ``ObservationRecord`` rows.

    Returns
    -------
    int
        Number of records written to the database.
    """

    serialized = [_serialize_record(record) for record in records]
    if not serialized:
        return 0

    placeholders = ", ".join("?" for _ in _COLUMNS)
    conn.executemany(
        f"INSERT INTO {OBSERVATIONS_TABLE} ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
        serialized,
    )
    return len(serialized)


def replace_observations(
    conn: duckdb.DuckDBPyConnection, records: Iterable[ObservationRecord]
) -> int:
    """Swap the table contents for ``records`` inside a single transaction."""

    conn.execute("BEGIN TRANSACTION")
    try:
        conn.execute(f"DELETE FROM {OBSERVATIONS_TABLE}")
        written = insert_observations(conn, records)
    except duckdb.Error:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
    return written


def fetch_observations(
    conn: duckdb.DuckDBPyConnection,
    *,
    where: str | None = None,
    params: Sequence[object] | None = None,
    limit: int | None = None,
) -> list[ObservationRecord]:
    """Query stored rows and reconstruct ``ObservationRecord`` models."""

    sql = f"SELECT {', '.join(_COLUMNS)} FROM {OBSERVATIONS_TABLE}"
    if where:
        sql += f" WHERE {where}"
    if limit is not None:
        sql += f" LIMIT {limit}"
    cursor = conn.execute(sql, params or [])
    results: list[ObservationRecord] = []
    for row in cursor.fetchall():
        payload = row[8]
        results.append(
            ObservationRecord(
                latitude=row[0],
                longitude=row[1],
                measured_at=row[2],
                protocol=row[3],
                country_name=row[4],
                organization_name=row[5],
                site_name=row[6],
                source_file=row[7],
                raw=json.loads(payload) if isinstance(payload, str) else payload,
            )
        )
    return results


__all__ = [
    "connect",
    "ensure_observations_table",
    "insert_observations",
    "replace_observations",
    "fetch_observations",
    "OBSERVATIONS_TABLE",
    "IN_MEMORY",
    "get_database_path",
]
