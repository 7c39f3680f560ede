"""Process-wide cache of observation records loaded from the data directory."""

from __future__ import annotations

import logging
import os
import threading
from functools import lru_cache
from pathlib import Path
from typing import Iterable

from pipelines.model import ObservationRecord
from pipelines.sources.local_files import iter_source_files, load_records

DATA_DIR_ENV_VAR = "LOCAL_DATA_DIR"
DEFAULT_DATA_DIR = Path("data/jsondata")

logger = logging.getLogger(__name__)


def get_data_dir(override: str | os.PathLike[str] | None = None) -> Path:
    """Resolve the source directory from an explicit override or environment variable."""

    if override is not None:
        return Path(override)
    env_value = os.getenv(DATA_DIR_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_DATA_DIR


class RecordStore:
    """Lazily loads the record set once and serves the same immutable tuple afterwards.

    The first load runs under a lock so concurrent first callers trigger exactly one
    read of the data directory; later calls return the cached tuple without locking.
    """

    def __init__(self, data_dir: str | os.PathLike[str] | None = None) -> None:
        self.data_dir = get_data_dir(data_dir)
        self._lock = threading.Lock()
        self._records: tuple[ObservationRecord, ...] | None = None

    @classmethod
    def from_records(cls, records: Iterable[ObservationRecord]) -> "RecordStore":
        store = cls()
        store._records = tuple(records)
        return store

    @property
    def loaded(self) -> bool:
        return self._records is not None

    def load_all(self) -> tuple[ObservationRecord, ...]:
        records = self._records
        if records is not None:
            return records
        with self._lock:
            if self._records is None:
                self._records = self._load()
            return self._records

    def _load(self) -> tuple[ObservationRecord, ...]:
        logger.info("Loading observation records from %s...", self.data_dir)
        records = tuple(load_records(iter_source_files(self.data_dir)))
        logger.info("Record store ready (records=%s).", len(records))
        return records


@lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    """Shared store for the process; override this dependency to inject fixtures."""

    return RecordStore()


__all__ = ["RecordStore", "get_record_store", "get_data_dir", "DATA_DIR_ENV_VAR"]
