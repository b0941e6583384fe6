from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from app.adapters.base import RecordStore, StoreError
from app.adapters.json_store import JsonFileRecordStore
from app.adapters.sql_store import SqlRecordStore

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sql").strip().lower()
DATA_FILE = Path(os.getenv("DATA_FILE", "data/data.json"))


def build_record_store(backend: str, data_file: Path = DATA_FILE) -> RecordStore:
    if backend == "sql":
        return SqlRecordStore()
    if backend == "json":
        return JsonFileRecordStore(data_file)
    raise StoreError(f"unsupported storage backend: {backend}")


@lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    return build_record_store(STORAGE_BACKEND)


def check_store_ready() -> bool:
    try:
        return get_record_store().check_ready()
    except StoreError:
        return False
