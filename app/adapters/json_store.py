from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from app.adapters.base import (
    RECORD_MODELS,
    SUMMARY_MODELS,
    TIMESTAMP_FIELDS,
    RecordSummary,
    StoredRecord,
    StoreError,
)
from app.domain.models import Collection

logger = logging.getLogger(__name__)


def _empty_document() -> dict[str, list[dict[str, Any]]]:
    return {collection.value: [] for collection in Collection}


class JsonFileRecordStore:
    """Flat-file variant: one JSON document holding a ``drafts`` and a ``reports`` array."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, list[dict[str, Any]]]:
        if not self._path.exists():
            return _empty_document()
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"cannot read data file {self._path}") from exc
        if not raw.strip():
            return _empty_document()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreError(f"data file {self._path} is not valid JSON") from exc
        if not isinstance(data, dict):
            raise StoreError(f"data file {self._path} must hold a JSON object")
        document = _empty_document()
        for collection in Collection:
            items = data.get(collection.value) or []
            if not isinstance(items, list):
                raise StoreError(f"'{collection.value}' in {self._path} must be an array")
            document[collection.value] = [item for item in items if isinstance(item, dict)]
        return document

    def _write(self, document: dict[str, list[dict[str, Any]]]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            staging = self._path.with_name(f"{self._path.name}.tmp")
            staging.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(staging, self._path)
        except OSError as exc:
            raise StoreError(f"cannot write data file {self._path}") from exc

    def _parse(self, collection: Collection, item: dict[str, Any]) -> StoredRecord:
        try:
            return RECORD_MODELS[collection].model_validate(item)
        except ValidationError as exc:
            raise StoreError(f"malformed {collection} entry with id {item.get('id')!r}") from exc

    def _parse_rows(self, collection: Collection, items: list[dict[str, Any]], model: Any) -> list[Any]:
        records: list[Any] = []
        for item in items:
            try:
                records.append(model.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed %s entry with id %r: %s", collection.value, item.get("id"), exc)
        timestamp_field = TIMESTAMP_FIELDS[collection]

        def _sort_key(record: StoredRecord) -> float:
            value = getattr(record, timestamp_field)
            return value.timestamp() if value is not None else float("-inf")

        return sorted(records, key=_sort_key, reverse=True)

    def list_records(self, collection: Collection) -> list[StoredRecord]:
        with self._lock:
            items = self._read()[collection.value]
        return self._parse_rows(collection, items, RECORD_MODELS[collection])

    def list_summaries(self, collection: Collection) -> list[RecordSummary]:
        with self._lock:
            items = self._read()[collection.value]
        projected = []
        for item in items:
            photos = item.get("photos")
            summary = {key: value for key, value in item.items() if key != "photos"}
            summary["photoCount"] = len(photos) if isinstance(photos, list) else 0
            projected.append(summary)
        return self._parse_rows(collection, projected, SUMMARY_MODELS[collection])

    def get_record(self, collection: Collection, record_id: int) -> StoredRecord | None:
        with self._lock:
            items = self._read()[collection.value]
        for item in items:
            if item.get("id") == record_id:
                return self._parse(collection, item)
        return None

    def upsert_record(self, collection: Collection, record: StoredRecord) -> None:
        if record.id is None:
            raise StoreError("record id is required")
        payload = record.model_dump(mode="json", by_alias=True)
        with self._lock:
            document = self._read()
            items = document[collection.value]
            for index, item in enumerate(items):
                if item.get("id") == record.id:
                    items[index] = payload
                    break
            else:
                items.append(payload)
            self._write(document)

    def delete_record(self, collection: Collection, record_id: int) -> None:
        with self._lock:
            document = self._read()
            items = document[collection.value]
            remaining = [item for item in items if item.get("id") != record_id]
            if len(remaining) == len(items):
                return
            document[collection.value] = remaining
            self._write(document)

    def check_ready(self) -> bool:
        try:
            with self._lock:
                self._read()
        except StoreError:
            return False
        return True
