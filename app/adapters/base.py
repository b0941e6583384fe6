from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from app.domain.models import Collection, DraftRecord, DraftSummary, ReportRecord, ReportSummary

StoredRecord = DraftRecord | ReportRecord
RecordSummary = DraftSummary | ReportSummary

RECORD_MODELS: dict[Collection, type[DraftRecord] | type[ReportRecord]] = {
    Collection.DRAFTS: DraftRecord,
    Collection.REPORTS: ReportRecord,
}

SUMMARY_MODELS: dict[Collection, type[DraftSummary] | type[ReportSummary]] = {
    Collection.DRAFTS: DraftSummary,
    Collection.REPORTS: ReportSummary,
}

TIMESTAMP_FIELDS: dict[Collection, str] = {
    Collection.DRAFTS: "saved_at",
    Collection.REPORTS: "generated_at",
}


class StoreError(Exception):
    pass


class LocationError(Exception):
    pass


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float


class RecordStore(Protocol):
    def list_records(self, collection: Collection) -> list[StoredRecord]: ...

    def list_summaries(self, collection: Collection) -> list[RecordSummary]: ...

    def get_record(self, collection: Collection, record_id: int) -> StoredRecord | None: ...

    def upsert_record(self, collection: Collection, record: StoredRecord) -> None: ...

    def delete_record(self, collection: Collection, record_id: int) -> None: ...

    def check_ready(self) -> bool: ...


class LocationProvider(Protocol):
    async def current_position(self, *, high_accuracy: bool, timeout_seconds: float) -> Position: ...
