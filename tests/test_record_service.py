from __future__ import annotations

from pathlib import Path

import pytest

from app.adapters.base import StoredRecord, StoreError
from app.adapters.json_store import JsonFileRecordStore
from app.domain.models import Collection, DraftRecord, ReportRecord
from app.services.record_service import MissingIdentifierError, NotFoundError, RecordService, StoreFailureError


class _FailingStore(JsonFileRecordStore):
    def upsert_record(self, collection: Collection, record: StoredRecord) -> None:
        raise StoreError("write refused")

    def delete_record(self, collection: Collection, record_id: int) -> None:
        raise StoreError("write refused")


def test_upsert_stamps_timestamp_only_when_missing(tmp_path: Path) -> None:
    service = RecordService(JsonFileRecordStore(tmp_path / "data.json"))

    stamped = service.upsert_report(ReportRecord(id=1))
    assert stamped.generated_at is not None
    assert stamped.generated_at.tzinfo is not None

    kept = service.upsert_report(ReportRecord(id=2, generated_at=stamped.generated_at))
    assert kept.generated_at == stamped.generated_at


def test_missing_id_and_missing_record(tmp_path: Path) -> None:
    service = RecordService(JsonFileRecordStore(tmp_path / "data.json"))

    with pytest.raises(MissingIdentifierError, match="Draft must include an id"):
        service.upsert_draft(DraftRecord())
    with pytest.raises(NotFoundError):
        service.get_draft(1)


def test_store_failures_carry_client_messages(tmp_path: Path, caplog) -> None:
    service = RecordService(_FailingStore(tmp_path / "data.json"))

    with pytest.raises(StoreFailureError, match="Failed to save draft"):
        service.upsert_draft(DraftRecord(id=1))
    with pytest.raises(StoreFailureError, match="Failed to delete report"):
        service.delete_report(1)
    assert any("write refused" in record.getMessage() for record in caplog.records)
