from __future__ import annotations

import logging
from typing import TypeVar, cast

from app.adapters.base import RecordStore, RecordSummary, StoredRecord, StoreError
from app.domain.models import Collection, DraftRecord, DraftSummary, ReportRecord, ReportSummary, now_utc
from app.infra.storage import get_record_store

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", DraftRecord, ReportRecord)

_LABELS: dict[Collection, str] = {
    Collection.DRAFTS: "draft",
    Collection.REPORTS: "report",
}


class RecordError(Exception):
    pass


class MissingIdentifierError(RecordError):
    pass


class NotFoundError(RecordError):
    pass


class StoreFailureError(RecordError):
    pass


class RecordService:
    """Sync gateway operations over the draft and report collections.

    Writes are plain upserts keyed by id: there is no version column and no
    transaction spanning records, so the last write for an id wins.
    """

    def __init__(self, store: RecordStore | None = None) -> None:
        self._store = store or get_record_store()

    def _list(self, collection: Collection) -> list[RecordSummary]:
        try:
            return self._store.list_summaries(collection)
        except StoreError as exc:
            logger.error("Error loading %s from store: %s", collection.value, exc)
            raise StoreFailureError(f"Failed to load {collection.value}") from exc

    def _get(self, collection: Collection, record_id: int) -> StoredRecord:
        label = _LABELS[collection]
        try:
            record = self._store.get_record(collection, record_id)
        except StoreError as exc:
            logger.error("Error loading %s %s from store: %s", label, record_id, exc)
            raise StoreFailureError(f"Failed to load {label}") from exc
        if record is None:
            raise NotFoundError(f"{label} not found")
        return record

    def _upsert(self, collection: Collection, record: RecordT) -> RecordT:
        label = _LABELS[collection]
        if record.id is None:
            raise MissingIdentifierError(f"{label.capitalize()} must include an id")
        try:
            self._store.upsert_record(collection, record)
        except StoreError as exc:
            logger.error("Error saving %s %s to store: %s", label, record.id, exc)
            raise StoreFailureError(f"Failed to save {label}") from exc
        logger.info("Saved %s %s (report number %r)", label, record.id, record.report_number)
        return record

    def _delete(self, collection: Collection, record_id: int) -> None:
        label = _LABELS[collection]
        try:
            self._store.delete_record(collection, record_id)
        except StoreError as exc:
            logger.error("Error deleting %s %s from store: %s", label, record_id, exc)
            raise StoreFailureError(f"Failed to delete {label}") from exc
        logger.info("Deleted %s %s", label, record_id)

    def list_drafts(self) -> list[DraftSummary]:
        """Drafts newest first, without photo payloads."""
        return [item for item in self._list(Collection.DRAFTS) if isinstance(item, DraftSummary)]

    def list_reports(self) -> list[ReportSummary]:
        return [item for item in self._list(Collection.REPORTS) if isinstance(item, ReportSummary)]

    def get_draft(self, draft_id: int) -> DraftRecord:
        return cast(DraftRecord, self._get(Collection.DRAFTS, draft_id))

    def get_report(self, report_id: int) -> ReportRecord:
        return cast(ReportRecord, self._get(Collection.REPORTS, report_id))

    def upsert_draft(self, draft: DraftRecord) -> DraftRecord:
        if draft.saved_at is None:
            draft = draft.model_copy(update={"saved_at": now_utc()})
        return self._upsert(Collection.DRAFTS, draft)

    def upsert_report(self, report: ReportRecord) -> ReportRecord:
        if report.generated_at is None:
            report = report.model_copy(update={"generated_at": now_utc()})
        return self._upsert(Collection.REPORTS, report)

    def delete_draft(self, draft_id: int) -> None:
        self._delete(Collection.DRAFTS, draft_id)

    def delete_report(self, report_id: int) -> None:
        self._delete(Collection.REPORTS, report_id)
