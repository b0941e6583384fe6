from __future__ import annotations

from typing import Any

import sqlalchemy as sa
from sqlalchemy import nulls_last
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from app.adapters.base import RECORD_MODELS, SUMMARY_MODELS, RecordSummary, StoredRecord, StoreError
from app.domain.models import TEXT_FIELDS, Collection, DraftRow, ReportRow
from app.infra.db import check_db_ready, get_engine

ROW_MODELS: dict[Collection, type[DraftRow] | type[ReportRow]] = {
    Collection.DRAFTS: DraftRow,
    Collection.REPORTS: ReportRow,
}


def record_to_row(collection: Collection, record: StoredRecord) -> DraftRow | ReportRow:
    values: dict[str, Any] = record.model_dump()
    for name in TEXT_FIELDS:
        values[name] = values.get(name) or None
    return ROW_MODELS[collection](**values)


def row_to_record(collection: Collection, row: DraftRow | ReportRow) -> StoredRecord:
    return RECORD_MODELS[collection].model_validate(row.model_dump())


class SqlRecordStore:
    """Relational variant: ``drafts`` and ``reports`` tables with snake_case columns."""

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def _order_column(self, collection: Collection) -> Any:
        if collection == Collection.DRAFTS:
            return nulls_last(col(DraftRow.saved_at).desc())
        return nulls_last(col(ReportRow.generated_at).desc())

    def list_records(self, collection: Collection) -> list[StoredRecord]:
        row_model = ROW_MODELS[collection]
        try:
            with self._session() as session:
                rows = session.exec(select(row_model).order_by(self._order_column(collection))).all()
                return [row_to_record(collection, row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to list {collection}") from exc

    def list_summaries(self, collection: Collection) -> list[RecordSummary]:
        table = ROW_MODELS[collection].__table__
        columns = [column for column in table.columns if column.name != "photos"]
        photo_count = sa.func.coalesce(sa.func.json_array_length(table.c.photos), 0).label("photo_count")
        statement = sa.select(*columns, photo_count).order_by(self._order_column(collection))
        try:
            with self._session() as session:
                rows = session.execute(statement).mappings().all()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to list {collection}") from exc
        return [SUMMARY_MODELS[collection].model_validate(dict(row)) for row in rows]

    def get_record(self, collection: Collection, record_id: int) -> StoredRecord | None:
        try:
            with self._session() as session:
                row = session.get(ROW_MODELS[collection], record_id)
                return row_to_record(collection, row) if row is not None else None
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to load {collection} record {record_id}") from exc

    def upsert_record(self, collection: Collection, record: StoredRecord) -> None:
        if record.id is None:
            raise StoreError("record id is required")
        row = record_to_row(collection, record)
        try:
            with self._session() as session:
                session.merge(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to upsert {collection} record {record.id}") from exc

    def delete_record(self, collection: Collection, record_id: int) -> None:
        try:
            with self._session() as session:
                row = session.get(ROW_MODELS[collection], record_id)
                if row is None:
                    return
                session.delete(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to delete {collection} record {record_id}") from exc

    def check_ready(self) -> bool:
        return check_db_ready()
