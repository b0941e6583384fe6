from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy import event
from sqlmodel import SQLModel, create_engine

from app.adapters.sql_store import SqlRecordStore
from app.domain.models import Collection, DraftRecord, ReportRecord
from app.infra import db

PHOTO = {"id": "p1", "data": "data:image/png;base64,AA==", "gps": "Lat: 6.500000, Long: 3.300000"}


@pytest.fixture()
def sql_store(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> SqlRecordStore:
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'store_test.db'}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(test_engine)
    monkeypatch.setattr(db, "engine", test_engine)
    return SqlRecordStore()


def test_summaries_count_photos_in_the_query(sql_store: SqlRecordStore) -> None:
    sql_store.upsert_record(
        Collection.DRAFTS,
        DraftRecord.model_validate(
            {"id": 1, "reportNumber": "N-1", "photos": [PHOTO, PHOTO], "savedAt": "2026-10-02T08:00:00+00:00"}
        ),
    )
    sql_store.upsert_record(Collection.DRAFTS, DraftRecord(id=2, saved_at=datetime(2026, 10, 3, tzinfo=UTC)))
    sql_store.upsert_record(Collection.DRAFTS, DraftRecord(id=3))

    statements: list[str] = []

    def _capture(conn, cursor, statement, parameters, context, executemany) -> None:  # type: ignore[no-untyped-def]
        statements.append(statement)

    event.listen(db.engine, "before_cursor_execute", _capture)
    try:
        summaries = sql_store.list_summaries(Collection.DRAFTS)
    finally:
        event.remove(db.engine, "before_cursor_execute", _capture)

    assert [item.id for item in summaries] == [2, 1, 3]
    first = summaries[1]
    assert first.report_number == "N-1"
    assert first.photos == []
    assert first.photo_count == 2
    assert first.saved_at == datetime(2026, 10, 2, 8, tzinfo=UTC)
    assert summaries[0].photo_count == 0

    select_sql = " ".join(statements).lower()
    assert "json_array_length(drafts.photos)" in select_sql
    assert "drafts.photos," not in select_sql


def test_report_summaries_keep_fields(sql_store: SqlRecordStore) -> None:
    sql_store.upsert_record(
        Collection.REPORTS,
        ReportRecord.model_validate(
            {"id": 9, "reportNumber": "R-9", "stateOfBuilding": {"abandoned": True}, "photos": [PHOTO]}
        ),
    )

    (summary,) = sql_store.list_summaries(Collection.REPORTS)

    assert summary.state_of_building.abandoned is True
    assert summary.photo_count == 1
    assert summary.model_dump(by_alias=True)["photoCount"] == 1
    assert "photos" not in summary.model_dump(by_alias=True)
