from __future__ import annotations

import json
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, create_engine

from app import main as app_main
from app.adapters.base import StoreError
from app.adapters.json_store import JsonFileRecordStore
from app.adapters.sql_store import SqlRecordStore
from app.api.deps import get_record_service
from app.infra import db
from app.services.record_service import RecordService

PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


@pytest.fixture(params=["sql", "json"])
def drafts_client(
    request: pytest.FixtureRequest,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> Generator[TestClient, None, None]:
    if request.param == "sql":
        test_engine = create_engine(
            f"sqlite:///{tmp_path / 'drafts_test.db'}",
            connect_args={"check_same_thread": False},
        )
        SQLModel.metadata.create_all(test_engine)
        monkeypatch.setattr(db, "engine", test_engine)
        store = SqlRecordStore()
    else:
        store = JsonFileRecordStore(tmp_path / "data.json")
    app_main.app.dependency_overrides[get_record_service] = lambda: RecordService(store)
    client = TestClient(app_main.app)
    yield client
    client.close()
    app_main.app.dependency_overrides.clear()


def _draft_payload(draft_id: int, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": draft_id,
        "reportNumber": "N-001",
        "district": "Ikeja",
        "capPractitioner": "A. Bello",
        "addressOfInfraction": "12 Allen Avenue",
        "nearestLandmark": "",
        "gpsCoordinates": "Lat: 6.500000, Long: 3.300000",
        "dateOfIdentification": "2026-10-01",
        "numberOfFloors": "3",
        "stageOfWork": "Roofing",
        "stateOfBuilding": {"abandoned": False, "completed": False, "underConstruction": True, "distressed": False},
        "observations": {"noPlanningPermit": True, "otherObservations": "Scaffolding unsafe"},
        "observationsRichText": "1. No permit<br>2. No board",
        "executiveSummary": "Work halted pending permit.",
        "siteLocation": "Ikeja GRA",
        "typeOfBuilding": "Residential",
        "recommendationStatus": "Seal",
        "challengesAndLimitations": "Owner absent.",
        "photos": [
            {
                "id": "p1",
                "data": PNG_DATA_URL,
                "gps": "Lat: 6.500000, Long: 3.300000",
                "timestamp": "10/01/2026, 09:00:00 AM",
                "title": "Front view",
            }
        ],
        "savedAt": "2026-10-01T09:00:00+00:00",
    }
    payload.update(overrides)
    return payload


def test_draft_round_trip_reproduces_every_field(drafts_client: TestClient) -> None:
    payload = _draft_payload(101)
    response = drafts_client.post("/api/drafts", json=payload)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    fetched = drafts_client.get("/api/drafts/101")
    assert fetched.status_code == 200
    body = fetched.json()
    for key in (
        "reportNumber",
        "district",
        "capPractitioner",
        "addressOfInfraction",
        "nearestLandmark",
        "gpsCoordinates",
        "observationsRichText",
        "executiveSummary",
        "siteLocation",
        "typeOfBuilding",
        "recommendationStatus",
        "challengesAndLimitations",
    ):
        assert body[key] == payload[key]
    assert body["stateOfBuilding"]["underConstruction"] is True
    assert body["observations"]["noPlanningPermit"] is True
    assert body["observations"]["otherObservations"] == "Scaffolding unsafe"
    assert body["photos"] == payload["photos"]
    assert body["savedAt"].startswith("2026-10-01T09:00:00")


def test_list_omits_photos_and_counts_them(drafts_client: TestClient) -> None:
    assert drafts_client.post("/api/drafts", json=_draft_payload(1)).status_code == 200

    response = drafts_client.get("/api/drafts")
    assert response.status_code == 200
    items = response.json()
    assert len(items) == 1
    assert "photos" not in items[0]
    assert items[0]["photoCount"] == 1
    assert items[0]["reportNumber"] == "N-001"

    full = drafts_client.get("/api/drafts/1").json()
    assert len(full["photos"]) == 1


def test_list_orders_by_saved_at_descending(drafts_client: TestClient) -> None:
    drafts_client.post("/api/drafts", json=_draft_payload(1, savedAt="2026-10-01T09:00:00+00:00"))
    drafts_client.post("/api/drafts", json=_draft_payload(2, savedAt="2026-10-03T09:00:00+00:00"))
    drafts_client.post("/api/drafts", json=_draft_payload(3, savedAt="2026-10-02T09:00:00+00:00"))

    ids = [item["id"] for item in drafts_client.get("/api/drafts").json()]
    assert ids == [2, 3, 1]


def test_upsert_replaces_existing_draft(drafts_client: TestClient) -> None:
    drafts_client.post("/api/drafts", json=_draft_payload(7))
    drafts_client.post("/api/drafts", json=_draft_payload(7, district="Surulere", photos=[]))

    items = drafts_client.get("/api/drafts").json()
    assert len(items) == 1
    assert items[0]["district"] == "Surulere"
    assert items[0]["photoCount"] == 0


def test_upsert_stamps_missing_saved_at(drafts_client: TestClient) -> None:
    payload = _draft_payload(8)
    payload.pop("savedAt")
    drafts_client.post("/api/drafts", json=payload)

    body = drafts_client.get("/api/drafts/8").json()
    assert body["savedAt"] is not None


def test_upsert_without_id_is_rejected(drafts_client: TestClient) -> None:
    payload = _draft_payload(1)
    payload.pop("id")
    response = drafts_client.post("/api/drafts", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "Draft must include an id"
    assert drafts_client.get("/api/drafts").json() == []


def test_incomplete_draft_is_accepted(drafts_client: TestClient) -> None:
    response = drafts_client.post("/api/drafts", json={"id": 55})
    assert response.status_code == 200

    body = drafts_client.get("/api/drafts/55").json()
    assert body["reportNumber"] == ""
    assert body["photos"] == []
    assert body["stateOfBuilding"]["abandoned"] is False


def test_delete_draft_and_absent_id_is_noop(drafts_client: TestClient) -> None:
    drafts_client.post("/api/drafts", json=_draft_payload(9))

    first = drafts_client.delete("/api/drafts/9")
    assert first.status_code == 200
    assert first.json() == {"success": True}
    assert drafts_client.get("/api/drafts/9").status_code == 404

    again = drafts_client.delete("/api/drafts/9")
    assert again.status_code == 200
    assert again.json() == {"success": True}


def test_get_missing_draft_is_404(drafts_client: TestClient) -> None:
    response = drafts_client.get("/api/drafts/424242")
    assert response.status_code == 404


def test_store_failure_is_reported_as_500(drafts_client: TestClient) -> None:
    class _BrokenStore(JsonFileRecordStore):
        def list_summaries(self, collection):  # type: ignore[no-untyped-def]
            raise StoreError("disk unavailable")

    broken = _BrokenStore(Path("unused.json"))
    app_main.app.dependency_overrides[get_record_service] = lambda: RecordService(broken)

    response = drafts_client.get("/api/drafts")
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to load drafts"


def test_cors_allows_any_origin(drafts_client: TestClient) -> None:
    response = drafts_client.get("/api/drafts", headers={"Origin": "http://example.test"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_list_reads_legacy_locale_saved_at(tmp_path: Path) -> None:
    path = tmp_path / "legacy.json"
    path.write_text(
        json.dumps(
            {
                "drafts": [
                    {"id": 1, "reportNumber": "ISO", "savedAt": "2024-10-17T09:00:00+00:00"},
                    {"id": 1729260846000, "reportNumber": "LOCALE", "savedAt": "10/18/2024, 2:14:05 PM"},
                ],
                "reports": [],
            }
        ),
        encoding="utf-8",
    )
    store = JsonFileRecordStore(path)
    app_main.app.dependency_overrides[get_record_service] = lambda: RecordService(store)
    client = TestClient(app_main.app)
    try:
        response = client.get("/api/drafts")
    finally:
        client.close()
        app_main.app.dependency_overrides.clear()

    assert response.status_code == 200
    body = response.json()
    assert [item["reportNumber"] for item in body] == ["LOCALE", "ISO"]
    assert body[0]["savedAt"].startswith("2024-10-18T14:14:05")
