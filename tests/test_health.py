from __future__ import annotations

from fastapi.testclient import TestClient

from app import main as app_main


def test_healthz_ok() -> None:
    client = TestClient(app_main.app)
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readyz_ok_when_store_ready(monkeypatch) -> None:
    monkeypatch.setattr(app_main, "check_store_ready", lambda: True)
    client = TestClient(app_main.app)
    response = client.get("/readyz")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"
    assert response.json()["checks"]["store"] == "ok"


def test_readyz_503_when_store_unavailable(monkeypatch) -> None:
    monkeypatch.setattr(app_main, "check_store_ready", lambda: False)
    client = TestClient(app_main.app)
    response = client.get("/readyz")
    assert response.status_code == 503
    assert response.json()["detail"]["status"] == "not_ready"


def test_static_assets_served() -> None:
    client = TestClient(app_main.app)
    response = client.get("/static/header.png")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
