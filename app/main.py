from __future__ import annotations

import logging
import os
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.routers import drafts, reports
from app.infra.audit import AuditMiddleware
from app.infra.storage import STORAGE_BACKEND, check_store_ready

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "4000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(
    title="cap-reports",
    description="Sync gateway for CAP observation drafts and finalized reports.",
    version="0.1.0",
)

app.add_middleware(AuditMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(drafts.router, prefix="/api/drafts", tags=["drafts"])
app.include_router(reports.router, prefix="/api/reports", tags=["reports"])

static_dir = Path(__file__).resolve().parent / "web" / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/readyz")
def readyz() -> dict[str, object]:
    store_ok = check_store_ready()
    checks = {"store": "ok" if store_ok else "fail", "backend": STORAGE_BACKEND}
    if not store_ok:
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}


if __name__ == "__main__":
    uvicorn.run(app, host=HOST, port=PORT)
