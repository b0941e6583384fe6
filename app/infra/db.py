from __future__ import annotations

import os

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import create_engine

# Store endpoint and its access credential for the relational variant.
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "postgresql+psycopg://cap:cap@db:5432/cap_reports",
)

engine = create_engine(DATABASE_URL, pool_pre_ping=True)


def get_engine() -> Engine:
    return engine


def check_db_ready() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
