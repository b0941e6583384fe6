"""One-shot copy of a flat-file draft array into the relational ``drafts`` table.

Usage: ``python -m app.infra.migrate_drafts [path/to/drafts.json]``. Rows are
upserted by id in batches, so re-running the copy is safe.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.adapters.sql_store import record_to_row
from app.domain.models import Collection, DraftRecord, parse_timestamp
from app.infra.db import get_engine

logger = logging.getLogger(__name__)

DRAFTS_FILE = Path(os.getenv("DRAFTS_FILE", "drafts.json"))
MIGRATION_BATCH_SIZE = int(os.getenv("MIGRATION_BATCH_SIZE", "5"))


class MigrationError(Exception):
    pass


def _normalize_saved_at(value: Any) -> Any:
    parsed = parse_timestamp(value)
    if not isinstance(parsed, str):
        return parsed or None
    logger.warning("Unrecognized savedAt value %r, storing NULL", value)
    return None


def load_drafts(path: Path) -> list[DraftRecord]:
    if not path.exists():
        raise MigrationError(f"could not find drafts file at {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MigrationError(f"{path} is not valid JSON") from exc
    if not isinstance(raw, list):
        raise MigrationError(f"expected {path} to contain an array")

    drafts: list[DraftRecord] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise MigrationError(f"entry {index} in {path} is not an object")
        payload = {**item, "savedAt": _normalize_saved_at(item.get("savedAt"))}
        try:
            draft = DraftRecord.model_validate(payload)
        except ValidationError as exc:
            raise MigrationError(f"entry {index} in {path} is not a valid draft") from exc
        if draft.id is None:
            raise MigrationError(f"entry {index} in {path} has no id")
        drafts.append(draft)
    return drafts


def migrate_drafts(drafts: list[DraftRecord], batch_size: int = MIGRATION_BATCH_SIZE) -> int:
    if batch_size < 1:
        raise MigrationError("batch size must be at least 1")
    for start in range(0, len(drafts), batch_size):
        batch = drafts[start : start + batch_size]
        try:
            with Session(get_engine(), expire_on_commit=False) as session:
                for draft in batch:
                    session.merge(record_to_row(Collection.DRAFTS, draft))
                session.commit()
        except SQLAlchemyError as exc:
            raise MigrationError(f"error upserting batch starting at index {start}") from exc
        logger.info("Migrated drafts %d-%d", start + 1, start + len(batch))
    return len(drafts)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = sys.argv[1:] if argv is None else argv
    path = Path(args[0]) if args else DRAFTS_FILE
    try:
        drafts = load_drafts(path)
        logger.info("Found %d drafts to migrate...", len(drafts))
        migrate_drafts(drafts)
    except MigrationError as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    logger.info("Migration completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
