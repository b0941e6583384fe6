from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DRAFTS_KEY = "capDrafts"
REPORTS_KEY = "capSavedReports"
LOGGED_IN_KEY = "capIsLoggedIn"


class LocalCache:
    """On-device key/value cache persisted as a single JSON object."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error reading local cache %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _store(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            staging = self._path.with_name(f"{self._path.name}.tmp")
            staging.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(staging, self._path)
        except OSError as exc:
            logger.error("Error writing local cache %s: %s", self._path, exc)

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._store(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._store(data)
