from __future__ import annotations

from app.client.cache import LOGGED_IN_KEY, LocalCache

TEAM_USERNAME = "CAPS MONITORING TEAM"
TEAM_PASSWORD = "CAPS"
INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


class AccessDeniedError(Exception):
    pass


class AccessGate:
    """Shared team credential check; the logged-in flag persists until logout."""

    def __init__(self, cache: LocalCache) -> None:
        self._cache = cache

    @property
    def is_logged_in(self) -> bool:
        return self._cache.get(LOGGED_IN_KEY) == "true"

    def login(self, username: str, password: str) -> None:
        if username.strip() != TEAM_USERNAME or password.strip() != TEAM_PASSWORD:
            raise AccessDeniedError(INVALID_CREDENTIALS_MESSAGE)
        self._cache.set(LOGGED_IN_KEY, "true")

    def logout(self) -> None:
        self._cache.remove(LOGGED_IN_KEY)
