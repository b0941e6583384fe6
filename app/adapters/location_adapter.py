from __future__ import annotations

import asyncio

from app.adapters.base import LocationError, Position


class FixedLocationAdapter:
    """Reports a configured position, optionally after a delay or with a forced failure."""

    def __init__(
        self,
        latitude: float = 0.0,
        longitude: float = 0.0,
        *,
        delay_seconds: float = 0.0,
        error: str | None = None,
    ) -> None:
        self._position = Position(latitude=latitude, longitude=longitude)
        self._delay_seconds = max(delay_seconds, 0.0)
        self._error = error
        self.requests: list[tuple[bool, float]] = []

    async def current_position(self, *, high_accuracy: bool, timeout_seconds: float) -> Position:
        self.requests.append((high_accuracy, timeout_seconds))
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
        if self._error is not None:
            raise LocationError(self._error)
        return self._position


class UnavailableLocationAdapter:
    async def current_position(self, *, high_accuracy: bool, timeout_seconds: float) -> Position:
        raise LocationError("geolocation is not supported on this device")
