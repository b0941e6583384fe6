from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from app.domain.models import DraftRecord, DraftSummary, ReportRecord, ReportSummary

API_BASE = "http://localhost:4000/api"
REQUEST_TIMEOUT_SECONDS = 20.0


class GatewayError(Exception):
    pass


class SyncGatewayClient:
    """Async client for the sync gateway's draft and report endpoints."""

    def __init__(
        self,
        base_url: str = API_BASE,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = httpx.Timeout(timeout_seconds)

    async def _request(self, method: str, path: str, *, payload: dict[str, Any] | None = None) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as exc:
            raise GatewayError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise GatewayError(f"{method} {path} returned invalid JSON") from exc

    async def _list(self, path: str, model: type[DraftSummary] | type[ReportSummary]) -> list[Any]:
        body = await self._request("GET", path)
        if not isinstance(body, list):
            return []
        try:
            return [model.model_validate(item) for item in body]
        except ValidationError as exc:
            raise GatewayError(f"GET {path} returned malformed records") from exc

    async def _get(self, path: str, model: type[DraftRecord] | type[ReportRecord]) -> Any:
        body = await self._request("GET", path)
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            raise GatewayError(f"GET {path} returned a malformed record") from exc

    async def list_drafts(self) -> list[DraftSummary]:
        return await self._list("/drafts", DraftSummary)

    async def list_reports(self) -> list[ReportSummary]:
        return await self._list("/reports", ReportSummary)

    async def get_draft(self, draft_id: int) -> DraftRecord:
        return await self._get(f"/drafts/{draft_id}", DraftRecord)

    async def get_report(self, report_id: int) -> ReportRecord:
        return await self._get(f"/reports/{report_id}", ReportRecord)

    async def upsert_draft(self, draft: DraftRecord) -> None:
        await self._request("POST", "/drafts", payload=draft.model_dump(mode="json", by_alias=True))

    async def upsert_report(self, report: ReportRecord) -> None:
        await self._request("POST", "/reports", payload=report.model_dump(mode="json", by_alias=True))

    async def delete_draft(self, draft_id: int) -> None:
        await self._request("DELETE", f"/drafts/{draft_id}")

    async def delete_report(self, report_id: int) -> None:
        await self._request("DELETE", f"/reports/{report_id}")
