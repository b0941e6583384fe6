from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from app.client.access import AccessGate
from app.client.cache import DRAFTS_KEY, REPORTS_KEY, LocalCache
from app.client.form import ReportForm
from app.client.gateway import GatewayError, SyncGatewayClient
from app.domain.models import (
    DraftRecord,
    DraftSummary,
    ReportFields,
    ReportRecord,
    ReportSummary,
    new_record_id,
    now_utc,
)
from app.services.export_service import DeliveryTier, ExportedDocument, ExportService

logger = logging.getLogger(__name__)


class WorkspaceError(Exception):
    pass


class UnknownRecordError(WorkspaceError):
    pass


class PhotosUnavailableError(WorkspaceError):
    pass


def _cache_entry(item: ReportFields) -> dict[str, Any]:
    # Summaries drop photos from their own dump; the device cache keeps whatever is loaded.
    entry = item.model_dump(mode="json", by_alias=True)
    entry["photos"] = [photo.model_dump(mode="json", by_alias=True) for photo in item.photos]
    return entry


class ReportWorkspace:
    """Local draft and report lists kept in step with the gateway.

    Local state and the cache are updated first; remote writes follow and
    their failures are only logged, so the local view never waits on the
    network. List entries are summaries: ``photo_count`` tells how many
    photos the stored record has even when they have not been fetched yet.
    """

    def __init__(
        self,
        gateway: SyncGatewayClient,
        cache: LocalCache,
        *,
        form: ReportForm | None = None,
        export_service: ExportService | None = None,
    ) -> None:
        self._gateway = gateway
        self._cache = cache
        self.access = AccessGate(cache)
        self.form = form or ReportForm()
        self._exports = export_service or ExportService()
        self.drafts: list[DraftSummary] = []
        self.reports: list[ReportSummary] = []

    def _cached(self, key: str, model: type[DraftSummary] | type[ReportSummary]) -> list[Any]:
        items = self._cache.get(key) or []
        try:
            return [model.model_validate(item) for item in items]
        except (TypeError, ValidationError) as exc:
            logger.error("Error reading %s from local cache: %s", key, exc)
            return []

    def _cache_drafts(self) -> None:
        self._cache.set(DRAFTS_KEY, [_cache_entry(item) for item in self.drafts])

    def _cache_reports(self) -> None:
        self._cache.set(REPORTS_KEY, [_cache_entry(item) for item in self.reports])

    async def load(self) -> None:
        if not self.access.is_logged_in:
            return
        try:
            drafts, reports = await asyncio.gather(self._gateway.list_drafts(), self._gateway.list_reports())
        except GatewayError as exc:
            logger.error("Error loading drafts/reports from backend: %s", exc)
            self.drafts = self._cached(DRAFTS_KEY, DraftSummary)
            self.reports = self._cached(REPORTS_KEY, ReportSummary)
            return
        self.drafts = drafts
        self.reports = reports
        self._cache_drafts()
        self._cache_reports()

    def _put_draft(self, draft: DraftRecord) -> None:
        entry = DraftSummary.from_record(draft)
        if any(item.id == draft.id for item in self.drafts):
            self.drafts = [entry if item.id == draft.id else item for item in self.drafts]
        else:
            self.drafts = [entry, *self.drafts]
        self._cache_drafts()

    async def save_draft(self) -> DraftRecord:
        current = self.form.record
        draft = current.model_copy(
            update={
                "id": current.id if current.id is not None else new_record_id(),
                "saved_at": now_utc(),
            }
        )
        self._put_draft(draft)
        try:
            await self._gateway.upsert_draft(draft)
        except GatewayError as exc:
            logger.error("Error saving draft to backend: %s", exc)
        self.form.mark_draft_saved(draft)
        self.form.reset()
        return draft

    async def finalize(self) -> ReportRecord:
        """Turn the current record into a report; the source draft is dropped once the gateway has the report."""
        self.form.ensure_exportable()
        current = self.form.record
        report = ReportRecord.model_validate(
            {
                **current.model_dump(exclude={"saved_at"}),
                "id": new_record_id(),
                "generated_at": now_utc(),
            }
        )
        self.reports = [ReportSummary.from_record(report), *self.reports]
        self._cache_reports()
        try:
            await self._gateway.upsert_report(report)
        except GatewayError as exc:
            logger.error("Error saving report to backend, keeping draft %s: %s", current.id, exc)
        else:
            if current.id is not None:
                await self.delete_draft(current.id)
        self.form.mark_finalized()
        self.form.reset()
        return report

    async def load_draft(self, draft_id: int) -> DraftRecord:
        cached = next((item for item in self.drafts if item.id == draft_id), None)
        if cached is None:
            raise UnknownRecordError(f"draft {draft_id} is not in the workspace")
        photos = cached.photos
        if not cached.photos_loaded:
            try:
                full = await self._gateway.get_draft(draft_id)
            except GatewayError as exc:
                logger.error("Error loading photos for draft %s: %s", draft_id, exc)
                raise PhotosUnavailableError(
                    f"draft {draft_id} has {cached.photo_count} photo(s) that could not be fetched"
                ) from exc
            photos = full.photos
        draft = DraftRecord.model_validate({**cached.model_dump(exclude={"photo_count"}), "photos": photos})
        if photos is not cached.photos:
            self._put_draft(draft)
        self.form.reset()
        self.form.load(draft)
        return draft

    async def delete_draft(self, draft_id: int) -> None:
        self.drafts = [item for item in self.drafts if item.id != draft_id]
        self._cache_drafts()
        try:
            await self._gateway.delete_draft(draft_id)
        except GatewayError as exc:
            logger.error("Error deleting draft from backend: %s", exc)

    async def delete_report(self, report_id: int) -> None:
        self.reports = [item for item in self.reports if item.id != report_id]
        self._cache_reports()
        try:
            await self._gateway.delete_report(report_id)
        except GatewayError as exc:
            logger.error("Error deleting report from backend: %s", exc)

    async def download(self, report_id: int, user_agent: str = "") -> ExportedDocument:
        local = next((item for item in self.reports if item.id == report_id), None)
        try:
            report = await self._gateway.get_report(report_id)
        except GatewayError as exc:
            logger.error("Error fetching report %s for download: %s", report_id, exc)
            if local is None:
                raise UnknownRecordError(f"report {report_id} is not available") from exc
            if not local.photos_loaded:
                raise PhotosUnavailableError(f"photos for report {report_id} are not available offline") from exc
            report = local
        return await asyncio.to_thread(self._exports.deliver, report, DeliveryTier.PDF, user_agent=user_agent)
