from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_record_service, handle_record_error
from app.domain.models import DraftRecord, DraftSummary, RecordAck
from app.infra.audit import set_audit_context
from app.services.record_service import RecordError, RecordService

router = APIRouter()

Service = Annotated[RecordService, Depends(get_record_service)]


@router.get("", response_model=list[DraftSummary])
def list_drafts(service: Service) -> list[DraftSummary]:
    try:
        return service.list_drafts()
    except RecordError as exc:
        handle_record_error(exc)


@router.get("/{draft_id}", response_model=DraftRecord)
def get_draft(draft_id: int, service: Service) -> DraftRecord:
    try:
        return service.get_draft(draft_id)
    except RecordError as exc:
        handle_record_error(exc)


@router.post("", response_model=RecordAck)
def upsert_draft(payload: DraftRecord, request: Request, service: Service) -> RecordAck:
    set_audit_context(
        request,
        action="draft.upsert",
        resource=f"drafts/{payload.id}",
        detail={"what": {"report_number": payload.report_number, "photo_count": len(payload.photos)}},
    )
    try:
        service.upsert_draft(payload)
    except RecordError as exc:
        handle_record_error(exc)
    return RecordAck()


@router.delete("/{draft_id}", response_model=RecordAck)
def delete_draft(draft_id: int, request: Request, service: Service) -> RecordAck:
    set_audit_context(request, action="draft.delete", resource=f"drafts/{draft_id}")
    try:
        service.delete_draft(draft_id)
    except RecordError as exc:
        handle_record_error(exc)
    return RecordAck()
