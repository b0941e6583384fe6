from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import Response

from app.api.deps import get_export_service, get_record_service, handle_record_error
from app.domain.models import RecordAck, ReportRecord, ReportSummary
from app.infra.audit import set_audit_context
from app.services.export_service import DeliveryTier, ExportService, ExportValidationError
from app.services.record_service import RecordError, RecordService

router = APIRouter()

Service = Annotated[RecordService, Depends(get_record_service)]
Exporter = Annotated[ExportService, Depends(get_export_service)]


@router.get("", response_model=list[ReportSummary])
def list_reports(service: Service) -> list[ReportSummary]:
    try:
        return service.list_reports()
    except RecordError as exc:
        handle_record_error(exc)


@router.get("/{report_id}", response_model=ReportRecord)
def get_report(report_id: int, service: Service) -> ReportRecord:
    try:
        return service.get_report(report_id)
    except RecordError as exc:
        handle_record_error(exc)


@router.post("", response_model=RecordAck)
def upsert_report(payload: ReportRecord, request: Request, service: Service) -> RecordAck:
    set_audit_context(
        request,
        action="report.upsert",
        resource=f"reports/{payload.id}",
        detail={"what": {"report_number": payload.report_number, "photo_count": len(payload.photos)}},
    )
    try:
        service.upsert_report(payload)
    except RecordError as exc:
        handle_record_error(exc)
    return RecordAck()


@router.delete("/{report_id}", response_model=RecordAck)
def delete_report(report_id: int, request: Request, service: Service) -> RecordAck:
    set_audit_context(request, action="report.delete", resource=f"reports/{report_id}")
    try:
        service.delete_report(report_id)
    except RecordError as exc:
        handle_record_error(exc)
    return RecordAck()


@router.get("/{report_id}/document")
def render_report_document(
    report_id: int,
    request: Request,
    service: Service,
    exporter: Exporter,
    delivery: DeliveryTier = DeliveryTier.PDF,
    user_agent: Annotated[str, Header()] = "",
) -> Response:
    try:
        report = service.get_report(report_id)
        document = exporter.deliver(report, delivery, user_agent=user_agent)
    except (RecordError, ExportValidationError) as exc:
        handle_record_error(exc)
    set_audit_context(
        request,
        action="report.export",
        resource=f"reports/{report_id}",
        detail={"what": {"requested_tier": str(delivery), "delivered_tier": str(document.tier)}},
    )
    disposition = "attachment" if document.tier == DeliveryTier.PDF else "inline"
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": f'{disposition}; filename="{document.filename}"'},
    )
