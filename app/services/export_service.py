from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.domain.models import BuildingState, ReportFields
from app.services.pdf_layout import build_pdf

logger = logging.getLogger(__name__)

WEB_DIR = Path(__file__).resolve().parents[1] / "web"
TEMPLATE_DIR = WEB_DIR / "templates"
STATIC_DIR = WEB_DIR / "static"
ASSET_BASE = "/static"
DOCUMENT_TEMPLATE = "report_document.html"

PRINT_SETTLE_DELAY_MS = 500
CONSTRAINED_USER_AGENT_MARKERS = ("opera mini",)

NO_PHOTOS_MESSAGE = "Please add at least 1 photo with GPS location before generating PDF"
NO_REPORT_NUMBER_MESSAGE = "Please enter a Report Number before generating PDF"

BUILDING_STATE_LABELS: tuple[tuple[str, str], ...] = (
    ("abandoned", "ABANDONED"),
    ("completed", "COMPLETED"),
    ("under_construction", "UNDER CONSTRUCTION/RENOVATION"),
    ("distressed", "DISTRESSED/DEFECTIVE"),
)


class ExportError(Exception):
    pass


class ExportValidationError(ExportError):
    pass


class ExportRenderError(ExportError):
    pass


class DeliveryTier(StrEnum):
    PDF = "pdf"
    PRINT = "print"
    RAW = "raw"


@dataclass(frozen=True)
class ExportedDocument:
    filename: str
    content: bytes
    media_type: str
    tier: DeliveryTier


def validate_exportable(record: ReportFields) -> None:
    if len(record.photos) < 1:
        raise ExportValidationError(NO_PHOTOS_MESSAGE)
    if not record.report_number.strip():
        raise ExportValidationError(NO_REPORT_NUMBER_MESSAGE)


def building_state_labels(state: BuildingState) -> list[str]:
    return [label for name, label in BUILDING_STATE_LABELS if getattr(state, name)]


def is_constrained_runtime(user_agent: str) -> bool:
    agent = (user_agent or "").lower()
    return any(marker in agent for marker in CONSTRAINED_USER_AGENT_MARKERS)


def document_basename(record: ReportFields) -> str:
    number = re.sub(r"[^A-Za-z0-9._-]+", "_", record.report_number.strip()).strip("_")
    return f"CAP_Report_{number or 'Draft'}"


def document_fields(report: ReportFields) -> list[tuple[str, str]]:
    return [
        ("DISTRICT", report.district),
        ("CAP PRACTITIONER", report.cap_practitioner),
        ("ADDRESS OF INFRACTION", report.address_of_infraction),
        ("NEAREST LANDMARK (IF ANY)", report.nearest_landmark),
        ("GPS COORDINATES", report.gps_coordinates),
        ("DATE OF IDENTIFICATION", report.date_of_identification),
        ("NO. OF FLOORS", report.number_of_floors),
        ("STAGE OF WORK", report.stage_of_work),
        ("STATE OF BUILDING", ", ".join(building_state_labels(report.state_of_building))),
    ]


class ExportService:
    def __init__(self, static_dir: Path = STATIC_DIR) -> None:
        self._static_dir = static_dir
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, report: ReportFields, *, print_delay_ms: int | None = None) -> str:
        template = self._env.get_template(DOCUMENT_TEMPLATE)
        return template.render(
            report=report,
            fields=document_fields(report),
            photo_cells=list(enumerate(report.photos, start=1)),
            asset_base=ASSET_BASE,
            print_delay_ms=print_delay_ms,
        )

    def to_pdf(self, report: ReportFields) -> bytes:
        try:
            return build_pdf(report, document_fields(report), self._static_dir)
        except Exception as exc:
            # reportlab and PIL raise a wide range of layout and decoding errors.
            raise ExportRenderError(f"pdf layout failed: {exc}") from exc

    def deliver(
        self,
        report: ReportFields,
        tier: DeliveryTier = DeliveryTier.PDF,
        *,
        user_agent: str = "",
    ) -> ExportedDocument:
        """Validate, render and package ``report``, degrading PDF to print view to raw HTML."""
        validate_exportable(report)
        basename = document_basename(report)
        if is_constrained_runtime(user_agent):
            tier = DeliveryTier.RAW

        if tier == DeliveryTier.PDF:
            try:
                content = self.to_pdf(report)
                return ExportedDocument(f"{basename}.pdf", content, "application/pdf", DeliveryTier.PDF)
            except ExportRenderError as exc:
                logger.warning("PDF export of report %s failed, falling back to print view: %s", report.id, exc)
                tier = DeliveryTier.PRINT

        if tier == DeliveryTier.PRINT:
            html = self.render(report, print_delay_ms=PRINT_SETTLE_DELAY_MS)
            return ExportedDocument(f"{basename}.html", html.encode("utf-8"), "text/html", DeliveryTier.PRINT)

        html = self.render(report)
        return ExportedDocument(f"{basename}.html", html.encode("utf-8"), "text/html", DeliveryTier.RAW)
