"""A4 PDF layout of a report, built with reportlab platypus.

Mirrors the HTML document section for section: header image, title block,
field table, observations narrative, summary pages, the two-column photo
appendix, signature and footer.
"""

from __future__ import annotations

import base64
import binascii
import io
from pathlib import Path

from markupsafe import escape
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    Image as RLImage,
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from app.domain.models import PhotoAttachment, ReportFields
from app.domain.rich_text import RichTextDocument

PAGE_MARGIN = 20 * mm
CONTENT_WIDTH = A4[0] - 2 * PAGE_MARGIN
PHOTO_WIDTH = 75 * mm
PHOTO_HEIGHT = 55 * mm


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("ReportTitle", parent=base["Heading2"], alignment=TA_CENTER),
        "centered": ParagraphStyle("Centered", parent=base["BodyText"], alignment=TA_CENTER),
        "section": ParagraphStyle("Section", parent=base["BodyText"], fontName="Helvetica-Bold", spaceAfter=6),
        "body": ParagraphStyle("Body", parent=base["BodyText"], fontSize=10, leading=14, alignment=TA_JUSTIFY),
        "label": ParagraphStyle("Label", parent=base["BodyText"], fontName="Helvetica-Bold", fontSize=10),
        "cell": ParagraphStyle("Cell", parent=base["BodyText"], fontSize=10),
        "caption": ParagraphStyle("Caption", parent=base["BodyText"], fontSize=9, alignment=TA_CENTER),
        "meta": ParagraphStyle(
            "Meta", parent=base["BodyText"], fontSize=8, alignment=TA_CENTER, textColor=colors.HexColor("#666666")
        ),
    }


def _text(value: str, fallback: str = "N/A") -> str:
    return str(escape(value)) if value else fallback


def narrative_markup(html: str) -> str:
    """Paragraph markup for the stored narrative: escaped runs, ``<b>``/``<u>``, ``<br/>`` between lines."""
    return RichTextDocument.from_html(html).to_markup("<br/>")


def _photo_image(photo: PhotoAttachment) -> RLImage:
    _, _, payload = photo.data.partition("base64,")
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"photo {photo.id} is not a base64 data URL") from exc
    return RLImage(io.BytesIO(content), width=PHOTO_WIDTH, height=PHOTO_HEIGHT)


def _photo_cell(number: int, photo: PhotoAttachment, styles: dict[str, ParagraphStyle]) -> list[object]:
    cell: list[object] = [_photo_image(photo), Paragraph(f"<b>APPENDIX {number}</b>", styles["caption"])]
    if photo.title:
        cell.append(Paragraph(f"<i>{escape(photo.title)}</i>", styles["caption"]))
    cell.append(Paragraph(f"GPS: {escape(photo.gps)}", styles["meta"]))
    cell.append(Paragraph(str(escape(photo.timestamp)), styles["meta"]))
    return cell


def build_pdf(report: ReportFields, fields: list[tuple[str, str]], static_dir: Path) -> bytes:
    styles = _styles()
    story: list[object] = [
        RLImage(str(static_dir / "header.png"), width=CONTENT_WIDTH, height=25 * mm),
        Paragraph("CAP OBSERVATION SHEET", styles["title"]),
        Paragraph("Monitoring and Regulation of Buildings Report", styles["centered"]),
        Paragraph(f"<b>Report No: {_text(report.report_number, 'DRAFT')}</b>", styles["centered"]),
        Spacer(1, 6 * mm),
    ]

    field_rows = [[Paragraph(label, styles["label"]), Paragraph(_text(value), styles["cell"])] for label, value in fields]
    field_table = Table(field_rows, colWidths=[CONTENT_WIDTH * 0.35, CONTENT_WIDTH * 0.65])
    field_table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    story += [field_table, Spacer(1, 6 * mm)]

    narrative = narrative_markup(report.observations_rich_text)
    story += [
        Paragraph("OBSERVATIONS", styles["section"]),
        Paragraph(
            "Based on our evaluation, of the current state of work, at the above site, we report as follows:",
            styles["body"],
        ),
        Paragraph(narrative or "No observations recorded", styles["body"]),
        PageBreak(),
        Paragraph("1. EXECUTIVE SUMMARY", styles["section"]),
        Paragraph(_text(report.executive_summary), styles["body"]),
        Spacer(1, 6 * mm),
        Paragraph("2. CHALLENGES AND LIMITATIONS", styles["section"]),
        Paragraph(_text(report.challenges_and_limitations), styles["body"]),
        PageBreak(),
        Paragraph("3. APPENDICES - PHOTOGRAPHIC EVIDENCE", styles["section"]),
    ]

    cells = [_photo_cell(number, photo, styles) for number, photo in enumerate(report.photos, start=1)]
    if cells:
        rows = [cells[index : index + 2] for index in range(0, len(cells), 2)]
        if len(rows[-1]) < 2:
            rows[-1].append("")
        photo_table = Table(rows, colWidths=[CONTENT_WIDTH / 2, CONTENT_WIDTH / 2])
        photo_table.setStyle(
            TableStyle(
                [
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#dddddd")),
                    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        story.append(photo_table)

    story.append(
        KeepTogether(
            [
                Spacer(1, 8 * mm),
                RLImage(str(static_dir / "signature.png"), width=60 * mm, height=22 * mm),
                Paragraph("AUTHORIZED SIGNATORY", styles["section"]),
                RLImage(str(static_dir / "footer.png"), width=CONTENT_WIDTH, height=25 * mm),
            ]
        )
    )

    buffer = io.BytesIO()
    document = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
        title=f"CAP Observation Report - {report.report_number or 'Draft'}",
    )
    document.build(story)
    return buffer.getvalue()
