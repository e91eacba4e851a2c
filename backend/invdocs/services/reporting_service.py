# Overview: Service-layer operations for reporting; renders PDF/XLSX reports and archives them as documents.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app
from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import InventoryItem
from ..validation import StoreUnavailableError, ValidationError
from invdocs.time_utils import to_zone, utcnow
from .activity_service import log_activity, normalize_actor
from .document_service import store_document
from .order_service import get_order
from .report_layout import (
    A4_LANDSCAPE,
    PageGeometry,
    ReportTable,
    build_inventory_table,
    build_order_table,
    paginate,
)
from .stock_ledger_service import stock_levels

"""
Reporting Invariants

- A report is rendered from one ReportTable; the PDF totals block and the
  XLSX totals row print the same integer-cent sums.
- Every PDF page carries the column header and a "Page i of N" footer.
- Archiving the rendered report (Document, source=REPORT) is best effort:
  a storage failure is logged and the caller still receives the report.
"""

PDF_MIMETYPE = "application/pdf"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

FORMATS = {
    "pdf": ("PDF", PDF_MIMETYPE, "pdf"),
    "xlsx": ("Excel", XLSX_MIMETYPE, "xlsx"),
}

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"


@dataclass(frozen=True)
class RenderedReport:
    content: bytes
    mimetype: str
    filename: str


@dataclass(frozen=True)
class ReportContext:
    company_name: str
    company_address: str
    company_phone: str
    company_email: str
    currency: str
    printed_by: str
    printed_at: datetime
    report_id: str

    @property
    def stamp_ms(self) -> int:
        return int(self.printed_at.timestamp() * 1000)

    @property
    def iso_date(self) -> str:
        return self.printed_at.strftime("%Y-%m-%d")

    @property
    def print_date_label(self) -> str:
        return self.printed_at.strftime("%m/%d/%Y, %I:%M:%S %p")


def _report_timezone():
    name = current_app.config.get("REPORT_TIMEZONE") or "UTC"
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        current_app.logger.warning("Unknown REPORT_TIMEZONE %s; using UTC", name)
        return timezone.utc


def build_report_context(printed_by=None, *, now: datetime | None = None) -> ReportContext:
    """Letterhead details from config plus print time in the report timezone."""
    cfg = current_app.config
    printed_at = to_zone(now or utcnow(), _report_timezone())

    return ReportContext(
        company_name=cfg.get("COMPANY_NAME", ""),
        company_address=cfg.get("COMPANY_ADDRESS", ""),
        company_phone=cfg.get("COMPANY_PHONE", ""),
        company_email=cfg.get("COMPANY_EMAIL", ""),
        currency=cfg.get("CURRENCY_LABEL", "RM"),
        printed_by=normalize_actor(printed_by),
        printed_at=printed_at,
        report_id=f"REP-{int(printed_at.timestamp() * 1000)}",
    )


def report_filename(table: ReportTable, ctx: ReportContext, extension: str) -> str:
    return f"{table.filename_stem}_{ctx.iso_date}_{ctx.stamp_ms}.{extension}"


# =============================================================================
# PDF (reportlab)
# =============================================================================

def _fit(text: str, font: str, size: float, width: float) -> str:
    """Trim text with an ellipsis so it fits inside a cell."""
    if stringWidth(text, font, size) <= width:
        return text
    while text and stringWidth(text + "...", font, size) > width:
        text = text[:-1]
    return text + "..."


def _letterhead_lines(table: ReportTable, ctx: ReportContext) -> list[str]:
    details = table.meta_lines or [("Status", "Final")]
    return (
        [f"Print Date: {ctx.print_date_label}", f"Report ID: {ctx.report_id}"]
        + [f"{label}: {value}" for label, value in details]
        + [f"Printed by: {ctx.printed_by}"]
    )


def _draw_letterhead(c, table: ReportTable, ctx: ReportContext, g: PageGeometry, lines: list[str]) -> None:
    top = g.letterhead_top

    c.setFont(FONT_BOLD, 20)
    c.drawString(g.margin, g.height - top - 20, ctx.company_name)
    c.setFont(FONT, 10)
    c.drawString(g.margin, g.height - 70 - 10, ctx.company_address)
    c.drawString(g.margin, g.height - 85 - 10, f"Phone: {ctx.company_phone}")
    c.drawString(g.margin, g.height - 100 - 10, f"Email: {ctx.company_email}")

    c.setFont(FONT_BOLD, 15)
    c.drawString(620, g.height - top - 15, table.title)
    c.setFont(FONT, 9)
    for i, line in enumerate(lines):
        line_top = top + 23 + g.letterhead_line_step * i
        c.drawString(620, g.height - line_top - 9, _fit(line, FONT, 9, g.width - g.margin - 620))

    bottom = g.letterhead_bottom(len(lines))
    c.setLineWidth(1)
    c.line(g.margin, g.height - bottom, g.width - g.margin, g.height - bottom)


def _draw_header_row(c, table: ReportTable, g: PageGeometry, y: float) -> None:
    base = g.height - y - g.row_height
    c.setFont(FONT_BOLD, 8.5)
    for col in table.columns:
        c.setFillColor(colors.lightgrey)
        c.rect(col.x, base, col.width, g.row_height, stroke=1, fill=1)
        c.setFillColor(colors.black)
        c.drawString(col.x + 3, g.height - y - 12.5, _fit(col.title, FONT_BOLD, 8.5, col.width - 6))


def _draw_row(c, table: ReportTable, row: dict, g: PageGeometry, y: float) -> None:
    base = g.height - y - g.row_height
    c.setFont(FONT, 8.5)
    for col in table.columns:
        c.rect(col.x, base, col.width, g.row_height, stroke=1, fill=0)
        text = _fit(table.cell_text(row, col), FONT, 8.5, col.width - 6)
        if col.kind == "text":
            c.drawString(col.x + 3, g.height - y - 12.5, text)
        else:
            c.drawRightString(col.x + col.width - 3, g.height - y - 12.5, text)


def _draw_totals(c, table: ReportTable, g: PageGeometry, y: float) -> None:
    c.setLineWidth(1)
    c.rect(g.totals_x, g.height - y - g.totals_height, g.totals_width, g.totals_height, stroke=1, fill=0)
    for i, (label, value) in enumerate(table.summary):
        c.setFont(FONT_BOLD if i == len(table.summary) - 1 else FONT, 9.5)
        c.drawString(g.totals_x + 8, g.height - y - 18 - 18 * i, f"{label}: {value}")


def _draw_footer(c, ctx: ReportContext, g: PageGeometry, page_number: int, page_count: int) -> None:
    line_y = g.margin + 24
    c.setLineWidth(0.5)
    c.line(g.margin, line_y, g.width - g.margin, line_y)
    c.setFont(FONT, 8)
    c.drawString(g.margin, g.margin + 10, f"Generated by {ctx.company_name} Inventory System")
    c.drawRightString(g.width - g.margin, g.margin + 10, f"Page {page_number} of {page_count}")


def render_pdf(
    table: ReportTable,
    ctx: ReportContext,
    *,
    geometry: PageGeometry = A4_LANDSCAPE,
) -> bytes:
    """
    Draw the report on A4 landscape pages.

    Pagination is planned up front so the footer can print the final page
    count on every page.
    """
    lines = _letterhead_lines(table, ctx)
    pages = paginate(
        len(table.rows),
        geometry,
        first_table_top=geometry.first_table_top(len(lines)),
    )

    compress = current_app.config.get("REPORT_PDF_COMPRESSION", True)
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(geometry.width, geometry.height), pageCompression=1 if compress else 0)
    c.setTitle(f"{ctx.company_name} - {table.sheet_title}")
    c.setAuthor(ctx.printed_by)

    for page in pages:
        if page.number == 1:
            _draw_letterhead(c, table, ctx, geometry, lines)
        _draw_header_row(c, table, geometry, page.header_y)
        for idx, y in page.rows:
            _draw_row(c, table, table.rows[idx], geometry, y)
        if page.totals_y is not None:
            _draw_totals(c, table, geometry, page.totals_y)
        _draw_footer(c, ctx, geometry, page.number, len(pages))
        c.showPage()

    c.save()
    return buf.getvalue()


# =============================================================================
# XLSX (openpyxl)
# =============================================================================

def render_xlsx(table: ReportTable, ctx: ReportContext) -> bytes:
    """Title, date, blank, header, one row per record, blank, totals."""
    wb = Workbook()
    ws = wb.active
    ws.title = table.sheet_title[:31]

    ws.append([f"{ctx.company_name} - {table.sheet_title}"])
    ws.append(["Date:", ctx.iso_date])
    for label, value in table.meta_lines:
        ws.append([f"{label}:", value])
    ws.append([])

    ws.append([col.title for col in table.columns])
    for row in table.rows:
        ws.append(table.flat_row(row))

    ws.append([])
    ws.append(table.flat_totals_row())

    for idx, col in enumerate(table.columns):
        ws.column_dimensions[get_column_letter(idx + 1)].width = max(10, round(col.width / 6))

    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


# =============================================================================
# Report entry points
# =============================================================================

def _render(table: ReportTable, ctx: ReportContext, fmt: str) -> tuple[RenderedReport, str]:
    fmt = (fmt or "").lower()
    if fmt not in FORMATS:
        raise ValidationError(f"format must be one of: {', '.join(FORMATS)}")
    label, mimetype, extension = FORMATS[fmt]

    if fmt == "pdf":
        content = render_pdf(table, ctx)
    else:
        content = render_xlsx(table, ctx)

    return RenderedReport(
        content=content,
        mimetype=mimetype,
        filename=report_filename(table, ctx, extension),
    ), label


def _archive(report: RenderedReport, *, user: str, action: str) -> None:
    """Keep a copy of the generated report as a document, then log it."""
    try:
        store_document(
            data=report.content,
            name=report.filename,
            content_type=report.mimetype,
            user=user,
            source="REPORT",
            log=False,
        )
        current_app.logger.info("Archived report %s", report.filename)
    except (StoreUnavailableError, SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("Failed to archive report %s", report.filename)

    log_activity(user, action)


def inventory_snapshot() -> list[dict]:
    """Every item with its ledger-derived quantity, in creation order."""
    items = db.session.query(InventoryItem).order_by(InventoryItem.id.asc()).all()
    levels = stock_levels(item.id for item in items)
    return [item.to_dict(quantity=levels.get(item.id, 0)) for item in items]


def inventory_report(*, fmt: str, user=None, now: datetime | None = None) -> RenderedReport:
    actor = normalize_actor(user)
    ctx = build_report_context(actor, now=now)
    table = build_inventory_table(inventory_snapshot(), currency=ctx.currency)

    report, label = _render(table, ctx, fmt)
    _archive(report, user=actor, action=f"Generated Inventory Report {label}: {report.filename}")
    return report


def order_report(*, kind: str, order_id: int, fmt: str, user=None, now: datetime | None = None) -> RenderedReport:
    order = get_order(kind, order_id)
    actor = normalize_actor(user)
    ctx = build_report_context(actor, now=now)
    table = build_order_table(order, currency=ctx.currency)

    report, label = _render(table, ctx, fmt)
    _archive(
        report,
        user=actor,
        action=f"Generated {table.sheet_title} {label}: {report.filename}",
    )
    return report
