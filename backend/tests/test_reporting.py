from datetime import datetime, timezone
from io import BytesIO

from openpyxl import load_workbook

from invdocs.models import ActivityLog, Document
from invdocs.services import inventory_service, order_service, reporting_service
from invdocs.services.report_layout import build_inventory_table, format_cents
from invdocs.validation import StoreUnavailableError


NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _seed_items(count):
    for i in range(count):
        inventory_service.create_item(
            patch={
                "sku": f"SKU-{i:03d}",
                "name": f"Item {i}",
                "category": "General",
                "unit_cost_cents": 200 + i,
                "unit_price_cents": 350 + i,
                "quantity": i + 1,
            },
            user="tester",
        )


def test_inventory_xlsx_layout_and_totals(app, db_session):
    _seed_items(3)

    report = reporting_service.inventory_report(fmt="xlsx", user="alice", now=NOW)

    assert report.mimetype == reporting_service.XLSX_MIMETYPE
    assert report.filename.startswith("Inventory_Report_2026-03-01_")
    assert report.filename.endswith(".xlsx")

    ws = load_workbook(BytesIO(report.content)).active
    rows = list(ws.iter_rows(values_only=True))

    assert rows[0][0] == "L&B Company - Inventory Report"
    assert rows[1][:2] == ("Date:", "2026-03-01")
    assert rows[3][0] == "SKU"
    assert rows[4][:4] == ("SKU-000", "Item 0", "General", 1)
    assert rows[4][4] == "2.00"

    snapshot = reporting_service.inventory_snapshot()
    table = build_inventory_table(snapshot)
    totals_row = rows[-1]
    assert totals_row[6] == format_cents(table.totals["line_value_cents"])
    assert totals_row[7] == format_cents(table.totals["line_revenue_cents"])


def test_pdf_and_xlsx_totals_reconcile(app, db_session):
    _seed_items(5)
    ctx = reporting_service.build_report_context("alice", now=NOW)
    table = build_inventory_table(reporting_service.inventory_snapshot(), currency=ctx.currency)

    pdf = reporting_service.render_pdf(table, ctx)
    ws = load_workbook(BytesIO(reporting_service.render_xlsx(table, ctx))).active
    totals_row = list(ws.iter_rows(values_only=True))[-1]

    value_text = f"Total Inventory Value: RM {totals_row[6]}"
    revenue_text = f"Total Potential Revenue: RM {totals_row[7]}"
    assert value_text.encode() in pdf
    assert revenue_text.encode() in pdf


def test_pdf_pages_are_numbered(app, db_session):
    _seed_items(30)
    ctx = reporting_service.build_report_context("alice", now=NOW)
    table = build_inventory_table(reporting_service.inventory_snapshot())

    pdf = reporting_service.render_pdf(table, ctx)

    assert pdf.startswith(b"%PDF")
    assert b"Page 1 of 2" in pdf
    assert b"Page 2 of 2" in pdf
    assert b"Page 3 of" not in pdf


def test_empty_inventory_report_renders(app, db_session):
    ctx = reporting_service.build_report_context(None, now=NOW)
    table = build_inventory_table([])

    pdf = reporting_service.render_pdf(table, ctx)
    assert b"Total Inventory Value: RM 0.00" in pdf
    assert b"Total Potential Revenue: RM 0.00" in pdf
    assert b"Page 1 of 1" in pdf


def test_report_is_archived_and_logged(app, db_session):
    _seed_items(1)

    report = reporting_service.inventory_report(fmt="pdf", user="alice", now=NOW)

    doc = db_session.query(Document).filter_by(source="REPORT").one()
    assert doc.name == report.filename
    assert doc.size_bytes == len(report.content)

    latest = db_session.query(ActivityLog).order_by(ActivityLog.id.desc()).first()
    assert latest.action == f"Generated Inventory Report PDF: {report.filename}"
    assert latest.user == "alice"


def test_archive_failure_does_not_fail_report(app, db_session, monkeypatch):
    def unavailable(**kwargs):
        raise StoreUnavailableError("File storage unavailable")

    monkeypatch.setattr(reporting_service, "store_document", unavailable)

    report = reporting_service.inventory_report(fmt="xlsx", user="alice", now=NOW)

    assert report.content
    assert db_session.query(Document).count() == 0


def test_order_report_pdf(app, db_session):
    order = order_service.create_order(
        kind="ORDER",
        patch={
            "customer": "Acme",
            "lines": [{"sku": "A1", "name": "Widget", "qty": 3, "price_cents": 1250}],
        },
        user="alice",
    )

    report = reporting_service.order_report(kind="ORDER", order_id=order.id, fmt="pdf", user="alice", now=NOW)

    assert report.mimetype == "application/pdf"
    assert report.filename.startswith("Order_ORD-1_2026-03-01_")
    assert report.content.startswith(b"%PDF")


def test_report_routes(client, db_session):
    _seed_items(2)

    resp = client.get("/api/inventory/report/pdf", headers={"X-Username": "alice"})
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert "Inventory_Report_" in resp.headers["Content-Disposition"]

    resp = client.get("/api/inventory/report")
    assert resp.status_code == 200
    assert resp.mimetype == reporting_service.XLSX_MIMETYPE

    resp = client.get("/api/sales/999/report/pdf")
    assert resp.status_code == 404


def test_sale_pdf_and_xlsx_totals_reconcile(app, db_session):
    sale = order_service.create_order(
        kind="SALE",
        patch={
            "customer": "Acme",
            "lines": [
                {"sku": "A1", "name": "Widget", "qty": 2, "price_cents": 450},
                {"sku": "B2", "name": "Bolt", "qty": 10, "price_cents": 15},
            ],
        },
        user="alice",
    )

    pdf = reporting_service.order_report(kind="SALE", order_id=sale.id, fmt="pdf", user="alice", now=NOW)
    xlsx = reporting_service.order_report(kind="SALE", order_id=sale.id, fmt="xlsx", user="alice", now=NOW)

    rows = list(load_workbook(BytesIO(xlsx.content)).active.iter_rows(values_only=True))
    header = rows[rows.index(("No.", "SKU", "Item", "Quantity", "Unit Price", "Line Total"))]
    totals_row = rows[-1]

    assert totals_row[0] == "Totals"
    assert totals_row[header.index("Quantity")] == 12
    assert totals_row[header.index("Line Total")] == "10.50"
    assert f"Total Quantity: {totals_row[3]} units".encode() in pdf.content
    assert f"Sale Total: RM {totals_row[5]}".encode() in pdf.content


def test_totals_overflow_page_repeats_column_header(app, db_session):
    # 18 rows fill page 1, so the totals block is pushed to page 2
    _seed_items(18)
    ctx = reporting_service.build_report_context("alice", now=NOW)
    table = build_inventory_table(reporting_service.inventory_snapshot(), currency=ctx.currency)

    pdf = reporting_service.render_pdf(table, ctx)

    assert b"Page 2 of 2" in pdf
    assert pdf.count(b"(Product Name)") == 2


def test_pdf_compression_follows_config(app, db_session, monkeypatch):
    ctx = reporting_service.build_report_context("alice", now=NOW)
    table = build_inventory_table([])

    monkeypatch.setitem(app.config, "REPORT_PDF_COMPRESSION", True)
    compressed = reporting_service.render_pdf(table, ctx)

    monkeypatch.setitem(app.config, "REPORT_PDF_COMPRESSION", False)
    plain = reporting_service.render_pdf(table, ctx)

    assert compressed.startswith(b"%PDF")
    assert b"Page 1 of 1" in plain
    assert b"Page 1 of 1" not in compressed
