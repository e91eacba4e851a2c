# Overview: Report tables, totals, money formatting and page layout (no rendering library here).

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping

"""
Report Layout Invariants (authoritative)

- Money is carried as integer cents; totals are exact integer sums.
- Rounding happens only at the formatting boundary (format_cents), half away
  from zero, to exactly two decimals.
- The PDF and XLSX renderers both read the same ReportTable, so their totals
  reconcile to the cent by construction.
- Pagination is planned before anything is drawn, so the total page count N
  is known when page i is stamped "Page i of N".
"""

CENT = Decimal("0.01")


def format_amount(amount) -> str:
    """Two-decimal text for a money amount (not cents)."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount or 0))
    return str(value.quantize(CENT, rounding=ROUND_HALF_UP))


def format_cents(cents) -> str:
    """Two-decimal text for an amount in cents, e.g. 1750 -> '17.50'."""
    value = cents if isinstance(cents, Decimal) else Decimal(int(cents or 0))
    return format_amount(value / 100)


@dataclass(frozen=True)
class Column:
    key: str
    title: str
    x: float
    width: float
    kind: str = "text"  # text | int | money


@dataclass
class ReportTable:
    title: str
    sheet_title: str
    filename_stem: str
    columns: tuple[Column, ...]
    unit_key: str
    rows: list[dict] = field(default_factory=list)
    unit_count: int = 0
    totals: dict[str, int] = field(default_factory=dict)
    summary: list[tuple[str, str]] = field(default_factory=list)
    meta_lines: list[tuple[str, str]] = field(default_factory=list)

    def cell_text(self, row: Mapping, column: Column, currency: str | None = None) -> str:
        value = row.get(column.key)
        if column.kind == "money":
            text = format_cents(value)
            return f"{currency} {text}" if currency else text
        if column.kind == "int":
            return str(int(value or 0))
        return "" if value is None else str(value)

    def flat_row(self, row: Mapping) -> list:
        """Spreadsheet values: ints stay numeric, money becomes two-decimal text."""
        out = []
        for column in self.columns:
            if column.kind == "int":
                out.append(int(row.get(column.key) or 0))
            else:
                out.append(self.cell_text(row, column))
        return out

    def flat_totals_row(self) -> list:
        """Label in the first column, unit count under unit_key, money totals under their columns."""
        out: list = ["" for _ in self.columns]
        out[0] = "Totals"
        for i, column in enumerate(self.columns):
            if column.key == self.unit_key:
                out[i] = self.unit_count
            elif column.key in self.totals:
                out[i] = format_cents(self.totals[column.key])
        return out


INVENTORY_COLUMNS = (
    Column("sku", "SKU", 40, 60),
    Column("name", "Product Name", 100, 160),
    Column("category", "Category", 260, 80),
    Column("quantity", "Quantity", 340, 60, "int"),
    Column("unit_cost_cents", "Unit Cost", 400, 80, "money"),
    Column("unit_price_cents", "Unit Price", 480, 80, "money"),
    Column("line_value_cents", "Total Inventory Value", 560, 110, "money"),
    Column("line_revenue_cents", "Total Potential Revenue", 670, 120, "money"),
)

ORDER_COLUMNS = (
    Column("position", "No.", 40, 40, "int"),
    Column("sku", "SKU", 80, 100),
    Column("name", "Item", 180, 260),
    Column("qty", "Quantity", 440, 70, "int"),
    Column("price_cents", "Unit Price", 510, 120, "money"),
    Column("line_total_cents", "Line Total", 630, 160, "money"),
)


def _get(record, key, default=None):
    if isinstance(record, Mapping):
        return record.get(key, default)
    return getattr(record, key, default)


def build_inventory_table(items: Iterable, currency: str = "RM") -> ReportTable:
    """
    Rows for the inventory snapshot.

    Each item exposes sku, name, category, quantity, unit_cost_cents and
    unit_price_cents (mapping or attribute access).
    line_value = quantity x unit_cost; line_revenue = quantity x unit_price.
    """
    table = ReportTable(
        title="INVENTORY REPORT",
        sheet_title="Inventory Report",
        filename_stem="Inventory_Report",
        columns=INVENTORY_COLUMNS,
        unit_key="quantity",
    )
    total_value = 0
    total_revenue = 0

    for item in items:
        qty = int(_get(item, "quantity") or 0)
        cost = int(_get(item, "unit_cost_cents") or 0)
        price = int(_get(item, "unit_price_cents") or 0)
        value = qty * cost
        revenue = qty * price

        table.unit_count += qty
        total_value += value
        total_revenue += revenue

        table.rows.append({
            "sku": _get(item, "sku") or "",
            "name": _get(item, "name") or "",
            "category": _get(item, "category") or "",
            "quantity": qty,
            "unit_cost_cents": cost,
            "unit_price_cents": price,
            "line_value_cents": value,
            "line_revenue_cents": revenue,
        })

    table.totals = {
        "line_value_cents": total_value,
        "line_revenue_cents": total_revenue,
    }
    table.summary = [
        ("Subtotal (Quantity)", f"{table.unit_count} units"),
        ("Total Inventory Value", f"{currency} {format_cents(total_value)}"),
        ("Total Potential Revenue", f"{currency} {format_cents(total_revenue)}"),
    ]
    return table


def build_order_table(order, currency: str = "RM") -> ReportTable:
    """Rows for a single order or sale; line_total = qty x price."""
    kind = _get(order, "kind") or "ORDER"
    label = "Sale" if kind == "SALE" else "Order"

    table = ReportTable(
        title=f"{label.upper()} REPORT",
        sheet_title=f"{label} Report",
        filename_stem=f"{label}_{_get(order, 'number') or 'Report'}",
        columns=ORDER_COLUMNS,
        unit_key="qty",
    )
    total = 0
    for position, line in enumerate(_get(order, "lines") or [], start=1):
        qty = int(_get(line, "qty") or 0)
        price = int(_get(line, "price_cents") or 0)
        line_total = qty * price

        table.unit_count += qty
        total += line_total
        table.rows.append({
            "position": position,
            "sku": _get(line, "sku") or "",
            "name": _get(line, "name") or "",
            "qty": qty,
            "price_cents": price,
            "line_total_cents": line_total,
        })

    table.totals = {"line_total_cents": total}
    table.summary = [
        ("Total Quantity", f"{table.unit_count} units"),
        ("Subtotal", f"{currency} {format_cents(total)}"),
        (f"{label} Total", f"{currency} {format_cents(total)}"),
    ]

    order_date = _get(order, "date")
    table.meta_lines = [
        (f"{label} No", str(_get(order, "number") or "")),
        ("Customer", str(_get(order, "customer") or "")),
        ("Contact", str(_get(order, "contact") or "")),
        ("Status", str(_get(order, "status") or "")),
        ("Date", order_date.strftime("%Y-%m-%d") if hasattr(order_date, "strftime") else str(order_date or "")),
    ]
    return table


# =============================================================================
# Page layout (top-down coordinates, points)
# =============================================================================

@dataclass(frozen=True)
class PageGeometry:
    """A4 landscape with the letterhead/table/footer bands of the printed report."""
    width: float = 841.89
    height: float = 595.28
    margin: float = 40
    row_height: float = 18
    letterhead_top: float = 40
    letterhead_line_step: float = 15
    letterhead_min_bottom: float = 130
    footer_height: float = 50
    totals_gap: float = 20
    totals_x: float = 560
    totals_width: float = 230
    totals_height: float = 68

    @property
    def body_bottom(self) -> float:
        return self.height - self.margin - self.footer_height

    def letterhead_bottom(self, right_line_count: int) -> float:
        # title at letterhead_top, detail lines start 23pt below it
        needed = self.letterhead_top + 23 + self.letterhead_line_step * right_line_count + 7
        return max(self.letterhead_min_bottom, needed)

    def first_table_top(self, right_line_count: int) -> float:
        return self.letterhead_bottom(right_line_count) + 20


A4_LANDSCAPE = PageGeometry()


@dataclass
class PagePlan:
    number: int
    header_y: float
    rows: list[tuple[int, float]] = field(default_factory=list)
    totals_y: float | None = None


def paginate(row_count: int, geometry: PageGeometry = A4_LANDSCAPE, *, first_table_top: float = 150) -> list[PagePlan]:
    """
    Plan every page before drawing.

    A row goes on the current page only if it ends above the printable
    bottom; otherwise a new page starts with the column header redrawn. The
    totals block follows the last row, or moves to a new page (which still
    carries the column header) when it does not fit.
    """
    bottom = geometry.body_bottom
    pages: list[PagePlan] = []
    page = PagePlan(number=1, header_y=first_table_top)
    y = first_table_top + geometry.row_height

    for idx in range(row_count):
        if y + geometry.row_height > bottom:
            pages.append(page)
            page = PagePlan(number=len(pages) + 1, header_y=geometry.margin)
            y = geometry.margin + geometry.row_height
        page.rows.append((idx, y))
        y += geometry.row_height

    totals_y = y + geometry.totals_gap
    if totals_y + geometry.totals_height > bottom:
        pages.append(page)
        page = PagePlan(number=len(pages) + 1, header_y=geometry.margin)
        totals_y = geometry.margin + geometry.row_height + geometry.totals_gap

    page.totals_y = totals_y
    pages.append(page)
    return pages
