"""
Document Renderer - quotation / estimate bill PDFs

build_layout() is a pure function from order data to a page layout;
render() draws that layout with reportlab. Neither touches the file system
or the database. The date printed is whatever `issued_on` the caller passes,
and the canvas runs in invariant mode, so equal input gives equal bytes.
"""
import io
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Mapping, Optional, Sequence, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from fireworks_orders.config import settings
from fireworks_orders.services.pricing import (
    Totals,
    compute_totals,
    discounted_rate,
    format_amount,
)

# ─── PAGE GEOMETRY (points, measured from the top edge) ───
PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50
TABLE_TOP = 250
ROW_HEIGHT = 25
BLOCK_TITLE_HEIGHT = 20
BLOCK_GAP = 15
TOTALS_HEIGHT = 110
FOOTER_HEIGHT = 50
BOTTOM_LIMIT = PAGE_HEIGHT - MARGIN - 50

TABLE_WIDTH = 500
COLUMNS = [
    # (header, x, width, align)
    ("Sl.No", 50, 30, "center"),
    ("Product", 80, 150, "left"),
    ("Qty", 230, 40, "center"),
    ("Rate", 270, 70, "left"),
    ("Disc Rate", 340, 70, "left"),
    ("Per", 410, 40, "center"),
    ("Total", 450, 100, "left"),
]

NAME_LIMIT = 30
DISCOUNTED_TITLE = "Discounted Items"
NET_RATE_TITLE = "Net Rate Items"
AGENT_CUSTOMER_TYPE = "Customer of Selected Agent"


@dataclass(frozen=True)
class LineRow:
    serial: int
    name: str
    quantity: int
    rate: float
    discounted_rate: float
    unit_label: str
    line_total: float

    def cells(self, prefix: str) -> Tuple[str, ...]:
        return (
            str(self.serial),
            self.name,
            str(self.quantity),
            format_amount(self.rate, prefix),
            format_amount(self.discounted_rate, prefix),
            self.unit_label or "N/A",
            format_amount(self.line_total, prefix),
        )


@dataclass
class TableSegment:
    """Part of one block that fits on one page; header row is always drawn"""
    title: str
    page: int
    top: float
    continued: bool = False
    rows: List[LineRow] = field(default_factory=list)


@dataclass
class DocumentLayout:
    title: str
    id_label: str
    reference: str
    issued_on: str
    seller_lines: List[str]
    party_lines: List[str]
    segments: List[TableSegment]
    totals: Totals
    totals_page: int
    totals_top: float
    footer_page: int
    footer_top: float
    page_count: int

    @property
    def rows(self) -> List[LineRow]:
        return [row for segment in self.segments for row in segment.rows]


def truncate_name(name: Optional[str]) -> str:
    name = name or "N/A"
    if len(name) > NAME_LIMIT:
        return name[:NAME_LIMIT - 3] + "..."
    return name


def split_address(address: Optional[str], width: int = 30) -> Tuple[str, str]:
    """Wrap an address once, on the last space before `width`"""
    address = address or "N/A"
    if len(address) <= width:
        return address, ""
    split_at = address.rfind(" ", 0, width + 1)
    if split_at <= 0:
        return address[:width], address[width:]
    return address[:split_at], address[split_at + 1:]


def _format_date(issued_on) -> str:
    # Stored timestamps are UTC; print the UTC day whatever zone the driver hands back
    if isinstance(issued_on, datetime) and issued_on.tzinfo is not None:
        issued_on = issued_on.astimezone(timezone.utc)
    if isinstance(issued_on, (datetime, date)):
        return issued_on.strftime("%d/%m/%Y")
    return str(issued_on)


def _party_lines(kind: str, reference: str, order: Mapping, issued_on: str) -> List[str]:
    id_label = "Quotation ID" if kind == "quotation" else "Order ID"
    customer_type = order.get("customer_type") or "User"
    if customer_type == AGENT_CUSTOMER_TYPE:
        customer_type = "Customer - Agent"
    address_1, address_2 = split_address(order.get("address"))

    lines = [
        f"{id_label}: {reference}",
        f"Date: {issued_on}",
        f"Customer: {order.get('customer_name') or 'N/A'}",
        f"Contact: {order.get('mobile_number') or 'N/A'}",
        f"Address: {address_1}",
    ]
    if address_2:
        lines.append(address_2)
    lines.extend([
        f"District: {order.get('district') or 'N/A'}",
        f"State: {order.get('state') or 'N/A'}",
        f"Customer Type: {customer_type}",
    ])
    if order.get("agent_name"):
        lines.append(f"Agent: {order['agent_name']}")
    return lines


def _rows(line_items: Sequence[Mapping]) -> Tuple[List[LineRow], List[LineRow]]:
    discounted, net_rate = [], []
    for item in line_items:
        target = discounted if item["discount_percent"] > 0 else net_rate
        rate = discounted_rate(item["unit_price"], item["discount_percent"])
        target.append(LineRow(
            serial=0,
            name=truncate_name(item.get("display_name")),
            quantity=item["quantity"],
            rate=item["unit_price"],
            discounted_rate=rate,
            unit_label=item.get("unit_label") or "",
            line_total=rate * item["quantity"],
        ))

    # Serial numbers run on across both blocks
    numbered, serial = [], 1
    for block in (discounted, net_rate):
        renumbered = []
        for row in block:
            renumbered.append(LineRow(serial, row.name, row.quantity, row.rate,
                                      row.discounted_rate, row.unit_label, row.line_total))
            serial += 1
        numbered.append(renumbered)
    return numbered[0], numbered[1]


def build_layout(kind: str, reference: str, order: Mapping, line_items: Sequence[Mapping],
                 monetary: Mapping, issued_on) -> DocumentLayout:
    """Paginate the two item blocks, the totals block and the footer"""
    issued = _format_date(issued_on)
    discounted, net_rate = _rows(line_items)

    page, y = 0, TABLE_TOP
    segments: List[TableSegment] = []
    for title, rows in ((DISCOUNTED_TITLE, discounted), (NET_RATE_TITLE, net_rate)):
        if not rows:
            continue
        if y + BLOCK_TITLE_HEIGHT + 2 * ROW_HEIGHT > BOTTOM_LIMIT:
            page, y = page + 1, MARGIN + 20
        segment = TableSegment(title=title, page=page, top=y)
        y += BLOCK_TITLE_HEIGHT + ROW_HEIGHT
        for row in rows:
            if y + ROW_HEIGHT > BOTTOM_LIMIT:
                segments.append(segment)
                page, y = page + 1, MARGIN + 20
                segment = TableSegment(title=title, page=page, top=y, continued=True)
                y += BLOCK_TITLE_HEIGHT + ROW_HEIGHT
            segment.rows.append(row)
            y += ROW_HEIGHT
        segments.append(segment)
        y += BLOCK_GAP

    if y + TOTALS_HEIGHT > BOTTOM_LIMIT:
        page, y = page + 1, MARGIN + 20
    totals_page, totals_top = page, y
    y += TOTALS_HEIGHT

    if y + FOOTER_HEIGHT > BOTTOM_LIMIT:
        page, y = page + 1, MARGIN + 20
    footer_page, footer_top = page, y

    totals = compute_totals(
        float(monetary.get("net_rate") or 0),
        float(monetary.get("you_save") or 0),
        float(monetary.get("additional_discount") or 0),
    )

    return DocumentLayout(
        title="Quotation" if kind == "quotation" else "Estimate Bill",
        id_label="Quotation ID" if kind == "quotation" else "Order ID",
        reference=reference,
        issued_on=issued,
        seller_lines=[
            settings.COMPANY_NAME,
            settings.COMPANY_TOWN,
            f"Mobile: {settings.COMPANY_PHONE}",
            f"Email: {settings.COMPANY_EMAIL}",
            f"Website: {settings.COMPANY_WEBSITE}",
        ],
        party_lines=_party_lines(kind, reference, order, issued),
        segments=segments,
        totals=totals,
        totals_page=totals_page,
        totals_top=totals_top,
        footer_page=footer_page,
        footer_top=footer_top,
        page_count=page + 1,
    )


# ─── DRAWING ───

def _y(top: float) -> float:
    return PAGE_HEIGHT - top


def _cell(c: canvas.Canvas, text: str, x: float, width: float, align: str, top: float) -> None:
    baseline = _y(top + 10)
    if align == "center":
        c.drawCentredString(x + width / 2, baseline, text)
    else:
        c.drawString(x + 5, baseline, text)


def _row_grid(c: canvas.Canvas, top: float) -> None:
    c.line(MARGIN, _y(top - 5), MARGIN + TABLE_WIDTH, _y(top - 5))
    c.line(MARGIN, _y(top + 15), MARGIN + TABLE_WIDTH, _y(top + 15))
    for _, x, _, _ in COLUMNS:
        c.line(x, _y(top - 5), x, _y(top + 15))
    c.line(MARGIN + TABLE_WIDTH, _y(top - 5), MARGIN + TABLE_WIDTH, _y(top + 15))


def _draw_header(c: canvas.Canvas, layout: DocumentLayout) -> None:
    c.setFont("Helvetica-Bold", 20)
    c.drawCentredString(PAGE_WIDTH / 2, _y(65), layout.title)

    c.setFont("Helvetica", 12)
    for i, line in enumerate(layout.seller_lines):
        c.drawString(MARGIN, _y(90 + i * 15), line)
    for i, line in enumerate(layout.party_lines):
        c.drawRightString(PAGE_WIDTH - MARGIN, _y(90 + i * 15), line)


def _draw_segment(c: canvas.Canvas, segment: TableSegment, prefix: str) -> None:
    top = segment.top
    title = f"{segment.title} (continued)" if segment.continued else segment.title
    c.setFont("Helvetica-Bold", 11)
    c.drawString(MARGIN, _y(top + 5), title)
    top += BLOCK_TITLE_HEIGHT

    c.setFont("Helvetica-Bold", 10)
    for header, x, width, align in COLUMNS:
        _cell(c, header, x, width, align, top)
    _row_grid(c, top)
    top += ROW_HEIGHT

    c.setFont("Helvetica", 10)
    for row in segment.rows:
        for text, (_, x, width, align) in zip(row.cells(prefix), COLUMNS):
            _cell(c, text, x, width, align, top)
        _row_grid(c, top)
        top += ROW_HEIGHT


def _draw_totals(c: canvas.Canvas, layout: DocumentLayout, prefix: str) -> None:
    totals = layout.totals
    lines = [
        f"Net Rate: {format_amount(totals.net_rate, prefix)}",
        f"You Save: {format_amount(totals.you_save, prefix)}",
        f"Total: {format_amount(totals.subtotal, prefix)}",
    ]
    if totals.additional_discount > 0:
        lines.append(f"Discount ({totals.additional_discount:g}%): {format_amount(totals.extra_discount, prefix)}")
        lines.append(f"Grand Total: {format_amount(totals.grand_total, prefix)}")

    c.setFont("Helvetica-Bold", 10)
    for i, line in enumerate(lines):
        c.drawRightString(MARGIN + TABLE_WIDTH, _y(layout.totals_top + 10 + i * 20), line)


def _draw_footer(c: canvas.Canvas, layout: DocumentLayout) -> None:
    c.setFont("Helvetica", 10)
    c.drawCentredString(PAGE_WIDTH / 2, _y(layout.footer_top + 10), "Thank you for your business!")
    c.drawCentredString(
        PAGE_WIDTH / 2,
        _y(layout.footer_top + 25),
        f"For any queries, contact us at {settings.COMPANY_PHONE}"
    )


def draw(layout: DocumentLayout) -> bytes:
    """Draw a computed layout into PDF bytes"""
    prefix = settings.CURRENCY_PREFIX
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    c.setTitle(f"{layout.title} {layout.reference}")
    c.setAuthor(settings.COMPANY_NAME)

    for page in range(layout.page_count):
        if page == 0:
            _draw_header(c, layout)
        for segment in layout.segments:
            if segment.page == page:
                _draw_segment(c, segment, prefix)
        if layout.totals_page == page:
            _draw_totals(c, layout, prefix)
        if layout.footer_page == page:
            _draw_footer(c, layout)
        c.showPage()

    c.save()
    return buffer.getvalue()


def render(kind: str, reference: str, order: Mapping, line_items: Sequence[Mapping],
           monetary: Mapping, issued_on) -> bytes:
    """
    Render a quotation ("quotation") or estimate bill ("booking") to PDF bytes

    Args:
        kind: Order kind
        reference: Quotation id or order id
        order: Party snapshot fields (customer_name, address, ...)
        line_items: Stored line items
        monetary: net_rate, you_save, additional_discount, ...
        issued_on: Date printed on the document; pass the order's created_at
            for a reproducible artifact
    """
    return draw(build_layout(kind, reference, order, line_items, monetary, issued_on))
