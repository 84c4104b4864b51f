from datetime import date, datetime, timedelta, timezone

import pytest

from fireworks_orders.services.document_renderer import (
    build_layout,
    render,
    split_address,
    truncate_name,
)
from fireworks_orders.services.pricing import compute_totals, line_total

PARTY = {
    "customer_name": "Ravi Kumar",
    "address": "12 Main Road, Near Bus Stand, Sivakasi",
    "mobile_number": "9876543210",
    "district": "Virudhunagar",
    "state": "Tamil Nadu",
    "customer_type": "User",
}
MONETARY = {"net_rate": 1300.0, "you_save": 30.0, "additional_discount": 0.0}


def item(name, price, discount, quantity=1, unit="Box"):
    return {"product_id": 1, "product_type": "sparklers", "display_name": name, "unit_label": unit,
            "unit_price": price, "discount_percent": discount, "quantity": quantity}


def test_rows_match_line_items():
    items = [item("Flower Pots", 100, 10, 3), item("Rockets", 200, 20, 2), item("Gift Box", 500, 0, 2)]
    layout = build_layout("quotation", "Q-1", PARTY, items, MONETARY, date(2024, 10, 1))

    rows = layout.rows
    assert [r.serial for r in rows] == [1, 2, 3]
    assert [r.name for r in rows] == ["Flower Pots", "Rockets", "Gift Box"]
    assert [r.line_total for r in rows] == [line_total(i) for i in items]
    assert [s.title for s in layout.segments] == ["Discounted Items", "Net Rate Items"]


def test_discounted_block_comes_first():
    items = [item("Gift Box", 500, 0), item("Rockets", 200, 20)]
    layout = build_layout("booking", "ORD-1", PARTY, items, MONETARY, date(2024, 10, 1))

    assert [r.name for r in layout.rows] == ["Rockets", "Gift Box"]
    assert layout.title == "Estimate Bill"
    assert layout.id_label == "Order ID"


def test_header_lines():
    layout = build_layout("quotation", "Q-1", dict(PARTY, customer_type="Customer of Selected Agent",
                                                   agent_name="Kumar Agencies"),
                          [item("Rockets", 200, 20)], MONETARY, date(2024, 10, 1))

    assert "Quotation ID: Q-1" in layout.party_lines
    assert "Date: 01/10/2024" in layout.party_lines
    assert "Customer Type: Customer - Agent" in layout.party_lines
    assert "Agent: Kumar Agencies" in layout.party_lines


def test_long_table_continues_on_next_page():
    items = [item(f"Item {n}", 10, 5) for n in range(40)]
    layout = build_layout("quotation", "Q-1", PARTY, items, MONETARY, date(2024, 10, 1))

    assert layout.page_count > 1
    assert any(s.continued for s in layout.segments)
    assert len(layout.rows) == 40
    assert layout.footer_page == layout.page_count - 1


@pytest.mark.parametrize("net_rate,you_save,extra", [
    (1000.0, 100.0, 0.0),
    (1000.0, 100.0, 5.0),
    (333.33, 33.33, 12.5),
])
def test_grand_total(net_rate, you_save, extra):
    totals = compute_totals(net_rate, you_save, extra)
    subtotal = net_rate - you_save
    assert totals.grand_total == round(subtotal - subtotal * extra / 100, 2)


def test_truncate_name():
    assert truncate_name("Short") == "Short"
    assert truncate_name("A" * 31) == "A" * 27 + "..."
    assert truncate_name(None) == "N/A"


def test_split_address():
    first, second = split_address("12 Main Road, Near Bus Stand, Sivakasi")
    assert len(first) <= 30
    assert f"{first} {second}" == "12 Main Road, Near Bus Stand, Sivakasi"


def test_render_is_deterministic():
    items = [item("Rockets", 200, 20, 2)]
    first = render("booking", "ORD-1", PARTY, items, MONETARY, date(2024, 10, 1))
    second = render("booking", "ORD-1", PARTY, items, MONETARY, date(2024, 10, 1))

    assert first.startswith(b"%PDF")
    assert first == second


def test_issue_date_is_printed_in_utc():
    created_at = datetime(2024, 10, 1, 22, 30, tzinfo=timezone.utc)
    reread = created_at.astimezone(timezone(timedelta(hours=5, minutes=30)))
    items = [item("Rockets", 200, 20, 2)]

    layout = build_layout("booking", "ORD-1", PARTY, items, MONETARY, reread)

    assert "Date: 01/10/2024" in layout.party_lines
    assert (render("booking", "ORD-1", PARTY, items, MONETARY, created_at)
            == render("booking", "ORD-1", PARTY, items, MONETARY, reread))
