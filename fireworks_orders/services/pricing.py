"""
Money arithmetic shared by the order builder and the document renderer
"""
from dataclasses import dataclass
from typing import Iterable, Mapping


def discounted_rate(unit_price: float, discount_percent: float) -> float:
    return unit_price - (unit_price * discount_percent / 100)


def line_total(item: Mapping) -> float:
    """Discounted rate times quantity for a stored line item"""
    return discounted_rate(item["unit_price"], item["discount_percent"]) * item["quantity"]


def line_items_total(items: Iterable[Mapping]) -> float:
    return round(sum(line_total(item) for item in items), 2)


@dataclass(frozen=True)
class Totals:
    net_rate: float
    you_save: float
    subtotal: float
    additional_discount: float
    extra_discount: float
    grand_total: float


def compute_totals(net_rate: float, you_save: float, additional_discount: float) -> Totals:
    """
    subtotal = net_rate - you_save; the additional discount percentage is
    applied on top of the subtotal.
    """
    subtotal = net_rate - you_save
    extra_discount = subtotal * additional_discount / 100 if additional_discount > 0 else 0.0
    return Totals(
        net_rate=round(net_rate, 2),
        you_save=round(you_save, 2),
        subtotal=round(subtotal, 2),
        additional_discount=additional_discount,
        extra_discount=round(extra_discount, 2),
        grand_total=round(subtotal - extra_discount, 2),
    )


def format_amount(value: float, prefix: str = "Rs.") -> str:
    return f"{prefix}{value:.2f}"
