"""
Order Builder - validates and enriches raw quotation/booking requests

Pure validation and enrichment: reads the catalog and customers, never writes.
"""
import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from fireworks_orders.exceptions import ValidationError
from fireworks_orders.logger import get_logger
from fireworks_orders.models.order import OrderKind
from fireworks_orders.schemas.order import LineItemRequest, MonetaryFields, OrderCreateBase
from fireworks_orders.services.catalog_lookup import CatalogLookup
from fireworks_orders.services.party_resolver import (
    CUSTOMER_TYPE_USER,
    PartyResolver,
    PartySnapshot,
)
from fireworks_orders.services.pricing import line_items_total

logger = get_logger(__name__)

REFERENCE_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
CUSTOM_PRODUCT_TYPE = "custom"
MONETARY_FIELDS = ("net_rate", "you_save", "promo_discount", "additional_discount")


@dataclass
class Monetary:
    net_rate: float = 0.0
    you_save: float = 0.0
    promo_discount: float = 0.0
    additional_discount: float = 0.0
    total: float = 0.0

    def as_dict(self) -> dict:
        return {
            "net_rate": self.net_rate,
            "you_save": self.you_save,
            "promo_discount": self.promo_discount,
            "additional_discount": self.additional_discount,
            "total": self.total,
        }


@dataclass
class OrderDraft:
    kind: OrderKind
    reference: str
    party: PartySnapshot
    line_items: List[dict]
    monetary: Monetary
    quotation_ref: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


def validate_reference(reference: Optional[str], label: str = "Order ID") -> str:
    if not reference or not REFERENCE_PATTERN.fullmatch(reference):
        raise ValidationError(f"Invalid or missing {label}")
    return reference


def _finite(value: float, name: str) -> float:
    if value is None or not math.isfinite(value):
        raise ValidationError(f"{name} must be a valid number")
    return float(value)


def parse_total(total: Optional[float]) -> float:
    if total is None or not math.isfinite(total) or total <= 0:
        raise ValidationError("Total must be a positive number")
    return float(total)


def parse_monetary(fields: MonetaryFields) -> Monetary:
    """Monetary fields of a create request; absent values default to 0"""
    values = {
        name: _finite(getattr(fields, name) if getattr(fields, name) is not None else 0.0, name)
        for name in MONETARY_FIELDS
    }
    return Monetary(total=parse_total(fields.total), **values)


def merge_monetary(current: Monetary, fields: MonetaryFields) -> Monetary:
    """Monetary fields of a patch applied over the stored values"""
    merged = current.as_dict()
    for name in MONETARY_FIELDS:
        value = getattr(fields, name)
        if value is not None:
            merged[name] = _finite(value, name)
    if fields.total is not None:
        merged["total"] = parse_total(fields.total)
    return Monetary(**merged)


def build_line_items(products: Optional[Sequence[LineItemRequest]], catalog: CatalogLookup) -> List[dict]:
    """
    Validate line items and attach the catalog's unit label.

    Raises:
        ValidationError: On empty list or malformed entry
        NotFound: If a non-custom item does not resolve in the catalog
    """
    if not products:
        raise ValidationError("Products array is required and must not be empty")

    items = []
    for product in products:
        price = product.price
        discount = product.discount if product.discount is not None else 0.0
        if (
            product.quantity < 1
            or not math.isfinite(price) or price < 0
            or not math.isfinite(discount) or discount < 0 or discount > 100
        ):
            raise ValidationError("Invalid product entry")

        if product.product_type.strip().lower() == CUSTOM_PRODUCT_TYPE:
            display_name = product.productname or "Custom item"
            unit_label = product.per or ""
            product_type = CUSTOM_PRODUCT_TYPE
            product_id = product.id
        else:
            if product.id in (None, ""):
                raise ValidationError("Invalid product entry")
            entry = catalog.resolve(product.product_type, product.id)
            display_name = product.productname or entry.display_name
            unit_label = entry.unit_label
            product_type = product.product_type
            product_id = entry.product_id

        items.append({
            "product_id": product_id,
            "product_type": product_type,
            "display_name": display_name,
            "unit_label": unit_label,
            "unit_price": float(price),
            "discount_percent": float(discount),
            "quantity": int(product.quantity),
        })
    return items


def resolve_party(request: OrderCreateBase, parties: PartyResolver) -> PartySnapshot:
    if request.customer_id:
        # Resolved customer type wins over whatever the client sent
        return parties.resolve(request.customer_id)

    customer_type = request.customer_type or CUSTOMER_TYPE_USER
    if customer_type != CUSTOMER_TYPE_USER:
        raise ValidationError('Customer type must be "User" for orders without customer ID')

    required = ("customer_name", "address", "district", "state", "mobile_number")
    if any(not (getattr(request, name) or "").strip() for name in required):
        raise ValidationError("All customer details must be provided")

    return PartySnapshot(
        customer_id=None,
        customer_name=request.customer_name.strip(),
        address=request.address.strip(),
        mobile_number=request.mobile_number.strip(),
        email=str(request.email) if request.email else None,
        district=request.district.strip(),
        state=request.state.strip(),
        customer_type=CUSTOMER_TYPE_USER,
    )


def build_order(
    kind: OrderKind,
    request: OrderCreateBase,
    reference: str,
    catalog: CatalogLookup,
    parties: PartyResolver,
    quotation_ref: Optional[str] = None,
) -> OrderDraft:
    """
    Turn a raw quotation/booking request into a validated OrderDraft

    Raises:
        ValidationError: Malformed id, items, amounts or party details
        NotFound: Unknown customer or catalog entry
    """
    label = "Quotation ID" if kind == OrderKind.QUOTATION else "Order ID"
    validate_reference(reference, label)
    if quotation_ref is not None:
        validate_reference(quotation_ref, "Quotation ID")

    if not request.products:
        raise ValidationError("Products array is required and must not be empty")
    monetary = parse_monetary(request)
    party = resolve_party(request, parties)
    line_items = build_line_items(request.products, catalog)

    draft = OrderDraft(
        kind=kind,
        reference=reference,
        party=party,
        line_items=line_items,
        monetary=monetary,
        quotation_ref=quotation_ref,
    )

    expected = line_items_total(line_items)
    if not (monetary.additional_discount or monetary.promo_discount) and abs(expected - monetary.total) > 0.01:
        message = f"asserted total {monetary.total:.2f} differs from line totals {expected:.2f}"
        draft.warnings.append(message)
        logger.warning(f"{kind.value} {reference}: {message}")

    return draft
