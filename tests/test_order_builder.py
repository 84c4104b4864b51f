import pytest

from fireworks_orders.exceptions import NotFound, ValidationError
from fireworks_orders.models.order import OrderKind
from fireworks_orders.repositories.catalog_repository import CatalogRepository, CustomerRepository
from fireworks_orders.schemas.order import QuotationCreate
from fireworks_orders.services.catalog_lookup import CatalogLookup
from fireworks_orders.services.order_builder import build_order, validate_reference
from fireworks_orders.services.party_resolver import PartyResolver


@pytest.fixture
def build(seeded):
    catalog = CatalogLookup(CatalogRepository(seeded))
    parties = PartyResolver(CustomerRepository(seeded))

    def _build(reference="Q-1001", **fields):
        request = QuotationCreate(quotation_id=reference, **fields)
        return build_order(OrderKind.QUOTATION, request, reference, catalog, parties)
    return _build


def test_catalog_item_takes_unit_label_from_catalog(build, order_fields):
    draft = build(**order_fields())

    assert draft.reference == "Q-1001"
    assert draft.line_items == [{
        "product_id": 7,
        "product_type": "sparklers",
        "display_name": "10cm Electric Sparklers",
        "unit_label": "Box",
        "unit_price": 100.0,
        "discount_percent": 10.0,
        "quantity": 3,
    }]
    assert draft.monetary.total == 270
    assert draft.warnings == []


def test_custom_item_uses_supplied_unit(build, order_fields):
    products = [{"product_type": "custom", "productname": "Gift Box", "quantity": 2,
                 "price": 250, "discount": 0, "per": "Box"}]
    draft = build(**order_fields(products=products, net_rate=500, you_save=0, total=500))

    assert draft.line_items[0]["unit_label"] == "Box"
    assert draft.line_items[0]["product_type"] == "custom"


@pytest.mark.parametrize("product", [
    {"id": 7, "product_type": "sparklers", "quantity": 0, "price": 100, "discount": 10},
    {"id": 7, "product_type": "sparklers", "quantity": 1, "price": -1, "discount": 0},
    {"id": 7, "product_type": "sparklers", "quantity": 1, "price": 100, "discount": 150},
    {"product_type": "sparklers", "quantity": 1, "price": 100, "discount": 0},
])
def test_malformed_line_item_is_rejected(build, order_fields, product):
    with pytest.raises(ValidationError, match="Invalid product entry"):
        build(**order_fields(products=[product]))


def test_empty_products_rejected(build, order_fields):
    with pytest.raises(ValidationError, match="Products array"):
        build(**order_fields(products=[]))


@pytest.mark.parametrize("product_id", [99, 8])
def test_unknown_or_unavailable_catalog_entry(build, order_fields, product_id):
    products = [{"id": product_id, "product_type": "Sparklers", "quantity": 1, "price": 80, "discount": 0}]
    with pytest.raises(NotFound):
        build(**order_fields(products=products))


def test_category_lookup_is_normalized(build, order_fields):
    products = [{"id": 3, "product_type": "Sky  Shots", "quantity": 1, "price": 500, "discount": 0}]
    draft = build(**order_fields(products=products, net_rate=500, you_save=0, total=500))

    assert draft.line_items[0]["unit_label"] == "Pcs"


@pytest.mark.parametrize("total", [0, -5, None])
def test_total_must_be_positive(build, order_fields, total):
    with pytest.raises(ValidationError, match="Total"):
        build(**order_fields(total=total))


@pytest.mark.parametrize("reference", ["", "Q 1001", "Q/1001", "Q-1\n", "\nQ-1"])
def test_reference_format(reference):
    with pytest.raises(ValidationError):
        validate_reference(reference, "Quotation ID")


def test_walk_in_must_be_user(build, order_fields):
    with pytest.raises(ValidationError, match='must be "User"'):
        build(**order_fields(customer_type="Agent"))


def test_walk_in_needs_all_details(build, order_fields):
    with pytest.raises(ValidationError, match="All customer details"):
        build(**order_fields(district=" "))


def test_customer_id_resolves_agent(build, order_fields):
    draft = build(**order_fields(customer_id=2, customer_type="User", customer_name="ignored"))

    assert draft.party.customer_name == "Selvi Stores"
    assert draft.party.customer_type == "Customer of Selected Agent"
    assert draft.party.agent_name == "Kumar Agencies"


def test_unknown_customer(build, order_fields):
    with pytest.raises(NotFound, match="Customer not found"):
        build(**order_fields(customer_id=404))


def test_total_mismatch_is_only_a_warning(build, order_fields):
    draft = build(**order_fields(total=300))

    assert len(draft.warnings) == 1
    assert "differs" in draft.warnings[0]
