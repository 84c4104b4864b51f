"""
Order Service - Business Logic Layer

Owns the quotation/booking state machine and keeps the stored artifact
consistent with line items and amounts. Each public mutation is one
database transaction; artifacts are rendered and written before commit,
and a failed transaction removes whatever artifact it wrote.
"""
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as RenderTimeout
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fireworks_orders.config import settings
from fireworks_orders.exceptions import (
    Conflict,
    InvalidTransition,
    NotFound,
    OrderError,
    PersistenceFailure,
    RenderFailure,
    ValidationError,
)
from fireworks_orders.logger import get_logger
from fireworks_orders.models.order import (
    BookingStatus,
    Order,
    OrderKind,
    QuotationStatus,
    utcnow,
)
from fireworks_orders.repositories.catalog_repository import CatalogRepository, CustomerRepository
from fireworks_orders.repositories.order_repository import OrderRepository
from fireworks_orders.repositories.outbox_repository import OutboxRepository
from fireworks_orders.schemas.order import BookingCreate, OrderPatch, QuotationCreate
from fireworks_orders.services import document_renderer
from fireworks_orders.services.artifact_store import ArtifactStore, artifact_name
from fireworks_orders.services.catalog_lookup import CatalogLookup
from fireworks_orders.services.lifecycle import (
    CANCELABLE_FROM,
    DISPATCHED_OR_LATER,
    INITIAL_STATUS,
    PAID_OR_LATER,
    accepts_document_edits,
    check_payment,
    check_status_value,
    check_transition,
    check_transport,
)
from fireworks_orders.services.order_builder import (
    Monetary,
    build_line_items,
    build_order,
    merge_monetary,
)
from fireworks_orders.services.outbox import (
    EVENT_CREATED,
    EVENT_STATUS_CHANGED,
    EVENT_UPDATED,
    enqueue_intents,
)
from fireworks_orders.services.party_resolver import PartyResolver

logger = get_logger(__name__)

_render_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="render")

PARTY_COLUMNS = (
    "customer_name", "address", "mobile_number", "email",
    "district", "state", "customer_type", "agent_name",
)


@dataclass
class MutationResult:
    """Outcome of a committed mutation"""
    order: Order
    artifact: Optional[bytes] = None
    intent_ids: List[int] = field(default_factory=list)

    @property
    def regenerated(self) -> bool:
        return self.artifact is not None


def parse_kind(kind: Union[str, OrderKind]) -> OrderKind:
    try:
        return OrderKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown order kind '{kind}'; expected quotation or booking")


def id_label(kind: OrderKind) -> str:
    return "Quotation" if kind == OrderKind.QUOTATION else "Order"


def stored_monetary(order: Order) -> Monetary:
    return Monetary(
        net_rate=order.net_rate or 0.0,
        you_save=order.you_save or 0.0,
        promo_discount=order.promo_discount or 0.0,
        additional_discount=order.additional_discount or 0.0,
        total=order.total,
    )


class OrderService:
    """Service layer for quotation and booking business logic"""

    def __init__(self, db: Session, artifact_store: Optional[ArtifactStore] = None,
                 catalog: Optional[CatalogLookup] = None, parties: Optional[PartyResolver] = None,
                 render_timeout: Optional[float] = None):
        self.db = db
        self.repository = OrderRepository(db)
        self.outbox = OutboxRepository(db)
        self.artifacts = artifact_store or ArtifactStore()
        self.catalog = catalog or CatalogLookup(CatalogRepository(db))
        self.parties = parties or PartyResolver(CustomerRepository(db))
        self.render_timeout = render_timeout or settings.RENDER_TIMEOUT_SECONDS

    # ─── READS ───

    def get(self, kind: OrderKind, reference: str) -> Order:
        return self._require(kind, reference)

    def list(self, kind: OrderKind, status: Optional[str] = None, customer_type: Optional[str] = None,
             skip: int = 0, limit: int = 100) -> Tuple[List[Order], int]:
        """Orders of one kind, newest first, with the unpaged count"""
        if status:
            check_status_value(kind, status)
        orders = self.repository.list(kind.value, status, customer_type, skip, limit)
        return orders, self.repository.count(kind.value, status, customer_type)

    def search(self, kind: OrderKind, customer_name: str, mobile_number: str) -> List[Order]:
        """Name substring (case-insensitive) and mobile substring, both required"""
        if not (customer_name or "").strip() or not (mobile_number or "").strip():
            raise ValidationError("Customer name and mobile number are required")
        return self.repository.search(kind.value, customer_name.strip(), mobile_number.strip())

    # ─── MUTATIONS ───

    def create_quotation(self, request: QuotationCreate) -> MutationResult:
        return self.create(OrderKind.QUOTATION, request, request.quotation_id)

    def create_booking(self, request: BookingCreate) -> MutationResult:
        return self.create(OrderKind.BOOKING, request, request.order_id, quotation_ref=request.quotation_id)

    def create(self, kind: OrderKind, request, reference: str,
               quotation_ref: Optional[str] = None) -> MutationResult:
        """
        Validate, insert and render a new order

        Raises:
            ValidationError / NotFound: From the order builder
            Conflict: If the reference already exists for this kind
            InvalidTransition: If the referenced quotation is not pending
            RenderFailure / PersistenceFailure: Nothing is committed
        """
        with self._transaction() as written:
            draft = build_order(kind, request, reference, self.catalog, self.parties, quotation_ref)
            if self.repository.exists(kind.value, draft.reference):
                raise Conflict(f"{id_label(kind)} ID {draft.reference} already exists")

            quotation = None
            if kind == OrderKind.BOOKING and draft.quotation_ref:
                quotation = self.repository.get(OrderKind.QUOTATION.value, draft.quotation_ref, for_update=True)
                if quotation is None:
                    raise NotFound(f"Quotation {draft.quotation_ref} not found")
                if quotation.status != QuotationStatus.PENDING.value:
                    raise InvalidTransition(
                        f"Quotation {draft.quotation_ref} is {quotation.status}, not pending"
                    )

            order = Order(
                kind=kind.value,
                reference=draft.reference,
                status=INITIAL_STATUS[kind],
                customer_id=draft.party.customer_id,
                line_items=draft.line_items,
                quotation_ref=draft.quotation_ref if kind == OrderKind.BOOKING else None,
                **{name: getattr(draft.party, name) for name in PARTY_COLUMNS},
                **draft.monetary.as_dict(),
            )
            self.repository.add(order)
            artifact = self._regenerate(order, written)

            if quotation is not None:
                quotation.status = QuotationStatus.BOOKED.value
                quotation.booking_ref = order.reference
                quotation.updated_at = utcnow()

            intent_ids = enqueue_intents(self.outbox, order, EVENT_CREATED)

        logger.info(f"✓ {kind.value} {order.reference} created ({order.artifact_ref})")
        return MutationResult(order=order, artifact=artifact, intent_ids=intent_ids)

    def update(self, kind: OrderKind, reference: str, patch: OrderPatch) -> MutationResult:
        """
        Apply a partial patch

        Line items / amounts regenerate the artifact before commit; a
        status-only patch does not. Naming the current status is a no-op.
        """
        with self._transaction() as written:
            order = self._require(kind, reference, for_update=True)
            original_status = order.status

            if patch.touches_document() and not accepts_document_edits(kind, original_status):
                raise InvalidTransition(
                    f"{id_label(kind)} {reference} is {original_status}; line items and amounts can no longer change"
                )

            status_changed = self._apply_status(kind, order, patch)
            changed = status_changed
            changed |= self._apply_payment(order, patch)
            changed |= self._apply_transport(order, patch)

            artifact = None
            if patch.touches_document():
                if "products" in patch.model_fields_set:
                    order.line_items = build_line_items(patch.products, self.catalog)
                for name, value in merge_monetary(stored_monetary(order), patch).as_dict().items():
                    setattr(order, name, value)
                artifact = self._regenerate(order, written)
                changed = True

            intent_ids: List[int] = []
            if changed:
                order.updated_at = utcnow()
                if status_changed:
                    intent_ids = enqueue_intents(self.outbox, order, EVENT_STATUS_CHANGED)
                elif artifact is not None:
                    intent_ids = enqueue_intents(self.outbox, order, EVENT_UPDATED)

        if status_changed:
            logger.info(f"✓ {kind.value} {reference}: {original_status} -> {order.status}")
        return MutationResult(order=order, artifact=artifact, intent_ids=intent_ids)

    def cancel(self, kind: OrderKind, reference: str) -> MutationResult:
        """pending quotation / booked booking -> canceled"""
        with self._transaction():
            order = self._require(kind, reference, for_update=True)
            cancelable = CANCELABLE_FROM[kind]
            if order.status != cancelable:
                raise InvalidTransition(
                    f"Only {cancelable} {kind.value}s can be canceled; {reference} is {order.status}"
                )
            order.status = QuotationStatus.CANCELED.value
            order.updated_at = utcnow()
            intent_ids = enqueue_intents(self.outbox, order, EVENT_STATUS_CHANGED)

        logger.info(f"✓ {kind.value} {reference} canceled")
        return MutationResult(order=order, intent_ids=intent_ids)

    def delete(self, kind: OrderKind, reference: str) -> None:
        """
        Administrative cascade: the row, its transport records and every
        artifact generation; for a booking also its source quotation.
        Artifact removal happens after commit and only logs failures.
        """
        with self._transaction():
            order = self._require(kind, reference, for_update=True)
            doomed = [(order.reference, order.document_type)]
            if kind == OrderKind.BOOKING and order.quotation_ref:
                quotation = self.repository.get(OrderKind.QUOTATION.value, order.quotation_ref, for_update=True)
                if quotation is not None:
                    doomed.append((quotation.reference, quotation.document_type))
                    self.repository.delete(quotation)
            self.repository.delete(order)

        for doomed_ref, document_type in doomed:
            removed = self.artifacts.delete_all(doomed_ref, document_type)
            logger.info(f"Deleted {doomed_ref} and {len(removed)} artifact file(s)")

    def fetch_artifact(self, kind: OrderKind, reference: str) -> Tuple[Order, bytes]:
        """
        Stored document bytes; a missing file is re-rendered from the row
        under the same generation and name, without touching updated_at.
        """
        order = self._require(kind, reference)
        content = self.artifacts.read(order.artifact_ref)
        if content is not None:
            return order, content

        logger.warning(f"Artifact for {kind.value} {reference} missing ({order.artifact_ref}); regenerating")
        with self._transaction() as written:
            order = self._require(kind, reference, for_update=True)
            content = self._regenerate(order, written, generation=max(order.artifact_generation or 0, 1))
        return order, content

    # ─── INTERNALS ───

    @contextmanager
    def _transaction(self):
        """Commit on success; on any failure roll back and drop new artifacts"""
        written: List[str] = []
        try:
            yield written
            self.db.commit()
        except OrderError:
            self._abort(written)
            raise
        except IntegrityError as e:
            self._abort(written)
            raise Conflict(f"Order already exists or violates a constraint: {e.orig}") from e
        except SQLAlchemyError as e:
            self._abort(written)
            logger.error(f"Database error: {e}")
            raise PersistenceFailure("Database operation failed, please retry") from e
        except OSError as e:
            self._abort(written)
            logger.error(f"Artifact storage error: {e}")
            raise PersistenceFailure("Document storage failed, please retry") from e
        except Exception:
            self._abort(written)
            raise

    def _abort(self, written: List[str]) -> None:
        self.db.rollback()
        for ref in written:
            self.artifacts.delete(ref)

    def _require(self, kind: OrderKind, reference: str, for_update: bool = False) -> Order:
        order = self.repository.get(kind.value, reference, for_update=for_update)
        if order is None:
            raise NotFound(f"{id_label(kind)} {reference} not found")
        return order

    def _render(self, order: Order) -> bytes:
        party = {name: getattr(order, name) for name in PARTY_COLUMNS}
        future = _render_pool.submit(
            document_renderer.render,
            order.kind,
            order.reference,
            party,
            order.line_items,
            asdict(stored_monetary(order)),
            order.created_at,
        )
        try:
            return future.result(timeout=self.render_timeout)
        except RenderTimeout:
            future.cancel()
            raise RenderFailure(
                f"Rendering {order.kind} {order.reference} timed out after {self.render_timeout}s",
                retryable=True
            )
        except Exception as e:
            logger.exception(f"Rendering {order.kind} {order.reference} failed")
            raise RenderFailure(f"Document generation failed: {e}") from e

    def _regenerate(self, order: Order, written: List[str], generation: Optional[int] = None) -> bytes:
        """Render and store; a new generation unless one is given"""
        content = self._render(order)
        if generation is None:
            generation = (order.artifact_generation or 0) + 1
        name = artifact_name(order.customer_name, order.reference, order.document_type, generation)
        self.artifacts.write(name, content)
        written.append(name)
        order.artifact_ref = name
        order.artifact_generation = generation
        return content

    def _apply_status(self, kind: OrderKind, order: Order, patch: OrderPatch) -> bool:
        target = patch.status
        if target is None:
            return False
        check_status_value(kind, target)
        if target == order.status:
            return False
        if kind == OrderKind.QUOTATION and target == QuotationStatus.BOOKED.value:
            raise InvalidTransition("A quotation is booked by creating a booking from it")

        check_transition(kind, order.status, target)
        if target == BookingStatus.PAID.value:
            check_payment(
                patch.payment_method or order.payment_method,
                patch.transaction_id or order.transaction_id,
                patch.amount_paid if patch.amount_paid is not None else order.amount_paid,
            )
        if target == BookingStatus.DISPATCHED.value:
            check_transport(patch.transport_details)
        order.status = target
        return True

    def _apply_payment(self, order: Order, patch: OrderPatch) -> bool:
        values = {
            name: getattr(patch, name)
            for name in ("payment_method", "transaction_id", "amount_paid")
            if getattr(patch, name) is not None
        }
        if not values:
            return False
        if order.kind != OrderKind.BOOKING.value or order.status not in PAID_OR_LATER:
            raise InvalidTransition("Payment details are only accepted for paid bookings")

        merged = {
            "method": values.get("payment_method", order.payment_method),
            "transaction_id": values.get("transaction_id", order.transaction_id),
            "amount_paid": values.get("amount_paid", order.amount_paid),
        }
        check_payment(merged["method"], merged["transaction_id"], merged["amount_paid"])
        for name, value in values.items():
            setattr(order, name, value.strip() if isinstance(value, str) else value)
        return True

    def _apply_transport(self, order: Order, patch: OrderPatch) -> bool:
        transport = patch.transport_details
        if transport is None:
            return False
        if order.kind != OrderKind.BOOKING.value or order.status not in DISPATCHED_OR_LATER:
            raise InvalidTransition("Transport details are only accepted for dispatched bookings")
        self.repository.append_transport(order, transport.carrier_name, transport.tracking_number, transport.contact)
        return True
