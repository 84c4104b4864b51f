"""
Pydantic schemas for request/response validation

Request schemas only check shape; the order builder owns the business
rules (positive totals, id format, party requirements).
"""
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from typing import Optional, Union
from datetime import datetime


class LineItemRequest(BaseModel):
    """One product entry as sent by the client"""
    id: Optional[Union[int, str]] = Field(None, description="Catalog product id")
    product_type: str = Field(..., min_length=1, description="Catalog category, or 'custom'")
    productname: Optional[str] = Field(None, description="Display name")
    quantity: int = Field(..., description="Quantity (must be at least 1)")
    price: float = Field(..., description="Unit price")
    discount: float = Field(0, description="Discount percent")
    per: Optional[str] = Field(None, description="Unit label, used for custom items only")


class PartyFields(BaseModel):
    """Party details supplied directly when no customer_id is given"""
    customer_type: Optional[str] = Field(None, description="Customer type; must be 'User' without customer_id")
    customer_name: Optional[str] = None
    address: Optional[str] = None
    mobile_number: Optional[str] = None
    email: Optional[EmailStr] = None
    district: Optional[str] = None
    state: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class MonetaryFields(BaseModel):
    """Client-asserted amounts"""
    net_rate: Optional[float] = None
    you_save: Optional[float] = None
    promo_discount: Optional[float] = None
    additional_discount: Optional[float] = None
    total: Optional[float] = None


class OrderCreateBase(PartyFields, MonetaryFields):
    """Shared body of quotation and booking creation"""
    customer_id: Optional[int] = Field(None, description="Existing customer or agent id")
    products: list[LineItemRequest] = Field(default_factory=list)


class QuotationCreate(OrderCreateBase):
    """Schema for creating a quotation"""
    quotation_id: str = Field(..., description="Quotation id ([A-Za-z0-9_-]+)")


class BookingCreate(OrderCreateBase):
    """Schema for creating a booking, optionally from a pending quotation"""
    order_id: str = Field(..., description="Order id ([A-Za-z0-9_-]+)")
    quotation_id: Optional[str] = Field(None, description="Quotation this booking is created from")


class TransportDetails(BaseModel):
    """Carrier metadata required to dispatch a booking"""
    carrier_name: str = Field(..., min_length=1, max_length=100)
    tracking_number: str = Field(..., min_length=1, max_length=50, description="Tracking / LR number")
    contact: Optional[str] = Field(None, max_length=20)

    @field_validator("carrier_name", "tracking_number")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class PaymentFields(BaseModel):
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    amount_paid: Optional[float] = None


class OrderPatch(MonetaryFields, PaymentFields):
    """Partial update; any of line items, monetary fields or status"""
    products: Optional[list[LineItemRequest]] = None
    status: Optional[str] = None
    transport_details: Optional[TransportDetails] = None

    def touches_document(self) -> bool:
        """True when the patch changes what the document shows"""
        fields = self.model_fields_set
        return "products" in fields or any(
            getattr(self, name) is not None
            for name in ("net_rate", "you_save", "promo_discount", "additional_discount", "total")
        )


class StatusUpdate(PaymentFields):
    """Status-only patch used by dispatch tracking"""
    status: str = Field(..., description="Target status")
    transport_details: Optional[TransportDetails] = None


class SearchRequest(BaseModel):
    customer_name: str = Field(..., min_length=1)
    mobile_number: str = Field(..., min_length=1)


class LineItemResponse(BaseModel):
    product_id: Optional[Union[int, str]] = None
    product_type: str
    display_name: str
    unit_label: str
    unit_price: float
    discount_percent: float
    quantity: int


class TransportResponse(BaseModel):
    carrier_name: str
    tracking_number: str
    contact: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order response"""
    kind: str
    reference: str
    status: str
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    address: Optional[str] = None
    mobile_number: Optional[str] = None
    email: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    customer_type: str
    agent_name: Optional[str] = None
    line_items: list[LineItemResponse]
    net_rate: float
    you_save: float
    promo_discount: float
    additional_discount: float
    total: float
    quotation_ref: Optional[str] = None
    booking_ref: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    amount_paid: Optional[float] = None
    transport_details: Optional[TransportResponse] = None
    artifact_ref: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """Schema for list of orders response"""
    orders: list[OrderResponse]
    total: int


class ErrorResponse(BaseModel):
    kind: str
    detail: str
