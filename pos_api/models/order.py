from enum import Enum
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Any, Dict
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    PREPARED = "prepared"
    COMPLETED = "completed"
    PAID = "paid"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK = "bank"
    PREPAID = "prepaid"
    CREDIT = "credit"


class OrderEvent(str, Enum):
    CREATED = "order:created"
    UPDATED = "order:updated"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderItem(CamelModel):
    """A line on an order. Unknown fields (notes, menu item id...) are kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)

    @field_serializer("price", when_used="json")
    def _price_as_number(self, value: Decimal) -> float:
        return float(value)


class Order(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    order_number: int
    branch_id: Optional[str] = None
    items: List[OrderItem]
    client_request_id: Optional[str] = None

    # Amounts
    subtotal: Decimal
    tax: Decimal
    discount: Decimal = Decimal("0")
    total: Decimal

    status: OrderStatus = OrderStatus.PENDING
    payment_method: Optional[PaymentMethod] = None
    bank_type: Optional[str] = None

    # Descriptive references, fixed at creation
    table: Optional[str] = None
    customer: Optional[str] = None
    customer_id: Optional[str] = None
    waiter: Optional[str] = None
    waiter_user_id: Optional[str] = None

    # Tracking
    prepared_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("subtotal", "tax", "discount", "total", when_used="json")
    def _amount_as_number(self, value: Decimal) -> float:
        return float(value)

    def to_public(self) -> Dict[str, Any]:
        """JSON shape sent to API clients and realtime listeners."""
        return self.model_dump(mode="json", by_alias=True)

    def to_row(self) -> Dict[str, Any]:
        """Snake-case row for the ``orders`` table."""
        row = self.model_dump(mode="json")
        row["items"] = [item.model_dump(mode="json", by_alias=True) for item in self.items]
        return row


# Request bodies

class OrderCreate(CamelModel):
    items: List[OrderItem] = Field(min_length=1)
    table: Optional[str] = None
    customer: Optional[str] = None
    customer_id: Optional[str] = None
    waiter: Optional[str] = None
    waiter_user_id: Optional[str] = None
    branch_id: Optional[str] = None
    client_request_id: Optional[str] = None


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class PaymentCreate(CamelModel):
    payment_method: PaymentMethod
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    bank_type: Optional[str] = None


class PaymentMethodUpdate(CamelModel):
    payment_method: PaymentMethod
    bank_type: Optional[str] = None


class ApiResponse(BaseModel):
    """Envelope wrapped around every response body."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    idempotent: Optional[bool] = None
    warning: Optional[str] = None

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
