"""Order schemas."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import Field

from canteen.schemas.cart import CartLine
from canteen.schemas.records import Record


class PaymentMethod(str, Enum):
    COD = "COD"
    ONLINE = "ONLINE"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    PACKED = "PACKED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


PAYMENT_METHOD_LABELS: dict[PaymentMethod, str] = {
    PaymentMethod.COD: "Cash on pickup",
    PaymentMethod.ONLINE: "Pay online",
}


class Order(Record):
    """Submitted pickup order; ``items`` are the cart lines at purchase time."""

    customer_id: str = Field(alias="customerId")
    customer_name: str = Field(default="Anonymous", alias="customerName")
    restaurant_id: str = Field(alias="restaurantId")
    restaurant_name: str = Field(default="", alias="restaurantName")
    items: list[CartLine] = Field(min_length=1)
    subtotal_amount: Decimal = Field(ge=0, alias="subtotalAmount")
    service_fee: Decimal = Field(ge=0, alias="serviceFee")
    total_amount: Decimal = Field(ge=0, alias="totalAmount")
    time_slot: str = Field(alias="timeSlot")
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING, alias="paymentStatus")
    status: OrderStatus = OrderStatus.PENDING
    special_instructions: str | None = Field(default=None, alias="specialInstructions")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="orderDate")
