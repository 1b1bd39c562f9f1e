"""Schema exports."""

from canteen.schemas.cart import CartLine, CartState
from canteen.schemas.catalog import MenuItem, OpeningHours, Restaurant
from canteen.schemas.order import (
    PAYMENT_METHOD_LABELS,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from canteen.schemas.records import Record, decode_record
from canteen.schemas.user import Identity, Role, UserProfile

__all__ = [
    "CartLine",
    "CartState",
    "Identity",
    "MenuItem",
    "OpeningHours",
    "Order",
    "OrderStatus",
    "PAYMENT_METHOD_LABELS",
    "PaymentMethod",
    "PaymentStatus",
    "Record",
    "Restaurant",
    "Role",
    "UserProfile",
    "decode_record",
]
