"""Order submission: validate the cart, write the order, then clear the cart."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from canteen.core.config import settings
from canteen.core.errors import CanteenError, StorageError, ValidationError
from canteen.schemas.cart import CartState
from canteen.schemas.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from canteen.schemas.user import UserProfile
from canteen.services.cart import CartStore
from canteen.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

ORDERS = "orders"


class OrderSubmissionError(CanteenError):
    """Writing the order failed; the cart is untouched and the user may retry."""

    message = "Failed to place order. Please try again."


@dataclass(frozen=True)
class OrderRequest:
    pickup_slot: str
    payment_method: str = PaymentMethod.COD.value
    special_instructions: str = ""


def pickup_slots(now: datetime, count: int | None = None, step_minutes: int | None = None) -> list[str]:
    """Upcoming pickup labels (``HH:MM``).

    The first slot is the next quarter hour plus one step, so it is always at
    least one step away from ``now``.
    """
    step = step_minutes or settings.pickup_slot_minutes
    total = count or settings.pickup_slot_count
    start = now.replace(second=0, microsecond=0)
    remainder = start.minute % step
    if remainder:
        start += timedelta(minutes=step - remainder)
    start += timedelta(minutes=step)
    return [(start + timedelta(minutes=step * index)).strftime("%H:%M") for index in range(total)]


def service_fee() -> Decimal:
    """Flat fee added to every order, from settings."""
    return settings.service_fee


def _validate(cart: CartStore, profile: UserProfile | None, request: OrderRequest) -> PaymentMethod:
    if profile is None:
        raise ValidationError("Please sign in to place an order.", field="identity")
    if cart.state.restaurant is None or cart.state.is_empty:
        raise ValidationError("Your cart is empty.", field="cart")
    if not (request.pickup_slot or "").strip():
        raise ValidationError("Please select a pickup time.", field="pickup_slot")
    try:
        return PaymentMethod(request.payment_method)
    except ValueError as exc:
        raise ValidationError("Please choose a payment method.", field="payment_method") from exc


def build_order(
    cart: CartStore,
    profile: UserProfile,
    request: OrderRequest,
    payment_method: PaymentMethod,
    now: datetime,
) -> Order:
    """Snapshot the cart into a pending order; nothing is written."""
    state: CartState = cart.state
    restaurant = state.restaurant
    subtotal: Decimal = state.total
    fee: Decimal = service_fee()
    return Order(
        customer_id=profile.uid,
        customer_name=profile.display_name or "Anonymous",
        restaurant_id=restaurant.id,
        restaurant_name=restaurant.name,
        items=list(state.lines),
        subtotal_amount=subtotal,
        service_fee=fee,
        total_amount=subtotal + fee,
        time_slot=request.pickup_slot.strip(),
        payment_method=payment_method,
        payment_status=PaymentStatus.PENDING,
        status=OrderStatus.PENDING,
        special_instructions=(request.special_instructions or "").strip() or None,
        created_at=now,
    )


def submit_order(
    cart: CartStore,
    profile: UserProfile | None,
    request: OrderRequest,
    store: DocumentStore,
    now: datetime | None = None,
) -> Order:
    """Place the cart as an order.

    Raises ValidationError before touching storage, or OrderSubmissionError
    when the write fails. The cart is cleared only after a successful write.
    """
    payment_method = _validate(cart, profile, request)
    order = build_order(cart, profile, request, payment_method, now or datetime.now(timezone.utc))

    try:
        order_id = store.create(ORDERS, order.to_document())
    except StorageError as exc:
        logger.error("[CHECKOUT] Order write failed for customer=%s: %s", profile.uid, exc)
        raise OrderSubmissionError(str(exc)) from exc

    cart.clear()
    logger.info("[CHECKOUT] Order %s placed by %s, total=%s", order_id, profile.uid, order.total_amount)
    return order.model_copy(update={"id": order_id})
