"""Vendor/admin mutations; each re-checks the actor's rights at the point of action."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from canteen.core.errors import PermissionDenied, ValidationError
from canteen.schemas.catalog import MenuItem, OpeningHours, Restaurant
from canteen.schemas.order import OrderStatus, PaymentStatus
from canteen.schemas.user import Role, UserProfile
from canteen.services.access import Capability, require_capability, require_restaurant_manager
from canteen.services.catalog import MENU_ITEMS, ORDERS, RESTAURANTS, get_menu_item, get_order, get_restaurant
from canteen.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

USERS = "users"


def _split_tags(raw: str | None) -> list[str]:
    """Comma-separated form text to a tag list, blanks dropped."""
    return [tag.strip() for tag in (raw or "").split(",") if tag.strip()]


def _parse_price(raw: str | None) -> Decimal:
    """Parse a non-negative price and round it to cents."""
    try:
        price: Decimal = Decimal((raw or "").strip())
    except InvalidOperation as exc:
        raise ValidationError("Price must be a number.", field="price") from exc
    if price < 0:
        raise ValidationError("Price cannot be negative.", field="price")
    return price.quantize(Decimal("0.01"))


def _parse_minutes(raw: str | None) -> int:
    """Blank means zero minutes."""
    text: str = (raw or "0").strip() or "0"
    if not text.isdigit():
        raise ValidationError("Preparation time must be a whole number of minutes.", field="preparation_time")
    return int(text)


def restaurant_from_form(form: dict[str, str], vendor_id: str, restaurant_id: str = "") -> Restaurant:
    name = form.get("name", "").strip()
    if not name:
        raise ValidationError("Restaurant name is required.", field="name")
    return Restaurant(
        id=restaurant_id,
        vendor_id=vendor_id,
        name=name,
        description=form.get("description", "").strip(),
        image_url=form.get("image_url", "").strip(),
        location=form.get("location", "").strip(),
        opening_hours=OpeningHours(
            open=form.get("open", "").strip() or "09:00",
            close=form.get("close", "").strip() or "17:00",
        ),
        tags=_split_tags(form.get("tags")),
    )


def menu_item_from_form(form: dict[str, str], restaurant_id: str, item_id: str = "") -> MenuItem:
    name = form.get("name", "").strip()
    if not name:
        raise ValidationError("Item name is required.", field="name")
    try:
        return MenuItem(
            id=item_id,
            restaurant_id=restaurant_id,
            name=name,
            description=form.get("description", "").strip(),
            price=_parse_price(form.get("price")),
            image_url=form.get("image_url", "").strip(),
            category=form.get("category", "").strip(),
            is_available=form.get("is_available") in {"true", "on", "1"},
            preparation_time=_parse_minutes(form.get("preparation_time")),
            tags=_split_tags(form.get("tags")),
        )
    except PydanticValidationError as exc:
        raise ValidationError("Menu item is invalid.") from exc


def _managed_restaurant(store: DocumentStore, actor: UserProfile | None, restaurant_id: str, capability: Capability) -> Restaurant:
    require_capability(actor, capability)
    restaurant = get_restaurant(store, restaurant_id)
    if restaurant is None:
        raise ValidationError("Restaurant not found.", field="restaurant_id")
    require_restaurant_manager(actor, restaurant, capability)
    return restaurant


def create_restaurant(store: DocumentStore, actor: UserProfile | None, form: dict[str, str]) -> str:
    owner = require_capability(actor, Capability.MANAGE_CATALOG)
    restaurant = restaurant_from_form(form, vendor_id=owner.uid)
    restaurant_id = store.create(RESTAURANTS, restaurant.to_document())
    logger.info("[DASHBOARD] %s created restaurant %s", owner.uid, restaurant_id)
    return restaurant_id


def update_restaurant(store: DocumentStore, actor: UserProfile | None, restaurant_id: str, form: dict[str, str]) -> None:
    current = _managed_restaurant(store, actor, restaurant_id, Capability.MANAGE_CATALOG)
    updated = restaurant_from_form(form, vendor_id=current.vendor_id, restaurant_id=restaurant_id)
    store.update(RESTAURANTS, restaurant_id, updated.to_document())


def delete_restaurant(store: DocumentStore, actor: UserProfile | None, restaurant_id: str) -> int:
    """Delete a restaurant together with its menu; returns removed menu item count."""
    _managed_restaurant(store, actor, restaurant_id, Capability.MANAGE_CATALOG)
    store.delete(RESTAURANTS, restaurant_id)
    removed = 0
    for document in store.query(MENU_ITEMS, where={"restaurantId": restaurant_id}):
        store.delete(MENU_ITEMS, document.id)
        removed += 1
    logger.info("[DASHBOARD] Deleted restaurant %s and %d menu item(s)", restaurant_id, removed)
    return removed


def create_menu_item(store: DocumentStore, actor: UserProfile | None, restaurant_id: str, form: dict[str, str]) -> str:
    _managed_restaurant(store, actor, restaurant_id, Capability.MANAGE_CATALOG)
    item = menu_item_from_form(form, restaurant_id)
    return store.create(MENU_ITEMS, item.to_document())


def _managed_menu_item(store: DocumentStore, actor: UserProfile | None, item_id: str) -> MenuItem:
    require_capability(actor, Capability.MANAGE_CATALOG)
    item = get_menu_item(store, item_id)
    if item is None:
        raise ValidationError("Menu item not found.", field="item_id")
    _managed_restaurant(store, actor, item.restaurant_id, Capability.MANAGE_CATALOG)
    return item


def update_menu_item(store: DocumentStore, actor: UserProfile | None, item_id: str, form: dict[str, str]) -> None:
    current = _managed_menu_item(store, actor, item_id)
    updated = menu_item_from_form(form, current.restaurant_id, item_id=item_id)
    store.update(MENU_ITEMS, item_id, updated.to_document())


def delete_menu_item(store: DocumentStore, actor: UserProfile | None, item_id: str) -> None:
    _managed_menu_item(store, actor, item_id)
    store.delete(MENU_ITEMS, item_id)


def _managed_order_patch(store: DocumentStore, actor: UserProfile | None, order_id: str, patch: dict[str, Any]) -> None:
    require_capability(actor, Capability.MANAGE_ORDERS)
    order = get_order(store, order_id)
    if order is None:
        raise ValidationError("Order not found.", field="order_id")
    _managed_restaurant(store, actor, order.restaurant_id, Capability.MANAGE_ORDERS)
    store.update(ORDERS, order_id, patch)


def complete_order_payment(store: DocumentStore, actor: UserProfile | None, order_id: str) -> None:
    _managed_order_patch(store, actor, order_id, {"paymentStatus": PaymentStatus.COMPLETED.value})


def set_fulfillment_status(store: DocumentStore, actor: UserProfile | None, order_id: str, status: str) -> None:
    """Set any known fulfillment status; no transition order is enforced."""
    try:
        new_status = OrderStatus(status)
    except ValueError as exc:
        raise ValidationError("Unknown order status.", field="status") from exc
    _managed_order_patch(store, actor, order_id, {"status": new_status.value})


def set_user_role(store: DocumentStore, actor: UserProfile | None, uid: str, role: str) -> None:
    admin = require_capability(actor, Capability.MANAGE_USERS)
    try:
        new_role = Role(role)
    except ValueError as exc:
        raise ValidationError("Unknown role.", field="role") from exc
    if admin.uid == uid and new_role != Role.ADMIN:
        raise PermissionDenied("demote_self")
    store.update(USERS, uid, {"role": new_role.value})
    logger.info("[DASHBOARD] %s set role of %s to %s", admin.uid, uid, new_role.value)
