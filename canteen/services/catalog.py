"""Catalog and order read helpers shared by customer pages and the dashboard."""

from __future__ import annotations

import logging
from typing import TypeVar

from canteen.core.errors import DecodingError, StorageError
from canteen.schemas.catalog import MenuItem, Restaurant
from canteen.schemas.order import Order, OrderStatus, PaymentStatus
from canteen.schemas.records import Record, decode_record
from canteen.services.document_store import DocumentStore, StoredDocument

logger = logging.getLogger(__name__)

RESTAURANTS = "restaurants"
MENU_ITEMS = "menuItems"
ORDERS = "orders"

RecordT = TypeVar("RecordT", bound=Record)


def _decode_all(model: type[RecordT], collection: str, documents: list[StoredDocument]) -> list[RecordT]:
    """Decode each document, skipping and logging the ones that do not fit ``model``."""
    records: list[RecordT] = []
    for document in documents:
        try:
            records.append(decode_record(model, collection, document.id, document.data))
        except DecodingError:
            logger.error("[CATALOG] Skipping undecodable %s/%s", collection, document.id)
    return records


def list_restaurants(store: DocumentStore, vendor_id: str | None = None) -> list[Restaurant]:
    """All restaurants, or only those of one vendor; empty on read failure."""
    where = {"vendorId": vendor_id} if vendor_id is not None else None
    try:
        documents = store.query(RESTAURANTS, where=where)
    except StorageError:
        logger.exception("[CATALOG] Could not read restaurants")
        return []
    return _decode_all(Restaurant, RESTAURANTS, documents)


def get_restaurant(store: DocumentStore, restaurant_id: str) -> Restaurant | None:
    try:
        document = store.get_by_id(RESTAURANTS, restaurant_id)
        if document is None:
            return None
        return decode_record(Restaurant, RESTAURANTS, document.id, document.data)
    except StorageError:
        logger.exception("[CATALOG] Could not read restaurant %s", restaurant_id)
        return None


def list_menu_items(store: DocumentStore, restaurant_id: str) -> list[MenuItem]:
    try:
        documents = store.query(MENU_ITEMS, where={"restaurantId": restaurant_id})
    except StorageError:
        logger.exception("[CATALOG] Could not read menu for restaurant %s", restaurant_id)
        return []
    return _decode_all(MenuItem, MENU_ITEMS, documents)


def get_menu_item(store: DocumentStore, item_id: str) -> MenuItem | None:
    try:
        document = store.get_by_id(MENU_ITEMS, item_id)
        if document is None:
            return None
        return decode_record(MenuItem, MENU_ITEMS, document.id, document.data)
    except StorageError:
        logger.exception("[CATALOG] Could not read menu item %s", item_id)
        return None


def get_order(store: DocumentStore, order_id: str) -> Order | None:
    try:
        document = store.get_by_id(ORDERS, order_id)
        if document is None:
            return None
        return decode_record(Order, ORDERS, document.id, document.data)
    except StorageError:
        logger.exception("[CATALOG] Could not read order %s", order_id)
        return None


def list_customer_orders(store: DocumentStore, customer_id: str) -> list[Order]:
    """Newest first."""
    try:
        documents = store.query(ORDERS, where={"customerId": customer_id}, order_by="orderDate", descending=True)
    except StorageError:
        logger.exception("[CATALOG] Could not read orders for customer %s", customer_id)
        return []
    return _decode_all(Order, ORDERS, documents)


def list_restaurant_orders(
    store: DocumentStore,
    restaurant_id: str,
    payment_status: PaymentStatus,
) -> list[Order]:
    try:
        documents = store.query(
            ORDERS,
            where={"restaurantId": restaurant_id, "paymentStatus": payment_status.value},
            order_by="orderDate",
            descending=True,
        )
    except StorageError:
        logger.exception("[CATALOG] Could not read orders for restaurant %s", restaurant_id)
        return []
    return _decode_all(Order, ORDERS, documents)


def is_active_order(order: Order) -> bool:
    """Unpaid, or not yet collected or canceled."""
    return order.payment_status == PaymentStatus.PENDING or order.status not in {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELED,
    }


def is_completed_order(order: Order) -> bool:
    """Paid, or collected or canceled. An order can be both active and completed."""
    return order.payment_status == PaymentStatus.COMPLETED or order.status in {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELED,
    }
