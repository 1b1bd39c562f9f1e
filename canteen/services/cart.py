"""Shopping cart reducer and its persisted owner."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from canteen.core.config import settings
from canteen.core.errors import StorageError
from canteen.schemas.cart import CartLine, CartState
from canteen.schemas.catalog import MenuItem, Restaurant
from canteen.services.client_storage import KeyValueStore

logger = logging.getLogger(__name__)

EMPTY_CART: CartState = CartState()


@dataclass(frozen=True)
class AddItem:
    item: MenuItem


@dataclass(frozen=True)
class RemoveItem:
    item_id: str


@dataclass(frozen=True)
class SetQuantity:
    item_id: str
    quantity: int


@dataclass(frozen=True)
class ClearCart:
    pass


@dataclass(frozen=True)
class BindRestaurant:
    restaurant: Restaurant


CartAction = Union[AddItem, RemoveItem, SetQuantity, ClearCart, BindRestaurant]


def _without(state: CartState, item_id: str) -> CartState:
    """Drop the line for ``item_id``, if any."""
    return state.model_copy(update={"lines": tuple(line for line in state.lines if line.id != item_id)})


def apply(state: CartState, action: CartAction) -> CartState:
    """Return the cart that results from ``action``. Never raises, never mutates ``state``."""
    if isinstance(action, AddItem):
        existing = state.line_for(action.item.id)
        if existing is None:
            lines = (*state.lines, CartLine(item=action.item, quantity=1))
        else:
            lines = tuple(
                CartLine(item=line.item, quantity=line.quantity + 1) if line.id == existing.id else line
                for line in state.lines
            )
        return state.model_copy(update={"lines": lines})

    if isinstance(action, RemoveItem):
        return _without(state, action.item_id)

    if isinstance(action, SetQuantity):
        if action.quantity <= 0:
            return _without(state, action.item_id)
        if state.line_for(action.item_id) is None:
            return state
        lines = tuple(
            CartLine(item=line.item, quantity=action.quantity) if line.id == action.item_id else line
            for line in state.lines
        )
        return state.model_copy(update={"lines": lines})

    if isinstance(action, ClearCart):
        return EMPTY_CART

    if isinstance(action, BindRestaurant):
        bound = state.restaurant
        if bound is not None and bound.id != action.restaurant.id:
            # Switching canteens discards the in-progress order.
            return CartState(restaurant=action.restaurant)
        return state.model_copy(update={"restaurant": action.restaurant})

    return state


def load_cart(storage: KeyValueStore, key: str | None = None) -> CartState:
    """Restore the cart; unreadable stored state is treated as corruption."""
    storage_key = key or settings.cart_storage_key
    raw = storage.get(storage_key)
    if not raw:
        return EMPTY_CART
    try:
        return CartState.model_validate_json(raw)
    except ValueError:
        logger.warning("[CART] Stored cart under %r is corrupt; starting with an empty cart.", storage_key)
        return EMPTY_CART


class CartStore:
    """Single owner of the cart: applies actions and persists every result."""

    def __init__(self, storage: KeyValueStore, key: str | None = None) -> None:
        self.storage = storage
        self.key = key or settings.cart_storage_key
        self.state: CartState = load_cart(storage, self.key)

    def dispatch(self, action: CartAction) -> CartState:
        """Apply ``action`` and persist the result before returning it."""
        self.state = apply(self.state, action)
        self._persist()
        return self.state

    def _persist(self) -> None:
        """Write the current state; a failed write is logged and the in-memory cart stays authoritative."""
        try:
            self.storage.set(self.key, self.state.model_dump_json(by_alias=True))
        except (TypeError, ValueError, StorageError):
            logger.exception("[CART] Failed to persist cart under %r", self.key)

    def add_item(self, item: MenuItem) -> CartState:
        return self.dispatch(AddItem(item))

    def remove_item(self, item_id: str) -> CartState:
        return self.dispatch(RemoveItem(item_id))

    def set_quantity(self, item_id: str, quantity: int) -> CartState:
        return self.dispatch(SetQuantity(item_id, quantity))

    def clear(self) -> CartState:
        return self.dispatch(ClearCart())

    def bind_restaurant(self, restaurant: Restaurant) -> CartState:
        return self.dispatch(BindRestaurant(restaurant))

    def contains(self, item_id: str) -> bool:
        return self.state.line_for(item_id) is not None

    def quantity_of(self, item_id: str) -> int:
        line = self.state.line_for(item_id)
        return line.quantity if line is not None else 0

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.state.lines)
