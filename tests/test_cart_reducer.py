from decimal import Decimal

from canteen.schemas.cart import CartState
from canteen.schemas.catalog import MenuItem, Restaurant
from canteen.services.cart import (
    EMPTY_CART,
    AddItem,
    BindRestaurant,
    ClearCart,
    RemoveItem,
    SetQuantity,
    apply,
)


def _restaurant(restaurant_id: str = "r1") -> Restaurant:
    return Restaurant(id=restaurant_id, vendor_id="v1", name=f"Canteen {restaurant_id}")


def _item(item_id: str, price: str, restaurant_id: str = "r1") -> MenuItem:
    return MenuItem(id=item_id, restaurant_id=restaurant_id, name=f"Item {item_id}", price=Decimal(price))


def _run(*actions) -> CartState:
    state = EMPTY_CART
    for action in actions:
        state = apply(state, action)
    return state


def test_add_same_item_twice_increments_quantity() -> None:
    burger = _item("i1", "8.99")

    state = _run(BindRestaurant(_restaurant()), AddItem(burger), AddItem(burger))

    assert len(state.lines) == 1
    assert state.lines[0].quantity == 2
    assert state.total == Decimal("17.98")


def test_total_is_sum_of_price_times_quantity() -> None:
    state = _run(
        BindRestaurant(_restaurant()),
        AddItem(_item("i1", "8.99")),
        AddItem(_item("i2", "7.99")),
        AddItem(_item("i2", "7.99")),
        SetQuantity("i1", 3),
    )

    assert state.total == Decimal("8.99") * 3 + Decimal("7.99") * 2
    assert [line.id for line in state.lines] == ["i1", "i2"]


def test_set_quantity_zero_or_negative_removes_line() -> None:
    base = _run(BindRestaurant(_restaurant()), AddItem(_item("i1", "5.00")), AddItem(_item("i2", "2.50")))

    assert [line.id for line in apply(base, SetQuantity("i1", 0)).lines] == ["i2"]
    assert [line.id for line in apply(base, SetQuantity("i2", -4)).lines] == ["i1"]


def test_set_quantity_for_missing_line_is_noop() -> None:
    base = _run(BindRestaurant(_restaurant()), AddItem(_item("i1", "5.00")))

    assert apply(base, SetQuantity("nope", 3)) == base


def test_remove_item_and_remove_missing_item() -> None:
    base = _run(BindRestaurant(_restaurant()), AddItem(_item("i1", "5.00")), AddItem(_item("i2", "1.00")))

    removed = apply(base, RemoveItem("i1"))
    assert [line.id for line in removed.lines] == ["i2"]
    assert apply(removed, RemoveItem("i1")) == removed


def test_bind_different_restaurant_discards_lines() -> None:
    r1, r2 = _restaurant("r1"), _restaurant("r2")
    state = _run(BindRestaurant(r1), AddItem(_item("i1", "4.00")))

    switched = apply(state, BindRestaurant(r2))

    assert switched.restaurant == r2
    assert switched.lines == ()
    assert switched.total == Decimal("0")


def test_bind_same_restaurant_keeps_lines() -> None:
    r1 = _restaurant("r1")
    state = _run(BindRestaurant(r1), AddItem(_item("i1", "4.00")))

    assert apply(state, BindRestaurant(r1)).lines == state.lines


def test_clear_returns_empty_cart_and_is_idempotent() -> None:
    state = _run(BindRestaurant(_restaurant()), AddItem(_item("i1", "4.00")))

    cleared = apply(state, ClearCart())

    assert cleared == EMPTY_CART
    assert apply(cleared, ClearCart()) == EMPTY_CART
    assert cleared.restaurant is None


def test_apply_never_mutates_input_state() -> None:
    state = _run(BindRestaurant(_restaurant()), AddItem(_item("i1", "4.00")))
    snapshot = state.model_dump()

    apply(state, AddItem(_item("i1", "4.00")))
    apply(state, SetQuantity("i1", 9))
    apply(state, ClearCart())

    assert state.model_dump() == snapshot


def test_line_ids_stay_unique_and_quantities_positive() -> None:
    items = [_item(f"i{n % 3}", "1.25") for n in range(10)]
    state = _run(BindRestaurant(_restaurant()), *[AddItem(item) for item in items], SetQuantity("i1", 0))

    ids = [line.id for line in state.lines]
    assert len(ids) == len(set(ids))
    assert all(line.quantity >= 1 for line in state.lines)
    assert state.total == sum((line.item.price * line.quantity for line in state.lines), Decimal("0"))


def test_unknown_action_returns_state_unchanged() -> None:
    state = _run(BindRestaurant(_restaurant()), AddItem(_item("i1", "4.00")))

    assert apply(state, object()) is state
