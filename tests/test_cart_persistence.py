import logging
from decimal import Decimal
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from canteen.core.errors import StorageError
from canteen.db.base import Base
from canteen.schemas.catalog import MenuItem, Restaurant
from canteen.services.cart import EMPTY_CART, CartStore, load_cart
from canteen.services.client_storage import VISITOR_SESSION_KEY, DocumentKeyValueStore, MemoryKeyValueStore
from canteen.services.document_store import DocumentStore


def _session(tmp_path: Path) -> Session:
    engine = create_engine(f"sqlite:///{tmp_path / 'carts.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def _filled_store(storage: MemoryKeyValueStore) -> CartStore:
    cart = CartStore(storage, key="cart")
    cart.bind_restaurant(Restaurant(id="r1", vendor_id="v1", name="Campus Cafe"))
    cart.add_item(MenuItem(id="i1", restaurant_id="r1", name="Classic Burger", price=Decimal("8.99")))
    cart.add_item(MenuItem(id="i1", restaurant_id="r1", name="Classic Burger", price=Decimal("8.99")))
    return cart


def test_cart_survives_reload_from_storage() -> None:
    storage = MemoryKeyValueStore()
    cart = _filled_store(storage)

    restored = CartStore(storage, key="cart")

    assert restored.state == cart.state
    assert restored.quantity_of("i1") == 2
    assert restored.item_count == 2
    assert restored.state.total == Decimal("17.98")


def test_every_dispatch_is_persisted() -> None:
    storage = MemoryKeyValueStore()
    cart = _filled_store(storage)

    cart.set_quantity("i1", 5)
    assert load_cart(storage, "cart").lines[0].quantity == 5

    cart.clear()
    assert load_cart(storage, "cart") == EMPTY_CART


def test_missing_state_loads_empty_cart() -> None:
    assert load_cart(MemoryKeyValueStore(), "cart") == EMPTY_CART


def test_corrupt_state_loads_empty_cart_and_logs(caplog) -> None:
    storage = MemoryKeyValueStore({"cart": "{not json"})

    with caplog.at_level(logging.WARNING, logger="canteen.services.cart"):
        cart = CartStore(storage, key="cart")

    assert cart.state == EMPTY_CART
    assert "corrupt" in caplog.text


def test_invalid_shape_loads_empty_cart() -> None:
    duplicate_lines = (
        '{"restaurant": null, "lines": ['
        '{"item": {"id": "i1", "restaurantId": "r1", "name": "A", "price": "1.00"}, "quantity": 1},'
        '{"item": {"id": "i1", "restaurantId": "r1", "name": "A", "price": "1.00"}, "quantity": 2}]}'
    )
    assert load_cart(MemoryKeyValueStore({"cart": duplicate_lines}), "cart") == EMPTY_CART
    assert load_cart(MemoryKeyValueStore({"cart": '{"lines": [{"quantity": 0}]}'}), "cart") == EMPTY_CART


def test_contains_and_quantity_helpers() -> None:
    cart = _filled_store(MemoryKeyValueStore())

    assert cart.contains("i1")
    assert not cart.contains("i2")
    assert cart.quantity_of("i2") == 0


def test_document_storage_keeps_only_visitor_id_in_session(tmp_path: Path) -> None:
    session: dict = {}
    with _session(tmp_path) as db:
        storage = DocumentKeyValueStore(DocumentStore(db), session)
        assert storage.get("cart") is None
        assert session == {}

        cart = CartStore(storage, key="cart")
        cart.bind_restaurant(Restaurant(id="r1", vendor_id="v1", name="Campus Cafe"))
        for number in range(10):
            cart.add_item(MenuItem(id=f"i{number}", restaurant_id="r1", name=f"Dish {number}", price=Decimal("2.00")))

        assert list(session) == [VISITOR_SESSION_KEY]
        restored = CartStore(DocumentKeyValueStore(DocumentStore(db), dict(session)), key="cart")
        assert restored.state == cart.state
        assert restored.item_count == 10

        other_visitor = CartStore(DocumentKeyValueStore(DocumentStore(db), {}), key="cart")
        assert other_visitor.state == EMPTY_CART


def test_storage_failure_while_persisting_is_logged(tmp_path: Path, monkeypatch, caplog) -> None:
    def failing_put(self, collection, doc_id, record):
        raise StorageError("put", collection, "unavailable")

    monkeypatch.setattr(DocumentStore, "put", failing_put)
    with _session(tmp_path) as db:
        cart = CartStore(DocumentKeyValueStore(DocumentStore(db), {}), key="cart")
        with caplog.at_level(logging.ERROR, logger="canteen.services.cart"):
            state = cart.add_item(MenuItem(id="i1", restaurant_id="r1", name="Tea", price=Decimal("1.00")))

    assert state.line_for("i1").quantity == 1
    assert "Failed to persist cart" in caplog.text
