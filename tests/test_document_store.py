from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from canteen.core.errors import StorageError
from canteen.db.base import Base
from canteen.services.document_store import DocumentStore


def _session(tmp_path: Path) -> Session:
    engine = create_engine(f"sqlite:///{tmp_path / 'documents.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def test_create_get_update_delete(tmp_path: Path) -> None:
    with _session(tmp_path) as db:
        store = DocumentStore(db)

        doc_id = store.create("restaurants", {"name": "Campus Cafe", "vendorId": "v1"})
        assert store.get_by_id("restaurants", doc_id).data == {"name": "Campus Cafe", "vendorId": "v1"}

        store.update("restaurants", doc_id, {"name": "Campus Cafe 2"})
        assert store.get_by_id("restaurants", doc_id).data == {"name": "Campus Cafe 2", "vendorId": "v1"}

        store.delete("restaurants", doc_id)
        assert store.get_by_id("restaurants", doc_id) is None
        store.delete("restaurants", doc_id)


def test_query_filters_by_equality_and_keeps_insertion_order(tmp_path: Path) -> None:
    with _session(tmp_path) as db:
        store = DocumentStore(db)
        first = store.create("menuItems", {"restaurantId": "r1", "name": "A"})
        store.create("menuItems", {"restaurantId": "r2", "name": "B"})
        third = store.create("menuItems", {"restaurantId": "r1", "name": "C"})

        found = store.query("menuItems", where={"restaurantId": "r1"})

        assert [doc.id for doc in found] == [first, third]
        assert store.query("menuItems", where={"restaurantId": "missing"}) == []


def test_query_orders_descending(tmp_path: Path) -> None:
    with _session(tmp_path) as db:
        store = DocumentStore(db)
        store.create("orders", {"customerId": "c1", "orderDate": "2026-01-01T10:00:00"})
        store.create("orders", {"customerId": "c1", "orderDate": "2026-03-01T10:00:00"})
        store.create("orders", {"customerId": "c1", "orderDate": "2026-02-01T10:00:00"})

        dates = [doc.data["orderDate"][:7] for doc in store.query("orders", order_by="orderDate", descending=True)]

        assert dates == ["2026-03", "2026-02", "2026-01"]


def test_put_creates_then_replaces(tmp_path: Path) -> None:
    with _session(tmp_path) as db:
        store = DocumentStore(db)
        store.put("users", "uid-1", {"email": "a@campus.edu", "role": "customer"})
        store.put("users", "uid-1", {"email": "a@campus.edu", "role": "vendor"})

        assert store.get_by_id("users", "uid-1").data["role"] == "vendor"
        assert len(store.query("users")) == 1


def test_update_missing_document_raises_storage_error(tmp_path: Path) -> None:
    with _session(tmp_path) as db:
        with pytest.raises(StorageError):
            DocumentStore(db).update("orders", "missing", {"status": "PACKED"})


def test_unknown_collection_is_rejected(tmp_path: Path) -> None:
    with _session(tmp_path) as db:
        with pytest.raises(StorageError):
            DocumentStore(db).create("payments", {})


def test_database_failure_becomes_storage_error(tmp_path: Path, monkeypatch) -> None:
    with _session(tmp_path) as db:
        store = DocumentStore(db)

        def broken_commit() -> None:
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", broken_commit)
        with pytest.raises(StorageError) as excinfo:
            store.create("orders", {"customerId": "c1"})

        assert excinfo.value.operation == "create"
        assert excinfo.value.collection == "orders"
