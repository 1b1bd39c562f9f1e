from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from canteen.core.config import settings
from canteen.db.base import Base
from canteen.main import app
from canteen.models import Account
from canteen.services.catalog import list_menu_items, list_restaurants
from canteen.services.document_store import DocumentStore


def _setup_db(tmp_path: Path, monkeypatch):
    db_file = tmp_path / "dashboard_routes.db"
    engine = create_engine(f"sqlite:///{db_file}", connect_args={"check_same_thread": False})
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr("canteen.db.session.engine", engine)
    monkeypatch.setattr("canteen.db.session.SessionLocal", testing_session_local)
    return testing_session_local


def _register(client: TestClient, email: str) -> None:
    client.post(
        "/register",
        data={"display_name": email.split("@")[0], "email": email, "password": "secret1", "confirm_password": "secret1"},
        follow_redirects=False,
    )


def _set_role(session_local, email: str, role: str) -> str:
    with session_local() as db:
        uid = db.scalar(select(Account.uid).where(Account.email == email))
        DocumentStore(db).update("users", uid, {"role": role})
    return uid


def test_vendor_adds_sample_restaurant_and_menu_item(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        _register(client, "vendor@campus.edu")
        vendor_uid = _set_role(session_local, "vendor@campus.edu", "vendor")

        assert client.get("/dashboard").status_code == 200

        sample = client.post("/dashboard/restaurants/sample", follow_redirects=False)
        assert sample.status_code == 303
        assert sample.headers["location"].startswith("/dashboard?restaurant=")

        with session_local() as db:
            [restaurant] = list_restaurants(DocumentStore(db), vendor_id=vendor_uid)

        created = client.post(
            f"/dashboard/restaurants/{restaurant.id}/items",
            data={"name": "Masala Dosa", "price": "4.50", "category": "South Indian", "is_available": "on"},
            follow_redirects=False,
        )
        assert created.status_code == 303
        assert "message=" in created.headers["location"]

        invalid = client.post(
            f"/dashboard/restaurants/{restaurant.id}/items",
            data={"name": "Broken", "price": "abc"},
            follow_redirects=False,
        )
        assert "error=" in invalid.headers["location"]

        page = client.get("/dashboard", params={"restaurant": restaurant.id, "tab": "menu"})
        assert "Masala Dosa" in page.text

    with session_local() as db:
        names = [item.name for item in list_menu_items(DocumentStore(db), restaurant.id)]
    assert "Masala Dosa" in names
    assert "Broken" not in names


def test_customer_dashboard_actions_are_refused(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        _register(client, "student@campus.edu")
        response = client.post("/dashboard/restaurants", data={"name": "Sneaky"}, follow_redirects=False)
        assert response.status_code == 303
        assert "error=" in response.headers["location"]

    with session_local() as db:
        assert list_restaurants(DocumentStore(db)) == []


def test_demoted_vendor_loses_access_on_next_action(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        _register(client, "vendor@campus.edu")
        _set_role(session_local, "vendor@campus.edu", "vendor")
        assert client.get("/dashboard").status_code == 200

        _set_role(session_local, "vendor@campus.edu", "customer")
        response = client.post("/dashboard/restaurants", data={"name": "Late Write"}, follow_redirects=False)
        assert "error=" in response.headers["location"]
        assert client.get("/dashboard", follow_redirects=False).headers["location"] == "/"

    with session_local() as db:
        assert list_restaurants(DocumentStore(db)) == []


def test_admin_manages_user_roles(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    monkeypatch.setattr(settings, "admin_email", "admin@campus.edu")
    monkeypatch.setattr(settings, "admin_password", "admin-pass")

    with TestClient(app) as client:
        _register(client, "student@campus.edu")
        student_uid = _set_role(session_local, "student@campus.edu", "customer")
        client.post("/logout", follow_redirects=False)

        login = client.post(
            "/login",
            data={"email": "admin@campus.edu", "password": "admin-pass"},
            follow_redirects=False,
        )
        assert login.status_code == 303

        users = client.get("/dashboard/users")
        assert users.status_code == 200
        assert "student@campus.edu" in users.text

        promoted = client.post(f"/dashboard/users/{student_uid}/role", data={"role": "vendor"}, follow_redirects=False)
        assert "message=" in promoted.headers["location"]

    with session_local() as db:
        assert DocumentStore(db).get_by_id("users", student_uid).data["role"] == "vendor"


def test_vendor_cannot_open_user_management(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        _register(client, "vendor@campus.edu")
        _set_role(session_local, "vendor@campus.edu", "vendor")
        response = client.get("/dashboard/users", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/"
