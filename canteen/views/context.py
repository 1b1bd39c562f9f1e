"""Per-request collaborators and rendering helpers for server-rendered pages."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode

from fastapi import Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from canteen.core.config import settings
from canteen.db import session as db_session
from canteen.schemas.user import UserProfile
from canteen.services.access import (
    LOADING,
    AuthState,
    Authenticated,
    Redirect,
    RouteAccess,
    Wait,
    auth_state_for,
    evaluate_route,
)
from canteen.services.cart import CartStore
from canteen.services.client_storage import DocumentKeyValueStore
from canteen.services.document_store import DocumentStore
from canteen.services.identity_service import IdentityService
from canteen.services.profile import load_profile

BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def format_money(value: Decimal | int | float | str) -> str:
    """Jinja ``money`` filter: currency symbol and two decimals."""
    return f"{settings.currency_symbol}{Decimal(str(value)):.2f}"


templates.env.filters["money"] = format_money


@dataclass
class Storefront:
    """Collaborators owned by one request; the cart store is the only cart writer."""

    db: Session
    store: DocumentStore
    identity: IdentityService
    cart: CartStore
    _state: AuthState = field(default=LOADING)

    def auth_state(self) -> AuthState:
        """Resolve the auth state once per request."""
        if self._state is LOADING:
            self._state = auth_state_for(
                self.identity.current_identity(),
                lambda identity: load_profile(self.store, identity),
            )
        return self._state

    @property
    def profile(self) -> UserProfile | None:
        state = self.auth_state()
        return state.profile if isinstance(state, Authenticated) else None

    def reload_profile(self) -> UserProfile | None:
        """Read the profile again, ignoring what route entry saw."""
        self._state = LOADING
        return self.profile


@contextmanager
def open_storefront(request: Request) -> Iterator[Storefront]:
    """Open one database session and build the request's collaborators around it."""
    with db_session.SessionLocal() as db:
        store = DocumentStore(db)
        yield Storefront(
            db=db,
            store=store,
            identity=IdentityService(db, request.session),
            cart=CartStore(DocumentKeyValueStore(store, request.session)),
        )


def inject_globals(request: Request) -> dict[str, Any]:
    """Inject common session-derived values for Jinja templates."""
    with db_session.SessionLocal() as db:
        cart = CartStore(DocumentKeyValueStore(DocumentStore(db), request.session))
        cart_count: int = cart.item_count
    return {
        "app_name": settings.app_name,
        "signed_in": bool(request.session.get("uid")),
        "cart_count": cart_count,
        "profile": None,
        "message": request.query_params.get("message"),
        "error": request.query_params.get("error"),
    }


def render_template(request: Request, name: str, context: dict | None = None, status_code: int = 200) -> HTMLResponse:
    """Render a template with required request object and shared global context."""
    payload: dict[str, Any] = {"request": request, **inject_globals(request)}
    if context:
        payload.update(context)
    return templates.TemplateResponse(request, name, payload, status_code=status_code)


def gate(request: Request, front: Storefront, access: RouteAccess) -> UserProfile | None | Response:
    """Return the signed-in profile (or None on public routes), or the response to send instead."""
    decision = evaluate_route(front.auth_state(), access)
    if isinstance(decision, Redirect):
        return RedirectResponse(url=decision.location, status_code=303)
    if isinstance(decision, Wait):
        return render_template(request, "loading.html")
    return decision.profile


async def form_data(request: Request) -> dict[str, str]:
    """Parse an urlencoded form body; the last value wins for repeated fields."""
    body: str = (await request.body()).decode()
    parsed = parse_qs(body, keep_blank_values=True)
    return {key: values[-1] if values else "" for key, values in parsed.items()}


def safe_next(target: str | None, default: str) -> str:
    """Only same-site relative paths are accepted as redirect targets."""
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return default


def with_query(url: str, **params: str | None) -> str:
    """Append the non-empty ``params`` to ``url`` as a query string."""
    clean: dict[str, str] = {key: value for key, value in params.items() if value}
    if not clean:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(clean)}"
