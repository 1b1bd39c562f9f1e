"""FastAPI entrypoint for the campus canteen pre-ordering storefront."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from canteen.core.config import settings
from canteen.core.errors import AuthError, StorageError, ValidationError
from canteen.db import session as db_session
from canteen.db.base import Base
from canteen.db.seed import ensure_default_admin
from canteen.schemas.order import PAYMENT_METHOD_LABELS, Order, PaymentMethod
from canteen.services.access import RouteAccess
from canteen.services.catalog import (
    get_menu_item,
    get_order,
    get_restaurant,
    is_active_order,
    is_completed_order,
    list_customer_orders,
    list_menu_items,
    list_restaurants,
)
from canteen.services.catalog_filter import (
    ALL_CATEGORIES,
    collect_categories,
    collect_tags,
    filter_menu_items,
    filter_restaurants,
    toggle_selection,
)
from canteen.services.checkout import OrderRequest, OrderSubmissionError, pickup_slots, service_fee, submit_order
from canteen.services.document_store import DocumentStore
from canteen.services.profile import ProfileSync, update_profile
from canteen.views import dashboard
from canteen.views.context import (
    BASE_DIR,
    Storefront,
    form_data,
    gate,
    open_storefront,
    render_template,
    safe_next,
    with_query,
)

logger = logging.getLogger(__name__)

LAST_ORDER_KEY = "last_order"

app = FastAPI(title=settings.app_name)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    same_site="lax",
    https_only=False,
    max_age=settings.session_max_age,
)
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")
app.include_router(dashboard.router)


@app.on_event("startup")
def startup() -> None:
    """Configure logging, create tables and make sure the configured admin exists."""
    logging.getLogger("canteen").setLevel(logging.DEBUG if settings.debug else logging.INFO)
    if settings.session_secret == settings.session_secret_fallback:
        logger.warning("SESSION_SECRET not set; using development fallback secret.")
    logger.info("[BOOTSTRAP] Starting %s in %s mode", settings.app_name, settings.app_env)
    Base.metadata.create_all(bind=db_session.engine)
    with db_session.SessionLocal() as db:
        try:
            admin_present = ensure_default_admin(db, DocumentStore(db))
            logger.info("[BOOTSTRAP] configured admin present: %s", "yes" if admin_present else "no")
        except Exception:
            logger.exception("[BOOTSTRAP] Admin bootstrap failed; continuing startup.")


def _cart_page(request: Request, front: Storefront, error: str | None = None, form: dict[str, str] | None = None) -> HTMLResponse:
    """Cart and checkout form; ``form`` re-fills the fields after a rejected checkout."""
    state = front.cart.state
    slots: list[str] = pickup_slots(datetime.now())
    form = form or {}
    fee = service_fee()
    return render_template(
        request,
        "cart.html",
        {
            "profile": front.profile,
            "cart": state,
            "service_fee": fee,
            "grand_total": state.total + fee,
            "slots": slots,
            "selected_slot": form.get("pickup_slot") or (slots[0] if slots else ""),
            "payment_methods": PAYMENT_METHOD_LABELS,
            "selected_method": form.get("payment_method") or PaymentMethod.COD.value,
            "special_instructions": form.get("special_instructions", ""),
            "checkout_error": error,
        },
    )


@app.get("/", response_class=HTMLResponse)
def home(request: Request, q: str = "", tag: str | None = None):
    with open_storefront(request) as front:
        restaurants = list_restaurants(front.store)
        profile = front.profile
    tags = collect_tags(restaurants)
    filtered = filter_restaurants(restaurants, q, tag)
    tag_links = [
        {"label": value, "active": value == tag, "href": with_query("/", q=q, tag=toggle_selection(tag, value))}
        for value in tags
    ]
    return render_template(
        request,
        "home.html",
        {
            "profile": profile,
            "restaurants": filtered,
            "has_restaurants": bool(restaurants),
            "search_term": q,
            "selected_tag": tag,
            "tag_links": tag_links,
        },
    )


@app.get("/restaurant/{restaurant_id}", response_class=HTMLResponse)
def restaurant_page(request: Request, restaurant_id: str, q: str = "", category: str = ALL_CATEGORIES):
    with open_storefront(request) as front:
        restaurant = get_restaurant(front.store, restaurant_id)
        items = list_menu_items(front.store, restaurant_id) if restaurant is not None else []
        profile = front.profile
        quantities = {line.id: line.quantity for line in front.cart.state.lines}
    if restaurant is None:
        return render_template(request, "restaurant.html", {"profile": profile, "restaurant": None}, status_code=404)

    category_links = [
        {
            "label": value,
            "active": value == category,
            "href": with_query(f"/restaurant/{restaurant_id}", q=q, category=None if value == ALL_CATEGORIES else value),
        }
        for value in collect_categories(items)
    ]
    return render_template(
        request,
        "restaurant.html",
        {
            "profile": profile,
            "restaurant": restaurant,
            "items": filter_menu_items(items, q, category),
            "has_items": bool(items),
            "search_term": q,
            "category_links": category_links,
            "quantities": quantities,
        },
    )


@app.get("/cart", response_class=HTMLResponse)
def cart_page(request: Request):
    with open_storefront(request) as front:
        return _cart_page(request, front)


@app.post("/cart/add", response_class=RedirectResponse)
async def cart_add(request: Request):
    """Bind the item's restaurant, then add one of the item."""
    form = await form_data(request)
    item_id = form.get("item_id", "")
    with open_storefront(request) as front:
        item = get_menu_item(front.store, item_id)
        restaurant = get_restaurant(front.store, item.restaurant_id) if item is not None else None
        if item is None or restaurant is None or not item.is_available:
            target = safe_next(form.get("next"), "/")
            return RedirectResponse(url=with_query(target, error="This item is not available."), status_code=303)
        front.cart.bind_restaurant(restaurant)
        front.cart.add_item(item)
    return RedirectResponse(url=safe_next(form.get("next"), f"/restaurant/{restaurant.id}"), status_code=303)


@app.post("/cart/update", response_class=RedirectResponse)
async def cart_update(request: Request):
    form = await form_data(request)
    try:
        quantity = int(form.get("quantity", ""))
    except ValueError:
        return RedirectResponse(url=safe_next(form.get("next"), "/cart"), status_code=303)
    with open_storefront(request) as front:
        front.cart.set_quantity(form.get("item_id", ""), quantity)
    return RedirectResponse(url=safe_next(form.get("next"), "/cart"), status_code=303)


@app.post("/cart/remove", response_class=RedirectResponse)
async def cart_remove(request: Request):
    form = await form_data(request)
    with open_storefront(request) as front:
        front.cart.remove_item(form.get("item_id", ""))
    return RedirectResponse(url=safe_next(form.get("next"), "/cart"), status_code=303)


@app.post("/cart/clear", response_class=RedirectResponse)
def cart_clear(request: Request):
    with open_storefront(request) as front:
        front.cart.clear()
    return RedirectResponse(url="/cart", status_code=303)


@app.post("/checkout")
async def checkout(request: Request):
    form = await form_data(request)
    order_request = OrderRequest(
        pickup_slot=form.get("pickup_slot", ""),
        payment_method=form.get("payment_method", PaymentMethod.COD.value),
        special_instructions=form.get("special_instructions", ""),
    )
    with open_storefront(request) as front:
        try:
            order = submit_order(front.cart, front.profile, order_request, front.store)
        except (ValidationError, OrderSubmissionError) as exc:
            return _cart_page(request, front, error=exc.message, form=form)

    request.session[LAST_ORDER_KEY] = order.id
    return RedirectResponse(url="/checkout/success", status_code=303)


@app.get("/checkout/success", response_class=HTMLResponse)
def checkout_success(request: Request):
    """Show the order just placed, once; the session only carries its id."""
    order_id = request.session.pop(LAST_ORDER_KEY, None)
    if not isinstance(order_id, str) or not order_id:
        return RedirectResponse(url="/", status_code=303)
    with open_storefront(request) as front:
        order: Order | None = get_order(front.store, order_id)
        identity = front.identity.current_identity()
    if order is None or identity is None or order.customer_id != identity.uid:
        logger.error("[CHECKOUT] Confirmation for order %s is unavailable; redirecting home.", order_id)
        return RedirectResponse(url="/", status_code=303)
    return render_template(request, "checkout_success.html", {"order": order, "payment_methods": PAYMENT_METHOD_LABELS})


@app.get("/orders", response_class=HTMLResponse)
def orders_page(request: Request, tab: str = "active"):
    with open_storefront(request) as front:
        current = gate(request, front, RouteAccess.SIGNED_IN)
        if isinstance(current, Response):
            return current
        orders = list_customer_orders(front.store, current.uid)
    selected_tab = "completed" if tab == "completed" else "active"
    predicate = is_completed_order if selected_tab == "completed" else is_active_order
    return render_template(
        request,
        "orders.html",
        {
            "profile": current,
            "orders": [order for order in orders if predicate(order)],
            "tab": selected_tab,
            "payment_methods": PAYMENT_METHOD_LABELS,
        },
    )


@app.get("/profile", response_class=HTMLResponse)
def profile_page(request: Request):
    with open_storefront(request) as front:
        current = gate(request, front, RouteAccess.SIGNED_IN)
        if isinstance(current, Response):
            return current
    return render_template(request, "profile.html", {"profile": current})


@app.post("/profile", response_class=RedirectResponse)
async def profile_submit(request: Request):
    form = await form_data(request)
    with open_storefront(request) as front:
        current = gate(request, front, RouteAccess.SIGNED_IN)
        if isinstance(current, Response):
            return current
        identity = front.identity.current_identity()
        if identity is None:
            return RedirectResponse(url="/login", status_code=303)
        try:
            update_profile(front.identity, front.store, identity, form.get("display_name", ""), form.get("phone_number", ""))
        except AuthError as exc:
            logger.warning("[PROFILE] Update rejected for uid=%s: %s", identity.uid, exc.reason)
            return RedirectResponse(url=with_query("/profile", error="Failed to update profile."), status_code=303)
        except StorageError:
            logger.exception("[PROFILE] Update failed for uid=%s", identity.uid)
            return RedirectResponse(url=with_query("/profile", error="Failed to update profile."), status_code=303)
    return RedirectResponse(url=with_query("/profile", message="Profile updated successfully."), status_code=303)


def _signed_in_redirect(request: Request) -> RedirectResponse | None:
    """Signed-in visitors have no business on the login or register pages."""
    if request.session.get("uid"):
        return RedirectResponse(url="/", status_code=303)
    return None


def _login_form(request: Request, auth_error: str | None = None, email: str = "", next_url: str | None = None):
    """Render the sign-in page, carrying a same-site ``next`` target into the form."""
    redirect = _signed_in_redirect(request)
    if redirect is not None:
        return redirect
    return render_template(
        request,
        "login.html",
        {
            "auth_error": auth_error,
            "email": email,
            "next_url": safe_next(next_url, ""),
            "federated_provider": settings.federated_provider_name,
        },
    )


@app.get("/login", response_class=HTMLResponse)
def login_page(request: Request, auth_error: str | None = None, email: str = ""):
    return _login_form(request, auth_error=auth_error, email=email, next_url=request.query_params.get("next"))


@app.post("/login", response_class=RedirectResponse)
async def login_submit(request: Request):
    form = await form_data(request)
    email = form.get("email", "")
    next_url = form.get("next")
    with open_storefront(request) as front:
        with front.identity.subscribe() as events:
            try:
                front.identity.login(email, form.get("password", ""))
            except AuthError as exc:
                logger.info("[AUTH] Login rejected: %s", exc.reason)
                return _login_form(request, auth_error=exc.message, email=email, next_url=next_url)
            ProfileSync(front.store).follow(events)
    return RedirectResponse(url=safe_next(next_url, "/"), status_code=303)


@app.post("/login/federated", response_class=RedirectResponse)
async def login_federated(request: Request):
    form = await form_data(request)
    next_url = form.get("next")
    with open_storefront(request) as front:
        with front.identity.subscribe() as events:
            try:
                front.identity.login_with_federated_provider(form.get("id_token", ""))
            except AuthError as exc:
                logger.info("[AUTH] Federated login rejected: %s", exc.reason)
                return _login_form(request, auth_error=exc.message, next_url=next_url)
            ProfileSync(front.store).follow(events)
    return RedirectResponse(url=safe_next(next_url, "/"), status_code=303)


@app.get("/register", response_class=HTMLResponse)
def register_page(request: Request, auth_error: str | None = None, email: str = "", display_name: str = ""):
    redirect = _signed_in_redirect(request)
    if redirect is not None:
        return redirect
    return render_template(
        request,
        "register.html",
        {"auth_error": auth_error, "email": email, "display_name": display_name},
    )


@app.post("/register", response_class=RedirectResponse)
async def register_submit(request: Request):
    form = await form_data(request)
    email = form.get("email", "")
    display_name = form.get("display_name", "")
    if form.get("password", "") != form.get("confirm_password", ""):
        return register_page(request, auth_error="Passwords do not match.", email=email, display_name=display_name)

    with open_storefront(request) as front:
        with front.identity.subscribe() as events:
            try:
                front.identity.register(email, form.get("password", ""), display_name)
            except AuthError as exc:
                logger.info("[AUTH] Registration rejected: %s", exc.reason)
                return register_page(request, auth_error=exc.message, email=email, display_name=display_name)
            ProfileSync(front.store).follow(events)
    return RedirectResponse(url="/", status_code=303)


@app.post("/logout", response_class=RedirectResponse)
def logout(request: Request):
    with open_storefront(request) as front:
        front.identity.logout()
    request.session.pop(LAST_ORDER_KEY, None)
    return RedirectResponse(url="/login", status_code=303)


@app.get("/logout", response_class=RedirectResponse)
def logout_get(request: Request):
    return logout(request)


@app.get("/healthz", include_in_schema=False)
def healthz():
    return {"status": "ok"}


@app.get("/{path:path}", include_in_schema=False)
def unmatched(path: str):
    """Unknown paths land on the home page."""
    return RedirectResponse(url="/", status_code=303)
