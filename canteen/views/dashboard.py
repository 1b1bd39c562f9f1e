"""Vendor and admin dashboard pages."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from canteen.core.errors import DecodingError, PermissionDenied, StorageError, ValidationError
from canteen.db.seed import add_sample_restaurant
from canteen.schemas.order import PAYMENT_METHOD_LABELS, OrderStatus, PaymentStatus
from canteen.schemas.records import decode_record
from canteen.schemas.user import Role, UserProfile
from canteen.services import dashboard as actions
from canteen.services.access import RouteAccess
from canteen.services.catalog import list_menu_items, list_restaurant_orders, list_restaurants
from canteen.services.profile import USERS
from canteen.views.context import Storefront, form_data, gate, open_storefront, render_template, with_query

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard")

TABS = ("menu", "orders", "settings")


def _run_action(
    request: Request,
    front: Storefront,
    back: str,
    success: str,
    action: Callable[[UserProfile | None], Any],
    after: Callable[[Any], str] | None = None,
) -> RedirectResponse:
    """Run a mutation with the actor's current profile and redirect with a banner.

    ``after`` maps the action result to the success redirect; otherwise ``back`` is used.
    """
    actor = front.reload_profile()
    try:
        result = action(actor)
    except ValidationError as exc:
        return RedirectResponse(url=with_query(back, error=exc.message), status_code=303)
    except PermissionDenied as exc:
        logger.warning("[DASHBOARD] Denied %s for uid=%s", exc.capability, actor.uid if actor else None)
        return RedirectResponse(url=with_query(back, error="You do not have permission to do that."), status_code=303)
    except StorageError:
        logger.exception("[DASHBOARD] Storage failure while handling %s", request.url.path)
        return RedirectResponse(url=with_query(back, error="Something went wrong. Please try again."), status_code=303)
    target = after(result) if after is not None else back
    return RedirectResponse(url=with_query(target, message=success), status_code=303)


def _restaurant_url(restaurant_id: str, tab: str = "menu") -> str:
    """Dashboard URL with ``restaurant_id`` selected on ``tab``."""
    return with_query("/dashboard", restaurant=restaurant_id, tab=tab)


@router.get("", response_class=HTMLResponse)
def dashboard_page(
    request: Request,
    restaurant: str | None = None,
    tab: str = "menu",
    orders: str = "pending",
    edit: str | None = None,
):
    """Vendors see their own restaurants, admins see all of them."""
    with open_storefront(request) as front:
        current = gate(request, front, RouteAccess.STAFF)
        if isinstance(current, Response):
            return current
        vendor_filter = None if current.role == Role.ADMIN else current.uid
        restaurants = list_restaurants(front.store, vendor_id=vendor_filter)
        selected = next((entry for entry in restaurants if entry.id == restaurant), None)
        if selected is None and restaurants:
            selected = restaurants[0]

        menu_items = []
        restaurant_orders = []
        payment_filter = PaymentStatus.COMPLETED if orders == "completed" else PaymentStatus.PENDING
        if selected is not None:
            menu_items = list_menu_items(front.store, selected.id)
            restaurant_orders = list_restaurant_orders(front.store, selected.id, payment_filter)

    selected_tab = tab if tab in TABS else "menu"
    return render_template(
        request,
        "dashboard.html",
        {
            "profile": current,
            "restaurants": restaurants,
            "selected": selected,
            "tab": selected_tab,
            "menu_items": menu_items,
            "editing_item": next((item for item in menu_items if item.id == edit), None),
            "orders": restaurant_orders,
            "orders_filter": "completed" if payment_filter == PaymentStatus.COMPLETED else "pending",
            "order_statuses": list(OrderStatus),
            "payment_methods": PAYMENT_METHOD_LABELS,
        },
    )


@router.post("/restaurants", response_class=RedirectResponse)
async def restaurant_create(request: Request):
    form = await form_data(request)
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            "/dashboard",
            "Restaurant created.",
            lambda actor: actions.create_restaurant(front.store, actor, form),
            after=lambda restaurant_id: _restaurant_url(restaurant_id, "settings"),
        )


@router.post("/restaurants/sample", response_class=RedirectResponse)
def restaurant_sample(request: Request):
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            "/dashboard",
            "Sample restaurant added.",
            lambda actor: add_sample_restaurant(front.store, actor),
            after=_restaurant_url,
        )


@router.post("/restaurants/{restaurant_id}", response_class=RedirectResponse)
async def restaurant_update(request: Request, restaurant_id: str):
    form = await form_data(request)
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            _restaurant_url(restaurant_id, "settings"),
            "Restaurant updated.",
            lambda actor: actions.update_restaurant(front.store, actor, restaurant_id, form),
        )


@router.post("/restaurants/{restaurant_id}/delete", response_class=RedirectResponse)
def restaurant_delete(request: Request, restaurant_id: str):
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            _restaurant_url(restaurant_id, "settings"),
            "Restaurant deleted.",
            lambda actor: actions.delete_restaurant(front.store, actor, restaurant_id),
            after=lambda _removed: "/dashboard",
        )


@router.post("/restaurants/{restaurant_id}/items", response_class=RedirectResponse)
async def menu_item_create(request: Request, restaurant_id: str):
    form = await form_data(request)
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            _restaurant_url(restaurant_id),
            "Menu item added.",
            lambda actor: actions.create_menu_item(front.store, actor, restaurant_id, form),
        )


@router.post("/items/{item_id}", response_class=RedirectResponse)
async def menu_item_update(request: Request, item_id: str):
    form = await form_data(request)
    back = _restaurant_url(form.get("restaurant_id", ""))
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            back,
            "Menu item updated.",
            lambda actor: actions.update_menu_item(front.store, actor, item_id, form),
        )


@router.post("/items/{item_id}/delete", response_class=RedirectResponse)
async def menu_item_delete(request: Request, item_id: str):
    form = await form_data(request)
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            _restaurant_url(form.get("restaurant_id", "")),
            "Menu item deleted.",
            lambda actor: actions.delete_menu_item(front.store, actor, item_id),
        )


@router.post("/orders/{order_id}/complete", response_class=RedirectResponse)
async def order_complete(request: Request, order_id: str):
    form = await form_data(request)
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            _restaurant_url(form.get("restaurant_id", ""), "orders"),
            "Payment marked as completed.",
            lambda actor: actions.complete_order_payment(front.store, actor, order_id),
        )


@router.post("/orders/{order_id}/status", response_class=RedirectResponse)
async def order_status(request: Request, order_id: str):
    form = await form_data(request)
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            _restaurant_url(form.get("restaurant_id", ""), "orders"),
            "Order status updated.",
            lambda actor: actions.set_fulfillment_status(front.store, actor, order_id, form.get("status", "")),
        )


@router.get("/users", response_class=HTMLResponse)
def users_page(request: Request):
    """Admin-only list of every user profile with a role picker."""
    with open_storefront(request) as front:
        current = gate(request, front, RouteAccess.ADMIN)
        if isinstance(current, Response):
            return current
        try:
            documents = front.store.query(USERS, order_by="email")
        except StorageError:
            logger.exception("[DASHBOARD] Could not list users")
            documents = []
    users: list[UserProfile] = []
    for document in documents:
        try:
            users.append(decode_record(UserProfile, USERS, document.id, document.data))
        except DecodingError:
            logger.error("[DASHBOARD] Skipping undecodable user %s", document.id)
    return render_template(request, "dashboard_users.html", {"profile": current, "users": users, "roles": list(Role)})


@router.post("/users/{uid}/role", response_class=RedirectResponse)
async def user_role(request: Request, uid: str):
    form = await form_data(request)
    with open_storefront(request) as front:
        return _run_action(
            request,
            front,
            "/dashboard/users",
            "Role updated.",
            lambda actor: actions.set_user_role(front.store, actor, uid, form.get("role", "")),
        )
