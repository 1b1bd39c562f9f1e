"""Database seeding helpers."""

import logging
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from canteen.core.config import settings
from canteen.core.security import get_password_hash
from canteen.models.account import Account
from canteen.schemas.catalog import MenuItem, OpeningHours, Restaurant
from canteen.schemas.user import Role, UserProfile
from canteen.services.access import Capability, require_capability
from canteen.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

SAMPLE_MENU: list[dict] = [
    {
        "name": "Classic Burger",
        "description": "Juicy beef patty with fresh lettuce, tomatoes, and our special sauce",
        "price": Decimal("8.99"),
        "image_url": "https://images.pexels.com/photos/1639557/pexels-photo-1639557.jpeg",
        "category": "Burgers",
        "preparation_time": 15,
        "tags": ["Lunch", "Popular"],
    },
    {
        "name": "Chicken Sandwich",
        "description": "Grilled chicken breast with avocado and honey mustard",
        "price": Decimal("7.99"),
        "image_url": "https://images.pexels.com/photos/1647163/pexels-photo-1647163.jpeg",
        "category": "Sandwiches",
        "preparation_time": 12,
        "tags": ["Lunch", "Healthy"],
    },
    {
        "name": "Caesar Salad",
        "description": "Fresh romaine lettuce, parmesan cheese, croutons, and caesar dressing",
        "price": Decimal("6.99"),
        "image_url": "https://images.pexels.com/photos/1059905/pexels-photo-1059905.jpeg",
        "category": "Salads",
        "preparation_time": 8,
        "tags": ["Healthy", "Vegetarian"],
    },
]


def add_sample_restaurant(store: DocumentStore, actor: UserProfile | None) -> str:
    """Create the demo campus cafe and its menu for the acting vendor."""
    owner = require_capability(actor, Capability.MANAGE_CATALOG)
    restaurant = Restaurant(
        vendor_id=owner.uid,
        name="Campus Cafe",
        description="Your favorite campus dining destination serving fresh, delicious meals daily.",
        image_url="https://images.pexels.com/photos/2159065/pexels-photo-2159065.jpeg",
        location="Main Building, Ground Floor",
        opening_hours=OpeningHours(open="8:00 AM", close="6:00 PM"),
        tags=["Breakfast", "Lunch", "Snacks", "Beverages"],
    )
    restaurant_id = store.create("restaurants", restaurant.to_document())
    for entry in SAMPLE_MENU:
        item = MenuItem(restaurant_id=restaurant_id, is_available=True, **entry)
        store.create("menuItems", item.to_document())
    logger.info("[SEED] Sample restaurant %s added for vendor %s", restaurant_id, owner.uid)
    return restaurant_id


def ensure_default_admin(db: Session, store: DocumentStore) -> bool:
    """Create the configured admin account and profile if missing.

    Returns:
        bool: True when an admin account is configured and present.
    """
    email = settings.admin_email.strip().lower()
    if not email or not settings.admin_password:
        return False

    account = db.scalar(select(Account).where(Account.email == email).limit(1))
    if account is None:
        account = Account(
            uid=uuid4().hex[:28],
            email=email,
            password_hash=get_password_hash(settings.admin_password),
            display_name="Administrator",
            provider="password",
        )
        db.add(account)
        db.commit()
        logger.warning("[BOOTSTRAP] Admin account created for %s.", email)

    profile = UserProfile(
        id=account.uid,
        uid=account.uid,
        email=account.email,
        display_name=account.display_name,
        role=Role.ADMIN,
    )
    existing = store.get_by_id("users", account.uid)
    if existing is None or existing.data.get("role") != Role.ADMIN.value:
        store.put("users", account.uid, {**(existing.data if existing else {}), **profile.to_document()})
    return True
