"""User profile reads, best-effort profile sync and profile edits."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from canteen.core.errors import StorageError
from canteen.schemas.records import decode_record
from canteen.schemas.user import Identity, Role, UserProfile
from canteen.services.document_store import DocumentStore
from canteen.services.identity_service import IdentityService

logger = logging.getLogger(__name__)

USERS = "users"


def new_profile(identity: Identity) -> UserProfile:
    """Default customer profile for an identity that has none stored yet."""
    return UserProfile(
        id=identity.uid,
        uid=identity.uid,
        email=identity.email,
        display_name=identity.display_name,
        photo_url=identity.photo_url,
        role=Role.CUSTOMER,
    )


def load_profile(store: DocumentStore, identity: Identity) -> UserProfile | None:
    """Return the stored profile, creating a customer profile on first sign-in.

    Storage problems are logged only; ``None`` means the profile is unavailable.
    """
    try:
        stored = store.get_by_id(USERS, identity.uid)
        if stored is not None:
            return decode_record(UserProfile, USERS, stored.id, stored.data)
        profile = new_profile(identity)
        store.put(USERS, identity.uid, profile.to_document())
        logger.info("[PROFILE] Created profile for uid=%s", identity.uid)
        return profile
    except StorageError:
        logger.exception("[PROFILE] Could not load profile for uid=%s", identity.uid)
        return None


class ProfileSync:
    """Makes sure every signed-in identity has a profile document."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self.profile: UserProfile | None = None

    def handle(self, identity: Identity | None) -> UserProfile | None:
        self.profile = load_profile(self.store, identity) if identity is not None else None
        return self.profile

    def follow(self, events: Iterable[Identity | None]) -> UserProfile | None:
        for identity in events:
            self.handle(identity)
        return self.profile


def update_profile(
    identity_service: IdentityService,
    store: DocumentStore,
    identity: Identity,
    display_name: str,
    phone_number: str,
) -> None:
    """Save display name on the identity and both fields on the profile.

    Raises AuthError or StorageError; the profile page shows either as a banner.
    """
    clean_name = (display_name or "").strip()
    identity_service.update_display_name(identity, clean_name)
    store.update(
        USERS,
        identity.uid,
        {"displayName": clean_name, "phoneNumber": (phone_number or "").strip() or None},
    )
