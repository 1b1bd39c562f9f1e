"""Identity provider: password and federated sign-in bound to the client session."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator, MutableMapping
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from canteen.core.config import settings
from canteen.core.errors import AuthError
from canteen.core.security import get_password_hash, verify_federated_token, verify_password
from canteen.models.account import Account
from canteen.schemas.user import Identity

logger = logging.getLogger(__name__)

SESSION_UID_KEY = "uid"
MIN_PASSWORD_LENGTH = 6


def _identity(account: Account) -> Identity:
    return Identity(
        uid=account.uid,
        email=account.email,
        display_name=account.display_name or "",
        photo_url=account.photo_url,
        provider=account.provider,
    )


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class IdentitySubscription:
    """Identity-changed events for one listener.

    Every iteration restarts from the current identity and then lazily yields
    the changes emitted after it. ``cancel`` stops delivery for good.
    """

    def __init__(self, service: IdentityService) -> None:
        self._service = service
        self._pending: deque[Identity | None] = deque()
        self.cancelled = False

    def _push(self, identity: Identity | None) -> None:
        if not self.cancelled:
            self._pending.append(identity)

    def __iter__(self) -> Iterator[Identity | None]:
        if self.cancelled:
            return
        self._pending.clear()
        yield self._service.current_identity()
        while not self.cancelled and self._pending:
            yield self._pending.popleft()

    def cancel(self) -> None:
        self.cancelled = True
        self._pending.clear()
        self._service._unsubscribe(self)

    def __enter__(self) -> IdentitySubscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel()


class IdentityService:
    """Signs identities in and out of one client session."""

    def __init__(self, db: Session, session: MutableMapping[str, Any]) -> None:
        self.db = db
        self.session = session
        self._subscriptions: list[IdentitySubscription] = []

    def subscribe(self) -> IdentitySubscription:
        subscription = IdentitySubscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: IdentitySubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _emit(self, identity: Identity | None) -> None:
        for subscription in list(self._subscriptions):
            subscription._push(identity)

    def _fail(self, operation: str) -> AuthError:
        self.db.rollback()
        logger.exception("[AUTH] %s failed at the provider", operation)
        return AuthError("provider-unavailable")

    def current_identity(self) -> Identity | None:
        uid = self.session.get(SESSION_UID_KEY)
        if not uid:
            return None
        try:
            account = self.db.get(Account, str(uid))
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("[AUTH] Could not resolve identity uid=%s", uid)
            return None
        if account is None:
            self.session.pop(SESSION_UID_KEY, None)
            return None
        return _identity(account)

    def _sign_in(self, account: Account) -> Identity:
        account.last_login_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(account)
        self.session[SESSION_UID_KEY] = account.uid
        identity = _identity(account)
        logger.info("[AUTH] Signed in uid=%s via %s", account.uid, account.provider)
        self._emit(identity)
        return identity

    def register(self, email: str, password: str, display_name: str) -> Identity:
        clean_email = _normalize_email(email)
        if "@" not in clean_email or clean_email.startswith("@") or clean_email.endswith("@"):
            raise AuthError("invalid-email")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError("weak-password")

        try:
            existing = self.db.scalar(select(Account).where(Account.email == clean_email).limit(1))
            if existing is not None:
                raise AuthError("email-already-in-use")
            account = Account(
                uid=uuid4().hex[:28],
                email=clean_email,
                password_hash=get_password_hash(password),
                display_name=(display_name or "").strip(),
                provider="password",
            )
            self.db.add(account)
            self.db.flush()
            return self._sign_in(account)
        except IntegrityError as exc:
            self.db.rollback()
            raise AuthError("email-already-in-use") from exc
        except SQLAlchemyError as exc:
            raise self._fail("register") from exc

    def login(self, email: str, password: str) -> Identity:
        clean_email = _normalize_email(email)
        try:
            account = self.db.scalar(select(Account).where(Account.email == clean_email).limit(1))
            if account is None or not verify_password(password or "", account.password_hash):
                raise AuthError("invalid-credential")
            return self._sign_in(account)
        except SQLAlchemyError as exc:
            raise self._fail("login") from exc

    def login_with_federated_provider(self, id_token: str) -> Identity:
        """Sign in with an ID token issued by the configured federated provider."""
        claims = verify_federated_token(id_token)
        clean_email = _normalize_email(str(claims["email"]))
        try:
            account = self.db.scalar(select(Account).where(Account.email == clean_email).limit(1))
            if account is None:
                account = Account(
                    uid=uuid4().hex[:28],
                    email=clean_email,
                    password_hash=None,
                    display_name=str(claims.get("name") or ""),
                    photo_url=claims.get("picture"),
                    provider="federated",
                )
                self.db.add(account)
                self.db.flush()
                logger.info("[AUTH] New %s account for %s", settings.federated_provider_name, clean_email)
            return self._sign_in(account)
        except SQLAlchemyError as exc:
            raise self._fail("federated login") from exc

    def logout(self) -> None:
        self.session.pop(SESSION_UID_KEY, None)
        self._emit(None)

    def update_display_name(self, identity: Identity, name: str) -> None:
        try:
            account = self.db.get(Account, identity.uid)
            if account is None:
                raise AuthError("user-not-found")
            account.display_name = (name or "").strip()
            self.db.commit()
            self.db.refresh(account)
        except SQLAlchemyError as exc:
            raise self._fail("update display name") from exc
        if self.session.get(SESSION_UID_KEY) == identity.uid:
            self._emit(_identity(account))
