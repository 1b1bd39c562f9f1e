"""Durable per-visitor key/value storage."""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any, Protocol
from uuid import uuid4

from canteen.core.errors import StorageError
from canteen.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

CARTS = "carts"
VISITOR_SESSION_KEY = "visitor_id"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class DocumentKeyValueStore:
    """Values live in the ``carts`` collection, keyed by a visitor id kept in the session cookie.

    The cookie only ever holds the visitor id, so its size does not grow with the stored values.
    A visitor id is minted on the first write; reads without one find nothing.
    """

    def __init__(self, store: DocumentStore, session: MutableMapping[str, Any]) -> None:
        self.store = store
        self.session = session

    def _document_id(self, key: str, create: bool = False) -> str | None:
        visitor = self.session.get(VISITOR_SESSION_KEY)
        if not isinstance(visitor, str) or not visitor:
            if not create:
                return None
            visitor = uuid4().hex
            self.session[VISITOR_SESSION_KEY] = visitor
        return f"{visitor}:{key}"

    def get(self, key: str) -> str | None:
        document_id = self._document_id(key)
        if document_id is None:
            return None
        try:
            document = self.store.get_by_id(CARTS, document_id)
        except StorageError:
            logger.warning("[STORAGE] Could not read %r for this visitor; treating it as unset.", key)
            return None
        if document is None:
            return None
        value = document.data.get("value")
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        """Create or replace the value; storage failures propagate as ``StorageError``."""
        document_id = self._document_id(key, create=True)
        self.store.put(CARTS, document_id, {"value": value})


class MemoryKeyValueStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value
