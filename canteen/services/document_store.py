"""Collection-scoped document storage backed by the SQL database."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from canteen.core.errors import StorageError
from canteen.models.document import COLLECTIONS, Document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredDocument:
    """Raw document as read from storage; decode it before trusting its shape."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)


def _new_id() -> str:
    """Twenty hex characters, unique enough for document ids."""
    return uuid4().hex[:20]


class DocumentStore:
    """Create, read, query, update and delete documents in named collections.

    Every database failure is rolled back, logged and re-raised as
    ``StorageError``; callers decide whether to fall back or surface it.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _check_collection(self, operation: str, collection: str) -> None:
        if collection not in COLLECTIONS:
            raise StorageError(operation, collection, "unknown collection")

    def _fail(self, operation: str, collection: str, exc: SQLAlchemyError) -> StorageError:
        self.db.rollback()
        logger.exception("[STORAGE] %s on %s failed", operation, collection)
        return StorageError(operation, collection, exc.__class__.__name__)

    def _row(self, collection: str, doc_id: str) -> Document | None:
        return self.db.scalar(
            select(Document).where(Document.collection == collection, Document.doc_id == doc_id).limit(1)
        )

    def create(self, collection: str, record: Mapping[str, Any]) -> str:
        """Insert a record and return its generated identifier."""
        self._check_collection("create", collection)
        doc_id = _new_id()
        try:
            self.db.add(Document(collection=collection, doc_id=doc_id, data=dict(record)))
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("create", collection, exc) from exc
        logger.debug("[STORAGE] created %s/%s", collection, doc_id)
        return doc_id

    def put(self, collection: str, doc_id: str, record: Mapping[str, Any]) -> None:
        """Create or replace the record stored under a known identifier."""
        self._check_collection("put", collection)
        try:
            row = self._row(collection, doc_id)
            if row is None:
                self.db.add(Document(collection=collection, doc_id=doc_id, data=dict(record)))
            else:
                row.data = dict(record)
                row.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("put", collection, exc) from exc

    def get_by_id(self, collection: str, doc_id: str) -> StoredDocument | None:
        self._check_collection("get", collection)
        try:
            row = self._row(collection, doc_id)
        except SQLAlchemyError as exc:
            raise self._fail("get", collection, exc) from exc
        if row is None:
            return None
        return StoredDocument(id=row.doc_id, data=dict(row.data or {}))

    def query(
        self,
        collection: str,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[StoredDocument]:
        """Return documents whose top-level fields equal every ``where`` value.

        Without ``order_by`` the result keeps insertion order.
        """
        self._check_collection("query", collection)
        try:
            rows = self.db.scalars(
                select(Document)
                .where(Document.collection == collection)
                .order_by(Document.created_at.asc(), Document.pk.asc())
            ).all()
        except SQLAlchemyError as exc:
            raise self._fail("query", collection, exc) from exc

        criteria = dict(where or {})
        documents = [
            StoredDocument(id=row.doc_id, data=dict(row.data or {}))
            for row in rows
            if all((row.data or {}).get(key) == value for key, value in criteria.items())
        ]
        if order_by is not None:
            documents.sort(
                key=lambda doc: (doc.data.get(order_by) is None, doc.data.get(order_by) or ""),
                reverse=descending,
            )
        return documents

    def update(self, collection: str, doc_id: str, patch: Mapping[str, Any]) -> None:
        """Merge top-level fields into an existing record."""
        self._check_collection("update", collection)
        try:
            row = self._row(collection, doc_id)
            if row is None:
                raise StorageError("update", collection, f"no document {doc_id}")
            row.data = {**(row.data or {}), **dict(patch)}
            row.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("update", collection, exc) from exc

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a record; deleting a missing record is a no-op."""
        self._check_collection("delete", collection)
        try:
            row = self._row(collection, doc_id)
            if row is not None:
                self.db.delete(row)
                self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", collection, exc) from exc
