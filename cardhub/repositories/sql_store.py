"""Document store backed by SQLAlchemy (SQLite in tests, Postgres in prod)."""
from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from cardhub.db.models import StoredDocument
from cardhub.db.session import Base, get_engine, get_session

from .base import Document, DocumentStore, TransactionFn, matches

logger = logging.getLogger(__name__)

_TRANSACTION_ATTEMPTS = 3


def _json_filter(key: str, expected: Any):
    field = StoredDocument.data[key]
    if isinstance(expected, bool):
        return field.as_boolean() == expected
    if isinstance(expected, int):
        return field.as_integer() == expected
    if isinstance(expected, str):
        return field.as_string() == expected
    return None


class SQLDocumentStore(DocumentStore):
    """One `documents` table keyed by (collection, id) with a JSON payload."""

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=get_engine())

    @staticmethod
    def _to_document(row: StoredDocument) -> Document:
        return Document(id=row.id, data=copy.deepcopy(row.data or {}))

    # -------------------------- reads --------------------------
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with get_session() as session:
            row = session.get(StoredDocument, (collection, doc_id))
            return self._to_document(row) if row else None

    def find(
        self,
        collection: str,
        where: Mapping[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        stmt = select(StoredDocument).where(StoredDocument.collection == collection)
        for key, expected in (where or {}).items():
            clause = _json_filter(key, expected)
            if clause is not None:
                stmt = stmt.where(clause)
        if order_by:
            column = StoredDocument.data[order_by].as_string()
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        found: list[Document] = []
        with get_session() as session:
            for row in session.execute(stmt).scalars():
                data = row.data or {}
                # SQL narrows the rows; strict comparison happens here
                if not matches(data, where):
                    continue
                if order_by and data.get(order_by) is None:
                    continue
                found.append(self._to_document(row))
                if limit is not None and len(found) >= limit:
                    break
        return found

    # -------------------------- writes --------------------------
    def add(self, collection: str, data: dict) -> Document:
        doc_id = uuid.uuid4().hex[:20]
        with get_session() as session:
            session.add(StoredDocument(collection=collection, id=doc_id, data=copy.deepcopy(data)))
            session.commit()
        return Document(id=doc_id, data=copy.deepcopy(data))

    def set(self, collection: str, doc_id: str, data: dict, *, merge: bool = False) -> Document:
        if merge:
            return self.run_transaction(collection, doc_id, lambda current: {**(current or {}), **data})
        with get_session() as session:
            row = session.get(StoredDocument, (collection, doc_id))
            if row is None:
                row = StoredDocument(collection=collection, id=doc_id, data=copy.deepcopy(data))
                session.add(row)
            else:
                row.data = copy.deepcopy(data)
            session.commit()
        return Document(id=doc_id, data=copy.deepcopy(data))

    def update(self, collection: str, doc_id: str, patch: dict) -> Document:
        def _merge(current: Optional[dict]) -> dict:
            if current is None:
                raise KeyError(f"{collection}/{doc_id} does not exist")
            current.update(patch)
            return current

        return self.run_transaction(collection, doc_id, _merge)

    def delete(self, collection: str, doc_id: str) -> bool:
        with get_session() as session:
            result = session.execute(
                delete(StoredDocument).where(
                    StoredDocument.collection == collection,
                    StoredDocument.id == doc_id,
                )
            )
            session.commit()
            return bool(result.rowcount)

    def run_transaction(self, collection: str, doc_id: str, fn: TransactionFn) -> Optional[Document]:
        for attempt in range(1, _TRANSACTION_ATTEMPTS + 1):
            with get_session() as session:
                row = session.get(StoredDocument, (collection, doc_id), with_for_update=True)
                current = copy.deepcopy(row.data) if row is not None else None
                result = fn(current)
                if result is None:
                    unchanged = self._to_document(row) if row is not None else None
                    session.rollback()
                    return unchanged
                if row is None:
                    session.add(StoredDocument(collection=collection, id=doc_id, data=copy.deepcopy(result)))
                else:
                    # assign a fresh dict so the JSON column is flagged dirty
                    row.data = copy.deepcopy(result)
                try:
                    session.commit()
                except IntegrityError:
                    # a concurrent writer created the row first; re-read and retry
                    session.rollback()
                    if attempt == _TRANSACTION_ATTEMPTS:
                        raise
                    logger.info("Retrying transaction on %s/%s (attempt %s)", collection, doc_id, attempt)
                    continue
                return Document(id=doc_id, data=copy.deepcopy(result))
        return None
