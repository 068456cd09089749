"""In-process document store used by tests and STORE_BACKEND=memory."""
from __future__ import annotations

import copy
import threading
import uuid
from typing import Any, Mapping, Optional

from .base import Document, DocumentStore, TransactionFn, matches


class MemoryDocumentStore(DocumentStore):
    """Arena of collections held in plain dicts; every instance is independent."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.RLock()

    def _bucket(self, collection: str) -> dict[str, dict]:
        return self._collections.setdefault(collection, {})

    @staticmethod
    def _snapshot(doc_id: str, data: dict) -> Document:
        return Document(id=doc_id, data=copy.deepcopy(data))

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            data = self._bucket(collection).get(doc_id)
            return self._snapshot(doc_id, data) if data is not None else None

    def add(self, collection: str, data: dict) -> Document:
        doc_id = uuid.uuid4().hex[:20]
        with self._lock:
            self._bucket(collection)[doc_id] = copy.deepcopy(data)
            return self._snapshot(doc_id, data)

    def set(self, collection: str, doc_id: str, data: dict, *, merge: bool = False) -> Document:
        with self._lock:
            bucket = self._bucket(collection)
            current = bucket.get(doc_id) if merge else None
            stored = {**(current or {}), **copy.deepcopy(data)}
            bucket[doc_id] = stored
            return self._snapshot(doc_id, stored)

    def update(self, collection: str, doc_id: str, patch: dict) -> Document:
        with self._lock:
            bucket = self._bucket(collection)
            if doc_id not in bucket:
                raise KeyError(f"{collection}/{doc_id} does not exist")
            bucket[doc_id].update(copy.deepcopy(patch))
            return self._snapshot(doc_id, bucket[doc_id])

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._bucket(collection).pop(doc_id, None) is not None

    def find(
        self,
        collection: str,
        where: Mapping[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        with self._lock:
            found = [
                self._snapshot(doc_id, data)
                for doc_id, data in self._bucket(collection).items()
                if matches(data, where)
            ]
        if order_by:
            found = [doc for doc in found if doc.data.get(order_by) is not None]
            found.sort(key=lambda doc: doc.data[order_by], reverse=descending)
        if limit is not None:
            found = found[:limit]
        return found

    def run_transaction(self, collection: str, doc_id: str, fn: TransactionFn) -> Optional[Document]:
        with self._lock:
            bucket = self._bucket(collection)
            current = bucket.get(doc_id)
            result = fn(copy.deepcopy(current) if current is not None else None)
            if result is None:
                return self._snapshot(doc_id, current) if current is not None else None
            bucket[doc_id] = copy.deepcopy(result)
            return self._snapshot(doc_id, result)
