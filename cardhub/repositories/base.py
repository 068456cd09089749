"""Document store interface shared by the in-memory and SQL backends."""
from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from cardhub.core.errors import InternalError

CARDS = "cards"
USERS = "users"
CARD_STATS = "cardStats"
CARD_VIEWS = "cardViews"
SYSTEM_CONFIG = "system_config"
CARD_LIMITS_DOC = "card_limits"

TransactionFn = Callable[[Optional[dict]], Optional[dict]]


def now_iso() -> str:
    """UTC timestamp with fixed precision, so string order matches time order."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


@dataclass
class Document:
    id: str
    data: dict = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> dict:
        payload = copy.deepcopy(self.data)
        payload["id"] = self.id
        return payload


def matches(data: Mapping[str, Any], where: Mapping[str, Any] | None) -> bool:
    for key, expected in (where or {}).items():
        if key not in data:
            return False
        value = data[key]
        # True == 1 in Python; the stores compare booleans strictly
        if isinstance(expected, bool) or isinstance(value, bool):
            if value is not expected:
                return False
        elif value != expected:
            return False
    return True


class DocumentStore(ABC):
    """
    Minimal document database: keyed documents grouped in collections,
    equality queries on top-level fields and single-document transactions.
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    def add(self, collection: str, data: dict) -> Document:
        """Insert a document under a store-assigned id."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict, *, merge: bool = False) -> Document:
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, patch: dict) -> Document:
        """Shallow-merge patch into an existing document; KeyError when absent."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        ...

    @abstractmethod
    def find(
        self,
        collection: str,
        where: Mapping[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        ...

    @abstractmethod
    def run_transaction(self, collection: str, doc_id: str, fn: TransactionFn) -> Optional[Document]:
        """
        Atomically read one document, pass a copy of its data (or None) to fn
        and store whatever fn returns. Returning None leaves the document as is.
        """

    def find_one(self, collection: str, where: Mapping[str, Any]) -> Optional[Document]:
        found = self.find(collection, where, limit=1)
        return found[0] if found else None

    def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int:
        return len(self.find(collection, where))

    def increment(
        self,
        collection: str,
        doc_id: str,
        field_name: str,
        amount: int = 1,
        extra: Optional[dict] = None,
    ) -> Document:
        """Add amount to a numeric field, creating the document when absent."""

        def _apply(current: Optional[dict]) -> dict:
            data = current or {}
            data[field_name] = int(data.get(field_name) or 0) + amount
            data.update(extra or {})
            return data

        doc = self.run_transaction(collection, doc_id, _apply)
        if doc is None:
            raise InternalError(f"Failed to increment {field_name}", {"collection": collection, "id": doc_id})
        return doc
