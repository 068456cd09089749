"""Denormalized per-card counters and the append-only view log."""

from __future__ import annotations

import logging
from typing import Optional

from cardhub.domain.policy import Principal, is_owner, viewer_id
from cardhub.repositories import CARD_STATS, CARD_VIEWS, Document, DocumentStore, now_iso

logger = logging.getLogger(__name__)


def empty_stats(card_id: str, owner_id: str | None, stamp: str) -> dict:
    return {
        "cardId": card_id,
        "views": 0,
        "downloads": 0,
        "shares": 0,
        "userId": owner_id,
        "createdAt": stamp,
        "updatedAt": stamp,
    }


class StatsService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def get(self, card_id: str) -> Optional[dict]:
        doc = self.store.get(CARD_STATS, card_id)
        return doc.to_dict() if doc else None

    def create(self, card_id: str, owner_id: str | None) -> Document:
        return self.store.set(CARD_STATS, card_id, empty_stats(card_id, owner_id, now_iso()))

    def bump(self, card_id: str, owner_id: str | None, counter: str) -> Document:
        """Add one to counter, creating the stats document at 1 when it is absent."""

        def _apply(current: Optional[dict]) -> dict:
            stamp = now_iso()
            data = current if current is not None else empty_stats(card_id, owner_id, stamp)
            data[counter] = int(data.get(counter) or 0) + 1
            data["updatedAt"] = stamp
            return data

        return self.store.run_transaction(CARD_STATS, card_id, _apply)

    def record_view(self, card: Document, principal: Optional[Principal], slug: str | None = None) -> bool:
        """
        Log a view and bump the counter when the viewer is not the owner.
        Never raises: analytics must not break the read.
        """
        if is_owner(card.data, principal):
            return False
        try:
            event = {"cardId": card.id, "viewerId": viewer_id(principal), "timestamp": now_iso()}
            if slug:
                event["slug"] = slug
            self.store.add(CARD_VIEWS, event)
            self.bump(card.id, card.get("userId"), "views")
            return True
        except Exception:
            logger.exception("Error tracking card view for %s", card.id)
            return False

    def record_download(self, card: Document) -> bool:
        try:
            self.bump(card.id, card.get("userId"), "downloads")
            return True
        except Exception:
            logger.exception("Error tracking vCard download for %s", card.id)
            return False

    def remove(self, card_id: str) -> bool:
        """Drop the stats document. cardViews history is retained."""
        try:
            self.store.delete(CARD_STATS, card_id)
            return True
        except Exception:
            logger.exception("Error cleaning up stats for card %s", card_id)
            return False
