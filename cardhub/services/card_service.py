"""
Card read and write paths.

Reads apply the visibility policy and record analytics for non-owners; writes
apply the ownership policy, keep slugs unique and keep the owner's
cardsCreated counter in step.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from cardhub.core.errors import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    internal_errors,
)
from cardhub.domain.policy import (
    Principal,
    ensure_can_read,
    ensure_can_write,
    require_principal,
)
from cardhub.domain.slugs import clean_slug, join_name
from cardhub.repositories import CARDS, Document, DocumentStore, now_iso
from cardhub.services.account_service import AccountService
from cardhub.services.quota_service import QuotaService
from cardhub.services.slug_service import SlugService
from cardhub.services.stats_service import StatsService, empty_stats

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = ("id", "userId", "createdAt")
SERVER_FIELDS = IMMUTABLE_FIELDS + ("updatedAt",)


def strip_server_fields(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if key not in SERVER_FIELDS}


def _check_field_types(payload: dict[str, Any]) -> None:
    if "active" in payload and not isinstance(payload["active"], bool):
        raise InvalidArgumentError("Field 'active' must be a boolean", {"active": payload["active"]})
    if payload.get("slug") is not None and not isinstance(payload["slug"], str):
        raise InvalidArgumentError("Field 'slug' must be a string", {"slug": payload["slug"]})


class CardService:
    def __init__(
        self,
        store: DocumentStore,
        *,
        slugs: SlugService,
        quotas: QuotaService,
        stats: StatsService,
        accounts: AccountService,
    ) -> None:
        self.store = store
        self.slugs = slugs
        self.quotas = quotas
        self.stats = stats
        self.accounts = accounts

    # -------------------------- lookups --------------------------
    def _load(self, card_id: str) -> Document:
        if not card_id:
            raise InvalidArgumentError("Card ID is required")
        card = self.store.get(CARDS, card_id)
        if card is None:
            raise NotFoundError("Card not found", {"cardId": card_id})
        return card

    def _load_by_slug(self, slug: str, *, published_only: bool = False) -> Document:
        if not slug:
            raise InvalidArgumentError("Slug is required")
        where: dict[str, Any] = {"slug": slug}
        if published_only:
            where["active"] = True
        card = self.store.find_one(CARDS, where)
        if card is None:
            raise NotFoundError("Card not found", {"slug": slug})
        return card

    def get_published_by_slug(self, slug: str) -> Document:
        """Public lookup used by the vCard and QR endpoints."""
        with internal_errors("get card"):
            return self._load_by_slug(slug, published_only=True)

    def find_by_slug(self, slug: str) -> Optional[Document]:
        """Unfiltered lookup for the public card page; visibility is the caller's call."""
        if not slug:
            return None
        with internal_errors("get card"):
            return self.store.find_one(CARDS, {"slug": slug})

    # -------------------------- read path --------------------------
    def get_by_id(self, card_id: str, principal: Optional[Principal]) -> dict:
        with internal_errors("get card"):
            card = self._load(card_id)
            ensure_can_read(card.data, principal)
        self.stats.record_view(card, principal)
        return card.to_dict()

    def get_by_slug(self, slug: str, principal: Optional[Principal]) -> dict:
        with internal_errors("get card"):
            card = self._load_by_slug(slug)
            ensure_can_read(card.data, principal)
        self.stats.record_view(card, principal, slug=slug)
        return card.to_dict()

    def list_for_user(self, principal: Optional[Principal], user_id: str | None = None) -> list[dict]:
        caller = require_principal(principal, "view cards")
        target = user_id or caller.uid
        if target != caller.uid and not caller.admin:
            raise PermissionDeniedError("You can only access your own cards")
        with internal_errors("fetch cards"):
            cards = self.store.find(CARDS, {"userId": target}, order_by="updatedAt", descending=True)
        return [card.to_dict() for card in cards]

    def stats_for(self, card_id: str, principal: Optional[Principal]) -> dict:
        """Counters of one card, readable by its owner only. Zeros before the first view."""
        with internal_errors("get card stats"):
            card = self._load(card_id)
            ensure_can_write(card.data, principal, "view stats of")
            stats = self.stats.get(card_id)
        return stats or {"id": card_id, **empty_stats(card_id, card.get("userId"), card.get("createdAt"))}

    # -------------------------- write path --------------------------
    def _slug_for_new_card(self, payload: dict[str, Any], caller: Principal) -> str:
        if payload.get("slug"):
            return self.slugs.allocate_explicit(str(payload["slug"]))
        base_name = (
            payload.get("fullName")
            or join_name(payload.get("firstName"), payload.get("lastName"))
            or caller.display_name
        )
        if not base_name:
            raise InvalidArgumentError("A name or slug is required to create a card")
        return self.slugs.allocate(str(base_name))

    def create(self, principal: Optional[Principal], payload: dict[str, Any]) -> dict:
        caller = require_principal(principal, "create a card")
        fields = strip_server_fields(payload or {})
        _check_field_types(fields)
        with internal_errors("create card"):
            self.accounts.ensure_account(caller)
            self.quotas.enforce(caller.uid)
            slug = self._slug_for_new_card(fields, caller)
            stamp = now_iso()
            data = {
                **fields,
                "slug": slug,
                "userId": caller.uid,
                "active": fields.get("active", True),
                "createdAt": stamp,
                "updatedAt": stamp,
            }
            card = self.store.add(CARDS, data)
            self.accounts.increment_cards_created(caller.uid)
            self.stats.create(card.id, caller.uid)
        logger.info("Card %s created for %s with slug %s", card.id, caller.uid, slug)
        return {"cardId": card.id, "slug": slug, "card": card.to_dict()}

    def update(self, card_id: str, principal: Optional[Principal], patch: dict[str, Any] | None) -> dict:
        require_principal(principal, "update a card")
        if patch is None:
            raise InvalidArgumentError("Card data is required")
        with internal_errors("update card"):
            card = self._load(card_id)
            ensure_can_write(card.data, principal, "update")
            updates = strip_server_fields(patch)
            _check_field_types(updates)
            if "slug" in updates:
                if clean_slug(updates["slug"]) == card.get("slug"):
                    del updates["slug"]
                else:
                    updates["slug"] = self.slugs.resolve_changed_slug(updates["slug"])
            # updatedAt never moves backwards
            updates["updatedAt"] = max(now_iso(), card.get("updatedAt") or "")
            try:
                updated = self.store.update(CARDS, card_id, updates)
            except KeyError:
                raise NotFoundError("Card not found", {"cardId": card_id}) from None
        return {"success": True, "card": updated.to_dict()}

    def delete(self, card_id: str, principal: Optional[Principal]) -> dict:
        require_principal(principal, "delete a card")
        with internal_errors("delete card"):
            card = self._load(card_id)
            ensure_can_write(card.data, principal, "delete")
            self.store.delete(CARDS, card_id)
            self.accounts.decrement_cards_created(card.get("userId"))
        self.stats.remove(card_id)
        logger.info("Card %s deleted by %s", card_id, card.get("userId"))
        return {"success": True}
