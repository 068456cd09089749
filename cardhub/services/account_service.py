"""
User account and plan use cases.

Accounts are created the first time a principal shows up (the auth provider's
user-created hook, or lazily on the first card) and keep a denormalized
cardsCreated counter that the card write path adjusts.
"""

from __future__ import annotations

import logging
from typing import Optional

from cardhub.core.config import Settings, get_settings
from cardhub.core.errors import InternalError, InvalidArgumentError, internal_errors
from cardhub.domain.policy import Principal, require_principal
from cardhub.repositories import CARD_LIMITS_DOC, SYSTEM_CONFIG, USERS, Document, DocumentStore, now_iso

logger = logging.getLogger(__name__)

PRO_PLAN = "pro"
FREE_PLAN = "free"


class AccountService:
    def __init__(self, store: DocumentStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    def get(self, uid: str) -> Optional[Document]:
        return self.store.get(USERS, uid)

    def ensure_account(self, principal: Principal) -> Document:
        """Create users/{uid} on the free plan unless it already exists."""

        def _create(current: Optional[dict]) -> Optional[dict]:
            if current is not None:
                return None
            stamp = now_iso()
            return {
                "uid": principal.uid,
                "email": principal.email or "",
                "displayName": principal.display_name or "",
                "plan": FREE_PLAN,
                "cardLimit": self.settings.free_card_limit,
                "cardsCreated": 0,
                "createdAt": stamp,
                "updatedAt": stamp,
            }

        doc = self.store.run_transaction(USERS, principal.uid, _create)
        if doc is None:
            raise InternalError("Failed to create account", {"uid": principal.uid})
        return doc

    def increment_cards_created(self, uid: str) -> Document:
        return self.store.increment(USERS, uid, "cardsCreated", 1, {"updatedAt": now_iso()})

    def decrement_cards_created(self, uid: str) -> Optional[Document]:
        """
        Decrement cardsCreated inside one transaction. A missing account or a
        counter that is absent or already zero is left untouched.
        """

        def _apply(current: Optional[dict]) -> Optional[dict]:
            if current is None:
                return None
            count = current.get("cardsCreated")
            if not isinstance(count, int) or count <= 0:
                return None
            current["cardsCreated"] = count - 1
            current["updatedAt"] = now_iso()
            return current

        return self.store.run_transaction(USERS, uid, _apply)

    def upgrade(self, principal: Optional[Principal], payment_token: str | None) -> dict:
        """
        Move the caller to the pro plan.

        The token is only checked for presence; charging it belongs to the
        payment provider integration.
        """
        caller = require_principal(principal, "upgrade your plan")
        if not (payment_token or "").strip():
            raise InvalidArgumentError("Payment token is required")
        card_limit = self.settings.pro_card_limit
        stamp = now_iso()
        with internal_errors("upgrade plan"):
            self.store.set(
                USERS,
                caller.uid,
                {"plan": PRO_PLAN, "cardLimit": card_limit, "upgradedAt": stamp, "updatedAt": stamp},
                merge=True,
            )
        logger.info("User %s upgraded to %s", caller.uid, PRO_PLAN)
        return {"plan": PRO_PLAN, "cardLimit": card_limit}

    def initialize_card_limits(self) -> dict:
        limits = {"free": self.settings.free_card_limit, "pro": self.settings.pro_card_limit}
        with internal_errors("initialize card limits"):
            self.store.set(SYSTEM_CONFIG, CARD_LIMITS_DOC, {**limits, "updatedAt": now_iso()})
        return limits
