"""Card quota checks per plan."""

from __future__ import annotations

from dataclasses import dataclass

from cardhub.core.config import Settings, get_settings
from cardhub.core.errors import QuotaExceededError
from cardhub.repositories import CARD_LIMITS_DOC, CARDS, SYSTEM_CONFIG, USERS, DocumentStore


@dataclass
class QuotaStatus:
    allowed: bool
    current: int
    limit: int

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "current": self.current, "limit": self.limit}


class QuotaService:
    """
    Counts a user's published cards against the limit of their plan.

    The limit is read from system_config/card_limits (one entry per plan) and
    falls back to FREE_CARD_LIMIT / PRO_CARD_LIMIT when the document or the
    plan entry is missing.
    """

    def __init__(self, store: DocumentStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    def plan_for(self, owner_id: str) -> str:
        account = self.store.get(USERS, owner_id)
        return (account.get("plan") if account else None) or "free"

    def limit_for_plan(self, plan: str) -> int:
        limits = self.store.get(SYSTEM_CONFIG, CARD_LIMITS_DOC)
        configured = limits.get(plan) if limits else None
        if isinstance(configured, int) and not isinstance(configured, bool):
            return configured
        return self.settings.default_limit_for(plan)

    def published_count(self, owner_id: str) -> int:
        return self.store.count(CARDS, {"userId": owner_id, "active": True})

    def check(self, owner_id: str) -> QuotaStatus:
        limit = self.limit_for_plan(self.plan_for(owner_id))
        current = self.published_count(owner_id)
        return QuotaStatus(allowed=current < limit, current=current, limit=limit)

    def enforce(self, owner_id: str) -> QuotaStatus:
        # count-then-create: two concurrent creates can both pass this check
        status = self.check(owner_id)
        if not status.allowed:
            raise QuotaExceededError(status.current, status.limit)
        return status
