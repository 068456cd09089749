"""Ownership and visibility rules for cards."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from cardhub.core.errors import PermissionDeniedError, UnauthenticatedError

ANONYMOUS_VIEWER = "anonymous"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as handed over by the transport."""

    uid: str
    email: str = ""
    display_name: str = ""
    admin: bool = False


def viewer_id(principal: Optional[Principal]) -> str:
    return principal.uid if principal else ANONYMOUS_VIEWER


def is_owner(card: Mapping[str, Any], principal: Optional[Principal]) -> bool:
    if principal is None or not principal.uid:
        return False
    return card.get("userId") == principal.uid


def is_published(card: Mapping[str, Any]) -> bool:
    return card.get("active") is True


def can_read(card: Mapping[str, Any], principal: Optional[Principal]) -> bool:
    return is_published(card) or is_owner(card, principal)


def can_write(card: Mapping[str, Any], principal: Optional[Principal]) -> bool:
    # publishing a card never grants write access to anyone but the owner
    return is_owner(card, principal)


def require_principal(principal: Optional[Principal], action: str) -> Principal:
    if principal is None or not principal.uid:
        raise UnauthenticatedError(f"You must be logged in to {action}")
    return principal


def ensure_can_read(card: Mapping[str, Any], principal: Optional[Principal]) -> None:
    if not can_read(card, principal):
        raise PermissionDeniedError("This card is not active or you do not have permission to access it")


def ensure_can_write(card: Mapping[str, Any], principal: Optional[Principal], action: str) -> None:
    require_principal(principal, f"{action} a card")
    if not can_write(card, principal):
        raise PermissionDeniedError(f"You do not have permission to {action} this card")
