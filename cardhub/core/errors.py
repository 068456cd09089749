"""
Error taxonomy shared by the HTTP and callable surfaces.

Services raise these; routers render them through error_envelope().
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class CardHubError(Exception):
    """Base class for every failure surfaced to a caller."""

    kind = "INTERNAL"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "details": dict(self.details)}


class InvalidArgumentError(CardHubError):
    kind = "INVALID_ARGUMENT"
    status_code = 400


class UnauthenticatedError(CardHubError):
    kind = "UNAUTHENTICATED"
    status_code = 401


class PermissionDeniedError(CardHubError):
    kind = "PERMISSION_DENIED"
    status_code = 403


class NotFoundError(CardHubError):
    kind = "NOT_FOUND"
    status_code = 404


class QuotaExceededError(CardHubError):
    kind = "QUOTA_EXCEEDED"
    status_code = 403

    def __init__(self, current: int, limit: int, message: str | None = None):
        super().__init__(
            message or "Card limit reached. Please upgrade your plan to create more cards.",
            {"current": current, "limit": limit},
        )
        self.current = current
        self.limit = limit


class InternalError(CardHubError):
    kind = "INTERNAL"
    status_code = 500


def error_envelope(exc: CardHubError) -> dict:
    return {"error": exc.to_dict()}


@contextmanager
def internal_errors(action: str) -> Iterator[None]:
    """
    Let taxonomy errors through untouched and turn anything else into
    InternalError, keeping the original message for diagnostics.
    """
    try:
        yield
    except CardHubError:
        raise
    except Exception as exc:
        logger.exception("Error trying to %s", action)
        raise InternalError(f"Failed to {action}: {exc}", {"cause": type(exc).__name__}) from exc
