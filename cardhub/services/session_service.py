"""Principal resolution for incoming requests.

Authentication happens upstream (identity provider / API gateway); it forwards
the verified identity as X-User-* headers. A request without X-User-Id is
anonymous.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Request

from cardhub.domain.policy import Principal

USER_ID_HEADER = "x-user-id"
USER_EMAIL_HEADER = "x-user-email"
USER_NAME_HEADER = "x-user-name"
USER_ADMIN_HEADER = "x-user-admin"


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def current_principal(request: Request) -> Optional[Principal]:
    """Return the caller's Principal, or None for anonymous requests."""
    uid = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not uid:
        return None
    return Principal(
        uid=uid,
        email=(request.headers.get(USER_EMAIL_HEADER) or "").strip(),
        display_name=(request.headers.get(USER_NAME_HEADER) or "").strip(),
        admin=_flag(request.headers.get(USER_ADMIN_HEADER)),
    )
