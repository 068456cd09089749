"""
FastAPI routers grouped by surface (public HTTP, callables, hooks, admin).

Routers resolve the caller's principal, validate payloads and delegate to the
services stored on app.state; they never touch the document store directly.
"""

from __future__ import annotations

from fastapi import Request


def get_services(request: Request):
    svc = getattr(getattr(request.app, "state", None), "services", None)
    if not svc:
        raise RuntimeError("Services not configured on app.state")
    return svc
