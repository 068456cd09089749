from __future__ import annotations

import io

import qrcode
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from cardhub.core.errors import InvalidArgumentError, internal_errors
from cardhub.core.rate_limiter import rate_limit_ip
from cardhub.core.utils import card_share_url
from cardhub.routers import get_services
from cardhub.schemas import CheckQuotaRequest, ReserveSlugRequest, parse_payload
from cardhub.services.vcard_service import build_vcard

router = APIRouter(prefix="", tags=["public"])


def _rate_limit(request: Request, scope: str) -> None:
    services = get_services(request)
    rate_limit_ip(request, services.rate_limiter, scope, limit=services.settings.rate_limit_per_minute)


@router.get("/healthz")
def healthz():
    return {"ok": True}


@router.get("/vcf/{slug}")
def vcard(slug: str, request: Request):
    services = get_services(request)
    card = services.cards.get_published_by_slug(slug)
    vcf = build_vcard(card.data)
    services.stats.record_download(card)
    return Response(vcf, media_type="text/vcard; charset=utf-8", headers={
        "Content-Disposition": f"attachment; filename=\"{slug}.vcf\""
    })


@router.get("/q/{slug}.png")
def qr(slug: str, request: Request):
    services = get_services(request)
    card = services.cards.get_published_by_slug(slug)
    img = qrcode.make(card_share_url(card.get("slug") or slug))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return StreamingResponse(buf, media_type="image/png")


@router.post("/reserve-slug")
def reserve_slug(request: Request, payload: dict):
    _rate_limit(request, "reserve-slug")
    body = parse_payload(ReserveSlugRequest, payload)
    if not body.full_name or not body.uid:
        raise InvalidArgumentError("Missing fullName or uid")
    with internal_errors("reserve slug"):
        slug = get_services(request).slugs.allocate(body.full_name)
    return {"slug": slug}


@router.post("/check-quota")
def check_quota(request: Request, payload: dict):
    _rate_limit(request, "check-quota")
    body = parse_payload(CheckQuotaRequest, payload)
    if not body.uid:
        raise InvalidArgumentError("Missing uid")
    with internal_errors("check quota"):
        status = get_services(request).quotas.check(body.uid)
    if not status.allowed:
        return JSONResponse(
            status_code=403,
            content={
                "error": "QUOTA_EXCEEDED",
                "message": f"The current plan allows {status.limit} published card(s)",
                "current": status.current,
                "limit": status.limit,
            },
        )
    return status.to_dict()
