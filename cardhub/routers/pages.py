"""Server-rendered public card page with Open Graph tags for link previews."""
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from cardhub.core.utils import absolute_url, card_share_url
from cardhub.domain.policy import is_published
from cardhub.domain.slugs import join_name
from cardhub.routers import get_services

router = APIRouter(prefix="", tags=["pages"])


def _templates(request: Request):
    tpl = getattr(getattr(request.app, "state", None), "templates", None)
    if tpl:
        return tpl
    raise RuntimeError("Templates not configured on app.state")


def _og_image(photo) -> str:
    if not isinstance(photo, str):
        return ""
    photo = photo.strip()
    if photo.startswith("http://") or photo.startswith("https://") or photo.startswith("/"):
        return absolute_url(photo)
    return ""


@router.get("/{slug}", response_class=HTMLResponse)
def card_page(slug: str, request: Request):
    card = get_services(request).cards.find_by_slug(slug)
    # unknown and unpublished cards both go back to the home page
    if card is None or not is_published(card.data):
        return RedirectResponse("/", status_code=302)
    data = card.to_dict()
    name = (data.get("fullName") or "").strip() or join_name(data.get("firstName"), data.get("lastName")) or slug
    headline = " at ".join(p for p in (data.get("title"), data.get("organization")) if p)
    context = {
        "name": name,
        "headline": headline,
        "share_url": card_share_url(data.get("slug") or slug),
        "og_image": _og_image(data.get("photo")),
        "initial_data": {"slug": slug, "data": data},
    }
    return _templates(request).TemplateResponse(request, "card.html", context)
