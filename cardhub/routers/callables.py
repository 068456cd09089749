"""
RPC-style callables: POST /callable/<name> with {"data": {...}}.

Successful calls answer {"result": {...}}; failures are rendered by the
CardHubError handler as {"error": {"kind", "message", "details"}}.
"""
from __future__ import annotations

from fastapi import APIRouter, Request

from cardhub.routers import get_services
from cardhub.schemas import (
    CallableBody,
    CreateCardRequest,
    DeleteCardRequest,
    GetCardByIdRequest,
    GetCardBySlugRequest,
    GetCardStatsRequest,
    GetUserCardsRequest,
    UpdateCardRequest,
    UpgradePlanRequest,
    parse_payload,
)
from cardhub.services.session_service import current_principal

router = APIRouter(prefix="/callable", tags=["callable"])


def _result(payload: dict) -> dict:
    return {"result": payload}


@router.post("/createCard")
def create_card(request: Request, body: CallableBody):
    payload = parse_payload(CreateCardRequest, body.data)
    created = get_services(request).cards.create(current_principal(request), payload.card_fields())
    return _result({"success": True, **created})


@router.post("/getCardById")
def get_card_by_id(request: Request, body: CallableBody):
    payload = parse_payload(GetCardByIdRequest, body.data)
    card = get_services(request).cards.get_by_id(payload.card_id, current_principal(request))
    return _result({"card": card})


@router.post("/getCardBySlug")
def get_card_by_slug(request: Request, body: CallableBody):
    payload = parse_payload(GetCardBySlugRequest, body.data)
    card = get_services(request).cards.get_by_slug(payload.slug, current_principal(request))
    return _result({"card": card})


@router.post("/getUserCards")
def get_user_cards(request: Request, body: CallableBody):
    payload = parse_payload(GetUserCardsRequest, body.data)
    cards = get_services(request).cards.list_for_user(current_principal(request), payload.user_id)
    return _result({"cards": cards})


@router.post("/getCardStats")
def get_card_stats(request: Request, body: CallableBody):
    payload = parse_payload(GetCardStatsRequest, body.data)
    stats = get_services(request).cards.stats_for(payload.card_id, current_principal(request))
    return _result({"stats": stats})


@router.post("/updateCard")
def update_card(request: Request, body: CallableBody):
    payload = parse_payload(UpdateCardRequest, body.data)
    updated = get_services(request).cards.update(payload.card_id, current_principal(request), payload.card_data)
    return _result(updated)


@router.post("/deleteCard")
def delete_card(request: Request, body: CallableBody):
    payload = parse_payload(DeleteCardRequest, body.data)
    return _result(get_services(request).cards.delete(payload.card_id, current_principal(request)))


@router.post("/upgradePlan")
def upgrade_plan(request: Request, body: CallableBody):
    payload = parse_payload(UpgradePlanRequest, body.data)
    plan = get_services(request).accounts.upgrade(current_principal(request), payload.payment_token)
    return _result({**plan, "success": True, "message": "Plan upgraded successfully"})
