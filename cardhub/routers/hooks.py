from fastapi import APIRouter, Request

from cardhub.core.errors import internal_errors
from cardhub.domain.policy import Principal
from cardhub.routers import get_services
from cardhub.schemas import UserCreatedHook, parse_payload

router = APIRouter(prefix="/hooks", tags=["hooks"])


@router.post("/user-created")
def user_created(request: Request, payload: dict):
    """Called by the identity provider once a user signs up."""
    body = parse_payload(UserCreatedHook, payload)
    principal = Principal(uid=body.uid, email=body.email or "", display_name=body.display_name or "")
    with internal_errors("create user profile"):
        account = get_services(request).accounts.ensure_account(principal)
    return {"ok": True, "plan": account.get("plan")}
