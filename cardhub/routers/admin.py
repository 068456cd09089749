from fastapi import APIRouter, Request

from cardhub.core.errors import PermissionDeniedError
from cardhub.domain.policy import require_principal
from cardhub.routers import get_services
from cardhub.services.session_service import current_principal

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/init-card-limits")
def init_card_limits(request: Request):
    caller = require_principal(current_principal(request), "initialize card limits")
    if not caller.admin:
        raise PermissionDeniedError("Only administrators can initialize card limits")
    limits = get_services(request).accounts.initialize_card_limits()
    return {"success": True, "message": "Card limits initialized", "limits": limits}
