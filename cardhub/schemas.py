"""Request models for the HTTP and callable surfaces.

Field names follow the camelCase wire format; attributes are snake_case.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cardhub.core.errors import InvalidArgumentError

ModelT = TypeVar("ModelT", bound=BaseModel)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CallableBody(BaseModel):
    """Envelope of every callable request: {"data": {...}}."""

    data: Dict[str, Any] = Field(default_factory=dict)


class CreateCardRequest(_WireModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    slug: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    active: Optional[bool] = None

    def card_fields(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class GetCardByIdRequest(_WireModel):
    card_id: str = Field(alias="cardId", min_length=1)


class GetCardBySlugRequest(_WireModel):
    slug: str = Field(min_length=1)


class GetUserCardsRequest(_WireModel):
    user_id: Optional[str] = Field(default=None, alias="userId")


class GetCardStatsRequest(_WireModel):
    card_id: str = Field(alias="cardId", min_length=1)


class UpdateCardRequest(_WireModel):
    card_id: str = Field(alias="cardId", min_length=1)
    card_data: Dict[str, Any] = Field(alias="cardData")


class DeleteCardRequest(_WireModel):
    card_id: str = Field(alias="cardId", min_length=1)


class UpgradePlanRequest(_WireModel):
    payment_token: Optional[str] = Field(default=None, alias="paymentToken")


class ReserveSlugRequest(_WireModel):
    full_name: Optional[str] = Field(default=None, alias="fullName")
    uid: Optional[str] = None


class CheckQuotaRequest(_WireModel):
    uid: Optional[str] = None


class UserCreatedHook(_WireModel):
    uid: str = Field(min_length=1)
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")


def parse_payload(model: Type[ModelT], payload: Dict[str, Any] | None) -> ModelT:
    """Validate a raw payload, reporting problems as INVALID_ARGUMENT."""
    try:
        return model.model_validate(payload or {})
    except ValidationError as exc:
        fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
        raise InvalidArgumentError(
            f"Invalid request: {', '.join(f for f in fields if f) or 'payload'}",
            {"fields": fields},
        ) from None
