"""Pydantic schemas for mp_codes API."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.mp_codes.domain.models import Code
from src.mp_common.enums import CardType, CodeKind

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateCodesRequest(BaseModel):
    count: int = Field(..., ge=1, le=500)
    kind: CodeKind
    type: CardType
    expires_at: datetime | None = None


class RedeemCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


class IssueActivationCodeRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    card_type: CardType
    card_id: str = Field(..., min_length=1, max_length=64)
    expires_at: datetime | None = None


class ActivateCodeRequest(BaseModel):
    activation_code: str = Field(..., min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CodeItem(BaseModel):
    id: str
    code: str
    kind: str
    type: str
    status: str
    expires_at: str | None
    used_by: str | None
    used_at: str | None
    reserved_for_user_id: str | None
    card_id: str | None

    @classmethod
    def from_domain(cls, code: Code) -> "CodeItem":
        return cls(
            id=code.id,
            code=code.code,
            kind=code.kind,
            type=code.type,
            status=code.status,
            expires_at=code.expires_at.isoformat() if code.expires_at else None,
            used_by=code.used_by,
            used_at=code.used_at.isoformat() if code.used_at else None,
            reserved_for_user_id=code.reserved_for_user_id,
            card_id=code.card_id,
        )


class CodeListResponse(BaseModel):
    items: list[CodeItem]
