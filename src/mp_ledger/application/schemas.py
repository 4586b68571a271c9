"""Pydantic schemas for mp_ledger API."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from src.mp_gateway.user.models import UserAccount
from src.mp_ledger.domain.models import ReconcileReport, Transaction

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class GrantRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, description="ALBA units to credit")
    reason: Literal["admin_grant", "manual_adjustment"] = "admin_grant"
    comment: str | None = Field(None, max_length=500)


class DeductRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, description="ALBA units to debit")
    reason: Literal["admin_grant", "manual_adjustment"] = "manual_adjustment"
    comment: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    alba_balance: int

    @classmethod
    def from_domain(cls, user: UserAccount) -> "BalanceResponse":
        return cls(user_id=user.id, alba_balance=user.alba_balance)


class TransactionItem(BaseModel):
    id: int
    amount: int
    type: str
    reason: str
    balance_after: int
    related_user_id: str | None
    related_code_id: str | None
    related_card_type: str | None
    related_card_id: str | None
    meta: dict[str, Any]
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            amount=tx.amount,
            type=tx.type,
            reason=tx.reason,
            balance_after=tx.balance_after,
            related_user_id=tx.related_user_id,
            related_code_id=tx.related_code_id,
            related_card_type=tx.related_card_type,
            related_card_id=tx.related_card_id,
            meta=tx.meta,
            created_at=tx.created_at.isoformat() if tx.created_at else "",
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]


class ReconcileResponse(BaseModel):
    user_id: str
    balance: int
    ledger_sum: int
    drift: int
    consistent: bool

    @classmethod
    def from_domain(cls, report: ReconcileReport) -> "ReconcileResponse":
        return cls(
            user_id=report.user_id,
            balance=report.balance,
            ledger_sum=report.ledger_sum,
            drift=report.drift,
            consistent=report.consistent,
        )
