"""Pydantic schemas for mp_entitlement API."""

from pydantic import BaseModel, Field

from src.mp_entitlement.domain.models import Entitlement, PurchaseResult
from src.mp_ledger.application.schemas import TransactionItem


class PurchaseRequest(BaseModel):
    # validated by the service so an unknown type gets its own error code
    type: str = Field(..., min_length=1, max_length=16)
    idempotency_key: str | None = Field(None, max_length=128)


class EntitlementItem(BaseModel):
    id: str
    type: str
    status: str
    source: str
    event_id: str
    related_transaction_id: int | None
    created_at: str | None

    @classmethod
    def from_domain(cls, ent: Entitlement) -> "EntitlementItem":
        return cls(
            id=ent.id,
            type=ent.type,
            status=ent.status,
            source=ent.source,
            event_id=ent.event_id,
            related_transaction_id=ent.related_transaction_id,
            created_at=ent.created_at.isoformat() if ent.created_at else None,
        )


class PurchaseResponse(BaseModel):
    entitlement: EntitlementItem
    transaction: TransactionItem | None
    replayed: bool

    @classmethod
    def from_domain(cls, result: PurchaseResult, replayed: bool) -> "PurchaseResponse":
        return cls(
            entitlement=EntitlementItem.from_domain(result.entitlement),
            transaction=(
                TransactionItem.from_domain(result.transaction) if result.transaction else None
            ),
            replayed=replayed,
        )


class EntitlementsByTypeResponse(BaseModel):
    product: list[EntitlementItem]
    service: list[EntitlementItem]

    @classmethod
    def from_domain(cls, entitlements: list[Entitlement]) -> "EntitlementsByTypeResponse":
        items = [EntitlementItem.from_domain(e) for e in entitlements]
        return cls(
            product=[i for i in items if i.type == "product"],
            service=[i for i in items if i.type == "service"],
        )
