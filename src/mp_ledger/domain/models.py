"""Domain models for mp_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Transaction:
    id: int                          # BIGSERIAL
    user_id: str
    amount: int                      # positive=earn/grant, negative=spend
    type: str                        # TransactionType value
    reason: str                      # TransactionReason value
    balance_after: int               # alba_balance snapshot after the mutation
    related_user_id: str | None = None
    related_code_id: str | None = None
    related_card_type: str | None = None
    related_card_id: str | None = None
    comment: str = ""
    meta: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass
class AuditLogEntry:
    id: int
    action: str
    admin_id: str | None
    target_user_id: str | None
    amount: int | None
    reason: str | None
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass
class ReconcileReport:
    user_id: str
    balance: int
    ledger_sum: int

    @property
    def drift(self) -> int:
        return self.balance - self.ledger_sum

    @property
    def consistent(self) -> bool:
        return self.drift == 0
