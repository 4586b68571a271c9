"""Domain models for mp_entitlement — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.mp_common.enums import EntitlementSource, EntitlementStatus
from src.mp_ledger.domain.models import Transaction


@dataclass
class Entitlement:
    id: str
    owner: str
    type: str                         # EntitlementType value
    status: str = EntitlementStatus.AVAILABLE.value
    source: str = EntitlementSource.PURCHASE.value
    idempotency_key: str | None = None
    event_id: str = ""
    related_transaction_id: int | None = None
    consumed_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def is_available(self) -> bool:
        return self.status == EntitlementStatus.AVAILABLE.value


@dataclass
class PurchaseResult:
    """Outcome of a purchase. ``transaction`` is None on an idempotent replay."""

    entitlement: Entitlement
    transaction: Transaction | None = None
