"""Repository Protocol for entitlements.

insert_entitlement must raise sqlalchemy.exc.IntegrityError when
(owner, type, idempotency_key) or event_id already exists.
mark_consumed is a compare-and-swap: it only applies to an ``available``
row and returns None otherwise.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_entitlement.domain.models import Entitlement


class EntitlementRepositoryProtocol(Protocol):
    async def find_by_key(
        self, db: AsyncSession, owner: str, entitlement_type: str, idempotency_key: str
    ) -> Entitlement | None: ...

    async def insert_entitlement(
        self,
        db: AsyncSession,
        owner: str,
        entitlement_type: str,
        source: str,
        event_id: str,
        idempotency_key: str | None,
        related_transaction_id: int | None,
    ) -> Entitlement: ...

    async def get_entitlement(self, db: AsyncSession, entitlement_id: str) -> Entitlement | None: ...

    async def list_available(
        self, db: AsyncSession, owner: str, entitlement_type: str | None = None
    ) -> list[Entitlement]:
        """Oldest first."""
        ...

    async def count_available(self, db: AsyncSession, owner: str, entitlement_type: str) -> int: ...

    async def mark_consumed(
        self, db: AsyncSession, entitlement_id: str, consumed_at: datetime
    ) -> Entitlement | None: ...
