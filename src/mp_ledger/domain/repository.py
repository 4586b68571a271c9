"""Repository Protocol — dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Contract for the two balance mutations:
  - credit: unconditional increment, safe on its own.
  - debit_if_sufficient: ONE conditional decrement (balance >= amount checked
    in the same statement). Returns None when the condition did not hold;
    nothing is written in that case.
"""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_gateway.user.models import UserAccount
from src.mp_ledger.domain.models import AuditLogEntry, Transaction


class LedgerRepositoryProtocol(Protocol):
    async def get_user(self, db: AsyncSession, user_id: str) -> UserAccount | None: ...

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        tx_type: str,
        reason: str,
        related_user_id: str | None = None,
        related_code_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> tuple[UserAccount, Transaction] | None: ...

    async def debit_if_sufficient(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reason: str,
        related_card_type: str | None = None,
        related_card_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> tuple[UserAccount, Transaction] | None: ...

    async def list_transactions(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[Transaction]: ...

    async def find_transaction(
        self, db: AsyncSession, tx_type: str, reason: str, related_user_id: str
    ) -> Transaction | None: ...

    async def transaction_totals(
        self, db: AsyncSession, user_id: str, tx_type: str, reason: str
    ) -> tuple[int, int]: ...

    async def sum_transactions(self, db: AsyncSession, user_id: str) -> int: ...

    async def insert_audit_log(
        self,
        db: AsyncSession,
        action: str,
        admin_id: str | None,
        target_user_id: str | None,
        amount: int | None,
        reason: str | None,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry: ...
