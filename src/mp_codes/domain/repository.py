"""Repository Protocol for the code registry.

mark_used / mark_expired are compare-and-swap transitions: they only apply
when the stored status is still ``active`` and report whether they did.
insert_usage must raise sqlalchemy.exc.IntegrityError on a duplicate
(user_id, code_id).
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_codes.domain.models import Code, CodeUsage, NewCode
from src.mp_gateway.user.models import UserAccount


class CodeRepositoryProtocol(Protocol):
    async def get_user(self, db: AsyncSession, user_id: str) -> UserAccount | None: ...

    async def insert_codes(self, db: AsyncSession, codes: list[NewCode]) -> list[Code]: ...

    async def get_code_by_value(self, db: AsyncSession, value: str) -> Code | None: ...

    async def list_codes(self, db: AsyncSession, limit: int) -> list[Code]: ...

    async def mark_expired(self, db: AsyncSession, code_id: str) -> bool: ...

    async def mark_used(
        self, db: AsyncSession, code_id: str, user_id: str, used_at: datetime
    ) -> Code | None: ...

    async def insert_usage(
        self,
        db: AsyncSession,
        user_id: str,
        code: Code,
        ip: str | None,
        user_agent: str | None,
        used_at: datetime,
    ) -> CodeUsage: ...

    async def add_slot(
        self, db: AsyncSession, user_id: str, base_slots: int
    ) -> UserAccount | None: ...

    async def set_tier(self, db: AsyncSession, user_id: str, tier: str) -> UserAccount | None: ...
