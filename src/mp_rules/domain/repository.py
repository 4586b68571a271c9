"""Repository Protocol for slot accounting."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_gateway.user.models import UserAccount


class SlotRepositoryProtocol(Protocol):
    async def get_user(self, db: AsyncSession, user_id: str) -> UserAccount | None: ...

    async def consume_slot(
        self, db: AsyncSession, user_id: str, base_slots: int
    ) -> UserAccount | None:
        """Increment slots_used only while slots_used < total; None when refused."""
        ...
