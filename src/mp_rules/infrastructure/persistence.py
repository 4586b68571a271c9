"""SlotRepository — guarded slot consumption in one UPDATE.

Transaction ownership: the CALLER commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_gateway.user.models import UserAccount
from src.mp_gateway.user.persistence import USER_COLUMNS, UserRepository, row_to_user

_CONSUME_SLOT_SQL = text(f"""
    UPDATE users
    SET slots_used = slots_used + 1,
        slots_total = COALESCE(slots_total, :base_slots)
    WHERE id = :user_id
      AND slots_used < COALESCE(slots_total, :base_slots)
    RETURNING {USER_COLUMNS}
""")


class SlotRepository:
    def __init__(self) -> None:
        self._users = UserRepository()

    async def get_user(self, db: AsyncSession, user_id: str) -> UserAccount | None:
        return await self._users.get_user(db, user_id)

    async def consume_slot(
        self, db: AsyncSession, user_id: str, base_slots: int
    ) -> UserAccount | None:
        result = await db.execute(
            _CONSUME_SLOT_SQL, {"user_id": user_id, "base_slots": base_slots}
        )
        row = result.fetchone()
        return row_to_user(row) if row else None
