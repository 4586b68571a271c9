"""ReferralRepository — write-once referral columns on ``users``.

Transaction ownership: the CALLER commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_gateway.user.models import UserAccount
from src.mp_gateway.user.persistence import USER_COLUMNS, UserRepository, row_to_user

_BIND_SQL = text(f"""
    UPDATE users
    SET referred_by = :referrer_id
    WHERE id = :user_id AND referred_by IS NULL AND id <> :referrer_id
    RETURNING {USER_COLUMNS}
""")

_CLAIM_FLAG_SQL = text(f"""
    UPDATE users
    SET ref_bonus_granted = TRUE
    WHERE id = :user_id AND ref_bonus_granted = FALSE
    RETURNING {USER_COLUMNS}
""")


class ReferralRepository:
    def __init__(self) -> None:
        self._users = UserRepository()

    async def get_user(self, db: AsyncSession, user_id: str) -> UserAccount | None:
        return await self._users.get_user(db, user_id)

    async def bind_referrer(
        self, db: AsyncSession, user_id: str, referrer_id: str
    ) -> UserAccount | None:
        result = await db.execute(_BIND_SQL, {"user_id": user_id, "referrer_id": referrer_id})
        row = result.fetchone()
        return row_to_user(row) if row else None

    async def claim_bonus_flag(self, db: AsyncSession, user_id: str) -> UserAccount | None:
        result = await db.execute(_CLAIM_FLAG_SQL, {"user_id": user_id})
        row = result.fetchone()
        return row_to_user(row) if row else None
