"""Repository Protocol for the referral fields of ``users``.

Both writes are compare-and-swap transitions that report None when the
expected state no longer holds:
  - bind_referrer:     referred_by IS NULL → referrer_id
  - claim_bonus_flag:  ref_bonus_granted false → true
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_gateway.user.models import UserAccount


class ReferralRepositoryProtocol(Protocol):
    async def get_user(self, db: AsyncSession, user_id: str) -> UserAccount | None: ...

    async def bind_referrer(
        self, db: AsyncSession, user_id: str, referrer_id: str
    ) -> UserAccount | None: ...

    async def claim_bonus_flag(self, db: AsyncSession, user_id: str) -> UserAccount | None: ...
