"""RulesService — slot accounting for listing creation."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.errors import SlotLimitReachedError, UserNotFoundError
from src.mp_gateway.user.models import UserAccount
from src.mp_rules.domain.repository import SlotRepositoryProtocol
from src.mp_rules.infrastructure.persistence import SlotRepository

logger = logging.getLogger(__name__)


class RulesService:
    def __init__(
        self,
        repo: SlotRepositoryProtocol | None = None,
        base_slots: int | None = None,
    ) -> None:
        self._repo: SlotRepositoryProtocol = repo or SlotRepository()
        self._base_slots = settings.BASE_SLOTS if base_slots is None else base_slots

    async def consume_slot_or_raise(self, db: AsyncSession, user_id: str) -> UserAccount:
        """Take one listing slot atomically.

        Raises:
            UserNotFoundError: no such user.
            SlotLimitReachedError: every slot is already used.
        """
        try:
            user = await self._repo.consume_slot(db, user_id, self._base_slots)
            if user is None:
                await db.rollback()
                if await self._repo.get_user(db, user_id) is None:
                    raise UserNotFoundError(user_id)
                logger.info("Slot limit reached: user=%s", user_id)
                raise SlotLimitReachedError()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return user
