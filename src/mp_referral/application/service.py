"""ReferralService — write-once referrer binding and the one-time bonus.

Bonus payout is guarded three ways:
  1. the ref_bonus_granted flag is claimed by CAS in the same unit of work
     as both credits, so only one caller can ever pay;
  2. an existing (earn, referral_bonus, related_user_id=user) transaction
     short-circuits the payout and only repairs the flag;
  3. a partial unique index on alba_transactions rejects a second
     referral_bonus row for the same referred user.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.enums import TransactionReason, TransactionType
from src.mp_common.errors import (
    ReferralAlreadySetError,
    ReferrerNotFoundError,
    SelfReferralError,
    UserNotFoundError,
)
from src.mp_common.result import OpResult
from src.mp_common.tokens import generate_event_id
from src.mp_gateway.user.models import UserAccount
from src.mp_ledger.application.service import LedgerService
from src.mp_referral.domain.models import ReferralStats
from src.mp_referral.domain.repository import ReferralRepositoryProtocol
from src.mp_referral.infrastructure.persistence import ReferralRepository

logger = logging.getLogger(__name__)


class ReferralService:
    def __init__(
        self,
        ledger: LedgerService | None = None,
        repo: ReferralRepositoryProtocol | None = None,
        referrer_bonus: int | None = None,
        referred_bonus: int | None = None,
    ) -> None:
        self._ledger = ledger or LedgerService()
        self._repo: ReferralRepositoryProtocol = repo or ReferralRepository()
        self._referrer_bonus = (
            settings.REFERRER_BONUS if referrer_bonus is None else referrer_bonus
        )
        self._referred_bonus = (
            settings.REFERRED_USER_BONUS if referred_bonus is None else referred_bonus
        )

    async def set_referral_binding(
        self, db: AsyncSession, user_id: str, referrer_id: str
    ) -> OpResult[UserAccount]:
        if user_id == referrer_id:
            return OpResult.fail(SelfReferralError())

        user = await self._repo.get_user(db, user_id)
        if user is None:
            return OpResult.fail(UserNotFoundError(user_id))
        if user.referred_by is not None:
            return OpResult.fail(ReferralAlreadySetError())
        if await self._repo.get_user(db, referrer_id) is None:
            return OpResult.fail(ReferrerNotFoundError(referrer_id))

        try:
            bound = await self._repo.bind_referrer(db, user_id, referrer_id)
            if bound is None:
                await db.rollback()
                logger.info("Referral binding race lost: user=%s", user_id)
                return OpResult.fail(ReferralAlreadySetError())
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Referral bound: user=%s referrer=%s", user_id, referrer_id)
        return OpResult.success(bound)

    async def grant_referral_bonus_if_eligible(self, db: AsyncSession, user_id: str) -> bool:
        """Pay the one-time referral bonus pair. Returns True only when this call paid it."""
        user = await self._repo.get_user(db, user_id)
        if user is None or user.email_verified is not True:
            return False
        if user.referred_by is None or user.ref_bonus_granted:
            return False
        if user.referred_by == user.id:
            logger.warning("Self-referral found on user=%s; bonus skipped", user.id)
            return False
        referrer_id = user.referred_by

        if await self._ledger.find_referral_bonus(db, user.id) is not None:
            try:
                await self._repo.claim_bonus_flag(db, user.id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            logger.warning("Referral bonus already in ledger for user=%s; flag repaired", user.id)
            return False

        event_id = generate_event_id("ref")
        meta = {"event_id": event_id}
        try:
            if await self._repo.claim_bonus_flag(db, user.id) is None:
                await db.rollback()
                logger.info("Referral bonus race lost: user=%s", user.id)
                return False
            paid_referrer = await self._ledger.earn_alba(
                db,
                referrer_id,
                self._referrer_bonus,
                TransactionReason.REFERRAL_BONUS.value,
                related_user_id=user.id,
                meta=meta,
            )
            if paid_referrer is None:
                await db.rollback()
                logger.warning(
                    "Referral bonus skipped, referrer missing: user=%s referrer=%s",
                    user.id, referrer_id,
                )
                return False
            await self._ledger.earn_alba(
                db,
                user.id,
                self._referred_bonus,
                TransactionReason.REFERRED_USER_BONUS.value,
                related_user_id=referrer_id,
                meta=meta,
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info("Duplicate referral bonus rejected: user=%s", user.id)
            return False
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Referral bonus paid: user=%s referrer=%s event_id=%s", user.id, referrer_id, event_id
        )
        return True

    async def get_referral_stats(self, db: AsyncSession, user_id: str) -> ReferralStats:
        count, total = await self._ledger.reason_totals(
            db, user_id, TransactionType.EARN.value, TransactionReason.REFERRAL_BONUS.value
        )
        return ReferralStats(
            successful_referrals=count,
            total_alba_from_referrals=total,
            referral_bonus_amount=self._referrer_bonus,
        )
