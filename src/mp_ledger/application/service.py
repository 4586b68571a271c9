"""LedgerService — owner of the ALBA balance and the transaction log.

Public operations (grant_alba, spend_alba) are complete units of work:
they commit on success and roll back on any exception.

credit/debit/earn_alba run INSIDE the caller's unit of work and never
commit; the entitlement and referral services compose them with their own
writes so that a debit and the entitlement it pays for land together.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.enums import (
    ADMIN_GRANT_REASONS,
    ADMIN_SPEND_REASONS,
    SPEND_REASON_ALLOW_LIST,
    AuditAction,
    TransactionReason,
    TransactionType,
)
from src.mp_common.errors import (
    ForbiddenReasonError,
    InsufficientBalanceError,
    InvalidAmountError,
    UserNotFoundError,
)
from src.mp_common.result import OpResult
from src.mp_gateway.user.models import UserAccount
from src.mp_ledger.domain.models import ReconcileReport, Transaction
from src.mp_ledger.domain.repository import LedgerRepositoryProtocol
from src.mp_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol | None = None,
        page_limit: int | None = None,
    ) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()
        self._page_limit = page_limit or settings.TRANSACTIONS_PAGE_LIMIT

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, db: AsyncSession, user_id: str) -> OpResult[UserAccount]:
        user = await self._repo.get_user(db, user_id)
        if user is None:
            return OpResult.fail(UserNotFoundError(user_id))
        return OpResult.success(user)

    async def list_transactions(
        self, db: AsyncSession, user_id: str, limit: int | None = None
    ) -> list[Transaction]:
        """Newest first, one bounded page."""
        bounded = max(1, min(limit or self._page_limit, self._page_limit))
        return await self._repo.list_transactions(db, user_id, bounded)

    async def find_referral_bonus(
        self, db: AsyncSession, referred_user_id: str
    ) -> Transaction | None:
        return await self._repo.find_transaction(
            db,
            TransactionType.EARN.value,
            TransactionReason.REFERRAL_BONUS.value,
            referred_user_id,
        )

    async def reason_totals(
        self, db: AsyncSession, user_id: str, tx_type: str, reason: str
    ) -> tuple[int, int]:
        """(count, sum) of the user's ``tx_type`` transactions with ``reason``."""
        return await self._repo.transaction_totals(db, user_id, tx_type, reason)

    async def reconcile(self, db: AsyncSession, user_id: str) -> OpResult[ReconcileReport]:
        """Compare the stored balance against the sum of the transaction log."""
        user = await self._repo.get_user(db, user_id)
        if user is None:
            return OpResult.fail(UserNotFoundError(user_id))
        ledger_sum = await self._repo.sum_transactions(db, user_id)
        report = ReconcileReport(user_id=user_id, balance=user.alba_balance, ledger_sum=ledger_sum)
        if not report.consistent:
            logger.error(
                "ALBA drift for user=%s: balance=%d ledger_sum=%d drift=%d",
                user_id, report.balance, report.ledger_sum, report.drift,
            )
        return OpResult.success(report)

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    async def grant_alba(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reason: str,
        actor_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> OpResult[UserAccount]:
        if amount <= 0:
            raise InvalidAmountError(amount)
        if reason not in ADMIN_GRANT_REASONS:
            logger.warning("Rejected grant reason=%s user=%s actor=%s", reason, user_id, actor_id)
            return OpResult.fail(ForbiddenReasonError(reason))
        try:
            credited = await self._repo.credit(
                db,
                user_id,
                amount,
                TransactionType.GRANT.value,
                reason,
                related_user_id=actor_id,
                meta=meta,
            )
            if credited is None:
                await db.rollback()
                return OpResult.fail(UserNotFoundError(user_id))
            user, _ = credited
            if actor_id is not None:
                await self._repo.insert_audit_log(
                    db,
                    AuditAction.ALBA_GRANT.value,
                    admin_id=actor_id,
                    target_user_id=user_id,
                    amount=amount,
                    reason=reason,
                    details=meta,
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("ALBA grant: user=%s amount=%d reason=%s actor=%s", user_id, amount, reason, actor_id)
        return OpResult.success(user)

    async def spend_alba(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reason: str,
        related_card_type: str | None = None,
        related_card_id: str | None = None,
        actor_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> OpResult[UserAccount]:
        if reason in ADMIN_SPEND_REASONS and actor_id is None:
            logger.warning("Admin spend reason=%s without actor, user=%s", reason, user_id)
            return OpResult.fail(ForbiddenReasonError(reason))
        try:
            debited = await self.debit(
                db,
                user_id,
                amount,
                reason,
                related_card_type=related_card_type,
                related_card_id=related_card_id,
                meta=meta,
            )
            if not debited.ok:
                await db.rollback()
                return OpResult.fail_from(debited)
            user, _ = debited.unwrap()
            if actor_id is not None:
                await self._repo.insert_audit_log(
                    db,
                    AuditAction.ALBA_DEDUCT.value,
                    admin_id=actor_id,
                    target_user_id=user_id,
                    amount=amount,
                    reason=reason,
                    details=meta,
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return OpResult.success(user)

    # ------------------------------------------------------------------
    # Building blocks (caller owns the transaction)
    # ------------------------------------------------------------------

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reason: str,
        related_card_type: str | None = None,
        related_card_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> OpResult[tuple[UserAccount, Transaction]]:
        """Allow-list check, then one conditional decrement. No commit."""
        if amount <= 0:
            raise InvalidAmountError(amount)
        if reason not in SPEND_REASON_ALLOW_LIST:
            logger.warning("Rejected spend reason=%s user=%s", reason, user_id)
            return OpResult.fail(ForbiddenReasonError(reason))

        debited = await self._repo.debit_if_sufficient(
            db,
            user_id,
            amount,
            reason,
            related_card_type=related_card_type,
            related_card_id=related_card_id,
            meta=meta,
        )
        if debited is None:
            user = await self._repo.get_user(db, user_id)
            if user is None:
                return OpResult.fail(UserNotFoundError(user_id))
            return OpResult.fail(InsufficientBalanceError(amount, user.alba_balance))
        return OpResult.success(debited)

    async def earn_alba(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reason: str,
        related_user_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> tuple[UserAccount, Transaction] | None:
        """Credit an ``earn`` transaction. None when the user does not exist. No commit."""
        if amount <= 0:
            raise InvalidAmountError(amount)
        return await self._repo.credit(
            db,
            user_id,
            amount,
            TransactionType.EARN.value,
            reason,
            related_user_id=related_user_id,
            meta=meta,
        )
