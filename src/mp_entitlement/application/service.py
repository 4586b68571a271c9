"""EntitlementService — purchase and consumption of listing entitlements.

A purchase is one unit of work:
  debit (conditional, via LedgerService) → spend transaction → entitlement row.
The spend transaction carries the entitlement's event_id in its meta and
the entitlement points back at it through related_transaction_id.

Idempotency: (owner, type, idempotency_key) is unique. A request whose key
already exists returns the stored entitlement with ``replayed=True`` and
touches no balance. A concurrent duplicate that slips past the lookup
fails the unique index, rolls back its debit, and is answered as a replay.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.datetime_utils import utc_now
from src.mp_common.enums import EntitlementSource, EntitlementType, TransactionReason
from src.mp_common.errors import (
    AlreadyConsumedError,
    EntitlementNotFoundError,
    InsufficientBalanceError,
    InvalidEntitlementTypeError,
)
from src.mp_common.result import OpResult
from src.mp_common.tokens import generate_event_id
from src.mp_entitlement.domain.models import Entitlement, PurchaseResult
from src.mp_entitlement.domain.repository import EntitlementRepositoryProtocol
from src.mp_entitlement.infrastructure.persistence import EntitlementRepository
from src.mp_ledger.application.service import LedgerService

logger = logging.getLogger(__name__)

REPLAY_MESSAGE = "idempotent replay"

_TYPES = {t.value for t in EntitlementType}


class EntitlementService:
    def __init__(
        self,
        ledger: LedgerService | None = None,
        repo: EntitlementRepositoryProtocol | None = None,
        price: int | None = None,
    ) -> None:
        self._ledger = ledger or LedgerService()
        self._repo: EntitlementRepositoryProtocol = repo or EntitlementRepository()
        self._price = settings.ENTITLEMENT_PRICE if price is None else price

    async def purchase_entitlement(
        self,
        db: AsyncSession,
        user_id: str,
        entitlement_type: str,
        idempotency_key: str | None = None,
    ) -> OpResult[PurchaseResult]:
        key = idempotency_key.strip() if idempotency_key else None

        replay = await self._find_replay(db, user_id, entitlement_type, key)
        if replay is not None:
            return replay

        if entitlement_type not in _TYPES:
            return OpResult.fail(InvalidEntitlementTypeError(entitlement_type))

        balance = await self._ledger.get_balance(db, user_id)
        if not balance.ok:
            return OpResult.fail_from(balance)
        available = balance.unwrap().alba_balance
        if available < self._price:
            return OpResult.fail(InsufficientBalanceError(self._price, available))

        event_id = generate_event_id("ent")
        try:
            debited = await self._ledger.debit(
                db,
                user_id,
                self._price,
                TransactionReason.CARD_ENTITLEMENT_PURCHASE.value,
                related_card_type=entitlement_type,
                meta={"event_id": event_id, "idempotency_key": key},
            )
            if not debited.ok:
                # balance moved between the pre-check and the debit
                await db.rollback()
                return OpResult.fail_from(debited)
            _, tx = debited.unwrap()
            entitlement = await self._repo.insert_entitlement(
                db,
                owner=user_id,
                entitlement_type=entitlement_type,
                source=EntitlementSource.PURCHASE.value,
                event_id=event_id,
                idempotency_key=key,
                related_transaction_id=tx.id,
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            replay = await self._find_replay(db, user_id, entitlement_type, key)
            if replay is None:
                raise
            return replay
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Entitlement purchased: user=%s type=%s event_id=%s tx=%s",
            user_id, entitlement_type, event_id, tx.id,
        )
        return OpResult.success(PurchaseResult(entitlement=entitlement, transaction=tx))

    async def get_available_entitlements(
        self, db: AsyncSession, user_id: str
    ) -> list[Entitlement]:
        return await self._repo.list_available(db, user_id)

    async def count_available(self, db: AsyncSession, user_id: str, entitlement_type: str) -> int:
        return await self._repo.count_available(db, user_id, entitlement_type)

    async def consume_entitlement(
        self, db: AsyncSession, entitlement_id: str
    ) -> OpResult[Entitlement]:
        try:
            consumed = await self._repo.mark_consumed(db, entitlement_id, utc_now())
            if consumed is None:
                await db.rollback()
                if await self._repo.get_entitlement(db, entitlement_id) is None:
                    return OpResult.fail(EntitlementNotFoundError(entitlement_id))
                return OpResult.fail(AlreadyConsumedError(entitlement_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Entitlement consumed: id=%s owner=%s", consumed.id, consumed.owner)
        return OpResult.success(consumed)

    async def consume_for_listing(
        self, db: AsyncSession, user_id: str, entitlement_type: str
    ) -> OpResult[Entitlement]:
        """Consume the user's oldest available entitlement of ``entitlement_type``."""
        try:
            candidates = await self._repo.list_available(db, user_id, entitlement_type)
            for candidate in candidates:
                consumed = await self._repo.mark_consumed(db, candidate.id, utc_now())
                if consumed is not None:
                    await db.commit()
                    logger.info(
                        "Entitlement consumed for listing: id=%s owner=%s type=%s",
                        consumed.id, user_id, entitlement_type,
                    )
                    return OpResult.success(consumed)
                logger.info("Entitlement race lost: id=%s owner=%s", candidate.id, user_id)
            await db.rollback()
        except Exception:
            await db.rollback()
            raise
        return OpResult.fail(
            EntitlementNotFoundError(f"no available {entitlement_type} entitlement")
        )

    async def _find_replay(
        self,
        db: AsyncSession,
        user_id: str,
        entitlement_type: str,
        key: str | None,
    ) -> OpResult[PurchaseResult] | None:
        if key is None:
            return None
        existing = await self._repo.find_by_key(db, user_id, entitlement_type, key)
        if existing is None:
            return None
        logger.info(
            "Entitlement purchase replay: user=%s type=%s key=%s id=%s",
            user_id, entitlement_type, key, existing.id,
        )
        return OpResult.success(
            PurchaseResult(entitlement=existing), message=REPLAY_MESSAGE, replayed=True
        )
