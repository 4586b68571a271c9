"""CodeService — generation and single-use redemption of codes.

Redemption order (both kinds):
  1. lookup                       → CodeNotFound
  2. expires_at in the past       → lazy active→expired write, CodeExpired
  3. wrong kind / not active      → InvalidCodeKind / InvalidCodeState
  4. CAS active→used              → zero rows: CodeConflict, nothing else written
  5. usage record + side effect   → same unit of work as the CAS

The CAS is the only thing deciding who wins a code. The unique
(user_id, code_id) usage index is a second guard: a violation rolls back
the whole unit, CAS included.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_codes.domain.models import Code, NewCode
from src.mp_codes.domain.repository import CodeRepositoryProtocol
from src.mp_codes.infrastructure.persistence import CodeRepository
from src.mp_common.datetime_utils import is_past, utc_now
from src.mp_common.enums import CardType, CodeKind, CodeStatus, Tier
from src.mp_common.errors import (
    CodeConflictError,
    CodeExpiredError,
    CodeForbiddenError,
    CodeNotFoundError,
    InvalidCodeKindError,
    InvalidCodeRequestError,
    InvalidCodeStateError,
    UserNotFoundError,
)
from src.mp_common.result import OpResult
from src.mp_common.tokens import generate_code_token
from src.mp_gateway.user.models import UserAccount

logger = logging.getLogger(__name__)

_KINDS = {k.value for k in CodeKind}
_CARD_TYPES = {t.value for t in CardType}


class CodeService:
    def __init__(
        self,
        repo: CodeRepositoryProtocol | None = None,
        base_slots: int | None = None,
        max_batch: int | None = None,
        list_limit: int | None = None,
    ) -> None:
        self._repo: CodeRepositoryProtocol = repo or CodeRepository()
        self._base_slots = settings.BASE_SLOTS if base_slots is None else base_slots
        self._max_batch = max_batch or settings.MAX_CODES_PER_BATCH
        self._list_limit = list_limit or settings.CODE_LIST_LIMIT

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    async def create_codes(
        self,
        db: AsyncSession,
        count: int,
        kind: str,
        code_type: str,
        expires_at: datetime | None = None,
        created_by: str | None = None,
    ) -> list[Code]:
        if not 1 <= count <= self._max_batch:
            raise InvalidCodeRequestError(f"count must be 1..{self._max_batch}, got {count}")
        if kind not in _KINDS:
            raise InvalidCodeRequestError(f"unknown kind {kind!r}")
        if code_type not in _CARD_TYPES:
            raise InvalidCodeRequestError(f"unknown type {code_type!r}")

        batch = [
            NewCode(
                code=generate_code_token(kind),
                kind=kind,
                type=code_type,
                expires_at=expires_at,
                created_by=created_by,
            )
            for _ in range(count)
        ]
        try:
            codes = await self._repo.insert_codes(db, batch)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Created %d %s/%s codes by=%s", len(codes), kind, code_type, created_by)
        return codes

    async def issue_payment_activation_code(
        self,
        db: AsyncSession,
        user_id: str,
        card_type: str,
        card_id: str,
        created_by: str | None = None,
        expires_at: datetime | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Code:
        """Create one activation code reserved for ``user_id`` and bound to ``card_id``."""
        if card_type not in _CARD_TYPES:
            raise InvalidCodeRequestError(f"unknown card type {card_type!r}")
        if not card_id:
            raise InvalidCodeRequestError("card_id is required")
        if await self._repo.get_user(db, user_id) is None:
            raise UserNotFoundError(user_id)

        new = NewCode(
            code=generate_code_token(CodeKind.PAYMENT_ACTIVATION.value),
            kind=CodeKind.PAYMENT_ACTIVATION.value,
            type=card_type,
            expires_at=expires_at,
            created_by=created_by,
            reserved_for_user_id=user_id,
            card_id=card_id,
            meta=meta or {},
        )
        try:
            (code,) = await self._repo.insert_codes(db, [new])
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return code

    async def list_codes(self, db: AsyncSession, limit: int | None = None) -> list[Code]:
        bounded = max(1, min(limit or self._list_limit, self._list_limit))
        return await self._repo.list_codes(db, bounded)

    # ------------------------------------------------------------------
    # Redemption
    # ------------------------------------------------------------------

    async def redeem_slot_code(
        self,
        db: AsyncSession,
        user: UserAccount,
        code_value: str,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> OpResult[Code]:
        now = utc_now()
        checked = await self._load_redeemable(db, code_value, CodeKind.SLOT.value, now)
        if not checked.ok:
            return checked
        code = checked.unwrap()

        try:
            used = await self._repo.mark_used(db, code.id, user.id, now)
            if used is None:
                await db.rollback()
                logger.info("Slot code race lost: code_id=%s user=%s", code.id, user.id)
                return OpResult.fail(CodeConflictError())
            await self._repo.insert_usage(db, user.id, used, ip, user_agent, now)
            await self._repo.add_slot(db, user.id, self._base_slots)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("Duplicate code usage rejected: code_id=%s user=%s", code.id, user.id)
            return OpResult.fail(CodeConflictError())
        except Exception:
            await db.rollback()
            raise
        logger.info("Slot code redeemed: code_id=%s user=%s", used.id, user.id)
        return OpResult.success(used)

    async def consume_payment_activation_code(
        self,
        db: AsyncSession,
        user_id: str,
        activation_code: str,
    ) -> OpResult[Code]:
        now = utc_now()
        checked = await self._load_redeemable(
            db, activation_code, CodeKind.PAYMENT_ACTIVATION.value, now
        )
        if not checked.ok:
            return checked
        code = checked.unwrap()

        if code.reserved_for_user_id != user_id:
            return OpResult.fail(CodeForbiddenError())
        if not code.card_id:
            return OpResult.fail(InvalidCodeStateError("no listing bound"))

        try:
            used = await self._repo.mark_used(db, code.id, user_id, now)
            if used is None:
                await db.rollback()
                logger.info("Activation code race lost: code_id=%s user=%s", code.id, user_id)
                return OpResult.fail(CodeConflictError())
            await self._repo.insert_usage(db, user_id, used, None, None, now)
            await self._repo.set_tier(db, user_id, Tier.PAID.value)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            return OpResult.fail(CodeConflictError())
        except Exception:
            await db.rollback()
            raise
        logger.info("Activation code consumed: code_id=%s user=%s card=%s", used.id, user_id, used.card_id)
        return OpResult.success(used)

    async def _load_redeemable(
        self, db: AsyncSession, value: str, kind: str, now: datetime
    ) -> OpResult[Code]:
        code = await self._repo.get_code_by_value(db, value.strip())
        if code is None:
            return OpResult.fail(CodeNotFoundError())

        if is_past(code.expires_at, now):
            await self._expire(db, code)
            return OpResult.fail(CodeExpiredError())

        if code.kind != kind:
            return OpResult.fail(InvalidCodeKindError(kind))
        if code.status != CodeStatus.ACTIVE.value:
            return OpResult.fail(InvalidCodeStateError(code.status))
        return OpResult.success(code)

    async def _expire(self, db: AsyncSession, code: Code) -> None:
        """Lazy active→expired transition; a no-op for used/expired codes."""
        if code.status != CodeStatus.ACTIVE.value:
            return
        try:
            if await self._repo.mark_expired(db, code.id):
                logger.info("Code expired on access: code_id=%s", code.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
