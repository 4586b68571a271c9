"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

Balance mutations are single atomic PostgreSQL UPDATE ... RETURNING
statements. The debit carries its own guard (alba_balance >= :amount), so a
result of 0 rows means the spend was rejected and nothing changed.

Transaction ownership: the CALLER (application service) commits or rolls
back. Every balance change and its alba_transactions row are written in
the same database transaction.
"""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import TransactionType
from src.mp_common.errors import InternalError
from src.mp_gateway.user.models import UserAccount
from src.mp_gateway.user.persistence import USER_COLUMNS, UserRepository, row_to_user
from src.mp_ledger.domain.models import AuditLogEntry, Transaction

# ---------------------------------------------------------------------------
# SQL: balance mutations
# ---------------------------------------------------------------------------

_CREDIT_SQL = text(f"""
    UPDATE users
    SET alba_balance = alba_balance + :amount
    WHERE id = :user_id
    RETURNING {USER_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE users
    SET alba_balance = alba_balance - :amount
    WHERE id = :user_id AND alba_balance >= :amount
    RETURNING {USER_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: transaction log (append-only)
# ---------------------------------------------------------------------------

_TX_COLUMNS = """
    id, user_id, amount, type, reason, balance_after,
    related_user_id, related_code_id, related_card_type, related_card_id,
    comment, meta, created_at
"""

_INSERT_TX_SQL = text(f"""
    INSERT INTO alba_transactions
        (user_id, amount, type, reason, balance_after,
         related_user_id, related_code_id, related_card_type, related_card_id,
         meta)
    VALUES
        (:user_id, :amount, :type, :reason, :balance_after,
         :related_user_id, :related_code_id, :related_card_type, :related_card_id,
         CAST(:meta AS JSONB))
    RETURNING {_TX_COLUMNS}
""")

_LIST_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM alba_transactions
    WHERE user_id = :user_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_FIND_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM alba_transactions
    WHERE type = :type AND reason = :reason AND related_user_id = :related_user_id
    ORDER BY id
    LIMIT 1
""")

_TOTALS_SQL = text("""
    SELECT COUNT(*) AS tx_count, COALESCE(SUM(amount), 0) AS tx_sum
    FROM alba_transactions
    WHERE user_id = :user_id AND type = :type AND reason = :reason
""")

_SUM_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM alba_transactions
    WHERE user_id = :user_id
""")

_INSERT_AUDIT_SQL = text("""
    INSERT INTO audit_logs
        (action, admin_id, target_user_id, user_id, amount, reason, details)
    VALUES
        (:action, :admin_id, :target_user_id, :admin_id, :amount, :reason,
         CAST(:details AS JSONB))
    RETURNING id, action, admin_id, target_user_id, amount, reason, details, created_at
""")


def _json_field(value: object) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, str):
        return dict(json.loads(value))
    return dict(value)  # type: ignore[call-overload]


def _opt_str(value: object) -> str | None:
    return str(value) if value is not None else None


def _row_to_tx(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        reason=row.reason,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        related_user_id=_opt_str(row.related_user_id),  # type: ignore[attr-defined]
        related_code_id=_opt_str(row.related_code_id),  # type: ignore[attr-defined]
        related_card_type=row.related_card_type,  # type: ignore[attr-defined]
        related_card_id=_opt_str(row.related_card_id),  # type: ignore[attr-defined]
        comment=row.comment or "",  # type: ignore[attr-defined]
        meta=_json_field(row.meta),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_audit(row: object) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,  # type: ignore[attr-defined]
        action=row.action,  # type: ignore[attr-defined]
        admin_id=_opt_str(row.admin_id),  # type: ignore[attr-defined]
        target_user_id=_opt_str(row.target_user_id),  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        reason=row.reason,  # type: ignore[attr-defined]
        details=_json_field(row.details),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class LedgerRepository:
    """Concrete repository — all balance changes atomic at the SQL level."""

    def __init__(self) -> None:
        self._users = UserRepository()

    async def get_user(self, db: AsyncSession, user_id: str) -> UserAccount | None:
        return await self._users.get_user(db, user_id)

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        tx_type: str,
        reason: str,
        related_user_id: str | None = None,
        related_code_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> tuple[UserAccount, Transaction] | None:
        result = await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            return None
        user = row_to_user(row)
        tx = await self._append(
            db,
            user,
            amount=amount,
            tx_type=tx_type,
            reason=reason,
            related_user_id=related_user_id,
            related_code_id=related_code_id,
            meta=meta,
        )
        return user, tx

    async def debit_if_sufficient(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reason: str,
        related_card_type: str | None = None,
        related_card_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> tuple[UserAccount, Transaction] | None:
        result = await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            return None
        user = row_to_user(row)
        tx = await self._append(
            db,
            user,
            amount=-amount,
            tx_type=TransactionType.SPEND.value,
            reason=reason,
            related_card_type=related_card_type,
            related_card_id=related_card_id,
            meta=meta,
        )
        return user, tx

    async def _append(
        self,
        db: AsyncSession,
        user: UserAccount,
        amount: int,
        tx_type: str,
        reason: str,
        related_user_id: str | None = None,
        related_code_id: str | None = None,
        related_card_type: str | None = None,
        related_card_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Transaction:
        result = await db.execute(
            _INSERT_TX_SQL,
            {
                "user_id": user.id,
                "amount": amount,
                "type": tx_type,
                "reason": reason,
                "balance_after": user.alba_balance,
                "related_user_id": related_user_id,
                "related_code_id": related_code_id,
                "related_card_type": related_card_type,
                "related_card_id": related_card_id,
                "meta": json.dumps(meta or {}),
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_tx(row)

    async def list_transactions(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[Transaction]:
        result = await db.execute(_LIST_TX_SQL, {"user_id": user_id, "limit": limit})
        return [_row_to_tx(row) for row in result.fetchall()]

    async def find_transaction(
        self, db: AsyncSession, tx_type: str, reason: str, related_user_id: str
    ) -> Transaction | None:
        result = await db.execute(
            _FIND_TX_SQL,
            {"type": tx_type, "reason": reason, "related_user_id": related_user_id},
        )
        row = result.fetchone()
        return _row_to_tx(row) if row else None

    async def transaction_totals(
        self, db: AsyncSession, user_id: str, tx_type: str, reason: str
    ) -> tuple[int, int]:
        result = await db.execute(
            _TOTALS_SQL, {"user_id": user_id, "type": tx_type, "reason": reason}
        )
        row = result.fetchone()
        if row is None:
            return 0, 0
        return int(row.tx_count), int(row.tx_sum)

    async def sum_transactions(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(_SUM_SQL, {"user_id": user_id})
        return int(result.scalar_one())

    async def insert_audit_log(
        self,
        db: AsyncSession,
        action: str,
        admin_id: str | None,
        target_user_id: str | None,
        amount: int | None,
        reason: str | None,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        result = await db.execute(
            _INSERT_AUDIT_SQL,
            {
                "action": action,
                "admin_id": admin_id,
                "target_user_id": target_user_id,
                "amount": amount,
                "reason": reason,
                "details": json.dumps(details or {}),
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Audit log insert returned no rows")
        return _row_to_audit(row)
