"""CodeRepository — concrete implementation of CodeRepositoryProtocol.

Status transitions are single-row conditional UPDATEs
(``WHERE id = :id AND status = 'active'``). A result of 0 rows means another
request already moved the code out of ``active``.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_codes.domain.models import Code, CodeUsage, NewCode
from src.mp_common.errors import InternalError
from src.mp_gateway.user.models import UserAccount
from src.mp_gateway.user.persistence import USER_COLUMNS, UserRepository, row_to_user

_CODE_COLUMNS = """
    id, code, kind, type, status, expires_at, created_by, used_by, used_at,
    reserved_for_user_id, card_id, meta, created_at
"""

_INSERT_CODE_SQL = text(f"""
    INSERT INTO codes
        (code, kind, type, status, expires_at, created_by,
         reserved_for_user_id, card_id, meta)
    VALUES
        (:code, :kind, :type, 'active', :expires_at, :created_by,
         :reserved_for_user_id, :card_id, CAST(:meta AS JSONB))
    RETURNING {_CODE_COLUMNS}
""")

_GET_BY_VALUE_SQL = text(f"""
    SELECT {_CODE_COLUMNS}
    FROM codes
    WHERE code = :code
""")

_LIST_CODES_SQL = text(f"""
    SELECT {_CODE_COLUMNS}
    FROM codes
    ORDER BY created_at DESC
    LIMIT :limit
""")

_MARK_EXPIRED_SQL = text("""
    UPDATE codes
    SET status = 'expired'
    WHERE id = :code_id AND status = 'active'
    RETURNING id
""")

_MARK_USED_SQL = text(f"""
    UPDATE codes
    SET status = 'used', used_by = :user_id, used_at = :used_at
    WHERE id = :code_id AND status = 'active'
    RETURNING {_CODE_COLUMNS}
""")

_INSERT_USAGE_SQL = text("""
    INSERT INTO code_usages
        (user_id, code_id, kind, type, ip, user_agent, card_id, used_at)
    VALUES
        (:user_id, :code_id, :kind, :type, :ip, :user_agent, :card_id, :used_at)
    RETURNING id, user_id, code_id, kind, type, ip, user_agent, card_id, used_at
""")

# A NULL slots_total means "never touched": start from the base allotment
_ADD_SLOT_SQL = text(f"""
    UPDATE users
    SET slots_total = COALESCE(slots_total, :base_slots) + 1
    WHERE id = :user_id
    RETURNING {USER_COLUMNS}
""")

_SET_TIER_SQL = text(f"""
    UPDATE users
    SET tier = :tier
    WHERE id = :user_id
    RETURNING {USER_COLUMNS}
""")


def _opt_str(value: object) -> str | None:
    return str(value) if value is not None else None


def _meta(value: object) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, str):
        return dict(json.loads(value))
    return dict(value)  # type: ignore[call-overload]


def _row_to_code(row: object) -> Code:
    return Code(
        id=str(row.id),  # type: ignore[attr-defined]
        code=row.code,  # type: ignore[attr-defined]
        kind=row.kind,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        expires_at=row.expires_at,  # type: ignore[attr-defined]
        created_by=_opt_str(row.created_by),  # type: ignore[attr-defined]
        used_by=_opt_str(row.used_by),  # type: ignore[attr-defined]
        used_at=row.used_at,  # type: ignore[attr-defined]
        reserved_for_user_id=_opt_str(row.reserved_for_user_id),  # type: ignore[attr-defined]
        card_id=_opt_str(row.card_id),  # type: ignore[attr-defined]
        meta=_meta(row.meta),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_usage(row: object) -> CodeUsage:
    return CodeUsage(
        id=row.id,  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        code_id=str(row.code_id),  # type: ignore[attr-defined]
        kind=row.kind,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        ip=row.ip,  # type: ignore[attr-defined]
        user_agent=row.user_agent,  # type: ignore[attr-defined]
        card_id=_opt_str(row.card_id),  # type: ignore[attr-defined]
        used_at=row.used_at,  # type: ignore[attr-defined]
    )


class CodeRepository:
    """Concrete repository — status transitions atomic at the SQL level."""

    def __init__(self) -> None:
        self._users = UserRepository()

    async def get_user(self, db: AsyncSession, user_id: str) -> UserAccount | None:
        return await self._users.get_user(db, user_id)

    async def insert_codes(self, db: AsyncSession, codes: list[NewCode]) -> list[Code]:
        created: list[Code] = []
        for new in codes:
            result = await db.execute(
                _INSERT_CODE_SQL,
                {
                    "code": new.code,
                    "kind": new.kind,
                    "type": new.type,
                    "expires_at": new.expires_at,
                    "created_by": new.created_by,
                    "reserved_for_user_id": new.reserved_for_user_id,
                    "card_id": new.card_id,
                    "meta": json.dumps(new.meta),
                },
            )
            row = result.fetchone()
            if row is None:
                raise InternalError("Code insert returned no rows")
            created.append(_row_to_code(row))
        return created

    async def get_code_by_value(self, db: AsyncSession, value: str) -> Code | None:
        result = await db.execute(_GET_BY_VALUE_SQL, {"code": value})
        row = result.fetchone()
        return _row_to_code(row) if row else None

    async def list_codes(self, db: AsyncSession, limit: int) -> list[Code]:
        result = await db.execute(_LIST_CODES_SQL, {"limit": limit})
        return [_row_to_code(row) for row in result.fetchall()]

    async def mark_expired(self, db: AsyncSession, code_id: str) -> bool:
        result = await db.execute(_MARK_EXPIRED_SQL, {"code_id": code_id})
        return result.fetchone() is not None

    async def mark_used(
        self, db: AsyncSession, code_id: str, user_id: str, used_at: datetime
    ) -> Code | None:
        result = await db.execute(
            _MARK_USED_SQL,
            {"code_id": code_id, "user_id": user_id, "used_at": used_at},
        )
        row = result.fetchone()
        return _row_to_code(row) if row else None

    async def insert_usage(
        self,
        db: AsyncSession,
        user_id: str,
        code: Code,
        ip: str | None,
        user_agent: str | None,
        used_at: datetime,
    ) -> CodeUsage:
        result = await db.execute(
            _INSERT_USAGE_SQL,
            {
                "user_id": user_id,
                "code_id": code.id,
                "kind": code.kind,
                "type": code.type,
                "ip": ip,
                "user_agent": user_agent,
                "card_id": code.card_id,
                "used_at": used_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Code usage insert returned no rows")
        return _row_to_usage(row)

    async def add_slot(
        self, db: AsyncSession, user_id: str, base_slots: int
    ) -> UserAccount | None:
        result = await db.execute(
            _ADD_SLOT_SQL, {"user_id": user_id, "base_slots": base_slots}
        )
        row = result.fetchone()
        return row_to_user(row) if row else None

    async def set_tier(self, db: AsyncSession, user_id: str, tier: str) -> UserAccount | None:
        result = await db.execute(_SET_TIER_SQL, {"user_id": user_id, "tier": tier})
        row = result.fetchone()
        return row_to_user(row) if row else None
