"""EntitlementRepository — concrete implementation of EntitlementRepositoryProtocol.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.errors import InternalError
from src.mp_entitlement.domain.models import Entitlement

_COLUMNS = """
    id, owner, type, status, source, idempotency_key, event_id,
    related_transaction_id, consumed_at, created_at
"""

_FIND_BY_KEY_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM entitlements
    WHERE owner = :owner AND type = :type AND idempotency_key = :idempotency_key
""")

_INSERT_SQL = text(f"""
    INSERT INTO entitlements
        (owner, type, status, source, idempotency_key, event_id, related_transaction_id)
    VALUES
        (:owner, :type, 'available', :source, :idempotency_key, :event_id,
         :related_transaction_id)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM entitlements
    WHERE id = :entitlement_id
""")

_LIST_AVAILABLE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM entitlements
    WHERE owner = :owner
      AND status = 'available'
      AND (CAST(:type AS VARCHAR) IS NULL OR type = :type)
    ORDER BY created_at ASC, id ASC
""")

_COUNT_AVAILABLE_SQL = text("""
    SELECT COUNT(*)
    FROM entitlements
    WHERE owner = :owner AND type = :type AND status = 'available'
""")

_MARK_CONSUMED_SQL = text(f"""
    UPDATE entitlements
    SET status = 'consumed', consumed_at = :consumed_at
    WHERE id = :entitlement_id AND status = 'available'
    RETURNING {_COLUMNS}
""")


def _row_to_entitlement(row: object) -> Entitlement:
    return Entitlement(
        id=str(row.id),  # type: ignore[attr-defined]
        owner=str(row.owner),  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        source=row.source,  # type: ignore[attr-defined]
        idempotency_key=row.idempotency_key,  # type: ignore[attr-defined]
        event_id=row.event_id,  # type: ignore[attr-defined]
        related_transaction_id=row.related_transaction_id,  # type: ignore[attr-defined]
        consumed_at=row.consumed_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class EntitlementRepository:
    async def find_by_key(
        self, db: AsyncSession, owner: str, entitlement_type: str, idempotency_key: str
    ) -> Entitlement | None:
        result = await db.execute(
            _FIND_BY_KEY_SQL,
            {"owner": owner, "type": entitlement_type, "idempotency_key": idempotency_key},
        )
        row = result.fetchone()
        return _row_to_entitlement(row) if row else None

    async def insert_entitlement(
        self,
        db: AsyncSession,
        owner: str,
        entitlement_type: str,
        source: str,
        event_id: str,
        idempotency_key: str | None,
        related_transaction_id: int | None,
    ) -> Entitlement:
        result = await db.execute(
            _INSERT_SQL,
            {
                "owner": owner,
                "type": entitlement_type,
                "source": source,
                "idempotency_key": idempotency_key,
                "event_id": event_id,
                "related_transaction_id": related_transaction_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Entitlement insert returned no rows")
        return _row_to_entitlement(row)

    async def get_entitlement(self, db: AsyncSession, entitlement_id: str) -> Entitlement | None:
        result = await db.execute(_GET_SQL, {"entitlement_id": entitlement_id})
        row = result.fetchone()
        return _row_to_entitlement(row) if row else None

    async def list_available(
        self, db: AsyncSession, owner: str, entitlement_type: str | None = None
    ) -> list[Entitlement]:
        result = await db.execute(
            _LIST_AVAILABLE_SQL, {"owner": owner, "type": entitlement_type}
        )
        return [_row_to_entitlement(row) for row in result.fetchall()]

    async def count_available(self, db: AsyncSession, owner: str, entitlement_type: str) -> int:
        result = await db.execute(
            _COUNT_AVAILABLE_SQL, {"owner": owner, "type": entitlement_type}
        )
        return int(result.scalar_one())

    async def mark_consumed(
        self, db: AsyncSession, entitlement_id: str, consumed_at: datetime
    ) -> Entitlement | None:
        result = await db.execute(
            _MARK_CONSUMED_SQL,
            {"entitlement_id": entitlement_id, "consumed_at": consumed_at},
        )
        row = result.fetchone()
        return _row_to_entitlement(row) if row else None
