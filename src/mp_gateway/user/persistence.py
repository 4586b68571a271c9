"""Shared users-table row mapping and lookup.

Several modules mutate distinct columns of ``users`` (balance, slots,
referral fields); they all read the row back through these helpers so the
domain view stays identical everywhere.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_gateway.user.models import UserAccount

USER_COLUMNS = """
    id, role, email_verified, alba_balance, slots_total, slots_used,
    referred_by, ref_bonus_granted, tier, is_active
"""

_GET_USER_SQL = text(f"""
    SELECT {USER_COLUMNS}
    FROM users
    WHERE id = :user_id
""")


def row_to_user(row: object) -> UserAccount:
    referred_by = row.referred_by  # type: ignore[attr-defined]
    return UserAccount(
        id=str(row.id),  # type: ignore[attr-defined]
        role=row.role,  # type: ignore[attr-defined]
        email_verified=bool(row.email_verified),  # type: ignore[attr-defined]
        alba_balance=row.alba_balance,  # type: ignore[attr-defined]
        slots_total=row.slots_total,  # type: ignore[attr-defined]
        slots_used=row.slots_used,  # type: ignore[attr-defined]
        referred_by=str(referred_by) if referred_by is not None else None,
        ref_bonus_granted=bool(row.ref_bonus_granted),  # type: ignore[attr-defined]
        tier=row.tier,  # type: ignore[attr-defined]
        is_active=bool(row.is_active),  # type: ignore[attr-defined]
    )


class UserRepository:
    """Read-only access to users; writers live in their owning modules."""

    async def get_user(self, db: AsyncSession, user_id: str) -> UserAccount | None:
        result = await db.execute(_GET_USER_SQL, {"user_id": user_id})
        row = result.fetchone()
        return row_to_user(row) if row else None
