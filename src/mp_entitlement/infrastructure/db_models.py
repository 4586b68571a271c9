"""SQLAlchemy ORM model for entitlements.

Maps to the table created by Alembic migration 005.
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String, UniqueConstraint, func, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.mp_common.database import Base


class EntitlementORM(Base):
    __tablename__ = "entitlements"
    __table_args__ = (
        UniqueConstraint(
            "owner", "type", "idempotency_key", name="uq_entitlements_owner_type_key"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")
    )
    owner: Mapped[uuid.UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="available")
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="purchase")
    idempotency_key: Mapped[str | None] = mapped_column(String(128))
    event_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    related_transaction_id: Mapped[int | None] = mapped_column(BigInteger)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
