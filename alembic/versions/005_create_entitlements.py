"""005: create entitlements

Revision ID: 005
Revises: 004
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE entitlements (
            id                      UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            owner                   UUID            NOT NULL REFERENCES users (id),
            type                    VARCHAR(16)     NOT NULL,
            status                  VARCHAR(16)     NOT NULL DEFAULT 'available',
            source                  VARCHAR(32)     NOT NULL DEFAULT 'purchase',
            idempotency_key         VARCHAR(128),
            event_id                VARCHAR(64)     NOT NULL,
            related_transaction_id  BIGINT          REFERENCES alba_transactions (id),
            consumed_at             TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_entitlements_event_id         UNIQUE (event_id),
            CONSTRAINT uq_entitlements_owner_type_key   UNIQUE (owner, type, idempotency_key),
            CONSTRAINT ck_entitlements_type     CHECK (type IN ('product', 'service')),
            CONSTRAINT ck_entitlements_status   CHECK (status IN ('available', 'consumed')),
            CONSTRAINT ck_entitlements_source   CHECK (source IN (
                'purchase', 'referral_migration', 'admin_migration', 'legacy_migration'
            )),
            CONSTRAINT ck_entitlements_consumed CHECK (
                (status = 'consumed') = (consumed_at IS NOT NULL)
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_entitlements_available
            ON entitlements (owner, type, created_at)
            WHERE status = 'available';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS entitlements CASCADE;")
