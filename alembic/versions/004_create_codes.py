"""004: create codes and code_usages

Revision ID: 004
Revises: 003
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE codes (
            id                      UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            code                    VARCHAR(64)     NOT NULL,
            kind                    VARCHAR(32)     NOT NULL,
            type                    VARCHAR(16)     NOT NULL,
            status                  VARCHAR(16)     NOT NULL DEFAULT 'active',
            expires_at              TIMESTAMPTZ,
            created_by              UUID            REFERENCES users (id),
            used_by                 UUID            REFERENCES users (id),
            used_at                 TIMESTAMPTZ,
            reserved_for_user_id    UUID            REFERENCES users (id),
            card_id                 VARCHAR(64),
            meta                    JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_codes_code        UNIQUE (code),
            CONSTRAINT ck_codes_kind        CHECK (kind IN ('slot', 'payment_activation')),
            CONSTRAINT ck_codes_type        CHECK (type IN ('product', 'service', 'banner')),
            CONSTRAINT ck_codes_status      CHECK (status IN ('active', 'used', 'expired')),
            CONSTRAINT ck_codes_used_fields CHECK (
                (status = 'used') = (used_by IS NOT NULL AND used_at IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_codes_created_at ON codes (created_at DESC);")
    op.execute("CREATE INDEX idx_codes_reserved_for ON codes (reserved_for_user_id);")

    op.execute("""
        CREATE TABLE code_usages (
            id          BIGSERIAL       PRIMARY KEY,
            user_id     UUID            NOT NULL REFERENCES users (id),
            code_id     UUID            NOT NULL REFERENCES codes (id),
            kind        VARCHAR(32)     NOT NULL,
            type        VARCHAR(16)     NOT NULL,
            ip          VARCHAR(64),
            user_agent  VARCHAR(500),
            card_id     VARCHAR(64),
            used_at     TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_code_usages_user_code UNIQUE (user_id, code_id)
        );
    """)
    op.execute("CREATE INDEX idx_code_usages_code ON code_usages (code_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS code_usages CASCADE;")
    op.execute("DROP TABLE IF EXISTS codes CASCADE;")
