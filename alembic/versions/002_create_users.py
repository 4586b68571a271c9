"""002: create users table with ALBA, slot, tier and referral columns

Revision ID: 002
Revises: 001
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id                  UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            username            VARCHAR(64)     NOT NULL,
            email               VARCHAR(255)    NOT NULL,
            role                VARCHAR(16)     NOT NULL DEFAULT 'user',
            email_verified      BOOLEAN         NOT NULL DEFAULT FALSE,
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            tier                VARCHAR(16)     NOT NULL DEFAULT 'free',
            alba_balance        BIGINT          NOT NULL DEFAULT 0,
            slots_total         INTEGER,
            slots_used          INTEGER         NOT NULL DEFAULT 0,
            referred_by         UUID            REFERENCES users (id),
            ref_bonus_granted   BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username        UNIQUE (username),
            CONSTRAINT uq_users_email           UNIQUE (email),
            CONSTRAINT ck_users_role            CHECK (role IN ('user', 'admin')),
            CONSTRAINT ck_users_tier            CHECK (tier IN ('free', 'paid')),
            CONSTRAINT ck_users_alba_balance    CHECK (alba_balance >= 0),
            CONSTRAINT ck_users_slots_used      CHECK (slots_used >= 0),
            CONSTRAINT ck_users_not_self_ref    CHECK (referred_by IS NULL OR referred_by <> id)
        );
    """)
    op.execute("CREATE INDEX idx_users_referred_by ON users (referred_by);")
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Marketplace users; alba_balance is owned by the ledger';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
