"""003: create alba_transactions (append-only ALBA log)

Revision ID: 003
Revises: 002
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE alba_transactions (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             UUID            NOT NULL REFERENCES users (id),
            amount              BIGINT          NOT NULL,
            type                VARCHAR(16)     NOT NULL,
            reason              VARCHAR(48)     NOT NULL,
            balance_after       BIGINT          NOT NULL,
            related_user_id     UUID,
            related_code_id     UUID,
            related_card_type   VARCHAR(16),
            related_card_id     VARCHAR(64),
            comment             VARCHAR(500)    NOT NULL DEFAULT '',
            meta                JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_alba_tx_type CHECK (type IN ('earn', 'spend', 'grant')),
            CONSTRAINT ck_alba_tx_sign CHECK (
                (type = 'spend' AND amount < 0) OR (type <> 'spend' AND amount > 0)
            ),
            CONSTRAINT ck_alba_tx_reason CHECK (reason IN (
                'referral_bonus', 'referred_user_bonus', 'card_payment', 'admin_grant',
                'manual_adjustment', 'upgrade_to_paid', 'card_entitlement_purchase'
            )),
            CONSTRAINT ck_alba_tx_card_type CHECK (
                related_card_type IS NULL OR related_card_type IN ('product', 'service', 'banner')
            ),
            CONSTRAINT ck_alba_tx_balance_after CHECK (balance_after >= 0)
        );
    """)
    op.execute("""
        CREATE INDEX idx_alba_tx_user_created
            ON alba_transactions (user_id, created_at DESC, id DESC);
    """)
    op.execute("CREATE INDEX idx_alba_tx_user_reason ON alba_transactions (user_id, reason);")
    # At most one referrer bonus (earn) per referred user
    op.execute("""
        CREATE UNIQUE INDEX uq_alba_tx_referral_bonus
            ON alba_transactions (related_user_id)
            WHERE type = 'earn' AND reason = 'referral_bonus';
    """)
    op.execute("""
        CREATE TRIGGER trg_alba_tx_append_only
            BEFORE UPDATE OR DELETE ON alba_transactions
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute(
        "COMMENT ON TABLE alba_transactions IS "
        "'Append-only ALBA log; SUM(amount) per user equals users.alba_balance';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS alba_transactions CASCADE;")
