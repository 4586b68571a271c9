"""006: create audit_logs

Revision ID: 006
Revises: 005
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE audit_logs (
            id              BIGSERIAL       PRIMARY KEY,
            action          VARCHAR(32)     NOT NULL,
            user_id         UUID            REFERENCES users (id),
            target_user_id  UUID            REFERENCES users (id),
            admin_id        UUID            REFERENCES users (id),
            amount          BIGINT,
            reason          VARCHAR(48),
            details         JSONB           NOT NULL DEFAULT '{}'::jsonb,
            ip_address      VARCHAR(64),
            user_agent      VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_audit_logs_target ON audit_logs (target_user_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_audit_logs_append_only
            BEFORE UPDATE OR DELETE ON audit_logs
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS audit_logs CASCADE;")
