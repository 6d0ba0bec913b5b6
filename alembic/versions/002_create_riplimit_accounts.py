"""002: create riplimit_accounts table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE riplimit_accounts (
            user_id             VARCHAR(64)     PRIMARY KEY,
            available_balance   BIGINT          NOT NULL DEFAULT 0,
            blocked_balance     BIGINT          NOT NULL DEFAULT 0,
            lifetime_credited   BIGINT          NOT NULL DEFAULT 0,
            lifetime_debited    BIGINT          NOT NULL DEFAULT 0,
            strikes             INT             NOT NULL DEFAULT 0,
            is_blocked          BOOLEAN         NOT NULL DEFAULT FALSE,
            block_reason        VARCHAR(200),
            unpaid_auction_ids  TEXT[]          NOT NULL DEFAULT '{}',
            version             BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_riplimit_available_gte_0 CHECK (available_balance >= 0),
            CONSTRAINT ck_riplimit_blocked_gte_0 CHECK (blocked_balance >= 0),
            CONSTRAINT ck_riplimit_lifetime_gte_0
                CHECK (lifetime_credited >= 0 AND lifetime_debited >= 0),
            CONSTRAINT ck_riplimit_strikes_gte_0 CHECK (strikes >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_riplimit_accounts_updated_at
        BEFORE UPDATE ON riplimit_accounts
        FOR EACH ROW EXECUTE FUNCTION fn_riplimit_touch_updated_at();
    """)
    op.execute("""
        CREATE INDEX idx_riplimit_accounts_blocked
        ON riplimit_accounts (user_id)
        WHERE is_blocked;
    """)
    op.execute(
        "COMMENT ON TABLE riplimit_accounts IS "
        "'RipLimit balances, one row per user, amounts in RipLimit units (20 per INR)';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS riplimit_accounts CASCADE;")
