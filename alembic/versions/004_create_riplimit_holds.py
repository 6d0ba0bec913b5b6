"""004: create riplimit_holds table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE riplimit_holds (
            id                  BIGINT          PRIMARY KEY,
            bid_id              VARCHAR(64)     NOT NULL,
            user_id             VARCHAR(64)     NOT NULL
                                REFERENCES riplimit_accounts (user_id),
            auction_id          VARCHAR(64),
            amount              BIGINT          NOT NULL,
            original_amount     BIGINT          NOT NULL,
            status              VARCHAR(10)     NOT NULL DEFAULT 'OPEN',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at         TIMESTAMPTZ,
            CONSTRAINT ck_riplimit_hold_status
                CHECK (status IN ('OPEN', 'RELEASED', 'CAPTURED')),
            CONSTRAINT ck_riplimit_hold_amount
                CHECK (amount >= 0 AND amount <= original_amount AND original_amount > 0),
            CONSTRAINT ck_riplimit_hold_open_amount
                CHECK (status <> 'OPEN' OR amount > 0)
        );
    """)
    # At most one OPEN hold per bid, across all accounts
    op.execute("""
        CREATE UNIQUE INDEX uq_riplimit_holds_open_bid
        ON riplimit_holds (bid_id)
        WHERE status = 'OPEN';
    """)
    op.execute("CREATE INDEX idx_riplimit_holds_bid ON riplimit_holds (bid_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_riplimit_holds_open_user
        ON riplimit_holds (user_id, created_at)
        WHERE status = 'OPEN';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS riplimit_holds CASCADE;")
