"""003: create riplimit_transactions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE riplimit_transactions (
            id                  BIGINT          PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            tx_type             VARCHAR(30)     NOT NULL,
            amount              BIGINT          NOT NULL,
            available_after     BIGINT          NOT NULL,
            blocked_after       BIGINT          NOT NULL,
            related_bid_id      VARCHAR(64),
            related_auction_id  VARCHAR(64),
            reference_id        VARCHAR(128),
            reason              VARCHAR(500),
            actor_id            VARCHAR(64),
            description         VARCHAR(500),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_riplimit_tx_type CHECK (
                tx_type IN (
                    'purchase', 'bid_block', 'bid_release', 'bid_capture',
                    'admin_adjustment'
                )
            ),
            CONSTRAINT ck_riplimit_tx_amount CHECK (
                (tx_type = 'admin_adjustment' AND amount <> 0)
                OR (tx_type <> 'admin_adjustment' AND amount > 0)
            ),
            CONSTRAINT ck_riplimit_tx_bid_ref CHECK (
                tx_type NOT IN ('bid_block', 'bid_release', 'bid_capture')
                OR related_bid_id IS NOT NULL
            ),
            CONSTRAINT ck_riplimit_tx_adjust_audit CHECK (
                tx_type <> 'admin_adjustment'
                OR (actor_id IS NOT NULL AND reason IS NOT NULL)
            ),
            CONSTRAINT ck_riplimit_tx_after_gte_0
                CHECK (available_after >= 0 AND blocked_after >= 0)
        );
    """)
    op.execute("""
        CREATE INDEX idx_riplimit_tx_user_time
        ON riplimit_transactions (user_id, created_at DESC, id DESC);
    """)
    op.execute("""
        CREATE INDEX idx_riplimit_tx_user_type_time
        ON riplimit_transactions (user_id, tx_type, created_at DESC, id DESC);
    """)
    op.execute("""
        CREATE INDEX idx_riplimit_tx_bid
        ON riplimit_transactions (related_bid_id)
        WHERE related_bid_id IS NOT NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_riplimit_transactions_append_only
        BEFORE UPDATE OR DELETE ON riplimit_transactions
        FOR EACH ROW EXECUTE FUNCTION fn_riplimit_reject_mutation();
    """)
    op.execute(
        "COMMENT ON TABLE riplimit_transactions IS "
        "'RipLimit ledger, append-only, never updated or deleted';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS riplimit_transactions CASCADE;")
