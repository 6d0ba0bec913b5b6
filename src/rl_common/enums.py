"""Global enums — must match DB CHECK constraints exactly.

Ref: alembic/versions/003_create_riplimit_transactions.py
"""

from enum import Enum


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    BID_BLOCK = "bid_block"
    BID_RELEASE = "bid_release"
    BID_CAPTURE = "bid_capture"
    ADMIN_ADJUSTMENT = "admin_adjustment"


# Types that carry a related bid id
BID_TRANSACTION_TYPES = frozenset(
    {TransactionType.BID_BLOCK, TransactionType.BID_RELEASE, TransactionType.BID_CAPTURE}
)


class HoldStatus(str, Enum):
    OPEN = "OPEN"
    RELEASED = "RELEASED"
    CAPTURED = "CAPTURED"


class BidOutcome(str, Enum):
    WON = "won"
    LOST = "lost"
    CANCELLED = "cancelled"


class Role(str, Enum):
    USER = "user"
    SELLER = "seller"
    ADMIN = "admin"
