"""Domain models for rl_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime

from src.rl_common.enums import BID_TRANSACTION_TYPES, HoldStatus, TransactionType


@dataclass
class Account:
    user_id: str
    available_balance: int = 0     # RipLimit units
    blocked_balance: int = 0       # RipLimit units held against open bids
    lifetime_credited: int = 0
    lifetime_debited: int = 0
    strikes: int = 0
    is_blocked: bool = False
    block_reason: str | None = None
    unpaid_auction_ids: list[str] = field(default_factory=list)
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_balance(self) -> int:
        return self.available_balance + self.blocked_balance

    @property
    def has_unpaid_auctions(self) -> bool:
        return len(self.unpaid_auction_ids) > 0


@dataclass(frozen=True)
class Transaction:
    """One balance-affecting event. Never updated or deleted.

    `amount` is an unsigned magnitude for purchase and the three bid types;
    for admin_adjustment it is the signed delta applied to available balance.
    """

    id: int
    user_id: str
    tx_type: TransactionType
    amount: int
    available_after: int
    blocked_after: int
    created_at: datetime
    related_bid_id: str | None = None
    related_auction_id: str | None = None
    reference_id: str | None = None
    reason: str | None = None
    actor_id: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if self.tx_type in BID_TRANSACTION_TYPES:
            if not self.related_bid_id:
                raise ValueError(f"{self.tx_type.value} transaction requires related_bid_id")
            if self.amount <= 0:
                raise ValueError(f"{self.tx_type.value} amount must be positive")
        elif self.tx_type == TransactionType.PURCHASE:
            if self.amount <= 0:
                raise ValueError("purchase amount must be positive")
        elif self.tx_type == TransactionType.ADMIN_ADJUSTMENT:
            if not self.actor_id or not self.reason:
                raise ValueError("admin_adjustment requires actor_id and reason")
            if self.amount == 0:
                raise ValueError("admin_adjustment delta must be non-zero")


@dataclass
class Hold:
    id: int
    bid_id: str
    user_id: str
    amount: int                 # still blocked
    original_amount: int        # blocked when the hold was placed
    status: HoldStatus = HoldStatus.OPEN
    auction_id: str | None = None
    created_at: datetime | None = None
    resolved_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == HoldStatus.OPEN


@dataclass
class TransactionPage:
    transactions: list[Transaction]
    total: int


@dataclass
class HoldResolution:
    hold: Hold
    transaction: Transaction | None   # None when the hold was already resolved
    already_resolved: bool = False


@dataclass
class LedgerTotals:
    total_users: int
    total_available: int
    total_blocked: int
    total_lifetime_credited: int
    total_lifetime_debited: int


@dataclass
class SystemStats:
    """Cross-account totals. A field is None when its sub-aggregate failed."""

    total_users: int | None
    total_available: int | None
    total_blocked: int | None
    total_lifetime_credited: int | None
    total_lifetime_debited: int | None
    active_hold_count: int | None


@dataclass
class AccountDetail:
    account: Account
    recent_transactions: list[Transaction]
    open_holds: list[Hold]
