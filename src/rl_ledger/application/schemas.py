"""Pydantic schemas for the rl_ledger API."""

from pydantic import BaseModel, Field

from src.rl_common.response import Pagination
from src.rl_common.units import MAX_AMOUNT, riplimit_to_display, riplimit_to_inr
from src.rl_ledger.domain.models import Account, Hold, Transaction

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PlaceHoldRequest(BaseModel):
    bid_id: str = Field(..., min_length=1, max_length=64)
    amount: int = Field(..., gt=0, le=MAX_AMOUNT, description="RipLimit units to block")
    auction_id: str | None = Field(None, max_length=64)


class ResolveHoldRequest(BaseModel):
    outcome: str = Field(..., description="won | lost | cancelled")


class PurchaseRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    amount: int = Field(..., gt=0, le=MAX_AMOUNT, description="RipLimit units purchased")
    reference_id: str | None = Field(
        None, max_length=128, description="Payment gateway reference"
    )
    description: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HoldItem(BaseModel):
    id: int
    bid_id: str
    user_id: str
    auction_id: str | None
    amount: int
    original_amount: int
    status: str
    created_at: str | None
    resolved_at: str | None

    @classmethod
    def from_domain(cls, hold: Hold) -> "HoldItem":
        return cls(
            id=hold.id,
            bid_id=hold.bid_id,
            user_id=hold.user_id,
            auction_id=hold.auction_id,
            amount=hold.amount,
            original_amount=hold.original_amount,
            status=hold.status.value,
            created_at=hold.created_at.isoformat() if hold.created_at else None,
            resolved_at=hold.resolved_at.isoformat() if hold.resolved_at else None,
        )


class BalanceResponse(BaseModel):
    user_id: str
    available_balance: int
    blocked_balance: int
    total_balance: int
    available_inr: float
    blocked_inr: float
    total_inr: float
    total_display: str
    is_blocked: bool
    block_reason: str | None
    strikes: int
    unpaid_auction_ids: list[str]
    has_unpaid_auctions: bool
    open_holds: list[HoldItem]

    @classmethod
    def from_account(cls, account: Account, holds: list[Hold]) -> "BalanceResponse":
        return cls(
            user_id=account.user_id,
            available_balance=account.available_balance,
            blocked_balance=account.blocked_balance,
            total_balance=account.total_balance,
            available_inr=riplimit_to_inr(account.available_balance),
            blocked_inr=riplimit_to_inr(account.blocked_balance),
            total_inr=riplimit_to_inr(account.total_balance),
            total_display=riplimit_to_display(account.total_balance),
            is_blocked=account.is_blocked,
            block_reason=account.block_reason,
            strikes=account.strikes,
            unpaid_auction_ids=list(account.unpaid_auction_ids),
            has_unpaid_auctions=account.has_unpaid_auctions,
            open_holds=[HoldItem.from_domain(h) for h in holds],
        )


class TransactionItem(BaseModel):
    id: str  # snowflake ids exceed JS safe integers
    type: str
    amount: int
    amount_display: str
    available_after: int
    blocked_after: int
    related_bid_id: str | None
    related_auction_id: str | None
    reference_id: str | None
    reason: str | None
    actor_id: str | None
    description: str | None
    created_at: str

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionItem":
        return cls(
            id=str(tx.id),
            type=tx.tx_type.value,
            amount=tx.amount,
            amount_display=riplimit_to_display(tx.amount),
            available_after=tx.available_after,
            blocked_after=tx.blocked_after,
            related_bid_id=tx.related_bid_id,
            related_auction_id=tx.related_auction_id,
            reference_id=tx.reference_id,
            reason=tx.reason,
            actor_id=tx.actor_id,
            description=tx.description,
            created_at=tx.created_at.isoformat(),
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    pagination: Pagination


class HoldListResponse(BaseModel):
    items: list[HoldItem]


class ResolveHoldResponse(BaseModel):
    hold: HoldItem
    transaction: TransactionItem | None
    already_resolved: bool
