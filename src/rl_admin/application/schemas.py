"""Pydantic schemas for the admin RipLimit API."""

from pydantic import BaseModel, Field

from src.rl_common.units import MAX_AMOUNT, riplimit_to_inr
from src.rl_ledger.application.schemas import HoldItem, TransactionItem
from src.rl_ledger.domain.models import Account, AccountDetail, SystemStats


class AdjustRequest(BaseModel):
    delta: int = Field(
        ..., ge=-MAX_AMOUNT, le=MAX_AMOUNT, description="Signed RipLimit units; non-zero"
    )
    # Stored twice: as the reason and behind the "Admin adjustment: " description prefix
    reason: str = Field(..., max_length=450, description="Required audit reason")


class UnpaidAuctionRequest(BaseModel):
    auction_id: str = Field(..., min_length=1, max_length=64)


class StatsResponse(BaseModel):
    """A None field means that aggregate could not be computed."""

    total_users: int | None
    total_available: int | None
    total_blocked: int | None
    total_lifetime_credited: int | None
    total_lifetime_debited: int | None
    active_hold_count: int | None
    total_available_inr: float | None
    total_blocked_inr: float | None

    @classmethod
    def from_stats(cls, stats: SystemStats) -> "StatsResponse":
        return cls(
            total_users=stats.total_users,
            total_available=stats.total_available,
            total_blocked=stats.total_blocked,
            total_lifetime_credited=stats.total_lifetime_credited,
            total_lifetime_debited=stats.total_lifetime_debited,
            active_hold_count=stats.active_hold_count,
            total_available_inr=(
                riplimit_to_inr(stats.total_available)
                if stats.total_available is not None
                else None
            ),
            total_blocked_inr=(
                riplimit_to_inr(stats.total_blocked)
                if stats.total_blocked is not None
                else None
            ),
        )


class AccountItem(BaseModel):
    user_id: str
    available_balance: int
    blocked_balance: int
    total_balance: int
    lifetime_credited: int
    lifetime_debited: int
    strikes: int
    is_blocked: bool
    block_reason: str | None
    unpaid_auction_ids: list[str]
    version: int
    created_at: str | None
    updated_at: str | None

    @classmethod
    def from_domain(cls, account: Account) -> "AccountItem":
        return cls(
            user_id=account.user_id,
            available_balance=account.available_balance,
            blocked_balance=account.blocked_balance,
            total_balance=account.total_balance,
            lifetime_credited=account.lifetime_credited,
            lifetime_debited=account.lifetime_debited,
            strikes=account.strikes,
            is_blocked=account.is_blocked,
            block_reason=account.block_reason,
            unpaid_auction_ids=list(account.unpaid_auction_ids),
            version=account.version,
            created_at=account.created_at.isoformat() if account.created_at else None,
            updated_at=account.updated_at.isoformat() if account.updated_at else None,
        )


class AccountDetailResponse(BaseModel):
    account: AccountItem
    recent_transactions: list[TransactionItem]
    open_holds: list[HoldItem]

    @classmethod
    def from_domain(cls, detail: AccountDetail) -> "AccountDetailResponse":
        return cls(
            account=AccountItem.from_domain(detail.account),
            recent_transactions=[
                TransactionItem.from_domain(tx) for tx in detail.recent_transactions
            ],
            open_holds=[HoldItem.from_domain(h) for h in detail.open_holds],
        )


class VerifyResponse(BaseModel):
    user_id: str
    ok: bool
    violations: list[str]
