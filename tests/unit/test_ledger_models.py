"""Tests for rl_ledger domain models."""

from datetime import UTC, datetime

import pytest

from src.rl_common.enums import HoldStatus, TransactionType
from src.rl_ledger.domain.models import Account, Hold, Transaction

_NOW = datetime(2026, 1, 1, tzinfo=UTC)


def _tx(tx_type: TransactionType, amount: int = 100, **fields: str | None) -> Transaction:
    return Transaction(
        id=1,
        user_id="u1",
        tx_type=tx_type,
        amount=amount,
        available_after=0,
        blocked_after=0,
        created_at=_NOW,
        **fields,
    )


class TestAccount:
    def test_defaults_are_zero(self) -> None:
        account = Account(user_id="u1")
        assert account.total_balance == 0
        assert account.strikes == 0
        assert account.is_blocked is False
        assert account.has_unpaid_auctions is False

    def test_total_balance(self) -> None:
        assert Account(user_id="u1", available_balance=700, blocked_balance=300).total_balance == 1000

    def test_unpaid_lists_not_shared(self) -> None:
        a, b = Account(user_id="a"), Account(user_id="b")
        a.unpaid_auction_ids.append("x")
        assert b.unpaid_auction_ids == []


class TestTransactionSchema:
    def test_purchase(self) -> None:
        tx = _tx(TransactionType.PURCHASE, reference_id="pay_1")
        assert tx.related_bid_id is None

    def test_purchase_requires_positive_amount(self) -> None:
        with pytest.raises(ValueError):
            _tx(TransactionType.PURCHASE, amount=0)

    @pytest.mark.parametrize(
        "tx_type",
        [TransactionType.BID_BLOCK, TransactionType.BID_RELEASE, TransactionType.BID_CAPTURE],
    )
    def test_bid_types_require_bid_id(self, tx_type: TransactionType) -> None:
        with pytest.raises(ValueError, match="related_bid_id"):
            _tx(tx_type)
        assert _tx(tx_type, related_bid_id="bid-1").related_bid_id == "bid-1"

    def test_adjustment_requires_actor_and_reason(self) -> None:
        with pytest.raises(ValueError):
            _tx(TransactionType.ADMIN_ADJUSTMENT, amount=-50, reason="correction")
        tx = _tx(
            TransactionType.ADMIN_ADJUSTMENT, amount=-50, reason="correction", actor_id="admin-1"
        )
        assert tx.amount == -50

    def test_adjustment_rejects_zero_delta(self) -> None:
        with pytest.raises(ValueError):
            _tx(TransactionType.ADMIN_ADJUSTMENT, amount=0, reason="r", actor_id="a")

    def test_is_immutable(self) -> None:
        tx = _tx(TransactionType.PURCHASE)
        with pytest.raises(AttributeError):
            tx.amount = 5  # type: ignore[misc]


def test_hold_is_open() -> None:
    hold = Hold(id=1, bid_id="b", user_id="u1", amount=10, original_amount=10)
    assert hold.is_open
    hold.status = HoldStatus.CAPTURED
    assert not hold.is_open
