"""Unit tests for PostgresLedgerStore using a MagicMock session factory."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.rl_common.enums import HoldStatus, TransactionType
from src.rl_common.errors import DuplicateHoldError, InternalError, StoreUnavailableError
from src.rl_ledger.domain.models import Hold, Transaction
from src.rl_ledger.infrastructure.persistence import PostgresLedgerStore

_NOW = datetime(2026, 1, 1, tzinfo=UTC)


def _account_row(**kwargs):  # type: ignore[no-untyped-def]
    row = MagicMock()
    row.user_id = kwargs.get("user_id", "u1")
    row.available_balance = kwargs.get("available_balance", 1000)
    row.blocked_balance = kwargs.get("blocked_balance", 0)
    row.lifetime_credited = kwargs.get("lifetime_credited", 1000)
    row.lifetime_debited = 0
    row.strikes = 0
    row.is_blocked = False
    row.block_reason = None
    row.unpaid_auction_ids = kwargs.get("unpaid_auction_ids", [])
    row.version = kwargs.get("version", 3)
    row.created_at = _NOW
    row.updated_at = _NOW
    return row


def _hold_row(**kwargs):  # type: ignore[no-untyped-def]
    row = MagicMock()
    row.id = kwargs.get("id", 11)
    row.bid_id = kwargs.get("bid_id", "bid-42")
    row.user_id = "u1"
    row.auction_id = None
    row.amount = 300
    row.original_amount = 300
    row.status = kwargs.get("status", "OPEN")
    row.created_at = _NOW
    row.resolved_at = None
    return row


def _tx_row():  # type: ignore[no-untyped-def]
    row = MagicMock()
    row.id = 99
    row.user_id = "u1"
    row.tx_type = "bid_block"
    row.amount = 300
    row.available_after = 700
    row.blocked_after = 300
    row.related_bid_id = "bid-42"
    row.related_auction_id = None
    row.reference_id = None
    row.reason = None
    row.actor_id = None
    row.description = None
    row.created_at = _NOW
    return row


def _result(one=None, rows=None, scalar=None):  # type: ignore[no-untyped-def]
    result = MagicMock()
    result.fetchone.return_value = one
    result.fetchall.return_value = rows or []
    result.scalar_one.return_value = scalar
    return result


def _factory(session: MagicMock) -> MagicMock:
    """async_sessionmaker stand-in: factory() -> async context manager -> session."""
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=session)
    ctx.__aexit__ = AsyncMock(return_value=False)
    begin = MagicMock()
    begin.__aenter__ = AsyncMock(return_value=None)
    begin.__aexit__ = AsyncMock(return_value=False)
    session.begin = MagicMock(return_value=begin)
    return MagicMock(return_value=ctx)


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


class TestReads:
    async def test_get_account(self, session: MagicMock) -> None:
        session.execute = AsyncMock(return_value=_result(one=_account_row(version=7)))
        store = PostgresLedgerStore(_factory(session))

        account = await store.get_account("u1")

        assert account is not None
        assert account.available_balance == 1000
        assert account.version == 7

    async def test_get_account_missing(self, session: MagicMock) -> None:
        session.execute = AsyncMock(return_value=_result(one=None))
        assert await PostgresLedgerStore(_factory(session)).get_account("nobody") is None

    async def test_query_transactions(self, session: MagicMock) -> None:
        session.execute = AsyncMock(
            side_effect=[_result(scalar=42), _result(rows=[_tx_row()])]
        )
        store = PostgresLedgerStore(_factory(session))

        txs, total = await store.query_transactions("u1", TransactionType.BID_BLOCK, 20, 40)

        assert total == 42
        assert txs[0].tx_type == TransactionType.BID_BLOCK
        assert txs[0].related_bid_id == "bid-42"
        params = session.execute.call_args_list[1].args[1]
        assert params == {"user_id": "u1", "tx_type": "bid_block", "limit": 20, "offset": 40}

    async def test_find_latest_hold(self, session: MagicMock) -> None:
        session.execute = AsyncMock(return_value=_result(one=_hold_row(status="CAPTURED")))
        hold = await PostgresLedgerStore(_factory(session)).find_latest_hold("bid-42")
        assert hold is not None
        assert hold.status == HoldStatus.CAPTURED

    async def test_aggregate(self, session: MagicMock) -> None:
        row = MagicMock()
        row.total_users = 2
        row.total_available = 1100
        row.total_blocked = 300
        row.total_lifetime_credited = 1500
        row.total_lifetime_debited = 100
        session.execute = AsyncMock(return_value=_result(one=row))

        totals = await PostgresLedgerStore(_factory(session)).aggregate()

        assert totals.total_available == 1100
        assert totals.total_lifetime_debited == 100

    async def test_count_open_holds(self, session: MagicMock) -> None:
        session.execute = AsyncMock(return_value=_result(scalar=5))
        assert await PostgresLedgerStore(_factory(session)).count_open_holds() == 5


class TestFailures:
    async def test_operational_error_is_unavailable(self, session: MagicMock) -> None:
        session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )
        with pytest.raises(StoreUnavailableError):
            await PostgresLedgerStore(_factory(session)).get_account("u1")

    async def test_timeout_is_unavailable(self, session: MagicMock) -> None:
        async def _slow(*args, **kwargs):  # type: ignore[no-untyped-def]
            await asyncio.sleep(1)

        session.execute = AsyncMock(side_effect=_slow)
        store = PostgresLedgerStore(_factory(session), timeout_seconds=0.01)
        with pytest.raises(StoreUnavailableError):
            await store.count_open_holds()


class TestRunAtomic:
    async def test_locks_then_runs_operation(self, session: MagicMock) -> None:
        session.execute = AsyncMock(
            side_effect=[_result(), _result(one=_account_row()), _result(one=MagicMock(version=4))]
        )
        store = PostgresLedgerStore(_factory(session))

        async def _op(uow):  # type: ignore[no-untyped-def]
            uow.account.available_balance -= 300
            uow.account.blocked_balance += 300
            await uow.save_account(uow.account)
            return uow.account

        account = await store.run_atomic("u1", _op)

        assert account.version == 4
        statements = [str(c.args[0]) for c in session.execute.call_args_list]
        assert "ON CONFLICT (user_id) DO NOTHING" in statements[0]
        assert "FOR UPDATE" in statements[1]
        assert "WHERE user_id = :user_id AND version = :version" in statements[2]
        update_params = session.execute.call_args_list[2].args[1]
        assert update_params["available_balance"] == 700
        assert update_params["version"] == 3

    async def test_version_conflict_is_internal_error(self, session: MagicMock) -> None:
        session.execute = AsyncMock(
            side_effect=[_result(), _result(one=_account_row()), _result(one=None)]
        )
        store = PostgresLedgerStore(_factory(session))

        async def _op(uow):  # type: ignore[no-untyped-def]
            await uow.save_account(uow.account)

        with pytest.raises(InternalError):
            await store.run_atomic("u1", _op)

    async def test_unique_violation_is_duplicate_hold(self, session: MagicMock) -> None:
        session.execute = AsyncMock(
            side_effect=[
                _result(),
                _result(one=_account_row()),
                IntegrityError("INSERT", {}, Exception("uq_riplimit_holds_open_bid")),
            ]
        )
        store = PostgresLedgerStore(_factory(session))
        hold = Hold(id=1, bid_id="bid-42", user_id="u1", amount=10, original_amount=10,
                    created_at=_NOW)

        async def _op(uow):  # type: ignore[no-untyped-def]
            await uow.insert_hold(hold)

        with pytest.raises(DuplicateHoldError):
            await store.run_atomic("u1", _op)

    async def test_append_transaction_params(self, session: MagicMock) -> None:
        session.execute = AsyncMock(
            side_effect=[_result(), _result(one=_account_row()), _result()]
        )
        store = PostgresLedgerStore(_factory(session))
        tx = Transaction(
            id=5, user_id="u1", tx_type=TransactionType.ADMIN_ADJUSTMENT, amount=-50,
            available_after=950, blocked_after=0, created_at=_NOW,
            reason="correction", actor_id="admin-1",
        )

        async def _op(uow):  # type: ignore[no-untyped-def]
            await uow.append_transaction(tx)

        await store.run_atomic("u1", _op)

        params = session.execute.call_args_list[2].args[1]
        assert params["tx_type"] == "admin_adjustment"
        assert params["amount"] == -50
        assert params["actor_id"] == "admin-1"
