"""PostgresLedgerStore — concrete implementation of LedgerStoreProtocol.

`run_atomic` is the only write path: one session, one transaction. The
account row is upserted (lazy creation) and locked with SELECT ... FOR UPDATE,
so operations on the same account serialise in PostgreSQL while different
accounts proceed in parallel. No in-process lock is held across awaits.

Every store call is bounded by LEDGER_STORE_TIMEOUT_SECONDS. A timeout or a
lost connection surfaces as StoreUnavailableError: the transaction may or may
not have committed.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import TextClause, text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.rl_common.enums import HoldStatus, TransactionType
from src.rl_common.errors import DuplicateHoldError, InternalError, StoreUnavailableError
from src.rl_ledger.domain.models import Account, Hold, LedgerTotals, Transaction
from src.rl_ledger.domain.repository import LedgerUnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ACCOUNT_COLUMNS = """
    user_id, available_balance, blocked_balance, lifetime_credited, lifetime_debited,
    strikes, is_blocked, block_reason, unpaid_auction_ids, version, created_at, updated_at
"""

_HOLD_COLUMNS = """
    id, bid_id, user_id, auction_id, amount, original_amount, status, created_at, resolved_at
"""

_TX_COLUMNS = """
    id, user_id, tx_type, amount, available_after, blocked_after,
    related_bid_id, related_auction_id, reference_id, reason, actor_id, description,
    created_at
"""

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_ENSURE_ACCOUNT_SQL = text("""
    INSERT INTO riplimit_accounts (user_id)
    VALUES (:user_id)
    ON CONFLICT (user_id) DO NOTHING
""")

_LOCK_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM riplimit_accounts
    WHERE user_id = :user_id
    FOR UPDATE
""")

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM riplimit_accounts
    WHERE user_id = :user_id
""")

_UPDATE_ACCOUNT_SQL = text("""
    UPDATE riplimit_accounts
    SET available_balance  = :available_balance,
        blocked_balance    = :blocked_balance,
        lifetime_credited  = :lifetime_credited,
        lifetime_debited   = :lifetime_debited,
        strikes            = :strikes,
        is_blocked         = :is_blocked,
        block_reason       = :block_reason,
        unpaid_auction_ids = :unpaid_auction_ids,
        version            = version + 1,
        updated_at         = :updated_at
    WHERE user_id = :user_id AND version = :version
    RETURNING version
""")

_AGGREGATE_SQL = text("""
    SELECT
        COUNT(*)                               AS total_users,
        COALESCE(SUM(available_balance), 0)    AS total_available,
        COALESCE(SUM(blocked_balance), 0)      AS total_blocked,
        COALESCE(SUM(lifetime_credited), 0)    AS total_lifetime_credited,
        COALESCE(SUM(lifetime_debited), 0)     AS total_lifetime_debited
    FROM riplimit_accounts
""")

# ---------------------------------------------------------------------------
# SQL: holds
# ---------------------------------------------------------------------------

_GET_OPEN_HOLD_FOR_UPDATE_SQL = text(f"""
    SELECT {_HOLD_COLUMNS}
    FROM riplimit_holds
    WHERE bid_id = :bid_id AND status = 'OPEN'
    FOR UPDATE
""")

_INSERT_HOLD_SQL = text("""
    INSERT INTO riplimit_holds
        (id, bid_id, user_id, auction_id, amount, original_amount, status, created_at)
    VALUES
        (:id, :bid_id, :user_id, :auction_id, :amount, :original_amount, :status, :created_at)
""")

_UPDATE_HOLD_SQL = text("""
    UPDATE riplimit_holds
    SET amount = :amount,
        status = :status,
        resolved_at = :resolved_at
    WHERE id = :id
""")

# Open hold first, otherwise the most recent closed one
_LATEST_HOLD_SQL = text(f"""
    SELECT {_HOLD_COLUMNS}
    FROM riplimit_holds
    WHERE bid_id = :bid_id
    ORDER BY (status = 'OPEN') DESC, created_at DESC, id DESC
    LIMIT 1
""")

_LIST_OPEN_HOLDS_SQL = text(f"""
    SELECT {_HOLD_COLUMNS}
    FROM riplimit_holds
    WHERE status = 'OPEN'
      AND (CAST(:user_id AS VARCHAR) IS NULL OR user_id = :user_id)
      AND (CAST(:created_before AS TIMESTAMPTZ) IS NULL OR created_at < :created_before)
    ORDER BY created_at ASC, id ASC
    LIMIT :limit
""")

_COUNT_OPEN_HOLDS_SQL = text("SELECT COUNT(*) FROM riplimit_holds WHERE status = 'OPEN'")

# ---------------------------------------------------------------------------
# SQL: transactions (append-only)
# ---------------------------------------------------------------------------

_INSERT_TX_SQL = text("""
    INSERT INTO riplimit_transactions
        (id, user_id, tx_type, amount, available_after, blocked_after,
         related_bid_id, related_auction_id, reference_id, reason, actor_id, description,
         created_at)
    VALUES
        (:id, :user_id, :tx_type, :amount, :available_after, :blocked_after,
         :related_bid_id, :related_auction_id, :reference_id, :reason, :actor_id, :description,
         :created_at)
""")

_LIST_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM riplimit_transactions
    WHERE user_id = :user_id
      AND (CAST(:tx_type AS VARCHAR) IS NULL OR tx_type = :tx_type)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit OFFSET :offset
""")

_COUNT_TX_SQL = text("""
    SELECT COUNT(*)
    FROM riplimit_transactions
    WHERE user_id = :user_id
      AND (CAST(:tx_type AS VARCHAR) IS NULL OR tx_type = :tx_type)
""")

_ALL_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM riplimit_transactions
    WHERE user_id = :user_id
    ORDER BY created_at ASC, id ASC
""")


def _row_to_account(row: object) -> Account:
    return Account(
        user_id=row.user_id,  # type: ignore[attr-defined]
        available_balance=row.available_balance,  # type: ignore[attr-defined]
        blocked_balance=row.blocked_balance,  # type: ignore[attr-defined]
        lifetime_credited=row.lifetime_credited,  # type: ignore[attr-defined]
        lifetime_debited=row.lifetime_debited,  # type: ignore[attr-defined]
        strikes=row.strikes,  # type: ignore[attr-defined]
        is_blocked=row.is_blocked,  # type: ignore[attr-defined]
        block_reason=row.block_reason,  # type: ignore[attr-defined]
        unpaid_auction_ids=list(row.unpaid_auction_ids or []),  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_hold(row: object) -> Hold:
    return Hold(
        id=row.id,  # type: ignore[attr-defined]
        bid_id=row.bid_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        auction_id=row.auction_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        original_amount=row.original_amount,  # type: ignore[attr-defined]
        status=HoldStatus(row.status),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
    )


def _row_to_tx(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        tx_type=TransactionType(row.tx_type),  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        available_after=row.available_after,  # type: ignore[attr-defined]
        blocked_after=row.blocked_after,  # type: ignore[attr-defined]
        related_bid_id=row.related_bid_id,  # type: ignore[attr-defined]
        related_auction_id=row.related_auction_id,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        reason=row.reason,  # type: ignore[attr-defined]
        actor_id=row.actor_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class _PostgresUnitOfWork:
    """LedgerUnitOfWork bound to one open transaction and one locked account."""

    def __init__(self, session: AsyncSession, account: Account) -> None:
        self._session = session
        self.account = account

    async def get_open_hold(self, bid_id: str) -> Hold | None:
        result = await self._session.execute(_GET_OPEN_HOLD_FOR_UPDATE_SQL, {"bid_id": bid_id})
        row = result.fetchone()
        return _row_to_hold(row) if row else None

    async def insert_hold(self, hold: Hold) -> None:
        try:
            await self._session.execute(
                _INSERT_HOLD_SQL,
                {
                    "id": hold.id,
                    "bid_id": hold.bid_id,
                    "user_id": hold.user_id,
                    "auction_id": hold.auction_id,
                    "amount": hold.amount,
                    "original_amount": hold.original_amount,
                    "status": hold.status.value,
                    "created_at": hold.created_at,
                },
            )
        except IntegrityError as e:
            # uq_riplimit_holds_open_bid: another account opened this bid concurrently
            raise DuplicateHoldError(hold.bid_id) from e

    async def update_hold(self, hold: Hold) -> None:
        await self._session.execute(
            _UPDATE_HOLD_SQL,
            {
                "id": hold.id,
                "amount": hold.amount,
                "status": hold.status.value,
                "resolved_at": hold.resolved_at,
            },
        )

    async def save_account(self, account: Account) -> None:
        result = await self._session.execute(
            _UPDATE_ACCOUNT_SQL,
            {
                "user_id": account.user_id,
                "available_balance": account.available_balance,
                "blocked_balance": account.blocked_balance,
                "lifetime_credited": account.lifetime_credited,
                "lifetime_debited": account.lifetime_debited,
                "strikes": account.strikes,
                "is_blocked": account.is_blocked,
                "block_reason": account.block_reason,
                "unpaid_auction_ids": account.unpaid_auction_ids,
                "updated_at": account.updated_at,
                "version": account.version,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError(
                f"Account {account.user_id} changed underneath a locked update "
                f"(expected version {account.version})"
            )
        account.version = row.version

    async def append_transaction(self, tx: Transaction) -> None:
        await self._session.execute(
            _INSERT_TX_SQL,
            {
                "id": tx.id,
                "user_id": tx.user_id,
                "tx_type": tx.tx_type.value,
                "amount": tx.amount,
                "available_after": tx.available_after,
                "blocked_after": tx.blocked_after,
                "related_bid_id": tx.related_bid_id,
                "related_auction_id": tx.related_auction_id,
                "reference_id": tx.reference_id,
                "reason": tx.reason,
                "actor_id": tx.actor_id,
                "description": tx.description,
                "created_at": tx.created_at,
            },
        )


class PostgresLedgerStore:
    """Concrete store — one short-lived session per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout_seconds: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._timeout = (
            settings.LEDGER_STORE_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[None]:
        try:
            async with asyncio.timeout(self._timeout):
                yield
        except TimeoutError as e:
            logger.warning("ledger store call timed out after %.1fs", self._timeout)
            raise StoreUnavailableError(
                f"Ledger store timed out after {self._timeout}s; outcome unknown"
            ) from e
        except (OperationalError, InterfaceError) as e:
            logger.warning("ledger store unavailable: %s", e)
            raise StoreUnavailableError() from e

    async def _fetchone(self, stmt: TextClause, params: dict[str, Any]) -> Any:
        async with self._guard(), self._session_factory() as session:
            result = await session.execute(stmt, params)
            return result.fetchone()

    async def _fetchall(self, stmt: TextClause, params: dict[str, Any]) -> list[Any]:
        async with self._guard(), self._session_factory() as session:
            result = await session.execute(stmt, params)
            return list(result.fetchall())

    async def get_account(self, user_id: str) -> Account | None:
        row = await self._fetchone(_GET_ACCOUNT_SQL, {"user_id": user_id})
        return _row_to_account(row) if row else None

    async def run_atomic(
        self, user_id: str, fn: Callable[[LedgerUnitOfWork], Awaitable[T]]
    ) -> T:
        async with self._guard(), self._session_factory() as session:
            async with session.begin():
                await session.execute(_ENSURE_ACCOUNT_SQL, {"user_id": user_id})
                result = await session.execute(_LOCK_ACCOUNT_SQL, {"user_id": user_id})
                row = result.fetchone()
                if row is None:
                    raise InternalError(f"Account row for {user_id} vanished after upsert")
                uow = _PostgresUnitOfWork(session, _row_to_account(row))
                return await fn(uow)

    async def query_transactions(
        self,
        user_id: str,
        tx_type: TransactionType | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Transaction], int]:
        type_value = tx_type.value if tx_type is not None else None
        async with self._guard(), self._session_factory() as session:
            count = (
                await session.execute(_COUNT_TX_SQL, {"user_id": user_id, "tx_type": type_value})
            ).scalar_one()
            rows = (
                await session.execute(
                    _LIST_TX_SQL,
                    {
                        "user_id": user_id,
                        "tx_type": type_value,
                        "limit": limit,
                        "offset": offset,
                    },
                )
            ).fetchall()
        return [_row_to_tx(r) for r in rows], int(count)

    async def list_all_transactions(self, user_id: str) -> list[Transaction]:
        rows = await self._fetchall(_ALL_TX_SQL, {"user_id": user_id})
        return [_row_to_tx(r) for r in rows]

    async def find_latest_hold(self, bid_id: str) -> Hold | None:
        row = await self._fetchone(_LATEST_HOLD_SQL, {"bid_id": bid_id})
        return _row_to_hold(row) if row else None

    async def list_open_holds(
        self,
        user_id: str | None,
        created_before: datetime | None,
        limit: int,
    ) -> list[Hold]:
        rows = await self._fetchall(
            _LIST_OPEN_HOLDS_SQL,
            {"user_id": user_id, "created_before": created_before, "limit": limit},
        )
        return [_row_to_hold(r) for r in rows]

    async def aggregate(self) -> LedgerTotals:
        row = await self._fetchone(_AGGREGATE_SQL, {})
        return LedgerTotals(
            total_users=int(row.total_users),
            total_available=int(row.total_available),
            total_blocked=int(row.total_blocked),
            total_lifetime_credited=int(row.total_lifetime_credited),
            total_lifetime_debited=int(row.total_lifetime_debited),
        )

    async def count_open_holds(self) -> int:
        async with self._guard(), self._session_factory() as session:
            return int((await session.execute(_COUNT_OPEN_HOLDS_SQL)).scalar_one())
