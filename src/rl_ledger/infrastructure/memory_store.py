"""InMemoryLedgerStore — LedgerStoreProtocol without a database.

Used by tests and by LEDGER_STORE=memory for local development. Each atomic
unit works on copies and stages its writes; they are applied only when the
unit returns, so a raising operation leaves no trace. A per-account
asyncio.Lock stands in for PostgreSQL's row lock.
"""

import asyncio
import copy
from collections import defaultdict
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from src.rl_common.datetime_utils import utc_now
from src.rl_common.enums import TransactionType
from src.rl_common.errors import DuplicateHoldError
from src.rl_ledger.domain.models import Account, Hold, LedgerTotals, Transaction
from src.rl_ledger.domain.repository import LedgerUnitOfWork

T = TypeVar("T")


class _MemoryUnitOfWork:
    def __init__(self, store: "InMemoryLedgerStore", account: Account) -> None:
        self._store = store
        self.account = account
        self.saved_account: Account | None = None
        self.new_holds: list[Hold] = []
        self.updated_holds: dict[int, Hold] = {}
        self.transactions: list[Transaction] = []

    async def get_open_hold(self, bid_id: str) -> Hold | None:
        for hold in self.new_holds:
            if hold.bid_id == bid_id and hold.is_open:
                return hold
        for hold in self._store._holds:
            if hold.bid_id == bid_id:
                staged = self.updated_holds.get(hold.id)
                if staged is not None:
                    if staged.is_open:
                        return staged
                elif hold.is_open:
                    return copy.copy(hold)
        return None

    async def insert_hold(self, hold: Hold) -> None:
        self.new_holds.append(copy.copy(hold))

    async def update_hold(self, hold: Hold) -> None:
        for staged in self.new_holds:
            if staged.id == hold.id:
                staged.amount, staged.status, staged.resolved_at = (
                    hold.amount, hold.status, hold.resolved_at,
                )
                return
        self.updated_holds[hold.id] = copy.copy(hold)

    async def save_account(self, account: Account) -> None:
        self.saved_account = copy.deepcopy(account)
        self.saved_account.version += 1
        account.version = self.saved_account.version

    async def append_transaction(self, tx: Transaction) -> None:
        self.transactions.append(tx)


class InMemoryLedgerStore:
    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._holds: list[Hold] = []
        self._transactions: list[Transaction] = []
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_account(self, user_id: str) -> Account | None:
        account = self._accounts.get(user_id)
        return copy.deepcopy(account) if account else None

    async def run_atomic(
        self, user_id: str, fn: Callable[[LedgerUnitOfWork], Awaitable[T]]
    ) -> T:
        async with self._locks[user_id]:
            existing = self._accounts.get(user_id)
            if existing is None:
                now = utc_now()
                working = Account(user_id=user_id, created_at=now, updated_at=now)
            else:
                working = copy.deepcopy(existing)
            uow = _MemoryUnitOfWork(self, working)
            result = await fn(uow)
            self._commit(user_id, uow, created=existing is None)
            return result

    def _commit(self, user_id: str, uow: _MemoryUnitOfWork, created: bool) -> None:
        # Runs without awaiting, so no other task can interleave
        for hold in uow.new_holds:
            if hold.is_open and any(
                h.bid_id == hold.bid_id and h.is_open and h.id not in uow.updated_holds
                for h in self._holds
            ):
                raise DuplicateHoldError(hold.bid_id)
        if uow.saved_account is not None:
            self._accounts[user_id] = uow.saved_account
        elif created:
            self._accounts[user_id] = copy.deepcopy(uow.account)
        for i, hold in enumerate(self._holds):
            staged = uow.updated_holds.get(hold.id)
            if staged is not None:
                self._holds[i] = staged
        self._holds.extend(uow.new_holds)
        self._transactions.extend(uow.transactions)

    async def query_transactions(
        self,
        user_id: str,
        tx_type: TransactionType | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Transaction], int]:
        matching = [
            tx for tx in self._transactions
            if tx.user_id == user_id and (tx_type is None or tx.tx_type == tx_type)
        ]
        matching.sort(key=lambda tx: (tx.created_at, tx.id), reverse=True)
        return matching[offset:offset + limit], len(matching)

    async def list_all_transactions(self, user_id: str) -> list[Transaction]:
        history = [tx for tx in self._transactions if tx.user_id == user_id]
        history.sort(key=lambda tx: (tx.created_at, tx.id))
        return history

    async def find_latest_hold(self, bid_id: str) -> Hold | None:
        candidates = [h for h in self._holds if h.bid_id == bid_id]
        if not candidates:
            return None
        candidates.sort(key=lambda h: (h.is_open, h.created_at or utc_now(), h.id), reverse=True)
        return copy.copy(candidates[0])

    async def list_open_holds(
        self,
        user_id: str | None,
        created_before: datetime | None,
        limit: int,
    ) -> list[Hold]:
        holds = [
            copy.copy(h) for h in self._holds
            if h.is_open
            and (user_id is None or h.user_id == user_id)
            and (created_before is None or (h.created_at is not None and h.created_at < created_before))
        ]
        holds.sort(key=lambda h: (h.created_at or utc_now(), h.id))
        return holds[:limit]

    async def aggregate(self) -> LedgerTotals:
        accounts = list(self._accounts.values())
        return LedgerTotals(
            total_users=len(accounts),
            total_available=sum(a.available_balance for a in accounts),
            total_blocked=sum(a.blocked_balance for a in accounts),
            total_lifetime_credited=sum(a.lifetime_credited for a in accounts),
            total_lifetime_debited=sum(a.lifetime_debited for a in accounts),
        )

    async def count_open_holds(self) -> int:
        return sum(1 for h in self._holds if h.is_open)
