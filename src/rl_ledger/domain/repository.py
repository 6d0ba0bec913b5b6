"""Ledger store Protocols — dependency inversion for testability.

Components receive a store handle at construction. The PostgreSQL store is
the production implementation; the in-memory store implements the same
Protocol for tests and local development.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Protocol, TypeVar

from src.rl_common.enums import TransactionType
from src.rl_ledger.domain.models import Account, Hold, LedgerTotals, Transaction

T = TypeVar("T")


class LedgerUnitOfWork(Protocol):
    """Writes staged against one locked account inside `run_atomic`.

    Nothing is visible to other callers until the atomic unit returns; if the
    unit raises, every staged write is discarded.
    """

    account: Account

    async def get_open_hold(self, bid_id: str) -> Hold | None: ...

    async def insert_hold(self, hold: Hold) -> None: ...

    async def update_hold(self, hold: Hold) -> None: ...

    async def save_account(self, account: Account) -> None: ...

    async def append_transaction(self, tx: Transaction) -> None: ...


class LedgerStoreProtocol(Protocol):
    async def get_account(self, user_id: str) -> Account | None: ...

    async def run_atomic(
        self, user_id: str, fn: Callable[[LedgerUnitOfWork], Awaitable[T]]
    ) -> T: ...

    async def query_transactions(
        self,
        user_id: str,
        tx_type: TransactionType | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Transaction], int]: ...

    async def list_all_transactions(self, user_id: str) -> list[Transaction]: ...

    async def find_latest_hold(self, bid_id: str) -> Hold | None: ...

    async def list_open_holds(
        self,
        user_id: str | None,
        created_before: datetime | None,
        limit: int,
    ) -> list[Hold]: ...

    async def aggregate(self) -> LedgerTotals: ...

    async def count_open_holds(self) -> int: ...
