"""TransactionLog — read path over the append-only ledger history."""

from src.rl_common.enums import TransactionType
from src.rl_common.errors import InvalidTransactionTypeError
from src.rl_ledger.domain.models import Transaction, TransactionPage
from src.rl_ledger.domain.repository import LedgerStoreProtocol

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class TransactionLog:
    def __init__(self, store: LedgerStoreProtocol) -> None:
        self._store = store

    async def recent(self, user_id: str, n: int = 10) -> list[Transaction]:
        page = await self.list(user_id, limit=n)
        return page.transactions

    async def replay_history(self, user_id: str) -> list[Transaction]:
        """Full history oldest first, for audits."""
        return await self._store.list_all_transactions(user_id)

    # Defined last: the method name shadows the builtin inside the class body.
    async def list(
        self,
        user_id: str,
        tx_type: TransactionType | str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> TransactionPage:
        """Newest first, ordered by (created_at, id) so pages never overlap."""
        parsed: TransactionType | None = None
        if tx_type is not None:
            try:
                parsed = TransactionType(tx_type)
            except ValueError:
                raise InvalidTransactionTypeError(str(tx_type)) from None
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)
        transactions, total = await self._store.query_transactions(
            user_id, parsed, limit, offset
        )
        return TransactionPage(transactions=transactions, total=total)
