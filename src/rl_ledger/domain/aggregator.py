"""AdminAggregator: read-only, cross-account views for operators.

Statistics are eventually consistent with mutations. These are observability
reads, so a failing sub-aggregate degrades to None instead of failing the
whole response; balance-affecting calls never degrade like this.
"""

import logging

from src.rl_common.auth import Principal, require_admin
from src.rl_common.errors import AccountNotFoundError, StoreUnavailableError
from src.rl_ledger.domain import audit
from src.rl_ledger.domain.models import AccountDetail, LedgerTotals, SystemStats
from src.rl_ledger.domain.repository import LedgerStoreProtocol
from src.rl_ledger.domain.transaction_log import TransactionLog

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS = 20
DETAIL_OPEN_HOLDS = 100


def _non_negative(name: str, value: int | None) -> int | None:
    if value is not None and value < 0:
        logger.error("aggregate %s is negative (%d); reporting as unavailable", name, value)
        return None
    return value


class AdminAggregator:
    def __init__(
        self,
        store: LedgerStoreProtocol,
        transaction_log: TransactionLog | None = None,
    ) -> None:
        self._store = store
        self._log = transaction_log or TransactionLog(store)

    async def get_system_stats(self, principal: Principal) -> SystemStats:
        require_admin(principal, "system statistics")

        totals: LedgerTotals | None
        try:
            totals = await self._store.aggregate()
        except StoreUnavailableError:
            logger.warning("account totals unavailable", exc_info=True)
            totals = None

        active_holds: int | None
        try:
            active_holds = await self._store.count_open_holds()
        except StoreUnavailableError:
            logger.warning("open hold count unavailable", exc_info=True)
            active_holds = None

        return SystemStats(
            total_users=_non_negative("total_users", totals.total_users if totals else None),
            total_available=_non_negative(
                "total_available", totals.total_available if totals else None
            ),
            total_blocked=_non_negative(
                "total_blocked", totals.total_blocked if totals else None
            ),
            total_lifetime_credited=_non_negative(
                "total_lifetime_credited", totals.total_lifetime_credited if totals else None
            ),
            total_lifetime_debited=_non_negative(
                "total_lifetime_debited", totals.total_lifetime_debited if totals else None
            ),
            active_hold_count=_non_negative("active_hold_count", active_holds),
        )

    async def get_account_detail(
        self,
        principal: Principal,
        user_id: str,
        recent: int = RECENT_TRANSACTIONS,
    ) -> AccountDetail:
        require_admin(principal, "account detail")
        account = await self._store.get_account(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        transactions = await self._log.recent(user_id, recent)
        holds = await self._store.list_open_holds(user_id, None, DETAIL_OPEN_HOLDS)
        return AccountDetail(
            account=account, recent_transactions=transactions, open_holds=holds
        )

    async def verify_account(self, principal: Principal, user_id: str) -> list[str]:
        """Replay the account's log against its stored balances."""
        require_admin(principal, "account verification")
        account = await self._store.get_account(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        history = await self._log.replay_history(user_id)
        return audit.verify_account(account, history)
