"""LedgerApplicationService — thin composition layer.

Combines ledger domain calls with schema transformations. Each mutation is
atomic inside the store, so there is no session or commit handling here.
"""

from src.rl_common.auth import Principal, require_admin
from src.rl_common.response import Pagination
from src.rl_ledger.application.schemas import (
    BalanceResponse,
    HoldItem,
    HoldListResponse,
    ResolveHoldResponse,
    TransactionItem,
    TransactionListResponse,
)
from src.rl_ledger.domain.hold_manager import HoldManager
from src.rl_ledger.domain.models import Account
from src.rl_ledger.domain.mutator import BalanceMutator
from src.rl_ledger.domain.repository import LedgerStoreProtocol
from src.rl_ledger.domain.transaction_log import TransactionLog

BALANCE_OPEN_HOLDS = 100


class LedgerApplicationService:
    def __init__(self, store: LedgerStoreProtocol) -> None:
        self._store = store
        self._mutator = BalanceMutator(store)
        self._holds = HoldManager(store, self._mutator)
        self._log = TransactionLog(store)

    async def get_balance_details(self, user_id: str) -> BalanceResponse:
        # Reads never create the account row
        account = await self._store.get_account(user_id) or Account(user_id=user_id)
        holds = await self._store.list_open_holds(user_id, None, BALANCE_OPEN_HOLDS)
        return BalanceResponse.from_account(account, holds)

    async def list_transactions(
        self,
        user_id: str,
        tx_type: str | None,
        page: int,
        page_size: int,
    ) -> TransactionListResponse:
        page = max(1, page)
        result = await self._log.list(
            user_id, tx_type, limit=page_size, offset=(page - 1) * page_size
        )
        return TransactionListResponse(
            items=[TransactionItem.from_domain(tx) for tx in result.transactions],
            pagination=Pagination.build(page, page_size, result.total),
        )

    async def list_open_holds(self, user_id: str) -> HoldListResponse:
        holds = await self._holds.list_open_holds(user_id=user_id)
        return HoldListResponse(items=[HoldItem.from_domain(h) for h in holds])

    async def place_hold(
        self,
        user_id: str,
        bid_id: str,
        amount: int,
        auction_id: str | None,
    ) -> HoldItem:
        hold = await self._holds.place_hold(user_id, bid_id, amount, auction_id)
        return HoldItem.from_domain(hold)

    async def resolve_hold(
        self, principal: Principal, bid_id: str, outcome: str
    ) -> ResolveHoldResponse:
        require_admin(principal, "hold resolution")
        resolution = await self._holds.resolve_hold(bid_id, outcome)
        return ResolveHoldResponse(
            hold=HoldItem.from_domain(resolution.hold),
            transaction=(
                TransactionItem.from_domain(resolution.transaction)
                if resolution.transaction is not None
                else None
            ),
            already_resolved=resolution.already_resolved,
        )

    async def credit_purchase(
        self,
        principal: Principal,
        user_id: str,
        amount: int,
        reference_id: str | None,
        description: str | None,
    ) -> TransactionItem:
        require_admin(principal, "purchase credit")
        tx = await self._mutator.credit(
            user_id, amount, reference_id=reference_id, description=description
        )
        return TransactionItem.from_domain(tx)
