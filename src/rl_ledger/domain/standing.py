"""AccountStanding — unpaid auctions and strikes.

A user who wins an auction and does not pay gets the auction recorded as
unpaid, which blocks new holds until it is paid (captured). The auction-close
job also records a strike per unpaid auction; at MAX_STRIKES the account is
blocked outright.
Neither operation touches balances.
"""

import logging

from src.rl_common.datetime_utils import utc_now
from src.rl_ledger.domain.models import Account
from src.rl_ledger.domain.repository import LedgerStoreProtocol, LedgerUnitOfWork

logger = logging.getLogger(__name__)

MAX_STRIKES = 3


class AccountStanding:
    def __init__(self, store: LedgerStoreProtocol) -> None:
        self._store = store

    async def mark_auction_unpaid(self, user_id: str, auction_id: str) -> Account:
        async def _apply(uow: LedgerUnitOfWork) -> Account:
            account = uow.account
            if auction_id not in account.unpaid_auction_ids:
                account.unpaid_auction_ids = [*account.unpaid_auction_ids, auction_id]
                account.updated_at = utc_now()
                await uow.save_account(account)
            return account

        account = await self._store.run_atomic(user_id, _apply)
        logger.info(
            "auction unpaid user=%s auction=%s unpaid=%d",
            user_id, auction_id, len(account.unpaid_auction_ids),
        )
        return account

    async def add_strike(self, user_id: str) -> Account:
        async def _apply(uow: LedgerUnitOfWork) -> Account:
            account = uow.account
            account.strikes += 1
            if account.strikes >= MAX_STRIKES and not account.is_blocked:
                account.is_blocked = True
                account.block_reason = f"Too many unpaid auctions ({MAX_STRIKES} strikes)"
            account.updated_at = utc_now()
            await uow.save_account(account)
            return account

        account = await self._store.run_atomic(user_id, _apply)
        if account.is_blocked:
            logger.warning("user=%s blocked at %d strikes", user_id, account.strikes)
        return account
