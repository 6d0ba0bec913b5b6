"""Admin application service.

Wraps the aggregator, mutator adjustments and account standing for operator
endpoints. System stats are cached in Redis (cache-aside, short TTL); the
cache is best-effort and any Redis failure falls through to the store.
"""

import json
import logging
from dataclasses import asdict
from datetime import timedelta

from redis.exceptions import RedisError

from config.settings import settings
from src.rl_admin.application.schemas import (
    AccountDetailResponse,
    AccountItem,
    StatsResponse,
    VerifyResponse,
)
from src.rl_common.auth import Principal, require_admin
from src.rl_common.redis_client import get_redis
from src.rl_common.response import Pagination
from src.rl_ledger.application.schemas import (
    HoldItem,
    HoldListResponse,
    TransactionItem,
    TransactionListResponse,
)
from src.rl_ledger.domain.aggregator import AdminAggregator
from src.rl_ledger.domain.hold_manager import HoldManager
from src.rl_ledger.domain.models import SystemStats
from src.rl_ledger.domain.mutator import BalanceMutator
from src.rl_ledger.domain.repository import LedgerStoreProtocol
from src.rl_ledger.domain.standing import AccountStanding
from src.rl_ledger.domain.transaction_log import TransactionLog

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = "riplimit:admin:stats"


class AdminService:
    def __init__(self, store: LedgerStoreProtocol) -> None:
        self._log = TransactionLog(store)
        self._aggregator = AdminAggregator(store, self._log)
        self._mutator = BalanceMutator(store)
        self._holds = HoldManager(store, self._mutator)
        self._standing = AccountStanding(store)

    async def get_stats(self, principal: Principal) -> StatsResponse:
        require_admin(principal, "system statistics")
        cached = await self._read_cached_stats()
        if cached is not None:
            return StatsResponse.from_stats(cached)
        stats = await self._aggregator.get_system_stats(principal)
        await self._write_cached_stats(stats)
        return StatsResponse.from_stats(stats)

    async def get_account_detail(
        self, principal: Principal, user_id: str
    ) -> AccountDetailResponse:
        detail = await self._aggregator.get_account_detail(principal, user_id)
        return AccountDetailResponse.from_domain(detail)

    async def list_user_transactions(
        self,
        principal: Principal,
        user_id: str,
        tx_type: str | None,
        page: int,
        page_size: int,
    ) -> TransactionListResponse:
        require_admin(principal, "transaction history")
        page = max(1, page)
        result = await self._log.list(
            user_id, tx_type, limit=page_size, offset=(page - 1) * page_size
        )
        return TransactionListResponse(
            items=[TransactionItem.from_domain(tx) for tx in result.transactions],
            pagination=Pagination.build(page, page_size, result.total),
        )

    async def verify_account(self, principal: Principal, user_id: str) -> VerifyResponse:
        violations = await self._aggregator.verify_account(principal, user_id)
        return VerifyResponse(user_id=user_id, ok=not violations, violations=violations)

    async def adjust(
        self, principal: Principal, user_id: str, delta: int, reason: str
    ) -> TransactionItem:
        tx = await self._mutator.adjust(principal, user_id, delta, reason)
        await self._invalidate_stats()
        return TransactionItem.from_domain(tx)

    async def mark_auction_unpaid(
        self, principal: Principal, user_id: str, auction_id: str
    ) -> AccountItem:
        require_admin(principal, "unpaid auction marking")
        account = await self._standing.mark_auction_unpaid(user_id, auction_id)
        return AccountItem.from_domain(account)

    async def add_strike(self, principal: Principal, user_id: str) -> AccountItem:
        require_admin(principal, "strike recording")
        account = await self._standing.add_strike(user_id)
        return AccountItem.from_domain(account)

    async def list_stale_holds(
        self, principal: Principal, older_than_minutes: int, limit: int
    ) -> HoldListResponse:
        require_admin(principal, "open hold listing")
        holds = await self._holds.list_open_holds(
            older_than=timedelta(minutes=older_than_minutes), limit=limit
        )
        return HoldListResponse(items=[HoldItem.from_domain(h) for h in holds])

    # ------------------------------------------------------------------
    # Stats cache
    # ------------------------------------------------------------------

    async def _read_cached_stats(self) -> SystemStats | None:
        try:
            redis = await get_redis()
            raw = await redis.get(STATS_CACHE_KEY)
        except RedisError:
            logger.warning("stats cache read failed", exc_info=True)
            return None
        if raw is None:
            return None
        return SystemStats(**json.loads(raw))

    async def _write_cached_stats(self, stats: SystemStats) -> None:
        # Degraded results are not cached
        if settings.STATS_CACHE_TTL_SECONDS <= 0 or None in asdict(stats).values():
            return
        try:
            redis = await get_redis()
            await redis.set(
                STATS_CACHE_KEY,
                json.dumps(asdict(stats)),
                ex=settings.STATS_CACHE_TTL_SECONDS,
            )
        except RedisError:
            logger.warning("stats cache write failed", exc_info=True)

    async def _invalidate_stats(self) -> None:
        try:
            redis = await get_redis()
            await redis.delete(STATS_CACHE_KEY)
        except RedisError:
            logger.warning("stats cache invalidation failed", exc_info=True)
