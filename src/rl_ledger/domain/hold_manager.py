"""HoldManager — the bid subsystem's entry points into the ledger.

Hold lifecycle: OPEN -> RELEASED | CAPTURED. Re-resolving a closed hold is a
no-op success because auction-close workers retry after transient failures.
Abandoned holds stay OPEN; `list_open_holds` lets an external expiry job find
them.
"""

import dataclasses
import logging
from datetime import timedelta

from config.settings import settings
from src.rl_common.datetime_utils import utc_now
from src.rl_common.enums import BidOutcome, HoldStatus
from src.rl_common.errors import (
    DuplicateHoldError,
    InvalidOutcomeError,
    NoMatchingHoldError,
    StoreUnavailableError,
)
from src.rl_ledger.domain.models import Hold, HoldResolution
from src.rl_ledger.domain.mutator import BalanceMutator
from src.rl_ledger.domain.repository import LedgerStoreProtocol

logger = logging.getLogger(__name__)

_RELEASE_REASONS = {
    BidOutcome.LOST: "Outbid",
    BidOutcome.CANCELLED: "Auction cancelled",
}

MAX_OPEN_HOLDS_PAGE = 500
# No hold predates the service; larger cutoffs would overflow datetime.
MAX_HOLD_AGE = timedelta(days=36500)


def _same_hold(hold: Hold, user_id: str, amount: int) -> bool:
    return (
        hold.is_open
        and hold.user_id == user_id
        and hold.original_amount == amount
    )


def parse_outcome(outcome: BidOutcome | str) -> BidOutcome:
    try:
        return BidOutcome(outcome)
    except ValueError:
        raise InvalidOutcomeError(str(outcome)) from None


class HoldManager:
    def __init__(
        self,
        store: LedgerStoreProtocol,
        mutator: BalanceMutator | None = None,
        retry_attempts: int | None = None,
    ) -> None:
        self._store = store
        self._mutator = mutator or BalanceMutator(store)
        self._retry_attempts = (
            settings.HOLD_RETRY_ATTEMPTS if retry_attempts is None else retry_attempts
        )

    async def place_hold(
        self,
        user_id: str,
        bid_id: str,
        amount: int,
        auction_id: str | None = None,
    ) -> Hold:
        """Block `amount` for `bid_id`.

        A store failure leaves the outcome unknown, so before every retry the
        hold is re-queried: if the earlier attempt did commit, that hold is
        returned instead of blocking twice. The same check runs when a caller
        retries after a failed call and hits its own open hold.
        """
        attempt = 0
        while True:
            try:
                _, hold = await self._mutator.open_hold(user_id, amount, bid_id, auction_id)
                return hold
            except DuplicateHoldError:
                existing = await self._store.find_latest_hold(bid_id)
                if existing is not None and _same_hold(existing, user_id, amount):
                    logger.info("place_hold bid=%s: reusing open hold %d", bid_id, existing.id)
                    return existing
                raise
            except StoreUnavailableError:
                existing = await self._find_after_failure(bid_id)
                if existing is not None and _same_hold(existing, user_id, amount):
                    logger.warning(
                        "place_hold bid=%s: store error after commit, reusing hold %d",
                        bid_id, existing.id,
                    )
                    return existing
                if attempt >= self._retry_attempts:
                    raise
                attempt += 1
                logger.warning(
                    "place_hold bid=%s: store unavailable, retry %d/%d",
                    bid_id, attempt, self._retry_attempts,
                )

    async def _find_after_failure(self, bid_id: str) -> Hold | None:
        try:
            return await self._store.find_latest_hold(bid_id)
        except StoreUnavailableError:
            logger.warning("place_hold bid=%s: re-query failed, state unknown", bid_id)
            return None

    async def resolve_hold(self, bid_id: str, outcome: BidOutcome | str) -> HoldResolution:
        """Capture (won) or release (lost/cancelled) the bid's open hold."""
        parsed = parse_outcome(outcome)
        hold = await self._store.find_latest_hold(bid_id)
        if hold is None:
            raise NoMatchingHoldError(bid_id)
        if not hold.is_open:
            logger.info("resolve_hold bid=%s already %s, no-op", bid_id, hold.status.value)
            return HoldResolution(hold=hold, transaction=None, already_resolved=True)

        try:
            if parsed == BidOutcome.WON:
                tx = await self._mutator.capture(hold.user_id, hold.amount, bid_id)
                closed = HoldStatus.CAPTURED
            else:
                tx = await self._mutator.release(
                    hold.user_id, hold.amount, bid_id, reason=_RELEASE_REASONS[parsed]
                )
                closed = HoldStatus.RELEASED
        except NoMatchingHoldError:
            # Another resolver closed it between our read and our write
            latest = await self._store.find_latest_hold(bid_id)
            if latest is not None and latest.id == hold.id and not latest.is_open:
                return HoldResolution(hold=latest, transaction=None, already_resolved=True)
            raise

        resolved = dataclasses.replace(
            hold, amount=0, status=closed, resolved_at=tx.created_at
        )
        return HoldResolution(hold=resolved, transaction=tx)

    async def get_hold(self, bid_id: str) -> Hold:
        hold = await self._store.find_latest_hold(bid_id)
        if hold is None:
            raise NoMatchingHoldError(bid_id)
        return hold

    async def list_open_holds(
        self,
        user_id: str | None = None,
        older_than: timedelta | None = None,
        limit: int = 100,
    ) -> list[Hold]:
        created_before = None
        if older_than is not None:
            created_before = utc_now() - min(older_than, MAX_HOLD_AGE)
        limit = max(1, min(limit, MAX_OPEN_HOLDS_PAGE))
        return await self._store.list_open_holds(user_id, created_before, limit)
