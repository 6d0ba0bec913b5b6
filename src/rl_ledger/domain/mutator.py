"""BalanceMutator — the only code path allowed to change an account's balances.

Every operation runs as one `store.run_atomic(user_id, ...)` unit: the
account is read and locked, checked, written, and the transaction log entry
(plus any hold change) is appended before the unit commits. A failed check
raises before anything is staged, so the account stays untouched.
"""

import logging

from src.rl_common.auth import Principal, require_admin
from src.rl_common.datetime_utils import utc_now
from src.rl_common.enums import HoldStatus, TransactionType
from src.rl_common.errors import (
    AccountBlockedError,
    DuplicateHoldError,
    InsufficientBalanceError,
    InternalError,
    InvalidAmountError,
    InvalidTransactionTypeError,
    MissingReasonError,
    NoMatchingHoldError,
    UnpaidAuctionsError,
)
from src.rl_common.id_generator import generate_id
from src.rl_common.units import MAX_AMOUNT
from src.rl_ledger.domain.models import Hold, Transaction
from src.rl_ledger.domain.repository import LedgerStoreProtocol, LedgerUnitOfWork

logger = logging.getLogger(__name__)

CREDIT_TYPES = frozenset({TransactionType.PURCHASE})
DEFAULT_RELEASE_REASON = "Outbid"


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise InvalidAmountError(f"amount must be positive, got {amount}")
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(f"amount exceeds {MAX_AMOUNT}, got {amount}")


async def _record(
    uow: LedgerUnitOfWork,
    tx_type: TransactionType,
    amount: int,
    **fields: str | None,
) -> Transaction:
    """Persist the mutated account and append the matching log entry."""
    account = uow.account
    if account.available_balance < 0 or account.blocked_balance < 0:
        raise InternalError(
            f"Refusing to write negative balance for {account.user_id}: "
            f"available={account.available_balance} blocked={account.blocked_balance}"
        )
    now = utc_now()
    account.updated_at = now
    await uow.save_account(account)
    tx = Transaction(
        id=generate_id(),
        user_id=account.user_id,
        tx_type=tx_type,
        amount=amount,
        available_after=account.available_balance,
        blocked_after=account.blocked_balance,
        created_at=now,
        **fields,
    )
    await uow.append_transaction(tx)
    return tx


async def _take_from_hold(
    uow: LedgerUnitOfWork,
    user_id: str,
    amount: int,
    bid_id: str,
    closed_status: HoldStatus,
) -> Hold:
    hold = await uow.get_open_hold(bid_id)
    if hold is None or hold.user_id != user_id or hold.amount < amount:
        raise NoMatchingHoldError(bid_id)
    if uow.account.blocked_balance < amount:
        raise InternalError(
            f"Hold {bid_id} exceeds blocked balance of {user_id}: "
            f"hold={hold.amount} blocked={uow.account.blocked_balance}"
        )
    hold.amount -= amount
    if hold.amount == 0:
        hold.status = closed_status
        hold.resolved_at = utc_now()
    await uow.update_hold(hold)
    return hold


class BalanceMutator:
    def __init__(self, store: LedgerStoreProtocol) -> None:
        self._store = store

    async def credit(
        self,
        user_id: str,
        amount: int,
        tx_type: TransactionType | str = TransactionType.PURCHASE,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> Transaction:
        """Add `amount` to available balance (e.g. a verified purchase)."""
        _require_positive(amount)
        try:
            tx_type = TransactionType(tx_type)
        except ValueError:
            raise InvalidTransactionTypeError(str(tx_type)) from None
        if tx_type not in CREDIT_TYPES:
            raise InvalidTransactionTypeError(tx_type.value)

        async def _apply(uow: LedgerUnitOfWork) -> Transaction:
            account = uow.account
            account.available_balance += amount
            account.lifetime_credited += amount
            return await _record(
                uow,
                tx_type,
                amount,
                reference_id=reference_id,
                description=description or "RipLimit purchase",
            )

        tx = await self._store.run_atomic(user_id, _apply)
        logger.info(
            "credit user=%s amount=%d available=%d tx=%d",
            user_id, amount, tx.available_after, tx.id,
        )
        return tx

    async def block(
        self,
        user_id: str,
        amount: int,
        bid_id: str,
        auction_id: str | None = None,
    ) -> Transaction:
        """Move `amount` from available to blocked and open a hold for `bid_id`."""
        tx, _ = await self.open_hold(user_id, amount, bid_id, auction_id)
        return tx

    async def open_hold(
        self,
        user_id: str,
        amount: int,
        bid_id: str,
        auction_id: str | None = None,
    ) -> tuple[Transaction, Hold]:
        """Same as `block`, but also returns the hold inserted in the same unit."""
        _require_positive(amount)

        async def _apply(uow: LedgerUnitOfWork) -> tuple[Transaction, Hold]:
            if await uow.get_open_hold(bid_id) is not None:
                raise DuplicateHoldError(bid_id)
            account = uow.account
            if account.is_blocked:
                raise AccountBlockedError(user_id, account.block_reason)
            if account.has_unpaid_auctions:
                raise UnpaidAuctionsError(account.unpaid_auction_ids)
            if account.available_balance < amount:
                raise InsufficientBalanceError(amount, account.available_balance)

            account.available_balance -= amount
            account.blocked_balance += amount
            hold = Hold(
                id=generate_id(),
                bid_id=bid_id,
                user_id=user_id,
                amount=amount,
                original_amount=amount,
                auction_id=auction_id,
                created_at=utc_now(),
            )
            await uow.insert_hold(hold)
            tx = await _record(
                uow,
                TransactionType.BID_BLOCK,
                amount,
                related_bid_id=bid_id,
                related_auction_id=auction_id,
                description=f"RipLimit blocked for bid {bid_id}",
            )
            return tx, hold

        tx, hold = await self._store.run_atomic(user_id, _apply)
        logger.info(
            "bid_block user=%s bid=%s amount=%d available=%d blocked=%d",
            user_id, bid_id, amount, tx.available_after, tx.blocked_after,
        )
        return tx, hold

    async def release(
        self,
        user_id: str,
        amount: int,
        bid_id: str,
        reason: str | None = None,
    ) -> Transaction:
        """Return `amount` of the bid's hold to available balance."""
        _require_positive(amount)

        async def _apply(uow: LedgerUnitOfWork) -> Transaction:
            hold = await _take_from_hold(uow, user_id, amount, bid_id, HoldStatus.RELEASED)
            account = uow.account
            account.blocked_balance -= amount
            account.available_balance += amount
            return await _record(
                uow,
                TransactionType.BID_RELEASE,
                amount,
                related_bid_id=bid_id,
                related_auction_id=hold.auction_id,
                description=f"RipLimit released: {reason or DEFAULT_RELEASE_REASON}",
            )

        tx = await self._store.run_atomic(user_id, _apply)
        logger.info(
            "bid_release user=%s bid=%s amount=%d available=%d blocked=%d",
            user_id, bid_id, amount, tx.available_after, tx.blocked_after,
        )
        return tx

    async def capture(self, user_id: str, amount: int, bid_id: str) -> Transaction:
        """Spend `amount` of the bid's hold (bid won). Funds leave the account."""
        _require_positive(amount)

        async def _apply(uow: LedgerUnitOfWork) -> Transaction:
            hold = await _take_from_hold(uow, user_id, amount, bid_id, HoldStatus.CAPTURED)
            account = uow.account
            account.blocked_balance -= amount
            account.lifetime_debited += amount
            if hold.auction_id and hold.auction_id in account.unpaid_auction_ids:
                account.unpaid_auction_ids = [
                    a for a in account.unpaid_auction_ids if a != hold.auction_id
                ]
            return await _record(
                uow,
                TransactionType.BID_CAPTURE,
                amount,
                related_bid_id=bid_id,
                related_auction_id=hold.auction_id,
                description="RipLimit used for auction payment",
            )

        tx = await self._store.run_atomic(user_id, _apply)
        logger.info(
            "bid_capture user=%s bid=%s amount=%d blocked=%d",
            user_id, bid_id, amount, tx.blocked_after,
        )
        return tx

    async def adjust(
        self,
        principal: Principal,
        user_id: str,
        delta: int,
        reason: str,
    ) -> Transaction:
        """Admin correction applied directly to available balance.

        The balance may not go negative; such a delta is rejected rather than
        clamped so the operator sees exactly what was applied.
        """
        require_admin(principal, "balance adjustment")
        if delta == 0:
            raise InvalidAmountError("adjustment delta must be non-zero")
        if abs(delta) > MAX_AMOUNT:
            raise InvalidAmountError(f"adjustment exceeds {MAX_AMOUNT}, got {delta}")
        if not reason or not reason.strip():
            raise MissingReasonError()

        async def _apply(uow: LedgerUnitOfWork) -> Transaction:
            account = uow.account
            if account.available_balance + delta < 0:
                raise InvalidAmountError(
                    f"adjustment of {delta} would drive available balance "
                    f"{account.available_balance} negative"
                )
            account.available_balance += delta
            if delta > 0:
                account.lifetime_credited += delta
            else:
                account.lifetime_debited += -delta
            return await _record(
                uow,
                TransactionType.ADMIN_ADJUSTMENT,
                delta,
                reason=reason.strip(),
                actor_id=principal.user_id,
                description=f"Admin adjustment: {reason.strip()}",
            )

        tx = await self._store.run_atomic(user_id, _apply)
        logger.info(
            "admin_adjustment user=%s delta=%d actor=%s available=%d",
            user_id, delta, principal.user_id, tx.available_after,
        )
        return tx
