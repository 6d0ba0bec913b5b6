"""Ledger replay: rebuild balances from the transaction log.

Replaying an account's transactions in creation order must reproduce its
stored available/blocked balances. Lifetime counters are not derived from the
log: old entries may be pruned by retention policy, counters may not.
"""

import logging
from dataclasses import dataclass

from src.rl_common.enums import TransactionType
from src.rl_ledger.domain.models import Account, Transaction

logger = logging.getLogger(__name__)


@dataclass
class ReplayResult:
    available: int
    blocked: int


def replay(transactions: list[Transaction]) -> ReplayResult:
    available = 0
    blocked = 0
    for tx in transactions:
        if tx.tx_type == TransactionType.PURCHASE:
            available += tx.amount
        elif tx.tx_type == TransactionType.BID_BLOCK:
            available -= tx.amount
            blocked += tx.amount
        elif tx.tx_type == TransactionType.BID_RELEASE:
            blocked -= tx.amount
            available += tx.amount
        elif tx.tx_type == TransactionType.BID_CAPTURE:
            blocked -= tx.amount
        elif tx.tx_type == TransactionType.ADMIN_ADJUSTMENT:
            available += tx.amount  # signed delta
    return ReplayResult(available=available, blocked=blocked)


def verify_account(account: Account, transactions: list[Transaction]) -> list[str]:
    """Return violation strings; empty when the log and the account agree."""
    violations: list[str] = []
    result = replay(transactions)
    if result.available != account.available_balance:
        violations.append(
            f"available mismatch for {account.user_id}: "
            f"replayed {result.available} != stored {account.available_balance}"
        )
    if result.blocked != account.blocked_balance:
        violations.append(
            f"blocked mismatch for {account.user_id}: "
            f"replayed {result.blocked} != stored {account.blocked_balance}"
        )
    if account.lifetime_credited - account.lifetime_debited != account.total_balance:
        violations.append(
            f"lifetime counters for {account.user_id} do not match total: "
            f"credited {account.lifetime_credited} - debited {account.lifetime_debited} "
            f"!= {account.total_balance}"
        )
    for msg in violations:
        logger.error(msg)
    return violations
