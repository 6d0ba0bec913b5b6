"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Account / balance
  3xxx: Hold
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class AuthorizationError(AppError):
    def __init__(self, action: str = "this operation") -> None:
        super().__init__(1002, f"Admin role required for {action}", 403)


# --- 2xxx: Account / balance ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        self.shortfall = max(required - available, 0)
        super().__init__(
            2001,
            f"Insufficient RipLimit. Required: {required}, Available: {available}",
            400,
        )


class AccountNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"RipLimit account not found for user {user_id}", 404)


class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, f"Invalid amount: {detail}", 400)


class InvalidTransactionTypeError(AppError):
    def __init__(self, tx_type: str) -> None:
        super().__init__(2004, f"Transaction type not allowed here: {tx_type}", 400)


class AccountBlockedError(AppError):
    def __init__(self, user_id: str, reason: str | None) -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(2005, f"RipLimit account {user_id} is blocked{detail}", 403)


class UnpaidAuctionsError(AppError):
    def __init__(self, auction_ids: list[str]) -> None:
        super().__init__(
            2006,
            f"Pay for won auctions before bidding again: {', '.join(auction_ids)}",
            422,
        )


class MissingReasonError(AppError):
    def __init__(self) -> None:
        super().__init__(2007, "A reason is required for balance adjustments", 400)


# --- 3xxx: Hold ---

class DuplicateHoldError(AppError):
    def __init__(self, bid_id: str) -> None:
        super().__init__(3001, f"An open hold already exists for bid {bid_id}", 409)


class NoMatchingHoldError(AppError):
    def __init__(self, bid_id: str) -> None:
        super().__init__(3002, f"No open hold found for bid {bid_id}", 404)


class InvalidOutcomeError(AppError):
    def __init__(self, outcome: str) -> None:
        super().__init__(3003, f"Unknown bid outcome: {outcome}", 400)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class StoreUnavailableError(AppError):
    """Ledger store call failed or timed out; mutation state is unknown."""

    def __init__(self, detail: str = "Ledger store unavailable") -> None:
        super().__init__(9003, detail, 503)
