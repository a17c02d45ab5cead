"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Access control
  2xxx: Position / portfolio
  3xxx: Market lifecycle
  4xxx: Trade
  5xxx: Settlement
  8xxx: Fixed-point math domain
  9xxx: System / internal invariants

Errors flagged ``internal`` mean the engine's own math or bookkeeping is
wrong, not that the request was bad.
"""


class AppError(Exception):
    """Base application error."""

    internal: bool = False

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


class InternalInvariantError(AppError):
    """An internal consistency check failed."""

    internal = True

    def __init__(self, detail: str, code: int = 9002) -> None:
        super().__init__(code, f"Internal invariant violated: {detail}", 500)


# --- 1xxx: Access control ---

class PermissionDeniedError(AppError):
    def __init__(self, caller: str, role: str) -> None:
        super().__init__(1001, f"Caller {caller} lacks role {role}", 403)


# --- 2xxx: Position ---

class InsufficientSharesError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient shares: required {required}, available {available}",
            422,
        )


class NothingToClaimError(AppError):
    def __init__(self, market_id: str, trader: str) -> None:
        super().__init__(2002, f"No position to claim for {trader} in market {market_id}", 422)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketNotValidatedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3002, f"Market is not validated: {market_id}", 422)


class MarketClosedError(AppError):
    def __init__(self, market_id: str, detail: str = "trading is closed") -> None:
        super().__init__(3003, f"Market {market_id}: {detail}", 422)


class MarketNotOpenError(AppError):
    def __init__(self, market_id: str, detail: str) -> None:
        super().__init__(3004, f"Market {market_id}: {detail}", 422)


class AlreadyResolvedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3005, f"Market already resolved: {market_id}", 409)


class AlreadyInvalidatedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3006, f"Market already invalidated: {market_id}", 409)


class InvalidOptionError(AppError):
    def __init__(self, option_index: int, option_count: int) -> None:
        super().__init__(
            3007, f"Option index {option_index} out of range (0..{option_count - 1})", 422
        )


class InvalidMarketParamsError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3008, f"Invalid market parameters: {detail}", 422)


class FreeEntryUnavailableError(AppError):
    def __init__(self, market_id: str, detail: str) -> None:
        super().__init__(3009, f"Free entry unavailable for {market_id}: {detail}", 422)


# --- 4xxx: Trade ---

class SlippageExceededError(AppError):
    def __init__(self, amount: int, limit: int) -> None:
        super().__init__(4001, f"Slippage exceeded: amount {amount}, limit {limit}", 422)


class InsufficientLiquidityError(AppError):
    def __init__(self, available: int, required: int) -> None:
        super().__init__(
            4002,
            f"Insufficient liquidity: available {available}, worst-case payout {required}",
            422,
        )


class InvalidQuantityError(AppError):
    def __init__(self, quantity: int, detail: str = "must be positive") -> None:
        super().__init__(4003, f"Quantity {detail}, got {quantity}", 422)


# --- 5xxx: Settlement ---

class AlreadyClaimedError(AppError):
    def __init__(self, market_id: str, account: str) -> None:
        super().__init__(5001, f"Already claimed: {account} in market {market_id}", 409)


# --- 8xxx: Fixed-point math ---

class OutOfRangeError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(8001, f"Math input out of range: {detail}", 422)


class ArithmeticOverflowError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(8002, f"Arithmetic overflow: {detail}", 422)


class DivisionByZeroError(AppError):
    def __init__(self, detail: str = "division by zero") -> None:
        super().__init__(8003, detail, 422)


# --- 9xxx: System ---

class PriceInvariantViolatedError(InternalInvariantError):
    def __init__(self, price_sum: int, expected: int) -> None:
        super().__init__(f"price sum {price_sum} != {expected}", code=9003)
