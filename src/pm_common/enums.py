"""Global enums shared by the market, trading and settlement modules."""

from enum import Enum


class MarketStatus(str, Enum):
    CREATED = "CREATED"
    VALIDATED = "VALIDATED"
    RESOLVED = "RESOLVED"
    INVALIDATED = "INVALIDATED"


class MarketKind(str, Enum):
    PAID = "PAID"
    FREE_ENTRY = "FREE_ENTRY"


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class ClaimKind(str, Enum):
    """Resolved markets pay winnings; invalidated markets pay refunds."""
    WINNINGS = "WINNINGS"
    REFUND = "REFUND"


class Role(str, Enum):
    MARKET_CREATOR = "MARKET_CREATOR"
    MARKET_VALIDATOR = "MARKET_VALIDATOR"
    MARKET_RESOLVER = "MARKET_RESOLVER"


class TransferReason(str, Enum):
    # Inbound to custody
    MARKET_SEED = "MARKET_SEED"
    PRIZE_POOL_DEPOSIT = "PRIZE_POOL_DEPOSIT"
    TRADE_PAYMENT = "TRADE_PAYMENT"
    # Outbound from custody
    TRADE_REFUND = "TRADE_REFUND"
    FEE = "FEE"
    FREE_ENTRY_GRANT = "FREE_ENTRY_GRANT"
    WINNINGS_PAYOUT = "WINNINGS_PAYOUT"
    INVALIDATION_REFUND = "INVALIDATION_REFUND"
    ADMIN_LIQUIDITY_REFUND = "ADMIN_LIQUIDITY_REFUND"
    PRIZE_POOL_REFUND = "PRIZE_POOL_REFUND"
    SURPLUS_WITHDRAWAL = "SURPLUS_WITHDRAWAL"


class EventType(str, Enum):
    MARKET_CREATED = "MARKET_CREATED"
    MARKET_VALIDATED = "MARKET_VALIDATED"
    TRADE = "TRADE"
    MARKET_RESOLVED = "MARKET_RESOLVED"
    MARKET_INVALIDATED = "MARKET_INVALIDATED"
    CLAIM = "CLAIM"
    FREE_TOKENS_GRANTED = "FREE_TOKENS_GRANTED"
    SURPLUS_WITHDRAWN = "SURPLUS_WITHDRAWN"
