from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import TradeSide


@dataclass(frozen=True)
class TradeQuote:
    """Price/fee breakdown for a prospective trade. Amounts in scaled funds.

    BUY:  total_amount = raw_amount + fee   (what the trader pays)
    SELL: total_amount = raw_amount - fee   (what the trader receives)
    """

    side: TradeSide
    option_index: int
    quantity: int
    raw_amount: int
    fee: int
    total_amount: int
    average_price: int            # total_amount / quantity, the canonical trade price
    marginal_price_after: int     # option price after the trade, payout units
    prices_after: tuple[int, ...]
    shares_after: tuple[int, ...]


@dataclass(frozen=True)
class TradeRecord:
    """Executed trade, as emitted to the event sink."""

    trade_id: str
    market_id: str
    trader: str
    side: TradeSide
    option_index: int
    quantity: int
    raw_amount: int
    fee: int
    total_amount: int
    trade_price: int
    marginal_price_after: int
    realized_pnl: int             # sells only; 0 for buys
    liquidity_adjustment: int     # refund excess absorbed by the zero floor
    executed_at: datetime
