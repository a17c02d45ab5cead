"""TradingEngine: LMSR quotes and buy/sell execution against one market.

Execution order is check → quote → validate → mutate. Everything that can
fail (state guards, slippage, position size, solvency, math domain) runs on
projected values first; the mutation block at the end cannot raise, so a
rejected trade leaves market and ledger untouched.

Callers serialize operations per market (see MarketApplicationService).
"""

import logging
from datetime import datetime

from src.pm_account.domain.ledger import PortfolioLedger
from src.pm_common.enums import TradeSide
from src.pm_common.errors import (
    InsufficientSharesError,
    InvalidQuantityError,
    SlippageExceededError,
)
from src.pm_common.fixed_point import div_scaled, mul_scaled
from src.pm_common.id_generator import generate_id
from src.pm_market.domain.lifecycle import check_option, check_tradable
from src.pm_market.domain.models import Market
from src.pm_pricing.domain.lmsr import cost, option_prices
from src.pm_trading.domain.fee import buy_total, sell_net
from src.pm_trading.domain.models import TradeQuote, TradeRecord
from src.pm_trading.domain.solvency import check_solvency

logger = logging.getLogger(__name__)


class TradingEngine:
    def __init__(self, fee_bps: int, payout_per_share: int) -> None:
        if not 0 <= fee_bps < 10000:
            raise ValueError(f"fee_bps must be in [0, 10000), got {fee_bps}")
        if payout_per_share <= 0:
            raise ValueError("payout_per_share must be positive")
        self.fee_bps = fee_bps
        self.payout_per_share = payout_per_share

    # ------------------------------------------------------------------
    # Quotes (read-only)
    # ------------------------------------------------------------------

    def _shares_after(self, market: Market, option_index: int, delta: int) -> list[int]:
        shares = market.share_vector
        shares[option_index] += delta
        return shares

    def _quote(
        self,
        market: Market,
        side: TradeSide,
        option_index: int,
        quantity: int,
        raw: int,
        fee: int,
        total: int,
        shares_after: list[int],
    ) -> TradeQuote:
        prices_after = option_prices(
            shares_after, market.liquidity_parameter, self.payout_per_share
        )
        return TradeQuote(
            side=side,
            option_index=option_index,
            quantity=quantity,
            raw_amount=raw,
            fee=fee,
            total_amount=total,
            average_price=div_scaled(total, quantity),
            marginal_price_after=prices_after[option_index],
            prices_after=tuple(prices_after),
            shares_after=tuple(shares_after),
        )

    def quote_buy(self, market: Market, option_index: int, quantity: int) -> TradeQuote:
        """raw = payout * (C(q + quantity·e_i) - C(q)), rounded up; fee on top."""
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        check_option(market, option_index)
        b = market.liquidity_parameter
        shares_after = self._shares_after(market, option_index, quantity)
        delta = max(cost(shares_after, b) - cost(market.share_vector, b), 0)
        if delta == 0:
            raise InvalidQuantityError(quantity, "is below the smallest priced size")
        raw = mul_scaled(delta, self.payout_per_share, round_up=True)
        fee, total = buy_total(raw, self.fee_bps)
        logger.debug(
            "quote_buy market=%s option=%d qty=%d raw=%d fee=%d",
            market.id, option_index, quantity, raw, fee,
        )
        return self._quote(market, TradeSide.BUY, option_index, quantity, raw, fee, total,
                           shares_after)

    def quote_sell(self, market: Market, option_index: int, quantity: int) -> TradeQuote:
        """raw = payout * (C(q) - C(q - quantity·e_i)), rounded down; fee deducted."""
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        check_option(market, option_index)
        outstanding = market.options[option_index].shares
        if outstanding < quantity:
            raise InsufficientSharesError(quantity, outstanding)
        b = market.liquidity_parameter
        shares_after = self._shares_after(market, option_index, -quantity)
        delta = max(cost(market.share_vector, b) - cost(shares_after, b), 0)
        raw = mul_scaled(delta, self.payout_per_share)
        fee, net = sell_net(raw, self.fee_bps)
        logger.debug(
            "quote_sell market=%s option=%d qty=%d raw=%d fee=%d",
            market.id, option_index, quantity, raw, fee,
        )
        return self._quote(market, TradeSide.SELL, option_index, quantity, raw, fee, net,
                           shares_after)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _apply(self, market: Market, quote: TradeQuote, user_liquidity: int) -> None:
        option = market.options[quote.option_index]
        option.shares = quote.shares_after[quote.option_index]
        option.volume += quote.quantity
        for opt, price in zip(market.options, quote.prices_after):
            opt.price = price
        market.user_liquidity = user_liquidity
        market.total_fees += quote.fee

    def execute_buy(
        self,
        market: Market,
        ledger: PortfolioLedger,
        trader: str,
        option_index: int,
        quantity: int,
        max_cost: int,
        now: datetime,
    ) -> TradeRecord:
        check_tradable(market, now)
        quote = self.quote_buy(market, option_index, quantity)
        if quote.total_amount > max_cost:
            raise SlippageExceededError(quote.total_amount, max_cost)

        user_liquidity = market.user_liquidity + quote.raw_amount
        check_solvency(
            market.id, user_liquidity, market.admin_initial_liquidity,
            quote.shares_after, self.payout_per_share,
            reconciliation_adjustment=market.reconciliation_adjustment,
        )

        self._apply(market, quote, user_liquidity)
        ledger.record_buy(trader, market.id, option_index, quantity, quote.total_amount, now)

        logger.info(
            "BUY market=%s trader=%s option=%d qty=%d total=%d",
            market.id, trader, option_index, quantity, quote.total_amount,
        )
        return self._record(market, trader, quote, realized_pnl=0, adjustment=0, now=now)

    def execute_sell(
        self,
        market: Market,
        ledger: PortfolioLedger,
        trader: str,
        option_index: int,
        quantity: int,
        min_refund: int,
        now: datetime,
    ) -> TradeRecord:
        check_tradable(market, now)
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        held = ledger.held_quantity(trader, market.id, option_index)
        if held < quantity:
            raise InsufficientSharesError(quantity, held)
        quote = self.quote_sell(market, option_index, quantity)
        if quote.total_amount < min_refund:
            raise SlippageExceededError(quote.total_amount, min_refund)

        user_liquidity = market.user_liquidity - quote.raw_amount
        adjustment = 0
        if user_liquidity < 0:
            adjustment = -user_liquidity
            user_liquidity = 0
            logger.warning(
                "Refund exceeds tracked user liquidity: market=%s refund=%d tracked=%d "
                "adjustment=%d",
                market.id, quote.raw_amount, market.user_liquidity, adjustment,
            )
        check_solvency(
            market.id, user_liquidity, market.admin_initial_liquidity,
            quote.shares_after, self.payout_per_share,
            reconciliation_adjustment=market.reconciliation_adjustment + adjustment,
        )

        self._apply(market, quote, user_liquidity)
        market.reconciliation_adjustment += adjustment
        realized = ledger.record_sell(
            trader, market.id, option_index, quantity, quote.total_amount, now
        )

        logger.info(
            "SELL market=%s trader=%s option=%d qty=%d net=%d realized=%d",
            market.id, trader, option_index, quantity, quote.total_amount, realized,
        )
        return self._record(market, trader, quote, realized_pnl=realized,
                            adjustment=adjustment, now=now)

    def _record(
        self,
        market: Market,
        trader: str,
        quote: TradeQuote,
        realized_pnl: int,
        adjustment: int,
        now: datetime,
    ) -> TradeRecord:
        return TradeRecord(
            trade_id=generate_id("trd_"),
            market_id=market.id,
            trader=trader,
            side=quote.side,
            option_index=quote.option_index,
            quantity=quote.quantity,
            raw_amount=quote.raw_amount,
            fee=quote.fee,
            total_amount=quote.total_amount,
            trade_price=quote.average_price,
            marginal_price_after=quote.marginal_price_after,
            realized_pnl=realized_pnl,
            liquidity_adjustment=adjustment,
            executed_at=now,
        )
