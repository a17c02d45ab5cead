"""Tests for TradingEngine quotes and execution."""

from datetime import datetime, timedelta, timezone

import pytest

from src.pm_account.domain.ledger import PortfolioLedger
from src.pm_common.enums import MarketKind, MarketStatus, TradeSide
from src.pm_common.errors import (
    InsufficientLiquidityError,
    InsufficientSharesError,
    InvalidOptionError,
    InvalidQuantityError,
    MarketClosedError,
    MarketNotValidatedError,
    SlippageExceededError,
)
from src.pm_common.fixed_point import SCALE
from src.pm_market.domain.models import Market, MarketOption
from src.pm_pricing.domain.lmsr import max_subsidy_loss, option_prices
from src.pm_trading.domain.fee import calc_fee
from src.pm_trading.engine.engine import TradingEngine

PAYOUT = 100 * SCALE
B = 10 * SCALE
NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)
NO_LIMIT = 10**9 * SCALE


def _market(option_count: int = 2, validated: bool = True, admin: int | None = None) -> Market:
    prices = option_prices([0] * option_count, B, PAYOUT)
    return Market(
        id="mkt_test",
        question="Will it rain?",
        creator="creator",
        kind=MarketKind.PAID,
        options=[MarketOption(label=f"opt{i}", price=p) for i, p in enumerate(prices)],
        liquidity_parameter=B,
        admin_initial_liquidity=(
            max_subsidy_loss(B, option_count, PAYOUT) if admin is None else admin
        ),
        end_time=NOW + timedelta(days=1),
        created_at=NOW,
        status=MarketStatus.VALIDATED if validated else MarketStatus.CREATED,
        validated=validated,
    )


@pytest.fixture
def engine() -> TradingEngine:
    return TradingEngine(fee_bps=200, payout_per_share=PAYOUT)


@pytest.fixture
def ledger() -> PortfolioLedger:
    return PortfolioLedger()


class TestEngineConfig:
    def test_rejects_full_fee(self) -> None:
        with pytest.raises(ValueError):
            TradingEngine(fee_bps=10000, payout_per_share=PAYOUT)

    def test_rejects_zero_payout(self) -> None:
        with pytest.raises(ValueError):
            TradingEngine(fee_bps=0, payout_per_share=0)


class TestQuoteBuy:
    def test_first_share_near_even_odds(self, engine: TradingEngine) -> None:
        quote = engine.quote_buy(_market(), 0, SCALE)
        # 100 * 10 * ln((e^0.1 + 1) / 2) ~= 51.25 tokens
        assert 51 * SCALE < quote.raw_amount < 52 * SCALE
        assert quote.fee == calc_fee(quote.raw_amount, 200)
        assert quote.total_amount == quote.raw_amount + quote.fee
        assert quote.side == TradeSide.BUY

    def test_average_price_is_total_over_quantity(self, engine: TradingEngine) -> None:
        quote = engine.quote_buy(_market(), 1, 4 * SCALE)
        assert quote.average_price == quote.total_amount * SCALE // (4 * SCALE)

    def test_marginal_price_after_rises(self, engine: TradingEngine) -> None:
        quote = engine.quote_buy(_market(), 0, SCALE)
        assert quote.marginal_price_after > PAYOUT // 2
        assert quote.prices_after[1] < PAYOUT // 2

    def test_quote_leaves_market_untouched(self, engine: TradingEngine) -> None:
        market = _market()
        engine.quote_buy(market, 0, 5 * SCALE)
        assert market.share_vector == [0, 0]
        assert [o.price for o in market.options] == [PAYOUT // 2] * 2

    def test_larger_order_costs_more_per_share(self, engine: TradingEngine) -> None:
        small = engine.quote_buy(_market(), 0, SCALE)
        large = engine.quote_buy(_market(), 0, 10 * SCALE)
        assert large.average_price > small.average_price

    def test_invalid_option(self, engine: TradingEngine) -> None:
        with pytest.raises(InvalidOptionError):
            engine.quote_buy(_market(), 2, SCALE)

    def test_zero_quantity(self, engine: TradingEngine) -> None:
        with pytest.raises(InvalidQuantityError):
            engine.quote_buy(_market(), 0, 0)


class TestQuoteSell:
    def test_more_than_outstanding(self, engine: TradingEngine) -> None:
        with pytest.raises(InsufficientSharesError):
            engine.quote_sell(_market(), 0, SCALE)

    def test_sell_after_buy_fee_deducted(self, engine: TradingEngine) -> None:
        market = _market()
        market.options[0].shares = 3 * SCALE
        quote = engine.quote_sell(market, 0, SCALE)
        assert quote.total_amount == quote.raw_amount - quote.fee
        assert quote.side == TradeSide.SELL


class TestExecuteBuy:
    def test_updates_market_and_ledger(
        self, engine: TradingEngine, ledger: PortfolioLedger
    ) -> None:
        market = _market()
        record = engine.execute_buy(market, ledger, "alice", 0, 2 * SCALE, NO_LIMIT, NOW)

        assert market.options[0].shares == 2 * SCALE
        assert market.options[0].volume == 2 * SCALE
        assert market.user_liquidity == record.raw_amount
        assert market.total_fees == record.fee
        assert [o.price for o in market.options] == option_prices(
            market.share_vector, B, PAYOUT
        )
        pos = ledger.position("alice", market.id, 0)
        assert pos is not None
        assert pos.quantity == 2 * SCALE
        assert pos.cost_basis == record.total_amount
        assert record.trade_id.startswith("trd_")
        assert record.realized_pnl == 0

    def test_slippage_rejected_without_side_effects(
        self, engine: TradingEngine, ledger: PortfolioLedger
    ) -> None:
        market = _market()
        quote = engine.quote_buy(market, 0, SCALE)
        with pytest.raises(SlippageExceededError):
            engine.execute_buy(market, ledger, "alice", 0, SCALE, quote.total_amount - 1, NOW)
        assert market.share_vector == [0, 0]
        assert market.user_liquidity == 0
        assert ledger.held_quantity("alice", market.id, 0) == 0

    def test_exact_max_cost_accepted(
        self, engine: TradingEngine, ledger: PortfolioLedger
    ) -> None:
        market = _market()
        quote = engine.quote_buy(market, 0, SCALE)
        record = engine.execute_buy(market, ledger, "alice", 0, SCALE, quote.total_amount, NOW)
        assert record.total_amount == quote.total_amount

    def test_unvalidated_market(self, engine: TradingEngine, ledger: PortfolioLedger) -> None:
        with pytest.raises(MarketNotValidatedError):
            engine.execute_buy(_market(validated=False), ledger, "alice", 0, SCALE, NO_LIMIT, NOW)

    def test_after_end_time(self, engine: TradingEngine, ledger: PortfolioLedger) -> None:
        market = _market()
        with pytest.raises(MarketClosedError):
            engine.execute_buy(market, ledger, "alice", 0, SCALE, NO_LIMIT, market.end_time)

    def test_resolved_market(self, engine: TradingEngine, ledger: PortfolioLedger) -> None:
        market = _market()
        market.status = MarketStatus.RESOLVED
        with pytest.raises(MarketClosedError):
            engine.execute_buy(market, ledger, "alice", 0, SCALE, NO_LIMIT, NOW)

    def test_insolvent_market_rejects_buy(
        self, engine: TradingEngine, ledger: PortfolioLedger
    ) -> None:
        market = _market(admin=0)
        with pytest.raises(InsufficientLiquidityError):
            engine.execute_buy(market, ledger, "alice", 0, SCALE, NO_LIMIT, NOW)
        assert market.share_vector == [0, 0]
        assert market.user_liquidity == 0

    def test_seeded_market_stays_solvent(
        self, engine: TradingEngine, ledger: PortfolioLedger
    ) -> None:
        market = _market()
        for _ in range(5):
            engine.execute_buy(market, ledger, "whale", 0, 20 * SCALE, NO_LIMIT, NOW)
        assert market.total_collateral >= market.options[0].shares * PAYOUT // SCALE


class TestExecuteSell:
    def test_requires_held_shares(self, engine: TradingEngine, ledger: PortfolioLedger) -> None:
        market = _market()
        engine.execute_buy(market, ledger, "alice", 0, 2 * SCALE, NO_LIMIT, NOW)
        with pytest.raises(InsufficientSharesError):
            engine.execute_sell(market, ledger, "bob", 0, SCALE, 0, NOW)

    def test_round_trip_restores_prices(
        self, engine: TradingEngine, ledger: PortfolioLedger
    ) -> None:
        market = _market()
        buy = engine.execute_buy(market, ledger, "alice", 0, 3 * SCALE, NO_LIMIT, NOW)
        sell = engine.execute_sell(market, ledger, "alice", 0, 3 * SCALE, 0, NOW)

        assert market.share_vector == [0, 0]
        assert [o.price for o in market.options] == [PAYOUT // 2] * 2
        # buy rounds up, sell rounds down
        assert 0 <= buy.raw_amount - sell.raw_amount <= 1
        assert market.user_liquidity == buy.raw_amount - sell.raw_amount
        assert market.options[0].volume == 6 * SCALE
        assert sell.realized_pnl == sell.total_amount - buy.total_amount
        assert sell.realized_pnl < 0

    def test_min_refund(self, engine: TradingEngine, ledger: PortfolioLedger) -> None:
        market = _market()
        engine.execute_buy(market, ledger, "alice", 0, 2 * SCALE, NO_LIMIT, NOW)
        quote = engine.quote_sell(market, 0, SCALE)
        with pytest.raises(SlippageExceededError):
            engine.execute_sell(market, ledger, "alice", 0, SCALE, quote.total_amount + 1, NOW)
        assert ledger.held_quantity("alice", market.id, 0) == 2 * SCALE

    def test_refund_above_tracked_liquidity_is_floored(
        self, engine: TradingEngine, ledger: PortfolioLedger
    ) -> None:
        market = _market()
        engine.execute_buy(market, ledger, "alice", 0, 2 * SCALE, NO_LIMIT, NOW)
        market.user_liquidity = 1
        record = engine.execute_sell(market, ledger, "alice", 0, 2 * SCALE, 0, NOW)
        assert market.user_liquidity == 0
        assert record.liquidity_adjustment == record.raw_amount - 1
        assert market.reconciliation_adjustment == record.liquidity_adjustment


class TestSmallestPricedSize:
    def test_unpriced_buy_rejected(self, engine: TradingEngine, ledger: PortfolioLedger) -> None:
        market = _market()
        with pytest.raises(InvalidQuantityError):
            engine.execute_buy(market, ledger, "alice", 0, 1, NO_LIMIT, NOW)
        assert market.share_vector == [0, 0]
        assert market.user_liquidity == 0
        assert ledger.held_quantity("alice", market.id, 0) == 0

    def test_small_priced_buy_costs_something(self, engine: TradingEngine) -> None:
        quote = engine.quote_buy(_market(), 0, 10**9)
        assert quote.raw_amount > 0
        assert quote.fee > 0
        assert quote.average_price > 0
