"""Tests for solvency and market consistency checks."""

from datetime import datetime, timedelta, timezone

import pytest

from src.pm_common.enums import MarketKind, MarketStatus
from src.pm_common.errors import InsufficientLiquidityError
from src.pm_common.fixed_point import SCALE
from src.pm_market.domain.models import Market, MarketOption
from src.pm_pricing.domain.lmsr import option_prices
from src.pm_trading.domain.solvency import (
    check_solvency,
    verify_market_invariants,
    worst_case_payout,
)

PAYOUT = 100 * SCALE
NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _market(shares: list[int], user_liquidity: int, admin: int) -> Market:
    b = 10 * SCALE
    prices = option_prices(shares, b, PAYOUT)
    return Market(
        id="mkt_1",
        question="Q?",
        creator="creator",
        kind=MarketKind.PAID,
        options=[MarketOption(label=f"o{i}", shares=s, price=p)
                 for i, (s, p) in enumerate(zip(shares, prices))],
        liquidity_parameter=b,
        admin_initial_liquidity=admin,
        end_time=NOW + timedelta(days=1),
        created_at=NOW,
        status=MarketStatus.VALIDATED,
        validated=True,
        user_liquidity=user_liquidity,
    )


class TestWorstCasePayout:
    def test_largest_option_bounds_payout(self) -> None:
        assert worst_case_payout([3 * SCALE, 7 * SCALE, SCALE], PAYOUT) == 700 * SCALE

    def test_empty(self) -> None:
        assert worst_case_payout([], PAYOUT) == 0


class TestCheckSolvency:
    def test_covered(self) -> None:
        check_solvency("mkt_1", 300 * SCALE, 400 * SCALE, [7 * SCALE, 0], PAYOUT)

    def test_exactly_covered(self) -> None:
        check_solvency("mkt_1", 0, 700 * SCALE, [7 * SCALE, 0], PAYOUT)

    def test_shortfall(self) -> None:
        with pytest.raises(InsufficientLiquidityError) as exc:
            check_solvency("mkt_1", 300 * SCALE, 399 * SCALE, [7 * SCALE, 0], PAYOUT)
        assert exc.value.code == 4002

    def test_reconciliation_adjustment_not_counted(self) -> None:
        with pytest.raises(InsufficientLiquidityError):
            check_solvency(
                "mkt_1", 300 * SCALE, 400 * SCALE, [7 * SCALE, 0], PAYOUT,
                reconciliation_adjustment=1,
            )


class TestVerifyMarketInvariants:
    def test_consistent_market(self) -> None:
        market = _market([2 * SCALE, 0], 110 * SCALE, 700 * SCALE)
        assert verify_market_invariants(market, PAYOUT) == []

    def test_stale_price_cache(self) -> None:
        market = _market([2 * SCALE, 0], 110 * SCALE, 700 * SCALE)
        market.options[0].price += 1
        violations = verify_market_invariants(market, PAYOUT)
        assert len(violations) == 1
        assert "cached prices" in violations[0]

    def test_undercollateralized(self) -> None:
        market = _market([20 * SCALE, 0], 0, 100 * SCALE)
        violations = verify_market_invariants(market, PAYOUT)
        assert any("worst-case payout" in v for v in violations)

    def test_adjustment_reduces_held_collateral(self) -> None:
        market = _market([7 * SCALE, 0], 0, 700 * SCALE)
        assert verify_market_invariants(market, PAYOUT) == []
        market.reconciliation_adjustment = SCALE
        violations = verify_market_invariants(market, PAYOUT)
        assert any("collateral 699" in v for v in violations)

    def test_negative_user_liquidity(self) -> None:
        market = _market([0, 0], -1, 700 * SCALE)
        violations = verify_market_invariants(market, PAYOUT)
        assert any("negative user_liquidity" in v for v in violations)
