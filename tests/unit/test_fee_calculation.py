from src.pm_common.fixed_point import SCALE
from src.pm_trading.domain.fee import buy_total, calc_fee, sell_net


class TestCalcFee:
    def test_ceiling_division(self) -> None:
        # fee = (100 * 20 + 9999) // 10000 = 10119 // 10000 = 1
        assert calc_fee(100, 20) == 1

    def test_exact_division(self) -> None:
        # fee = (10000 * 20 + 9999) // 10000 = 209999 // 10000 = 20
        assert calc_fee(10000, 20) == 20

    def test_zero_value(self) -> None:
        assert calc_fee(0, 200) == 0

    def test_zero_rate(self) -> None:
        assert calc_fee(50 * SCALE, 0) == 0

    def test_scaled_amount(self) -> None:
        # 2% of 50 tokens
        assert calc_fee(50 * SCALE, 200) == SCALE


class TestBuyTotal:
    def test_fee_on_top(self) -> None:
        assert buy_total(10000, 200) == (200, 10200)

    def test_rounds_up(self) -> None:
        fee, total = buy_total(101, 200)
        assert fee == 3
        assert total == 104


class TestSellNet:
    def test_fee_deducted(self) -> None:
        assert sell_net(10000, 200) == (200, 9800)

    def test_fee_never_exceeds_refund(self) -> None:
        assert sell_net(1, 200) == (1, 0)

    def test_zero_refund(self) -> None:
        assert sell_net(0, 200) == (0, 0)
