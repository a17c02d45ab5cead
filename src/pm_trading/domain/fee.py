"""Platform fee on LMSR trades.

Buys pay the fee on top of the raw LMSR cost; sells have it deducted
from the raw refund. Fees always round up (platform never loses).
"""


def calc_fee(trade_value: int, fee_bps: int) -> int:
    """Ceiling division fee: (trade_value x fee_bps + 9999) // 10000."""
    if trade_value == 0 or fee_bps == 0:
        return 0
    return (trade_value * fee_bps + 9999) // 10000


def buy_total(raw_cost: int, fee_bps: int) -> tuple[int, int]:
    """Return (fee, total_cost) for a buy."""
    fee = calc_fee(raw_cost, fee_bps)
    return fee, raw_cost + fee


def sell_net(raw_refund: int, fee_bps: int) -> tuple[int, int]:
    """Return (fee, net_refund) for a sell. The fee never exceeds the refund."""
    fee = min(calc_fee(raw_refund, fee_bps), raw_refund)
    return fee, raw_refund - fee
