"""Claim payouts for resolved and invalidated markets.

RESOLVED:    winning position pays quantity * payout_per_share, others pay 0.
INVALIDATED: each position gets refund_pool * cost_basis / total_basis
             (floor), i.e. trader liquidity is returned pro rata to what each
             trader still had paid in when the market was cancelled.
Both return option_index -> payout for one trader's positions.
"""

from collections.abc import Iterable

from src.pm_account.domain.models import UserPosition
from src.pm_common.fixed_point import mul_scaled


def winnings_for(
    positions: Iterable[UserPosition], winning_option: int, payout_per_share: int
) -> dict[int, int]:
    return {
        p.option_index: mul_scaled(p.quantity, payout_per_share)
        if p.option_index == winning_option else 0
        for p in positions
    }


def refunds_for(
    positions: Iterable[UserPosition], refund_pool: int, basis_total: int
) -> dict[int, int]:
    if basis_total <= 0:
        return {p.option_index: 0 for p in positions}
    return {p.option_index: refund_pool * p.cost_basis // basis_total for p in positions}
