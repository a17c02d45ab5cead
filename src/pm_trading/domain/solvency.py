"""Market solvency and consistency checks.

SOLVENCY: user_liquidity + admin_initial_liquidity - reconciliation_adjustment
            >= payout_per_share * max_i(q_i)
  Refunds floored out of user_liquidity were paid from the admin seed, so
  the adjustment is not held in custody and does not count as collateral.
  At most one option wins, so the largest outstanding share count bounds
  the total payout. Checked on the projected post-trade state before any
  mutation.

PRICE-CACHE: every option's cached price equals option_prices(current shares).
"""

import logging
from collections.abc import Sequence

from src.pm_common.enums import MarketStatus
from src.pm_common.errors import InsufficientLiquidityError
from src.pm_common.fixed_point import mul_scaled
from src.pm_market.domain.models import Market
from src.pm_pricing.domain.lmsr import option_prices

logger = logging.getLogger(__name__)


def worst_case_payout(shares: Sequence[int], payout_per_share: int) -> int:
    return mul_scaled(max(shares, default=0), payout_per_share)


def check_solvency(
    market_id: str,
    user_liquidity: int,
    admin_liquidity: int,
    shares: Sequence[int],
    payout_per_share: int,
    reconciliation_adjustment: int = 0,
) -> None:
    """Raise InsufficientLiquidityError if the collateral cannot cover the worst outcome."""
    available = user_liquidity + admin_liquidity - reconciliation_adjustment
    required = worst_case_payout(shares, payout_per_share)
    if available < required:
        logger.info(
            "Solvency check failed: market=%s available=%d required=%d",
            market_id, available, required,
        )
        raise InsufficientLiquidityError(available, required)
    logger.debug(
        "Solvency OK: market=%s available=%d required=%d", market_id, available, required
    )


def verify_market_invariants(market: Market, payout_per_share: int) -> list[str]:
    """Return a list of violation strings (empty when the market is consistent)."""
    violations: list[str] = []
    shares = market.share_vector

    if any(s < 0 for s in shares):
        violations.append(f"{market.id}: negative share quantity {shares}")
    if market.user_liquidity < 0:
        violations.append(f"{market.id}: negative user_liquidity {market.user_liquidity}")

    expected = option_prices(shares, market.liquidity_parameter, payout_per_share)
    cached = [o.price for o in market.options]
    if cached != expected:
        violations.append(f"{market.id}: cached prices {cached} != recomputed {expected}")

    if market.status == MarketStatus.VALIDATED:
        required = worst_case_payout(shares, payout_per_share)
        if market.held_collateral < required:
            violations.append(
                f"{market.id}: collateral {market.held_collateral} < worst-case payout {required}"
            )

    for v in violations:
        logger.error("Invariant violated: %s", v)
    return violations
