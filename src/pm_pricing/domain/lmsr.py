"""LMSR cost function and marginal prices over fixed-point share vectors.

    C(q)  = b * ln( sum_i exp(q_i / b) )
    p_i(q) = exp(q_i / b) / sum_j exp(q_j / b)

Evaluated as log-sum-exp shifted by the largest q_i / b, so every exp_neg
argument is >= 0 and the exponential sum is >= SCALE (the max term is
exactly SCALE). That keeps fixed_point.ln inside its domain by construction.

Prices come in two units:
  pricing units  softmax probabilities, sum to SCALE
  payout units   probability * payout_per_share, sum to payout_per_share
The zero-shares default lives in default_price() and nowhere else.
"""

import logging
from collections.abc import Sequence

from src.pm_common.errors import (
    InvalidMarketParamsError,
    PriceInvariantViolatedError,
)
from src.pm_common.fixed_point import SCALE, div_scaled, exp_neg, ln, mul_scaled

logger = logging.getLogger(__name__)

# 1e-9 relative, in pricing units
PRICE_SUM_TOLERANCE = SCALE // 10**9


def _check_params(quantities: Sequence[int], b: int) -> None:
    if b <= 0:
        raise InvalidMarketParamsError(f"liquidity parameter must be > 0, got {b}")
    if len(quantities) < 2:
        raise InvalidMarketParamsError("at least two options are required")
    if any(q < 0 for q in quantities):
        raise InvalidMarketParamsError("share quantities must be non-negative")


def _shifted_exponentials(quantities: Sequence[int], b: int) -> tuple[int, list[int], int]:
    """Return (max q/b, exp(q_i/b - max) per option, their sum)."""
    scaled = [div_scaled(q, b) for q in quantities]
    top = max(scaled)
    terms = [exp_neg(top - s) for s in scaled]
    return top, terms, sum(terms)


def cost(quantities: Sequence[int], b: int) -> int:
    """C(q) in share units (scaled). Multiply by payout_per_share for funds."""
    _check_params(quantities, b)
    top, _, total = _shifted_exponentials(quantities, b)
    return mul_scaled(b, top + ln(total))


def validate_prices(prices: Sequence[int], unit: int = SCALE) -> None:
    """Raise PriceInvariantViolatedError unless sum(prices) == unit within tolerance."""
    tolerance = max(unit * PRICE_SUM_TOLERANCE // SCALE, len(prices))
    price_sum = sum(prices)
    if abs(price_sum - unit) > tolerance:
        logger.error("LMSR price sum %d deviates from %d", price_sum, unit)
        raise PriceInvariantViolatedError(price_sum, unit)


def marginal_prices(quantities: Sequence[int], b: int) -> list[int]:
    """Softmax of q/b in pricing units. Each price in (0, SCALE)."""
    _check_params(quantities, b)
    _, terms, total = _shifted_exponentials(quantities, b)
    prices = [div_scaled(t, total) for t in terms]
    validate_prices(prices)
    return prices


def default_price(option_count: int, payout_per_share: int) -> int:
    """Price of every option before any share exists: payout / n."""
    if option_count <= 0:
        raise InvalidMarketParamsError(f"option count must be > 0, got {option_count}")
    return payout_per_share // option_count


def option_prices(quantities: Sequence[int], b: int, payout_per_share: int) -> list[int]:
    """Per-option marginal price in payout units.

    Used by the trade path, the cached-price refresh and read-only views.
    """
    if sum(quantities) == 0:
        return [default_price(len(quantities), payout_per_share)] * len(quantities)
    return [mul_scaled(p, payout_per_share) for p in marginal_prices(quantities, b)]


def _loss_per_unit_b(option_count: int, payout_per_share: int) -> int:
    return mul_scaled(ln(option_count * SCALE), payout_per_share, round_up=True)


def max_subsidy_loss(b: int, option_count: int, payout_per_share: int) -> int:
    """Worst-case market-maker loss in funds: payout * b * ln(n), rounded up."""
    return mul_scaled(b, _loss_per_unit_b(option_count, payout_per_share), round_up=True)


def liquidity_parameter_for(
    initial_liquidity: int, option_count: int, payout_per_share: int
) -> int:
    """Largest b whose worst-case loss is covered by initial_liquidity."""
    if initial_liquidity <= 0:
        raise InvalidMarketParamsError("initial liquidity must be > 0")
    b = div_scaled(initial_liquidity, _loss_per_unit_b(option_count, payout_per_share))
    if b == 0:
        raise InvalidMarketParamsError("initial liquidity too small for any liquidity parameter")
    return b
