"""Market state machine.

    CREATED ──validate──▶ VALIDATED ──resolve──▶ RESOLVED
       │                      │
       └──────invalidate──────┴────────────────▶ INVALIDATED

Only VALIDATED markets before end_time accept trades. Resolution requires
the validated flag, so a market nobody approved can never pay out.
Functions here check and mutate a single Market; custody, events and the
portfolio ledger are handled by the application service.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import MarketKind, MarketStatus
from src.pm_common.errors import (
    AlreadyClaimedError,
    AlreadyInvalidatedError,
    AlreadyResolvedError,
    FreeEntryUnavailableError,
    InvalidOptionError,
    MarketClosedError,
    MarketNotOpenError,
    MarketNotValidatedError,
)
from src.pm_common.fixed_point import mul_scaled
from src.pm_market.domain.models import Market

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvalidationRefunds:
    admin_liquidity: int
    prize_pool: int


def _reject_terminal(market: Market) -> None:
    if market.status == MarketStatus.RESOLVED:
        raise AlreadyResolvedError(market.id)
    if market.status == MarketStatus.INVALIDATED:
        raise AlreadyInvalidatedError(market.id)


def check_option(market: Market, option_index: int) -> None:
    if not 0 <= option_index < market.option_count:
        raise InvalidOptionError(option_index, market.option_count)


def check_tradable(market: Market, now: datetime) -> None:
    if market.status in (MarketStatus.RESOLVED, MarketStatus.INVALIDATED):
        raise MarketClosedError(market.id, f"market is {market.status.value}")
    if not market.validated:
        raise MarketNotValidatedError(market.id)
    if now >= market.end_time:
        raise MarketClosedError(market.id, "trading period has ended")


def validate(market: Market, now: datetime) -> None:
    _reject_terminal(market)
    if market.status != MarketStatus.CREATED:
        raise MarketNotOpenError(market.id, f"cannot validate from {market.status.value}")
    if now >= market.end_time:
        raise MarketClosedError(market.id, "cannot validate after end time")
    market.validated = True
    market.status = MarketStatus.VALIDATED
    logger.info("Market validated: %s", market.id)


def resolve(market: Market, winning_option: int, now: datetime, early: bool = False) -> None:
    """Fix the winning option and freeze trading.

    early=True is the collaborator's signal that an early-resolution trigger
    fired; it only counts when the market allows early resolution.
    """
    _reject_terminal(market)
    if not market.validated:
        raise MarketNotValidatedError(market.id)
    check_option(market, winning_option)
    if now < market.end_time and not (early and market.early_resolution_allowed):
        raise MarketNotOpenError(market.id, "resolution before end time is not allowed")
    market.status = MarketStatus.RESOLVED
    market.winning_option = winning_option
    market.resolved_at = now
    if market.free_entry is not None:
        market.free_entry.is_active = False
    logger.info("Market resolved: %s winner=%d", market.id, winning_option)


def invalidate(
    market: Market, reason: str, trader_cost_basis: int, now: datetime
) -> InvalidationRefunds:
    """Cancel the market and release everything the creator locked in it.

    User liquidity is snapshotted as the refund pool, distributed pro rata
    to trader cost basis at claim time.
    The seed refund leaves out any reconciliation adjustment, which was
    already paid from the seed to sellers.
    """
    _reject_terminal(market)
    admin_refund = max(market.admin_initial_liquidity - market.reconciliation_adjustment, 0)
    prize_refund = release_prize_pool(market)

    market.admin_initial_liquidity = 0
    market.refund_pool = market.user_liquidity
    market.refund_basis_total = trader_cost_basis
    market.status = MarketStatus.INVALIDATED
    market.invalidation_reason = reason
    market.invalidated_at = now
    logger.info(
        "Market invalidated: %s reason=%r admin_refund=%d prize_refund=%d",
        market.id, reason, admin_refund, prize_refund,
    )
    return InvalidationRefunds(admin_liquidity=admin_refund, prize_pool=prize_refund)


def release_prize_pool(market: Market) -> int:
    """Close free entry and return the unclaimed part of the prize pool."""
    config = market.free_entry
    if market.kind != MarketKind.FREE_ENTRY or config is None:
        return 0
    remaining = config.remaining_prize_pool
    config.remaining_prize_pool = 0
    config.is_active = False
    return remaining


def grant_free_entry(market: Market, participant: str, now: datetime) -> int:
    """Hand one participant their free-entry tokens from the prize pool."""
    config = market.free_entry
    if market.kind != MarketKind.FREE_ENTRY or config is None:
        raise FreeEntryUnavailableError(market.id, "not a free-entry market")
    if not config.is_active:
        raise FreeEntryUnavailableError(market.id, "free entry is inactive")
    if not market.is_open(now):
        raise MarketClosedError(market.id, "free entry requires an open market")
    if participant in config.participants:
        raise AlreadyClaimedError(market.id, participant)
    if len(config.participants) >= config.max_participants:
        raise FreeEntryUnavailableError(market.id, "participant limit reached")
    amount = config.tokens_per_participant
    if config.remaining_prize_pool < amount:
        raise FreeEntryUnavailableError(market.id, "prize pool exhausted")
    config.participants.add(participant)
    config.remaining_prize_pool -= amount
    if config.remaining_prize_pool == 0:
        config.is_active = False
    return amount


def surplus(market: Market, payout_per_share: int) -> int:
    """Collateral left for the creator once every winning share is covered."""
    if market.status != MarketStatus.RESOLVED or market.winning_option is None:
        raise MarketNotOpenError(market.id, "surplus is only available after resolution")
    winning_shares = market.options[market.winning_option].shares
    obligation = mul_scaled(winning_shares, payout_per_share, round_up=True)
    return max(market.held_collateral - obligation, 0)
