"""Domain models for pm_market: pure dataclasses, no business logic.

All quantities and amounts are fixed-point ints (SCALE = 10**18).
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.pm_common.enums import MarketKind, MarketStatus


@dataclass
class MarketOption:
    label: str
    shares: int = 0   # outstanding shares
    volume: int = 0   # cumulative traded quantity, buys + sells
    price: int = 0    # cached marginal price in payout units


@dataclass
class FreeEntryConfig:
    tokens_per_participant: int
    max_participants: int
    total_prize_pool: int
    remaining_prize_pool: int
    is_active: bool = True
    participants: set[str] = field(default_factory=set)


@dataclass
class Market:
    id: str
    question: str
    creator: str
    kind: MarketKind
    options: list[MarketOption]
    liquidity_parameter: int          # LMSR b
    admin_initial_liquidity: int      # creator seed, refundable on invalidation
    end_time: datetime
    created_at: datetime
    early_resolution_allowed: bool = False
    status: MarketStatus = MarketStatus.CREATED
    validated: bool = False
    user_liquidity: int = 0           # trader funds net of refunds
    total_fees: int = 0
    paid_out: int = 0                 # winnings or refunds claimed so far
    reconciliation_adjustment: int = 0
    winning_option: int | None = None
    resolved_at: datetime | None = None
    invalidated_at: datetime | None = None
    invalidation_reason: str | None = None
    refund_pool: int = 0              # user_liquidity snapshot at invalidation
    refund_basis_total: int = 0       # trader cost basis snapshot at invalidation
    surplus_withdrawn: bool = False
    free_entry: FreeEntryConfig | None = None

    @property
    def option_count(self) -> int:
        return len(self.options)

    @property
    def share_vector(self) -> list[int]:
        return [o.shares for o in self.options]

    @property
    def total_collateral(self) -> int:
        return self.user_liquidity + self.admin_initial_liquidity

    @property
    def held_collateral(self) -> int:
        """Collateral actually in custody: floored refunds came out of the seed."""
        return self.total_collateral - self.reconciliation_adjustment

    def is_open(self, now: datetime) -> bool:
        return self.validated and self.status == MarketStatus.VALIDATED and now < self.end_time
