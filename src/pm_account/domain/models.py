"""Domain models for pm_account: pure dataclasses.

Portfolio aggregates are never stored: PortfolioSummary is built by
summing positions and claim records on demand.
"""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import ClaimKind


@dataclass
class UserPosition:
    trader: str
    market_id: str
    option_index: int
    quantity: int = 0          # shares held
    cost_basis: int = 0        # paid-in value still attributed to held shares
    total_invested: int = 0    # cumulative buy cost including fees
    realized_pnl: int = 0      # signed; sells and claims
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.quantity > 0


@dataclass
class ClaimRecord:
    claim_id: str
    market_id: str
    trader: str
    kind: ClaimKind
    payout: int
    realized_pnl: int          # payout minus the cost basis it settled
    claimed_at: datetime


@dataclass
class PortfolioSummary:
    trader: str
    total_invested: int
    realized_pnl: int
    unrealized_pnl: int
    total_winnings: int
    open_positions: int
