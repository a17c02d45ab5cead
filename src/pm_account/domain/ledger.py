"""PortfolioLedger: per-trader positions and claim history.

Positions live in an append-only arena (list) with key and per-trader /
per-market indexes into it. Portfolio totals are projections over the
arena plus claim records; nothing else holds a running total.

Only the trade and claim entry points mutate positions.
"""

import logging
from collections import defaultdict
from collections.abc import Callable, Mapping
from datetime import datetime

from src.pm_account.domain.models import ClaimRecord, PortfolioSummary, UserPosition
from src.pm_common.enums import ClaimKind
from src.pm_common.errors import (
    AlreadyClaimedError,
    InsufficientSharesError,
    InvalidQuantityError,
)
from src.pm_common.fixed_point import mul_scaled

logger = logging.getLogger(__name__)

PositionKey = tuple[str, str, int]  # (trader, market_id, option_index)
MarkPrice = Callable[[str, int], int]


class PortfolioLedger:
    def __init__(self) -> None:
        self._positions: list[UserPosition] = []
        self._index: dict[PositionKey, int] = {}
        self._by_trader: dict[str, list[int]] = defaultdict(list)
        self._by_market: dict[str, list[int]] = defaultdict(list)
        self._claims: dict[tuple[str, str], ClaimRecord] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def position(self, trader: str, market_id: str, option_index: int) -> UserPosition | None:
        slot = self._index.get((trader, market_id, option_index))
        return None if slot is None else self._positions[slot]

    def held_quantity(self, trader: str, market_id: str, option_index: int) -> int:
        pos = self.position(trader, market_id, option_index)
        return pos.quantity if pos else 0

    def positions_for(self, trader: str, market_id: str | None = None) -> list[UserPosition]:
        positions = [self._positions[i] for i in self._by_trader.get(trader, [])]
        if market_id is not None:
            positions = [p for p in positions if p.market_id == market_id]
        return positions

    def positions_in_market(self, market_id: str) -> list[UserPosition]:
        return [self._positions[i] for i in self._by_market.get(market_id, [])]

    def market_cost_basis(self, market_id: str) -> int:
        return sum(p.cost_basis for p in self.positions_in_market(market_id))

    def claim_for(self, market_id: str, trader: str) -> ClaimRecord | None:
        return self._claims.get((market_id, trader))

    def claims_for(self, trader: str) -> list[ClaimRecord]:
        return [c for (_, t), c in self._claims.items() if t == trader]

    def portfolio(self, trader: str, mark_price: MarkPrice) -> PortfolioSummary:
        """Project a trader's totals. mark_price(market_id, option) is in payout units."""
        positions = self.positions_for(trader)
        unrealized = 0
        open_positions = 0
        for p in positions:
            if not p.is_open:
                continue
            open_positions += 1
            value = mul_scaled(p.quantity, mark_price(p.market_id, p.option_index))
            unrealized += value - p.cost_basis
        claims = self.claims_for(trader)
        return PortfolioSummary(
            trader=trader,
            total_invested=sum(p.total_invested for p in positions),
            realized_pnl=sum(p.realized_pnl for p in positions),
            unrealized_pnl=unrealized,
            total_winnings=sum(c.payout for c in claims if c.kind == ClaimKind.WINNINGS),
            open_positions=open_positions,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _get_or_create(
        self, trader: str, market_id: str, option_index: int, now: datetime
    ) -> UserPosition:
        key = (trader, market_id, option_index)
        slot = self._index.get(key)
        if slot is not None:
            return self._positions[slot]
        pos = UserPosition(
            trader=trader,
            market_id=market_id,
            option_index=option_index,
            created_at=now,
            updated_at=now,
        )
        slot = len(self._positions)
        self._positions.append(pos)
        self._index[key] = slot
        self._by_trader[trader].append(slot)
        self._by_market[market_id].append(slot)
        return pos

    def record_buy(
        self,
        trader: str,
        market_id: str,
        option_index: int,
        quantity: int,
        total_cost: int,
        now: datetime,
    ) -> UserPosition:
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        pos = self._get_or_create(trader, market_id, option_index, now)
        pos.quantity += quantity
        pos.cost_basis += total_cost
        pos.total_invested += total_cost
        pos.updated_at = now
        return pos

    def record_sell(
        self,
        trader: str,
        market_id: str,
        option_index: int,
        quantity: int,
        net_refund: int,
        now: datetime,
    ) -> int:
        """Reduce a position and return the realized P&L of this sell."""
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        pos = self.position(trader, market_id, option_index)
        held = pos.quantity if pos else 0
        if pos is None or held < quantity:
            raise InsufficientSharesError(quantity, held)
        attributable = pos.cost_basis * quantity // held
        realized = net_refund - attributable
        pos.quantity -= quantity
        pos.cost_basis = 0 if pos.quantity == 0 else pos.cost_basis - attributable
        pos.realized_pnl += realized
        pos.updated_at = now
        return realized

    def settle_claim(
        self,
        claim_id: str,
        market_id: str,
        trader: str,
        kind: ClaimKind,
        payouts: Mapping[int, int],
        now: datetime,
    ) -> ClaimRecord:
        """Close every position the trader holds in the market.

        payouts maps option_index -> amount paid for that position (missing = 0).
        Each position realizes payout - cost_basis and is zeroed; the claim
        record carries the same totals.
        """
        if (market_id, trader) in self._claims:
            raise AlreadyClaimedError(market_id, trader)
        payout_total = 0
        realized_total = 0
        for pos in self.positions_for(trader, market_id):
            payout = payouts.get(pos.option_index, 0)
            realized = payout - pos.cost_basis
            pos.realized_pnl += realized
            pos.quantity = 0
            pos.cost_basis = 0
            pos.updated_at = now
            payout_total += payout
            realized_total += realized
        record = ClaimRecord(
            claim_id=claim_id,
            market_id=market_id,
            trader=trader,
            kind=kind,
            payout=payout_total,
            realized_pnl=realized_total,
            claimed_at=now,
        )
        self._claims[(market_id, trader)] = record
        logger.debug(
            "Claim settled: market=%s trader=%s kind=%s payout=%d",
            market_id, trader, kind.value, payout_total,
        )
        return record
