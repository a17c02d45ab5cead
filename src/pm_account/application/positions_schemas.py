"""Pydantic schemas for positions, claims and the portfolio projection."""

from pydantic import BaseModel

from src.pm_account.domain.models import ClaimRecord, PortfolioSummary, UserPosition
from src.pm_common.fixed_point import to_display


class PositionResponse(BaseModel):
    market_id: str
    option_index: int
    quantity: int
    cost_basis: int
    cost_basis_display: str
    total_invested: int
    realized_pnl: int

    @classmethod
    def from_domain(cls, p: UserPosition) -> "PositionResponse":
        return cls(
            market_id=p.market_id,
            option_index=p.option_index,
            quantity=p.quantity,
            cost_basis=p.cost_basis,
            cost_basis_display=to_display(p.cost_basis),
            total_invested=p.total_invested,
            realized_pnl=p.realized_pnl,
        )


class PositionListResponse(BaseModel):
    items: list[PositionResponse]
    total: int


def _signed_display(value: int) -> str:
    return f"-{to_display(-value)}" if value < 0 else to_display(value)


class PortfolioResponse(BaseModel):
    trader: str
    total_invested: int
    realized_pnl: int
    realized_pnl_display: str
    unrealized_pnl: int
    unrealized_pnl_display: str
    total_winnings: int
    open_positions: int

    @classmethod
    def from_domain(cls, s: PortfolioSummary) -> "PortfolioResponse":
        return cls(
            trader=s.trader,
            total_invested=s.total_invested,
            realized_pnl=s.realized_pnl,
            realized_pnl_display=_signed_display(s.realized_pnl),
            unrealized_pnl=s.unrealized_pnl,
            unrealized_pnl_display=_signed_display(s.unrealized_pnl),
            total_winnings=s.total_winnings,
            open_positions=s.open_positions,
        )


class ClaimResponse(BaseModel):
    claim_id: str
    market_id: str
    trader: str
    kind: str
    payout: int
    payout_display: str
    realized_pnl: int
    claimed_at: str

    @classmethod
    def from_domain(cls, c: ClaimRecord) -> "ClaimResponse":
        return cls(
            claim_id=c.claim_id,
            market_id=c.market_id,
            trader=c.trader,
            kind=c.kind.value,
            payout=c.payout,
            payout_display=to_display(c.payout),
            realized_pnl=c.realized_pnl,
            claimed_at=c.claimed_at.isoformat(),
        )
