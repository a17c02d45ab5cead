"""Pydantic schemas for pm_market API requests and responses.

Amounts and quantities travel as fixed-point ints (1 token / share ==
10**18) with a *_display string next to each amount for humans.
"""

from pydantic import BaseModel, Field

from src.pm_common.enums import MarketKind
from src.pm_common.fixed_point import to_display
from src.pm_market.domain.models import Market
from src.pm_trading.domain.models import TradeQuote, TradeRecord

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    question: str = Field(min_length=1, max_length=500)
    options: list[str] = Field(min_length=2)
    duration_seconds: int = Field(gt=0)
    kind: MarketKind = MarketKind.PAID
    initial_liquidity: int = Field(gt=0)
    early_resolution_allowed: bool = False
    liquidity_parameter: int | None = Field(default=None, gt=0)
    tokens_per_participant: int = Field(default=0, ge=0)
    max_participants: int = Field(default=0, ge=0)


class BuyRequest(BaseModel):
    option_index: int = Field(ge=0)
    quantity: int = Field(gt=0)
    max_cost: int = Field(gt=0, description="Slippage bound on total cost incl. fee")


class SellRequest(BaseModel):
    option_index: int = Field(ge=0)
    quantity: int = Field(gt=0)
    min_refund: int = Field(default=0, ge=0, description="Slippage bound on net refund")


class ResolveRequest(BaseModel):
    winning_option: int = Field(ge=0)
    early: bool = False


class InvalidateRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class OptionInfo(BaseModel):
    index: int
    label: str
    shares: int
    volume: int
    price: int
    price_display: str

    @classmethod
    def build(cls, index: int, label: str, shares: int, volume: int, price: int) -> "OptionInfo":
        return cls(
            index=index, label=label, shares=shares, volume=volume,
            price=price, price_display=to_display(price),
        )


class MarketListItem(BaseModel):
    id: str
    question: str
    kind: str
    status: str
    option_count: int
    end_time: str
    total_collateral: int
    total_collateral_display: str

    @classmethod
    def from_domain(cls, m: Market) -> "MarketListItem":
        return cls(
            id=m.id,
            question=m.question,
            kind=m.kind.value,
            status=m.status.value,
            option_count=m.option_count,
            end_time=m.end_time.isoformat(),
            total_collateral=m.total_collateral,
            total_collateral_display=to_display(m.total_collateral),
        )


class FreeEntryOut(BaseModel):
    tokens_per_participant: int
    max_participants: int
    participants: int
    total_prize_pool: int
    remaining_prize_pool: int
    is_active: bool


class MarketDetail(BaseModel):
    id: str
    question: str
    creator: str
    kind: str
    status: str
    validated: bool
    early_resolution_allowed: bool
    liquidity_parameter: int
    user_liquidity: int
    admin_initial_liquidity: int
    total_fees: int
    paid_out: int
    reconciliation_adjustment: int
    end_time: str
    created_at: str
    resolved_at: str | None
    invalidated_at: str | None
    invalidation_reason: str | None
    winning_option: int | None
    options: list[OptionInfo]
    free_entry: FreeEntryOut | None

    @classmethod
    def from_domain(cls, m: Market, options: list[OptionInfo]) -> "MarketDetail":
        fe = m.free_entry
        return cls(
            id=m.id,
            question=m.question,
            creator=m.creator,
            kind=m.kind.value,
            status=m.status.value,
            validated=m.validated,
            early_resolution_allowed=m.early_resolution_allowed,
            liquidity_parameter=m.liquidity_parameter,
            user_liquidity=m.user_liquidity,
            admin_initial_liquidity=m.admin_initial_liquidity,
            total_fees=m.total_fees,
            paid_out=m.paid_out,
            reconciliation_adjustment=m.reconciliation_adjustment,
            end_time=m.end_time.isoformat(),
            created_at=m.created_at.isoformat(),
            resolved_at=m.resolved_at.isoformat() if m.resolved_at else None,
            invalidated_at=m.invalidated_at.isoformat() if m.invalidated_at else None,
            invalidation_reason=m.invalidation_reason,
            winning_option=m.winning_option,
            options=options,
            free_entry=FreeEntryOut(
                tokens_per_participant=fe.tokens_per_participant,
                max_participants=fe.max_participants,
                participants=len(fe.participants),
                total_prize_pool=fe.total_prize_pool,
                remaining_prize_pool=fe.remaining_prize_pool,
                is_active=fe.is_active,
            ) if fe else None,
        )


class QuoteResponse(BaseModel):
    side: str
    option_index: int
    quantity: int
    raw_amount: int
    fee: int
    total_amount: int
    total_amount_display: str
    average_price: int
    marginal_price_after: int

    @classmethod
    def from_domain(cls, q: TradeQuote) -> "QuoteResponse":
        return cls(
            side=q.side.value,
            option_index=q.option_index,
            quantity=q.quantity,
            raw_amount=q.raw_amount,
            fee=q.fee,
            total_amount=q.total_amount,
            total_amount_display=to_display(q.total_amount),
            average_price=q.average_price,
            marginal_price_after=q.marginal_price_after,
        )


class TradeResponse(BaseModel):
    trade_id: str
    market_id: str
    trader: str
    side: str
    option_index: int
    quantity: int
    raw_amount: int
    fee: int
    total_amount: int
    total_amount_display: str
    trade_price: int
    marginal_price_after: int
    realized_pnl: int
    executed_at: str

    @classmethod
    def from_domain(cls, r: TradeRecord) -> "TradeResponse":
        return cls(
            trade_id=r.trade_id,
            market_id=r.market_id,
            trader=r.trader,
            side=r.side.value,
            option_index=r.option_index,
            quantity=r.quantity,
            raw_amount=r.raw_amount,
            fee=r.fee,
            total_amount=r.total_amount,
            total_amount_display=to_display(r.total_amount),
            trade_price=r.trade_price,
            marginal_price_after=r.marginal_price_after,
            realized_pnl=r.realized_pnl,
            executed_at=r.executed_at.isoformat(),
        )
