"""pm_market REST endpoints.

POST /markets                                  create (caller = creator)
GET  /markets                                  validated markets still trading
GET  /markets/{market_id}                      full detail
GET  /markets/{market_id}/options              labels, shares, volume, price
POST /markets/{market_id}/validate             validator role
GET  /markets/{market_id}/quote                buy/sell preview, no state change
POST /markets/{market_id}/buy
POST /markets/{market_id}/sell
POST /markets/{market_id}/free-tokens          FREE_ENTRY grant
POST /markets/{market_id}/resolve              resolver role
POST /markets/{market_id}/invalidate           validator role
POST /markets/{market_id}/claim                winnings or refund, once
POST /markets/{market_id}/withdraw-surplus     creator only

Handlers are plain functions: service calls block on the per-market lock,
so FastAPI runs them in its threadpool instead of on the event loop.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.pm_account.application.positions_schemas import ClaimResponse
from src.pm_common.enums import TradeSide
from src.pm_common.fixed_point import to_display
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_caller_id, get_service, get_views
from src.pm_market.application.schemas import (
    BuyRequest,
    CreateMarketRequest,
    InvalidateRequest,
    MarketListItem,
    QuoteResponse,
    ResolveRequest,
    SellRequest,
    TradeResponse,
)
from src.pm_market.application.service import MarketApplicationService
from src.pm_market.application.views import MarketViewService

router = APIRouter(prefix="/markets", tags=["markets"])

Service = Annotated[MarketApplicationService, Depends(get_service)]
Views = Annotated[MarketViewService, Depends(get_views)]
Caller = Annotated[str, Depends(get_caller_id)]


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("", status_code=201)
def create_market(
    body: CreateMarketRequest, request: Request, caller: Caller, service: Service, views: Views
) -> ApiResponse:
    market = service.create_market(
        creator=caller,
        question=body.question,
        options=body.options,
        duration_seconds=body.duration_seconds,
        kind=body.kind,
        initial_liquidity=body.initial_liquidity,
        early_resolution_allowed=body.early_resolution_allowed,
        liquidity_parameter=body.liquidity_parameter,
        tokens_per_participant=body.tokens_per_participant,
        max_participants=body.max_participants,
    )
    return _respond(request, views.market_detail(market.id).model_dump())


@router.get("")
def list_markets(request: Request, views: Views) -> ApiResponse:
    items: list[MarketListItem] = views.list_active()
    return _respond(request, {"items": [i.model_dump() for i in items], "total": len(items)})


@router.get("/{market_id}")
def get_market(market_id: str, request: Request, views: Views) -> ApiResponse:
    return _respond(request, views.market_detail(market_id).model_dump())


@router.get("/{market_id}/options")
def get_options(market_id: str, request: Request, views: Views) -> ApiResponse:
    return _respond(request, [o.model_dump() for o in views.option_info(market_id)])


@router.post("/{market_id}/validate")
def validate_market(
    market_id: str, request: Request, caller: Caller, service: Service, views: Views
) -> ApiResponse:
    service.validate_market(market_id, caller)
    return _respond(request, views.market_detail(market_id).model_dump())


@router.get("/{market_id}/quote")
def quote(
    market_id: str,
    request: Request,
    service: Service,
    option_index: int = Query(ge=0),
    quantity: int = Query(gt=0),
    side: TradeSide = Query(TradeSide.BUY),
) -> ApiResponse:
    if side == TradeSide.BUY:
        q = service.quote_buy(market_id, option_index, quantity)
    else:
        q = service.quote_sell(market_id, option_index, quantity)
    return _respond(request, QuoteResponse.from_domain(q).model_dump())


@router.post("/{market_id}/buy", status_code=201)
def buy(
    market_id: str, body: BuyRequest, request: Request, caller: Caller, service: Service
) -> ApiResponse:
    record = service.execute_buy(
        market_id, caller, body.option_index, body.quantity, body.max_cost
    )
    return _respond(request, TradeResponse.from_domain(record).model_dump())


@router.post("/{market_id}/sell", status_code=201)
def sell(
    market_id: str, body: SellRequest, request: Request, caller: Caller, service: Service
) -> ApiResponse:
    record = service.execute_sell(
        market_id, caller, body.option_index, body.quantity, body.min_refund
    )
    return _respond(request, TradeResponse.from_domain(record).model_dump())


@router.post("/{market_id}/free-tokens")
def claim_free_tokens(
    market_id: str, request: Request, caller: Caller, service: Service
) -> ApiResponse:
    amount = service.claim_free_tokens(market_id, caller)
    return _respond(request, {"amount": amount, "amount_display": to_display(amount)})


@router.post("/{market_id}/resolve")
def resolve_market(
    market_id: str,
    body: ResolveRequest,
    request: Request,
    caller: Caller,
    service: Service,
    views: Views,
) -> ApiResponse:
    service.resolve_market(market_id, body.winning_option, caller, early=body.early)
    return _respond(request, views.market_detail(market_id).model_dump())


@router.post("/{market_id}/invalidate")
def invalidate_market(
    market_id: str,
    body: InvalidateRequest,
    request: Request,
    caller: Caller,
    service: Service,
    views: Views,
) -> ApiResponse:
    service.invalidate_market(market_id, body.reason, caller)
    return _respond(request, views.market_detail(market_id).model_dump())


@router.post("/{market_id}/claim")
def claim(
    market_id: str, request: Request, caller: Caller, service: Service
) -> ApiResponse:
    record = service.claim(market_id, caller)
    return _respond(request, ClaimResponse.from_domain(record).model_dump())


@router.post("/{market_id}/withdraw-surplus")
def withdraw_surplus(
    market_id: str, request: Request, caller: Caller, service: Service
) -> ApiResponse:
    amount = service.withdraw_surplus(market_id, caller)
    return _respond(request, {"amount": amount, "amount_display": to_display(amount)})
