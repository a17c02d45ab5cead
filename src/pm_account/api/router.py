"""pm_account REST API: read-only portfolio projection."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.pm_account.application.positions_schemas import (
    ClaimResponse,
    PortfolioResponse,
    PositionListResponse,
    PositionResponse,
)
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_service
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.get("/{trader}")
def get_portfolio(
    trader: str,
    request: Request,
    service: Annotated[MarketApplicationService, Depends(get_service)],
) -> ApiResponse:
    data = PortfolioResponse.from_domain(service.get_portfolio(trader))
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{trader}/positions")
def list_positions(
    trader: str,
    request: Request,
    service: Annotated[MarketApplicationService, Depends(get_service)],
    include_closed: bool = Query(False, description="Include fully exited positions"),
) -> ApiResponse:
    positions = [p for p in service.get_positions(trader) if include_closed or p.is_open]
    data = PositionListResponse(
        items=[PositionResponse.from_domain(p) for p in positions],
        total=len(positions),
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{trader}/claims")
def list_claims(
    trader: str,
    request: Request,
    service: Annotated[MarketApplicationService, Depends(get_service)],
) -> ApiResponse:
    claims = service.ledger.claims_for(trader)
    resp = success_response([ClaimResponse.from_domain(c).model_dump() for c in claims])
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
