# src/pm_admin/api/router.py
"""Admin REST API."""
from typing import Annotated

from fastapi import APIRouter, Depends

from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_caller_id, get_service
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/verify-invariants")
def verify_invariants(
    caller: Annotated[str, Depends(get_caller_id)],
    service: Annotated[MarketApplicationService, Depends(get_service)],
) -> ApiResponse:
    return success_response(service.verify_invariants())


@router.get("/fees")
def collected_fees(
    caller: Annotated[str, Depends(get_caller_id)],
    service: Annotated[MarketApplicationService, Depends(get_service)],
) -> ApiResponse:
    per_market = {m.id: m.total_fees for m in service.repo.list_markets()}
    return success_response({"total": sum(per_market.values()), "per_market": per_market})
