"""FastAPI dependencies: caller identity and the shared services.

Authentication is performed upstream; this service trusts the
X-User-Id header set by the gateway in front of it.

Usage in any router:
    from src.pm_gateway.auth.dependencies import get_caller_id

    @router.post("/markets/{market_id}/buy")
    def buy(caller: Annotated[str, Depends(get_caller_id)]):
        ...
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from src.pm_market.application.service import MarketApplicationService, get_market_service
from src.pm_market.application.views import MarketViewService


async def get_caller_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """Return the caller ID, or HTTP 401 if the gateway did not set one."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id.strip()


def get_service() -> MarketApplicationService:
    return get_market_service()


def get_views(
    service: Annotated[MarketApplicationService, Depends(get_service)],
) -> MarketViewService:
    return MarketViewService(service.repo, service.payout_per_share, clock=service.clock)
