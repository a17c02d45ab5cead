"""Shared test fixtures."""

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.pm_gateway.auth.dependencies import get_service
from src.pm_market.application.service import MarketApplicationService


class FakeClock:
    """Deterministic clock; tests move time with advance()."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def service(clock: FakeClock) -> MarketApplicationService:
    """Fresh engine with in-memory collaborators and every role granted."""
    return MarketApplicationService(clock=clock)


@pytest.fixture
async def client(service: MarketApplicationService) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the per-test service."""
    app.dependency_overrides[get_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
