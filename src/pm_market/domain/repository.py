# src/pm_market/domain/repository.py
"""Repository Protocol: dependency inversion for testability.

Unit tests inject their own store that conforms to this Protocol.
Infrastructure layer provides the in-memory implementation.
"""

from typing import Protocol

from src.pm_market.domain.models import Market


class MarketRepositoryProtocol(Protocol):
    def add(self, market: Market) -> None: ...

    def get_market_by_id(self, market_id: str) -> Market | None: ...

    def list_markets(self) -> list[Market]: ...
