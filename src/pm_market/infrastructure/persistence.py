"""MarketRepository: in-process implementation of MarketRepositoryProtocol.

Durable market metadata storage is an external collaborator; this store
keeps engine state for the lifetime of the process.
"""

import threading

from src.pm_market.domain.models import Market


class MarketRepository:
    def __init__(self) -> None:
        self._markets: dict[str, Market] = {}
        self._lock = threading.Lock()

    def add(self, market: Market) -> None:
        with self._lock:
            if market.id in self._markets:
                raise ValueError(f"Duplicate market id: {market.id}")
            self._markets[market.id] = market

    def get_market_by_id(self, market_id: str) -> Market | None:
        return self._markets.get(market_id)

    def list_markets(self) -> list[Market]:
        """All markets, newest first."""
        with self._lock:
            markets = list(self._markets.values())
        return sorted(markets, key=lambda m: (m.created_at, m.id), reverse=True)
