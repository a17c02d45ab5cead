"""Read-only aggregation over markets.

Prices shown here come from the same lmsr.option_prices used by the
trade path, so a market with no shares reads payout / n here too.
"""

from src.pm_common.datetime_utils import Clock, utc_now
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketNotFoundError
from src.pm_market.application.schemas import MarketDetail, MarketListItem, OptionInfo
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_pricing.domain.lmsr import option_prices


class MarketViewService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol,
        payout_per_share: int,
        clock: Clock = utc_now,
    ) -> None:
        self._repo = repo
        self._payout = payout_per_share
        self._clock = clock

    def _get(self, market_id: str) -> Market:
        market = self._repo.get_market_by_id(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    def option_info(self, market_id: str) -> list[OptionInfo]:
        market = self._get(market_id)
        prices = option_prices(market.share_vector, market.liquidity_parameter, self._payout)
        return [
            OptionInfo.build(i, opt.label, opt.shares, opt.volume, price)
            for i, (opt, price) in enumerate(zip(market.options, prices))
        ]

    def market_detail(self, market_id: str) -> MarketDetail:
        market = self._get(market_id)
        return MarketDetail.from_domain(market, self.option_info(market_id))

    def list_active(self) -> list[MarketListItem]:
        """Validated markets still accepting trades."""
        now = self._clock()
        return [
            MarketListItem.from_domain(m)
            for m in self._repo.list_markets()
            if m.validated and m.status == MarketStatus.VALIDATED and now < m.end_time
        ]
