"""MarketApplicationService: inbound interface of the LMSR market engine.

Composes the lifecycle state machine, TradingEngine and PortfolioLedger,
then talks to the outbound collaborators (roles, custody, events).

Each call on a market runs under that market's lock: read-modify-write of
share quantities never interleaves. Ordering inside a call is always
role check → domain checks + bookkeeping → custody transfers → event.
"""

import logging
import threading
from collections import defaultdict
from datetime import timedelta
from functools import lru_cache

from config.settings import Settings, settings
from src.pm_account.domain.ledger import PortfolioLedger
from src.pm_account.domain.models import ClaimRecord, PortfolioSummary, UserPosition
from src.pm_clearing.domain.settlement import refunds_for, winnings_for
from src.pm_clearing.infrastructure.custody import CustodyProtocol, InMemoryCustody
from src.pm_clearing.infrastructure.event_log import (
    EventSinkProtocol,
    InMemoryEventLog,
    MarketEvent,
    to_payload,
)
from src.pm_common.datetime_utils import Clock, utc_now
from src.pm_common.enums import (
    ClaimKind,
    EventType,
    MarketKind,
    MarketStatus,
    Role,
    TransferReason,
)
from src.pm_common.errors import (
    AlreadyClaimedError,
    InsufficientLiquidityError,
    InvalidMarketParamsError,
    MarketNotFoundError,
    MarketNotOpenError,
    NothingToClaimError,
    PermissionDeniedError,
)
from src.pm_common.id_generator import generate_id
from src.pm_gateway.auth.roles import AllowAllRoleChecker, RoleCheckerProtocol
from src.pm_market.domain import lifecycle
from src.pm_market.domain.models import FreeEntryConfig, Market, MarketOption
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_pricing.domain.lmsr import (
    liquidity_parameter_for,
    max_subsidy_loss,
    option_prices,
)
from src.pm_trading.domain.models import TradeQuote, TradeRecord
from src.pm_trading.domain.solvency import verify_market_invariants
from src.pm_trading.engine.engine import TradingEngine

logger = logging.getLogger(__name__)


class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        ledger: PortfolioLedger | None = None,
        custody: CustodyProtocol | None = None,
        events: EventSinkProtocol | None = None,
        roles: RoleCheckerProtocol | None = None,
        clock: Clock = utc_now,
        config: Settings = settings,
    ) -> None:
        self.repo: MarketRepositoryProtocol = repo or MarketRepository()
        self.ledger = ledger or PortfolioLedger()
        self.custody: CustodyProtocol = custody or InMemoryCustody()
        self.events: EventSinkProtocol = events or InMemoryEventLog()
        self.roles: RoleCheckerProtocol = roles or AllowAllRoleChecker()
        self.clock = clock
        self.config = config
        self.payout_per_share = config.PAYOUT_PER_SHARE
        self.engine = TradingEngine(config.PLATFORM_FEE_BPS, config.PAYOUT_PER_SHARE)
        self._market_locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_for(self, market_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._market_locks[market_id]

    def _get(self, market_id: str) -> Market:
        market = self.repo.get_market_by_id(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    def _emit(
        self, event_type: EventType, market_id: str, payload: dict, account: str | None = None
    ) -> None:
        self.events.emit(MarketEvent(event_type, market_id, payload, account=account))

    def get_market(self, market_id: str) -> Market:
        return self._get(market_id)

    # ------------------------------------------------------------------
    # Creation / validation
    # ------------------------------------------------------------------

    def create_market(
        self,
        creator: str,
        question: str,
        options: list[str],
        duration_seconds: int,
        kind: MarketKind,
        initial_liquidity: int,
        early_resolution_allowed: bool = False,
        liquidity_parameter: int | None = None,
        tokens_per_participant: int = 0,
        max_participants: int = 0,
    ) -> Market:
        """Create a market seeded with the creator's liquidity.

        b defaults to the largest value the seed covers; an explicit b must
        have its worst-case loss (payout * b * ln n) covered by the seed.
        FREE_ENTRY markets also take a prize pool of
        tokens_per_participant * max_participants from the creator.
        """
        self.roles.require(creator, Role.MARKET_CREATOR)
        cfg = self.config
        labels = [o.strip() for o in options]
        if not cfg.MIN_OPTIONS <= len(labels) <= cfg.MAX_OPTIONS:
            raise InvalidMarketParamsError(
                f"option count must be {cfg.MIN_OPTIONS}..{cfg.MAX_OPTIONS}, got {len(labels)}"
            )
        if any(not label for label in labels) or len(set(labels)) != len(labels):
            raise InvalidMarketParamsError("option labels must be non-empty and unique")
        if not question.strip():
            raise InvalidMarketParamsError("question must not be empty")
        if duration_seconds < cfg.MIN_MARKET_DURATION_SECONDS:
            raise InvalidMarketParamsError(
                f"duration must be >= {cfg.MIN_MARKET_DURATION_SECONDS}s, got {duration_seconds}"
            )
        if initial_liquidity <= 0:
            raise InvalidMarketParamsError("initial liquidity must be > 0")

        free_entry = None
        if kind == MarketKind.FREE_ENTRY:
            if tokens_per_participant <= 0 or max_participants <= 0:
                raise InvalidMarketParamsError(
                    "free-entry markets need tokens_per_participant and max_participants > 0"
                )
            pool = tokens_per_participant * max_participants
            free_entry = FreeEntryConfig(
                tokens_per_participant=tokens_per_participant,
                max_participants=max_participants,
                total_prize_pool=pool,
                remaining_prize_pool=pool,
            )
        elif tokens_per_participant or max_participants:
            raise InvalidMarketParamsError("free-entry parameters given for a paid market")

        n = len(labels)
        if liquidity_parameter is None:
            b = liquidity_parameter_for(initial_liquidity, n, self.payout_per_share)
        else:
            if liquidity_parameter <= 0:
                raise InvalidMarketParamsError("liquidity parameter must be > 0")
            b = liquidity_parameter
            loss = max_subsidy_loss(b, n, self.payout_per_share)
            if loss > initial_liquidity:
                raise InsufficientLiquidityError(initial_liquidity, loss)

        now = self.clock()
        initial_prices = option_prices([0] * n, b, self.payout_per_share)
        market = Market(
            id=generate_id("mkt_"),
            question=question.strip(),
            creator=creator,
            kind=kind,
            options=[MarketOption(label=lbl, price=p) for lbl, p in zip(labels, initial_prices)],
            liquidity_parameter=b,
            admin_initial_liquidity=initial_liquidity,
            end_time=now + timedelta(seconds=duration_seconds),
            created_at=now,
            early_resolution_allowed=early_resolution_allowed,
            free_entry=free_entry,
        )
        self.repo.add(market)

        self.custody.transfer_in(creator, initial_liquidity, TransferReason.MARKET_SEED, market.id)
        if free_entry is not None:
            self.custody.transfer_in(
                creator, free_entry.total_prize_pool, TransferReason.PRIZE_POOL_DEPOSIT, market.id
            )
        self._emit(
            EventType.MARKET_CREATED,
            market.id,
            {"kind": kind.value, "options": labels, "liquidity_parameter": b,
             "initial_liquidity": initial_liquidity, "end_time": market.end_time.isoformat()},
            account=creator,
        )
        logger.info(
            "Market created: %s kind=%s options=%d b=%d seed=%d",
            market.id, kind.value, n, b, initial_liquidity,
        )
        return market

    def validate_market(self, market_id: str, caller: str) -> Market:
        self.roles.require(caller, Role.MARKET_VALIDATOR)
        with self._lock_for(market_id):
            market = self._get(market_id)
            lifecycle.validate(market, self.clock())
        self._emit(EventType.MARKET_VALIDATED, market_id, {}, account=caller)
        return market

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def quote_buy(self, market_id: str, option_index: int, quantity: int) -> TradeQuote:
        with self._lock_for(market_id):
            return self.engine.quote_buy(self._get(market_id), option_index, quantity)

    def quote_sell(self, market_id: str, option_index: int, quantity: int) -> TradeQuote:
        with self._lock_for(market_id):
            return self.engine.quote_sell(self._get(market_id), option_index, quantity)

    def execute_buy(
        self, market_id: str, trader: str, option_index: int, quantity: int, max_cost: int
    ) -> TradeRecord:
        with self._lock_for(market_id):
            market = self._get(market_id)
            record = self.engine.execute_buy(
                market, self.ledger, trader, option_index, quantity, max_cost, self.clock()
            )
            self.custody.transfer_in(
                trader, record.total_amount, TransferReason.TRADE_PAYMENT, market_id
            )
            self.custody.transfer_out(
                self.config.FEE_SINK_ACCOUNT, record.fee, TransferReason.FEE, market_id
            )
        self._emit(EventType.TRADE, market_id, to_payload(record), account=trader)
        return record

    def execute_sell(
        self, market_id: str, trader: str, option_index: int, quantity: int, min_refund: int = 0
    ) -> TradeRecord:
        with self._lock_for(market_id):
            market = self._get(market_id)
            record = self.engine.execute_sell(
                market, self.ledger, trader, option_index, quantity, min_refund, self.clock()
            )
            self.custody.transfer_out(
                trader, record.total_amount, TransferReason.TRADE_REFUND, market_id
            )
            self.custody.transfer_out(
                self.config.FEE_SINK_ACCOUNT, record.fee, TransferReason.FEE, market_id
            )
        self._emit(EventType.TRADE, market_id, to_payload(record), account=trader)
        return record

    def claim_free_tokens(self, market_id: str, participant: str) -> int:
        with self._lock_for(market_id):
            market = self._get(market_id)
            amount = lifecycle.grant_free_entry(market, participant, self.clock())
            self.custody.transfer_out(
                participant, amount, TransferReason.FREE_ENTRY_GRANT, market_id
            )
        self._emit(EventType.FREE_TOKENS_GRANTED, market_id, {"amount": amount},
                   account=participant)
        logger.info("Free tokens granted: market=%s participant=%s amount=%d",
                    market_id, participant, amount)
        return amount

    # ------------------------------------------------------------------
    # Resolution / invalidation
    # ------------------------------------------------------------------

    def resolve_market(
        self, market_id: str, winning_option: int, caller: str, early: bool = False
    ) -> Market:
        self.roles.require(caller, Role.MARKET_RESOLVER)
        with self._lock_for(market_id):
            market = self._get(market_id)
            lifecycle.resolve(market, winning_option, self.clock(), early=early)
        self._emit(
            EventType.MARKET_RESOLVED, market_id,
            {"winning_option": winning_option, "early": early}, account=caller,
        )
        return market

    def invalidate_market(self, market_id: str, reason: str, caller: str) -> Market:
        self.roles.require(caller, Role.MARKET_VALIDATOR)
        with self._lock_for(market_id):
            market = self._get(market_id)
            refunds = lifecycle.invalidate(
                market, reason, self.ledger.market_cost_basis(market_id), self.clock()
            )
            self.custody.transfer_out(
                market.creator, refunds.admin_liquidity,
                TransferReason.ADMIN_LIQUIDITY_REFUND, market_id,
            )
            self.custody.transfer_out(
                market.creator, refunds.prize_pool, TransferReason.PRIZE_POOL_REFUND, market_id
            )
        self._emit(
            EventType.MARKET_INVALIDATED, market_id,
            {"reason": reason, "admin_refund": refunds.admin_liquidity,
             "prize_pool_refund": refunds.prize_pool, "refund_pool": market.refund_pool},
            account=caller,
        )
        return market

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def claim(self, market_id: str, trader: str) -> ClaimRecord:
        """Pay winnings (RESOLVED) or the pro-rata refund (INVALIDATED), once."""
        with self._lock_for(market_id):
            market = self._get(market_id)
            if self.ledger.claim_for(market_id, trader) is not None:
                raise AlreadyClaimedError(market_id, trader)
            positions = [
                p for p in self.ledger.positions_for(trader, market_id) if p.quantity > 0
            ]

            if market.status == MarketStatus.RESOLVED and market.winning_option is not None:
                kind = ClaimKind.WINNINGS
                reason = TransferReason.WINNINGS_PAYOUT
                payouts = winnings_for(positions, market.winning_option, self.payout_per_share)
            elif market.status == MarketStatus.INVALIDATED:
                kind = ClaimKind.REFUND
                reason = TransferReason.INVALIDATION_REFUND
                payouts = refunds_for(positions, market.refund_pool, market.refund_basis_total)
            else:
                raise MarketNotOpenError(market_id, "claims open after resolution or invalidation")
            if not positions:
                raise NothingToClaimError(market_id, trader)

            record = self.ledger.settle_claim(
                generate_id("clm_"), market_id, trader, kind, payouts, self.clock()
            )
            market.paid_out += record.payout
            self.custody.transfer_out(trader, record.payout, reason, market_id)
        self._emit(EventType.CLAIM, market_id, to_payload(record), account=trader)
        logger.info(
            "Claim paid: market=%s trader=%s kind=%s payout=%d",
            market_id, trader, kind.value, record.payout,
        )
        return record

    def withdraw_surplus(self, market_id: str, caller: str) -> int:
        """Creator takes back collateral not needed for winning shares.

        On FREE_ENTRY markets the unclaimed prize pool goes back with it.
        Returns the total transferred to the creator.
        """
        with self._lock_for(market_id):
            market = self._get(market_id)
            if caller != market.creator:
                raise PermissionDeniedError(caller, Role.MARKET_CREATOR.value)
            if market.surplus_withdrawn:
                raise AlreadyClaimedError(market_id, caller)
            amount = lifecycle.surplus(market, self.payout_per_share)
            prize_refund = lifecycle.release_prize_pool(market)
            market.surplus_withdrawn = True
            market.paid_out += amount
            self.custody.transfer_out(caller, amount, TransferReason.SURPLUS_WITHDRAWAL, market_id)
            self.custody.transfer_out(
                caller, prize_refund, TransferReason.PRIZE_POOL_REFUND, market_id
            )
        self._emit(
            EventType.SURPLUS_WITHDRAWN, market_id,
            {"amount": amount, "prize_pool_refund": prize_refund}, account=caller,
        )
        logger.info(
            "Surplus withdrawn: market=%s amount=%d prize_refund=%d",
            market_id, amount, prize_refund,
        )
        return amount + prize_refund

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    def mark_price(self, market_id: str, option_index: int) -> int:
        """Current value of one share in payout units."""
        market = self._get(market_id)
        if market.status == MarketStatus.RESOLVED:
            return self.payout_per_share if option_index == market.winning_option else 0
        return market.options[option_index].price

    def get_positions(self, trader: str) -> list[UserPosition]:
        return self.ledger.positions_for(trader)

    def get_portfolio(self, trader: str) -> PortfolioSummary:
        return self.ledger.portfolio(trader, self.mark_price)

    def verify_invariants(self) -> dict[str, object]:
        violations: list[str] = []
        for market in self.repo.list_markets():
            with self._lock_for(market.id):
                violations.extend(verify_market_invariants(market, self.payout_per_share))
        return {"ok": not violations, "violations": violations}


@lru_cache
def get_market_service() -> MarketApplicationService:
    """Process-wide service used by the routers (override in tests)."""
    return MarketApplicationService()
