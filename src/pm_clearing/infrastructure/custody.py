"""Custody collaborator: moves funds in and out of the market contract.

The engine calls it strictly after its own bookkeeping succeeded. The
in-memory implementation keeps a transfer journal and one custodied
balance per market, and refuses to pay a market out of another market's funds.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import TransferReason
from src.pm_common.errors import InternalInvariantError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transfer:
    account: str
    amount: int          # positive = into custody, negative = out of custody
    reason: TransferReason
    market_id: str
    created_at: datetime


class CustodyProtocol(Protocol):
    def transfer_in(
        self, account: str, amount: int, reason: TransferReason, market_id: str
    ) -> None: ...

    def transfer_out(
        self, account: str, amount: int, reason: TransferReason, market_id: str
    ) -> None: ...


class InMemoryCustody:
    def __init__(self) -> None:
        self.balances: dict[str, int] = defaultdict(int)
        self.transfers: list[Transfer] = []

    @property
    def balance(self) -> int:
        """Total held across all markets."""
        return sum(self.balances.values())

    def balance_of(self, market_id: str) -> int:
        return self.balances.get(market_id, 0)

    def transfer_in(
        self, account: str, amount: int, reason: TransferReason, market_id: str
    ) -> None:
        if amount == 0:
            return
        self.balances[market_id] += amount
        self.transfers.append(Transfer(account, amount, reason, market_id, utc_now()))

    def transfer_out(
        self, account: str, amount: int, reason: TransferReason, market_id: str
    ) -> None:
        if amount == 0:
            return
        held = self.balance_of(market_id)
        if amount > held:
            logger.error(
                "Custody shortfall: market=%s account=%s amount=%d held=%d",
                market_id, account, amount, held,
            )
            raise InternalInvariantError(
                f"custody holds {held} for {market_id}, asked for {amount}"
            )
        self.balances[market_id] -= amount
        self.transfers.append(Transfer(account, -amount, reason, market_id, utc_now()))

    def net_flow(self, account: str, reason: TransferReason | None = None) -> int:
        """Signed sum of transfers to (negative) and from (positive) an account."""
        return sum(
            t.amount for t in self.transfers
            if t.account == account and (reason is None or t.reason == reason)
        )

    def paid_to(self, account: str, reason: TransferReason | None = None) -> int:
        """Total paid out of custody to an account."""
        return sum(
            -t.amount for t in self.transfers
            if t.account == account and t.amount < 0 and (reason is None or t.reason == reason)
        )
