"""Structured market events for off-chain indexing.

Every trade, lifecycle transition and claim is emitted once, after the
state change it describes has been applied.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import EventType
from src.pm_common.id_generator import generate_id


@dataclass(frozen=True)
class MarketEvent:
    event_type: EventType
    market_id: str
    payload: dict[str, Any]
    account: str | None = None
    event_id: str = field(default_factory=lambda: generate_id("evt_"))
    created_at: datetime = field(default_factory=utc_now)


class EventSinkProtocol(Protocol):
    def emit(self, event: MarketEvent) -> None: ...


class InMemoryEventLog:
    def __init__(self) -> None:
        self.events: list[MarketEvent] = []

    def emit(self, event: MarketEvent) -> None:
        self.events.append(event)

    def for_market(self, market_id: str, event_type: EventType | None = None) -> list[MarketEvent]:
        return [
            e for e in self.events
            if e.market_id == market_id and (event_type is None or e.event_type == event_type)
        ]


def to_payload(record: object) -> dict[str, Any]:
    """Flatten a dataclass record into a JSON-friendly payload."""
    payload = asdict(record)  # type: ignore[call-overload]
    for key, value in payload.items():
        if isinstance(value, Enum):
            payload[key] = value.value
        elif isinstance(value, datetime):
            payload[key] = value.isoformat()
    return payload
