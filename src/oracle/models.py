"""Core data types for the publication pipeline."""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from shared_types import PublicationStatus

REMARK_SUFFIX = "-remark"

FeedValue = Union[int, str]


def make_fact_id(carrier: str, flight_number: str, flight_date: date) -> str:
    """Deterministic fact id, e.g. ``BA950-2017-03-01``."""
    return f"{carrier}{flight_number}-{flight_date.isoformat()}"


def remark_feed_name(fact_id: str) -> str:
    return fact_id + REMARK_SUFFIX


@dataclass(frozen=True)
class FlightQuery:
    """Normalized request: which flight, on which departure date."""

    carrier: str
    flight_number: str
    flight_date: date

    @property
    def fact_id(self) -> str:
        return make_fact_id(self.carrier, self.flight_number, self.flight_date)

    @property
    def display_name(self) -> str:
        return f"{self.carrier}{self.flight_number} on {self.flight_date.strftime('%d.%m.%Y')}"


@dataclass(frozen=True)
class FactPayload:
    """A computed fact ready for publication."""

    fact_id: str
    value: int
    remark: Optional[str] = None

    def to_datafeed(self, timestamp_ms: Optional[int] = None) -> dict[str, FeedValue]:
        """Ledger data-feed map: the value, plus the remark under its own key."""
        feed: dict[str, FeedValue] = {self.fact_id: self.value}
        if self.remark:
            feed[remark_feed_name(self.fact_id)] = self.remark
        if timestamp_ms is not None:
            feed["timestamp"] = timestamp_ms
        return feed

    @classmethod
    def from_datafeed(cls, datafeed: dict) -> "FactPayload":
        """Recover the payload from a data-feed map; the fact id is the first non-remark key."""
        fact_id = next(
            (key for key in datafeed if not key.endswith(REMARK_SUFFIX) and key != "timestamp"),
            None,
        )
        if fact_id is None:
            raise ValueError("no feed name in data feed")
        return cls(fact_id, datafeed[fact_id], datafeed.get(remark_feed_name(fact_id)))


@dataclass
class QueuedPublication:
    """In-memory record of a fact awaiting successful submission."""

    payload: FactPayload
    status: PublicationStatus = PublicationStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    done: asyncio.Future = field(default_factory=lambda: asyncio.get_running_loop().create_future())

    @property
    def fact_id(self) -> str:
        return self.payload.fact_id


@dataclass(frozen=True)
class CachedFact:
    """Answer served from the queue or the ledger without recomputation."""

    value: FeedValue
    remark: Optional[str]
    is_stable: bool


@dataclass(frozen=True)
class CapacityUnit:
    """A spendable output owned by the oracle."""

    amount: int
    is_stable: bool
    unit: Optional[str] = None


@dataclass(frozen=True)
class Output:
    """One output of a publication transaction; amount 0 means "the change"."""

    amount: int
    address: str


@dataclass(frozen=True)
class StoredFeed:
    """A data-feed value as recorded on the ledger."""

    feed_name: str
    value: FeedValue
    is_stable: bool
    unit: Optional[str] = None
