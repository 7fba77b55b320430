"""Ledger client boundary and publication failures."""

from abc import ABC, abstractmethod
from typing import Iterable

from shared_types import FailureKind

from .models import CapacityUnit, FeedValue, Output, StoredFeed


class OracleError(Exception):
    """Base class for oracle failures."""


class PublicationError(OracleError):
    """Posting a data feed failed; the caller retries."""

    kind: FailureKind = FailureKind.COMPOSITION


class InsufficientFundsError(PublicationError):
    kind = FailureKind.INSUFFICIENT_FUNDS


class CompositionError(PublicationError):
    kind = FailureKind.COMPOSITION


class LedgerNetworkError(PublicationError):
    kind = FailureKind.NETWORK


class LedgerClient(ABC):
    """Queries and transactions against the shared ledger.

    Implementations wrap a wallet that owns a single address; signing and
    broadcasting happen behind ``post_data_feed``.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        """The oracle's own (single) address."""

    @abstractmethod
    async def read_data_feeds(self, address: str, feed_names: Iterable[str]) -> list[StoredFeed]:
        """Values posted by ``address`` under any of ``feed_names``."""

    @abstractmethod
    async def read_units(self, address: str) -> list[CapacityUnit]:
        """Unspent base-currency outputs held by ``address``."""

    @abstractmethod
    async def read_fee_credits(self, address: str) -> int:
        """Unspent witnessing and header-commission earnings of ``address``."""

    @abstractmethod
    async def stable_units(self, unit_ids: Iterable[str]) -> list[str]:
        """The subset of ``unit_ids`` that is stable."""

    @abstractmethod
    async def feed_names_in_units(self, unit_ids: Iterable[str]) -> list[str]:
        """Feed names carried by the given units."""

    @abstractmethod
    async def post_data_feed(self, outputs: list[Output], datafeed: dict[str, FeedValue]) -> str:
        """Compose, sign and broadcast a data-feed transaction.

        Returns the new unit id. Raises a PublicationError subclass on failure.
        """
