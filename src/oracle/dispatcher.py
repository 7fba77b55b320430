"""Tell waiting requesters when their fact becomes stable on the ledger."""

from typing import Iterable

import structlog

from observability import metrics

from . import messages
from .interest import InterestIndex
from .ledger import LedgerClient
from .messenger import Messenger

logger = structlog.get_logger().bind(source="dispatcher")


class NotificationDispatcher:
    def __init__(self, ledger: LedgerClient, interest: InterestIndex, messenger: Messenger):
        self.ledger = ledger
        self.interest = interest
        self.messenger = messenger

    async def on_units_stable(self, unit_ids: Iterable[str]) -> int:
        """Handle a "my transactions became stable" signal. Returns messages sent."""
        unit_ids = list(unit_ids)
        if not unit_ids:
            return 0
        sent = 0
        for fact_id in dict.fromkeys(await self.ledger.feed_names_in_units(unit_ids)):
            requesters = self.interest.drain(fact_id)
            for requester_id in sorted(requesters):
                await self.messenger.send(requester_id, messages.confirmed_text(fact_id))
                sent += 1
            if requesters:
                logger.info("fact_confirmed", fact_id=fact_id, notified=len(requesters))
        metrics.counter("confirmations_sent", sent)
        return sent

    async def check_units(self, unit_ids: Iterable[str]) -> list[str]:
        """Poll the ledger for which of ``unit_ids`` became stable and notify for them."""
        stable = await self.ledger.stable_units(unit_ids)
        if stable:
            await self.on_units_stable(stable)
        return stable
