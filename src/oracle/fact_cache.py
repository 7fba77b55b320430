"""Read-through lookup of facts that are queued or already on the ledger."""

from typing import Optional

import structlog

from .interest import InterestIndex
from .ledger import LedgerClient
from .models import CachedFact, remark_feed_name
from .publication import PublicationQueue

logger = structlog.get_logger().bind(source="fact_cache")


class FactCache:
    """Serves known facts and enrolls the requester for confirmation."""

    def __init__(self, queue: PublicationQueue, interest: InterestIndex, ledger: LedgerClient):
        self.queue = queue
        self.interest = interest
        self.ledger = ledger

    async def lookup(self, fact_id: str, requester_id: str) -> Optional[CachedFact]:
        queued = self.queue.get(fact_id)
        if queued is not None:
            self.interest.register(fact_id, requester_id)
            logger.debug("fact_served_from_queue", fact_id=fact_id)
            return CachedFact(queued.payload.value, queued.payload.remark, is_stable=False)

        remark_name = remark_feed_name(fact_id)
        rows = await self.ledger.read_data_feeds(self.ledger.address, [fact_id, remark_name])
        values = {row.feed_name: row for row in rows}
        if fact_id not in values:
            return None

        row = values[fact_id]
        if not row.is_stable:
            self.interest.register(fact_id, requester_id)
        remark = values.get(remark_name)
        logger.debug("fact_served_from_ledger", fact_id=fact_id, stable=row.is_stable)
        return CachedFact(row.value, remark.value if remark else None, is_stable=row.is_stable)
