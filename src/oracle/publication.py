"""Single-flight, never-abandoned publication of facts to the ledger."""

import asyncio
import contextvars
import time
from typing import Optional

import structlog
from tenacity import RetryCallState

from cli.config_models import PublicationConfig
from cli.retry import retrying_from_config
from observability import metrics
from shared_types import PublicationStatus

from .alerts import OperatorAlerts
from .capacity import CapacityManager
from .ledger import LedgerClient
from .models import FactPayload, QueuedPublication

logger = structlog.get_logger().bind(source="publication")


class PublicationQueue:
    """At most one in-flight publication per fact id.

    ``submit`` inserts the record before the first suspension point, so two
    coroutines racing on the same fact id cannot both start a delivery. Each
    delivery runs as its own task: attempts for one fact are sequential,
    attempts for different facts interleave.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        capacity: CapacityManager,
        alerts: OperatorAlerts,
        config: Optional[PublicationConfig] = None,
    ):
        self.ledger = ledger
        self.capacity = capacity
        self.alerts = alerts
        self.config = config or PublicationConfig()
        self._queue: dict[str, QueuedPublication] = {}
        self._tasks: set[asyncio.Task] = set()
        self._posted: dict[str, str] = {}

    def submit(self, payload: FactPayload) -> Optional[QueuedPublication]:
        """Queue ``payload`` for publication and start delivering it.

        A second submit for a fact id that is still queued is a no-op and
        returns the existing record. Facts already posted by this process are
        write-once: submitting one again returns None.
        """
        if payload.fact_id in self._posted:
            logger.info("publication_already_posted", fact_id=payload.fact_id)
            return None
        existing = self._queue.get(payload.fact_id)
        if existing is not None:
            logger.info("publication_already_queued", fact_id=payload.fact_id)
            return existing

        publication = QueuedPublication(payload=payload)
        self._queue[payload.fact_id] = publication
        metrics.counter("publications_queued")
        logger.info("publication_queued", fact_id=payload.fact_id, value=payload.value)

        # deliveries outlive the request that triggered them; start from an empty context
        task = asyncio.create_task(
            self._deliver(publication),
            name=f"publish:{payload.fact_id}",
            context=contextvars.Context(),
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return publication

    def get(self, fact_id: str) -> Optional[QueuedPublication]:
        return self._queue.get(fact_id)

    def pending(self) -> list[QueuedPublication]:
        return list(self._queue.values())

    def posted_units(self) -> set[str]:
        """Units this process has posted."""
        return set(self._posted.values())

    def __contains__(self, fact_id: str) -> bool:
        return fact_id in self._queue

    def __len__(self) -> int:
        return len(self._queue)

    async def wait(self, fact_id: str) -> Optional[str]:
        """Wait until ``fact_id`` is submitted; returns its unit id (None if not queued)."""
        publication = self._queue.get(fact_id)
        if publication is None:
            return None
        return await asyncio.shield(publication.done)

    async def join(self) -> None:
        """Wait for every in-flight delivery to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _datafeed(self, payload: FactPayload) -> dict:
        timestamp = int(time.time() * 1000) if self.config.post_timestamp else None
        return payload.to_datafeed(timestamp)

    def _on_failed_attempt(self, publication: QueuedPublication):
        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            publication.status = PublicationStatus.RETRY_SCHEDULED
            publication.last_error = str(error)
            metrics.counter("publication_failures")
            logger.warning(
                "publication_retry_scheduled",
                fact_id=publication.fact_id,
                attempt=retry_state.attempt_number,
                error=str(error),
                kind=getattr(error, "kind", None),
                wait=round(retry_state.upcoming_sleep, 1),
            )
            self.alerts.failed_posting(error)

        return before_sleep

    async def _deliver(self, publication: QueuedPublication) -> None:
        retrying = retrying_from_config(self.config, before_sleep=self._on_failed_attempt(publication))
        unit = None
        async for attempt in retrying:
            with attempt:
                publication.status = PublicationStatus.PUBLISHING
                publication.attempts += 1
                outputs = await self.capacity.plan_outputs()
                unit = await self.ledger.post_data_feed(outputs, self._datafeed(publication.payload))

        del self._queue[publication.fact_id]
        self._posted[publication.fact_id] = unit
        metrics.counter("publications_posted")
        logger.info(
            "publication_posted",
            fact_id=publication.fact_id,
            unit=unit,
            attempts=publication.attempts,
        )
        if not publication.done.done():
            publication.done.set_result(unit)
