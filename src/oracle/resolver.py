"""End-to-end handling of one requester message.

received → cache-check → served
                       → quota-check → rejected
                                     → external-fetch → computed → enqueue-publish → responded

Provider-side problems end the request with a message and publish nothing.
A malformed timestamp is a bug in the provider data and propagates.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

import structlog
import structlog.contextvars

from cli.config_models import FlightStatsConfig, PublicationConfig
from observability import metrics

from . import messages
from .alerts import OperatorAlerts
from .delay import FINAL_STATUS_REMARKS, InvalidTimestampError, ProviderError, evaluate
from .fact_cache import FactCache
from .flightstats import FlightStatsClient
from .interest import InterestIndex
from .messenger import Messenger
from .models import FactPayload, FlightQuery
from .parser import RequestRejected, parse_request
from .publication import PublicationQueue
from .quota import QuotaGuard

logger = structlog.get_logger().bind(source="resolver")


@dataclass(frozen=True)
class Resolution:
    """Terminal state of a request and the text sent back."""

    state: str
    text: str
    payload: Optional[FactPayload] = None


SERVED = "served"
REJECTED = "rejected"
RESPONDED = "responded"
INVALID = "invalid"
UNAVAILABLE = "unavailable"


class FactResolver:
    def __init__(
        self,
        cache: FactCache,
        quota: QuotaGuard,
        provider: FlightStatsClient,
        queue: PublicationQueue,
        interest: InterestIndex,
        messenger: Messenger,
        alerts: OperatorAlerts,
        flightstats_config: Optional[FlightStatsConfig] = None,
        publication_config: Optional[PublicationConfig] = None,
        today: Callable[[], date] = date.today,
    ):
        self.cache = cache
        self.quota = quota
        self.provider = provider
        self.queue = queue
        self.interest = interest
        self.messenger = messenger
        self.alerts = alerts
        self.flightstats_config = flightstats_config or FlightStatsConfig()
        self.publication_config = publication_config or PublicationConfig()
        self.today = today

    async def handle_paired(self, requester_id: str) -> str:
        text = messages.help_text(self.flightstats_config.max_age_days, self.today())
        await self.messenger.send(requester_id, text)
        return text

    async def handle_text(self, requester_id: str, text: str) -> Resolution:
        """Answer one chat message from ``requester_id``."""
        if text.strip().upper() == "HELP":
            help_text = await self.handle_paired(requester_id)
            return Resolution(SERVED, help_text)
        try:
            query = parse_request(text, self.today(), self.flightstats_config.max_age_days)
        except RequestRejected as e:
            logger.debug("request_rejected_input", requester=requester_id, reason=e.message)
            return await self._reply(requester_id, Resolution(INVALID, e.message))
        return await self.resolve(requester_id, query)

    async def resolve(self, requester_id: str, query: FlightQuery) -> Resolution:
        """Run the cache → quota → fetch → publish pipeline for a parsed query."""
        fact_id = query.fact_id
        structlog.contextvars.bind_contextvars(fact_id=fact_id, requester=requester_id)
        try:
            resolution = await self._resolve(requester_id, query)
        finally:
            structlog.contextvars.unbind_contextvars("fact_id", "requester")
        return await self._reply(requester_id, resolution)

    async def _resolve(self, requester_id: str, query: FlightQuery) -> Resolution:
        fact_id = query.fact_id
        url = messages.browser_url(
            self.flightstats_config.browser_url, query.carrier, query.flight_number, query.flight_date
        )

        cached = await self.cache.lookup(fact_id, requester_id)
        if cached is not None and isinstance(cached.value, int):
            metrics.counter("requests_served_cached")
            return Resolution(SERVED, messages.delay_text(cached.value, cached.remark, cached.is_stable, url))

        decision = self.quota.check(requester_id)
        if not decision.ok:
            return Resolution(REJECTED, decision.reason)

        try:
            document, body = await self.provider.fetch_status(query)
        except ProviderError as e:
            if e.body is not None:
                self.quota.record(requester_id, fact_id, e.body)
            return self._unavailable(e)
        self.quota.record(requester_id, fact_id, body)

        try:
            payload = evaluate(
                document,
                fact_id,
                query.display_name,
                sentinel_delay=self.publication_config.sentinel_delay,
                taxi_in_minutes=self.flightstats_config.taxi_in_minutes,
            )
        except ProviderError as e:
            return self._unavailable(e)
        except InvalidTimestampError as e:
            logger.error("invalid_timestamp", error=str(e))
            self.alerts.posting_problem(f"invalid timestamp for {query.display_name}: {e}")
            raise

        if self.queue.submit(payload) is None:
            # posted while this request waited on the provider; answer from the ledger
            cached = await self.cache.lookup(fact_id, requester_id)
            if cached is not None and isinstance(cached.value, int):
                metrics.counter("requests_served_cached")
                return Resolution(
                    SERVED, messages.delay_text(cached.value, cached.remark, cached.is_stable, url)
                )
        else:
            self.interest.register(fact_id, requester_id)
        metrics.counter("requests_published")
        if payload.remark in FINAL_STATUS_REMARKS.values():
            return Resolution(RESPONDED, messages.large_delay_text(url), payload)
        return Resolution(RESPONDED, messages.delay_text(payload.value, payload.remark, False, url), payload)

    def _unavailable(self, error: ProviderError) -> Resolution:
        if error.alert:
            self.alerts.posting_problem(error.alert)
        metrics.counter("requests_unavailable")
        logger.info("request_unavailable", reason=error.message)
        return Resolution(UNAVAILABLE, error.message)

    async def _reply(self, requester_id: str, resolution: Resolution) -> Resolution:
        await self.messenger.send(requester_id, resolution.text)
        return resolution
