"""Process-scoped wiring of the publication pipeline."""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

import httpx
import structlog

from cli.config_models import OracleConfig

from .alerts import OperatorAlerts
from .capacity import CapacityManager
from .dispatcher import NotificationDispatcher
from .fact_cache import FactCache
from .flightstats import FlightStatsClient
from .interest import InterestIndex
from .ledger import LedgerClient
from .messenger import Messenger
from .publication import PublicationQueue
from .quota import QuotaGuard
from .resolver import FactResolver

logger = structlog.get_logger().bind(source="context")


@dataclass
class OracleContext:
    """Everything a running oracle shares between requests.

    Created once at startup, kept until shutdown.
    """

    config: OracleConfig
    ledger: LedgerClient
    messenger: Messenger
    alerts: OperatorAlerts
    interest: InterestIndex
    capacity: CapacityManager
    queue: PublicationQueue
    quota: QuotaGuard
    cache: FactCache
    provider: FlightStatsClient
    resolver: FactResolver
    dispatcher: NotificationDispatcher

    async def close(self) -> None:
        """Let in-flight publications and alert emails finish, then release the HTTP client."""
        if len(self.queue):
            logger.info("waiting_for_publications", pending=len(self.queue))
        await self.queue.join()
        await self.alerts.drain()
        await self.provider.close()


def build_context(
    config: OracleConfig,
    ledger: LedgerClient,
    messenger: Messenger,
    alerts: Optional[OperatorAlerts] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    today: Callable[[], date] = date.today,
) -> OracleContext:
    alerts = alerts or OperatorAlerts(config.email, config.device_name)
    interest = InterestIndex()
    capacity = CapacityManager(
        ledger,
        alerts,
        min_available=config.capacity.min_available,
        unit_cost=config.capacity.unit_cost,
    )
    queue = PublicationQueue(ledger, capacity, alerts, config.publication)
    quota = QuotaGuard(
        config.paths.db,
        alerts,
        max_per_requester_per_day=config.quota.max_per_requester_per_day,
        max_per_day=config.quota.max_per_day,
    )
    cache = FactCache(queue, interest, ledger)
    provider = FlightStatsClient(config.flightstats, client=http_client)
    resolver = FactResolver(
        cache,
        quota,
        provider,
        queue,
        interest,
        messenger,
        alerts,
        flightstats_config=config.flightstats,
        publication_config=config.publication,
        today=today,
    )
    dispatcher = NotificationDispatcher(ledger, interest, messenger)
    return OracleContext(
        config=config,
        ledger=ledger,
        messenger=messenger,
        alerts=alerts,
        interest=interest,
        capacity=capacity,
        queue=queue,
        quota=quota,
        cache=cache,
        provider=provider,
        resolver=resolver,
        dispatcher=dispatcher,
    )
