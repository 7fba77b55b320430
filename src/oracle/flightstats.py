"""Flight-status provider client."""

import json
from typing import Any, Optional

import httpx
import structlog

from cli.config_models import FlightStatsConfig

from . import messages
from .delay import ProviderError
from .models import FlightQuery

logger = structlog.get_logger().bind(source="flightstats")


class FlightStatsClient:
    """Async client for the flight status by departure date endpoint.

    Failures are not retried: every error is terminal for the request that
    triggered it.
    """

    def __init__(self, config: FlightStatsConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.client = client or httpx.AsyncClient(
            timeout=config.timeout,
            headers={"User-Agent": "FlightDelayOracle/1.0"},
        )

    def status_url(self, query: FlightQuery) -> str:
        d = query.flight_date
        return (
            f"{self.config.base_url}/flight/status/{query.carrier}/{query.flight_number}"
            f"/dep/{d.year}/{d.month}/{d.day}"
        )

    async def fetch_status(self, query: FlightQuery) -> tuple[Any, str]:
        """Fetch the status document for ``query``.

        Returns:
            ``(document, raw_body)`` tuple.

        Raises:
            ProviderError: transport failure, non-200 answer, or a body that is not JSON.
        """
        url = self.status_url(query)
        params = {
            "appId": self.config.app_id or "",
            "appKey": self.config.app_key or "",
            "utc": "false",
        }
        logger.info("flightstats_request", url=url)
        try:
            response = await self.client.get(url, params=params)
        except httpx.RequestError as e:
            raise ProviderError(
                messages.FETCH_FAILED,
                alert=f"getting flightstats data for {query.display_name} failed: {e}",
            )
        if response.status_code != 200:
            raise ProviderError(
                messages.FETCH_FAILED,
                alert=f"getting flightstats data for {query.display_name} failed: status={response.status_code}",
            )

        body = response.text
        logger.debug("flightstats_response", body=body)
        try:
            document = json.loads(body)
        except json.JSONDecodeError:
            raise ProviderError(
                messages.BAD_DATA, alert=f"unparseable flightstats response: {body[:500]}", body=body
            )
        return document, body

    async def close(self):
        """Close the async client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()
