"""Turn a flight-status document into a publishable fact."""

import math
from datetime import datetime, timedelta
from typing import Any, Optional

from shared_types import FlightStatus

from . import messages
from .ledger import OracleError
from .models import FactPayload

PLANNED_FIELDS = ("publishedArrival", "scheduledGateArrival")
GATE_FIELDS = ("actualGateArrival", "estimatedGateArrival")
RUNWAY_FIELDS = ("actualRunwayArrival", "estimatedRunwayArrival")

FINAL_STATUS_REMARKS = {
    FlightStatus.CANCELED.value: "canceled",
    FlightStatus.DIVERTED.value: "diverted",
    FlightStatus.REDIRECTED.value: "redirected",
}


class ProviderError(OracleError):
    """The provider's answer cannot produce a fact for this request.

    ``message`` is shown to the requester; ``alert`` is set for shapes an
    operator should look at. ``body`` carries the raw answer when the
    provider did answer.
    """

    def __init__(self, message: str, alert: Optional[str] = None, body: Optional[str] = None):
        super().__init__(alert or message)
        self.message = message
        self.alert = alert
        self.body = body


class InvalidTimestampError(OracleError):
    """A timestamp the provider promised is present but unusable."""


def parse_timestamp(value: Any, field: str) -> datetime:
    """Parse a provider ``dateUtc`` string; anything else raises."""
    if not isinstance(value, str) or not value:
        raise InvalidTimestampError(f"bad {field} date: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidTimestampError(f"bad {field} date: {value!r}")
    if parsed.tzinfo is None:
        raise InvalidTimestampError(f"{field} date has no timezone: {value!r}")
    return parsed


def _first_timestamp(times: dict, fields: tuple[str, ...]) -> Optional[tuple[str, datetime]]:
    for field in fields:
        block = times.get(field)
        if block:
            return field, parse_timestamp(block.get("dateUtc") if isinstance(block, dict) else None, field)
    return None


def round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def last_flight_status(document: Any, full_flight: str) -> dict:
    """Validate the envelope and return the last (most recent) status entry."""
    if not isinstance(document, dict):
        raise ProviderError(messages.BAD_DATA, alert=f"no statuses for {full_flight}: {document!r}")
    error = document.get("error")
    if isinstance(error, dict) and error.get("errorMessage"):
        raise ProviderError(
            messages.provider_error(error["errorMessage"]),
            alert=f"error from flightstats for {full_flight}: {error['errorMessage']}",
        )
    statuses = document.get("flightStatuses")
    if not isinstance(statuses, list):
        raise ProviderError(messages.BAD_DATA, alert=f"no statuses for {full_flight}")
    if not statuses:
        raise ProviderError(messages.NO_INFORMATION)
    last = statuses[-1]
    if not isinstance(last, dict):
        raise ProviderError(messages.BAD_DATA, alert=f"malformed status for {full_flight}")
    return last


def evaluate(
    document: Any,
    fact_id: str,
    full_flight: str,
    sentinel_delay: int = 10000,
    taxi_in_minutes: int = 15,
) -> FactPayload:
    """Compute the fact for ``fact_id`` from a provider response.

    Raises:
        ProviderError: no fact can be published for this request.
        InvalidTimestampError: a required timestamp is malformed.
    """
    status_entry = last_flight_status(document, full_flight)
    status = status_entry.get("status")
    if not isinstance(status, str) or not status:
        raise ProviderError(messages.BAD_DATA, alert=f"no status code for {full_flight}")

    if status in (FlightStatus.SCHEDULED, FlightStatus.ACTIVE):
        raise ProviderError(messages.NOT_FINISHED)
    if status in (FlightStatus.UNKNOWN, FlightStatus.DATA_NEEDED):
        raise ProviderError(messages.UNKNOWN_FLIGHT)
    if status == FlightStatus.NOT_OPERATIONAL:
        raise ProviderError(messages.NOT_OPERATIONAL)
    if status in FINAL_STATUS_REMARKS:
        # no arrival times exist for canceled, diverted or redirected flights
        return FactPayload(fact_id, sentinel_delay, FINAL_STATUS_REMARKS[status])
    if status != FlightStatus.LANDED:
        raise ProviderError(messages.BAD_DATA, alert=f"unexpected status {status!r} for {full_flight}")

    times = status_entry.get("operationalTimes") or {}
    if not isinstance(times, dict):
        raise ProviderError(messages.BAD_DATA, alert=f"malformed operationalTimes for {full_flight}")

    planned = _first_timestamp(times, PLANNED_FIELDS)
    if planned is None:
        raise ProviderError(messages.NO_PLANNED_ARRIVAL, alert=f"no planned arrival for {full_flight}")

    remark = None
    actual = _first_timestamp(times, GATE_FIELDS)
    if actual is None:
        actual = _first_timestamp(times, RUNWAY_FIELDS)
        if actual is not None:
            actual = (actual[0], actual[1] + timedelta(minutes=taxi_in_minutes))
            remark = "runway"
    if actual is None:
        raise ProviderError(messages.NO_ACTUAL_ARRIVAL, alert=f"no actual arrival for {full_flight}")

    delay = round_half_up((actual[1] - planned[1]).total_seconds() / 60)
    return FactPayload(fact_id, delay, remark)
