"""Free text to a normalized flight query."""

import re
from datetime import date, datetime, timedelta
from typing import Optional

from . import messages
from .models import FlightQuery

DATE_RE = re.compile(r"(\d\d)\.(\d\d)\.(\d\d\d\d)")
FLIGHT_RE = re.compile(r"\b([A-Z0-9]{2})\s*(\d{1,4}[A-Z]?)\b")


class RequestRejected(ValueError):
    """The text is not a usable query; ``message`` tells the requester why."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def parse_request(text: str, today: Optional[date] = None, max_age_days: int = 7) -> FlightQuery:
    """Find the flight and date in ``text`` and validate the date.

    Raises:
        RequestRejected: with an instructive message for the requester.
    """
    today = today or date.today()
    uc_text = text.strip().upper()

    date_match = DATE_RE.search(uc_text)
    text_without_date = uc_text.replace(date_match.group(0), "", 1) if date_match else uc_text
    flight_match = FLIGHT_RE.search(text_without_date)

    if not date_match and not flight_match:
        raise RequestRejected(
            "This doesn't look like flight number and date.  " + messages.instruction(today)
        )
    if not date_match:
        raise RequestRejected("Can't find a valid date.  " + messages.instruction(today))
    if not flight_match:
        raise RequestRejected("Can't find a valid flight number.  " + messages.instruction(today))

    try:
        flight_date = datetime.strptime(date_match.group(0), "%d.%m.%Y").date()
    except ValueError:
        raise RequestRejected("Looks like the date is not valid.  " + messages.instruction(today))
    if flight_date > today:
        raise RequestRejected(messages.DATE_IN_FUTURE)
    if flight_date < today - timedelta(days=max_age_days):
        raise RequestRejected(messages.too_old(max_age_days))

    return FlightQuery(
        carrier=flight_match.group(1),
        flight_number=flight_match.group(2),
        flight_date=flight_date,
    )
