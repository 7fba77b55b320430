"""Requester-facing text."""

from datetime import date, timedelta
from typing import Optional
from urllib.parse import urlencode

QUOTA_EXCEEDED = "Too many requests today, try again tomorrow"
FETCH_FAILED = "Failed to fetch flightstats data."
BAD_DATA = "Bad data from flightstats."
NO_INFORMATION = "No information about this flight."
NOT_FINISHED = "The flight has not finished yet."
UNKNOWN_FLIGHT = "Flightstats doesn't know anything about this flight."
NOT_OPERATIONAL = "The flight is not operational."
NO_PLANNED_ARRIVAL = "Unable to determine planned arrival date."
NO_ACTUAL_ARRIVAL = "Unable to determine actual arrival date."
DATE_IN_FUTURE = "The date must be in the past.  Only finished flights can be queried."

IN_DATABASE = "The data is already in the database, you can unlock your smart contract now."
WILL_NOTIFY = (
    "The data will be added into the database, I'll let you know when it is confirmed "
    "and you are able to unlock your contract."
)


def example_date(today: Optional[date] = None) -> str:
    return ((today or date.today()) - timedelta(days=1)).strftime("%d.%m.%Y")


def instruction(today: Optional[date] = None) -> str:
    return (
        "Please type the flight number and date in DD.MM.YYYY format, e.g. BA950 "
        + example_date(today)
    )


def help_text(max_age_days: int = 7, today: Optional[date] = None) -> str:
    age = "1 week" if max_age_days == 7 else f"{max_age_days} days"
    return (
        f"This oracle can query the status of any flight finished less than {age} ago and post "
        "its delay status to the database.  You can use this data to unlock a smart contract.  "
        "Type the flight number and date in DD.MM.YYYY format, e.g.\n\nBA950 "
        + example_date(today)
    )


def too_old(max_age_days: int = 7) -> str:
    return f"The flight must be less than {max_age_days} days ago."


def provider_error(message: str) -> str:
    return f"Error from flightstats: {message}"


def browser_url(base_url: str, carrier: str, flight_number: str, flight_date: date) -> str:
    query = urlencode({
        "airline": carrier,
        "flightNumber": flight_number,
        "departureDate": flight_date.isoformat(),
    })
    return f"{base_url}?{query}"


def delay_text(delay: int, remark: Optional[str], in_database: bool, url: str) -> str:
    """Answer for a landed flight (or a cached fact)."""
    if remark == "runway":
        est_text = " (estimated based on runway arrival time)"
    elif remark:
        est_text = f" ({remark})"
    else:
        est_text = ""

    if delay > 0:
        text = f"Arrival delay was {delay} minutes{est_text}."
    elif delay < 0:
        text = f"The flight arrived {-delay} minutes early{est_text}."
    else:
        text = f"The flight arrived exactly on time{est_text}."
    text += "\n\n" + (IN_DATABASE if in_database else WILL_NOTIFY)
    return text + "\n\n" + url


def large_delay_text(url: str) -> str:
    return (
        "The flight was canceled, diverted, or redirected.  This counts as large delay."
        f"\n\n{WILL_NOTIFY}\n\n{url}"
    )


def confirmed_text(fact_id: str) -> str:
    return f"The data about your flight {fact_id} is now in the database, you can unlock your contract."
