"""Shared enums and types for the flight delay oracle."""

from enum import StrEnum


class PublicationStatus(StrEnum):
    PENDING = "pending"
    PUBLISHING = "publishing"
    RETRY_SCHEDULED = "retry-scheduled"


class FlightStatus(StrEnum):
    """Status codes returned by the flight-status provider."""

    SCHEDULED = "S"
    ACTIVE = "A"
    UNKNOWN = "U"
    DATA_NEEDED = "DN"
    NOT_OPERATIONAL = "NO"
    LANDED = "L"
    CANCELED = "C"
    DIVERTED = "D"
    REDIRECTED = "R"


class FailureKind(StrEnum):
    INSUFFICIENT_FUNDS = "insufficient_funds"
    COMPOSITION = "composition"
    NETWORK = "network"
