"""Shared test fixtures for the flight delay oracle."""

import json
import sys
from datetime import date
from pathlib import Path

import httpx
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cli.config_models import OracleConfig  # noqa: E402
from oracle.alerts import OperatorAlerts  # noqa: E402
from oracle.messenger import Messenger  # noqa: E402
from oracle.sandbox_ledger import SandboxLedger  # noqa: E402

TODAY = date(2017, 3, 3)


class RecordingMessenger(Messenger):
    """Collects outgoing chat messages."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send(self, requester_id: str, text: str) -> None:
        self.sent.append((requester_id, text))

    def texts_for(self, requester_id: str) -> list[str]:
        return [text for rid, text in self.sent if rid == requester_id]


def landed_status(planned="2017-03-01T10:00:00.000Z", **times) -> dict:
    """Flight status document for a landed flight."""
    operational = {"publishedArrival": {"dateUtc": planned}} if planned else {}
    for field, value in times.items():
        operational[field] = {"dateUtc": value}
    return {"flightStatuses": [{"status": "L", "operationalTimes": operational}]}


def status_document(status: str) -> dict:
    return {"flightStatuses": [{"status": status, "operationalTimes": {}}]}


def provider_transport(document=None, status_code=200, body=None, calls=None):
    """httpx.MockTransport answering every request with the given document."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        content = body if body is not None else json.dumps(document)
        return httpx.Response(status_code, text=content)

    return httpx.MockTransport(handler)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "oracle.db"


@pytest.fixture
def config(tmp_path):
    return OracleConfig.from_dict({
        "paths": {"db": str(tmp_path / "oracle.db"), "log_file": str(tmp_path / "oracle.log")},
        "publication": {"retry_delay_seconds": 0, "retry_jitter_seconds": 0},
        "flightstats": {"app_id": "test-id", "app_key": "test-key"},
    })


@pytest.fixture
def ledger(db_path):
    return SandboxLedger(db_path)


@pytest.fixture
def funded_ledger(ledger):
    ledger.fund(1_000_000, count=200)
    return ledger


@pytest.fixture
def alerts():
    return OperatorAlerts()


@pytest.fixture
def messenger():
    return RecordingMessenger()
