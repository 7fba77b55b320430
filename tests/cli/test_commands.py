"""CLI command tests using Click CliRunner.

Strategy: patch get_components at each command module's import point with a
context wired to the test sandbox ledger and a mocked provider transport.
"""

import asyncio
from unittest.mock import patch

import httpx
import pytest
from click.testing import CliRunner

from cli.commands.ask import _ask
from cli.main import cli
from cli.utils import console
from conftest import TODAY, landed_status, provider_transport
from oracle.context import build_context
from oracle.ledger import LedgerNetworkError
from oracle.messenger import ConsoleMessenger

FACT = "BA950-2017-03-01"
LANDED_23 = landed_status(actualGateArrival="2017-03-01T10:23:00.000Z")


def _components(config, ledger):
    client = httpx.AsyncClient(transport=provider_transport(document=LANDED_23))
    context = build_context(
        config, ledger, ConsoleMessenger(console), http_client=client, today=lambda: TODAY
    )
    return {"config": config, "ledger": ledger, "context": context}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def patch_components(config, ledger):
    """Patch config loading and get_components everywhere it's imported."""

    def fake_get_components(require_provider=False):
        return _components(config, ledger)

    targets = [
        "cli.commands.ask.get_components",
        "cli.commands.ledger.get_components",
        "cli.commands.quota.get_components",
        "cli.commands.serve.get_components",
    ]
    patches = [patch(t, side_effect=fake_get_components) for t in targets]
    patches.append(patch("cli.main.load_config_model", return_value=config))
    patches.append(patch("cli.main.setup_logging"))
    for p in patches:
        p.start()
    yield ledger
    for p in patches:
        p.stop()


class TestLedgerCommands:
    def test_fund(self, runner, patch_components):
        result = runner.invoke(cli, ["fund", "5000", "-n", "3"])
        assert result.exit_code == 0
        assert "Funded" in result.output
        assert "5,000" in result.output

    def test_confirm_without_pending(self, runner, patch_components):
        result = runner.invoke(cli, ["confirm"])
        assert result.exit_code == 0
        assert "No pending units." in result.output

    def test_confirm_pending_funding(self, runner, patch_components):
        unit = patch_components.fund(5000, stable=False)
        result = runner.invoke(cli, ["confirm", unit])
        assert result.exit_code == 0
        assert "Stabilized" in result.output

    def test_capacity_low_pool(self, runner, patch_components):
        patch_components.fund(100_000, count=2)
        result = runner.invoke(cli, ["capacity"])
        assert result.exit_code == 0
        assert "Available publications: 2" in result.output
        assert "Next plan: change, 50,000" in result.output


class TestAskCommand:
    def test_ask_publishes(self, runner, patch_components):
        patch_components.fund(1_000_000, count=200)
        result = runner.invoke(cli, ["ask", "BA950 01.03.2017", "-f", "dev-1"])
        assert result.exit_code == 0
        assert "state: responded" in result.output

    def test_ask_with_confirm(self, runner, patch_components):
        patch_components.fund(1_000_000, count=200)
        result = runner.invoke(cli, ["ask", "BA950 01.03.2017", "--confirm"])
        assert result.exit_code == 0
        assert "now in the database" in result.output

    def test_ask_waits_for_failed_posts_to_retry(self, runner, patch_components):
        patch_components.fund(1_000_000, count=200)
        patch_components.fail_next_posts(LedgerNetworkError, LedgerNetworkError)

        result = runner.invoke(cli, ["ask", "BA950 01.03.2017"])

        assert result.exit_code == 0
        assert "state: responded" in result.output
        rows = asyncio.run(patch_components.read_data_feeds(patch_components.address, [FACT]))
        assert [r.value for r in rows] == [23]

    def test_ask_invalid_text(self, runner, patch_components):
        result = runner.invoke(cli, ["ask", "hello"])
        assert result.exit_code == 0
        assert "state: invalid" in result.output


class TestQuotaCommand:
    def test_quota(self, runner, patch_components):
        result = runner.invoke(cli, ["quota", "dev-1"])
        assert result.exit_code == 0
        assert "dev-1: 0/10 today" in result.output


@pytest.mark.asyncio
class TestAskDelivery:
    async def test_ask_returns_only_after_late_funding_posts(self, config, ledger):
        config.publication.retry_delay_seconds = 0.05
        task = asyncio.create_task(_ask(_components(config, ledger), "dev-1", "BA950 01.03.2017", False))

        await asyncio.sleep(0.2)
        assert not task.done()
        ledger.fund(1_000_000, count=200)
        resolution = await asyncio.wait_for(task, timeout=5)

        assert resolution.state == "responded"
        rows = await ledger.read_data_feeds(ledger.address, [FACT])
        assert [r.value for r in rows] == [23]


class TestServeCommand:
    def test_serve_answers_and_confirms(self, runner, patch_components):
        patch_components.fund(1_000_000, count=200)
        result = runner.invoke(
            cli,
            ["serve", "--poll", "0.01", "--auto-confirm"],
            input="dev-1 BA950 01.03.2017\nlonely\n",
        )
        assert result.exit_code == 0
        assert "Arrival delay was 23 minutes." in result.output
        assert "Expected: REQUESTER TEXT" in result.output
        assert "now in the database" in result.output
        assert "Stopped" in result.output

    def test_serve_posts_queued_fact_before_exit(self, runner, patch_components):
        patch_components.fund(1_000_000, count=200)
        patch_components.fail_next_posts(LedgerNetworkError)
        result = runner.invoke(cli, ["serve", "--poll", "0.01"], input="dev-1 BA950 01.03.2017\n")

        assert result.exit_code == 0
        rows = asyncio.run(patch_components.read_data_feeds(patch_components.address, [FACT]))
        assert [r.value for r in rows] == [23]
