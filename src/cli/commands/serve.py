"""Long-running oracle: answers chat lines and confirms facts as they become stable."""

import asyncio
import sys

import click
import structlog
from rich.console import Console

from cli.utils import get_components
from observability import log_run_summary
from oracle.ledger import OracleError

console = Console()
logger = structlog.get_logger().bind(source="serve")


async def _read_lines(stream):
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            return
        yield line


async def _handle(context, requester: str, text: str):
    try:
        await context.resolver.handle_text(requester, text)
    except OracleError:
        logger.exception("request_failed", requester=requester)


async def _watch_confirmations(c: dict, poll: float, auto_confirm: bool, stop: asyncio.Event):
    """Notify requesters for every posted unit that turns stable, until stopped."""
    context = c["context"]
    confirmed: set[str] = set()
    while True:
        if auto_confirm:
            c["ledger"].stabilize()
        waiting = context.queue.posted_units() - confirmed
        if waiting:
            confirmed.update(await context.dispatcher.check_units(waiting))
        if stop.is_set():
            return
        try:
            await asyncio.wait_for(stop.wait(), timeout=poll)
        except asyncio.TimeoutError:
            pass


async def _serve(c: dict, poll: float, auto_confirm: bool):
    context = c["context"]
    stop = asyncio.Event()
    watcher = asyncio.create_task(_watch_confirmations(c, poll, auto_confirm, stop))
    requests: set[asyncio.Task] = set()
    try:
        async for line in _read_lines(sys.stdin):
            parts = line.strip().split(None, 1)
            if len(parts) < 2:
                if parts:
                    console.print("[yellow]Expected: REQUESTER TEXT[/]")
                continue
            task = asyncio.create_task(_handle(context, parts[0], parts[1]))
            requests.add(task)
            task.add_done_callback(requests.discard)

        if requests:
            await asyncio.gather(*list(requests))
        # input is over; every queued fact still posts before shutdown
        await context.close()
    finally:
        stop.set()
        await watcher


@click.command()
@click.option("--poll", default=5.0, help="Seconds between ledger stability checks")
@click.option("--auto-confirm", is_flag=True, help="Stabilize sandbox units on every poll")
def serve(poll: float, auto_confirm: bool):
    """Run the oracle, reading "REQUESTER TEXT" lines from stdin.

    Stops after end of input, once every queued publication has posted.
    """
    c = get_components(require_provider=True)
    console.print("[green]Oracle running[/] (Ctrl+D to stop)")
    asyncio.run(_serve(c, poll, auto_confirm))
    console.print("[yellow]Stopped[/]")
    log_run_summary()
