"""Ask the oracle about a flight, as a chat peer would."""

import asyncio

import click
from rich.console import Console

from cli.utils import get_components
from observability import log_run_summary, metrics

console = Console()


async def _ask(c: dict, requester: str, text: str, confirm: bool):
    context = c["context"]
    with metrics.timer("request"):
        resolution = await context.resolver.handle_text(requester, text)
    for publication in context.queue.pending():
        console.print(
            f"[dim]Waiting for {publication.fact_id} to post "
            f"({publication.status}, {publication.attempts} attempts)...[/]"
        )
    # publications are retried until they post; return only once they have
    await context.queue.join()
    if confirm:
        units = c["ledger"].stabilize()
        await context.dispatcher.on_units_stable(units)
    await context.close()
    return resolution


@click.command()
@click.argument("text")
@click.option("-f", "--from", "requester", default="cli", help="Requester id to ask as")
@click.option("--confirm", is_flag=True, help="Stabilize the sandbox ledger afterwards and notify")
def ask(text: str, requester: str, confirm: bool):
    """Ask about a flight, e.g. "BA950 01.03.2017"."""
    c = get_components(require_provider=True)
    resolution = asyncio.run(_ask(c, requester, text, confirm))
    console.print(f"[dim]state: {resolution.state}[/]")
    log_run_summary()
