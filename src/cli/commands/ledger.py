"""Sandbox ledger commands: funding, stabilizing, capacity."""

import asyncio

import click
from rich.console import Console
from rich.table import Table

from cli.utils import format_amount, get_components

console = Console()


@click.command()
@click.argument("amount", type=int)
@click.option("-n", "--count", default=1, help="Number of outputs to create")
@click.option("--pending", is_flag=True, help="Leave the funding unit unstable")
def fund(amount: int, count: int, pending: bool):
    """Pay AMOUNT to the oracle's sandbox address COUNT times."""
    c = get_components()
    unit = c["ledger"].fund(amount, count=count, stable=not pending)
    console.print(f"[green]Funded[/] {count} x {format_amount(amount)} in unit {unit}")


@click.command()
@click.argument("units", nargs=-1)
def confirm(units: tuple[str, ...]):
    """Mark sandbox units stable (all pending units if none given)."""
    c = get_components()
    ledger = c["ledger"]
    changed = ledger.stabilize(list(units) or None)
    if not changed:
        console.print("No pending units.")
        return
    feeds = asyncio.run(ledger.feed_names_in_units(changed))
    console.print(f"[green]Stabilized[/] {len(changed)} units")
    for name in feeds:
        console.print(f"  {name}")


async def _capacity(c: dict):
    manager = c["context"].capacity
    try:
        available = await manager.available_capacity()
        plan = await manager.plan_outputs()
        units = await c["ledger"].read_units(c["ledger"].address)
        return available, plan, units
    finally:
        await c["context"].provider.close()


@click.command()
def capacity():
    """Show spendable capacity and the next publication's output plan."""
    c = get_components()
    available, plan, units = asyncio.run(_capacity(c))

    console.print(f"Available publications: [bold]{available}[/] (min {c['config'].capacity.min_available})")
    table = Table(title="Unspent outputs")
    table.add_column("Unit", style="dim")
    table.add_column("Amount", justify="right")
    table.add_column("Stable")
    for u in sorted(units, key=lambda u: u.amount, reverse=True):
        table.add_row(u.unit or "-", format_amount(u.amount), "yes" if u.is_stable else "no")
    console.print(table)

    outputs = ", ".join("change" if o.amount == 0 else format_amount(o.amount) for o in plan)
    console.print(f"Next plan: {outputs}")
