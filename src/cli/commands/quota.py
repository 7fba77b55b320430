"""Quota usage command."""

import click
from rich.console import Console

from cli.utils import get_components

console = Console()


@click.command()
@click.argument("requester")
def quota(requester: str):
    """Show REQUESTER's request count for the trailing 24 hours."""
    c = get_components()
    guard = c["context"].quota
    usage = guard.usage(requester)
    console.print(f"{requester}: {usage.requester}/{guard.max_per_requester_per_day} today")
    console.print(f"all requesters: {usage.total}/{guard.max_per_day} today")
