"""Shared CLI utilities."""

import sys
from typing import Optional

import structlog
from rich.console import Console

console = Console()
logger = structlog.get_logger()


def get_components(require_provider: bool = False):
    """Initialize the sandbox ledger and the oracle context from config.

    Args:
        require_provider: If True, exit unless provider credentials are configured
    """
    from cli.config import ConfigError, load_config_model, require_credentials
    from oracle.context import build_context
    from oracle.messenger import ConsoleMessenger
    from oracle.sandbox_ledger import SandboxLedger

    try:
        config = load_config_model()
        if require_provider:
            require_credentials(config)
    except ConfigError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)

    ledger = SandboxLedger(config.paths.db, fee=config.capacity.unit_cost)
    context = build_context(config, ledger, ConsoleMessenger(console))
    return {
        "config": config,
        "ledger": ledger,
        "context": context,
    }


def format_amount(amount: Optional[int]) -> str:
    return f"{amount:,}" if amount is not None else "-"
