"""Flight delay oracle CLI."""

import sys
from pathlib import Path

import click

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.commands import ask, capacity, confirm, fund, quota, serve
from cli.config import ConfigError, load_config_model
from cli.logging_config import setup_logging


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
def cli(verbose: bool, json_logs: bool):
    """Flight delay oracle - publishes arrival delays to the ledger."""
    try:
        config = load_config_model()
    except ConfigError as e:
        raise click.ClickException(str(e))
    level = "DEBUG" if verbose else config.logging.level
    setup_logging(json_mode=json_logs or config.logging.json_mode, level=level, log_file=config.paths.log_file)


cli.add_command(ask)
cli.add_command(fund)
cli.add_command(confirm)
cli.add_command(capacity)
cli.add_command(quota)
cli.add_command(serve)


def main():
    cli()


if __name__ == "__main__":
    main()
