#!/usr/bin/env python3
"""
Chainbox CLI
A Python CLI tool for running development chains in Docker containers.
"""

import click

from chainbox import __version__
from chainbox.commands import chains, services
from chainbox.commands.config_utils import load_settings
from chainbox.commands.constants import ENV_CHAINBOX_HOME
from chainbox.commands.utils import handle_errors, setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--home",
    envvar=ENV_CHAINBOX_HOME,
    type=click.Path(file_okay=False),
    help="Directory holding definitions and config.toml (default: ~/.chainbox).",
)
@click.option(
    "--log-level",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    help="Log level (default: config.toml or CHAINBOX_LOG_LEVEL).",
)
@click.pass_context
@handle_errors
def cli(click_ctx, home, log_level):
    """Chainbox CLI - Run development chains in Docker containers."""
    settings = load_settings(home)
    setup_logging(log_level or settings.log_level)
    click_ctx.ensure_object(dict).setdefault("settings", settings)


cli.add_command(chains)
cli.add_command(services)


def main():
    """Main entry point for the chainbox CLI."""
    cli()


if __name__ == "__main__":
    main()
