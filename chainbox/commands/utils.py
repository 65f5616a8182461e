"""
Shared helpers for chainbox commands: the console, logging setup and CLI error reporting.
"""

import functools
import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from chainbox.commands.constants import DEFAULT_LOG_LEVEL
from chainbox.commands.errors import ChainboxError

logger = logging.getLogger(__name__)
console = Console()


def setup_logging(level: Optional[str] = None) -> None:
    """Route the standard logging module through rich.

    Args:
        level: Log level name (e.g. "DEBUG"). Defaults to DEFAULT_LOG_LEVEL.
    """
    level_name = (level or DEFAULT_LOG_LEVEL).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def handle_errors(func):
    """Print chainbox errors in red and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ChainboxError as e:
            logger.debug("Command failed", exc_info=True)
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            sys.exit(1)

    return wrapper
