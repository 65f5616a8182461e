"""
OperationContext - the per-invocation options and output sink for chain operations.

A context is built once per top-level invocation (a CLI command, a test) and
passed into every lifecycle call. Nothing here is process-wide: two contexts
never share an output sink unless the caller hands them the same console.
"""

import io
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from rich.console import Console

from chainbox.commands.constants import DEFAULT_CONTAINER_NUMBER, TAIL_ALL
from chainbox.commands.naming import validate_container_number
from chainbox.commands.utils import console as default_console


@dataclass
class OperationContext:
    """Options consumed by chain and service operations.

    Attributes:
        name: Chain (or service) name the operation targets.
        new_name: Target name for rename.
        args: Free-form arguments (inspect fields, exec argv, service names).
        path: Directory whose files are copied into a new chain's data volume.
        genesis_file: Genesis file copied into a new chain's data volume.
        quiet: Suppress informational output; ``result`` is still populated.
        follow: Follow log output.
        tail: Number of log lines, or "all".
        skip_pull: Do not pull images.
        rm: Remove containers after stopping.
        rmd: Remove data containers too.
        rm_deps: Also stop (and with rm/rmd remove) the chain's dependencies.
        container_number: Instance number, a positive integer.
        result: Newline-joined text produced by list and inspect operations.
        console: Output sink.
    """

    name: str = ""
    new_name: str = ""
    args: list[str] = field(default_factory=list)
    path: str = ""
    genesis_file: str = ""
    quiet: bool = False
    follow: bool = False
    tail: Union[str, int] = TAIL_ALL
    skip_pull: bool = False
    rm: bool = False
    rmd: bool = False
    rm_deps: bool = False
    container_number: int = DEFAULT_CONTAINER_NUMBER
    result: str = ""
    console: Optional[Console] = None

    def __post_init__(self):
        self.container_number = validate_container_number(self.container_number)
        if self.console is None:
            self.console = default_console

    def emit(self, message: str) -> None:
        """Print a rich-markup status line unless quiet."""
        if not self.quiet:
            self.console.print(message)

    def echo(self, text: str) -> None:
        """Print plain text (names, inspect values) unless quiet."""
        if not self.quiet:
            self.console.print(text, markup=False, highlight=False, soft_wrap=True)

    def write_raw(self, data: Union[bytes, str]) -> None:
        """Write program output (logs, exec output) verbatim to the sink."""
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        self.console.file.write(data)
        self.console.file.flush()

    def set_result(self, lines: list[str]) -> str:
        self.result = "\n".join(lines)
        return self.result

    @contextmanager
    def capture_output(self) -> Iterator[io.StringIO]:
        """Swap the output sink for an in-memory buffer for the block's duration.

        The previous sink is restored on exit, including when the block raises.
        """
        buffer = io.StringIO()
        previous = self.console
        self.console = Console(file=buffer, force_terminal=False, width=previous.width)
        try:
            yield buffer
        finally:
            self.console = previous
