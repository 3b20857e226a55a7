"""kiln command-line entrypoint."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape

from kiln.cli.flags import Arguments, parse_arguments
from kiln.errors import KilnError
from kiln.observability.logging import configure_logging
from kiln.pipeline.dispatcher import resolve


_ERRORS = Console(stderr=True, highlight=False)


def run(args: Arguments) -> int:
    """Resolve and execute the command for already-parsed arguments."""

    configure_logging("DEBUG" if args.get("verbose") else "WARNING")
    try:
        command = resolve(args)
        return command.execute()
    except KilnError as exc:
        _ERRORS.print(f"[bold red]kiln:[/] {escape(str(exc))}", soft_wrap=True)
        return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI arguments and run the requested command."""

    return run(parse_arguments(argv))
