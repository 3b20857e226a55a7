"""Command-line grammars and the immutable parsed `Arguments`."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from pathlib import Path
import sys
from types import MappingProxyType
from typing import Any

import tyro


INTERCEPT = "intercept"
CITNAMES = "citnames"


@dataclass(slots=True)
class InterceptFlags:
    """Run a build and record every compiler invocation into an event file.

    Usage: kiln intercept [OPTIONS] -- BUILD COMMAND...
    """

    output: Path | None = None
    """Path of the event file (default: events.json)."""
    force_preload: bool = False
    """Force interception through library preload."""
    force_wrapper: bool = False
    """Force interception through compiler wrappers."""
    library: Path | None = None
    """Path to the preload library."""
    wrapper: Path | None = None
    """Path to the wrapper executable."""
    wrapper_dir: Path | None = None
    """Path to the wrapper directory."""
    verbose: bool = False
    """Emit debug logs."""


@dataclass(slots=True)
class CitnamesFlags:
    """Turn a recorded event file into a compilation database."""

    input: Path | None = None
    """Path of the event file (default: events.json)."""
    output: Path | None = None
    """Path of the compilation database (default: compile_commands.json)."""
    config: Path | None = None
    """Path of the JSON config file."""
    append: bool = False
    """Append to the output instead of overwriting it."""
    run_checks: bool = False
    """Allow checks against the current host, e.g. source file existence."""
    verbose: bool = False
    """Emit debug logs."""


@dataclass(slots=True)
class KilnFlags:
    """Generate a compilation database for a build.

    Usage: kiln [OPTIONS] -- BUILD COMMAND...
    The stages can also run on their own: `kiln intercept` and `kiln citnames`.
    """

    output: Path | None = None
    """Path of the compilation database (default: compile_commands.json)."""
    append: bool = False
    """Append to an existing compilation database."""
    config: Path | None = None
    """Path of the JSON config file."""
    force_preload: bool = False
    """Force interception through library preload."""
    force_wrapper: bool = False
    """Force interception through compiler wrappers."""
    kiln: Path | None = None
    """Path to the kiln executable."""
    library: Path | None = None
    """Path to the preload library."""
    wrapper: Path | None = None
    """Path to the wrapper executable."""
    wrapper_dir: Path | None = None
    """Path to the wrapper directory."""
    verbose: bool = False
    """Emit debug logs."""


GRAMMARS: dict[str, type] = {
    INTERCEPT: InterceptFlags,
    CITNAMES: CitnamesFlags,
}


@dataclass(frozen=True, slots=True)
class Arguments:
    """Parsed command-line input for one invocation."""

    subcommand: str | None = None
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    build_command: tuple[str, ...] = ()

    def get(self, name: str, default: Any = None) -> Any:
        """Return an option value, or `default` when it was not given."""

        value = self.options.get(name)
        return default if value is None else value

    def __contains__(self, name: object) -> bool:
        return self.options.get(name) is not None


def make_arguments(
    subcommand: str | None = None,
    build_command: Sequence[str] = (),
    **options: Any,
) -> Arguments:
    """Build an `Arguments` value with a read-only option mapping."""

    return Arguments(
        subcommand=subcommand,
        options=MappingProxyType(dict(options)),
        build_command=tuple(build_command),
    )


def split_build_command(argv: Sequence[str]) -> tuple[list[str], tuple[str, ...]]:
    """Split argv at the first `--` into flags and the build command."""

    items = list(argv)
    if "--" not in items:
        return items, ()
    index = items.index("--")
    return items[:index], tuple(items[index + 1 :])


def parse_arguments(argv: Sequence[str] | None = None) -> Arguments:
    """Parse argv with the grammar selected by its leading subcommand token.

    An unknown subcommand is kept on the result and its flags are parsed with
    the combined grammar; rejecting it is up to the dispatcher.
    """

    if argv is None:
        argv = sys.argv[1:]
    flags_argv, build_command = split_build_command(argv)

    subcommand = None
    if flags_argv and not flags_argv[0].startswith("-"):
        subcommand, flags_argv = flags_argv[0], flags_argv[1:]

    grammar = GRAMMARS.get(subcommand or "", KilnFlags)
    prog = "kiln" if subcommand is None else f"kiln {subcommand}"
    flags = tyro.cli(grammar, args=flags_argv, prog=prog)
    return make_arguments(subcommand, build_command, **asdict(flags))
