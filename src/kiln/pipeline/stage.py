"""Command and stage factory interfaces."""

from __future__ import annotations

from typing import Any, Protocol

from kiln.cli.flags import Arguments
from kiln.pipeline.outcome import Outcome


class Command(Protocol):
    """A runnable command: blocks until done, returns the exit code.

    Failures are raised as `KilnError` subclasses.
    """

    def execute(self) -> int:
        ...


class StageFactory(Protocol):
    """What the dispatcher needs from a stage."""

    def matches(self, args: Arguments) -> bool:
        """Whether `args` use this stage's exclusive grammar."""
        ...

    def subcommand(self, args: Arguments) -> Outcome[Command]:
        """Build the stage command for `args`."""
        ...

    def load_config(self, config: Any) -> None:
        """Replace the stage's configuration section."""
        ...
