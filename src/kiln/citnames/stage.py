"""Translate stage: turn an event log into a compilation database."""

from __future__ import annotations

import logging

from kiln.cli.flags import CITNAMES, Arguments
from kiln.citnames.output import (
    Entry,
    entries_from_call,
    filter_entries,
    read_database,
    write_database,
)
from kiln.citnames.semantic import Execution, recognize
from kiln.config.schema import CitnamesConfig
from kiln.errors import StageConstructionError, StageExecutionError
from kiln.observability.logging import get_logger, log_event
from kiln.pipeline.outcome import Outcome
from kiln.pipeline.stage import Command
from kiln.storage.events import iter_executions


_LOGGER = get_logger("kiln.citnames")


class CitnamesCommand:
    """Read recorded executions and write the compilation database."""

    def __init__(self, config: CitnamesConfig) -> None:
        self.config = config

    def _recognized_entries(self) -> list[Entry]:
        entries: list[Entry] = []
        for record in iter_executions(self.config.input_file):
            try:
                execution = Execution.from_dict(record)
            except ValueError as exc:
                log_event(_LOGGER, "execution_skipped", level=logging.DEBUG, reason=str(exc))
                continue
            call = recognize(execution, self.config.compilation)
            if call is not None:
                entries.extend(entries_from_call(call))
        return entries

    def _existing_entries(self) -> list[Entry]:
        output_file = self.config.output_file
        if not (self.config.append and output_file.exists()):
            return []
        try:
            return read_database(output_file)
        except (OSError, KeyError, TypeError, ValueError) as exc:
            raise StageExecutionError(
                f"Could not read existing compilation database {output_file}: {exc}"
            ) from exc

    def execute(self) -> int:
        input_file = self.config.input_file
        try:
            recognized = self._recognized_entries()
        except OSError as exc:
            raise StageExecutionError(
                f"Could not read event file {input_file}: {exc.strerror}"
            ) from exc
        except (ValueError, TypeError) as exc:
            raise StageExecutionError(f"Malformed event file {input_file}: {exc}") from exc

        entries = filter_entries(
            self._existing_entries() + recognized,
            self.config.output.content,
        )
        try:
            count = write_database(self.config.output_file, entries, self.config.output.format)
        except OSError as exc:
            raise StageExecutionError(
                f"Could not write compilation database {self.config.output_file}: {exc.strerror}"
            ) from exc

        log_event(
            _LOGGER,
            "database_written",
            level=logging.DEBUG,
            path=str(self.config.output_file),
            entries=count,
            recognized=len(recognized),
        )
        return 0


class CitnamesStage:
    """Factory for the translate stage."""

    def __init__(self, config: CitnamesConfig) -> None:
        self.config = config

    def matches(self, args: Arguments) -> bool:
        return args.subcommand == CITNAMES

    def load_config(self, config: CitnamesConfig) -> None:
        self.config = config

    def subcommand(self, args: Arguments) -> Outcome[Command]:
        return Outcome.attempt(self._build)

    def _build(self) -> CitnamesCommand:
        if self.config.input_file.absolute() == self.config.output_file.absolute():
            raise StageConstructionError(
                f"Input and output must differ: {self.config.input_file}"
            )
        return CitnamesCommand(self.config)
