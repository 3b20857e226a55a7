"""Capture-then-translate pipeline command."""

from __future__ import annotations

import logging
from pathlib import Path

from kiln.errors import KilnError, OutcomeConsumedError
from kiln.observability.logging import get_logger, log_event
from kiln.pipeline.outcome import Outcome
from kiln.pipeline.stage import Command


_LOGGER = get_logger("kiln.pipeline")


class PipelineCommand:
    """Run the capture stage, then translate its event file into a database.

    Both stage commands were built up front; their construction errors only
    surface here. The event file at `intermediate` is written by capture, read
    by translate and deleted afterwards. The exit code is always the capture
    stage's.
    """

    def __init__(
        self,
        capture: Outcome[Command],
        translate: Outcome[Command],
        intermediate: Path,
    ) -> None:
        self.capture = capture
        self.translate = translate
        self.intermediate = intermediate
        self._executed = False

    def execute(self) -> int:
        if self._executed:
            raise OutcomeConsumedError("Pipeline command was already executed.")
        self._executed = True

        capture = self.capture.unwrap()
        translate = self.translate.unwrap()

        try:
            return capture.execute()
        finally:
            # Runs on capture failure too, so a stale event file is still translated.
            if self.intermediate.exists():
                try:
                    self._translate(translate)
                finally:
                    self._remove_intermediate()

    def _translate(self, translate: Command) -> None:
        try:
            translate.execute()
        except KilnError as exc:
            log_event(
                _LOGGER,
                "translate_failed",
                level=logging.WARNING,
                path=str(self.intermediate),
                error=str(exc),
            )

    def _remove_intermediate(self) -> None:
        try:
            self.intermediate.unlink()
        except OSError as exc:
            log_event(
                _LOGGER,
                "intermediate_cleanup_failed",
                level=logging.DEBUG,
                path=str(self.intermediate),
                error=str(exc),
            )
