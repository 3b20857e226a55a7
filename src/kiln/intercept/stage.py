"""Capture stage: run a build and record its process events."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import subprocess

from kiln.cli.flags import INTERCEPT, Arguments
from kiln.config.schema import InterceptConfig
from kiln.errors import StageConstructionError, StageExecutionError
from kiln.intercept.environment import InterceptMode, build_environment, resolve_mode
from kiln.observability.logging import get_logger, log_event
from kiln.pipeline.outcome import Outcome
from kiln.pipeline.stage import Command
from kiln.storage.events import EVENT_STARTED, EVENT_TERMINATED, append_event, reset_event_log


_LOGGER = get_logger("kiln.intercept")


def _exit_status(returncode: int) -> int:
    # subprocess reports death by signal N as -N.
    if returncode < 0:
        return 128 - returncode
    return returncode


class InterceptCommand:
    """Run one build command with interception enabled."""

    def __init__(
        self,
        build_command: tuple[str, ...],
        output_file: Path,
        mode: InterceptMode,
        environment: dict[str, str],
    ) -> None:
        self.build_command = build_command
        self.output_file = output_file
        self.mode = mode
        self.environment = environment

    def execute(self) -> int:
        try:
            reset_event_log(self.output_file)
        except OSError as exc:
            raise StageExecutionError(
                f"Could not create event file {self.output_file}: {exc.strerror}"
            ) from exc

        cwd = os.getcwd()
        append_event(
            self.output_file,
            {
                "event": EVENT_STARTED,
                "pid": os.getpid(),
                "ppid": os.getppid(),
                "execution": {
                    "executable": self.build_command[0],
                    "arguments": list(self.build_command),
                    "working_dir": cwd,
                },
            },
        )
        log_event(
            _LOGGER,
            "build_started",
            level=logging.DEBUG,
            command=list(self.build_command),
            mode=self.mode.value,
            output=str(self.output_file),
        )

        try:
            completed = subprocess.run(list(self.build_command), env=self.environment, check=False)
        except OSError as exc:
            append_event(
                self.output_file,
                {"event": EVENT_TERMINATED, "pid": os.getpid(), "status": 127},
            )
            raise StageExecutionError(
                f"Could not run {self.build_command[0]}: {exc.strerror or exc}"
            ) from exc

        status = _exit_status(completed.returncode)
        append_event(
            self.output_file,
            {"event": EVENT_TERMINATED, "pid": os.getpid(), "status": status},
        )
        log_event(_LOGGER, "build_finished", level=logging.DEBUG, status=status)
        return status


class InterceptStage:
    """Factory for the capture stage."""

    def __init__(self, config: InterceptConfig) -> None:
        self.config = config

    def matches(self, args: Arguments) -> bool:
        return args.subcommand == INTERCEPT

    def load_config(self, config: InterceptConfig) -> None:
        self.config = config

    def subcommand(self, args: Arguments) -> Outcome[Command]:
        return Outcome.attempt(lambda: self._build(args))

    def _build(self, args: Arguments) -> InterceptCommand:
        if not args.build_command:
            raise StageConstructionError("Missing build command to intercept (put it after '--').")
        mode = resolve_mode(self.config)
        return InterceptCommand(
            build_command=args.build_command,
            output_file=self.config.output_file,
            mode=mode,
            environment=build_environment(self.config, mode),
        )
