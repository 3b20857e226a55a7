"""Pick the command an invocation runs: one stage alone, or both piped."""

from __future__ import annotations

import logging
from pathlib import Path

from kiln.cli.flags import Arguments
from kiln.citnames.stage import CitnamesStage
from kiln.config.loader import load_configuration
from kiln.config.schema import DEFAULT_DATABASE
from kiln.errors import ConfigLoadError, InvalidSubcommandError
from kiln.intercept.stage import InterceptStage
from kiln.observability.logging import get_logger, log_event
from kiln.pipeline.composite import PipelineCommand
from kiln.pipeline.stage import Command, StageFactory


_LOGGER = get_logger("kiln.dispatcher")

INTERMEDIATE_SUFFIX = ".events.json"


def intermediate_path(output: Path) -> Path:
    """Event file path used between the stages for a given database path."""

    if output.name in ("", ".."):
        raise ConfigLoadError(f"Output path has no file name: {output}")
    return output.with_suffix(INTERMEDIATE_SUFFIX)


def resolve(
    args: Arguments,
    *,
    intercept: StageFactory | None = None,
    citnames: StageFactory | None = None,
) -> Command:
    """Resolve parsed arguments into the single command to execute.

    The capture stage's grammar is checked before the translate stage's. With
    neither matching and no subcommand given, both stages are built around a
    shared event file and wrapped in a `PipelineCommand`; their construction
    errors are deferred to its execution.
    """

    config = load_configuration(args)
    if intercept is None:
        intercept = InterceptStage(config.intercept)
    if citnames is None:
        citnames = CitnamesStage(config.citnames)

    if intercept.matches(args):
        return intercept.subcommand(args).unwrap()
    if citnames.matches(args):
        return citnames.subcommand(args).unwrap()
    if args.subcommand is not None:
        raise InvalidSubcommandError(f"Invalid subcommand: {args.subcommand}")

    output = Path(args.get("output", DEFAULT_DATABASE))
    intermediate = intermediate_path(output)
    config.citnames.output_file = output
    config.citnames.input_file = intermediate
    config.intercept.output_file = intermediate

    intercept.load_config(config.intercept)
    capture = intercept.subcommand(args)
    citnames.load_config(config.citnames)
    translate = citnames.subcommand(args)

    log_event(
        _LOGGER,
        "pipeline_resolved",
        level=logging.DEBUG,
        output=str(output),
        intermediate=str(intermediate),
        capture_ok=capture.is_ok,
        translate_ok=translate.is_ok,
    )
    return PipelineCommand(capture, translate, intermediate)
