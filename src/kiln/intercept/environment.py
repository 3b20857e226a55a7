"""Interception mode selection and the build environment it implies."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
import logging
import os

from kiln.config.schema import InterceptConfig
from kiln.errors import StageConstructionError
from kiln.observability.logging import get_logger, log_event


_LOGGER = get_logger("kiln.intercept")

KEY_DESTINATION = "INTERCEPT_REPORT_DESTINATION"
KEY_REPORTER = "INTERCEPT_REPORTER"
KEY_VERBOSE = "INTERCEPT_VERBOSE"
KEY_WRAPPER = "INTERCEPT_WRAPPER"
KEY_PRELOAD = "LD_PRELOAD"


class InterceptMode(str, Enum):
    PRELOAD = "preload"
    WRAPPER = "wrapper"


def resolve_mode(config: InterceptConfig) -> InterceptMode:
    """Pick how child processes get intercepted."""

    if config.force_preload and config.force_wrapper:
        raise StageConstructionError(
            "--force-preload and --force-wrapper are mutually exclusive."
        )
    if config.force_wrapper:
        return InterceptMode.WRAPPER
    if config.force_preload:
        if not config.library.is_file():
            raise StageConstructionError(f"Preload library not found: {config.library}")
        return InterceptMode.PRELOAD

    if config.library.is_file():
        return InterceptMode.PRELOAD
    if not config.wrapper_dir.is_dir():
        log_event(
            _LOGGER,
            "no_interception_helpers",
            level=logging.WARNING,
            library=str(config.library),
            wrapper_dir=str(config.wrapper_dir),
            detail="only the top-level command will be recorded",
        )
    return InterceptMode.WRAPPER


def _prepend(value: str, current: str | None, separator: str) -> str:
    if not current:
        return value
    return f"{value}{separator}{current}"


def build_environment(
    config: InterceptConfig,
    mode: InterceptMode,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return the environment the build command runs with."""

    env = dict(os.environ if base is None else base)
    env[KEY_DESTINATION] = str(config.output_file.resolve())
    env[KEY_REPORTER] = str(config.executable)
    if config.verbose:
        env[KEY_VERBOSE] = "1"

    if mode is InterceptMode.PRELOAD:
        env[KEY_PRELOAD] = _prepend(str(config.library), env.get(KEY_PRELOAD), ":")
    else:
        env["PATH"] = _prepend(str(config.wrapper_dir), env.get("PATH"), os.pathsep)
        env[KEY_WRAPPER] = str(config.wrapper)
    return env
