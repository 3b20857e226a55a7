"""Load kiln configuration from defaults, a JSON file and parsed arguments."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from kiln.cli.flags import CITNAMES, INTERCEPT, Arguments
from kiln.config.schema import (
    CitnamesConfig,
    CompilationConfig,
    CompilerConfig,
    Configuration,
    ContentConfig,
    FormatConfig,
    InterceptConfig,
    OutputConfig,
)
from kiln.errors import ConfigLoadError
from kiln.storage.atomic import read_json


_TOP_LEVEL_KEYS = {"schema", "intercept", "compilation", "output"}
_DUPLICATE_FILTER_FIELDS = ("all", "file", "file_output")


def _section(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ConfigLoadError(f"Config section '{key}' must be an object.")
    return value


def _paths(values: Any, key: str) -> list[Path]:
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise ConfigLoadError(f"Config value '{key}' must be a list of paths.")
    return [Path(v) for v in values]


def _compiler_from_dict(payload: Any) -> CompilerConfig:
    if not isinstance(payload, dict) or "executable" not in payload:
        raise ConfigLoadError("Each entry of 'compilers_to_recognize' needs an 'executable'.")
    return CompilerConfig(
        executable=Path(payload["executable"]),
        flags_to_add=[str(flag) for flag in payload.get("flags_to_add", [])],
        flags_to_remove=[str(flag) for flag in payload.get("flags_to_remove", [])],
    )


def _intercept_from_dict(payload: dict[str, Any]) -> InterceptConfig:
    config = InterceptConfig()
    for key, value in payload.items():
        if key in ("output_file", "library", "wrapper", "wrapper_dir", "executable"):
            setattr(config, key, Path(value))
        elif key in ("force_preload", "force_wrapper", "verbose"):
            setattr(config, key, bool(value))
        else:
            raise ConfigLoadError(f"Unknown intercept option: {key}")
    return config


def configuration_from_dict(payload: dict[str, Any]) -> Configuration:
    """Reconstruct a Configuration from a config-file dictionary."""

    unknown = set(payload) - _TOP_LEVEL_KEYS
    if unknown:
        raise ConfigLoadError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    compilation = _section(payload, "compilation")
    output = _section(payload, "output")
    content = _section(output, "content")
    fmt = _section(output, "format")

    duplicate_fields = content.get("duplicate_filter_fields", "file_output")
    if duplicate_fields not in _DUPLICATE_FILTER_FIELDS:
        known = ", ".join(_DUPLICATE_FILTER_FIELDS)
        raise ConfigLoadError(
            f"Unknown duplicate_filter_fields '{duplicate_fields}'. Expected one of: {known}"
        )

    try:
        return Configuration(
            intercept=_intercept_from_dict(_section(payload, "intercept")),
            citnames=CitnamesConfig(
                compilation=CompilationConfig(
                    compilers_to_recognize=[
                        _compiler_from_dict(item)
                        for item in compilation.get("compilers_to_recognize", [])
                    ],
                    compilers_to_exclude=_paths(
                        compilation.get("compilers_to_exclude", []),
                        "compilers_to_exclude",
                    ),
                ),
                output=OutputConfig(
                    content=ContentConfig(
                        include_only_existing_source=bool(
                            content.get("include_only_existing_source", False)
                        ),
                        paths_to_include=_paths(
                            content.get("paths_to_include", []), "paths_to_include"
                        ),
                        paths_to_exclude=_paths(
                            content.get("paths_to_exclude", []), "paths_to_exclude"
                        ),
                        duplicate_filter_fields=duplicate_fields,
                    ),
                    format=FormatConfig(**fmt),
                ),
            ),
        )
    except TypeError as exc:
        raise ConfigLoadError(f"Invalid configuration: {exc}") from exc


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        payload = read_json(path)
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc.strerror}") from exc
    except ValueError as exc:
        raise ConfigLoadError(f"Config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigLoadError(f"Config file {path} must contain a JSON object.")
    return payload


def _apply_arguments(config: Configuration, args: Arguments) -> None:
    intercept = config.intercept
    citnames = config.citnames

    for option, attr in (
        ("library", "library"),
        ("wrapper", "wrapper"),
        ("wrapper_dir", "wrapper_dir"),
        ("kiln", "executable"),
    ):
        value = args.get(option)
        if value is not None:
            setattr(intercept, attr, Path(value))
    if args.get("force_preload"):
        intercept.force_preload = True
    if args.get("force_wrapper"):
        intercept.force_wrapper = True

    output = args.get("output")
    if args.subcommand == INTERCEPT:
        if output is not None:
            intercept.output_file = Path(output)
    elif output is not None:
        citnames.output_file = Path(output)
    if args.subcommand == CITNAMES and args.get("input") is not None:
        citnames.input_file = Path(args.get("input"))

    if args.get("append"):
        citnames.append = True
    if args.get("run_checks"):
        citnames.run_checks = True
        citnames.output.content.include_only_existing_source = True
    if args.get("verbose"):
        intercept.verbose = True
        citnames.verbose = True


def load_configuration(args: Arguments) -> Configuration:
    """Build the Configuration for one invocation.

    Defaults come first, then the JSON file named by `--config`, then the
    flags that were actually given on the command line.
    """

    config_file = args.get("config")
    if config_file is None:
        config = Configuration()
    else:
        config = configuration_from_dict(_read_config_file(Path(config_file)))

    _apply_arguments(config, args)
    return config
