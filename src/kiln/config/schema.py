"""Dataclass-based configuration schema for kiln."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal


DEFAULT_EVENTS_FILE = Path("events.json")
DEFAULT_DATABASE = Path("compile_commands.json")
DEFAULT_LIBRARY = Path("/usr/local/libexec/kiln/libexec.so")
DEFAULT_WRAPPER = Path("/usr/local/libexec/kiln/wrapper")
DEFAULT_WRAPPER_DIR = Path("/usr/local/libexec/kiln/wrapper.d")
DEFAULT_EXECUTABLE = Path("kiln")

DuplicateFilterFields = Literal["all", "file", "file_output"]


@dataclass(slots=True)
class InterceptConfig:
    """Capture stage options."""

    output_file: Path = DEFAULT_EVENTS_FILE
    library: Path = DEFAULT_LIBRARY
    wrapper: Path = DEFAULT_WRAPPER
    wrapper_dir: Path = DEFAULT_WRAPPER_DIR
    executable: Path = DEFAULT_EXECUTABLE
    force_preload: bool = False
    force_wrapper: bool = False
    verbose: bool = False


@dataclass(slots=True)
class CompilerConfig:
    """One compiler to recognize, with argument adjustments."""

    executable: Path
    flags_to_add: list[str] = field(default_factory=list)
    flags_to_remove: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CompilationConfig:
    """Compiler recognition options."""

    compilers_to_recognize: list[CompilerConfig] = field(default_factory=list)
    compilers_to_exclude: list[Path] = field(default_factory=list)


@dataclass(slots=True)
class ContentConfig:
    """Which entries end up in the compilation database."""

    include_only_existing_source: bool = False
    paths_to_include: list[Path] = field(default_factory=list)
    paths_to_exclude: list[Path] = field(default_factory=list)
    duplicate_filter_fields: DuplicateFilterFields = "file_output"


@dataclass(slots=True)
class FormatConfig:
    """Shape of each compilation database entry."""

    command_as_array: bool = True
    drop_output_field: bool = False


@dataclass(slots=True)
class OutputConfig:
    """Compilation database output options."""

    content: ContentConfig = field(default_factory=ContentConfig)
    format: FormatConfig = field(default_factory=FormatConfig)


@dataclass(slots=True)
class CitnamesConfig:
    """Translate stage options."""

    input_file: Path = DEFAULT_EVENTS_FILE
    output_file: Path = DEFAULT_DATABASE
    append: bool = False
    run_checks: bool = False
    verbose: bool = False
    compilation: CompilationConfig = field(default_factory=CompilationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


@dataclass(slots=True)
class Configuration:
    """Top-level configuration for both stages."""

    intercept: InterceptConfig = field(default_factory=InterceptConfig)
    citnames: CitnamesConfig = field(default_factory=CitnamesConfig)
