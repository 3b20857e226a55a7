"""Recognize compiler invocations among recorded executions."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePath
import re
from typing import Any

from kiln.config.schema import CompilationConfig, CompilerConfig


SOURCE_EXTENSIONS = frozenset(
    {
        ".c", ".i",
        ".cc", ".cp", ".cpp", ".cxx", ".c++", ".C", ".ii",
        ".m", ".mi", ".mm", ".M", ".mii",
        ".s", ".S", ".sx", ".asm",
        ".cu",
        ".f", ".for", ".ftn", ".f77", ".f90", ".f95", ".f03", ".f08",
        ".F", ".FOR", ".F90", ".F95", ".F03", ".F08",
    }
)

# Optional target triple prefix and version suffix, e.g. x86_64-linux-gnu-gcc-12.
_COMPILER_PATTERN = re.compile(
    r"^(?:[\w.+]+(?:-[\w.+]+)*-)?"
    r"(?:cc|c\+\+|gcc|g\+\+|clang|clang\+\+|icc|icpc|icx|icpx|nvcc|gfortran)"
    r"(?:-\d+(?:\.\d+)*)?$"
)

_FLAGS_WITH_VALUE = frozenset(
    {
        "-o", "-I", "-D", "-U", "-L", "-l", "-x",
        "-include", "-imacros", "-isystem", "-iquote", "-idirafter",
        "-isysroot", "-iprefix", "-iwithprefix", "-iwithprefixbefore",
        "-MF", "-MT", "-MQ", "-arch", "-target", "-aux-info",
        "-Xclang", "-Xlinker", "-Xpreprocessor", "-Xassembler",
        "--sysroot", "--param",
    }
)

# These stop the compiler before it produces an object file.
_NO_COMPILATION_FLAGS = frozenset({"-E", "-M", "-MM"})


@dataclass(frozen=True, slots=True)
class Execution:
    """One process execution read from the event log."""

    executable: Path
    arguments: tuple[str, ...]
    working_dir: Path

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Execution:
        arguments = payload.get("arguments")
        if not isinstance(arguments, list) or not arguments:
            raise ValueError("Execution record needs a non-empty 'arguments' list.")
        executable = payload.get("executable") or arguments[0]
        working_dir = payload.get("working_dir")
        if not isinstance(working_dir, str):
            raise ValueError("Execution record needs a 'working_dir'.")
        return cls(
            executable=Path(executable),
            arguments=tuple(str(arg) for arg in arguments),
            working_dir=Path(working_dir),
        )


@dataclass(frozen=True, slots=True)
class CompilerCall:
    """A recognized compiler invocation and the sources it compiles."""

    working_dir: Path
    arguments: tuple[str, ...]
    sources: tuple[Path, ...]
    output: Path | None


def _same_program(executable: Path, candidate: Path) -> bool:
    if candidate.is_absolute() or len(candidate.parts) > 1:
        return executable == candidate
    return executable.name == candidate.name


def is_compiler_name(name: str) -> bool:
    return bool(_COMPILER_PATTERN.match(name))


def is_source_file(argument: str) -> bool:
    if argument.startswith("-"):
        return False
    return PurePath(argument).suffix in SOURCE_EXTENSIONS


def _configured_compiler(
    executable: Path, config: CompilationConfig
) -> CompilerConfig | None:
    for compiler in config.compilers_to_recognize:
        if _same_program(executable, compiler.executable):
            return compiler
    return None


def _adjust_arguments(arguments: tuple[str, ...], compiler: CompilerConfig) -> tuple[str, ...]:
    removed = set(compiler.flags_to_remove)
    kept = [arguments[0]] + [arg for arg in arguments[1:] if arg not in removed]
    return tuple(kept + list(compiler.flags_to_add))


def _scan(arguments: tuple[str, ...]) -> tuple[list[Path], Path | None, bool]:
    sources: list[Path] = []
    output: Path | None = None
    compiles = True
    index = 1
    while index < len(arguments):
        argument = arguments[index]
        if argument in _NO_COMPILATION_FLAGS:
            compiles = False
        elif argument == "-o" and index + 1 < len(arguments):
            output = Path(arguments[index + 1])
            index += 1
        elif argument.startswith("-o") and len(argument) > 2:
            output = Path(argument[2:])
        elif argument in _FLAGS_WITH_VALUE:
            index += 1
        elif is_source_file(argument):
            sources.append(Path(argument))
        index += 1
    return sources, output, compiles


def recognize(execution: Execution, config: CompilationConfig) -> CompilerCall | None:
    """Return the compiler call `execution` represents, or None."""

    for excluded in config.compilers_to_exclude:
        if _same_program(execution.executable, excluded):
            return None

    arguments = execution.arguments
    compiler = _configured_compiler(execution.executable, config)
    if compiler is not None:
        arguments = _adjust_arguments(arguments, compiler)
    elif not is_compiler_name(execution.executable.name):
        return None

    sources, output, compiles = _scan(arguments)
    if not compiles or not sources:
        return None
    return CompilerCall(
        working_dir=execution.working_dir,
        arguments=arguments,
        sources=tuple(sources),
        output=output,
    )
