"""Tests for compiler recognition and compilation database output."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from kiln.cli.flags import make_arguments
from kiln.citnames.semantic import Execution, is_compiler_name, recognize
from kiln.citnames.stage import CitnamesCommand, CitnamesStage
from kiln.config.schema import CitnamesConfig, CompilationConfig, CompilerConfig
from kiln.errors import StageConstructionError, StageExecutionError
from kiln.storage.events import append_event, reset_event_log


@pytest.mark.parametrize(
    "name",
    ["cc", "c++", "gcc", "g++", "clang", "clang++", "gcc-12", "clang-15.0",
     "x86_64-linux-gnu-gcc-12", "arm-none-eabi-g++", "nvcc", "gfortran"],
)
def test_known_compiler_names(name: str) -> None:
    assert is_compiler_name(name)


@pytest.mark.parametrize("name", ["make", "ld", "cc1", "c++filt", "ccache", "gcc-ar", "python3"])
def test_other_program_names(name: str) -> None:
    assert not is_compiler_name(name)


def _execution(*arguments: str, cwd: str = "/src") -> Execution:
    return Execution(executable=Path(arguments[0]), arguments=arguments, working_dir=Path(cwd))


def test_recognizes_compile_call() -> None:
    call = recognize(
        _execution("/usr/bin/gcc", "-I", "inc.c", "-c", "main.c", "-o", "main.o"),
        CompilationConfig(),
    )

    assert call is not None
    assert call.sources == (Path("main.c"),)
    assert call.output == Path("main.o")
    assert call.working_dir == Path("/src")


@pytest.mark.parametrize(
    "arguments",
    [
        ("gcc", "-E", "main.c"),
        ("gcc", "-MM", "main.c"),
        ("gcc", "main.o", "-o", "app"),
        ("make", "main.c"),
    ],
)
def test_calls_without_compilation_are_ignored(arguments: tuple[str, ...]) -> None:
    assert recognize(_execution(*arguments), CompilationConfig()) is None


def test_excluded_compiler_is_ignored() -> None:
    config = CompilationConfig(compilers_to_exclude=[Path("clang")])

    assert recognize(_execution("/usr/bin/clang", "-c", "a.c"), config) is None


def test_configured_compiler_adjusts_flags() -> None:
    config = CompilationConfig(
        compilers_to_recognize=[
            CompilerConfig(
                executable=Path("/opt/cross/bin/armcc"),
                flags_to_add=["-DCROSS"],
                flags_to_remove=["-Werror"],
            )
        ]
    )

    call = recognize(_execution("/opt/cross/bin/armcc", "-Werror", "-c", "a.c"), config)

    assert call is not None
    assert call.arguments == ("/opt/cross/bin/armcc", "-c", "a.c", "-DCROSS")


def test_execution_record_validation() -> None:
    with pytest.raises(ValueError):
        Execution.from_dict({"arguments": [], "working_dir": "/src"})
    with pytest.raises(ValueError):
        Execution.from_dict({"arguments": ["cc"]})

    execution = Execution.from_dict({"arguments": ["cc", "-c", "a.c"], "working_dir": "/src"})
    assert execution.executable == Path("cc")


def _events(path: Path, *executions: dict) -> Path:
    reset_event_log(path)
    for execution in executions:
        append_event(path, {"event": "started", "pid": 10, "execution": execution})
        append_event(path, {"event": "terminated", "pid": 10, "status": 0})
    return path


def _config(tmp_path: Path, **overrides) -> CitnamesConfig:
    values = {
        "input_file": tmp_path / "db.events.json",
        "output_file": tmp_path / "compile_commands.json",
    }
    values.update(overrides)
    return CitnamesConfig(**values)


def _read(path: Path) -> list[dict]:
    return json.loads(path.read_text(encoding="utf-8"))


def test_execute_writes_database(tmp_path: Path) -> None:
    config = _config(tmp_path)
    src = str(tmp_path)
    _events(
        config.input_file,
        {"executable": "make", "arguments": ["make"], "working_dir": src},
        {"executable": "/usr/bin/cc", "arguments": ["cc", "-c", "a.c", "-o", "a.o"], "working_dir": src},
        {"executable": "/usr/bin/c++", "arguments": ["c++", "-c", "b.cpp", "c.cc"], "working_dir": src},
    )

    assert CitnamesCommand(config).execute() == 0

    entries = _read(config.output_file)
    assert [Path(e["file"]).name for e in entries] == ["a.c", "b.cpp", "c.cc"]
    assert entries[0] == {
        "directory": src,
        "file": str(tmp_path / "a.c"),
        "arguments": ["cc", "-c", "a.c", "-o", "a.o"],
        "output": str(tmp_path / "a.o"),
    }
    assert "output" not in entries[1]


def test_command_string_and_dropped_output(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.output.format.command_as_array = False
    config.output.format.drop_output_field = True
    _events(
        config.input_file,
        {"arguments": ["cc", "-DNAME=a b", "-c", "a.c", "-o", "a.o"], "working_dir": "/src"},
    )

    CitnamesCommand(config).execute()

    assert _read(config.output_file) == [
        {"directory": "/src", "file": "/src/a.c", "command": "cc '-DNAME=a b' -c a.c -o a.o"}
    ]


def test_append_merges_and_removes_duplicates(tmp_path: Path) -> None:
    config = _config(tmp_path, append=True)
    config.output_file.write_text(
        json.dumps([
            {"directory": "/src", "file": "old.c", "command": "cc -c old.c"},
            {"directory": "/src", "file": "/src/a.c", "arguments": ["cc", "-c", "a.c"]},
        ]),
        encoding="utf-8",
    )
    _events(config.input_file, {"arguments": ["cc", "-c", "a.c"], "working_dir": "/src"})

    CitnamesCommand(config).execute()

    entries = _read(config.output_file)
    assert [e["file"] for e in entries] == ["/src/old.c", "/src/a.c"]
    assert entries[0]["arguments"] == ["cc", "-c", "old.c"]


def test_overwrite_without_append(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.output_file.write_text('[{"directory": "/", "file": "/x.c", "command": "cc x.c"}]')
    _events(config.input_file)

    CitnamesCommand(config).execute()

    assert _read(config.output_file) == []


def test_content_filters(tmp_path: Path) -> None:
    config = _config(tmp_path)
    content = config.output.content
    content.include_only_existing_source = True
    content.paths_to_exclude = [tmp_path / "vendor"]
    (tmp_path / "vendor").mkdir()
    for name in ("a.c", "vendor/v.c"):
        (tmp_path / name).write_text("int x;\n", encoding="utf-8")
    _events(
        config.input_file,
        {"arguments": ["cc", "-c", "a.c", "missing.c", "vendor/v.c"], "working_dir": str(tmp_path)},
    )

    CitnamesCommand(config).execute()

    assert [e["file"] for e in _read(config.output_file)] == [str(tmp_path / "a.c")]


def test_missing_event_file_is_an_execution_error(tmp_path: Path) -> None:
    with pytest.raises(StageExecutionError, match="Could not read event file"):
        CitnamesCommand(_config(tmp_path)).execute()


def test_malformed_event_file_is_an_execution_error(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.input_file.write_text("{broken\n", encoding="utf-8")

    with pytest.raises(StageExecutionError, match="Malformed"):
        CitnamesCommand(config).execute()


def test_stage_matches_and_builds(tmp_path: Path) -> None:
    stage = CitnamesStage(_config(tmp_path))

    assert stage.matches(make_arguments("citnames"))
    assert not stage.matches(make_arguments("intercept"))
    assert isinstance(stage.subcommand(make_arguments("citnames")).unwrap(), CitnamesCommand)


def test_stage_rejects_same_input_and_output(tmp_path: Path) -> None:
    path = tmp_path / "same.json"
    stage = CitnamesStage(_config(tmp_path, input_file=path, output_file=path))

    assert isinstance(stage.subcommand(make_arguments("citnames")).error, StageConstructionError)


def test_undecodable_event_file_is_an_execution_error(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.input_file.write_bytes(b'{"event": "started", "x": "\xff"}\n')

    with pytest.raises(StageExecutionError, match="Malformed event file"):
        CitnamesCommand(config).execute()
